__all__ = [
    # Base
    "BaseModel",
    # Enums
    "DeploymentEnvironment",
    "GradeAction",
    "GradeChannel",
    "MismatchReason",
    # ID Types
    "CanvasID",
    "CourseID",
    "UserID",
    "EnrollmentID",
    "OutcomeID",
    "AssignmentID",
    "SubmissionID",
    "RubricID",
    "RubricAssociationID",
    "RubricCriterionID",
    "CustomGradeStatusID",
    # Rollups
    "OutcomeScore",
    "OutcomeRollup",
    "OutcomeCatalog",
    "RollupData",
    # Grading
    "Decision",
    "GradeUpdateRequest",
    "GradingTarget",
    # Override
    "OverrideGradeSnapshot",
    "EnrollmentMap",
    "Mismatch",
]

from .base import BaseModel
from .enum import DeploymentEnvironment, GradeAction, GradeChannel, MismatchReason
from .grading import Decision, GradeUpdateRequest, GradingTarget
from .id import AssignmentID, CanvasID, CourseID, CustomGradeStatusID, EnrollmentID, OutcomeID, RubricAssociationID, \
    RubricCriterionID, RubricID, SubmissionID, UserID
from .override import EnrollmentMap, Mismatch, OverrideGradeSnapshot
from .rollup import OutcomeCatalog, OutcomeRollup, OutcomeScore, RollupData
