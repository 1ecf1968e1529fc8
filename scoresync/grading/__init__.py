__all__ = [
    "OutcomeAverageAnalyzer",
    "OverrideGradeService",
    "parse_override_grades",
    "OutcomeScoreService",
    "UnifiedGradeMutator",
    "EnrollmentDirectory",
    "GradingTargetLocator",
    "GradingTargetBuilder",
    "fetch_rollups",
    "ReconciliationPass",
    "ReconciliationReport",
    "StudentFailure",
    "ScoreSyncError",
    "GraphQLError",
    "RubricAssessmentError",
    "TargetNotFoundError",
    "TargetSetupError",
]

from .analyzer import OutcomeAverageAnalyzer
from .enrollment import EnrollmentDirectory
from .errors import GraphQLError, RubricAssessmentError, ScoreSyncError, TargetNotFoundError, TargetSetupError
from .mutator import UnifiedGradeMutator
from .outcome import OutcomeScoreService
from .override import OverrideGradeService, parse_override_grades
from .reconcile import ReconciliationPass, ReconciliationReport, StudentFailure
from .setup import GradingTargetBuilder
from .target import fetch_rollups, GradingTargetLocator
