import typing as t

import pydantic as p

from .base import BaseModel
from .enum import GradeAction
from .id import AssignmentID, CourseID, EnrollmentID, OutcomeID, RubricAssociationID, RubricCriterionID, RubricID, \
    SubmissionID, UserID


class Decision(BaseModel):
    user_id: UserID
    average: float


class GradeUpdateRequest(BaseModel):
    """One student's correction.

    `update_override` covers the final grade override and its status;
    `update_outcome` covers the rubric assessment, the assignment status and
    the audit comment. Channels that are off are left out of the mutation.
    """

    enrollment_id: EnrollmentID | None = None
    submission_id: SubmissionID | None = None
    rubric_association_id: RubricAssociationID
    rubric_criterion_id: RubricCriterionID
    action: GradeAction

    update_override: bool = True
    update_outcome: bool = True

    override_score: float | None = None
    rubric_points: float | None = None
    comment: str

    @p.model_validator(mode="after")
    def check_channels(self) -> t.Self:
        if not (self.update_override or self.update_outcome):
            raise ValueError("a grade update must write the override, the outcome, or both")
        if self.update_override and self.enrollment_id is None:
            raise ValueError("enrollment_id is required to update the override")
        if self.update_outcome and self.submission_id is None:
            raise ValueError("submission_id is required to update the outcome")
        return self


class GradingTarget(BaseModel):
    """The outcome, assignment and rubric that hold each student's computed average."""

    course_id: CourseID
    outcome_id: OutcomeID
    assignment_id: AssignmentID
    rubric_id: RubricID
    rubric_criterion_id: RubricCriterionID
    rubric_association_id: RubricAssociationID
    submissions: dict[UserID, SubmissionID] = {}
