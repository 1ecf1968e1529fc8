"""A student's correction as one GraphQL request.

The full document bundles five aliased mutations against one enrollment and
submission:

    a  setOverrideScore             final grade override
    b  setOverrideStatus            custom status on the override
    c  updateSubmissionGradeStatus  custom status on the assignment
    d  saveRubricAssessment         the rubric criterion score
    e  createSubmissionComment      an audit comment

`a` and `b` write the override channel; `c`, `d` and `e` write the outcome
channel. A request leaves out the aliases, and their variables, of a channel
it does not update.

Only `d` reports structured errors. A failure inside `a`, `b`, `c` or `e`
is invisible here and shows up only at verification. `e` always appends a
comment, so resending a request duplicates it.
"""

from __future__ import annotations

import datetime
import json
import logging
import typing as t

from scoresync.lib.vendor.canvas import CanvasAPI
from scoresync.model import CustomGradeStatusID, Decision, EnrollmentID, GradeAction, GradeUpdateRequest, \
    GradingTarget, SubmissionID

from .errors import GraphQLError, RubricAssessmentError

if t.TYPE_CHECKING:
    from scoresync.core.config import GradingSettings

logger = logging.getLogger(__name__)

OVERRIDE_VARIABLES = {
    "enrollmentId": "ID!",
    "overrideScore": "Float",
    "overrideCustomStatusId": "ID",
}
OVERRIDE_SELECTIONS = """
  a: setOverrideScore(input: { enrollmentId: $enrollmentId, overrideScore: $overrideScore }) {
    __typename
  }
  b: setOverrideStatus(input: { enrollmentId: $enrollmentId, customGradeStatusId: $overrideCustomStatusId }) {
    __typename
  }"""

OUTCOME_VARIABLES = {
    "submissionId": "ID!",
    "assignmentCustomStatusId": "ID",
    "rubricAssociationId": "ID!",
    "assessmentDetails": "JSON!",
    "commentText": "String!",
}
OUTCOME_SELECTIONS = """
  c: updateSubmissionGradeStatus(
    input: { submissionId: $submissionId, customGradeStatusId: $assignmentCustomStatusId }
  ) {
    submission { id customGradeStatusId __typename }
  }
  d: saveRubricAssessment(input: {
    rubricAssociationId: $rubricAssociationId
    submissionId: $submissionId
    assessmentDetails: $assessmentDetails
    gradedAnonymously: false
    provisional: false
  }) {
    errors { attribute message __typename }
    __typename
  }
  e: createSubmissionComment(input: { submissionId: $submissionId, comment: $commentText }) {
    __typename
  }"""


def unified_grading_mutation(*, override: bool = True, outcome: bool = True) -> str:
    """The grading document for the given channels."""
    if not (override or outcome):
        raise ValueError("a grading mutation needs at least one channel")

    declarations: dict[str, str] = {}
    selections = ""
    if override:
        declarations.update(OVERRIDE_VARIABLES)
        selections += OVERRIDE_SELECTIONS
    if outcome:
        declarations.update(OUTCOME_VARIABLES)
        selections += OUTCOME_SELECTIONS

    params = "\n".join(f"  ${name}: {type_}" for name, type_ in declarations.items())
    return f"mutation UnifiedGrading(\n{params}\n) {{{selections}\n}}\n"


UNIFIED_GRADING_MUTATION = unified_grading_mutation()


class UnifiedGradeMutator(object):
    def __init__(self, config: GradingSettings) -> None:
        self.config = config

    def assessment_details(self, request: GradeUpdateRequest) -> dict[str, t.Any]:
        criterion: dict[str, t.Any]
        if request.action is GradeAction.InsufficientEvidence:
            # no points key at all: clears the criterion instead of scoring it zero
            criterion = {"save_comment": "0"}
        else:
            criterion = {"points": request.rubric_points, "comments": None, "save_comment": "0"}
        return {
            "assessment_type": "grading",
            f"criterion_{request.rubric_criterion_id}": criterion,
        }

    def custom_status_ids(self, action: GradeAction) -> tuple[CustomGradeStatusID | None, CustomGradeStatusID | None]:
        """(override status, assignment status) for `action`; both None clears them."""
        if self.config.enable_custom_status and action is GradeAction.InsufficientEvidence:
            status_id = self.config.insufficient_evidence_status_id
            return status_id, status_id
        return None, None

    def document(self, request: GradeUpdateRequest) -> str:
        return unified_grading_mutation(override=request.update_override, outcome=request.update_outcome)

    def variables(self, request: GradeUpdateRequest) -> dict[str, t.Any]:
        override_status_id, assignment_status_id = self.custom_status_ids(request.action)
        rs: dict[str, t.Any] = {}
        if request.update_override:
            rs.update(
                {
                    "enrollmentId": str(request.enrollment_id),
                    "overrideScore": request.override_score,
                    "overrideCustomStatusId": override_status_id and str(override_status_id),
                }
            )
        if request.update_outcome:
            rs.update(
                {
                    "submissionId": str(request.submission_id),
                    "assignmentCustomStatusId": assignment_status_id and str(assignment_status_id),
                    "rubricAssociationId": str(request.rubric_association_id),
                    "assessmentDetails": json.dumps(self.assessment_details(request)),
                    "commentText": request.comment,
                }
            )
        return rs

    async def apply_update(self, request: GradeUpdateRequest, client: CanvasAPI) -> None:
        """Send `request` once; raises on transport, GraphQL or rubric assessment errors."""
        logger.debug(
            "submitting unified grade",
            extra={
                "action": request.action,
                "enrollment_id": request.enrollment_id,
                "submission_id": request.submission_id,
                "update_override": request.update_override,
                "update_outcome": request.update_outcome,
            },
        )
        response = await client.graphql(
            self.document(request), self.variables(request), operation="submit_unified_grade"
        )

        if errors := response.get("errors"):
            raise GraphQLError(f"GraphQL errors: {json.dumps(errors)}", errors)

        data = response.get("data") or {}
        rubric_errors = (data.get("d") or {}).get("errors") or []
        if rubric_errors:
            raise RubricAssessmentError(f"rubric assessment errors: {json.dumps(rubric_errors)}", rubric_errors)

        logger.debug(
            "unified grade submitted",
            extra={"action": request.action, "enrollment_id": request.enrollment_id},
        )

    def build_request(
        self,
        decision: Decision,
        target: GradingTarget,
        *,
        enrollment_id: EnrollmentID | None,
        submission_id: SubmissionID | None,
        now: datetime.datetime,
    ) -> GradeUpdateRequest:
        """A SCORE request for each enabled channel.

        The rubric gets `decision.average` when outcome updates are on; the
        override gets its scaled value when grade overrides are on.
        """
        update_override = self.config.enable_grade_override
        update_outcome = self.config.enable_outcome_updates
        return GradeUpdateRequest(
            enrollment_id=enrollment_id,
            submission_id=submission_id,
            rubric_association_id=target.rubric_association_id,
            rubric_criterion_id=target.rubric_criterion_id,
            action=GradeAction.Score,
            update_override=update_override,
            update_outcome=update_outcome,
            override_score=self.config.scale(decision.average) if update_override else None,
            rubric_points=decision.average if update_outcome else None,
            comment=f"Score: {decision.average:g}  Updated: {now:%Y-%m-%d %H:%M:%S %Z}".rstrip(),
        )
