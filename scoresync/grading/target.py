"""Locating the reference outcome, assignment and rubric in a course."""

from __future__ import annotations

import logging
import typing as t

from scoresync.lib.vendor.canvas import CanvasAPI
from scoresync.model import AssignmentID, CourseID, GradingTarget, OutcomeID, RollupData, RubricAssociationID, \
    RubricCriterionID, RubricID, SubmissionID, UserID

from .errors import TargetNotFoundError

if t.TYPE_CHECKING:
    from scoresync.core.config import GradingSettings

    from .setup import GradingTargetBuilder

logger = logging.getLogger(__name__)


async def fetch_rollups(
    course_id: CourseID,
    client: CanvasAPI,
    *,
    outcome_ids: t.Sequence[OutcomeID] = (),
    operation: str = "fetch_rollups",
) -> RollupData:
    """The course's outcome rollups, limited to `outcome_ids` when given."""
    params: dict[str, t.Any] = {"include[]": ["outcomes", "users"]}
    if outcome_ids:
        params["outcome_ids[]"] = [str(i) for i in outcome_ids]
    payload = await client.get(f"/api/v1/courses/{course_id}/outcome_rollups", params, operation=operation)
    rollup_data = RollupData.from_api(payload if isinstance(payload, t.Mapping) else {})
    logger.debug(
        "fetched outcome rollups",
        extra={
            "course_id": course_id,
            "rollups": len(rollup_data.rollups),
            "outcomes": len(rollup_data.catalog.titles),
        },
    )
    return rollup_data


class GradingTargetLocator(object):
    """Finds the entities that hold each student's computed average.

    Without a `builder`, a course missing the reference outcome, assignment or
    rubric raises `TargetNotFoundError` naming what is missing. With one, the
    missing entities are created and then looked up again.
    """

    def __init__(self, config: GradingSettings, client: CanvasAPI, builder: GradingTargetBuilder | None = None) -> None:
        self.config = config
        self.client = client
        self.builder = builder

    async def locate(self, course_id: CourseID, rollup_data: RollupData) -> GradingTarget:
        outcome_id = await self.find_outcome(course_id, rollup_data)

        try:
            assignment_id = await self.find_assignment(course_id)
        except TargetNotFoundError:
            if self.builder is None:
                raise
            assignment_id = await self.builder.create_assignment(course_id)

        try:
            rubric_id, criterion_id = await self.find_rubric(course_id, assignment_id)
        except TargetNotFoundError:
            if self.builder is None:
                raise
            await self.builder.create_rubric(course_id, assignment_id, outcome_id)
            rubric_id, criterion_id = await self.find_rubric(course_id, assignment_id)

        association_id = await self.find_rubric_association(course_id, rubric_id, assignment_id)
        submissions = await self.fetch_submissions(course_id, assignment_id)

        target = GradingTarget(
            course_id=course_id,
            outcome_id=outcome_id,
            assignment_id=assignment_id,
            rubric_id=rubric_id,
            rubric_criterion_id=criterion_id,
            rubric_association_id=association_id,
            submissions=submissions,
        )
        logger.info(
            "located grading target",
            extra={
                "course_id": course_id,
                "outcome_id": outcome_id,
                "assignment_id": assignment_id,
                "rubric_id": rubric_id,
                "rubric_association_id": association_id,
                "submissions": len(submissions),
            },
        )
        return target

    async def find_outcome(self, course_id: CourseID, rollup_data: RollupData) -> OutcomeID:
        name = self.config.reference_outcome_name
        outcome_id = rollup_data.catalog.find(name)
        if outcome_id is None and self.builder is not None:
            await self.builder.create_outcome(course_id)
            outcome_id = (await fetch_rollups(course_id, self.client)).catalog.find(name)
        if outcome_id is None:
            raise TargetNotFoundError(f"outcome {name!r} not found in course {course_id}")
        return outcome_id

    async def find_assignment(self, course_id: CourseID) -> AssignmentID:
        name = self.config.reference_assignment_name
        assignments = await self.client.get_all_pages(
            f"/api/v1/courses/{course_id}/assignments",
            {"search_term": name},
            operation="find_assignment",
        )
        # search_term is a substring match
        for a in assignments or []:
            if isinstance(a, t.Mapping) and a.get("name") == name and a.get("id"):
                return AssignmentID(a["id"])
        raise TargetNotFoundError(f"assignment {name!r} not found in course {course_id}")

    async def find_rubric(self, course_id: CourseID, assignment_id: AssignmentID) -> tuple[RubricID, RubricCriterionID]:
        """The assignment's rubric id and its first criterion, if the rubric has the reference name."""
        name = self.config.reference_rubric_name
        assignment = await self.client.get(
            f"/api/v1/courses/{course_id}/assignments/{assignment_id}",
            operation="find_rubric",
        )
        assignment = assignment if isinstance(assignment, t.Mapping) else {}

        settings = assignment.get("rubric_settings")
        if not isinstance(settings, t.Mapping) or settings.get("title") != name or not settings.get("id"):
            raise TargetNotFoundError(f"rubric {name!r} not found on assignment {assignment_id}")

        criteria = assignment.get("rubric")
        if not isinstance(criteria, list) or not criteria or not isinstance(criteria[0], t.Mapping):
            raise TargetNotFoundError(f"rubric {name!r} on assignment {assignment_id} has no criteria")
        criterion_id = criteria[0].get("id")
        if not criterion_id:
            raise TargetNotFoundError(f"rubric {name!r} on assignment {assignment_id} has no criteria")

        return RubricID(settings["id"]), RubricCriterionID(criterion_id)

    async def find_rubric_association(
        self, course_id: CourseID, rubric_id: RubricID, assignment_id: AssignmentID
    ) -> RubricAssociationID:
        rubric = await self.client.get(
            f"/api/v1/courses/{course_id}/rubrics/{rubric_id}",
            {"include": "associations"},
            operation="find_rubric_association",
        )
        associations = rubric.get("associations") if isinstance(rubric, t.Mapping) else None
        for a in associations or []:
            if (
                isinstance(a, t.Mapping)
                and str(a.get("association_id")) == str(assignment_id)
                and a.get("association_type") == "Assignment"
                and a.get("id")
            ):
                return RubricAssociationID(a["id"])
        raise TargetNotFoundError(f"rubric {rubric_id} is not associated with assignment {assignment_id}")

    async def fetch_submissions(self, course_id: CourseID, assignment_id: AssignmentID) -> dict[UserID, SubmissionID]:
        submissions = await self.client.get_all_pages(
            f"/api/v1/courses/{course_id}/assignments/{assignment_id}/submissions",
            operation="fetch_submissions",
        )
        rs: dict[UserID, SubmissionID] = {}
        for s in submissions or []:
            if isinstance(s, t.Mapping) and s.get("user_id") and s.get("id"):
                rs[UserID(s["user_id"])] = SubmissionID(s["id"])
        return rs
