"""Creating the reference outcome, assignment and rubric of a course.

Used only when a pass is asked to create what the locator cannot find. The
outcome goes through Canvas's CSV outcome import, which runs as a background
job, so its completion is polled.
"""

from __future__ import annotations

import asyncio
import csv
import io
import logging
import typing as t
import uuid

from scoresync.lib.vendor.canvas import CanvasAPI
from scoresync.model import AssignmentID, CourseID, OutcomeID, RubricID

from .errors import TargetSetupError

if t.TYPE_CHECKING:
    from scoresync.core.config import GradingSettings

logger = logging.getLogger(__name__)

Sleep = t.Callable[[float], t.Awaitable[None]]


class GradingTargetBuilder(object):
    def __init__(self, config: GradingSettings, client: CanvasAPI, sleep: Sleep = asyncio.sleep) -> None:
        self.config = config
        self.client = client
        self.sleep = sleep

    def outcome_csv(self, vendor_guid: str | None = None) -> str:
        """An `instructure_csv` import holding the reference outcome and its ratings."""
        name = self.config.reference_outcome_name
        ratings = self.config.ratings
        buf = io.StringIO()
        writer = csv.writer(buf, lineterminator="\n")
        writer.writerow(
            ["vendor_guid", "object_type", "title", "description", "calculation_method", "mastery_points", "ratings"]
            + [""] * (2 * len(ratings) - 1)
        )
        row: list[str] = [
            vendor_guid or f"scoresync_{uuid.uuid4().hex[:8]}",
            "outcome",
            name,
            f"Auto-generated outcome: {name}",
            "latest",
            f"{self.config.mastery_points:g}",
        ]
        for r in ratings:
            row.extend([f"{r.points:g}", r.description])
        writer.writerow(row)
        return buf.getvalue()

    async def create_outcome(self, course_id: CourseID) -> None:
        """Import the reference outcome and wait for the import to finish."""
        response = await self.client.post(
            f"/api/v1/courses/{course_id}/outcome_imports",
            params={"import_type": "instructure_csv"},
            content=self.outcome_csv(),
            content_type="text/csv",
            operation="create_outcome",
        )
        import_id = response.get("id") if isinstance(response, t.Mapping) else None
        if not import_id:
            raise TargetSetupError(f"outcome import for course {course_id} returned no id")
        logger.info("outcome import started", extra={"course_id": course_id, "import_id": import_id})

        for attempt in range(1, self.config.outcome_import_max_polls + 1):
            await self.sleep(self.config.outcome_import_poll_seconds)
            status = await self.client.get(
                f"/api/v1/courses/{course_id}/outcome_imports/{import_id}",
                operation="poll_outcome_import",
            )
            state = status.get("workflow_state") if isinstance(status, t.Mapping) else None
            logger.debug("outcome import status", extra={"import_id": import_id, "attempt": attempt, "state": state})
            if state == "succeeded":
                logger.info(
                    "created outcome", extra={"course_id": course_id, "title": self.config.reference_outcome_name}
                )
                return
            if state == "failed":
                raise TargetSetupError(f"outcome import {import_id} failed in course {course_id}")

        raise TargetSetupError(
            f"outcome import {import_id} did not finish after {self.config.outcome_import_max_polls} checks"
        )

    async def create_assignment(self, course_id: CourseID) -> AssignmentID:
        """A published, no-submission assignment kept out of the final grade."""
        response = await self.client.post(
            f"/api/v1/courses/{course_id}/assignments",
            {
                "assignment": {
                    "name": self.config.reference_assignment_name,
                    "position": 1,
                    "submission_types": ["none"],
                    "published": True,
                    "notify_of_update": True,
                    "points_possible": self.config.points_possible,
                    "grading_type": "gpa_scale",
                    "omit_from_final_grade": True,
                }
            },
            operation="create_assignment",
        )
        assignment_id = response.get("id") if isinstance(response, t.Mapping) else None
        if not assignment_id:
            raise TargetSetupError(f"creating assignment in course {course_id} returned no id")

        logger.info("created assignment", extra={"course_id": course_id, "assignment_id": assignment_id})
        return AssignmentID(assignment_id)

    async def create_rubric(self, course_id: CourseID, assignment_id: AssignmentID, outcome_id: OutcomeID) -> RubricID:
        """A one-criterion rubric aligned to `outcome_id` and used for grading `assignment_id`."""
        name = self.config.reference_outcome_name
        ratings = {
            str(i): {"description": r.description, "points": r.points} for i, r in enumerate(self.config.ratings)
        }
        response = await self.client.post(
            f"/api/v1/courses/{course_id}/rubrics",
            {
                "rubric": {
                    "title": self.config.reference_rubric_name,
                    "free_form_criterion_comments": False,
                    "criteria": {
                        "0": {
                            "description": f"{name} criteria was used to create this rubric",
                            "criterion_use_range": False,
                            "points": self.config.points_possible,
                            "mastery_points": self.config.mastery_points,
                            "learning_outcome_id": str(outcome_id),
                            "ratings": ratings,
                        }
                    },
                },
                "rubric_association": {
                    "association_type": "Assignment",
                    "association_id": str(assignment_id),
                    "use_for_grading": True,
                    "purpose": "grading",
                    "hide_points": True,
                },
            },
            operation="create_rubric",
        )
        # the response nests the rubric when an association is created alongside it
        rubric = response.get("rubric", response) if isinstance(response, t.Mapping) else None
        rubric_id = rubric.get("id") if isinstance(rubric, t.Mapping) else None
        if not rubric_id:
            raise TargetSetupError(f"creating rubric for assignment {assignment_id} returned no id")

        logger.info(
            "created rubric",
            extra={"course_id": course_id, "assignment_id": assignment_id, "rubric_id": rubric_id},
        )
        return RubricID(rubric_id)
