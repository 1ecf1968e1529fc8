"""Final grade overrides: enabling the course setting, reading, and verifying them."""

from __future__ import annotations

import logging
import typing as t

from scoresync.lib.numeric import difference, exceeds_tolerance
from scoresync.lib.vendor.canvas import CanvasAPI
from scoresync.model import CourseID, Decision, EnrollmentID, EnrollmentMap, Mismatch, MismatchReason, \
    OverrideGradeSnapshot

if t.TYPE_CHECKING:
    from scoresync.core.config import GradingSettings

logger = logging.getLogger(__name__)

DEFAULT_TOLERANCE = 0.01


class OverrideGradeService(object):
    """Reads and checks final grade overrides, keyed by enrollment id.

    Every operation short-circuits when overrides are disabled in `config`.
    Snapshots are never cached: each fetch is a fresh round trip.
    """

    def __init__(self, config: GradingSettings) -> None:
        self.config = config

    @property
    def enabled(self) -> bool:
        return self.config.enable_grade_override

    async def enable_override(self, course_id: CourseID, client: CanvasAPI) -> bool:
        """Turn on `allow_final_grade_override` for the course.

        Idempotent on the Canvas side. Returns False, without a request, when
        overrides are disabled; any request failure is raised.
        """
        if not self.enabled:
            logger.debug("grade override is disabled, not enabling", extra={"course_id": course_id})
            return False

        try:
            await client.put(
                f"/api/v1/courses/{course_id}/settings",
                {"allow_final_grade_override": True},
                operation="enable_override",
            )
        except Exception:
            logger.error("failed to enable final grade override", extra={"course_id": course_id})
            raise

        logger.info("final grade override enabled", extra={"course_id": course_id})
        return True

    async def fetch_override_grades(self, course_id: CourseID, client: CanvasAPI) -> OverrideGradeSnapshot:
        if not self.enabled:
            return OverrideGradeSnapshot()

        response = await client.get(
            f"/courses/{course_id}/gradebook/final_grade_overrides",
            operation="fetch_override_grades",
        )
        snapshot = parse_override_grades(response)
        logger.debug("fetched override grades", extra={"course_id": course_id, "count": len(snapshot)})
        return snapshot

    async def verify_convergence(
        self,
        course_id: CourseID,
        decisions: t.Sequence[Decision],
        id_resolver: EnrollmentMap,
        client: CanvasAPI,
        tolerance: float = DEFAULT_TOLERANCE,
    ) -> list[Mismatch]:
        """Compare each decision's scaled average with the override Canvas now holds.

        An empty result means every override converged. Students whose
        enrollment cannot be resolved, or who have no override at all, are
        reported rather than raised.
        """
        if not self.enabled:
            return []

        snapshot = await self.fetch_override_grades(course_id, client)
        mismatches: list[Mismatch] = []

        for decision in decisions:
            expected = self.config.scale(decision.average)
            enrollment_id = id_resolver.resolve(decision.user_id)
            if enrollment_id is None:
                logger.warning("no enrollment for user", extra={"course_id": course_id, "user_id": decision.user_id})
                mismatches.append(
                    Mismatch(user_id=decision.user_id, expected=expected, reason=MismatchReason.Unresolved)
                )
                continue

            actual = snapshot.get(enrollment_id)
            if actual is None:
                mismatches.append(
                    Mismatch(
                        user_id=decision.user_id,
                        enrollment_id=enrollment_id,
                        expected=expected,
                        reason=MismatchReason.Missing,
                    )
                )
                continue

            if exceeds_tolerance(actual, expected, tolerance):
                mismatches.append(
                    Mismatch(
                        user_id=decision.user_id,
                        enrollment_id=enrollment_id,
                        expected=expected,
                        actual=actual,
                        diff=float(difference(actual, expected)),
                    )
                )

        if mismatches:
            logger.warning(
                "override grades did not converge",
                extra={
                    "course_id": course_id,
                    "mismatches": len(mismatches),
                    "users": [m.user_id for m in mismatches],
                },
            )
        else:
            logger.info("all override grades match", extra={"course_id": course_id, "checked": len(decisions)})

        return mismatches


def parse_override_grades(response: t.Any) -> OverrideGradeSnapshot:
    """Read `final_grade_overrides[id].course_grade.percentage`; null percentages are left out."""
    grades: dict[EnrollmentID, float] = {}
    overrides = response.get("final_grade_overrides") if isinstance(response, t.Mapping) else None
    for key, data in (overrides or {}).items():
        course_grade = data.get("course_grade") if isinstance(data, t.Mapping) else None
        percentage = course_grade.get("percentage") if isinstance(course_grade, t.Mapping) else None
        if isinstance(percentage, bool) or not isinstance(percentage, (int, float)):
            continue
        grades[EnrollmentID(key)] = float(percentage)
    return OverrideGradeSnapshot(grades=grades)
