"""Outcome averages and the decision of which students need a correction.

Each student's target is the mean of their outcome scores, leaving out the
reference outcome that stores the average itself and any outcome whose title
contains one of the excluded keywords. A student is emitted as a `Decision`
when an enabled channel disagrees with that target:

- the outcome channel, when the score recorded under the reference outcome
  differs from the new average;
- the override channel, when the student's final grade override is missing
  or further than the tolerance from the scaled average.
"""

from __future__ import annotations

import logging
import typing as t

from scoresync.lib.numeric import exceeds_tolerance, round_half_up
from scoresync.lib.vendor.canvas import CanvasAPI
from scoresync.model import CourseID, Decision, EnrollmentMap, OutcomeCatalog, OutcomeID, OutcomeRollup, \
    OverrideGradeSnapshot, RollupData, UserID

from .enrollment import EnrollmentDirectory
from .override import OverrideGradeService

if t.TYPE_CHECKING:
    from scoresync.core.config import GradingSettings

logger = logging.getLogger(__name__)


class OverrideState(t.NamedTuple):
    snapshot: OverrideGradeSnapshot
    enrollments: EnrollmentMap


class OutcomeAverageAnalyzer(object):
    def __init__(self, config: GradingSettings, overrides: OverrideGradeService | None = None) -> None:
        self.config = config
        self.overrides = overrides or OverrideGradeService(config)

    @property
    def excluded_keywords(self) -> tuple[str, ...]:
        return tuple(k.lower() for k in self.config.excluded_outcome_keywords if k.strip())

    async def compute_decisions(
        self,
        rollup_data: RollupData,
        reference_outcome_id: OutcomeID,
        course_id: CourseID,
        client: CanvasAPI,
        enrollments: EnrollmentDirectory | None = None,
    ) -> list[Decision]:
        """The students needing an outcome and/or override correction, in rollup order."""
        check_outcome = self.config.enable_outcome_updates
        override_state: OverrideState | None = None
        if self.config.enable_grade_override:
            override_state = await self._load_override_state(course_id, client, enrollments)

        decisions: list[Decision] = []
        for rollup in rollup_data.rollups:
            average = self.average(rollup, reference_outcome_id, rollup_data.catalog)
            user_id = rollup.user_id
            if user_id is None or average is None:
                continue

            old_average = rollup.score_for(reference_outcome_id)
            outcome_needs_update = check_outcome and old_average != average
            override_needs_update = override_state is not None and self._override_drifted(
                user_id, average, override_state
            )

            logger.debug(
                "student average",
                extra={
                    "user_id": user_id,
                    "old_average": old_average,
                    "average": average,
                    "outcome_needs_update": outcome_needs_update,
                    "override_needs_update": override_needs_update,
                },
            )
            if outcome_needs_update or override_needs_update:
                decisions.append(Decision(user_id=user_id, average=average))

        logger.info(
            "computed decisions",
            extra={"course_id": course_id, "students": len(rollup_data.rollups), "decisions": len(decisions)},
        )
        return decisions

    def compute_averages(self, rollup_data: RollupData, reference_outcome_id: OutcomeID) -> list[Decision]:
        """Every student with at least one eligible score, with their target average."""
        rs: list[Decision] = []
        for rollup in rollup_data.rollups:
            average = self.average(rollup, reference_outcome_id, rollup_data.catalog)
            if rollup.user_id is not None and average is not None:
                rs.append(Decision(user_id=rollup.user_id, average=average))
        return rs

    def average(self, rollup: OutcomeRollup, reference_outcome_id: OutcomeID, catalog: OutcomeCatalog) -> float | None:
        """Mean of the eligible scores rounded to 2 places, or None when there are none."""
        keywords = self.excluded_keywords
        relevant: list[float] = []
        for s in rollup.scores:
            if not s.is_numeric or s.outcome_id == reference_outcome_id:
                continue
            title = catalog.title(s.outcome_id).lower()
            if any(k in title for k in keywords):
                continue
            relevant.append(t.cast(float, s.score))

        if not relevant:
            return None
        return round_half_up(sum(relevant) / len(relevant), 2)

    def _override_drifted(self, user_id: UserID, average: float, state: OverrideState) -> bool:
        actual = state.snapshot.get(state.enrollments.resolve(user_id))
        if actual is None:
            return True
        return exceeds_tolerance(actual, self.config.scale(average), self.config.override_tolerance)

    async def _load_override_state(
        self, course_id: CourseID, client: CanvasAPI, enrollments: EnrollmentDirectory | None
    ) -> OverrideState | None:
        """Current overrides and the enrollment map to read them; None if either cannot be fetched."""
        directory = enrollments or EnrollmentDirectory(client)
        try:
            snapshot = await self.overrides.fetch_override_grades(course_id, client)
            enrollment_map = await directory.load(course_id)
        except Exception:
            logger.warning(
                "could not fetch override grades, checking outcome scores only",
                exc_info=True,
                extra={"course_id": course_id},
            )
            return None
        return OverrideState(snapshot=snapshot, enrollments=enrollment_map)
