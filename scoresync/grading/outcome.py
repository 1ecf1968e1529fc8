"""Checking the scores Canvas records under the reference outcome."""

from __future__ import annotations

import logging
import typing as t

from scoresync.lib.numeric import difference, exceeds_tolerance
from scoresync.lib.vendor.canvas import CanvasAPI
from scoresync.model import CourseID, Decision, GradeChannel, Mismatch, MismatchReason, OutcomeID, OutcomeRollup, \
    RollupData

from .target import fetch_rollups

if t.TYPE_CHECKING:
    from scoresync.core.config import GradingSettings

logger = logging.getLogger(__name__)

DEFAULT_TOLERANCE = 0.001


class OutcomeScoreService(object):
    """Compares each student's average with the score under the reference outcome.

    Rubric assessments reach the outcome rollups asynchronously on the Canvas
    side, so a mismatch right after an update may only mean the rollup has
    not been recalculated yet. Disabled outcome updates short-circuit every
    check.
    """

    def __init__(self, config: GradingSettings) -> None:
        self.config = config

    @property
    def enabled(self) -> bool:
        return self.config.enable_outcome_updates

    async def verify_convergence(
        self,
        course_id: CourseID,
        decisions: t.Sequence[Decision],
        outcome_id: OutcomeID,
        client: CanvasAPI,
        tolerance: float = DEFAULT_TOLERANCE,
    ) -> list[Mismatch]:
        """Re-read the rollups of `outcome_id` and compare them with `decisions`."""
        if not self.enabled:
            return []

        rollup_data = await fetch_rollups(
            course_id, client, outcome_ids=[outcome_id], operation="verify_outcome_scores"
        )
        return self.compare(course_id, decisions, outcome_id, rollup_data, tolerance)

    def compare(
        self,
        course_id: CourseID,
        decisions: t.Sequence[Decision],
        outcome_id: OutcomeID,
        rollup_data: RollupData,
        tolerance: float = DEFAULT_TOLERANCE,
    ) -> list[Mismatch]:
        """Mismatches between `decisions` and the outcome scores in `rollup_data`; no request is made."""
        if not self.enabled:
            return []

        rollups = {r.user_id: r for r in rollup_data.rollups if r.user_id is not None}
        mismatches: list[Mismatch] = []
        for decision in decisions:
            if (mismatch := self._check(decision, rollups.get(decision.user_id), outcome_id, tolerance)) is not None:
                mismatches.append(mismatch)

        if mismatches:
            logger.warning(
                "outcome scores did not converge",
                extra={
                    "course_id": course_id,
                    "outcome_id": outcome_id,
                    "mismatches": len(mismatches),
                    "users": [m.user_id for m in mismatches],
                },
            )
        else:
            logger.info("all outcome scores match", extra={"course_id": course_id, "checked": len(decisions)})
        return mismatches

    def _check(
        self, decision: Decision, rollup: OutcomeRollup | None, outcome_id: OutcomeID, tolerance: float
    ) -> Mismatch | None:
        def mismatch(**kwargs: t.Any) -> Mismatch:
            return Mismatch(user_id=decision.user_id, expected=decision.average, channel=GradeChannel.Outcome, **kwargs)

        if rollup is None:
            return mismatch(reason=MismatchReason.Unresolved)

        score = next((s for s in rollup.scores if s.outcome_id == outcome_id and s.is_numeric), None)
        if score is None:
            return mismatch(reason=MismatchReason.Missing)

        actual = t.cast(float, score.score)
        if exceeds_tolerance(actual, decision.average, tolerance):
            return mismatch(actual=actual, diff=float(difference(actual, decision.average)))
        return None

