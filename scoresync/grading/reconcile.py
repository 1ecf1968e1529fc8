"""One reconciliation cycle for a course: setup, decide, apply, verify."""

from __future__ import annotations

import logging
import typing as t

import pydantic as p

from scoresync.lib.vendor.canvas import CanvasAPI
from scoresync.model import BaseModel, CourseID, Decision, EnrollmentID, Mismatch, UserID

from .analyzer import OutcomeAverageAnalyzer
from .enrollment import EnrollmentDirectory
from .errors import TargetNotFoundError
from .mutator import UnifiedGradeMutator
from .outcome import OutcomeScoreService
from .override import OverrideGradeService
from .setup import GradingTargetBuilder
from .target import fetch_rollups, GradingTargetLocator

if t.TYPE_CHECKING:
    from scoresync.core.config import GradingSettings
    from scoresync.core.provider import TimestampProvider

logger = logging.getLogger(__name__)


class StudentFailure(BaseModel):
    user_id: UserID
    enrollment_id: EnrollmentID | None = None
    error: str


class ReconciliationReport(BaseModel):
    course_id: CourseID
    dry_run: bool = False
    decisions: list[Decision] = []
    applied: list[Decision] = []
    failures: list[StudentFailure] = []
    mismatches: list[Mismatch] = []

    @p.computed_field  # type: ignore[prop-decorator]
    @property
    def converged(self) -> bool:
        return not self.failures and not self.mismatches


class ReconciliationPass(object):
    """Brings every student's outcome score and final grade override in line with their average.

    Only the enabled channels are written and verified. Mutations are sent
    one at a time and never retried. A student whose update fails is recorded
    in the report and the pass moves on; a failure during setup (enabling
    overrides, reading rollups, locating the target) ends the pass.
    """

    def __init__(
        self,
        config: GradingSettings,
        client: CanvasAPI,
        utcnow: TimestampProvider,
        *,
        analyzer: OutcomeAverageAnalyzer | None = None,
        overrides: OverrideGradeService | None = None,
        outcomes: OutcomeScoreService | None = None,
        mutator: UnifiedGradeMutator | None = None,
    ) -> None:
        self.config = config
        self.client = client
        self.utcnow = utcnow
        self.overrides = overrides or OverrideGradeService(config)
        self.outcomes = outcomes or OutcomeScoreService(config)
        self.analyzer = analyzer or OutcomeAverageAnalyzer(config, self.overrides)
        self.mutator = mutator or UnifiedGradeMutator(config)

    async def run(
        self, course_id: CourseID, dry_run: bool = False, create_missing: bool = False
    ) -> ReconciliationReport:
        """One pass over `course_id`.

        With `create_missing`, a missing reference outcome, assignment or
        rubric is created first; a dry run never creates anything.
        """
        logger.info(
            "starting reconciliation",
            extra={"course_id": course_id, "dry_run": dry_run, "create_missing": create_missing},
        )
        report = ReconciliationReport(course_id=course_id, dry_run=dry_run)
        enrollments = EnrollmentDirectory(self.client)

        if not dry_run:
            await self.overrides.enable_override(course_id, self.client)

        rollup_data = await fetch_rollups(course_id, self.client)
        builder = GradingTargetBuilder(self.config, self.client) if create_missing and not dry_run else None
        target = await GradingTargetLocator(self.config, self.client, builder).locate(course_id, rollup_data)

        report.decisions = await self.analyzer.compute_decisions(
            rollup_data, target.outcome_id, course_id, self.client, enrollments
        )
        if dry_run or not report.decisions:
            logger.info(
                "nothing to apply" if not report.decisions else "dry run, not applying",
                extra={"course_id": course_id, "decisions": len(report.decisions)},
            )
            return report

        update_override = self.config.enable_grade_override
        update_outcome = self.config.enable_outcome_updates
        enrollment_map = await enrollments.load(course_id) if update_override else None
        now = self.utcnow()
        for decision in report.decisions:
            enrollment_id = enrollment_map.resolve(decision.user_id) if enrollment_map is not None else None
            submission_id = target.submissions.get(decision.user_id)
            missing = None
            if update_override and enrollment_id is None:
                missing = "enrollment"
            elif update_outcome and submission_id is None:
                missing = "submission"
            if missing is not None:
                logger.error(
                    f"no {missing} for student, skipping",
                    extra={"course_id": course_id, "user_id": decision.user_id},
                )
                report.failures.append(
                    StudentFailure(user_id=decision.user_id, enrollment_id=enrollment_id, error=f"no {missing}")
                )
                continue

            request = self.mutator.build_request(
                decision, target, enrollment_id=enrollment_id, submission_id=submission_id, now=now
            )
            try:
                await self.mutator.apply_update(request, self.client)
            except Exception as e:
                logger.error(
                    "grade update failed",
                    exc_info=True,
                    extra={"course_id": course_id, "user_id": decision.user_id, "enrollment_id": enrollment_id},
                )
                report.failures.append(
                    StudentFailure(user_id=decision.user_id, enrollment_id=enrollment_id, error=str(e))
                )
                continue
            report.applied.append(decision)

        if report.applied:
            report.mismatches = await self.outcomes.verify_convergence(
                course_id, report.applied, target.outcome_id, self.client, tolerance=self.config.outcome_tolerance
            )
            if enrollment_map is not None:
                report.mismatches += await self.overrides.verify_convergence(
                    course_id,
                    report.applied,
                    enrollment_map,
                    self.client,
                    tolerance=self.config.override_tolerance,
                )

        log = logger.info if report.converged else logger.warning
        log(
            "reconciliation finished",
            extra={
                "course_id": course_id,
                "decisions": len(report.decisions),
                "applied": len(report.applied),
                "failures": len(report.failures),
                "mismatches": len(report.mismatches),
            },
        )
        return report

    async def verify(self, course_id: CourseID) -> tuple[list[Decision], list[Mismatch]]:
        """Check every student's outcome score and override against their current average.

        Nothing is written. Outcome scores are compared with the rollups read
        for the averages; overrides are fetched fresh.
        """
        rollup_data = await fetch_rollups(course_id, self.client)
        outcome_id = rollup_data.catalog.find(self.config.reference_outcome_name)
        if outcome_id is None:
            raise TargetNotFoundError(f"outcome {self.config.reference_outcome_name!r} not found in course {course_id}")
        averages = self.analyzer.compute_averages(rollup_data, outcome_id)

        mismatches = self.outcomes.compare(
            course_id, averages, outcome_id, rollup_data, tolerance=self.config.outcome_tolerance
        )
        if self.overrides.enabled:
            enrollment_map = await EnrollmentDirectory(self.client).load(course_id)
            mismatches += await self.overrides.verify_convergence(
                course_id, averages, enrollment_map, self.client, tolerance=self.config.override_tolerance
            )
        return averages, mismatches
