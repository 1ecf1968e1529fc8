"""CLI commands for reconciling outcome averages and final grade overrides."""

from __future__ import annotations

import asyncio
import typing as t

import scoresync.lib.cli as click
import scoresync.lib.json as json
from scoresync.core import di, LoggingProvider
from scoresync.grading import ReconciliationPass, ReconciliationReport
from scoresync.lib.vendor.canvas import CanvasClient
from scoresync.model import CourseID, Decision, GradeChannel, Mismatch, MismatchReason


@click.group()
def reconcile() -> None:
    """Bring outcome scores and grade overrides in line with outcome averages."""
    ...


@reconcile.command(name="run")
@click.argument("course_id", type=click.CanvasIDParamType(CourseID))
@click.option("--dry-run", is_flag=True, default=False, help="Compute decisions without writing anything")
@click.option(
    "--create-missing",
    is_flag=True,
    default=False,
    help="Create the reference outcome, assignment and rubric if they are missing",
)
@click.option("--json", "as_json", is_flag=True, default=False, help="Print the report as JSON")
@di.inject
def run(
    course_id: CourseID,
    dry_run: bool,
    create_missing: bool,
    as_json: bool,
    logging_provider: LoggingProvider = di.Provide["logging"],  # noqa: B008
    client_factory: t.Callable[[], CanvasClient] = di.ProviderOf["canvas.client"],  # noqa: B008
    reconciliation: t.Callable[..., ReconciliationPass] = di.ProviderOf["grading.reconciliation"],  # noqa: B008
) -> int:
    """Run one reconciliation pass over COURSE_ID.

    Exits with status 1 when a student update failed or an outcome score or
    override did not converge.
    """
    logger = logging_provider.get_logger()

    async def _run() -> ReconciliationReport:
        async with client_factory() as client:
            return await reconciliation(client=client).run(course_id, dry_run=dry_run, create_missing=create_missing)

    report = asyncio.run(_run())
    logger.debug("reconciliation report", extra={"report": report})

    if as_json:
        click.echo(json.dumps(report, indent=2))
    else:
        _echo_decisions(report.decisions)
        if report.dry_run:
            click.echo(f"\nDry run: {len(report.decisions)} decision(s), nothing written.")
            return 0

        click.echo(f"\nApplied {len(report.applied)} of {len(report.decisions)} update(s).")
        for f in report.failures:
            click.echo(click.style("FAILED ", fg="red") + f"user {f.user_id}: {f.error}")
        _echo_mismatches(report.mismatches)

    if report.dry_run or report.converged:
        return 0
    return 1


@reconcile.command(name="verify")
@click.argument("course_id", type=click.CanvasIDParamType(CourseID))
@di.inject
def verify(
    course_id: CourseID,
    client_factory: t.Callable[[], CanvasClient] = di.ProviderOf["canvas.client"],  # noqa: B008
    reconciliation: t.Callable[..., ReconciliationPass] = di.ProviderOf["grading.reconciliation"],  # noqa: B008
) -> int:
    """Compare every student's outcome score and final grade override with their current average.

    Nothing is written. Exits with status 1 when any value is missing or out
    of tolerance.
    """

    async def _verify() -> tuple[list[Decision], list[Mismatch]]:
        async with client_factory() as client:
            return await reconciliation(client=client).verify(course_id)

    averages, mismatches = asyncio.run(_verify())
    click.echo(f"Checked {len(averages)} student(s).")
    _echo_mismatches(mismatches)
    return 1 if mismatches else 0


def _echo_decisions(decisions: t.Sequence[Decision]) -> None:
    if not decisions:
        click.echo("All students are up to date.")
        return

    click.echo(f"{'USER':>12}  {'AVERAGE':>8}")
    for d in decisions:
        click.echo(f"{d.user_id:>12}  {d.average:>8.2f}")


def _echo_mismatches(mismatches: t.Sequence[Mismatch]) -> None:
    if not mismatches:
        click.echo(click.style("All grades match.", fg="green"))
        return

    click.echo(click.style(f"{len(mismatches)} grade(s) did not converge:", fg="yellow"))
    for m in mismatches:
        match m.reason, m.channel:
            case MismatchReason.Unresolved, GradeChannel.Override:
                detail = "no enrollment"
            case MismatchReason.Unresolved, GradeChannel.Outcome:
                detail = "no rollup"
            case MismatchReason.Missing, GradeChannel.Override:
                detail = "no override"
            case MismatchReason.Missing, GradeChannel.Outcome:
                detail = "no outcome score"
            case _:
                detail = f"actual {m.actual}, diff {m.diff}"
        click.echo(f"  {m.channel.value:<8} user {m.user_id}: expected {m.expected}, {detail}")
