"""CLI commands for the course final grade override setting."""

from __future__ import annotations

import asyncio
import typing as t

import scoresync.lib.cli as click
from scoresync.core import di
from scoresync.grading import OverrideGradeService
from scoresync.lib.vendor.canvas import CanvasClient
from scoresync.model import CourseID


@click.group()
def override() -> None:
    """Manage final grade overrides."""
    ...


@override.command(name="enable")
@click.argument("course_id", type=click.CanvasIDParamType(CourseID))
@di.inject
def enable(
    course_id: CourseID,
    client_factory: t.Callable[[], CanvasClient] = di.ProviderOf["canvas.client"],  # noqa: B008
    overrides: OverrideGradeService = di.Provide["grading.overrides"],  # noqa: B008
) -> int:
    """Allow final grade overrides in COURSE_ID's gradebook."""

    async def _enable() -> bool:
        async with client_factory() as client:
            return await overrides.enable_override(course_id, client)

    if asyncio.run(_enable()):
        click.echo(f"Final grade override enabled for course {course_id}.")
    else:
        click.echo("Grade override is disabled in configuration (grading.enable_grade_override); nothing to do.")
    return 0
