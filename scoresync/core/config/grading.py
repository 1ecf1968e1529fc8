"""Grading pipeline configuration settings."""

from __future__ import annotations

import typing as t

import annotated_types as ant
import pydantic as p

from scoresync.lib.numeric import round_half_up
from scoresync.model import BaseModel, CustomGradeStatusID

from .base import BaseSettings


class OverrideScaleSettings(BaseSettings):
    """Linear map from an outcome average to an override percentage.

    With the default factor, a 0-4 mastery average becomes a 0-100 percentage.
    """

    factor: t.Annotated[float, ant.Gt(0)] = 25.0
    places: t.Annotated[int, ant.Ge(0)] = 2

    def __call__(self, average: float) -> float:
        return round_half_up(average * self.factor, self.places)


class RatingSettings(BaseModel):
    description: str
    points: t.Annotated[float, ant.Ge(0)]


DEFAULT_RATINGS = [
    RatingSettings(description="Exemplary", points=4),
    RatingSettings(description="Beyond Target", points=3.5),
    RatingSettings(description="Target", points=3),
    RatingSettings(description="Approaching Target", points=2.5),
    RatingSettings(description="Developing", points=2),
    RatingSettings(description="Beginning", points=1.5),
    RatingSettings(description="Needs Partial Support", points=1),
    RatingSettings(description="Needs Full Support", points=0.5),
    RatingSettings(description="No Evidence", points=0),
]


class GradingSettings(BaseSettings):
    """Feature switches and constants for the reconciliation pipeline."""

    enable_outcome_updates: bool = True
    enable_grade_override: bool = True
    enable_custom_status: bool = False

    override_scale: OverrideScaleSettings = OverrideScaleSettings()
    override_tolerance: t.Annotated[float, ant.Ge(0)] = 0.01
    outcome_tolerance: t.Annotated[float, ant.Ge(0)] = 0.001
    excluded_outcome_keywords: list[str] = ["Homework Completion"]
    insufficient_evidence_status_id: CustomGradeStatusID | None = None

    reference_outcome_name: str = "Current Score"
    reference_assignment_name: str = "Current Score Assignment"
    reference_rubric_name: str = "Current Score Rubric"

    # used only when a missing outcome, assignment or rubric is created
    points_possible: t.Annotated[float, ant.Gt(0)] = 4.0
    mastery_points: t.Annotated[float, ant.Ge(0)] = 3.0
    ratings: list[RatingSettings] = DEFAULT_RATINGS
    outcome_import_poll_seconds: t.Annotated[float, ant.Ge(0)] = 2.0
    outcome_import_max_polls: t.Annotated[int, ant.Gt(0)] = 15

    @p.model_validator(mode="after")
    def check_custom_status(self) -> t.Self:
        if self.enable_custom_status and self.insufficient_evidence_status_id is None:
            raise ValueError("insufficient_evidence_status_id is required when enable_custom_status is set")
        return self

    def scale(self, average: float) -> float:
        return self.override_scale(average)
