from __future__ import annotations

import typing as t

import annotated_types as ant
import pydantic as p

from .base import BaseSettings


class CanvasSettings(BaseSettings):
    """Connection settings for the Canvas REST and GraphQL APIs."""

    base_url: p.HttpUrl
    timeout_seconds: t.Annotated[float, ant.Gt(0)] = 30.0
    per_page: t.Annotated[int, ant.Gt(0), ant.Le(100)] = 100
