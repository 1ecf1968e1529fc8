"""Pytest fixtures for scoresync tests.

Grading services are written against the `CanvasAPI` protocol, so most tests
run against `FakeCanvasClient`: an in-memory stand-in that serves canned
responses per (method, path) and records every call it receives.

Usage:
    async def test_enable(canvas: FakeCanvasClient, grading_settings: GradingSettingsFactory):
        canvas.respond("PUT", "/api/v1/courses/1/settings", {})
        ...
        assert canvas.calls_to("PUT") == [...]
"""

from __future__ import annotations

import datetime
import os
import typing as t
from pathlib import Path

import pydantic as p
import pytest

import scoresync
from scoresync.core import ScoreSyncContainer
from scoresync.core.config import GradingSettings
from scoresync.model import DeploymentEnvironment

GraphQLHandler = t.Callable[[t.Mapping[str, t.Any]], dict[str, t.Any]]
GradingSettingsFactory = t.Callable[..., GradingSettings]

NOW = datetime.datetime(2026, 3, 9, 14, 30, 0, tzinfo=datetime.UTC)


class Call(t.NamedTuple):
    method: str
    path: str
    params: t.Any
    data: t.Any
    operation: str


class FakeCanvasClient(object):
    """Serves canned responses; unknown paths answer `None` like an empty body.

    A response may be a callable taking the `Call`, for endpoints whose answer
    depends on the request or changes as the test course is modified.
    """

    def __init__(self) -> None:
        self.responses: dict[tuple[str, str], t.Any] = {}
        self.errors: dict[tuple[str, str], Exception] = {}
        self.graphql_handler: GraphQLHandler = lambda variables: {"data": {"d": {"errors": None}}}
        self.calls: list[Call] = []
        self.closed = False

    def respond(self, method: str, path: str, payload: t.Any) -> None:
        self.responses[(method, path)] = payload

    def fail(self, method: str, path: str, error: Exception) -> None:
        self.errors[(method, path)] = error

    def calls_to(self, method: str, path: str | None = None) -> list[Call]:
        return [c for c in self.calls if c.method == method and (path is None or c.path == path)]

    @property
    def graphql_calls(self) -> list[Call]:
        return self.calls_to("POST", "/api/graphql")

    async def get(self, path: str, params: t.Any = None, *, operation: str) -> t.Any:
        return self._handle("GET", path, params, None, operation)

    async def get_all_pages(self, path: str, params: t.Any = None, *, operation: str) -> t.Any:
        return self._handle("GET", path, params, None, operation)

    async def put(self, path: str, data: t.Mapping[str, t.Any], *, operation: str) -> t.Any:
        return self._handle("PUT", path, None, data, operation)

    async def post(
        self,
        path: str,
        data: t.Mapping[str, t.Any] | None = None,
        *,
        params: t.Any = None,
        content: str | None = None,
        content_type: str | None = None,
        operation: str,
    ) -> t.Any:
        return self._handle("POST", path, params, content if content is not None else data, operation)

    async def graphql(self, query: str, variables: t.Mapping[str, t.Any], *, operation: str) -> dict[str, t.Any]:
        self._handle("POST", "/api/graphql", None, {"query": query, "variables": dict(variables)}, operation)
        return self.graphql_handler(variables)

    async def __aenter__(self) -> FakeCanvasClient:
        return self

    async def __aexit__(self, *exc_info: t.Any) -> None:
        self.closed = True

    def _handle(self, method: str, path: str, params: t.Any, data: t.Any, operation: str) -> t.Any:
        self.calls.append(Call(method, path, params, data, operation))
        if (method, path) in self.errors:
            raise self.errors[(method, path)]
        response = self.responses.get((method, path))
        return response(self.calls[-1]) if callable(response) else response


def rollup_payload(
    scores: t.Mapping[str, t.Mapping[str, float | None]],
    titles: t.Mapping[str, str] | None = None,
) -> dict[str, t.Any]:
    """An `outcome_rollups` response: user id -> outcome id -> score."""
    return {
        "rollups": [
            {
                "links": {"user": user_id, "section": "1"},
                "scores": [
                    {"score": score, "links": {"outcome": outcome_id}} for outcome_id, score in user_scores.items()
                ],
            }
            for user_id, user_scores in scores.items()
        ],
        "linked": {
            "outcomes": [{"id": outcome_id, "title": title} for outcome_id, title in (titles or {}).items()],
        },
    }


def override_payload(grades: t.Mapping[str, float | None]) -> dict[str, t.Any]:
    """A `final_grade_overrides` response: enrollment id -> percentage."""
    return {
        "final_grade_overrides": {
            enrollment_id: {"course_grade": {"percentage": percentage}} for enrollment_id, percentage in grades.items()
        }
    }


def enrollments_payload(enrollments: t.Mapping[str, str]) -> list[dict[str, t.Any]]:
    """A student enrollments listing: user id -> enrollment id."""
    return [
        {"id": enrollment_id, "user_id": user_id, "type": "StudentEnrollment"}
        for user_id, enrollment_id in enrollments.items()
    ]


def serve_grading_target(
    canvas: FakeCanvasClient,
    submissions: t.Mapping[str, str] | None = None,
    course_id: str = "101",
) -> None:
    """Course `course_id` with the default reference assignment (55) and rubric (9).

    The rubric's first criterion is `_1234` and its association with the
    assignment is 302; `submissions` maps user id -> submission id.
    """
    if submissions is None:
        submissions = {"7": "700", "8": "800"}
    base = f"/api/v1/courses/{course_id}"
    canvas.respond(
        "GET",
        f"{base}/assignments",
        [
            {"id": 54, "name": "Current Score Assignment (old)"},
            {"id": 55, "name": "Current Score Assignment"},
        ],
    )
    canvas.respond(
        "GET",
        f"{base}/assignments/55",
        {
            "id": 55,
            "rubric_settings": {"id": 9, "title": "Current Score Rubric"},
            "rubric": [{"id": "_1234", "points": 4}, {"id": "_5678", "points": 4}],
        },
    )
    canvas.respond(
        "GET",
        f"{base}/rubrics/9",
        {
            "id": 9,
            "associations": [
                {"id": 300, "association_id": 12, "association_type": "Assignment"},
                {"id": 301, "association_id": 55, "association_type": "Course"},
                {"id": 302, "association_id": 55, "association_type": "Assignment"},
            ],
        },
    )
    canvas.respond(
        "GET",
        f"{base}/assignments/55/submissions",
        [{"id": submission_id, "user_id": user_id} for user_id, submission_id in submissions.items()] + [{"id": 900}],
    )


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


@pytest.fixture
def canvas() -> FakeCanvasClient:
    return FakeCanvasClient()


@pytest.fixture
def grading_settings() -> GradingSettingsFactory:
    """Build `GradingSettings`; by default both channels on, custom status off."""

    def factory(**kwargs: t.Any) -> GradingSettings:
        return GradingSettings(**kwargs)

    return factory


@pytest.fixture
def utcnow() -> t.Callable[[], datetime.datetime]:
    return lambda: NOW


@pytest.fixture
def config_root() -> p.FileUrl:
    root = Path(os.path.dirname(scoresync.__file__)).parent
    return p.FileUrl(f"file://{root}/config")


@pytest.fixture
def container(config_root: p.FileUrl) -> t.Generator[ScoreSyncContainer]:
    """A container booted against the repository config in the Test environment."""
    ct = ScoreSyncContainer()
    ScoreSyncContainer.boot(
        ct,
        debug=False,
        env=DeploymentEnvironment.Test,
        config_root=config_root,
        override=(),
    )

    yield ct

    ct.shutdown_resources()
    ct.unwire()
