from __future__ import annotations

from unittest.mock import AsyncMock

import pytest
from conftest import FakeCanvasClient, GradingSettingsFactory, rollup_payload, serve_grading_target

from scoresync.grading import EnrollmentDirectory, fetch_rollups, GradingTargetBuilder, GradingTargetLocator, \
    TargetNotFoundError
from scoresync.model import AssignmentID, CourseID, EnrollmentID, OutcomeID, RollupData, RubricAssociationID, \
    RubricCriterionID, RubricID, SubmissionID, UserID

COURSE = CourseID("101")
ASSIGNMENTS = "/api/v1/courses/101/assignments"
ASSIGNMENT = "/api/v1/courses/101/assignments/55"
RUBRIC = "/api/v1/courses/101/rubrics/9"
ROLLUPS = "/api/v1/courses/101/outcome_rollups"


def _rollups() -> RollupData:
    return RollupData.from_api(rollup_payload({"7": {"1": 3, "2": 3}}, {"1": "Argument", "2": "Current Score"}))


class TestFetchRollups(object):
    @pytest.mark.anyio
    async def test_requests_outcomes_and_users(self, canvas: FakeCanvasClient) -> None:
        canvas.respond("GET", "/api/v1/courses/101/outcome_rollups", rollup_payload({"7": {"1": 2}}, {"1": "A"}))

        data = await fetch_rollups(COURSE, canvas)

        assert [r.user_id for r in data.rollups] == [UserID("7")]
        assert data.catalog.title(OutcomeID("1")) == "A"
        [call] = canvas.calls
        assert call.params == {"include[]": ["outcomes", "users"]}

    @pytest.mark.anyio
    async def test_limited_to_outcomes(self, canvas: FakeCanvasClient) -> None:
        await fetch_rollups(COURSE, canvas, outcome_ids=[OutcomeID("2")], operation="verify_outcome_scores")

        [call] = canvas.calls
        assert call.params == {"include[]": ["outcomes", "users"], "outcome_ids[]": ["2"]}
        assert call.operation == "verify_outcome_scores"

    @pytest.mark.anyio
    async def test_empty_body(self, canvas: FakeCanvasClient) -> None:
        assert await fetch_rollups(COURSE, canvas) == RollupData()


class TestGradingTargetLocator(object):
    @pytest.mark.anyio
    async def test_locate(self, canvas: FakeCanvasClient, grading_settings: GradingSettingsFactory) -> None:
        serve_grading_target(canvas)
        locator = GradingTargetLocator(grading_settings(), canvas)

        target = await locator.locate(COURSE, _rollups())

        assert target.outcome_id == OutcomeID("2")
        assert target.assignment_id == AssignmentID("55")
        assert target.rubric_id == RubricID("9")
        assert target.rubric_criterion_id == RubricCriterionID("_1234")
        assert target.rubric_association_id == RubricAssociationID("302")
        assert target.submissions == {UserID("7"): SubmissionID("700"), UserID("8"): SubmissionID("800")}
        assert canvas.calls_to("GET", ASSIGNMENTS)[0].params == {"search_term": "Current Score Assignment"}
        assert canvas.calls_to("GET", RUBRIC)[0].params == {"include": "associations"}

    @pytest.mark.anyio
    async def test_missing_outcome(self, canvas: FakeCanvasClient, grading_settings: GradingSettingsFactory) -> None:
        serve_grading_target(canvas)
        locator = GradingTargetLocator(grading_settings(reference_outcome_name="Final Score"), canvas)

        with pytest.raises(TargetNotFoundError, match="outcome 'Final Score'"):
            await locator.locate(COURSE, _rollups())
        assert canvas.calls == []

    @pytest.mark.anyio
    async def test_assignment_name_must_match_exactly(
        self, canvas: FakeCanvasClient, grading_settings: GradingSettingsFactory
    ) -> None:
        canvas.respond("GET", ASSIGNMENTS, [{"id": 54, "name": "Current Score Assignment (old)"}])
        locator = GradingTargetLocator(grading_settings(), canvas)

        with pytest.raises(TargetNotFoundError, match="assignment"):
            await locator.locate(COURSE, _rollups())

    @pytest.mark.anyio
    async def test_rubric_with_another_title(
        self, canvas: FakeCanvasClient, grading_settings: GradingSettingsFactory
    ) -> None:
        serve_grading_target(canvas)
        canvas.respond(
            "GET", ASSIGNMENT, {"id": 55, "rubric_settings": {"id": 9, "title": "Essay"}, "rubric": [{"id": "_1"}]}
        )
        locator = GradingTargetLocator(grading_settings(), canvas)

        with pytest.raises(TargetNotFoundError, match="rubric 'Current Score Rubric'"):
            await locator.locate(COURSE, _rollups())

    @pytest.mark.anyio
    async def test_rubric_without_criteria(
        self, canvas: FakeCanvasClient, grading_settings: GradingSettingsFactory
    ) -> None:
        serve_grading_target(canvas)
        canvas.respond(
            "GET", ASSIGNMENT, {"id": 55, "rubric_settings": {"id": 9, "title": "Current Score Rubric"}, "rubric": []}
        )
        locator = GradingTargetLocator(grading_settings(), canvas)

        with pytest.raises(TargetNotFoundError, match="no criteria"):
            await locator.locate(COURSE, _rollups())

    @pytest.mark.anyio
    async def test_rubric_not_associated(
        self, canvas: FakeCanvasClient, grading_settings: GradingSettingsFactory
    ) -> None:
        serve_grading_target(canvas)
        canvas.respond(
            "GET", RUBRIC, {"id": 9, "associations": [{"id": 301, "association_id": 55, "association_type": "Course"}]}
        )
        locator = GradingTargetLocator(grading_settings(), canvas)

        with pytest.raises(TargetNotFoundError, match="not associated"):
            await locator.locate(COURSE, _rollups())

    @pytest.mark.anyio
    async def test_nothing_is_created(self, canvas: FakeCanvasClient, grading_settings: GradingSettingsFactory) -> None:
        locator = GradingTargetLocator(grading_settings(), canvas)

        with pytest.raises(TargetNotFoundError):
            await locator.locate(COURSE, _rollups())
        assert canvas.calls_to("PUT") == []
        assert canvas.calls_to("POST") == []


class TestCreatingMissingEntities(object):
    @pytest.fixture
    def builder(self) -> AsyncMock:
        return AsyncMock(spec=GradingTargetBuilder)

    @pytest.mark.anyio
    async def test_creates_outcome_and_reads_rollups_again(
        self, canvas: FakeCanvasClient, grading_settings: GradingSettingsFactory, builder: AsyncMock
    ) -> None:
        serve_grading_target(canvas)
        builder.create_outcome.side_effect = lambda course_id: canvas.respond(
            "GET", ROLLUPS, rollup_payload({"7": {"1": 3}}, {"1": "Argument", "3": "Current Score"})
        )
        rollup_data = RollupData.from_api(rollup_payload({"7": {"1": 3}}, {"1": "Argument"}))
        locator = GradingTargetLocator(grading_settings(), canvas, builder)

        target = await locator.locate(COURSE, rollup_data)

        assert target.outcome_id == OutcomeID("3")
        builder.create_outcome.assert_awaited_once_with(COURSE)
        builder.create_assignment.assert_not_awaited()
        builder.create_rubric.assert_not_awaited()

    @pytest.mark.anyio
    async def test_outcome_missing_after_import(
        self, canvas: FakeCanvasClient, grading_settings: GradingSettingsFactory, builder: AsyncMock
    ) -> None:
        canvas.respond("GET", ROLLUPS, rollup_payload({}, {"1": "Argument"}))
        rollup_data = RollupData.from_api(rollup_payload({}, {"1": "Argument"}))
        locator = GradingTargetLocator(grading_settings(), canvas, builder)

        with pytest.raises(TargetNotFoundError, match="outcome 'Current Score'"):
            await locator.locate(COURSE, rollup_data)

    @pytest.mark.anyio
    async def test_creates_assignment_and_rubric(
        self, canvas: FakeCanvasClient, grading_settings: GradingSettingsFactory, builder: AsyncMock
    ) -> None:
        serve_grading_target(canvas)
        assignment = {
            "id": 55,
            "rubric_settings": {"id": 9, "title": "Current Score Rubric"},
            "rubric": [{"id": "_1234", "points": 4}],
        }
        canvas.respond("GET", ASSIGNMENTS, [])
        canvas.respond("GET", ASSIGNMENT, {"id": 55})
        builder.create_assignment.return_value = AssignmentID("55")
        builder.create_rubric.side_effect = lambda *args: canvas.respond("GET", ASSIGNMENT, assignment)
        locator = GradingTargetLocator(grading_settings(), canvas, builder)

        target = await locator.locate(COURSE, _rollups())

        builder.create_assignment.assert_awaited_once_with(COURSE)
        builder.create_rubric.assert_awaited_once_with(COURSE, AssignmentID("55"), OutcomeID("2"))
        assert target.assignment_id == AssignmentID("55")
        assert target.rubric_id == RubricID("9")
        assert target.rubric_association_id == RubricAssociationID("302")
        assert len(canvas.calls_to("GET", ASSIGNMENT)) == 2

    @pytest.mark.anyio
    async def test_existing_entities_are_not_recreated(
        self, canvas: FakeCanvasClient, grading_settings: GradingSettingsFactory, builder: AsyncMock
    ) -> None:
        serve_grading_target(canvas)
        locator = GradingTargetLocator(grading_settings(), canvas, builder)

        await locator.locate(COURSE, _rollups())

        builder.create_outcome.assert_not_awaited()
        builder.create_assignment.assert_not_awaited()
        builder.create_rubric.assert_not_awaited()


class TestEnrollmentDirectory(object):
    @pytest.mark.anyio
    async def test_load_once_per_course(self, canvas: FakeCanvasClient) -> None:
        path = "/api/v1/courses/101/enrollments"
        canvas.respond(
            "GET",
            path,
            [
                {"id": 1001, "user_id": 7, "type": "StudentEnrollment"},
                {"id": 1002, "user_id": None},
                "garbage",
            ],
        )
        directory = EnrollmentDirectory(canvas)

        first = await directory.load(COURSE)
        second = await directory.load(COURSE)

        assert first is second
        assert first.resolve(UserID("7")) == EnrollmentID("1001")
        assert first.resolve(UserID("8")) is None
        assert len(first) == 1
        [call] = canvas.calls_to("GET", path)
        assert call.params == {"type[]": ["StudentEnrollment"]}
