"""Exceptions for grade reconciliation."""

import typing as t


class ScoreSyncError(Exception):
    """Error during a reconciliation operation."""

    pass


class GraphQLError(ScoreSyncError):
    """The GraphQL endpoint rejected a document (syntax, auth or schema errors)."""

    def __init__(self, message: str, errors: t.Sequence[t.Any]) -> None:
        super().__init__(message)
        self.errors = list(errors)


class RubricAssessmentError(ScoreSyncError):
    """`saveRubricAssessment` reported structured errors."""

    def __init__(self, message: str, errors: t.Sequence[t.Any]) -> None:
        super().__init__(message)
        self.errors = list(errors)


class TargetNotFoundError(ScoreSyncError):
    """The reference outcome, assignment or rubric is missing from the course."""

    pass


class TargetSetupError(ScoreSyncError):
    """Creating the reference outcome, assignment or rubric did not succeed."""

    pass
