import enum


class DeploymentEnvironment(enum.Enum):
    Production = "production"
    Development = "development"
    Staging = "staging"
    Test = "test"
    Local = "local"


class GradeAction(enum.Enum):
    InsufficientEvidence = "IE"
    Score = "SCORE"


class MismatchReason(enum.Enum):
    Missing = "missing"
    Unresolved = "unresolved"


class GradeChannel(enum.Enum):
    Outcome = "outcome"
    Override = "override"
