__all__ = [
    "CanvasSecrets",
    "CanvasSettings",
    "GradingSettings",
    "LoggingSettings",
    "OverrideScaleSettings",
    "RatingSettings",
    "Secrets",
    "Settings",
]


from .canvas import CanvasSettings
from .grading import GradingSettings, OverrideScaleSettings, RatingSettings
from .logging import LoggingSettings
from .secrets import CanvasSecrets, Secrets
from .settings import Settings
