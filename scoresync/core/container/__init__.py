__all__ = [
    "BootConfiguration",
    "CanvasContainer",
    "GradingContainer",
    "ScoreSyncContainer",
]

from .canvas import CanvasContainer
from .grading import GradingContainer
from .scoresync import BootConfiguration, ScoreSyncContainer
