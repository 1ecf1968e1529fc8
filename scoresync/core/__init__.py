__all__ = [
    "BootConfiguration",
    "di",
    "ScoreSyncContainer",
    "LoggingProvider",
    "Settings",
    "Secrets",
    "TimestampProvider",
]


from . import di
from .config import Secrets, Settings
from .container import BootConfiguration, ScoreSyncContainer
from .provider import LoggingProvider, TimestampProvider
