"""Einlass - admission control and bounded-concurrency scheduling for upload queues"""

__version__ = "0.1.0"

from einlass.core import (
    Context, FileStatus, QueueEvent, UploadFile, UploadSession, SessionOutcome
)
from einlass.config import QueueConfig, load_config

__all__ = [
    "Context",
    "FileStatus",
    "QueueEvent",
    "UploadFile",
    "UploadSession",
    "SessionOutcome",
    "QueueConfig",
    "load_config",
]
