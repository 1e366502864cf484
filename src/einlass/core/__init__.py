"""
Einlass core: admission and bounded-concurrency scheduling

Key Components:
- IdentitySet: ordered identity-keyed set behind all membership tracking
- QueueStatistics: queue membership and per-status counts
- AdmissionPipeline: constraints (OR) and filters (AND, fail-fast)
- Scheduler: FIFO dispatcher onto a fixed number of upload sessions
- UploadFile / UploadSession: the status state machine and its settlement signal
- Context: the admission entry point wiring everything together
"""

from .status import FileStatus
from .errors import (
    EinlassError, ErrorCode, AdmissionError, QueueLimitError, FilterError,
    DuplicateError, FileExtensionError, FileSizeError, ConfigurationError,
    InvalidTransitionError, TransportError
)
from .identity_set import IdentitySet
from .stats import QueueStatistics
from .admission import AdmissionPipeline, parse_size, format_size
from .events import EventEmitter, QueueEvent
from .session import UploadSession, SessionOutcome
from .scheduler import Scheduler
from .file import UploadFile
from .context import Context

__all__ = [
    # Main Components
    'Context',
    'Scheduler',
    'AdmissionPipeline',
    'QueueStatistics',
    'IdentitySet',
    'UploadFile',
    'UploadSession',

    # State and Events
    'FileStatus',
    'SessionOutcome',
    'QueueEvent',
    'EventEmitter',

    # Utilities
    'parse_size',
    'format_size',

    # Errors
    'EinlassError',
    'ErrorCode',
    'AdmissionError',
    'QueueLimitError',
    'FilterError',
    'DuplicateError',
    'FileExtensionError',
    'FileSizeError',
    'ConfigurationError',
    'InvalidTransitionError',
    'TransportError',
]
