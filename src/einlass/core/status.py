"""
File status flags for Einlass

Statuses are bits so a set of statuses can be queried with one mask,
e.g. ``stat.filter(FileStatus.TERMINAL)``.
"""

from enum import IntFlag
from typing import Dict


class FileStatus(IntFlag):
    """Upload file lifecycle status"""
    INITED = 1
    QUEUED = 2
    PENDING = 4
    PROCESS = 8
    COMPLETE = 16
    ERROR = 32
    INTERRUPT = 64
    CANCELLED = 128

    # Composite masks
    TERMINAL = COMPLETE | ERROR | INTERRUPT | CANCELLED
    IN_FLIGHT = PROCESS
    ACTIVE = QUEUED | PENDING | PROCESS
    ALL = INITED | QUEUED | PENDING | PROCESS | COMPLETE | ERROR | INTERRUPT | CANCELLED


# Single statuses in lifecycle order
STATUSES = (
    FileStatus.INITED,
    FileStatus.QUEUED,
    FileStatus.PENDING,
    FileStatus.PROCESS,
    FileStatus.COMPLETE,
    FileStatus.ERROR,
    FileStatus.INTERRUPT,
    FileStatus.CANCELLED,
)


# Allowed edges of the status state machine. CANCELLED is reachable from
# every non-terminal status.
TRANSITIONS: Dict[FileStatus, FileStatus] = {
    FileStatus.INITED: FileStatus.QUEUED | FileStatus.CANCELLED,
    FileStatus.QUEUED: FileStatus.PENDING | FileStatus.CANCELLED,
    FileStatus.PENDING: FileStatus.PROCESS | FileStatus.QUEUED | FileStatus.CANCELLED,
    FileStatus.PROCESS: (
        FileStatus.COMPLETE | FileStatus.ERROR | FileStatus.INTERRUPT | FileStatus.CANCELLED
    ),
    FileStatus.COMPLETE: FileStatus(0),
    FileStatus.ERROR: FileStatus.PENDING,
    FileStatus.INTERRUPT: FileStatus.PENDING,
    FileStatus.CANCELLED: FileStatus(0),
}


def can_transition(current: FileStatus, target: FileStatus) -> bool:
    """Check whether ``current -> target`` is an edge of the state machine"""
    return bool(TRANSITIONS[current] & target)


def is_terminal(status: FileStatus) -> bool:
    return bool(status & FileStatus.TERMINAL)


def status_name(status: FileStatus) -> str:
    return status.name.lower() if status.name else str(int(status))
