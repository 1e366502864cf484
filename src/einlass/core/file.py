"""
Upload file model

An UploadFile is created by a collector, evaluated once by the admission
pipeline and afterwards driven entirely by status transitions. Membership
in queue statistics and scheduler sets is by identity.
"""

import logging
import os
import uuid
from pathlib import Path
from typing import Callable, List, Optional, Union

from .errors import InvalidTransitionError
from .status import FileStatus, can_transition

logger = logging.getLogger(__name__)

StatusListener = Callable[["UploadFile", FileStatus], None]


class UploadFile:
    """A candidate or admitted upload unit"""

    def __init__(self,
                 name: str,
                 size: int,
                 source: Union[Path, bytes, None] = None,
                 mime_type: Optional[str] = None):
        self.id = uuid.uuid4().hex[:12]
        self.name = name
        self.ext = split_extension(name)
        self.size = size
        self.source = source
        self.mime_type = mime_type
        self.status = FileStatus.INITED
        self.error: Optional[Exception] = None
        self.loaded = 0

        self._context = None
        self._session = None
        self._listeners: List[StatusListener] = []

    @classmethod
    def from_path(cls, path: Union[str, Path], name: Optional[str] = None) -> "UploadFile":
        """Build a file candidate from a path on disk"""
        path = Path(path)
        return cls(name=name or path.name, size=path.stat().st_size, source=path)

    @classmethod
    def from_bytes(cls, data: bytes, name: str, mime_type: Optional[str] = None) -> "UploadFile":
        return cls(name=name, size=len(data), source=bytes(data), mime_type=mime_type)

    # Status

    def get_status(self) -> FileStatus:
        return self.status

    def set_status(self, status: FileStatus):
        """
        Move to ``status`` and notify listeners

        Setting the current status again does nothing. Raises
        InvalidTransitionError for edges the state machine does not have.
        """
        status = FileStatus(status)
        if status == self.status:
            return
        if not can_transition(self.status, status):
            raise InvalidTransitionError(self, self.status, status)

        previous = self.status
        self.status = status
        logger.debug(f"{self.name}: {previous.name} -> {status.name}")

        for listener in list(self._listeners):
            listener(self, status)

    def on_status_change(self, listener: StatusListener) -> Callable[[], None]:
        self._listeners.append(listener)
        return lambda: self.off_status_change(listener)

    def off_status_change(self, listener: StatusListener):
        if listener in self._listeners:
            self._listeners.remove(listener)

    def pending(self):
        """Ask for upload: QUEUED/ERROR/INTERRUPT -> PENDING"""
        self.set_status(FileStatus.PENDING)
        self.error = None

    def pause(self):
        """Take a not yet dispatched file back to QUEUED"""
        self.set_status(FileStatus.QUEUED)

    def cancel(self):
        """
        Cancel the file from any non-terminal status

        The current session is cancelled too so it settles and releases any
        scheduler slot it holds.
        """
        if self.status & FileStatus.TERMINAL:
            return
        self.set_status(FileStatus.CANCELLED)
        if self._session is not None:
            self._session.cancel()

    def interrupt(self):
        """Stop an in-flight upload; the file ends up INTERRUPT"""
        if self._session is not None and self.status == FileStatus.PROCESS:
            self._session.cancel()

    # Context and session

    def set_context(self, context):
        self._context = context

    @property
    def context(self):
        return self._context

    def prepare(self) -> bool:
        """Synchronous readiness gate checked right before dispatch"""
        return self.status == FileStatus.PENDING and self._context is not None

    @property
    def current_session(self):
        return self._session

    def session(self):
        """Current upload session; a new one once the previous has finished"""
        if self._session is None or self._session.finished:
            if self._context is None:
                raise RuntimeError(f"{self.name} has no context to create a session")
            self._session = self._context.create_session(self)
            self.loaded = 0
        return self._session

    @property
    def progress(self) -> float:
        if not self.size:
            return 1.0 if self.status == FileStatus.COMPLETE else 0.0
        return min(self.loaded / self.size, 1.0)

    def to_dict(self) -> dict:
        return {
            'id': self.id,
            'name': self.name,
            'ext': self.ext,
            'size': self.size,
            'status': self.status.name.lower(),
            'error': str(self.error) if self.error else None,
            'loaded': self.loaded
        }

    def __repr__(self) -> str:
        return f"UploadFile({self.name!r}, size={self.size}, status={self.status.name})"


def split_extension(name: str) -> str:
    """Extension without the dot, case preserved; '' when there is none"""
    ext = os.path.splitext(name)[1]
    return ext[1:] if ext else ""
