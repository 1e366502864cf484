"""
Upload sessions

A session runs one upload attempt of one file through a transport
coroutine. Its ``completion`` future is the settlement signal the scheduler
uses to reclaim slots: it resolves exactly once, with a SessionOutcome,
whether the transport succeeded, failed or was cancelled, including a
cancellation that lands before the transport ever started.
"""

import asyncio
import logging
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, Optional

from .errors import TransportError
from .status import FileStatus

logger = logging.getLogger(__name__)

Transport = Callable[[Any, Dict[str, Any]], Awaitable[Any]]


class SessionOutcome(Enum):
    """How a session settled"""
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    CANCELLED = "cancelled"


class UploadSession:
    """One upload attempt of one file"""

    def __init__(self, file, transport: Transport, options: Optional[Dict[str, Any]] = None):
        self.file = file
        self.transport = transport
        self.options = options or {}
        self.result: Any = None
        self.completion: asyncio.Future = asyncio.get_running_loop().create_future()
        self._task: Optional[asyncio.Task] = None
        self._outcome: Optional[SessionOutcome] = None

    @property
    def started(self) -> bool:
        return self._task is not None

    @property
    def settled(self) -> bool:
        return self.completion.done()

    @property
    def finished(self) -> bool:
        """Settled, or the transport task is over and settlement is imminent"""
        return self.settled or (self._task is not None and self._task.done())

    @property
    def outcome(self) -> Optional[SessionOutcome]:
        return self.completion.result() if self.completion.done() else None

    def add_settle_callback(self, callback: Callable[["UploadSession"], None]):
        """Run ``callback(session)`` once the session settles"""
        self.completion.add_done_callback(lambda _: callback(self))

    def start(self) -> bool:
        """Move the file to PROCESS and run the transport in the background"""
        if self._task is not None or self.settled:
            return False
        self.file.set_status(FileStatus.PROCESS)
        self._task = asyncio.create_task(self._run(), name=f"einlass-upload-{self.file.id}")
        self._task.add_done_callback(self._on_task_done)
        logger.debug(f"Started upload session for {self.file.name}")
        return True

    def cancel(self) -> bool:
        """Cancel the attempt; an unstarted session settles immediately"""
        if self.settled:
            return False
        if self._task is None:
            self._settle(SessionOutcome.CANCELLED)
            return True
        return self._task.cancel()

    async def _run(self):
        try:
            self.result = await self.transport(self.file, self.options)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.error(f"Upload of {self.file.name} failed: {e}")
            self._outcome = SessionOutcome.FAILED
            self.file.error = TransportError(self.file, e)
            self._set_file_status(FileStatus.ERROR)
        else:
            self._outcome = SessionOutcome.SUCCEEDED
            self._set_file_status(FileStatus.COMPLETE)
            logger.info(f"Upload of {self.file.name} completed")

    def _on_task_done(self, task: asyncio.Task):
        if task.cancelled():
            # still PROCESS unless the user cancelled it, so this is an interruption
            self._set_file_status(FileStatus.INTERRUPT)
            self._settle(SessionOutcome.CANCELLED)
        else:
            if task.exception() is not None:
                logger.error(f"Upload task for {self.file.name} crashed: {task.exception()!r}")
            self._settle(self._outcome or SessionOutcome.FAILED)

    def _set_file_status(self, status: FileStatus):
        if self.file.status == FileStatus.PROCESS:
            self.file.set_status(status)

    def _settle(self, outcome: SessionOutcome):
        if not self.completion.done():
            self.completion.set_result(outcome)
            logger.debug(f"Session for {self.file.name} settled: {outcome.value}")

    def __repr__(self) -> str:
        state = self.outcome.value if self.settled else ("running" if self.started else "new")
        return f"UploadSession({self.file.name!r}, {state})"
