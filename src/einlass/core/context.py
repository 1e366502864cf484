"""
Upload queue context

The Context is the single admission entry point for collectors and wires
the admission pipeline, queue statistics, the file status state machine
and the scheduler together.

Events Emitted:
- FILE_ADDED(file): a candidate was admitted
- FILE_FILTERED(file, error): a candidate was rejected
- QUEUE_ERROR(error): any admission failure
- STAT_CHANGE(stat): after admission and after every status change
- UPLOAD_START(): the scheduler went from idle to busy
- UPLOAD_END(): no admitted file is in PROCESS. Recomputed after every
  status change, so closely spaced batches can see it more than once.
"""

import asyncio
import logging
from contextlib import contextmanager
from typing import Any, Callable, Dict, List, Optional

from ..config import QueueConfig
from .admission import (
    AdmissionPipeline, capacity_constraint, duplicate_filter, extension_filter, size_filter
)
from .errors import DuplicateError, FilterError
from .events import EventEmitter, QueueEvent
from .scheduler import Scheduler
from .session import Transport, UploadSession
from .stats import QueueStatistics
from .status import FileStatus

logger = logging.getLogger(__name__)

# Context.add return codes
REJECTED = 0
ADMITTED = 1
ADMITTED_STOP = -1


class Context:
    """
    Admission and scheduling context for one upload queue

    Every Context owns its statistics, admission pipeline and scheduler;
    nothing is shared between contexts except an explicitly injected
    collector registry.
    """

    def __init__(self,
                 config: Optional[QueueConfig] = None,
                 transport: Optional[Transport] = None,
                 registry=None,
                 **options):
        if config is None:
            config = QueueConfig(**options)
        elif options:
            config = QueueConfig(**{**config.model_dump(), **options})
        self.config = config

        self.stat = QueueStatistics()
        self.admission = AdmissionPipeline()
        self.scheduler = Scheduler(config.threads)
        self.events = EventEmitter()
        self.transport = transport
        self.request_options: Dict[str, Any] = dict(config.request)

        if registry is None:
            from ..collectors.registry import CollectorRegistry
            registry = CollectorRegistry()
        self.registry = registry

        self._collectors: Dict[str, Any] = {}
        self._burst: List[Any] = []
        self._flush_handle: Optional[asyncio.Handle] = None
        self._batch_depth = 0
        self._batch_admitted = False

        self._install_builtin_policies()

        logger.info(f"Initialized upload context (threads={config.threads}, "
                    f"capacity={config.queue_capacity or 'unlimited'}, "
                    f"multiple={config.multiple})")

    def _install_builtin_policies(self):
        constraint = capacity_constraint(self.stat, self.config.queue_capacity)
        if constraint:
            self.add_constraint(constraint)

        accept = extension_filter(self.config.extension_groups)
        if accept:
            self.add_filter(accept)

        limit = size_filter(self.config.size_limit)
        if limit:
            self.add_filter(limit)

        if self.config.prevent_duplicate:
            self.add_filter(duplicate_filter(self.stat))

    # Admission

    def add(self, file) -> int:
        """
        Offer a candidate file

        Returns:
            0 if rejected (FILE_FILTERED and QUEUE_ERROR are emitted),
            1 if admitted,
            -1 if the caller must stop offering files from this batch: the
            file was admitted in single-file mode, or an earlier file of the
            same ``batch()`` scope already was (then this one is not).
        """
        if self._batch_depth and self._batch_admitted and not self.config.multiple:
            logger.debug(f"Blocked {file.name}: single-file batch already admitted a file")
            return ADMITTED_STOP

        error = self.admission.evaluate(file)
        if error is None:
            if file in self.stat:
                error = DuplicateError(file)
            elif file.status != FileStatus.INITED:
                error = FilterError(file, f'file "{file.name}" was already offered to a queue')
            else:
                self.stat.add(file)

        if error is not None:
            logger.warning(f"Rejected {file.name}: {error.reason}")
            self.events.emit(QueueEvent.FILE_FILTERED, file, error)
            self.events.emit(QueueEvent.QUEUE_ERROR, error)
            return REJECTED

        file.set_context(self)
        file.set_status(FileStatus.QUEUED)
        file.on_status_change(self._on_file_status)

        logger.info(f"Admitted {file.name} ({file.size} bytes, {self.stat.total()} queued)")
        self.events.emit(QueueEvent.FILE_ADDED, file)
        self.events.emit(QueueEvent.STAT_CHANGE, self.stat)

        if self.config.auto_pending:
            file.pending()

        if self._batch_depth:
            self._batch_admitted = True
        return ADMITTED if self.config.multiple else ADMITTED_STOP

    @contextmanager
    def batch(self):
        """Scope one collector invocation (one drop, one paste, one selection)"""
        outer = self._batch_depth == 0
        if outer:
            self._batch_admitted = False
        self._batch_depth += 1
        try:
            yield self
        finally:
            self._batch_depth -= 1
            if outer:
                self._batch_admitted = False

    def is_multiple(self) -> bool:
        return self.config.multiple

    def is_limit(self) -> bool:
        return self.admission.is_limit()

    def get_accept(self):
        return self.config.accept

    def get_stat(self) -> QueueStatistics:
        return self.stat

    def add_filter(self, filter_func: Callable) -> "Context":
        self.admission.add_filter(filter_func)
        return self

    def add_constraint(self, constraint: Callable[[], bool]) -> "Context":
        self.admission.add_constraint(constraint)
        return self

    # Notifications

    def on(self, event: QueueEvent, handler: Callable) -> Callable[[], None]:
        return self.events.on(event, handler)

    def off(self, event: QueueEvent, handler: Callable) -> bool:
        return self.events.off(event, handler)

    # Status machine side effects

    def _on_file_status(self, file, status: FileStatus):
        if status == FileStatus.CANCELLED:
            self.stat.remove(file)
        elif status == FileStatus.PENDING:
            self._defer_submit(file)

        self.events.emit(QueueEvent.STAT_CHANGE, self.stat)

        if not self.stat.filter(FileStatus.PROCESS):
            self.events.emit(QueueEvent.UPLOAD_END)

    def _defer_submit(self, file):
        """Coalesce a burst of PENDING transitions into one flush next tick"""
        self._burst.append(file)
        self._schedule_flush()

    def _schedule_flush(self):
        if self._flush_handle is not None or not self._burst:
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            # flushed by the next join() or PENDING transition on a running loop
            logger.debug(f"No running event loop, {len(self._burst)} pending file(s) held back")
            return
        self._flush_handle = loop.call_soon(self._flush_burst)

    def _flush_burst(self):
        self._flush_handle = None
        burst, self._burst = self._burst, []
        was_idle = self.scheduler.is_idle()

        for file in burst:
            if file.status == FileStatus.PENDING:
                self.scheduler.submit(file)

        logger.debug(f"Flushed {len(burst)} pending file(s) to the scheduler")
        if was_idle and not self.scheduler.is_idle():
            self.events.emit(QueueEvent.UPLOAD_START)

    # Queue control

    def start_all(self) -> int:
        """Move every QUEUED file to PENDING; returns how many moved"""
        files = self.stat.filter(FileStatus.QUEUED)
        for file in files:
            file.pending()
        return len(files)

    def cancel_all(self) -> int:
        """Cancel every admitted file that is not finished yet"""
        files = self.stat.filter(FileStatus.ACTIVE)
        for file in files:
            file.cancel()
        return len(files)

    def set_threads(self, threads: int):
        """Change the concurrency ceiling for future dispatch passes"""
        self.scheduler.configure(threads)

    def create_session(self, file) -> UploadSession:
        if self.transport is None:
            raise RuntimeError("Context has no transport to upload with")
        return UploadSession(file, self.transport, self.request_options)

    async def join(self):
        """Wait until nothing is pending or in flight"""
        self._schedule_flush()
        while True:
            if self._flush_handle is not None:
                await asyncio.sleep(0)
                continue

            files = self.scheduler.files()
            if not files:
                return

            waiting = [
                session.completion for session in (file.current_session for file in files)
                if session is not None and not session.completion.done()
            ]
            if waiting:
                await asyncio.wait(waiting, return_when=asyncio.FIRST_COMPLETED)
            # let settlement hooks run
            await asyncio.sleep(0)

    async def close(self):
        """Interrupt in-flight uploads, drop deferred work, release collectors"""
        if self._flush_handle is not None:
            self._flush_handle.cancel()
            self._flush_handle = None
        self._burst.clear()

        # paused files fail the readiness gate and are dropped by the scheduler
        for file in self.stat.filter(FileStatus.PENDING):
            file.pause()

        in_flight = self.stat.filter(FileStatus.PROCESS)
        for file in in_flight:
            file.interrupt()
        sessions = [file.current_session.completion for file in in_flight if file.current_session]
        if sessions:
            await asyncio.gather(*sessions)

        for collector in self._collectors.values():
            self.registry.unregister(collector)
        self._collectors.clear()
        logger.info(f"Closed upload context ({len(in_flight)} upload(s) interrupted)")

    # Collectors, each created once per context

    def _get_collector(self, kind: str, factory: Callable[["Context"], Any]):
        collector = self._collectors.get(kind)
        if collector is None:
            collector = factory(self)
            self._collectors[kind] = collector
        return collector

    def get_directory_collector(self):
        from ..collectors.directory import DirectoryCollector
        return self._get_collector("directory", DirectoryCollector)

    def get_selection_collector(self):
        from ..collectors.selection import SelectionCollector
        return self._get_collector("selection", SelectionCollector)

    def get_paste_collector(self):
        from ..collectors.paste import PasteCollector
        return self._get_collector("paste", PasteCollector)

    def __repr__(self) -> str:
        return (f"Context(total={self.stat.total()}, pending={len(self.scheduler.pending)}, "
                f"heading={len(self.scheduler.heading)})")
