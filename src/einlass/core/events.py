"""
Queue notifications for Einlass

The notification set is fixed; handlers subscribe per event type. Handlers
run synchronously in registration order on the event loop thread. A handler
may be a coroutine function, in which case its coroutine is scheduled as a
task and not awaited by the emitter.
"""

import asyncio
import inspect
import logging
from enum import Enum
from typing import Any, Callable, Dict, List, Set

logger = logging.getLogger(__name__)


class QueueEvent(str, Enum):
    """All notifications a Context emits"""
    FILE_ADDED = "queue:file_added"          # (file)
    FILE_FILTERED = "queue:file_filtered"    # (file, error)
    QUEUE_ERROR = "queue:error"              # (error)
    STAT_CHANGE = "queue:stat_change"        # (stat)
    UPLOAD_START = "queue:upload_start"      # ()
    UPLOAD_END = "queue:upload_end"          # ()


class EventEmitter:
    """Routes QueueEvent notifications to registered handlers"""

    def __init__(self):
        self.handlers: Dict[QueueEvent, List[Callable]] = {event: [] for event in QueueEvent}
        self._background: Set[asyncio.Task] = set()

    def on(self, event: QueueEvent, handler: Callable) -> Callable[[], None]:
        """Subscribe a handler; returns a function that unsubscribes it"""
        event = QueueEvent(event)
        self.handlers[event].append(handler)
        return lambda: self.off(event, handler)

    def off(self, event: QueueEvent, handler: Callable) -> bool:
        handlers = self.handlers[QueueEvent(event)]
        if handler in handlers:
            handlers.remove(handler)
            return True
        return False

    def clear(self):
        for handlers in self.handlers.values():
            handlers.clear()

    def emit(self, event: QueueEvent, *args: Any) -> int:
        """Call every handler of ``event``; returns how many were called"""
        handlers = list(self.handlers[event])
        for handler in handlers:
            try:
                result = handler(*args)
                if inspect.isawaitable(result):
                    task = asyncio.ensure_future(result)
                    self._background.add(task)
                    task.add_done_callback(self._on_background_done)
            except Exception as e:
                logger.error(f"Error in {event.value} handler {handler!r}: {e}")
        return len(handlers)

    def _on_background_done(self, task: asyncio.Task):
        self._background.discard(task)
        if not task.cancelled() and task.exception() is not None:
            logger.error(f"Async queue handler failed: {task.exception()}")
