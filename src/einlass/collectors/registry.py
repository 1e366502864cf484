"""
Collector registry

Several contexts may listen to the same source of files (for example one
drop area watched by two queues). The registry routes each delivered
candidate to registered directory collectors in registration order: the
first collector that admits a candidate takes it, and a collector that
answers -1 is retired for the rest of the delivery.
"""

import logging
from contextlib import ExitStack
from pathlib import Path
from typing import Any, Dict, Iterable, List, Union

from ..core.context import ADMITTED_STOP, REJECTED
from ..core.file import UploadFile
from .base import CollectResult

logger = logging.getLogger(__name__)


class CollectorRegistry:
    """Ordered set of collectors sharing one source of files"""

    def __init__(self):
        self.collectors: List[Any] = []

    def register(self, collector) -> bool:
        if any(existing is collector for existing in self.collectors):
            return False
        self.collectors.append(collector)
        logger.debug(f"Registered {collector.kind} collector ({len(self.collectors)} total)")
        return True

    def unregister(self, collector) -> bool:
        for index, existing in enumerate(self.collectors):
            if existing is collector:
                del self.collectors[index]
                logger.debug(f"Unregistered {collector.kind} collector")
                return True
        return False

    def close(self):
        self.collectors.clear()

    def __len__(self) -> int:
        return len(self.collectors)

    def deliver(self, paths: Iterable[Union[str, Path]]) -> Dict[int, CollectResult]:
        """
        Walk ``paths`` once and route every file found to the collectors

        Returns one CollectResult per collector, keyed by ``id(collector)``.
        """
        responders = list(self.collectors)
        results = {id(collector): CollectResult() for collector in responders}
        if not responders:
            logger.warning("No collectors registered, nothing delivered")
            return results

        with ExitStack() as stack:
            for collector in responders:
                stack.enter_context(collector.context.batch())
            self._route(responders, results, paths)

        return results

    def _route(self, responders, results, paths):
        walker = responders[0]
        for candidate in walker.walk(paths):
            for collector in list(responders):
                file = candidate if collector is walker else _clone(candidate)
                result = results[id(collector)]
                if collector.context.is_limit():
                    result.stopped = True
                    responders.remove(collector)
                    continue

                ret = collector.offer(file, result)
                if ret == ADMITTED_STOP:
                    responders.remove(collector)
                if ret != REJECTED:
                    break

            if not responders:
                logger.debug("Every collector stopped, delivery ended")
                return


def _clone(file: UploadFile) -> UploadFile:
    """Fresh candidate for the same source, so each context owns its file"""
    return UploadFile(file.name, file.size, source=file.source, mime_type=file.mime_type)
