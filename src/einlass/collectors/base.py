"""
Collector base

Collectors are pure producers: they turn some source of files into
UploadFile candidates and offer them, one batch at a time, to a Context.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Iterable, List

from ..core.context import ADMITTED_STOP, REJECTED

logger = logging.getLogger(__name__)


@dataclass
class CollectResult:
    """Outcome of offering one batch"""
    admitted: List[Any] = field(default_factory=list)
    rejected: List[Any] = field(default_factory=list)
    stopped: bool = False

    @property
    def offered(self) -> int:
        return len(self.admitted) + len(self.rejected)


class Collector:
    """Offers candidates to one Context"""

    kind = "collector"

    def __init__(self, context):
        self.context = context

    def receive(self, file) -> int:
        """
        Offer one candidate

        Returns the ``Context.add`` code: 1 if admitted, 0 if rejected and -1
        once this collector must stop offering files from the current batch.
        """
        return self.context.add(file)

    def collect(self, candidates: Iterable[Any]) -> CollectResult:
        """Offer candidates in order as one batch"""
        result = CollectResult()
        with self.context.batch():
            for file in candidates:
                if self.context.is_limit():
                    result.stopped = True
                    break
                self.offer(file, result)
                if result.stopped:
                    break

        logger.info(f"{self.kind} collector offered {result.offered} file(s): "
                    f"{len(result.admitted)} admitted, {len(result.rejected)} rejected")
        return result

    def offer(self, file, result: CollectResult) -> int:
        """Offer one candidate and record the outcome in ``result``"""
        total_before = self.context.stat.total()
        ret = self.receive(file)
        if ret == REJECTED:
            result.rejected.append(file)
        elif ret > 0 or self.context.stat.total() > total_before:
            result.admitted.append(file)
        if ret == ADMITTED_STOP:
            result.stopped = True
        return ret
