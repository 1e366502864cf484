"""
Selection collector

Explicit file selection, as from a file picker or the command line. Only
regular files are taken; directories belong to the directory collector.
"""

import logging
from pathlib import Path
from typing import Iterable, Iterator, Union

from ..core.file import UploadFile
from .base import Collector, CollectResult

logger = logging.getLogger(__name__)


class SelectionCollector(Collector):
    kind = "selection"

    def candidates(self, paths: Iterable[Union[str, Path]]) -> Iterator[UploadFile]:
        for path in paths:
            path = Path(path)
            if path.is_dir():
                logger.warning(f"Skipping directory {path} in a file selection")
                continue
            try:
                yield UploadFile.from_path(path)
            except OSError as e:
                logger.warning(f"Skipping unreadable {path}: {e}")

    def select(self, paths: Iterable[Union[str, Path]]) -> CollectResult:
        """Offer the selected paths as one batch"""
        return self.collect(self.candidates(paths))
