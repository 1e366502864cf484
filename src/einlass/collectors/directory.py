"""
Directory collector

Turns files and folders dropped onto a queue into candidates. Folders are
walked recursively in sorted order so that a delivery is deterministic.
"""

import logging
import os
from pathlib import Path
from typing import Iterable, Iterator, Union

from ..core.file import UploadFile
from .base import Collector, CollectResult

logger = logging.getLogger(__name__)


class DirectoryCollector(Collector):
    """Collects files from paths, descending into directories"""

    kind = "directory"

    def __init__(self, context, include_hidden: bool = False):
        super().__init__(context)
        self.include_hidden = include_hidden
        context.registry.register(self)

    def walk(self, paths: Iterable[Union[str, Path]]) -> Iterator[UploadFile]:
        """Yield a candidate per regular file found under ``paths``"""
        for path in paths:
            path = Path(path)
            if path.is_dir():
                yield from self._walk_dir(path)
            elif path.is_file():
                candidate = self._candidate(path)
                if candidate is not None:
                    yield candidate
            else:
                logger.warning(f"Skipping {path}: not a file or directory")

    def _walk_dir(self, directory: Path) -> Iterator[UploadFile]:
        for root, dirs, files in os.walk(directory, onerror=self._on_walk_error):
            dirs.sort()
            if not self.include_hidden:
                dirs[:] = [name for name in dirs if not name.startswith('.')]

            for name in sorted(files):
                if not self.include_hidden and name.startswith('.'):
                    continue
                candidate = self._candidate(Path(root) / name)
                if candidate is not None:
                    yield candidate

    def _candidate(self, path: Path):
        try:
            return UploadFile.from_path(path)
        except OSError as e:
            logger.warning(f"Skipping unreadable {path}: {e}")
            return None

    def _on_walk_error(self, error: OSError):
        logger.warning(f"Cannot read directory {error.filename}: {error}")

    def collect_paths(self, paths: Iterable[Union[str, Path]]) -> CollectResult:
        """Offer everything under ``paths`` to this collector's context only"""
        return self.collect(self.walk(paths))

    def drop(self, paths: Iterable[Union[str, Path]]):
        """Deliver ``paths`` through the registry shared with other contexts"""
        results = self.context.registry.deliver(paths)
        return results.get(id(self), CollectResult())
