"""
Paste collector

Clipboard-style input: raw byte blobs with a mime type. A paste carries at
most one real file name, which goes to the first item; the others get a
generated name with an extension guessed from their mime type.
"""

import logging
import mimetypes
from typing import Iterable, Iterator, Optional, Tuple

from ..core.file import UploadFile
from .base import Collector, CollectResult

logger = logging.getLogger(__name__)

PasteItem = Tuple[bytes, Optional[str]]


class PasteCollector(Collector):
    kind = "paste"

    def __init__(self, context):
        super().__init__(context)
        self.counter = 0

    def candidates(self, items: Iterable[PasteItem], filename: Optional[str] = None) -> Iterator[UploadFile]:
        for data, mime_type in items:
            name = filename or self._generate_name(mime_type)
            filename = None
            yield UploadFile.from_bytes(data, name, mime_type=mime_type)

    def _generate_name(self, mime_type: Optional[str]) -> str:
        self.counter += 1
        ext = mimetypes.guess_extension(mime_type) if mime_type else None
        return f"pasted-{self.counter}{ext or ''}"

    def paste(self, items: Iterable[PasteItem], filename: Optional[str] = None) -> CollectResult:
        """Offer pasted blobs as one batch"""
        return self.collect(self.candidates(items, filename))
