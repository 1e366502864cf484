"""
Local copy transport

Copies a file's bytes into a destination directory in chunks, updating
``file.loaded`` as it goes. Request options override the constructor
settings per upload: ``destination``, ``chunk_size`` and ``overwrite``.
"""

import asyncio
import logging
from pathlib import Path
from typing import Any, Dict, Optional, Union

import aiofiles
import aiofiles.os

logger = logging.getLogger(__name__)

DEFAULT_CHUNK_SIZE = 64 * 1024


class LocalCopyTransport:
    """Upload transport that writes files below a local directory"""

    def __init__(self,
                 destination: Union[str, Path],
                 chunk_size: int = DEFAULT_CHUNK_SIZE,
                 overwrite: bool = False):
        if chunk_size < 1:
            raise ValueError("chunk_size must be positive")
        self.destination = Path(destination)
        self.chunk_size = chunk_size
        self.overwrite = overwrite

    async def __call__(self, file, options: Optional[Dict[str, Any]] = None) -> Path:
        if file.source is None:
            raise ValueError(f"{file.name} has no source to copy from")
        options = options or {}
        destination = Path(options.get("destination", self.destination))
        chunk_size = int(options.get("chunk_size", self.chunk_size))
        overwrite = bool(options.get("overwrite", self.overwrite))

        await aiofiles.os.makedirs(destination, exist_ok=True)
        target = destination / Path(file.name).name
        if not overwrite:
            target = await self._free_name(target)

        file.loaded = 0
        async with aiofiles.open(target, 'wb') as out:
            if isinstance(file.source, (bytes, bytearray)):
                for offset in range(0, len(file.source), chunk_size):
                    chunk = file.source[offset:offset + chunk_size]
                    await out.write(chunk)
                    file.loaded += len(chunk)
                    await asyncio.sleep(0)
            else:
                async with aiofiles.open(file.source, 'rb') as src:
                    while True:
                        chunk = await src.read(chunk_size)
                        if not chunk:
                            break
                        await out.write(chunk)
                        file.loaded += len(chunk)

        logger.debug(f"Copied {file.name} to {target} ({file.loaded} bytes)")
        return target

    async def _free_name(self, target: Path) -> Path:
        """``name.ext``, then ``name (1).ext``, ``name (2).ext`` ..."""
        candidate = target
        counter = 0
        while await aiofiles.os.path.exists(candidate):
            counter += 1
            candidate = target.with_name(f"{target.stem} ({counter}){target.suffix}")
        return candidate
