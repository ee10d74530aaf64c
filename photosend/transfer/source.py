"""
Byte Sources

Readable streams over already-captured image data.

A source is opened from an opaque reference, read in chunks until a read
returns no bytes, then closed. Reads never block the event loop: file
sources go through aiofiles, which runs the blocking calls in a thread.
"""

import abc
import logging
from pathlib import Path
from typing import Union, Awaitable, Callable

import aiofiles

logger = logging.getLogger(__name__)

# What open_source() accepts as a reference
SourceRef = Union[str, Path, bytes]

# Callable that opens a fresh source for a task
SourceOpener = Callable[[], Awaitable['ByteSource']]


class ByteSource(abc.ABC):
    """A finite readable byte stream of unknown length."""

    @abc.abstractmethod
    async def read(self, size: int) -> bytes:
        """Read up to size bytes. Returns b'' at end of stream."""

    @abc.abstractmethod
    async def close(self):
        """Release the underlying handle."""


class BytesSource(ByteSource):
    """Source over an in-memory buffer."""

    def __init__(self, data: bytes):
        self._data = memoryview(data)
        self._offset = 0
        self.closed = False

    async def read(self, size: int) -> bytes:
        if self.closed:
            raise ValueError("read from closed source")
        chunk = self._data[self._offset:self._offset + size]
        self._offset += len(chunk)
        return bytes(chunk)

    async def close(self):
        self.closed = True


class FileSource(ByteSource):
    """Source over a file on disk."""

    def __init__(self, path: Path, handle):
        self.path = path
        self._handle = handle

    @classmethod
    async def open(cls, path: Union[str, Path]) -> 'FileSource':
        """Open a file for reading."""
        path = Path(path)
        handle = await aiofiles.open(path, 'rb')
        logger.debug(f"Opened source {path}")
        return cls(path, handle)

    async def read(self, size: int) -> bytes:
        return await self._handle.read(size)

    async def close(self):
        await self._handle.close()
        logger.debug(f"Closed source {self.path}")


async def open_source(ref: SourceRef) -> ByteSource:
    """
    Open a byte source from a reference.

    Args:
        ref: A file path, or raw bytes already held in memory

    Returns:
        An open ByteSource owned by the caller
    """
    if isinstance(ref, (bytes, bytearray, memoryview)):
        return BytesSource(bytes(ref))
    return await FileSource.open(ref)


def source_opener(ref: SourceRef) -> SourceOpener:
    """Bind a reference into an opener that a task calls once."""
    async def opener() -> ByteSource:
        return await open_source(ref)
    return opener
