"""Shared test fixtures and fakes."""

import asyncio
import socket
from dataclasses import dataclass, field
from typing import List, Optional

import pytest

from photosend.transfer import ByteSource, PhotoReceiver


class FakeWriter:
    """Stream writer that records chunks instead of sending them."""

    def __init__(self, fail_on_write: Optional[int] = None):
        self.writes: List[bytes] = []
        self.close_calls = 0
        self.fail_on_write = fail_on_write

    def write(self, data: bytes) -> None:
        if self.fail_on_write is not None and len(self.writes) + 1 >= self.fail_on_write:
            raise ConnectionResetError("peer closed connection")
        self.writes.append(bytes(data))

    async def drain(self) -> None:
        await asyncio.sleep(0)

    def close(self) -> None:
        self.close_calls += 1

    async def wait_closed(self) -> None:
        return None

    @property
    def data(self) -> bytes:
        return b''.join(self.writes)


class BrokenCloseWriter(FakeWriter):
    """Writer whose wait_closed() fails, as on a reset connection."""

    def __init__(self, fail_on_write: Optional[int] = None,
                 close_error: Optional[Exception] = None):
        super().__init__(fail_on_write=fail_on_write)
        self.close_error = close_error or BrokenPipeError("close after reset")

    async def wait_closed(self) -> None:
        raise self.close_error


class FakeSource(ByteSource):
    """In-memory source that counts closes and can fail on a given read."""

    def __init__(self, data: bytes, fail_on_read: Optional[int] = None):
        self.data = data
        self.offset = 0
        self.reads = 0
        self.close_calls = 0
        self.fail_on_read = fail_on_read

    async def read(self, size: int) -> bytes:
        self.reads += 1
        if self.fail_on_read is not None and self.reads >= self.fail_on_read:
            raise OSError("source unreadable")
        chunk = self.data[self.offset:self.offset + size]
        self.offset += len(chunk)
        return chunk

    async def close(self) -> None:
        self.close_calls += 1


class BrokenCloseSource(FakeSource):
    """Source whose close() fails after being counted."""

    async def close(self) -> None:
        await super().close()
        raise OSError("source close failed")


@dataclass
class FakeNetwork:
    """Connector double: hands out FakeWriters and records endpoints."""

    fail_with: Optional[Exception] = None
    delay: float = 0.0
    fail_on_write: Optional[int] = None
    writer_class: type = FakeWriter
    writers: List[FakeWriter] = field(default_factory=list)
    connects: List[tuple] = field(default_factory=list)

    async def connect(self, host: str, port: int):
        self.connects.append((host, port))
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.fail_with is not None:
            raise self.fail_with
        writer = self.writer_class(fail_on_write=self.fail_on_write)
        self.writers.append(writer)
        return None, writer


def opener_for(source: ByteSource):
    async def opener():
        return source
    return opener


def unused_port() -> int:
    """A local port with nothing listening on it."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind(('127.0.0.1', 0))
        return s.getsockname()[1]


async def start_receiver(**kwargs) -> PhotoReceiver:
    """Start a loopback receiver on a free port."""
    receiver = PhotoReceiver(host='127.0.0.1', port=0, **kwargs)
    await receiver.start()
    return receiver


@pytest.fixture
def network() -> FakeNetwork:
    return FakeNetwork()


@pytest.fixture
def payload() -> bytes:
    return bytes(i % 251 for i in range(2500))


async def wait_for_photos(receiver: PhotoReceiver, count: int, timeout: float = 5.0) -> None:
    """Wait until the receiver has handled count photos, or fail."""
    async def poll():
        while receiver.photos_received < count:
            await asyncio.sleep(0.01)
    await asyncio.wait_for(poll(), timeout=timeout)
