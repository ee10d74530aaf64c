"""
Transfer Worker

Design Decision: Fire-and-Forget Transfers
==========================================

Options Considered:
1. Await the transfer in the capture flow
   - Caller learns the outcome
   - Capture blocks on the network, slow hosts stall the camera

2. Single background queue
   - Ordered, one connection at a time
   - One slow transfer delays every later photo

3. One detached task per photo, result discarded
   - Capture never waits
   - Transfers may run concurrently, each on its own connection

Decision: One detached asyncio task per photo
- submit() schedules the task and returns immediately
- The worker holds a reference to running tasks only so they are not
  garbage-collected; nobody awaits them for a result
- Failures are logged and end the task, nothing is retried or reported
  back to the initiator

Wire Format: None
=================
```
+------------------------------------------+
| Image bytes (raw) ... until sender closes |
+------------------------------------------+
```
There is no length prefix, header or checksum. The receiver treats
connection closure as the end of the photo, so a transfer that dies
midway is indistinguishable from a shorter photo.

Task lifecycle:
```
CREATED -> CONNECTING -> STREAMING -> CLOSED
               |                        ^
               +------------------------+  (connect failed)
```
"""

import asyncio
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Set, Tuple, Callable, Awaitable
from functools import partial

from .endpoint import Endpoint
from .source import SourceOpener, ByteSource

logger = logging.getLogger(__name__)

# Bytes per read/write. Not tuned.
CHUNK_SIZE = 1000

DEFAULT_CONNECT_TIMEOUT = 10.0

# Opens a stream connection: (host, port) -> (reader, writer)
Connector = Callable[[str, int], Awaitable[Tuple[asyncio.StreamReader, asyncio.StreamWriter]]]


class TransferState(Enum):
    """Transfer task states."""
    CREATED = "CREATED"
    CONNECTING = "CONNECTING"
    STREAMING = "STREAMING"
    CLOSED = "CLOSED"


@dataclass
class TransferTask:
    """
    One attempt to send a single photo to an endpoint.

    The task owns its connection and its source. Both are released when
    run() returns, whatever happened. The endpoint is a frozen value
    captured when the task was created.
    """
    open_source: SourceOpener
    endpoint: Endpoint
    chunk_size: int = CHUNK_SIZE
    connect_timeout: float = DEFAULT_CONNECT_TIMEOUT
    connector: Connector = asyncio.open_connection
    name: str = 'photo'

    # Outcome, for logging and inspection only
    state: TransferState = field(default=TransferState.CREATED, init=False)
    bytes_sent: int = field(default=0, init=False)
    error: Optional[Exception] = field(default=None, init=False)

    @property
    def succeeded(self) -> bool:
        return self.state == TransferState.CLOSED and self.error is None

    async def run(self):
        """
        Connect, stream the source, close.

        Never raises for I/O failures; they are logged and stored in
        self.error. The first failure wins: an error while closing after
        an earlier failure is only logged. Running a task twice raises
        RuntimeError.
        """
        if self.state != TransferState.CREATED:
            raise RuntimeError(f"Transfer {self.name} already {self.state.value}")

        self.state = TransferState.CONNECTING
        logger.debug(f"Sending {self.name} to {self.endpoint}")

        writer = None
        source = None
        try:
            writer = await self._connect()
            self.state = TransferState.STREAMING
            source = await self.open_source()
            await self._copy(source, writer)
        except Exception as e:
            self._fail(e)
        finally:
            # Source and connection are released independently
            if source is not None:
                await self._release('source', source.close)
            if writer is not None:
                await self._release('connection', partial(self._disconnect, writer))
            self.state = TransferState.CLOSED

        if self.error is None:
            logger.info(f"Sent {self.name} to {self.endpoint} ({self.bytes_sent:,} bytes)")

    def _fail(self, error: Exception):
        self.error = error
        logger.error(f"Failed to send {self.name} to {self.endpoint} "
                     f"after {self.bytes_sent:,} bytes: {error!r}")

    async def _release(self, what: str, close: Callable[[], Awaitable[None]]):
        try:
            await close()
        except Exception as e:
            if self.error is None:
                self._fail(e)
            else:
                logger.warning(f"Error closing {what} of {self.name} "
                               f"after earlier failure: {e!r}")

    async def _connect(self) -> asyncio.StreamWriter:
        _, writer = await asyncio.wait_for(
            self.connector(self.endpoint.host, self.endpoint.port),
            timeout=self.connect_timeout
        )
        return writer

    async def _copy(self, source: ByteSource, writer: asyncio.StreamWriter):
        """Copy chunks in read order until the source is exhausted."""
        while True:
            chunk = await source.read(self.chunk_size)
            if not chunk:
                break
            writer.write(chunk)
            await writer.drain()
            self.bytes_sent += len(chunk)

    async def _disconnect(self, writer: asyncio.StreamWriter):
        writer.close()
        await writer.wait_closed()


class TransferWorker:
    """
    Spawns detached transfer tasks.

    Each submitted photo gets its own task and its own connection. There
    is no ordering or mutual exclusion between tasks.
    """

    def __init__(self, chunk_size: int = CHUNK_SIZE,
                 connect_timeout: float = DEFAULT_CONNECT_TIMEOUT,
                 connector: Optional[Connector] = None):
        self.chunk_size = chunk_size
        self.connect_timeout = connect_timeout
        self.connector = connector or asyncio.open_connection

        self._running: Set[asyncio.Task] = set()

        # Statistics
        self.transfers_started = 0
        self.transfers_succeeded = 0
        self.transfers_failed = 0
        self.bytes_sent = 0

    @property
    def active(self) -> int:
        """Number of transfers still in flight."""
        return len(self._running)

    def submit(self, opener: SourceOpener, endpoint: Endpoint,
               name: str = 'photo') -> TransferTask:
        """
        Start a transfer and return without waiting for it.

        Must be called from inside a running event loop. The returned
        TransferTask is a record of progress, not a handle to await.
        """
        transfer = TransferTask(
            open_source=opener,
            endpoint=endpoint,
            chunk_size=self.chunk_size,
            connect_timeout=self.connect_timeout,
            connector=self.connector,
            name=name,
        )

        handle = asyncio.get_running_loop().create_task(transfer.run())
        self._running.add(handle)
        handle.add_done_callback(partial(self._on_done, transfer))
        self.transfers_started += 1

        return transfer

    def _on_done(self, transfer: TransferTask, handle: asyncio.Task):
        self._running.discard(handle)
        self.bytes_sent += transfer.bytes_sent

        if handle.cancelled():
            self.transfers_failed += 1
            logger.warning(f"Transfer of {transfer.name} was cancelled")
        elif transfer.succeeded:
            self.transfers_succeeded += 1
        else:
            self.transfers_failed += 1

    async def drain(self):
        """
        Wait until no transfers are in flight.

        Used before shutting down the event loop. Outcomes are not returned.
        """
        while self._running:
            await asyncio.gather(*list(self._running), return_exceptions=True)

    def get_stats(self) -> dict:
        """Get worker statistics."""
        return {
            'transfers_started': self.transfers_started,
            'transfers_succeeded': self.transfers_succeeded,
            'transfers_failed': self.transfers_failed,
            'bytes_sent': self.bytes_sent,
            'active': self.active,
        }
