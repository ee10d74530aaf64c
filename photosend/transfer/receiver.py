"""
Photo Receiver

TCP server on the receiving end of a transfer.

Every connection carries exactly one photo, streamed to disk as it
arrives. Since the sender adds no framing, the photo ends when the
sender closes the connection. A sender
that died midway produces a truncated photo that is saved like any other.
"""

import asyncio
import logging
from datetime import datetime
from pathlib import Path
from collections import deque
from typing import Optional, Callable, Awaitable, Tuple, Union, Deque

import aiofiles
import aiofiles.os

logger = logging.getLogger(__name__)

# Bytes per read from a connection
READ_SIZE = 64 * 1024

# Most recent saved paths kept for inspection
SAVED_HISTORY = 100

# Photos are named by capture time, down to milliseconds
FILENAME_FORMAT = '%Y-%m-%d-%H-%M-%S-%f'

# Called with (photo bytes, peer address) once a connection is closed
PhotoCallback = Callable[[bytes, Tuple[str, int]], Union[None, Awaitable[None]]]


def photo_name(when: Optional[datetime] = None, suffix: str = '.jpg') -> str:
    """Timestamped file name, e.g. 2024-05-01-13-45-10-123.jpg"""
    when = when or datetime.now()
    return when.strftime(FILENAME_FORMAT)[:-3] + suffix


class PhotoReceiver:
    """
    Accepts photo uploads and stores each one as a file.

    Connections are handled independently; a failed connection is logged
    and does not stop the server.
    """

    def __init__(self, host: str = '0.0.0.0', port: int = 49000,
                 output_dir: Optional[Path] = None,
                 on_photo: Optional[PhotoCallback] = None,
                 read_size: int = READ_SIZE):
        self.host = host
        self.port = port
        self.output_dir = Path(output_dir) if output_dir else None
        self.on_photo = on_photo
        self.read_size = read_size
        self.server: Optional[asyncio.AbstractServer] = None

        # Statistics
        self.photos_received = 0
        self.bytes_received = 0
        self.saved: Deque[Path] = deque(maxlen=SAVED_HISTORY)

    @property
    def address(self) -> Tuple[str, int]:
        """Bound (host, port). Useful when started on port 0."""
        return self.server.sockets[0].getsockname()[:2]

    async def start(self):
        """Start listening."""
        if self.output_dir:
            await aiofiles.os.makedirs(self.output_dir, exist_ok=True)

        self.server = await asyncio.start_server(
            self._handle_connection,
            self.host,
            self.port
        )
        logger.info(f"Photo receiver listening on {self.address}")

    async def stop(self):
        """Stop listening."""
        if self.server:
            self.server.close()
            await self.server.wait_closed()
            logger.info(f"Photo receiver stopped. Received {self.photos_received} photos, "
                        f"{self.bytes_received:,} bytes")

    async def serve_forever(self):
        await self.server.serve_forever()

    async def _handle_connection(self, reader: asyncio.StreamReader,
                                 writer: asyncio.StreamWriter):
        """Read one photo until the peer closes the connection."""
        peer = writer.get_extra_info('peername')
        logger.debug(f"New connection from {peer}")

        try:
            path, size, data = await self._receive(reader)
            logger.info(f"Received {size:,} bytes from {peer}")

            if path:
                self.saved.append(path)
                logger.info(f"Saved photo to {path}")

            self.photos_received += 1
            self.bytes_received += size

            if self.on_photo:
                result = self.on_photo(data, peer)
                if asyncio.iscoroutine(result):
                    await result

        except Exception as e:
            logger.error(f"Error receiving photo from {peer}: {e}")
        finally:
            writer.close()
            try:
                await writer.wait_closed()
            except ConnectionError:
                pass
            logger.debug(f"Connection closed: {peer}")

    async def _receive(self, reader: asyncio.StreamReader) -> Tuple[Optional[Path], int, bytes]:
        """
        Stream a photo to disk as it arrives.

        The photo is only held in memory when on_photo needs it.

        Returns:
            (saved path or None, size in bytes, data or b'')
        """
        keep = self.on_photo is not None
        chunks = []
        size = 0
        path, handle = (await self._create_file()) if self.output_dir else (None, None)

        try:
            while True:
                chunk = await reader.read(self.read_size)
                if not chunk:
                    break
                size += len(chunk)
                if handle is not None:
                    await handle.write(chunk)
                if keep:
                    chunks.append(chunk)
        finally:
            if handle is not None:
                await handle.close()

        return path, size, b''.join(chunks)

    async def _create_file(self):
        """Create a new photo file named by arrival time."""
        stem = photo_name(suffix='')
        path = self.output_dir / f"{stem}.jpg"
        counter = 1
        while True:
            try:
                # Exclusive create, concurrent photos may share a timestamp
                return path, await aiofiles.open(path, 'xb')
            except FileExistsError:
                path = self.output_dir / f"{stem}-{counter}.jpg"
                counter += 1
