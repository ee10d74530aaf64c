"""
Photo Sender - Capture Hook

Connects the capture pipeline to the transfer worker:
- photo_saved(ref): called once per completed capture, starts one transfer
- set_endpoint(): the host settings editor commits edits here
"""

import logging
from typing import Optional

from .config import Config
from .transfer import Endpoint, EndpointSetting, TransferTask, TransferWorker
from .transfer.source import SourceRef, source_opener
from .transfer.worker import Connector

logger = logging.getLogger(__name__)


class PhotoSender:
    """
    Sends every saved photo to the configured endpoint.

    The capture flow calls photo_saved() and moves on. The endpoint is
    read once per photo, at the moment it was saved.
    """

    def __init__(self, config: Config = None,
                 connector: Optional[Connector] = None):
        """
        Args:
            config: Configuration (uses defaults if not provided)
            connector: Override for opening connections
        """
        self.config = config or Config()
        self.endpoint_setting = EndpointSetting(self.config.endpoint())
        self.worker = TransferWorker(
            chunk_size=self.config.chunk_size,
            connect_timeout=self.config.connect_timeout,
            connector=connector,
        )

    @property
    def endpoint(self) -> Endpoint:
        return self.endpoint_setting.current()

    def set_endpoint(self, host: Optional[str] = None,
                     port: Optional[int] = None) -> Endpoint:
        """Apply an edit from the host settings dialog."""
        endpoint = self.endpoint_setting.update(host=host, port=port)
        logger.info(f"Photos will be sent to {endpoint}")
        return endpoint

    def photo_saved(self, ref: SourceRef, name: Optional[str] = None) -> TransferTask:
        """
        Handle a completed capture.

        Starts exactly one detached transfer and returns immediately.
        Must be called from inside a running event loop.
        """
        if name is None:
            if isinstance(ref, (bytes, bytearray, memoryview)):
                name = f"<{len(ref)} bytes>"
            else:
                name = str(ref)

        endpoint = self.endpoint_setting.current()
        logger.debug(f"Photo saved: {name}")
        return self.worker.submit(source_opener(ref), endpoint, name=name)

    async def stop(self):
        """Wait for in-flight transfers before shutting down."""
        if self.worker.active:
            logger.info(f"Waiting for {self.worker.active} transfer(s) to finish")
        await self.worker.drain()

    def get_stats(self) -> dict:
        return {
            'endpoint': str(self.endpoint),
            'transfers': self.worker.get_stats(),
        }
