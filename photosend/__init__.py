"""
photosend - stream captured photos to a TCP endpoint.
"""

from .transfer import (
    Endpoint,
    EndpointSetting,
    TransferTask,
    TransferState,
    TransferWorker,
    PhotoReceiver,
)
from .sender import PhotoSender

__version__ = '0.1.0'

__all__ = [
    'Endpoint',
    'EndpointSetting',
    'TransferTask',
    'TransferState',
    'TransferWorker',
    'PhotoReceiver',
    'PhotoSender',
]
