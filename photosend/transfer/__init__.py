"""
Transfer Module - Photo Upload

Streams captured images to a remote endpoint over raw TCP.
"""

from .endpoint import Endpoint, EndpointSetting, DEFAULT_HOST, DEFAULT_PORT
from .source import ByteSource, BytesSource, FileSource, open_source
from .worker import TransferTask, TransferState, TransferWorker, CHUNK_SIZE
from .receiver import PhotoReceiver

__all__ = [
    'Endpoint',
    'EndpointSetting',
    'DEFAULT_HOST',
    'DEFAULT_PORT',
    'ByteSource',
    'BytesSource',
    'FileSource',
    'open_source',
    'TransferTask',
    'TransferState',
    'TransferWorker',
    'CHUNK_SIZE',
    'PhotoReceiver',
]
