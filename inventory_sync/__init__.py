from .config import config
from .logging_setup import logger, get_logger
from .exceptions import (
    InventorySyncError, RemoteReadFailure, RemoteWriteFailure,
    UnsupportedFormat, CompressionFailed, DuplicateNameRejected
)

__all__ = [
    'config',
    'logger',
    'get_logger',
    'InventorySyncError',
    'RemoteReadFailure',
    'RemoteWriteFailure',
    'UnsupportedFormat',
    'CompressionFailed',
    'DuplicateNameRejected'
]
