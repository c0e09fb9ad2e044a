"""
hugeupload - Async resumable chunked uploads.

Usage:
    >>> from hugeupload import HugeUploadClient
    >>>
    >>> async with HugeUploadClient("https://host/api/media") as client:
    ...     result = await client.upload("video.mp4")
    ...     print(result)
"""
import logging
from .client import HugeUploadClient

# Configuration
from .core.config import UploadConfig, TimeoutConfig

# Building blocks
from .core.digest import StreamingDigest, compute_digest
from .core.events import EventBus, UploadEvent
from .core.network import NetworkMonitor, NetworkStatus
from .core.retry import RetryPolicy, FixedDelayRetryPolicy
from .core.upload import (
    UploadSession,
    UploadState,
    ChunkTransport,
    LocalFileHandle,
    BytesFileHandle,
    RetryNotice,
    SessionSnapshot,
)

# Errors
from .core.exceptions import (
    HugeUploadError,
    ValidationError,
    InvalidSequenceError,
    FileReadError,
    TransportError,
    NetworkError,
    TransientTransportError,
    PermanentTransportError,
    RetriesExhaustedError,
)

__version__ = '0.1.0'


def setup_logging(level=logging.INFO):
    """
    Configure logging for hugeupload modules.

    Args:
        level: Logging level (default: logging.INFO)
    """
    loggers = [
        'hugeupload',
        'hugeupload.client',
        'hugeupload.session',
        'hugeupload.digest',
        'hugeupload.network',
        'hugeupload.upload.transport',
        'hugeupload.upload.file',
    ]

    for logger_name in loggers:
        logger = logging.getLogger(logger_name)
        logger.setLevel(level)
        logger.propagate = True


__all__ = [
    'HugeUploadClient',
    'UploadSession',
    'UploadState',
    'UploadConfig',
    'TimeoutConfig',
    'ChunkTransport',
    'LocalFileHandle',
    'BytesFileHandle',
    'RetryNotice',
    'SessionSnapshot',
    'StreamingDigest',
    'compute_digest',
    'EventBus',
    'UploadEvent',
    'NetworkMonitor',
    'NetworkStatus',
    'RetryPolicy',
    'FixedDelayRetryPolicy',
    'HugeUploadError',
    'ValidationError',
    'InvalidSequenceError',
    'FileReadError',
    'TransportError',
    'NetworkError',
    'TransientTransportError',
    'PermanentTransportError',
    'RetriesExhaustedError',
    'setup_logging',
]
