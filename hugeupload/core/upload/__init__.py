"""
Upload module for chunked, resumable uploads.

Splits a file into fixed-size chunks, sends them one at a time with
fixed-delay retries, and completes the upload with the ordered etags.
"""
from .session import UploadSession
from .models import ChunkInfo, UploadState, RetryNotice, UploadProgress, SessionSnapshot
from .protocols import FileHandle, ChunkTransportProtocol, NetworkStatusObserver
from .services import FileValidator, LocalFileHandle, BytesFileHandle, ChunkTransport
from .strategies import FixedSizeChunkingStrategy

__all__ = [
    # Main classes
    'UploadSession',
    'ChunkTransport',

    # Models
    'ChunkInfo',
    'UploadState',
    'RetryNotice',
    'UploadProgress',
    'SessionSnapshot',

    # File handles
    'FileValidator',
    'LocalFileHandle',
    'BytesFileHandle',

    # Strategies
    'FixedSizeChunkingStrategy',

    # Protocols
    'FileHandle',
    'ChunkTransportProtocol',
    'NetworkStatusObserver',
]
