"""Upload models."""
from .upload_models import (
    ChunkInfo,
    UploadState,
    RetryNotice,
    UploadProgress,
    SessionSnapshot,
)

__all__ = [
    'ChunkInfo',
    'UploadState',
    'RetryNotice',
    'UploadProgress',
    'SessionSnapshot',
]
