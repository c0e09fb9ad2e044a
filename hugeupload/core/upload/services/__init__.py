"""Upload services module."""
from .file_service import FileValidator, LocalFileHandle, BytesFileHandle
from .transport import ChunkTransport

__all__ = [
    'FileValidator',
    'LocalFileHandle',
    'BytesFileHandle',
    'ChunkTransport',
]
