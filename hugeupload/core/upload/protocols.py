"""
Protocol definitions for upload module.

Defines interfaces (protocols) for dependency injection.
"""
from typing import Protocol, Dict, Any, List, Optional, runtime_checkable

from ..network import NetworkStatusObserver


@runtime_checkable
class FileHandle(Protocol):
    """
    Read-only view of the file being uploaded.

    Owned by the caller; sessions only ever read non-overlapping ranges.
    """

    name: str
    size: int

    async def read_range(self, start: int, end: int) -> bytes:
        """
        Read the contiguous slice [start, end).

        Args:
            start: Start position in bytes
            end: End position in bytes (exclusive)

        Returns:
            Slice data
        """
        ...


class ChunkTransportProtocol(Protocol):
    """Protocol for the three upload endpoint operations."""

    async def init_upload(
        self,
        file_name: str,
        file_size: int,
        digest: str,
        chunk_count: int,
        extra_fields: Optional[Dict[str, Any]] = None
    ) -> str:
        """Open an upload and return its upload id."""
        ...

    async def upload_chunk(self, upload_id: str, chunk_index: int, data: bytes) -> str:
        """Send one chunk and return its ack token (etag)."""
        ...

    async def complete_upload(self, upload_id: str, etags: List[str]) -> Dict[str, Any]:
        """Finalize the upload with the ordered ack tokens."""
        ...



__all__ = ['FileHandle', 'ChunkTransportProtocol', 'NetworkStatusObserver']
