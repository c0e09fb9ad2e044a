"""
Data models for upload module.

Uses dataclasses for immutable, type-safe data structures.
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Any, Optional, Tuple


class UploadState(Enum):
    """States of an upload session."""
    IDLE = 'idle'
    INITIALIZING = 'initializing'
    TRANSFERRING = 'transferring'
    RETRYING = 'retrying'
    PAUSED = 'paused'
    COMPLETING = 'completing'
    FINISHED = 'finished'
    FAILED = 'failed'

    @property
    def is_terminal(self) -> bool:
        """Returns True once no more transport calls may be issued."""
        return self in (UploadState.FINISHED, UploadState.FAILED)


@dataclass(frozen=True)
class ChunkInfo:
    """
    Information about a file chunk.

    Attributes:
        index: Chunk index
        start: Start position in bytes
        end: End position in bytes (exclusive)
    """
    index: int
    start: int
    end: int

    @property
    def size(self) -> int:
        """Returns chunk size."""
        return self.end - self.start


@dataclass(frozen=True)
class RetryNotice:
    """
    Payload of the fileRetry event.

    Attributes:
        chunk_index: Chunk that is about to be sent again
        retries_left: Retries remaining for this chunk after this one
        message: Human readable description
    """
    chunk_index: int
    retries_left: int
    message: str


@dataclass
class UploadProgress:
    """
    Upload progress information.

    Attributes:
        total_chunks: Total number of chunks
        uploaded_chunks: Number of acknowledged chunks
    """
    total_chunks: int
    uploaded_chunks: int = 0

    @property
    def percentage(self) -> int:
        """Returns progress as an integer percent, halves rounded up."""
        if self.total_chunks == 0:
            return 0
        return (200 * self.uploaded_chunks + self.total_chunks) // (2 * self.total_chunks)

    @property
    def is_complete(self) -> bool:
        """Returns True if every chunk was acknowledged."""
        return self.uploaded_chunks >= self.total_chunks


@dataclass(frozen=True)
class SessionSnapshot:
    """
    Persistable position of an upload session.

    Enough to resume an interrupted upload without re-sending
    acknowledged chunks.

    Example:
        >>> snap = SessionSnapshot("up-1", 4, 2, ("e0", "e1"))
        >>> SessionSnapshot.from_dict(snap.to_dict()) == snap
        True
    """
    upload_id: str
    total_chunks: int
    current_chunk_index: int
    acknowledgements: Tuple[str, ...] = field(default_factory=tuple)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to a JSON-friendly dict."""
        return {
            'upload_id': self.upload_id,
            'total_chunks': self.total_chunks,
            'current_chunk_index': self.current_chunk_index,
            'etags': list(self.acknowledgements),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'SessionSnapshot':
        """Create from dictionary."""
        return cls(
            upload_id=data['upload_id'],
            total_chunks=int(data['total_chunks']),
            current_chunk_index=int(data['current_chunk_index']),
            acknowledgements=tuple(data.get('etags', ())),
        )

    @property
    def is_consistent(self) -> bool:
        """Returns True if the ack count matches the chunk position."""
        return (
            len(self.acknowledgements) == self.current_chunk_index
            and 0 <= self.current_chunk_index <= self.total_chunks
        )
