"""
Chunking strategies for file uploads.

Implements Strategy Pattern for different chunking algorithms.
"""
from abc import ABC, abstractmethod
from typing import List

from ...config import DEFAULT_CHUNK_SIZE
from ...exceptions import ValidationError
from ..models import ChunkInfo


class BaseChunkingStrategy(ABC):
    """Abstract base class for chunking strategies."""

    @abstractmethod
    def calculate_chunks(self, file_size: int) -> List[ChunkInfo]:
        """Calculate chunk boundaries."""
        pass


class FixedSizeChunkingStrategy(BaseChunkingStrategy):
    """
    Fixed-size chunking strategy.

    Every chunk is chunk_size bytes except the last one, which holds the
    remainder. A file no larger than chunk_size is a single chunk covering
    the whole file.
    """

    def __init__(self, chunk_size: int = DEFAULT_CHUNK_SIZE):
        """
        Initialize with chunk size.

        Args:
            chunk_size: Size of each chunk in bytes
        """
        if chunk_size <= 0:
            raise ValidationError("Chunk size must be positive")
        self.chunk_size = chunk_size

    def count_chunks(self, file_size: int) -> int:
        """Returns ceil(file_size / chunk_size)."""
        return -(-file_size // self.chunk_size)

    def calculate_chunks(self, file_size: int) -> List[ChunkInfo]:
        """
        Calculate fixed-size chunk boundaries.

        Args:
            file_size: Total file size in bytes

        Returns:
            List of ChunkInfo partitioning [0, file_size)
        """
        return [
            ChunkInfo(index, start, min(start + self.chunk_size, file_size))
            for index, start in enumerate(range(0, file_size, self.chunk_size))
        ]
