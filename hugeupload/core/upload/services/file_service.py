"""
File validation and reading services.

Single Responsibility: Each class handles one specific task.
"""
import asyncio
from pathlib import Path
from typing import Tuple, Optional, Union

import aiofiles

from ...exceptions import ValidationError, FileReadError
from ...logging import get_logger


class FileValidator:
    """
    Validates files before upload.

    Responsibilities:
    - Check file existence
    - Verify file is not a directory
    - Get file size
    """

    def validate(self, file_path: Union[str, Path]) -> Tuple[Path, int]:
        """
        Validate a file for upload.

        Args:
            file_path: Path to the file

        Returns:
            Tuple of (validated Path, file size in bytes)

        Raises:
            FileNotFoundError: If file doesn't exist
            ValidationError: If path is not a regular file or is empty
        """
        path = Path(file_path) if isinstance(file_path, str) else file_path

        if not path.exists():
            raise FileNotFoundError(f"File not found: {path}")

        if not path.is_file():
            raise ValidationError(f"Path is not a file: {path}")

        file_size = path.stat().st_size
        self.validate_size(file_size)

        return path, file_size

    def validate_size(self, file_size: int) -> None:
        """
        Validate file size.

        Raises:
            ValidationError: If file is empty
        """
        if file_size <= 0:
            raise ValidationError("Cannot upload empty file")


class LocalFileHandle:
    """
    File handle over a local file.

    Uses aiofiles for non-blocking I/O. The underlying file is opened on
    first read and kept open until close(), avoiding repeated open/close
    operations across chunks.

    Example:
        >>> async with LocalFileHandle("video.mp4") as handle:
        ...     first = await handle.read_range(0, 1024)
    """

    def __init__(self, file_path: Union[str, Path], name: Optional[str] = None):
        """
        Initialize file handle.

        Args:
            file_path: Path to the file
            name: Name reported to the endpoint (defaults to the file name)
        """
        self.path, self.size = FileValidator().validate(file_path)
        self.name = name or self.path.name
        self._file_handle = None
        self._logger = get_logger('upload.file')
        self._lock = asyncio.Lock()

    async def __aenter__(self) -> 'LocalFileHandle':
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    async def close(self) -> None:
        """Close the underlying file if open."""
        async with self._lock:
            if self._file_handle is not None:
                await self._file_handle.close()
                self._file_handle = None

    async def read_range(self, start: int, end: int) -> bytes:
        """
        Read the contiguous slice [start, end).

        Raises:
            FileReadError: If the file cannot be read or is shorter than expected
        """
        length = end - start
        try:
            # seek and read must not interleave with another reader
            async with self._lock:
                if self._file_handle is None:
                    self._file_handle = await aiofiles.open(self.path, 'rb')
                await self._file_handle.seek(start)
                data = await self._file_handle.read(length)
        except OSError as e:
            self._logger.error(f"Failed to read {self.path} {start}-{end}: {e}")
            raise FileReadError(f"Failed to read {self.name} bytes {start}-{end}: {e}") from e

        if len(data) != length:
            raise FileReadError(
                f"Short read on {self.name}: expected {length} bytes at {start}, got {len(data)}"
            )
        return data


class BytesFileHandle:
    """File handle over an in-memory buffer."""

    def __init__(self, data: bytes, name: str = 'blob'):
        self._data = memoryview(bytes(data))
        self.name = name
        self.size = len(self._data)

    async def read_range(self, start: int, end: int) -> bytes:
        if start < 0 or end > self.size or start > end:
            raise FileReadError(f"Range {start}-{end} outside of {self.name} ({self.size} bytes)")
        return self._data[start:end].tobytes()
