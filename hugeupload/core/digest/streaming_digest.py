"""
Incremental MD5 over sequential byte ranges.

The server uses the digest as an integrity and deduplication key, so the
result must not depend on how the caller partitions the file.
"""
from typing import Callable, Optional

from Crypto.Hash import MD5

from ..exceptions import InvalidSequenceError, ValidationError
from ..logging import get_logger

DIGEST_WINDOW = 4 * 1024 * 1024  # 4 MiB

logger = get_logger('digest')


class StreamingDigest:
    """
    MD5 accumulator fed one contiguous slice at a time.

    Memory use is bounded by the size of the slice being fed, never by
    the size of the file.

    Example:
        >>> digest = StreamingDigest()
        >>> digest.feed(b"hello ")
        >>> digest.feed(b"world")
        >>> digest.finalize()
        '5eb63bbbe01eeed093cb22bb8f5acdc3'
    """

    def __init__(
        self,
        total_bytes: Optional[int] = None,
        progress_callback: Optional[Callable[[float], None]] = None
    ):
        """
        Initialize the accumulator.

        Args:
            total_bytes: Size of the whole input, needed for progress reports
            progress_callback: Called with the consumed fraction after each feed
        """
        self._hash = MD5.new()
        self._total_bytes = total_bytes
        self._progress_callback = progress_callback
        self._bytes_consumed = 0
        self._hexdigest: Optional[str] = None

    @property
    def bytes_consumed(self) -> int:
        """Returns the number of bytes fed so far."""
        return self._bytes_consumed

    @property
    def finalized(self) -> bool:
        return self._hexdigest is not None

    def feed(self, data: bytes) -> None:
        """
        Consume the next slice of the input.

        Raises:
            InvalidSequenceError: If the digest was already finalized
        """
        if self.finalized:
            raise InvalidSequenceError("Cannot feed a finalized digest")

        self._hash.update(data)
        self._bytes_consumed += len(data)

        if self._progress_callback and self._total_bytes:
            self._progress_callback(self._bytes_consumed / self._total_bytes)

    def finalize(self) -> str:
        """
        Finish the digest.

        Returns:
            32-character lowercase hex MD5

        Raises:
            InvalidSequenceError: If called more than once
        """
        if self.finalized:
            raise InvalidSequenceError("Digest was already finalized")
        self._hexdigest = self._hash.hexdigest()
        return self._hexdigest


async def compute_digest(
    file,
    window: int = DIGEST_WINDOW,
    progress_callback: Optional[Callable[[float], None]] = None
) -> str:
    """
    Digest a whole file handle by reading it in fixed windows.

    Args:
        file: FileHandle to read
        window: Bytes read per step
        progress_callback: Called with the consumed fraction after each window

    Returns:
        MD5 hex digest of the file
    """
    if window <= 0:
        raise ValidationError("window must be a positive integer")

    digest = StreamingDigest(file.size, progress_callback)
    offset = 0
    while offset < file.size:
        end = min(offset + window, file.size)
        digest.feed(await file.read_range(offset, end))
        offset = end

    result = digest.finalize()
    logger.debug(f"Digest of {file.name}: {result} ({file.size} bytes)")
    return result
