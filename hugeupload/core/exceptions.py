"""
Custom exceptions for chunked upload operations.

This module defines the error taxonomy used by the upload session,
the transport and the digest accumulator.
"""
from typing import Optional


class HugeUploadError(Exception):
    """Base exception for all upload-related errors."""

    def __init__(self, message: str, status: Optional[int] = None) -> None:
        """
        Initialize the exception.

        Args:
            message: Error message
            status: HTTP status code (if available)
        """
        self.message = message
        self.status = status
        super().__init__(message)


class ValidationError(HugeUploadError, ValueError):
    """Raised for malformed construction parameters. Never retried."""
    pass


class InvalidSequenceError(HugeUploadError):
    """Raised on protocol misuse, e.g. feeding a finalized digest."""
    pass


class FileReadError(HugeUploadError):
    """Raised when a chunk cannot be read from the file handle."""
    pass


class TransportError(HugeUploadError):
    """Exception raised for failed transport operations."""

    def __init__(
        self,
        message: str,
        status: Optional[int] = None,
        chunk_index: Optional[int] = None
    ) -> None:
        """
        Initialize the exception.

        Args:
            message: Error message
            status: HTTP status code, None when no response was received
            chunk_index: Index of the chunk being transferred (if any)
        """
        self.chunk_index = chunk_index
        super().__init__(message, status)

    @classmethod
    def from_error(cls, error: 'TransportError') -> 'TransportError':
        """Re-wrap another transport error, keeping its status and chunk."""
        wrapped = cls(error.message, status=error.status, chunk_index=error.chunk_index)
        wrapped.__cause__ = error
        return wrapped


class NetworkError(TransportError):
    """No response was received (connection failure or timeout)."""
    pass


class TransientTransportError(TransportError):
    """Retry-eligible transport failure."""
    pass


class PermanentTransportError(TransportError):
    """Transport failure that aborts the session immediately."""
    pass


class RetriesExhaustedError(TransportError):
    """A transient failure outlived the retry budget of its chunk."""

    def __init__(
        self,
        message: str,
        status: Optional[int] = None,
        chunk_index: Optional[int] = None,
        retries: int = 0
    ) -> None:
        self.retries = retries
        super().__init__(message, status=status, chunk_index=chunk_index)
