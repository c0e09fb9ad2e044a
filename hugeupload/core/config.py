"""
Upload configuration module.

Provides the collaborator-facing configuration for an upload session.
Values are validated once, at construction.
"""
import re
from dataclasses import dataclass, field
from numbers import Real
from typing import Optional, Dict, Any

from .exceptions import ValidationError

DEFAULT_CHUNK_SIZE = 5 * 1024 * 1024  # 5 MiB
DEFAULT_RETRIES = 5
DEFAULT_DELAY_BEFORE_RETRY = 5.0  # seconds

_MD5_HEX = re.compile(r"[0-9a-fA-F]{32}")


@dataclass
class TimeoutConfig:
    """
    Timeout configuration.

    Granular control over different timeout types. A request that exceeds
    any of them is reported as a network failure.
    """
    total: float = 300.0  # Total request timeout
    connect: float = 30.0  # Connection timeout
    sock_read: float = 60.0  # Socket read timeout

    def to_aiohttp_timeout(self):
        """Convert to aiohttp ClientTimeout."""
        import aiohttp
        return aiohttp.ClientTimeout(
            total=self.total,
            connect=self.connect,
            sock_read=self.sock_read
        )


def _is_positive_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and value > 0


@dataclass
class UploadConfig:
    """
    Configuration for a chunked upload.

    Attributes:
        endpoint: Base URI of the upload API (no trailing slash needed)
        digest: Precomputed MD5 hex digest of the whole file
        chunk_size: Size of each chunk in bytes
        retries: Maximum retries per chunk on transient failures
        delay_before_retry: Fixed delay between retries, in seconds
        headers: Extra headers sent with every request (e.g. Authorization)
        body: Extra fields merged into the init request body
        file_name: Optional name override for the init request
        timeout: Request timeouts
        verify_ssl: Verify TLS certificates
    """
    endpoint: str
    digest: Optional[str] = None
    chunk_size: int = DEFAULT_CHUNK_SIZE
    retries: int = DEFAULT_RETRIES
    delay_before_retry: float = DEFAULT_DELAY_BEFORE_RETRY
    headers: Dict[str, str] = field(default_factory=dict)
    body: Dict[str, Any] = field(default_factory=dict)
    file_name: Optional[str] = None
    timeout: TimeoutConfig = field(default_factory=TimeoutConfig)
    verify_ssl: bool = True

    def __post_init__(self):
        """Validate and normalize config."""
        if not isinstance(self.endpoint, str) or not self.endpoint.strip():
            raise ValidationError("endpoint must be defined")
        self.endpoint = self.endpoint.strip().rstrip('/')

        if self.headers is None:
            self.headers = {}
        if not isinstance(self.headers, dict):
            raise ValidationError("headers must be None or a dict")

        if self.body is None:
            self.body = {}
        if not isinstance(self.body, dict):
            raise ValidationError("body must be None or a dict")

        if not _is_positive_int(self.chunk_size):
            raise ValidationError("chunk_size must be a positive integer")
        if not _is_positive_int(self.retries):
            raise ValidationError("retries must be a positive integer")
        if (
            not isinstance(self.delay_before_retry, Real)
            or isinstance(self.delay_before_retry, bool)
            or self.delay_before_retry < 0
        ):
            raise ValidationError("delay_before_retry must be a non-negative number")

        if not self.digest or not isinstance(self.digest, str):
            raise ValidationError("digest cannot be empty")
        if not _MD5_HEX.fullmatch(self.digest):
            raise ValidationError(f"digest must be a 32 character hex MD5, got {self.digest!r}")
        self.digest = self.digest.lower()
