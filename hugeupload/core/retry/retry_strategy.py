"""Retry policies using Strategy Pattern."""
import asyncio
from abc import ABC, abstractmethod
from typing import Iterable, Optional

from ..config import DEFAULT_RETRIES, DEFAULT_DELAY_BEFORE_RETRY
from ..exceptions import (
    TransportError,
    TransientTransportError,
    PermanentTransportError,
)

# Request timeout, bad gateway, service unavailable, gateway timeout
TRANSIENT_STATUSES = (408, 502, 503, 504)


class RetryPolicy(ABC):
    """Abstract retry policy."""

    def __init__(self, max_retries: int = DEFAULT_RETRIES):
        self.max_retries = max_retries

    @abstractmethod
    def is_transient(self, status: Optional[int]) -> bool:
        """Determines if a failure with this status may be retried."""
        pass

    @abstractmethod
    async def wait_async(self, retry_count: int):
        """Waits before retry (async)."""
        pass

    def classify(self, error: TransportError) -> TransportError:
        """
        Classify a raw transport failure.

        Args:
            error: Failure raised by the transport

        Returns:
            TransientTransportError or PermanentTransportError carrying
            the original status and chunk index
        """
        if isinstance(error, (TransientTransportError, PermanentTransportError)):
            return error
        if self.is_transient(error.status):
            return TransientTransportError.from_error(error)
        return PermanentTransportError.from_error(error)

    def should_retry(self, error: TransportError, retry_count: int) -> bool:
        """Determines if the current chunk should be sent again."""
        return (
            isinstance(self.classify(error), TransientTransportError)
            and retry_count < self.max_retries
        )

    def retries_left(self, retry_count: int) -> int:
        """Returns how many retries remain after retry_count were made."""
        return max(self.max_retries - retry_count, 0)


class FixedDelayRetryPolicy(RetryPolicy):
    """
    Fixed-delay retry policy.

    Waits the same delay before every retry. The delay is deliberately not
    exponential: the endpoint is expected to recover within a known window
    and the caller configures that window directly.
    """

    def __init__(
        self,
        max_retries: int = DEFAULT_RETRIES,
        delay: float = DEFAULT_DELAY_BEFORE_RETRY,
        transient_statuses: Iterable[int] = TRANSIENT_STATUSES
    ):
        super().__init__(max_retries)
        self.delay = delay
        self.transient_statuses = frozenset(transient_statuses)

    def is_transient(self, status: Optional[int]) -> bool:
        """Retries on network failures and on the transient status set."""
        return status is None or status in self.transient_statuses

    async def wait_async(self, retry_count: int):
        """Waits the fixed delay (async)."""
        await asyncio.sleep(self.delay)
