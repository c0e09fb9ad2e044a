"""Retry policies using Strategy Pattern."""
from .retry_strategy import RetryPolicy, FixedDelayRetryPolicy, TRANSIENT_STATUSES

__all__ = [
    'RetryPolicy',
    'FixedDelayRetryPolicy',
    'TRANSIENT_STATUSES',
]
