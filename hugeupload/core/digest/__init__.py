"""Streaming content digest."""
from .streaming_digest import StreamingDigest, compute_digest, DIGEST_WINDOW

__all__ = [
    'StreamingDigest',
    'compute_digest',
    'DIGEST_WINDOW',
]
