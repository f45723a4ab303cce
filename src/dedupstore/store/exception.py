"""Exception hierarchy for the deduplication store.

Backend transport errors never escape the store directly; they are retried by
the connection manager and only surface as `NoMasterError` once the retry
bound is exhausted.
"""

from __future__ import annotations

__all__ = (
    "DeduplicationStoreError",
    "InvalidValueError",
    "NoMasterError",
    "SplitBrainError",
)


class DeduplicationStoreError(Exception):
    """Base exception for all deduplication store errors."""


class NoMasterError(DeduplicationStoreError):
    """No writable master could be found among the configured instances."""


class SplitBrainError(DeduplicationStoreError):
    """More than one configured instance claims to be the master."""


class InvalidValueError(DeduplicationStoreError):
    """The backend rejected the stored value, e.g. incrementing a non-integer."""
