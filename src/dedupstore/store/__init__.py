"""Message deduplication and processing-status store.

Tracks per-message delivery counts, handler status, attempts, delays,
exceptions and an advisory execution mutex in a replicated Valkey
deployment, failing over transparently when the master changes.
"""

from .connection import ConnectionManager, Endpoint, parse_endpoints
from .enum import ConnectionState, KeySuffix, Role
from .exception import (
    DeduplicationStoreError,
    InvalidValueError,
    NoMasterError,
    SplitBrainError,
)
from .gc import GarbageCollector
from .keys import build_msg_id, key, keys, parse_msg_id
from .store import DeduplicationStore

__all__ = (
    "ConnectionManager",
    "ConnectionState",
    "DeduplicationStore",
    "DeduplicationStoreError",
    "Endpoint",
    "GarbageCollector",
    "InvalidValueError",
    "KeySuffix",
    "NoMasterError",
    "Role",
    "SplitBrainError",
    "build_msg_id",
    "key",
    "keys",
    "parse_endpoints",
    "parse_msg_id",
)
