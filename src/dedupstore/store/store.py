"""Deduplication store backed by a replicated Valkey deployment.

The store keeps track of the processing status of messages:
- how often a message has already been seen by some consumer
- whether a message has been processed successfully
- how many attempts have been made to execute a message handler
- how long to wait before the next execution attempt
- how many exceptions have been raised during previous attempts
- whether some other process is already executing the handler

It also garbage collects the keys of expired messages.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Self

from dedupstore.config import StoreConfig

from .connection import ConnectionManager, default_client_factory, parse_endpoints
from .enum import KeySuffix
from .gc import GarbageCollector
from .keys import key, keys

__all__ = ("DeduplicationStore",)

type Value = str | int | float


class DeduplicationStore:
    """Message status tracker.

    Values are stored as strings; counters come back as `int` and
    presence checks as `bool`. Operations on keys that do not exist
    behave as "absent" and never raise.

    Example:
        >>> store = DeduplicationStore.from_config(StoreConfig(hosts="localhost:6379"))
        >>> store.msetnx("msgid:app:1f", {KeySuffix.STATUS: "incomplete", KeySuffix.EXPIRES: 1700000000})
        True
        >>> store.incr("msgid:app:1f", KeySuffix.ATTEMPTS)
        1
    """

    def __init__(self, manager: ConnectionManager, *, gc_threshold: int = 3600) -> None:
        """Initialize the store.

        Args:
            manager: Connection manager owning the master connection
            gc_threshold: Seconds added to the current time by garbage collection
        """
        self.manager = manager
        self.collector = GarbageCollector(self, gc_threshold)

    @classmethod
    def from_config(cls, config: StoreConfig) -> Self:
        """Build a store and its connection manager from configuration."""

        factory = default_client_factory(
            password=config.password,
            socket_timeout=config.socket_timeout,
            socket_connect_timeout=config.socket_timeout,
        )
        manager = ConnectionManager(
            parse_endpoints(config.hosts),
            config.db,
            client_factory=factory,
            max_attempts=config.max_attempts,
            backoff=config.backoff,
        )
        return cls(manager, gc_threshold=config.gc_threshold)

    def set(self, msg_id: str, suffix: KeySuffix, value: Value) -> None:
        """Unconditionally store `value` under `suffix` for `msg_id`."""
        name = key(msg_id, suffix)
        self.manager.perform(lambda client: client.set(name, value))

    def setnx(self, msg_id: str, suffix: KeySuffix, value: Value) -> bool:
        """Store `value` only if the key does not exist yet.

        Returns:
            True if the value was stored
        """
        name = key(msg_id, suffix)
        return bool(self.manager.perform(lambda client: client.setnx(name, value)))

    def msetnx(self, msg_id: str, values: Mapping[KeySuffix, Value]) -> bool:
        """Store all `values` atomically, but only if none of the keys exist.

        Returns:
            True if every value was stored, False if nothing was stored
        """
        mapping = {key(msg_id, suffix): value for suffix, value in values.items()}
        if not mapping:
            return False
        return bool(self.manager.perform(lambda client: client.msetnx(mapping)))

    def incr(self, msg_id: str, suffix: KeySuffix) -> int:
        """Increment a counter, creating it at 1, and return the new value."""
        name = key(msg_id, suffix)
        return int(self.manager.perform(lambda client: client.incr(name)))

    def get(self, msg_id: str, suffix: KeySuffix) -> str | None:
        name = key(msg_id, suffix)
        return self.manager.perform(lambda client: client.get(name))

    def get_int(self, msg_id: str, suffix: KeySuffix) -> int | None:
        """Read a counter or timestamp.

        Raises:
            ValueError: If the stored value is not an integer
        """
        value = self.get(msg_id, suffix)
        return None if value is None else int(value)

    def delete(self, msg_id: str, suffix: KeySuffix) -> bool:
        """Delete one attribute. Returns True if something was deleted."""
        name = key(msg_id, suffix)
        return self.manager.perform(lambda client: client.delete(name)) > 0

    def delete_keys(self, msg_id: str) -> int:
        """Delete every attribute of a message in a single request."""
        names = keys(msg_id)
        return int(self.manager.perform(lambda client: client.delete(*names)))

    def exists(self, msg_id: str, suffix: KeySuffix) -> bool:
        name = key(msg_id, suffix)
        return self.manager.perform(lambda client: client.exists(name)) > 0

    def snapshot(self, msg_id: str) -> dict[str, str | None]:
        """Read every attribute of a message with one `MGET`."""
        names = keys(msg_id)
        values = self.manager.perform(lambda client: client.mget(names))
        return {suffix.value: value for suffix, value in zip(KeySuffix, values, strict=True)}

    def flushdb(self) -> None:
        """Flush the configured database. Meant for tests, never for live traffic."""
        self.manager.perform(lambda client: client.flushdb())

    def garbage_collect_keys(self, now: int | None = None) -> int:
        """Delete the records of expired messages.

        Returns:
            Number of records deleted
        """
        return self.collector.collect(now)

    def close(self) -> None:
        self.manager.close()
