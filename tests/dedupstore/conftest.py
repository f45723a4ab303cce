"""Test fixtures for the deduplication store.

Uses an in-memory stand-in for the Valkey client so the unit tests run
without a server. Instances of one replica set share their data, like a
replicated deployment does.
"""

from __future__ import annotations

import fnmatch
import threading
from collections.abc import Callable, Iterator
from typing import Any

import pytest
from valkey.exceptions import ConnectionError as ValkeyConnectionError
from valkey.exceptions import DataError, ResponseError

from dedupstore.store import ConnectionManager, DeduplicationStore, Endpoint, Role


class FakeValkey:
    """Implements the subset of the `Valkey` client used by the store."""

    def __init__(self, endpoint: Endpoint, role: str, data: dict[str, str | bytes], lock: threading.Lock) -> None:
        self.endpoint = endpoint
        self.role = role
        self.data = data
        self.lock = lock
        self.down = False
        self.failures = 0
        self.closed = False
        self.calls: list[str] = []

    def _check(self, command: str) -> None:
        self.calls.append(command)
        if self.down:
            raise ValkeyConnectionError(f"Error connecting to {self.endpoint}")
        if self.failures > 0:
            self.failures -= 1
            raise ValkeyConnectionError("Connection reset by peer")

    @staticmethod
    def _encode(value: Any) -> str | bytes:
        # the real client refuses these before anything is sent
        if isinstance(value, bool) or value is None:
            raise DataError(
                f"Invalid input of type: {type(value).__name__!r}. Convert to a bytes, string, int or float first."
            )
        return value if isinstance(value, bytes) else str(value)

    @staticmethod
    def _decode(value: str | bytes | None) -> str | None:
        return value.decode("utf-8") if isinstance(value, bytes) else value

    def info(self, section: str | None = None) -> dict[str, Any]:
        self._check("info")
        return {"role": self.role, "connected_slaves": 0}

    def get(self, name: str) -> str | None:
        self._check("get")
        return self._decode(self.data.get(name))

    def mget(self, names: list[str]) -> list[str | None]:
        self._check("mget")
        return [self._decode(self.data.get(name)) for name in names]

    def set(self, name: str, value: Any) -> bool:
        self._check("set")
        with self.lock:
            self.data[name] = self._encode(value)
        return True

    def setnx(self, name: str, value: Any) -> bool:
        self._check("setnx")
        with self.lock:
            if name in self.data:
                return False
            self.data[name] = self._encode(value)
            return True

    def msetnx(self, mapping: dict[str, Any]) -> bool:
        self._check("msetnx")
        with self.lock:
            if any(name in self.data for name in mapping):
                return False
            self.data.update({name: self._encode(value) for name, value in mapping.items()})
            return True

    def incr(self, name: str, amount: int = 1) -> int:
        self._check("incr")
        with self.lock:
            current = self.data.get(name, "0")
            try:
                value = int(current) + amount
            except ValueError:
                raise ResponseError("value is not an integer or out of range") from None
            self.data[name] = self._encode(value)
            return value

    def delete(self, *names: str) -> int:
        self._check("delete")
        with self.lock:
            return sum(1 for name in names if self.data.pop(name, None) is not None)

    def exists(self, *names: str) -> int:
        self._check("exists")
        return sum(1 for name in names if name in self.data)

    def flushdb(self) -> bool:
        self._check("flushdb")
        with self.lock:
            self.data.clear()
        return True

    def scan_iter(self, match: str | None = None, count: int | None = None) -> Iterator[str]:
        self._check("scan")
        names = list(self.data)
        return iter([name for name in names if match is None or fnmatch.fnmatchcase(name, match)])

    def close(self) -> None:
        self.closed = True


class ReplicaSet:
    """A group of fake instances sharing one dataset."""

    def __init__(self, roles: list[str]) -> None:
        self.data: dict[str, str | bytes] = {}
        self.lock = threading.Lock()
        self.endpoints = [Endpoint(f"10.0.0.{i + 1}", 6379) for i in range(len(roles))]
        self.roles = dict(zip(self.endpoints, roles, strict=True))
        self.instances: dict[Endpoint, FakeValkey] = {}
        self.created = 0
        self.sleeps: list[float] = []
        self.on_sleep: Callable[[], None] | None = None

    def factory(self, endpoint: Endpoint, db: int) -> FakeValkey:
        self.created += 1
        instance = FakeValkey(endpoint, self.roles[endpoint], self.data, self.lock)
        self.instances[endpoint] = instance
        return instance

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        if self.on_sleep is not None:
            self.on_sleep()

    def __getitem__(self, index: int) -> FakeValkey:
        return self.instances[self.endpoints[index]]

    def manager(self, **kwargs: Any) -> ConnectionManager:
        kwargs.setdefault("sleep", self.sleep)
        return ConnectionManager(self.endpoints, 4, client_factory=self.factory, **kwargs)


@pytest.fixture
def make_replica_set() -> Callable[[list[str]], ReplicaSet]:
    """Build a replica set from a list of roles."""

    return ReplicaSet


@pytest.fixture
def replica_set() -> ReplicaSet:
    """A healthy replica set with a single master."""

    return ReplicaSet([Role.REPLICA, Role.MASTER, Role.REPLICA])


@pytest.fixture
def store(replica_set: ReplicaSet) -> Iterator[DeduplicationStore]:
    """A store connected to the healthy replica set."""

    store = DeduplicationStore(replica_set.manager(max_attempts=5), gc_threshold=3600)
    try:
        yield store
    finally:
        store.close()


@pytest.fixture
def msg_id() -> str:
    return "msgid:orders:8f0a2c4e-1b3d-4f5a-9c7e-6d2b1a0f3e5c"
