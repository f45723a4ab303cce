"""Master discovery and failover for a replicated Valkey deployment.

The manager owns one client per configured instance and caches the one
currently reporting the master role. Every store operation goes through
`ConnectionManager.perform`, which retries on backend errors, waiting for a
new master to show up, until a fixed number of attempts is exhausted.
"""

from __future__ import annotations

import re
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

import structlog
from valkey import Valkey
from valkey.exceptions import DataError, ReadOnlyError, ResponseError, ValkeyError

from .constant import DEFAULT_PORT, FAILOVER_BACKOFF, MAX_FAILOVER_ATTEMPTS
from .enum import ConnectionState, Role
from .exception import DeduplicationStoreError, InvalidValueError, NoMasterError, SplitBrainError

__all__ = (
    "ConnectionManager",
    "Endpoint",
    "Failure",
    "Success",
    "parse_endpoints",
)

logger = structlog.stdlib.get_logger(__name__)

_HOSTS_SEPARATOR = re.compile(r"\s*,\s*")

# Replies the server gives for values of the wrong type. Retrying cannot fix them.
_VALUE_ERROR_MARKERS = ("WRONGTYPE", "not an integer", "not a valid float", "overflow")


@dataclass(frozen=True, slots=True)
class Endpoint:
    """A single `host:port` instance of the replica set."""

    host: str
    port: int = DEFAULT_PORT

    def __str__(self) -> str:
        return f"{self.host}:{self.port}"


def parse_endpoints(hosts: str) -> list[Endpoint]:
    """Parse a comma separated list of `host:port` pairs.

    Raises:
        ValueError: If the list is empty or a port is not numeric
    """

    endpoints: list[Endpoint] = []
    for entry in _HOSTS_SEPARATOR.split(hosts.strip()):
        if not entry:
            continue

        host, _, port = entry.partition(":")
        if not host:
            raise ValueError(f"Invalid endpoint: {entry!r}")

        endpoints.append(Endpoint(host, int(port) if port else DEFAULT_PORT))

    if not endpoints:
        raise ValueError("At least one endpoint must be configured")

    return endpoints


@dataclass(frozen=True, slots=True)
class Success[T]:
    """Outcome of an attempt that reached the master."""

    value: T


@dataclass(frozen=True, slots=True)
class Failure:
    """Outcome of an attempt that failed with a recoverable error.

    Attributes:
        error: The backend error
        client: The client the attempt ran against, if one was resolved
    """

    error: Exception
    client: Valkey | None = None


type Outcome[T] = Success[T] | Failure

ClientFactory = Callable[[Endpoint, int], Valkey]


def default_client_factory(**options: Any) -> ClientFactory:
    """Build a factory creating one `Valkey` client per endpoint."""

    def factory(endpoint: Endpoint, db: int) -> Valkey:
        return Valkey(
            host=endpoint.host,
            port=endpoint.port,
            db=db,
            decode_responses=True,
            client_name="dedupstore",
            **options,
        )

    return factory


def _is_value_error(error: ResponseError) -> bool:
    if isinstance(error, ReadOnlyError):
        return False

    message = str(error)
    return any(marker in message for marker in _VALUE_ERROR_MARKERS)


class ConnectionManager:
    """Owns the connection to the current master of a replica set.

    Example:
        >>> manager = ConnectionManager(parse_endpoints("10.0.0.1:6379, 10.0.0.2:6379"), db=4)
        >>> manager.perform(lambda client: client.get("msgid:app:1:status"))
    """

    def __init__(
        self,
        endpoints: list[Endpoint],
        db: int = 0,
        *,
        client_factory: ClientFactory | None = None,
        max_attempts: int = MAX_FAILOVER_ATTEMPTS,
        backoff: float = FAILOVER_BACKOFF,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        """Initialize the connection manager.

        Args:
            endpoints: Every instance of the replica set
            db: Database number selected on every instance
            client_factory: Builds the client for one endpoint
            max_attempts: Attempts made by `perform` before giving up
            backoff: Seconds to wait between two attempts
            sleep: Blocking wait used between attempts
        """
        if not endpoints:
            raise ValueError("At least one endpoint must be configured")
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")

        self._endpoints = list(endpoints)
        self._db = db
        self._client_factory = client_factory or default_client_factory()
        self._max_attempts = max_attempts
        self._backoff = backoff
        self._sleep = sleep

        self._instances: list[tuple[Endpoint, Valkey]] | None = None
        self._current: Valkey | None = None
        self._master: Endpoint | None = None
        self._state = ConnectionState.DISCONNECTED
        self._lock = threading.RLock()

    @property
    def endpoints(self) -> list[Endpoint]:
        return list(self._endpoints)

    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def master(self) -> Endpoint | None:
        """Endpoint of the cached master, if any."""
        return self._master

    @property
    def instances(self) -> list[tuple[Endpoint, Valkey]]:
        """One client per configured endpoint, created on first use."""

        if self._instances is None:
            with self._lock:
                if self._instances is None:
                    self._instances = [(ep, self._client_factory(ep, self._db)) for ep in self._endpoints]

        return self._instances

    @property
    def client(self) -> Valkey:
        """Client connected to the current master, discovering it if needed.

        Raises:
            NoMasterError: If no instance reports the master role
            SplitBrainError: If more than one instance reports the master role
        """

        current = self._current
        if current is not None:
            return current

        with self._lock:
            if self._current is None:
                self._master, self._current = self.discover_master()
                self._state = ConnectionState.CONNECTED
            return self._current

    def discover_master(self) -> tuple[Endpoint, Valkey]:
        """Ask every instance for its role and return the single master.

        Instances which cannot be queried are skipped.

        Raises:
            NoMasterError: If no instance reports the master role
            SplitBrainError: If more than one instance reports the master role
        """

        masters: list[tuple[Endpoint, Valkey]] = []
        for endpoint, client in self.instances:
            try:
                role = client.info("replication").get("role")
            except (ValkeyError, OSError) as e:
                logger.error("Could not determine role of instance", endpoint=str(endpoint), error=str(e))
                continue

            if role == Role.MASTER:
                masters.append((endpoint, client))

        if not masters:
            raise NoMasterError("unable to determine a master instance")

        if len(masters) > 1:
            found = ", ".join(str(endpoint) for endpoint, _ in masters)
            raise SplitBrainError(f"more than one master instance: {found}")

        endpoint, client = masters[0]
        logger.info("Configured new master instance", endpoint=str(endpoint))
        return endpoint, client

    def perform[T](self, operation: Callable[[Valkey], T]) -> T:
        """Run `operation` against the master, failing over if it raises.

        Args:
            operation: Callable receiving the master client

        Returns:
            Whatever `operation` returns

        Raises:
            NoMasterError: If every attempt failed
            SplitBrainError: If discovery found more than one master
            InvalidValueError: If the backend rejected the value
        """

        if self._state is ConnectionState.FAILED:
            self._state = ConnectionState.DISCONNECTED

        attempt = 1
        try:
            outcome = self._attempt(operation)
            while isinstance(outcome, Failure):
                logger.error("Backend connection error", error=str(outcome.error), attempt=attempt)
                self._discard(outcome.client)
                if attempt >= self._max_attempts:
                    break

                self._state = ConnectionState.RECOVERING
                self._sleep(self._backoff)
                attempt += 1
                logger.info("Retrying backend operation", attempt=attempt)
                outcome = self._attempt(operation)
        except DeduplicationStoreError:
            if self._state is ConnectionState.RECOVERING:
                self.reset()
            raise

        if isinstance(outcome, Failure):
            self.reset()
            self._state = ConnectionState.FAILED
            logger.error("Giving up on backend operation", attempts=attempt)
            raise NoMasterError(str(outcome.error)) from outcome.error

        if attempt > 1:
            logger.info("Recovered from backend failure", attempt=attempt, endpoint=str(self._master))
        return outcome.value

    def _attempt[T](self, operation: Callable[[Valkey], T]) -> Outcome[T]:
        client: Valkey | None = None
        try:
            client = self.client
            return Success(operation(client))
        except NoMasterError as e:
            return Failure(e)
        except ResponseError as e:
            if _is_value_error(e):
                raise InvalidValueError(str(e)) from e
            return Failure(e, client)
        except (DataError, UnicodeDecodeError) as e:
            raise InvalidValueError(str(e)) from e
        except (ValkeyError, OSError) as e:
            return Failure(e, client)

    def _discard(self, client: Valkey | None) -> None:
        """Forget the cached master if it is the client that failed."""

        with self._lock:
            if client is not None and client is self._current:
                self._current = None
                self._master = None

    def reset(self) -> None:
        """Forget the cached master; the next operation runs discovery again."""

        with self._lock:
            self._current = None
            self._master = None
            self._state = ConnectionState.DISCONNECTED

    def close(self) -> None:
        """Close every instance client."""

        with self._lock:
            if self._instances is not None:
                for _, client in self._instances:
                    client.close()
            self._instances = None
            self._current = None
            self._master = None
            self._state = ConnectionState.DISCONNECTED
