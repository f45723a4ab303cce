from enum import StrEnum

__all__ = (
    "ConnectionState",
    "KeySuffix",
    "Role",
)


class KeySuffix(StrEnum):
    """Attributes tracked for a single message id.

    The declaration order is the order of `keys()`.
    """

    STATUS = "status"
    ACK_COUNT = "ack_count"
    TIMEOUT = "timeout"
    DELAY = "delay"
    ATTEMPTS = "attempts"
    EXCEPTIONS = "exceptions"
    MUTEX = "mutex"
    EXPIRES = "expires"


class Role(StrEnum):
    """Replication role reported by an instance."""

    MASTER = "master"
    REPLICA = "slave"


class ConnectionState(StrEnum):
    """Lifecycle of the connection manager."""

    DISCONNECTED = "disconnected"
    CONNECTED = "connected"
    RECOVERING = "recovering"
    FAILED = "failed"
