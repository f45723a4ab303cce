from typing import Final

MSG_ID_PREFIX: Final[str] = "msgid"

KEY_SEPARATOR: Final[str] = ":"

DEFAULT_HOSTS: Final[str] = "localhost:6379"
DEFAULT_PORT: Final[int] = 6379
DEFAULT_DB: Final[int] = 4

MAX_FAILOVER_ATTEMPTS: Final[int] = 120
FAILOVER_BACKOFF: Final[float] = 1.0  # seconds

EXPIRES_PATTERN: Final[str] = f"{MSG_ID_PREFIX}:*:expires"
SCAN_COUNT: Final[int] = 1000
