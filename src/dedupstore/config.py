from pathlib import Path
from typing import ClassVar, Final, Self

from msgspec import field, structs, toml, yaml

from .lib.toolkit import get_env
from .types import BaseStruct

__all__ = (
    "APP_NAME",
    "AppConfig",
    "LoggingConfig",
    "StoreConfig",
)

APP_NAME: Final[str] = "dedupstore"

ROOT_DIR: Final[Path] = Path.cwd()

REDACTED: Final[str] = "********"


class StoreConfig(BaseStruct):
    """Configuration for the deduplication store."""

    hosts: str = field(default_factory=get_env("DEDUPSTORE_HOSTS", "localhost:6379"))
    """Comma separated `host:port` list of every instance in the replica set."""
    db: int = field(default_factory=get_env("DEDUPSTORE_DB", 4))
    """Database number selected on every instance."""
    gc_threshold: int = field(default_factory=get_env("DEDUPSTORE_GC_THRESHOLD", 3600))
    """Seconds added to the current time when deciding whether a record has expired."""
    max_attempts: int = field(default_factory=get_env("DEDUPSTORE_MAX_ATTEMPTS", 120))
    """Number of attempts made by the failover loop before giving up."""
    backoff: float = field(default_factory=get_env("DEDUPSTORE_BACKOFF", 1.0))
    """Seconds to wait between two failover attempts."""
    socket_timeout: float = field(default_factory=get_env("DEDUPSTORE_SOCKET_TIMEOUT", 5.0))
    """Socket timeout for every instance connection."""
    password: str | None = field(default_factory=get_env("DEDUPSTORE_PASSWORD", None))


class LoggingConfig(BaseStruct):
    """Logging configurations."""

    level: str = field(default_factory=get_env("DEDUPSTORE_LOG_LEVEL", "INFO"))
    render_json: bool = field(default_factory=get_env("DEDUPSTORE_LOG_JSON", False))
    """Render records as JSON lines instead of the console renderer."""


class AppConfig(BaseStruct):
    """Application configurations."""

    _instance: ClassVar["AppConfig | None"] = None

    store: StoreConfig = field(default_factory=StoreConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    @classmethod
    def from_file(cls, filename: str | None = None) -> Self:
        """Load the configuration from a file.

        Args:
            filename (`str`): The name of the configuration file, like "config.yaml".

        Note:
            Configuration filename suffix determines the format:
            - `.yaml`: YAML format
            - `.toml`: TOML format
            A missing file yields the defaults.
        """

        if filename is None:
            filename = "config.yaml"

        if (config_file := ROOT_DIR / filename).exists():
            with config_file.open("r", encoding="utf-8") as f:
                configuration = f.read()

            match suffix := Path(filename).suffix:
                case ".yaml" | ".yml":
                    return yaml.decode(configuration, type=cls)
                case ".toml":
                    return toml.decode(configuration, type=cls)
                case _:
                    raise ValueError(f"Unsupported configuration file format: {suffix}")

        return cls()

    @classmethod
    def get_config(cls, filename: str | None = None) -> "AppConfig":
        """Get the application configuration."""

        if cls._instance is None:
            cls._instance = cls.from_file(filename)

        return cls._instance

    def redacted(self) -> "AppConfig":
        """Copy of the configuration with secrets masked, safe to print."""

        if self.store.password is None:
            return self

        return structs.replace(self, store=structs.replace(self.store, password=REDACTED))
