import os
from collections.abc import Callable
from typing import Any, overload

__all__ = ("get_env", "to_bool")

_TRUTHY = frozenset({"1", "true", "yes", "on", "y", "t"})


def to_bool(value: str) -> bool:
    """Interpret an environment string as a boolean."""

    return value.strip().lower() in _TRUTHY


@overload
def get_env(name: str, default: bool) -> Callable[[], bool]: ...


@overload
def get_env(name: str, default: int) -> Callable[[], int]: ...


@overload
def get_env(name: str, default: float) -> Callable[[], float]: ...


@overload
def get_env(name: str, default: str) -> Callable[[], str]: ...


@overload
def get_env(name: str, default: None) -> Callable[[], str | None]: ...


def get_env(name: str, default: Any) -> Callable[[], Any]:
    """Build a default factory reading `name` from the environment.

    The raw string is cast to the type of `default`, so the factory can be
    handed straight to `msgspec.field(default_factory=...)`.
    """

    def factory() -> Any:
        raw = os.environ.get(name)
        if raw is None:
            return default

        match default:
            case bool():
                return to_bool(raw)
            case int():
                return int(raw)
            case float():
                return float(raw)
            case _:
                return raw

    return factory
