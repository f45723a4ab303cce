"""Key naming for message tracking records.

Every attribute of a message lives under its own key `<msg_id>:<suffix>`,
where the message id itself has the form `msgid:<namespace>:<token>`.
These names are shared with existing deployments and must not change.
"""

from collections.abc import Iterable

from .constant import KEY_SEPARATOR, MSG_ID_PREFIX
from .enum import KeySuffix

__all__ = (
    "build_msg_id",
    "key",
    "keys",
    "parse_msg_id",
)

_TOKEN_CHARS = frozenset("-0123456789abcdef")


def build_msg_id(namespace: str, token: str) -> str:
    """Build a message id from its namespace and token."""

    if KEY_SEPARATOR in namespace or KEY_SEPARATOR in token:
        raise ValueError(f"namespace and token must not contain {KEY_SEPARATOR!r}")

    return KEY_SEPARATOR.join((MSG_ID_PREFIX, namespace, token))


def key(msg_id: str, suffix: KeySuffix | str) -> str:
    """Build the key for one attribute of a message."""

    return f"{msg_id}{KEY_SEPARATOR}{suffix}"


def keys(msg_id: str, suffixes: Iterable[KeySuffix] = KeySuffix) -> list[str]:
    """List every key which may exist for the given message id."""

    return [key(msg_id, suffix) for suffix in suffixes]


def parse_msg_id(name: str) -> str | None:
    """Extract the message id from a key.

    Returns `None` when the key does not look like `msgid:<ns>:<token>:<suffix>`
    with a token made of lowercase hex digits and dashes.
    """

    parts = name.split(KEY_SEPARATOR, 3)
    if len(parts) != 4:
        return None

    prefix, namespace, token, _ = parts
    if prefix != MSG_ID_PREFIX:
        return None

    if not _TOKEN_CHARS.issuperset(token):
        return None

    return KEY_SEPARATOR.join((prefix, namespace, token))
