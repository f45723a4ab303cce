"""Garbage collection of expired message tracking records.

The `expires` key of every record is the only index: records without one
are never collected. The sweep is triggered from outside (a scheduler or
the `dedupstore gc` command) and may run concurrently with live traffic
and with other sweeps.
"""

from __future__ import annotations

import re
import time
from typing import TYPE_CHECKING

import structlog

from .constant import EXPIRES_PATTERN, SCAN_COUNT
from .exception import InvalidValueError
from .keys import parse_msg_id

if TYPE_CHECKING:
    from .store import DeduplicationStore

__all__ = ("GarbageCollector", "parse_expiry")

logger = structlog.stdlib.get_logger(__name__)

_LEADING_INTEGER = re.compile(r"\s*([-+]?\d+)")


def parse_expiry(value: str) -> int:
    """Read an expiry timestamp the lenient way.

    Leading digits are used, anything else (including an empty value)
    reads as 0 and so is always eligible for collection.
    """

    match = _LEADING_INTEGER.match(value)
    return int(match.group(1)) if match else 0


class GarbageCollector:
    """Deletes every record whose expiry falls before `now + threshold`."""

    def __init__(self, store: DeduplicationStore, threshold: int) -> None:
        self.store = store
        self.threshold = threshold

    def expiry_keys(self) -> list[str]:
        """List every `expires` key currently in the database."""

        return self.store.manager.perform(
            lambda client: list(client.scan_iter(match=EXPIRES_PATTERN, count=SCAN_COUNT))
        )

    def collect(self, now: int | None = None) -> int:
        """Run one sweep.

        Args:
            now: Current epoch seconds, defaults to the wall clock

        Returns:
            Number of records deleted
        """

        if now is None:
            now = int(time.time())

        threshold = now + self.threshold
        deleted = 0

        for name in self.expiry_keys():
            try:
                value = self.store.manager.perform(lambda client, name=name: client.get(name))
            except InvalidValueError as e:
                logger.warning("Unreadable expiry, treating message as expired", key=name, error=str(e))
                value = ""

            if value is None:
                # removed by someone else since the scan
                continue

            expires_at = parse_expiry(value)
            if expires_at >= threshold:
                logger.debug("Keeping message", key=name, expires_at=expires_at, threshold=threshold)
                continue

            msg_id = parse_msg_id(name)
            if msg_id is None:
                logger.warning("Skipping key with malformed message id", key=name)
                continue

            logger.info("Deleting expired message", msg_id=msg_id, expires_at=expires_at, threshold=threshold)
            self.store.delete_keys(msg_id)
            deleted += 1

        logger.info("Garbage collection finished", deleted=deleted, threshold=threshold)
        return deleted
