"""Notification sink — append-only, capped list of player-facing messages.

Owned by the TurnEngine, not part of the persisted snapshot. Consumers may
dismiss or mark entries read, and expire() drops entries older than the
configured TTL.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable

from campus_sim.models import Notification, NotificationKind

logger = logging.getLogger(__name__)


class NotificationSink:
    def __init__(
        self,
        capacity: int = 100,
        ttl_seconds: float | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._items: list[Notification] = []
        self._capacity = capacity
        self._ttl = ttl_seconds
        self._clock = clock

    @property
    def items(self) -> list[Notification]:
        return list(self._items)

    def __len__(self) -> int:
        return len(self._items)

    def push(self, message: str, kind: NotificationKind = "info") -> Notification:
        note = Notification(message=message, kind=kind, created_at=self._clock())
        self._items.append(note)
        overflow = len(self._items) - self._capacity
        if overflow > 0:
            del self._items[:overflow]
        logger.debug("notify kind=%s message=%s", kind, message)
        return note

    def dismiss(self, notification_id: str) -> bool:
        for i, note in enumerate(self._items):
            if note.id == notification_id:
                del self._items[i]
                return True
        return False

    def mark_read(self, notification_id: str) -> bool:
        for note in self._items:
            if note.id == notification_id:
                note.read = True
                return True
        return False

    def unread(self) -> list[Notification]:
        return [n for n in self._items if not n.read]

    def expire(self, now: float | None = None) -> int:
        """Drop notifications older than the TTL. Returns how many were removed."""
        if self._ttl is None:
            return 0
        cutoff = (self._clock() if now is None else now) - self._ttl
        before = len(self._items)
        self._items = [n for n in self._items if n.created_at >= cutoff]
        return before - len(self._items)

    def clear(self) -> None:
        self._items.clear()

    def to_list(self) -> list[dict]:
        return [n.model_dump() for n in self._items]
