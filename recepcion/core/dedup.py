"""Short-lived message-id set that suppresses webhook redeliveries."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Callable


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class MessageDeduplicator:
    def __init__(
        self,
        ttl: timedelta = timedelta(minutes=10),
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._ttl = ttl
        self._clock = clock
        self._seen: dict[str, datetime] = {}

    def seen_before(self, message_id: str) -> bool:
        """Record ``message_id``; True when it was already seen within the TTL."""
        now = self._clock()
        first_seen = self._seen.get(message_id)
        if first_seen is not None and now - first_seen <= self._ttl:
            return True
        self._seen[message_id] = now
        return False

    def sweep(self) -> int:
        now = self._clock()
        expired = [mid for mid, ts in self._seen.items() if now - ts > self._ttl]
        for message_id in expired:
            del self._seen[message_id]
        return len(expired)
