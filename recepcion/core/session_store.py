"""
In-memory, TTL-bound session store keyed by sender id.

Also owns the one-shot payment reminder timers, cancelled on reset, on a
state change out of AWAITING_PAYMENT and on eviction, and a per-sender lock
that keeps one sender's messages from being handled concurrently.
"""

from __future__ import annotations

import asyncio
from datetime import datetime, timedelta, timezone
from typing import Any, Awaitable, Callable, Optional

from recepcion.infra.logging_config import get_logger
from recepcion.schemas.session import ChatSession, ConversationState

logger = get_logger("session_store")

Clock = Callable[[], datetime]
ReminderCallback = Callable[[], Awaitable[None]]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class SessionStore:
    def __init__(self, ttl: timedelta = timedelta(hours=1), clock: Clock = _utcnow) -> None:
        self._ttl = ttl
        self._clock = clock
        self._sessions: dict[str, ChatSession] = {}
        self._reminders: dict[str, asyncio.Task] = {}
        self._locks: dict[str, asyncio.Lock] = {}

    def __len__(self) -> int:
        return len(self._sessions)

    def _is_expired(self, session: ChatSession) -> bool:
        # A pending payment reminder keeps its session alive until it fires.
        if self.has_reminder(session.sender_id):
            return False
        return self._clock() - session.updated_at > self._ttl

    def _evict(self, sender_id: str) -> None:
        self._sessions.pop(sender_id, None)
        self.cancel_reminder(sender_id)
        lock = self._locks.get(sender_id)
        if lock is not None and not lock.locked():
            del self._locks[sender_id]

    def lock(self, sender_id: str) -> asyncio.Lock:
        """Serializes the handling of one sender's messages."""
        return self._locks.setdefault(sender_id, asyncio.Lock())

    def get(self, sender_id: str) -> ChatSession:
        """Current session, or a fresh MENU session when absent or expired."""
        session = self._sessions.get(sender_id)
        if session is not None and self._is_expired(session):
            self._evict(sender_id)
            session = None
        if session is None:
            return ChatSession(sender_id=sender_id, updated_at=self._clock())
        return session.model_copy(deep=True)

    def peek(self, sender_id: str) -> Optional[ChatSession]:
        """Stored session without defaulting (None when absent or expired)."""
        session = self._sessions.get(sender_id)
        if session is None or self._is_expired(session):
            return None
        return session.model_copy(deep=True)

    def set(
        self,
        sender_id: str,
        state: ConversationState,
        context_patch: Optional[dict[str, Any]] = None,
    ) -> ChatSession:
        """Replace state, merge ``context_patch`` into context, refresh updated_at."""
        current = self.get(sender_id)
        context = dict(current.context)
        context.update(context_patch or {})
        session = ChatSession(
            sender_id=sender_id,
            state=state,
            context=context,
            updated_at=self._clock(),
        )
        self._sessions[sender_id] = session
        if state != ConversationState.AWAITING_PAYMENT:
            self.cancel_reminder(sender_id)
        return session.model_copy(deep=True)

    def reset(self, sender_id: str) -> ChatSession:
        self.cancel_reminder(sender_id)
        session = ChatSession(sender_id=sender_id, updated_at=self._clock())
        self._sessions[sender_id] = session
        return session.model_copy(deep=True)

    def sweep(self) -> int:
        """Evict every expired session (and its reminder). Returns evicted count."""
        expired = [sid for sid, s in self._sessions.items() if self._is_expired(s)]
        for sender_id in expired:
            self._evict(sender_id)
        if expired:
            logger.info("Sessions evicted", extra={"count": len(expired)})
        return len(expired)

    # -- reminders ----------------------------------------------------------

    def has_reminder(self, sender_id: str) -> bool:
        task = self._reminders.get(sender_id)
        return task is not None and not task.done()

    def schedule_reminder(
        self, sender_id: str, delay_seconds: float, callback: ReminderCallback
    ) -> None:
        """Run ``callback`` once after ``delay_seconds`` unless cancelled first."""
        self.cancel_reminder(sender_id)

        async def _fire() -> None:
            await asyncio.sleep(delay_seconds)
            try:
                await callback()
            except Exception:
                logger.exception(
                    "Payment reminder failed", extra={"sender_id": sender_id}
                )
            finally:
                if self._reminders.get(sender_id) is asyncio.current_task():
                    self._reminders.pop(sender_id, None)

        self._reminders[sender_id] = asyncio.create_task(_fire())

    def cancel_reminder(self, sender_id: str) -> None:
        task = self._reminders.pop(sender_id, None)
        if task is not None and not task.done():
            task.cancel()

    def cancel_all(self) -> None:
        for sender_id in list(self._reminders):
            self.cancel_reminder(sender_id)
