"""Tests for the TTL session store and its payment reminders."""

import asyncio
from datetime import datetime, timedelta, timezone

import pytest

from recepcion.core.session_store import SessionStore
from recepcion.schemas.session import ConversationState


class FakeClock:
    def __init__(self):
        self.now = datetime(2026, 3, 2, 12, 0, tzinfo=timezone.utc)

    def __call__(self):
        return self.now

    def advance(self, **kwargs):
        self.now += timedelta(**kwargs)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def store(clock):
    return SessionStore(ttl=timedelta(hours=1), clock=clock)


def test_absent_session_is_fresh_menu(store):
    session = store.get("549111")
    assert session.state == ConversationState.MENU
    assert session.context == {}
    assert len(store) == 0


def test_set_merges_context_and_replaces_state(store):
    store.set("549111", ConversationState.AWAITING_BOOKING_DONE, {"flow": "turno"})
    store.set("549111", ConversationState.ASK_OS_NAME, {"label": "Cardiología"})
    session = store.get("549111")
    assert session.state == ConversationState.ASK_OS_NAME
    assert session.context == {"flow": "turno", "label": "Cardiología"}


def test_get_returns_a_copy(store):
    store.set("549111", ConversationState.ASK_OS_NAME, {"flow": "turno"})
    session = store.get("549111")
    session.context["flow"] = "estudio"
    assert store.get("549111").context["flow"] == "turno"


def test_expired_session_reads_as_absent(store, clock):
    store.set("549111", ConversationState.ASK_OS_TOKEN, {"os_name": "OSDE"})
    clock.advance(minutes=61)
    session = store.get("549111")
    assert session.state == ConversationState.MENU
    assert session.context == {}
    assert store.peek("549111") is None


def test_activity_refreshes_ttl(store, clock):
    store.set("549111", ConversationState.ASK_OS_NAME)
    clock.advance(minutes=50)
    store.set("549111", ConversationState.ASK_OS_TOKEN)
    clock.advance(minutes=50)
    assert store.get("549111").state == ConversationState.ASK_OS_TOKEN


def test_sweep_evicts_only_expired(store, clock):
    store.set("old", ConversationState.HANDOFF)
    clock.advance(minutes=30)
    store.set("new", ConversationState.HANDOFF)
    clock.advance(minutes=31)
    assert store.sweep() == 1
    assert store.peek("old") is None
    assert store.peek("new") is not None


def test_reset_clears_context(store):
    store.set("549111", ConversationState.AWAITING_PAYMENT, {"payment_link": "x"})
    session = store.reset("549111")
    assert session.state == ConversationState.MENU
    assert session.context == {}


async def _noop():
    return None


@pytest.mark.asyncio
async def test_reminder_cancelled_on_reset(store):
    store.set("549111", ConversationState.AWAITING_PAYMENT)
    store.schedule_reminder("549111", 3600, _noop)
    assert store.has_reminder("549111")
    store.reset("549111")
    assert not store.has_reminder("549111")


@pytest.mark.asyncio
async def test_reminder_cancelled_when_leaving_awaiting_payment(store):
    store.set("549111", ConversationState.AWAITING_PAYMENT)
    store.schedule_reminder("549111", 3600, _noop)
    store.set("549111", ConversationState.AWAITING_PAYMENT, {"reported_op_id": "1"})
    assert store.has_reminder("549111")
    store.set("549111", ConversationState.HANDOFF)
    assert not store.has_reminder("549111")


@pytest.mark.asyncio
async def test_pending_reminder_keeps_session_alive(store, clock):
    store.set("549111", ConversationState.AWAITING_PAYMENT, {"preference_id": "pref-1"})
    store.schedule_reminder("549111", 3600, _noop)
    clock.advance(hours=2)

    assert store.sweep() == 0
    assert store.peek("549111").context == {"preference_id": "pref-1"}
    assert store.has_reminder("549111")
    store.cancel_all()


@pytest.mark.asyncio
async def test_session_expires_once_reminder_is_gone(store, clock):
    store.set("549111", ConversationState.AWAITING_PAYMENT)
    store.schedule_reminder("549111", 3600, _noop)
    clock.advance(hours=2)
    store.cancel_reminder("549111")

    assert store.sweep() == 1
    assert store.peek("549111") is None


@pytest.mark.asyncio
async def test_reminder_fires_once(store):
    fired = []

    async def callback():
        fired.append(True)

    store.set("549111", ConversationState.AWAITING_PAYMENT)
    store.schedule_reminder("549111", 0, callback)
    await asyncio.sleep(0.01)
    assert fired == [True]
    assert not store.has_reminder("549111")


@pytest.mark.asyncio
async def test_fired_reminder_sees_session_past_ttl(store, clock):
    seen = []

    async def callback():
        seen.append(store.peek("549111"))

    store.set("549111", ConversationState.AWAITING_PAYMENT, {"preference_id": "pref-1"})
    clock.advance(hours=1, seconds=1)
    store.schedule_reminder("549111", 0, callback)
    await asyncio.sleep(0.01)

    assert seen[0] is not None
    assert seen[0].state == ConversationState.AWAITING_PAYMENT
    assert not store.has_reminder("549111")


def test_lock_is_per_sender_and_dropped_on_eviction(store, clock):
    lock = store.lock("549111")
    assert store.lock("549111") is lock
    assert store.lock("549222") is not lock

    store.set("549111", ConversationState.MENU)
    clock.advance(hours=2)
    store.sweep()
    assert store.lock("549111") is not lock
