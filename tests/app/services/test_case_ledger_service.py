"""Tests for CaseLedgerService against the in-memory backend."""

import json
from decimal import Decimal
from itertools import count
from unittest.mock import MagicMock

import pytest

from recepcion.adapters.ledger_backends import LedgerWriteError, MemoryLedgerBackend
from recepcion.schemas.case import (
    CASE_COLUMNS,
    EVENT_COLUMNS,
    Case,
    CaseStatus,
    EventType,
    FlowType,
)
from recepcion.services.case_ledger_service import CaseLedgerService
from tests.fixtures.whatsapp_fixtures import WA_ID


def sequential_ids():
    numbers = count(1)
    return lambda: f"CEPA-20260101-{next(numbers):06d}"


@pytest.fixture
def backend():
    return MemoryLedgerBackend()


@pytest.fixture
def ledger(backend):
    return CaseLedgerService(backend, id_factory=sequential_ids())


def column(name):
    return CASE_COLUMNS.index(name)


@pytest.mark.asyncio
async def test_get_or_create_is_idempotent(ledger, backend):
    first = await ledger.get_or_create(WA_ID, "hola")
    second = await ledger.get_or_create(WA_ID, "otra cosa")

    assert first.case_id == second.case_id == "CEPA-20260101-000001"
    assert len(backend.cases) == 2
    created = [row for row in backend.events[1:] if row[EVENT_COLUMNS.index("event_type")] == "case_created"]
    assert len(created) == 1
    assert backend.cases[1][column("last_message")] == "hola"


@pytest.mark.asyncio
async def test_get_unknown_sender(ledger):
    assert await ledger.get("5490000000000") is None


@pytest.mark.asyncio
async def test_update_rewrites_row_in_place(ledger, backend):
    await ledger.get_or_create(WA_ID, "1")

    case = await ledger.update(
        WA_ID,
        {
            "flow_type": FlowType.TURNO,
            "status": CaseStatus.AWAITING_PAYMENT,
            "deposit_amount": Decimal("10000"),
        },
    )

    assert case.status == CaseStatus.AWAITING_PAYMENT
    assert len(backend.cases) == 2
    row = backend.cases[1]
    assert row[column("status")] == "awaiting_payment"
    assert row[column("flow_type")] == "turno"
    assert row[column("wa_id")] == WA_ID


@pytest.mark.asyncio
async def test_update_rejects_identity_fields(ledger):
    await ledger.get_or_create(WA_ID)
    with pytest.raises(ValueError):
        await ledger.update(WA_ID, {"case_id": "CEPA-OTHER"})


@pytest.mark.asyncio
async def test_update_without_case_raises(ledger):
    with pytest.raises(KeyError):
        await ledger.update(WA_ID, {"status": CaseStatus.HANDOFF})


@pytest.mark.asyncio
async def test_restart_reloads_case_from_backend(backend):
    first = CaseLedgerService(backend, id_factory=sequential_ids())
    created = await first.get_or_create(WA_ID, "hola")
    await first.update(WA_ID, {"os_name": "OSDE"})

    restarted = CaseLedgerService(backend, id_factory=lambda: "CEPA-NEW")
    case = await restarted.get_or_create(WA_ID, "de nuevo")

    assert case.case_id == created.case_id
    assert case.os_name == "OSDE"
    assert len(backend.cases) == 2


@pytest.mark.asyncio
async def test_log_event_appends_row(ledger, backend):
    case = await ledger.get_or_create(WA_ID)
    event = await ledger.log_event(
        case, EventType.PAYMENT_LINK, "https://mp/checkout", {"amount": "10000"}
    )

    row = backend.events[-1]
    assert row[0] == event.event_id
    assert row[EVENT_COLUMNS.index("event_type")] == "payment_link"
    assert row[EVENT_COLUMNS.index("payload")] == '{"amount": "10000"}'


@pytest.mark.asyncio
async def test_backend_failure_keeps_local_case(backend):
    failing = MagicMock(wraps=backend)
    failing.find_case_row.side_effect = LedgerWriteError("quota exceeded")
    failing.append_case_row.side_effect = LedgerWriteError("quota exceeded")
    failing.append_event_row.side_effect = LedgerWriteError("quota exceeded")
    ledger = CaseLedgerService(failing, id_factory=sequential_ids())

    case = await ledger.get_or_create(WA_ID, "hola")
    again = await ledger.get_or_create(WA_ID, "hola")
    updated = await ledger.update(WA_ID, {"status": CaseStatus.HANDOFF})

    assert case.case_id == again.case_id
    assert updated.status == CaseStatus.HANDOFF
    assert len(backend.cases) == 1


@pytest.mark.asyncio
async def test_row_written_on_next_successful_call(backend):
    flaky = MagicMock(wraps=backend)
    flaky.append_case_row.side_effect = [LedgerWriteError("timeout"), 2]
    ledger = CaseLedgerService(flaky, id_factory=sequential_ids())

    await ledger.get_or_create(WA_ID, "hola")
    await ledger.update(WA_ID, {"status": CaseStatus.FALLBACK})

    assert flaky.append_case_row.call_count == 2
    flaky.update_case_row.assert_not_called()


@pytest.mark.asyncio
async def test_adopts_case_id_already_stored(backend):
    stored = Case(case_id="CEPA-STORED", wa_id=WA_ID)
    backend.append_case_row(stored.to_row())
    flaky = MagicMock(wraps=backend)
    flaky.find_case_row.side_effect = [LedgerWriteError("timeout"), (2, stored.to_row())]
    ledger = CaseLedgerService(flaky, id_factory=lambda: "CEPA-LOCAL")

    case = await ledger.get_or_create(WA_ID, "hola")

    assert case.case_id == "CEPA-STORED"
    assert (await ledger.get(WA_ID)).case_id == "CEPA-STORED"
    assert backend.events[-1][EVENT_COLUMNS.index("case_id")] == "CEPA-STORED"
    adopted = backend.events[-2]
    assert adopted[EVENT_COLUMNS.index("event_type")] == EventType.CASE_ID_ADOPTED.value
    assert adopted[EVENT_COLUMNS.index("case_id")] == "CEPA-STORED"
    assert adopted[EVENT_COLUMNS.index("preview")] == "CEPA-LOCAL"
    assert json.loads(adopted[EVENT_COLUMNS.index("payload")]) == {"local_case_id": "CEPA-LOCAL"}
    flaky.update_case_row.assert_called_once()
    assert flaky.update_case_row.call_args.args[0] == 2
    flaky.append_case_row.assert_not_called()
