"""Tests for the Case ledger schemas and message contracts."""

import json
from decimal import Decimal

import pytest

from recepcion.schemas.case import (
    CASE_COLUMNS,
    EVENT_COLUMNS,
    PREVIEW_MAX_CHARS,
    Case,
    CaseEvent,
    CaseStatus,
    EventType,
    FlowType,
    PatientType,
    preview,
)
from recepcion.schemas.messages import InboundMessage
from tests.fixtures.whatsapp_fixtures import WA_ID


def test_preview_is_single_line_and_capped():
    assert preview("hola\n  quiero   turno") == "hola quiero turno"
    assert len(preview("x" * 500)) == PREVIEW_MAX_CHARS
    assert preview(None) == ""


def test_new_case_defaults():
    case = Case(case_id="CEPA-1", wa_id=WA_ID)
    assert case.status == CaseStatus.LEAD
    assert case.patient_type == PatientType.UNSET
    assert case.flow_type is None


def test_apply_patch_touches_updated_at_only():
    case = Case(case_id="CEPA-1", wa_id=WA_ID)

    patched = case.apply({"flow_type": FlowType.ESTUDIO, "last_message": "eco\n5d"})

    assert patched.flow_type == FlowType.ESTUDIO
    assert patched.last_message == "eco 5d"
    assert patched.created_at == case.created_at
    assert patched.updated_at >= case.updated_at
    assert case.flow_type is None


@pytest.mark.parametrize("field", ["case_id", "wa_id", "created_at", "unknown"])
def test_apply_rejects_identity_and_unknown_fields(field):
    with pytest.raises(ValueError):
        Case(case_id="CEPA-1", wa_id=WA_ID).apply({field: "x"})


def test_row_layout_follows_columns():
    case = Case(
        case_id="CEPA-1",
        wa_id=WA_ID,
        flow_type=FlowType.TURNO,
        deposit_amount=Decimal("10000"),
        status=CaseStatus.AWAITING_PAYMENT,
    )

    row = case.to_row()

    assert len(row) == len(CASE_COLUMNS)
    assert row[CASE_COLUMNS.index("case_id")] == "CEPA-1"
    assert row[CASE_COLUMNS.index("status")] == "awaiting_payment"
    assert row[CASE_COLUMNS.index("os_name")] == ""
    assert Case.from_row(row) == case


def test_from_short_row_fills_defaults():
    row = ["2026-01-01T10:00:00+00:00", "CEPA-1", WA_ID]
    case = Case.from_row(row)
    assert case.status == CaseStatus.LEAD
    assert case.patient_type == PatientType.UNSET
    assert case.last_message == ""


def test_event_row():
    event = CaseEvent(
        case_id="CEPA-1",
        wa_id=WA_ID,
        event_type=EventType.PAYMENT_LINK,
        preview="https://mp",
        payload={"amount": Decimal("10000")},
    )

    row = event.to_row()

    assert len(row) == len(EVENT_COLUMNS)
    assert row[EVENT_COLUMNS.index("event_type")] == "payment_link"
    assert json.loads(row[EVENT_COLUMNS.index("payload")]) == {"amount": "10000"}


def test_event_is_immutable():
    event = CaseEvent(case_id="CEPA-1", wa_id=WA_ID, event_type=EventType.CASE_CREATED)
    with pytest.raises(ValueError):
        event.preview = "changed"


def test_inbound_media_detection():
    assert InboundMessage(external_user_id=WA_ID, message_id="a", message_type="image").has_media
    assert InboundMessage(
        external_user_id=WA_ID, message_id="b", attachments=[{"type": "document"}]
    ).has_media
    assert not InboundMessage(external_user_id=WA_ID, message_id="c", text="hola").has_media
