"""Tests for MessageLogService."""

import pytest
from sqlalchemy.orm import Session

from recepcion.schemas.messages import InboundMessage, MessageMetadata, OutboundMessage
from recepcion.schemas.session import ConversationState
from recepcion.services.message_log_service import MessageLogService
from tests.fixtures.whatsapp_fixtures import WA_ID


@pytest.fixture
def inbound_message():
    return InboundMessage(
        external_user_id=WA_ID,
        message_id="wamid.IN1",
        text="1",
        metadata=MessageMetadata(profile_name="Paciente"),
    )


@pytest.fixture
def outbound_message():
    return OutboundMessage(
        external_user_id=WA_ID,
        text="Perfecto: Consulta médica.",
        reply_to_message_id="wamid.IN1",
    )


def test_record_inbound(db: Session, inbound_message: InboundMessage):
    entry = MessageLogService(db).record_inbound(
        inbound_message, case_id="CEPA-1", state=ConversationState.MENU
    )

    assert entry.id is not None
    assert entry.direction == "inbound"
    assert entry.wa_id == WA_ID
    assert entry.case_id == "CEPA-1"
    assert entry.state == "menu"
    assert entry.message_type == "text"
    assert entry.message_id == "wamid.IN1"
    assert entry.profile_name == "Paciente"
    assert entry.created_at is not None


def test_record_outbound(db: Session, outbound_message: OutboundMessage):
    entry = MessageLogService(db).record_outbound(
        outbound_message,
        platform_message_id="wamid.OUT",
        case_id="CEPA-1",
        state=ConversationState.AWAITING_BOOKING_DONE,
    )

    assert entry.direction == "outbound"
    assert entry.message_id == "wamid.IN1"
    assert entry.platform_message_id == "wamid.OUT"
    assert entry.state == "awaiting_booking_done"


def test_receipt_photo_without_caption(db: Session):
    entry = MessageLogService(db).record_inbound(
        InboundMessage(
            external_user_id=WA_ID,
            message_id="wamid.IMG1",
            message_type="image",
            attachments=[{"type": "image", "id": "MEDIA_ID"}],
        ),
        case_id="CEPA-1",
        state=ConversationState.AWAITING_PAYMENT,
    )

    assert entry.text is None
    assert entry.message_type == "image"
    assert entry.media == [{"type": "image", "id": "MEDIA_ID"}]


def test_record_without_case(db: Session, inbound_message: InboundMessage):
    entry = MessageLogService(db).record_inbound(inbound_message)
    assert entry.case_id is None
    assert entry.state is None


def test_get_entry(db: Session, inbound_message: InboundMessage):
    service = MessageLogService(db)
    created = service.record_inbound(inbound_message)
    assert service.get_entry(created.id).id == created.id


def test_history_by_sender_and_by_case(
    db: Session, inbound_message: InboundMessage, outbound_message: OutboundMessage
):
    service = MessageLogService(db)
    service.record_inbound(inbound_message, case_id="CEPA-OLD")
    service.record_inbound(inbound_message, case_id="CEPA-1")
    service.record_outbound(outbound_message, case_id="CEPA-1")
    service.record_inbound(
        inbound_message.model_copy(
            update={"external_user_id": "5491100000000", "message_id": "wamid.OTHER"}
        ),
        case_id="CEPA-2",
    )

    assert len(service.list_entries(wa_id=WA_ID)) == 3
    by_case = service.list_entries(case_id="CEPA-1")
    assert [e.direction for e in by_case] == ["inbound", "outbound"]
    assert service.list_entries(wa_id=WA_ID, case_id="CEPA-2") == []

    limited = service.list_entries(wa_id=WA_ID, skip=1, limit=1)
    assert len(limited) == 1
    assert limited[0].case_id == "CEPA-1"
