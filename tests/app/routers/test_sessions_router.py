"""Tests for the sessions router."""

import pytest

from recepcion.schemas.messages import InboundMessage, OutboundMessage
from recepcion.schemas.session import ConversationState
from recepcion.services.message_log_service import MessageLogService
from tests.fixtures.whatsapp_fixtures import WA_ID


def test_unknown_sender_reads_as_menu(client):
    response = client.get("/sessions/5490000000000")

    assert response.status_code == 200
    body = response.json()
    assert body["state"] == "menu"
    assert body["context"] == {}
    assert body["reminder_pending"] is False


def test_get_session(client, app_state):
    app_state.sessions.set(WA_ID, ConversationState.ASK_OS_TOKEN, {"os_name": "OSDE"})

    body = client.get(f"/sessions/{WA_ID}").json()

    assert body["sender_id"] == WA_ID
    assert body["state"] == "ask_os_token"
    assert body["context"] == {"os_name": "OSDE"}


def test_reset_session(client, app_state):
    app_state.sessions.set(WA_ID, ConversationState.HANDOFF, {"flow": "turno"})

    response = client.delete(f"/sessions/{WA_ID}")

    assert response.status_code == 200
    assert response.json()["state"] == "menu"
    assert app_state.sessions.get(WA_ID).state == ConversationState.MENU


@pytest.fixture
def message_log(db):
    service = MessageLogService(db)
    for i in range(3):
        service.record_inbound(
            InboundMessage(external_user_id=WA_ID, message_id=f"wamid.{i}", text=f"msg {i}"),
            case_id="CEPA-1",
            state=ConversationState.MENU,
        )
        service.record_outbound(
            OutboundMessage(external_user_id=WA_ID, text=f"reply {i}"),
            platform_message_id=f"wamid.OUT{i}",
            case_id="CEPA-1",
            state=ConversationState.AWAITING_BOOKING_DONE,
        )
    service.record_inbound(
        InboundMessage(external_user_id="5490000000000", message_id="wamid.X", text="otro")
    )


def test_list_messages_paginated(client, message_log):
    response = client.get(f"/sessions/{WA_ID}/messages", params={"page": 1, "size": 4})

    assert response.status_code == 200
    body = response.json()
    assert body["total"] == 6
    assert body["page"] == 1
    assert [item["text"] for item in body["items"]] == ["msg 0", "reply 0", "msg 1", "reply 1"]
    assert body["items"][1]["direction"] == "outbound"
    assert body["items"][1]["platform_message_id"] == "wamid.OUT0"
    assert body["items"][1]["case_id"] == "CEPA-1"
    assert body["items"][1]["state"] == "awaiting_booking_done"


def test_list_messages_second_page(client, message_log):
    body = client.get(f"/sessions/{WA_ID}/messages", params={"page": 2, "size": 4}).json()
    assert [item["text"] for item in body["items"]] == ["msg 2", "reply 2"]


def test_list_messages_empty(client):
    body = client.get("/sessions/5491111111111/messages").json()
    assert body["total"] == 0
    assert body["items"] == []
