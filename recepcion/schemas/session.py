"""In-memory conversation session schemas."""

from __future__ import annotations

from datetime import datetime, timezone
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, Field


class ConversationState(StrEnum):
    """Nodes of the conversation state machine."""

    MENU = "menu"
    AWAITING_BOOKING_DONE = "awaiting_booking_done"
    ASK_PATIENT_TYPE = "ask_patient_type"
    ASK_OS_NAME = "ask_os_name"
    ASK_OS_TOKEN = "ask_os_token"
    AWAITING_PAYMENT = "awaiting_payment"
    HANDOFF = "handoff"
    CONFIRMED = "confirmed"


class ChatSession(BaseModel):
    """Per-sender in-progress state. Absent session means MENU with empty context."""

    sender_id: str
    state: ConversationState = ConversationState.MENU
    context: dict[str, Any] = Field(default_factory=dict)
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class SessionRead(BaseModel):
    """Session as exposed to operators."""

    sender_id: str
    state: ConversationState
    context: dict[str, Any]
    updated_at: datetime
    reminder_pending: bool = False
