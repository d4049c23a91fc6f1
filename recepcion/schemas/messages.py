"""
Normalized message contracts.

All inbound WhatsApp messages are converted into these shapes; outbound
messages use the outbound schema. Stable and independent of the state machine.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

MEDIA_TYPES = frozenset({"image", "document", "video", "audio", "sticker"})


class Channel(str, Enum):
    """Supported chat channels."""

    WHATSAPP = "whatsapp"


class MessageMetadata(BaseModel):
    """Metadata for normalized messages (contact name, timestamp)."""

    profile_name: Optional[str] = None
    timestamp: Optional[datetime] = None  # ISO8601


class InboundMessage(BaseModel):
    """Normalized inbound message (adapter → core)."""

    channel: Channel = Channel.WHATSAPP
    external_user_id: str  # WhatsApp: wa_id of the sender
    message_id: str
    message_type: str = "text"
    text: str = ""
    attachments: list[dict[str, Any]] = Field(default_factory=list)
    metadata: MessageMetadata = Field(default_factory=MessageMetadata)

    @property
    def has_media(self) -> bool:
        return self.message_type in MEDIA_TYPES or bool(self.attachments)


class OutboundMessage(BaseModel):
    """Normalized outbound message (core → adapter)."""

    channel: Channel = Channel.WHATSAPP
    external_user_id: str
    text: str
    reply_to_message_id: Optional[str] = None
    attachments: list[dict[str, Any]] = Field(default_factory=list)


class OutboundSendResult(BaseModel):
    """Result of sending an outbound message (success + optional message_id)."""

    success: bool
    platform_message_id: Optional[str] = None
    error: Optional[str] = None


class MessageLogRead(BaseModel):
    """Message log entry as exposed to operators."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    direction: str
    wa_id: str
    case_id: Optional[str] = None
    state: Optional[str] = None
    message_type: str
    text: Optional[str] = None
    media: Optional[list[dict[str, Any]]] = None
    message_id: Optional[str] = None
    platform_message_id: Optional[str] = None
    profile_name: Optional[str] = None
    created_at: datetime
