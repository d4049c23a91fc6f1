"""
Message log: one row per WhatsApp message exchanged with a patient.

Rows carry the case they belong to and the conversation state the message
was handled in, so operators can replay a case next to its ledger events.
Insert only.
"""

from __future__ import annotations

import uuid

from sqlalchemy import JSON, Column, Index, String, Text, Uuid

from recepcion.db import Base
from recepcion.models.mixins import TimestampMixin


class MessageLogEntry(Base, TimestampMixin):
    __tablename__ = "message_log"

    __table_args__ = (
        Index("ix_message_log_wa_id_created", "wa_id", "created_at"),
        Index("ix_message_log_case_id_created", "case_id", "created_at"),
    )

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    direction = Column(String(16), nullable=False)  # 'inbound' | 'outbound'
    wa_id = Column(String(32), nullable=False)
    case_id = Column(String(64), nullable=True)
    state = Column(String(32), nullable=True)
    message_type = Column(String(32), nullable=False, default="text")
    text = Column(Text, nullable=True)
    media = Column(JSON, nullable=True, default=list)
    message_id = Column(String(255), nullable=True)  # inbound wamid / replied-to wamid
    platform_message_id = Column(String(255), nullable=True)  # outbound wamid
    profile_name = Column(String(255), nullable=True)
