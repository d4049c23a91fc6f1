"""
Service for the per-case message log.

Entries are immutable; only insert. Reads are ordered oldest first, by
sender or by case.
"""

from __future__ import annotations

from typing import List, Optional
from uuid import UUID

from sqlalchemy.orm import Query, Session

from recepcion.models.message_log import MessageLogEntry
from recepcion.schemas.messages import InboundMessage, OutboundMessage
from recepcion.schemas.session import ConversationState


def _state_value(state: Optional[ConversationState]) -> Optional[str]:
    return state.value if state is not None else None


class MessageLogService:
    """Record and read the messages of a case. No update/delete."""

    def __init__(self, db: Session) -> None:
        self.db = db

    def _save(self, entry: MessageLogEntry) -> MessageLogEntry:
        self.db.add(entry)
        self.db.commit()
        self.db.refresh(entry)
        return entry

    def record_inbound(
        self,
        inbound: InboundMessage,
        case_id: Optional[str] = None,
        state: Optional[ConversationState] = None,
    ) -> MessageLogEntry:
        """Log a patient message with the state it arrived in."""
        return self._save(
            MessageLogEntry(
                direction="inbound",
                wa_id=inbound.external_user_id,
                case_id=case_id,
                state=_state_value(state),
                message_type=inbound.message_type,
                text=inbound.text or None,
                media=inbound.attachments or [],
                message_id=inbound.message_id,
                profile_name=inbound.metadata.profile_name,
            )
        )

    def record_outbound(
        self,
        outbound: OutboundMessage,
        platform_message_id: Optional[str] = None,
        case_id: Optional[str] = None,
        state: Optional[ConversationState] = None,
    ) -> MessageLogEntry:
        """Log a delivered reply with the state the conversation moved to."""
        return self._save(
            MessageLogEntry(
                direction="outbound",
                wa_id=outbound.external_user_id,
                case_id=case_id,
                state=_state_value(state),
                message_type="text",
                text=outbound.text or None,
                media=outbound.attachments or [],
                message_id=outbound.reply_to_message_id,
                platform_message_id=platform_message_id,
            )
        )

    def get_entry(self, entry_id: UUID) -> Optional[MessageLogEntry]:
        return self.db.query(MessageLogEntry).filter(MessageLogEntry.id == entry_id).first()

    def history_query(
        self,
        wa_id: Optional[str] = None,
        case_id: Optional[str] = None,
    ) -> Query:
        """Entries for a sender and/or a case, oldest first."""
        q = self.db.query(MessageLogEntry).order_by(MessageLogEntry.created_at.asc())
        if wa_id is not None:
            q = q.filter(MessageLogEntry.wa_id == wa_id)
        if case_id is not None:
            q = q.filter(MessageLogEntry.case_id == case_id)
        return q

    def list_entries(
        self,
        wa_id: Optional[str] = None,
        case_id: Optional[str] = None,
        skip: int = 0,
        limit: int = 100,
    ) -> List[MessageLogEntry]:
        return self.history_query(wa_id, case_id).offset(skip).limit(limit).all()
