"""
Command to send an outbound WhatsApp message.

Resolves the adapter by channel, sends via the Graph API and logs the message
under the sender's case on success.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

from fastapi import HTTPException
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from recepcion.adapters.base import BasePlatformAdapter
from recepcion.adapters.whatsapp import WhatsAppAdapter
from recepcion.schemas.messages import Channel, OutboundMessage, OutboundSendResult
from recepcion.schemas.session import ConversationState
from recepcion.services.message_log_service import MessageLogService

logger = logging.getLogger(__name__)


def _adapter_registry(
    whatsapp: Optional[WhatsAppAdapter],
) -> dict[Channel, BasePlatformAdapter]:
    """Only configured adapters are included."""
    registry: dict[Channel, BasePlatformAdapter] = {}
    if whatsapp is not None and whatsapp.configured:
        registry[Channel.WHATSAPP] = whatsapp
    return registry


class SendOutboundCommand:
    """
    Command to send an outbound message to the specified channel.
    ``deliver`` never raises (bot replies); ``execute`` maps failures to HTTP errors.
    """

    def __init__(self, db: Session, adapter: Optional[WhatsAppAdapter]) -> None:
        self.db = db
        self._adapters = _adapter_registry(adapter)
        self.message_log = MessageLogService(db)

    async def deliver(
        self,
        body: OutboundMessage,
        case_id: Optional[str] = None,
        state: Optional[ConversationState] = None,
    ) -> OutboundSendResult:
        """Send and log. Unconfigured channels and platform errors come back as failures."""
        adapter = self._adapters.get(body.channel)
        if adapter is None:
            logger.warning(
                "Outbound skipped, channel not configured",
                extra={"channel": body.channel.value, "to": body.external_user_id},
            )
            return OutboundSendResult(success=False, error="missing_env")
        result = await adapter.send(body)
        if result.success:
            try:
                self.message_log.record_outbound(
                    body,
                    platform_message_id=result.platform_message_id,
                    case_id=case_id,
                    state=state,
                )
            except SQLAlchemyError as e:
                self.db.rollback()
                logger.error("Outbound message log failed: %s", e)
        return result

    async def execute(
        self,
        body: OutboundMessage,
        case_id: Optional[str] = None,
        state: Optional[ConversationState] = None,
    ) -> dict[str, Any]:
        """
        Send the outbound message via the channel adapter and persist the event.

        Args:
            body: Normalized outbound message (channel, recipient, text).
            case_id: Case the message is logged under, when the sender has one.
            state: Conversation state of the sender at send time.

        Returns:
            dict: {"data": {"success": True, "platform_message_id": ...}} on success.

        Raises:
            HTTPException: 400 if the channel is not configured,
                502 if the platform API failed to send.
        """
        if body.channel not in self._adapters:
            raise HTTPException(
                status_code=400,
                detail=f"Channel {body.channel.value} is not configured",
            )
        result = await self.deliver(body, case_id=case_id, state=state)
        if not result.success:
            raise HTTPException(
                status_code=502,
                detail="Platform API failed to send message",
            )
        return {
            "data": {
                "success": True,
                "platform_message_id": result.platform_message_id,
            }
        }
