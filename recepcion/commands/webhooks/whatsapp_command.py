"""
Command to handle WhatsApp Cloud API webhooks.

GET: subscription handshake. POST: validate the signature, parse the
envelope, acknowledge immediately and run each message through the
conversation in a background task (dedup, then the conversation service,
which logs the message under its case and replies).
"""

from __future__ import annotations

import json
import logging
from typing import Any, Optional

from fastapi import BackgroundTasks, HTTPException, Request

from recepcion.core.app_state import AppState
from recepcion.schemas.messages import InboundMessage

logger = logging.getLogger(__name__)


class WhatsAppWebhookCommand:
    """
    Command to handle WhatsApp webhook deliveries.
    Validates X-Hub-Signature-256, parses the envelope, defers processing.
    """

    def __init__(self, state: AppState) -> None:
        self.state = state
        self.settings = state.settings
        self._adapter = state.adapter

    def verify_subscription(
        self,
        mode: Optional[str],
        token: Optional[str],
        challenge: Optional[str],
    ) -> str:
        """
        Answer Meta's subscription handshake.

        Returns:
            str: The challenge to echo back as plain text.

        Raises:
            HTTPException: 403 if mode or verify token do not match.
        """
        echoed = self._adapter.verify_subscription(
            mode, token, challenge, self.settings.wa_verify_token
        )
        if echoed is None:
            logger.warning("WhatsApp webhook verification failed", extra={"mode": mode})
            raise HTTPException(status_code=403, detail="Verification failed")
        logger.info("WhatsApp webhook verified")
        return echoed

    async def execute(
        self, request: Request, background_tasks: BackgroundTasks
    ) -> dict[str, str]:
        """
        Validate and parse a webhook delivery, then schedule its processing.

        Returns:
            dict: {"status": "ok"} as soon as the delivery is accepted.

        Raises:
            HTTPException: 401 on invalid signature, 400 on invalid JSON or envelope.
        """
        raw_body = await request.body()
        headers = dict(request.headers) if request.headers else {}
        if not self._adapter.verify_webhook(
            self.settings.meta_app_secret, headers, raw_body
        ):
            logger.warning("WhatsApp webhook signature rejected")
            raise HTTPException(status_code=401, detail="Invalid signature")
        try:
            body: Any = json.loads(raw_body)
        except ValueError as e:
            logger.warning("WhatsApp webhook invalid JSON: %s", e)
            raise HTTPException(status_code=400, detail="Invalid JSON body") from e
        if not isinstance(body, dict):
            raise HTTPException(status_code=400, detail="Body must be a JSON object")
        try:
            inbound = self._adapter.parse_webhook(body)
        except (ValueError, KeyError, TypeError) as e:
            logger.warning("WhatsApp webhook parse error: %s", e)
            raise HTTPException(
                status_code=400, detail="Invalid WhatsApp payload"
            ) from e

        if not inbound:
            statuses = self._adapter.parse_statuses(body)
            logger.info("WhatsApp delivery without messages", extra={"statuses": statuses})
            return {"status": "ok"}

        background_tasks.add_task(self.process, inbound)
        return {"status": "ok"}

    async def process(self, messages: list[InboundMessage]) -> None:
        """Handle messages one at a time, in delivery order."""
        for inbound in messages:
            await self.process_message(inbound)

    async def process_message(self, inbound: InboundMessage) -> bool:
        """Run one message through the conversation. False when it was a redelivery."""
        if self.state.dedup.seen_before(inbound.message_id):
            logger.info(
                "Duplicate WhatsApp message ignored",
                extra={"message_id": inbound.message_id},
            )
            return False
        try:
            await self.state.conversation.handle(inbound)
        except Exception:
            logger.exception(
                "Conversation failed",
                extra={
                    "wa_id": inbound.external_user_id,
                    "message_id": inbound.message_id,
                },
            )
        return True
