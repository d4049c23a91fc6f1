"""
WhatsApp Cloud API adapter.

Parses Meta webhook envelopes into normalized inbound messages, validates the
``X-Hub-Signature-256`` HMAC and sends text messages through the Graph API.
"""

from __future__ import annotations

import hashlib
import hmac
from datetime import datetime, timezone
from typing import Any, Optional

import httpx

from recepcion.adapters.base import BasePlatformAdapter
from recepcion.infra.logging_config import get_logger
from recepcion.schemas.messages import (
    MEDIA_TYPES,
    Channel,
    InboundMessage,
    MessageMetadata,
    OutboundMessage,
    OutboundSendResult,
)
from recepcion.schemas.whatsapp import WhatsAppMessage, WhatsAppWebhookPayload

logger = get_logger("whatsapp_adapter")

GRAPH_BASE_URL = "https://graph.facebook.com"


def _message_text(message: WhatsAppMessage) -> str:
    if message.text is not None:
        return message.text.body
    if message.interactive is not None:
        reply = message.interactive.button_reply or message.interactive.list_reply
        if reply is not None:
            return reply.id or reply.title or ""
    if message.button is not None:
        return message.button.payload or message.button.text or ""
    media = getattr(message, message.type, None) if message.type in MEDIA_TYPES else None
    if media is not None and getattr(media, "caption", None):
        return media.caption
    return ""


def _message_attachments(message: WhatsAppMessage) -> list[dict[str, Any]]:
    attachments: list[dict[str, Any]] = []
    for kind in sorted(MEDIA_TYPES):
        media = getattr(message, kind, None)
        if media is not None:
            attachments.append(
                {"type": kind, "id": media.id, "mime_type": media.mime_type}
            )
    return attachments


def _message_timestamp(message: WhatsAppMessage) -> datetime:
    if message.timestamp and message.timestamp.isdigit():
        return datetime.fromtimestamp(int(message.timestamp), tz=timezone.utc)
    return datetime.now(timezone.utc)


class WhatsAppAdapter(BasePlatformAdapter):
    """WhatsApp adapter: parse webhook envelopes, send messages via Graph API."""

    SIGNATURE_HEADER = "X-Hub-Signature-256"
    SIGNATURE_PREFIX = "sha256="

    def __init__(
        self,
        access_token: Optional[str],
        phone_number_id: Optional[str],
        app_secret: Optional[str] = None,
        graph_version: str = "v22.0",
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._access_token = access_token
        self._phone_number_id = phone_number_id
        self._app_secret = app_secret
        self._graph_version = graph_version
        self._timeout = timeout
        self._transport = transport

    @property
    def configured(self) -> bool:
        return bool(self._access_token and self._phone_number_id)

    @staticmethod
    def verify_subscription(
        mode: Optional[str],
        token: Optional[str],
        challenge: Optional[str],
        verify_token: Optional[str],
    ) -> Optional[str]:
        """Return the challenge to echo when the handshake is valid, else None."""
        if mode != "subscribe" or not token or not verify_token:
            return None
        if not hmac.compare_digest(token.encode(), verify_token.encode()):
            return None
        return challenge or ""

    def verify_webhook(
        self,
        secret: Optional[str],
        request_headers: Optional[dict[str, str]] = None,
        raw_body: bytes = b"",
    ) -> bool:
        """Validate X-Hub-Signature-256 if an app secret is configured."""
        expected_secret = secret or self._app_secret
        if not expected_secret:
            return True
        request_headers = request_headers or {}
        header_lower = self.SIGNATURE_HEADER.lower()
        actual = None
        for key, value in request_headers.items():
            if key.lower() == header_lower:
                actual = value
                break
        if not actual or not actual.startswith(self.SIGNATURE_PREFIX):
            return False
        digest = hmac.new(
            expected_secret.encode("utf-8"), raw_body, hashlib.sha256
        ).hexdigest()
        return hmac.compare_digest(self.SIGNATURE_PREFIX + digest, actual)

    def parse_webhook(self, raw_payload: dict[str, Any]) -> list[InboundMessage]:
        """Parse WhatsApp webhook payload into normalized inbound messages."""
        payload = WhatsAppWebhookPayload.model_validate(raw_payload)
        inbound: list[InboundMessage] = []
        for value in payload.iter_values():
            names = {
                c.wa_id: c.profile.name
                for c in value.contacts
                if c.wa_id and c.profile is not None
            }
            for message in value.messages:
                if not message.id:
                    raise ValueError("WhatsApp message without id")
                inbound.append(
                    InboundMessage(
                        channel=Channel.WHATSAPP,
                        external_user_id=message.from_,
                        message_id=message.id,
                        message_type=message.type,
                        text=_message_text(message),
                        attachments=_message_attachments(message),
                        metadata=MessageMetadata(
                            profile_name=names.get(message.from_),
                            timestamp=_message_timestamp(message),
                        ),
                    )
                )
        return inbound

    def parse_statuses(self, raw_payload: dict[str, Any]) -> list[str]:
        """Delivery statuses in the payload (sent/delivered/read/failed)."""
        payload = WhatsAppWebhookPayload.model_validate(raw_payload)
        return [
            status.status or "unknown"
            for value in payload.iter_values()
            for status in value.statuses
        ]

    async def send(self, outbound: OutboundMessage) -> OutboundSendResult:
        """Send a text message via the Graph API. to = external_user_id."""
        if outbound.channel != Channel.WHATSAPP:
            return OutboundSendResult(success=False, error="unsupported_channel")
        if not self.configured:
            logger.warning(
                "WhatsApp outbound not configured",
                extra={
                    "has_access_token": bool(self._access_token),
                    "has_phone_number_id": bool(self._phone_number_id),
                },
            )
            return OutboundSendResult(success=False, error="missing_env")

        url = f"{GRAPH_BASE_URL}/{self._graph_version}/{self._phone_number_id}/messages"
        body: dict[str, Any] = {
            "messaging_product": "whatsapp",
            "to": outbound.external_user_id,
            "type": "text",
            "text": {"body": outbound.text},
        }
        if outbound.reply_to_message_id:
            body["context"] = {"message_id": outbound.reply_to_message_id}
        headers = {"Authorization": f"Bearer {self._access_token}"}
        try:
            async with httpx.AsyncClient(
                timeout=self._timeout, transport=self._transport
            ) as client:
                resp = await client.post(url, json=body, headers=headers)
        except httpx.HTTPError as e:
            logger.error("WhatsApp outbound request failed: %s", e)
            return OutboundSendResult(success=False, error=str(e))

        if resp.status_code >= 400:
            logger.error(
                "WhatsApp outbound failed",
                extra={"status": resp.status_code, "body": resp.text[:500]},
            )
            return OutboundSendResult(success=False, error=f"HTTP {resp.status_code}")

        try:
            data = resp.json()
        except ValueError:
            data = {}
        messages = data.get("messages") or [{}]
        message_id = messages[0].get("id")
        logger.info(
            "WhatsApp outbound sent",
            extra={"to": outbound.external_user_id, "msg_id": message_id},
        )
        return OutboundSendResult(success=True, platform_message_id=message_id)
