"""
Webhook routes for inbound WhatsApp Cloud API deliveries.

Meta calls GET once to verify the subscription and POSTs every update. The
same handlers are also mounted at ``/api/whatsapp`` and ``/webhook``, the
callback URLs already registered with Meta.
"""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends, Query, Request
from fastapi.responses import PlainTextResponse

from recepcion.commands.webhooks import WhatsAppWebhookCommand
from recepcion.core.app_state import AppState
from recepcion.routers.utils.dependencies import get_app_state

router = APIRouter(prefix="/webhooks", tags=["webhooks"])
legacy_router = APIRouter(tags=["webhooks"])

LEGACY_PATHS = ("/api/whatsapp", "/webhook")


@router.get("/whatsapp", response_class=PlainTextResponse)
def whatsapp_verify(
    hub_mode: Optional[str] = Query(None, alias="hub.mode"),
    hub_verify_token: Optional[str] = Query(None, alias="hub.verify_token"),
    hub_challenge: Optional[str] = Query(None, alias="hub.challenge"),
    state: AppState = Depends(get_app_state),
) -> str:
    """Subscription handshake: echo ``hub.challenge`` when the verify token matches."""
    return WhatsAppWebhookCommand(state).verify_subscription(
        hub_mode, hub_verify_token, hub_challenge
    )


@router.post("/whatsapp")
async def whatsapp_webhook(
    request: Request,
    background_tasks: BackgroundTasks,
    state: AppState = Depends(get_app_state),
) -> dict[str, str]:
    """
    Receive WhatsApp webhook deliveries. Validate the signature, parse, return 200
    and process the messages in the background.
    """
    return await WhatsAppWebhookCommand(state).execute(request, background_tasks)


for _path in LEGACY_PATHS:
    legacy_router.add_api_route(
        _path,
        whatsapp_verify,
        methods=["GET"],
        response_class=PlainTextResponse,
        include_in_schema=False,
    )
    legacy_router.add_api_route(
        _path, whatsapp_webhook, methods=["POST"], include_in_schema=False
    )
