"""
Outbound API: operators send a WhatsApp text to a user.

Resolves the adapter, sends, logs the message under the sender's case and
returns {"data": {...}}.
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from recepcion.commands.outbound import SendOutboundCommand
from recepcion.core.app_state import AppState
from recepcion.db import get_db
from recepcion.routers.utils.dependencies import get_app_state
from recepcion.schemas.messages import OutboundMessage

router = APIRouter(prefix="/outbound", tags=["outbound"])


@router.post("", response_model=dict[str, Any])
async def send_outbound(
    body: OutboundMessage,
    db: Session = Depends(get_db),
    state: AppState = Depends(get_app_state),
) -> dict[str, Any]:
    """Send an outbound message. 400 when WhatsApp is not configured, 502 on platform failure."""
    case = await state.ledger.get(body.external_user_id)
    session = state.sessions.peek(body.external_user_id)
    return await SendOutboundCommand(db, state.adapter).execute(
        body,
        case_id=case.case_id if case is not None else None,
        state=session.state if session is not None else None,
    )
