"""Sessions API: inspect, reset, and read the message log of a sender."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from fastapi_pagination import Page, Params, create_page
from fastapi_pagination.ext.sqlalchemy import paginate
from sqlalchemy.orm import Session

from recepcion.core.app_state import AppState
from recepcion.db import get_db
from recepcion.routers.utils.dependencies import get_app_state
from recepcion.schemas.messages import MessageLogRead
from recepcion.schemas.session import ChatSession, SessionRead
from recepcion.services.message_log_service import MessageLogService

sessions_router = APIRouter(prefix="/sessions", tags=["Session"])


def _to_read(session: ChatSession, state: AppState) -> SessionRead:
    return SessionRead(
        sender_id=session.sender_id,
        state=session.state,
        context=session.context,
        updated_at=session.updated_at,
        reminder_pending=state.sessions.has_reminder(session.sender_id),
    )


@sessions_router.get("/{wa_id}", response_model=SessionRead)
def get_session(
    wa_id: str,
    state: AppState = Depends(get_app_state),
) -> SessionRead:
    """Current session; an unknown or expired sender reads as a fresh menu session."""
    return _to_read(state.sessions.get(wa_id), state)


@sessions_router.delete("/{wa_id}", response_model=SessionRead)
def reset_session(
    wa_id: str,
    state: AppState = Depends(get_app_state),
) -> SessionRead:
    """Operator reset (e.g. after a handoff). Cancels any pending payment reminder."""
    return _to_read(state.sessions.reset(wa_id), state)


@sessions_router.get("/{wa_id}/messages", response_model=Page[MessageLogRead])
def list_session_messages(
    wa_id: str,
    params: Params = Depends(),
    db: Session = Depends(get_db),
) -> Page[MessageLogRead]:
    """Inbound and outbound messages for a sender across cases, oldest first."""
    page = paginate(MessageLogService(db).history_query(wa_id=wa_id), params=params)
    rows = [MessageLogRead.model_validate(e) for e in page.items]
    return create_page(rows, total=page.total, params=params)
