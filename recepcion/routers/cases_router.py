"""Cases API: a sender's ledger record, its message history and payment confirmation."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException
from fastapi_pagination import Page, Params, create_page
from fastapi_pagination.ext.sqlalchemy import paginate
from pydantic import BaseModel
from sqlalchemy.orm import Session

from recepcion.core.app_state import AppState
from recepcion.db import get_db
from recepcion.routers.utils.dependencies import get_app_state, get_case_by_wa_id
from recepcion.schemas.case import Case
from recepcion.schemas.messages import MessageLogRead
from recepcion.schemas.payment import ConfirmPaymentRequest, PaymentCheck
from recepcion.services.message_log_service import MessageLogService

cases_router = APIRouter(prefix="/cases", tags=["Case"])


class CaseConfirmation(BaseModel):
    case: Case
    check: PaymentCheck


@cases_router.get("/{wa_id}", response_model=Case)
async def get_case(case: Case = Depends(get_case_by_wa_id)) -> Case:
    """Get the case for a sender."""
    return case


@cases_router.get("/{wa_id}/messages", response_model=Page[MessageLogRead])
def list_case_messages(
    case: Case = Depends(get_case_by_wa_id),
    params: Params = Depends(),
    db: Session = Depends(get_db),
) -> Page[MessageLogRead]:
    """Messages logged under the sender's current case, oldest first."""
    page = paginate(MessageLogService(db).history_query(case_id=case.case_id), params=params)
    rows = [MessageLogRead.model_validate(e) for e in page.items]
    return create_page(rows, total=page.total, params=params)


@cases_router.post("/{wa_id}/confirm", response_model=CaseConfirmation)
async def confirm_case_payment(
    data: ConfirmPaymentRequest,
    case: Case = Depends(get_case_by_wa_id),
    state: AppState = Depends(get_app_state),
) -> CaseConfirmation:
    """
    Confirm the deposit with an operator-supplied payment id. The payment must be
    approved, reference this case and match the deposit amount; otherwise 409.
    """
    check, updated = await state.conversation.confirm_with_reference(
        case.wa_id, data.payment_id
    )
    if not check.verified:
        raise HTTPException(
            status_code=409,
            detail=f"Payment not verified: {check.reason or 'unknown'}",
        )
    return CaseConfirmation(case=updated or case, check=check)
