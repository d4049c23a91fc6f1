from fastapi import Depends, HTTPException, Request

from recepcion.core.app_state import AppState
from recepcion.schemas.case import Case


def get_app_state(request: Request) -> AppState:
    """FastAPI dependency returning the process-wide collaborators."""
    return request.app.state.recepcion


async def get_case_by_wa_id(
    wa_id: str,
    state: AppState = Depends(get_app_state),
) -> Case:
    """FastAPI dependency to get a case by sender id."""
    case = await state.ledger.get(wa_id)
    if case is None:
        raise HTTPException(status_code=404, detail="Case not found")
    return case
