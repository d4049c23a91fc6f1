from fastapi import APIRouter, Depends
from sqlalchemy.engine import make_url
from sqlalchemy.exc import ArgumentError

from recepcion.adapters.ledger_backends import SheetsLedgerBackend
from recepcion.core.app_state import AppState
from recepcion.routers.utils.dependencies import get_app_state
from recepcion.schemas.system import (
    AppGroup,
    DatabaseGroup,
    GeneralGroup,
    LedgerGroup,
    PaymentsGroup,
    SystemSettingsGrouped,
    TimingGroup,
    WhatsAppGroup,
)

router = APIRouter(
    prefix="/system",
    tags=["system"],
    responses={404: {"description": "Not found"}},
)


@router.get("/settings", response_model=SystemSettingsGrouped)
def get_system_settings(
    state: AppState = Depends(get_app_state),
) -> SystemSettingsGrouped:
    """Return grouped, non-sensitive configuration settings for troubleshooting."""
    s = state.settings

    # Driver name only, never the URL (it may carry credentials)
    database_driver = None
    try:
        database_driver = make_url(s.database_url).get_backend_name()
    except ArgumentError:
        pass

    return SystemSettingsGrouped(
        app=AppGroup(
            name=s.app_name,
            environment=s.environment,
            log_level=s.log_level,
            port=s.port,
        ),
        database=DatabaseGroup(database_driver=database_driver),
        general=GeneralGroup(is_production=s.is_production),
        whatsapp=WhatsAppGroup(
            outbound_configured=state.adapter.configured,
            verify_token_set=bool(s.wa_verify_token),
            signature_check=bool(s.meta_app_secret),
            graph_version=s.graph_version,
        ),
        payments=PaymentsGroup(
            mercadopago_configured=state.payments.configured,
            deposit_required=s.deposit_required,
            deposit_amount=s.deposit_amount,
            payment_window_minutes=s.payment_window_minutes,
        ),
        ledger=LedgerGroup(
            backend="sheets"
            if isinstance(state.ledger.backend, SheetsLedgerBackend)
            else "memory",
            cases_tab=s.sheets_cases_tab,
            events_tab=s.sheets_events_tab,
        ),
        timing=TimingGroup(
            session_ttl_minutes=s.session_ttl_minutes,
            dedup_ttl_minutes=s.dedup_ttl_minutes,
            sweep_interval_seconds=s.sweep_interval_seconds,
        ),
    )
