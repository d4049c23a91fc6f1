from decimal import Decimal
from typing import Optional

from pydantic import BaseModel


class AppGroup(BaseModel):
    name: str
    environment: str
    log_level: str
    port: int


class DatabaseGroup(BaseModel):
    database_driver: Optional[str] = None


class WhatsAppGroup(BaseModel):
    outbound_configured: bool
    verify_token_set: bool
    signature_check: bool
    graph_version: str


class PaymentsGroup(BaseModel):
    mercadopago_configured: bool
    deposit_required: bool
    deposit_amount: Decimal
    payment_window_minutes: int


class LedgerGroup(BaseModel):
    backend: str
    cases_tab: str
    events_tab: str


class TimingGroup(BaseModel):
    session_ttl_minutes: int
    dedup_ttl_minutes: int
    sweep_interval_seconds: int


class GeneralGroup(BaseModel):
    is_production: bool


class SystemSettingsGrouped(BaseModel):
    app: AppGroup
    database: DatabaseGroup
    general: GeneralGroup
    whatsapp: WhatsAppGroup
    payments: PaymentsGroup
    ledger: LedgerGroup
    timing: TimingGroup
