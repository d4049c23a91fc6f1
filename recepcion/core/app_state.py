"""
Process-wide collaborators, built once per app from settings.

Held on ``app.state.recepcion`` and injected into routers and commands; there
is no module-level session map.
"""

from __future__ import annotations

import asyncio
import time
from datetime import timedelta
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError

from recepcion.adapters.ledger_backends import (
    LedgerBackend,
    MemoryLedgerBackend,
    SheetsLedgerBackend,
    load_service_account_info,
)
from recepcion.adapters.mercadopago import MercadoPagoClient
from recepcion.adapters.whatsapp import WhatsAppAdapter
from recepcion.commands.outbound.send_outbound_command import SendOutboundCommand
from recepcion.config import Settings, get_settings
from recepcion.core.dedup import MessageDeduplicator
from recepcion.core.ids import make_reference_id
from recepcion.core.session_store import SessionStore
from recepcion.core.state_machine import ConversationEngine
from recepcion.db import db_manager
from recepcion.infra.logging_config import get_logger
from recepcion.schemas.messages import InboundMessage, OutboundMessage, OutboundSendResult
from recepcion.schemas.session import ConversationState
from recepcion.services.case_ledger_service import CaseLedgerService
from recepcion.services.conversation_service import ConversationService
from recepcion.services.message_log_service import MessageLogService
from recepcion.services.payment_verifier import PaymentVerification
from recepcion.services.reply_renderer import ReplyRenderer

logger = get_logger("app_state")


def build_ledger_backend(settings: Settings) -> LedgerBackend:
    """Google Sheets when configured, in-memory otherwise."""
    if not settings.sheets_configured:
        logger.warning("Google Sheets not configured; using in-memory ledger")
        return MemoryLedgerBackend()
    info = None
    if settings.google_service_account_json:
        try:
            info = load_service_account_info(settings.google_service_account_json)
        except ValueError as e:
            logger.warning(
                "GOOGLE_SERVICE_ACCOUNT_JSON unreadable (%s); using in-memory ledger", e
            )
            return MemoryLedgerBackend()
    return SheetsLedgerBackend(
        spreadsheet_id=settings.google_sheets_id,
        service_account_info=info,
        service_account_file=settings.google_service_account_file,
        cases_tab=settings.sheets_cases_tab,
        events_tab=settings.sheets_events_tab,
    )


class AppState:
    def __init__(
        self,
        settings: Optional[Settings] = None,
        adapter: Optional[WhatsAppAdapter] = None,
        payments: Optional[MercadoPagoClient] = None,
        ledger_backend: Optional[LedgerBackend] = None,
        replies: Optional[ReplyRenderer] = None,
    ) -> None:
        self.settings = settings or get_settings()
        s = self.settings
        self.started_at = time.monotonic()

        self.adapter = adapter or WhatsAppAdapter(
            access_token=s.wa_access_token,
            phone_number_id=s.wa_phone_number_id,
            app_secret=s.meta_app_secret,
            graph_version=s.graph_version,
            timeout=s.wa_timeout_seconds,
        )
        self.payments = payments or MercadoPagoClient(
            access_token=s.mp_access_token,
            notification_url=s.mp_notification_url,
            back_url=s.mp_back_url,
        )
        self.verification = PaymentVerification(self.payments)
        self.sessions = SessionStore(ttl=timedelta(minutes=s.session_ttl_minutes))
        self.dedup = MessageDeduplicator(ttl=timedelta(minutes=s.dedup_ttl_minutes))
        self.ledger = CaseLedgerService(
            ledger_backend or build_ledger_backend(s),
            id_factory=lambda: make_reference_id(s.receipt_prefix),
        )
        self.replies = replies or ReplyRenderer(s)
        self.engine = ConversationEngine(s, self.replies, self.payments, self.verification)
        self.conversation = ConversationService(
            engine=self.engine,
            sessions=self.sessions,
            ledger=self.ledger,
            replies=self.replies,
            send=self.send,
            record_inbound=self.record_inbound,
            payment_window_seconds=s.payment_window_minutes * 60,
        )

        if not s.meta_app_secret:
            logger.warning("META_APP_SECRET not set; webhook signatures are not checked")
        if not self.adapter.configured:
            logger.warning("WhatsApp outbound not configured; replies will be skipped")
        if not self.payments.configured:
            logger.warning("MP_ACCESS_TOKEN not set; payments will divert to handoff")

    def uptime_seconds(self) -> int:
        return int(time.monotonic() - self.started_at)

    async def send(
        self,
        outbound: OutboundMessage,
        case_id: Optional[str] = None,
        state: Optional[ConversationState] = None,
    ) -> OutboundSendResult:
        """Send through the gateway with a short-lived DB session for the message log."""
        with db_manager.db_session() as db:
            return await SendOutboundCommand(db, self.adapter).deliver(
                outbound, case_id=case_id, state=state
            )

    def record_inbound(
        self,
        inbound: InboundMessage,
        case_id: Optional[str] = None,
        state: Optional[ConversationState] = None,
    ) -> None:
        """Log a patient message under its case. Database errors are logged, not raised."""
        try:
            with db_manager.db_session() as db:
                MessageLogService(db).record_inbound(inbound, case_id=case_id, state=state)
        except SQLAlchemyError as e:
            logger.error(
                "Inbound message log failed: %s",
                e,
                extra={"wa_id": inbound.external_user_id, "case_id": case_id},
            )

    def sweep(self) -> None:
        self.sessions.sweep()
        self.dedup.sweep()

    async def run_sweeper(self) -> None:
        """Evict expired sessions and dedup entries every SWEEP_INTERVAL_SECONDS."""
        interval = self.settings.sweep_interval_seconds
        while True:
            await asyncio.sleep(interval)
            try:
                self.sweep()
            except Exception:
                logger.exception("Sweep failed")

    def shutdown(self) -> None:
        self.sessions.cancel_all()
