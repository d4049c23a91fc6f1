"""
Runs one inbound message through the state machine and applies the result:
session update, ledger patch and events, reminder scheduling, replies.
"""

from __future__ import annotations

from typing import Awaitable, Callable, Optional

from recepcion.core.session_store import SessionStore
from recepcion.core.state_machine import ConversationEngine, Transition, classify
from recepcion.infra.logging_config import get_logger
from recepcion.schemas.case import Case, CaseStatus, EventType
from recepcion.schemas.messages import InboundMessage, OutboundMessage, OutboundSendResult
from recepcion.schemas.payment import PaymentCheck
from recepcion.schemas.session import ConversationState
from recepcion.services.case_ledger_service import CaseLedgerService
from recepcion.services.reply_renderer import ReplyRenderer

logger = get_logger("conversation_service")

SendFn = Callable[..., Awaitable[OutboundSendResult]]
RecordFn = Callable[[InboundMessage, Optional[str], Optional[ConversationState]], None]


class ConversationService:
    def __init__(
        self,
        engine: ConversationEngine,
        sessions: SessionStore,
        ledger: CaseLedgerService,
        replies: ReplyRenderer,
        send: SendFn,
        payment_window_seconds: float,
        record_inbound: Optional[RecordFn] = None,
    ) -> None:
        self.engine = engine
        self.sessions = sessions
        self.ledger = ledger
        self.replies = replies
        self._send = send
        self._payment_window_seconds = payment_window_seconds
        self._record_inbound = record_inbound

    async def handle(self, inbound: InboundMessage) -> list[str]:
        """Process one message end to end. Returns the replies that were sent."""
        wa_id = inbound.external_user_id
        async with self.sessions.lock(wa_id):
            case = await self.ledger.get_or_create(wa_id, inbound.text)
            session = self.sessions.get(wa_id)
            if self._record_inbound is not None:
                self._record_inbound(inbound, case.case_id, session.state)
            inp = classify(inbound.text, has_media=inbound.has_media)

            transition = await self.engine.step(session, case, inp)
            last_message = inbound.text or f"[{inbound.message_type}]"
            case = await self._apply(case, session.state, transition, last_message)

            state = _resulting_state(session.state, transition)
            for text in transition.replies:
                await self._reply(
                    wa_id, text, case.case_id, state, reply_to=inbound.message_id
                )
            return transition.replies

    async def _apply(
        self,
        case: Case,
        current: ConversationState,
        transition: Transition,
        last_message: str,
    ) -> Case:
        wa_id = case.wa_id
        if transition.reset:
            self.sessions.reset(wa_id)
        else:
            self.sessions.set(
                wa_id, transition.next_state or current, transition.context_patch
            )

        patch = dict(transition.case_patch)
        patch["last_message"] = last_message
        try:
            case = await self.ledger.update(wa_id, patch)
        except (KeyError, ValueError) as e:
            logger.error("Case patch rejected: %s", e, extra={"wa_id": wa_id})
        for event in transition.events:
            await self.ledger.log_event(case, event.event_type, event.preview, event.payload)

        if transition.schedule_reminder:
            reference = transition.context_patch.get("preference_id")
            self.sessions.schedule_reminder(
                wa_id,
                self._payment_window_seconds,
                lambda: self.send_payment_reminder(wa_id, reference),
            )
        return case

    async def _reply(
        self,
        wa_id: str,
        text: str,
        case_id: Optional[str],
        state: ConversationState,
        reply_to: Optional[str] = None,
    ) -> None:
        result = await self._send(
            OutboundMessage(external_user_id=wa_id, text=text, reply_to_message_id=reply_to),
            case_id=case_id,
            state=state,
        )
        if not result.success:
            logger.warning(
                "Reply not delivered", extra={"wa_id": wa_id, "error": result.error}
            )

    async def send_payment_reminder(self, wa_id: str, reference: Optional[str]) -> bool:
        """Remind once, only while the same payment is still pending."""
        async with self.sessions.lock(wa_id):
            return await self._remind(wa_id, reference)

    async def _remind(self, wa_id: str, reference: Optional[str]) -> bool:
        session = self.sessions.peek(wa_id)
        if (
            session is None
            or session.state != ConversationState.AWAITING_PAYMENT
            or session.context.get("preference_id") != reference
            or session.context.get("reminded")
        ):
            return False
        self.sessions.set(wa_id, ConversationState.AWAITING_PAYMENT, {"reminded": True})
        case = await self.ledger.get(wa_id)
        await self._reply(
            wa_id,
            self.replies.render(
                "payment_reminder", payment_link=session.context.get("payment_link", "")
            ),
            case.case_id if case is not None else None,
            ConversationState.AWAITING_PAYMENT,
        )
        if case is not None:
            await self.ledger.log_event(
                case, EventType.PAYMENT_REMINDER, payload={"preference_id": reference}
            )
        logger.info("Payment reminder sent", extra={"wa_id": wa_id})
        return True

    async def confirm_with_reference(
        self, wa_id: str, payment_id: str
    ) -> tuple[PaymentCheck, Optional[Case]]:
        """Operator confirmation: same reference verifier, finalize when approved."""
        async with self.sessions.lock(wa_id):
            return await self._confirm(wa_id, payment_id)

    async def _confirm(
        self, wa_id: str, payment_id: str
    ) -> tuple[PaymentCheck, Optional[Case]]:
        case = await self.ledger.get(wa_id)
        if case is None:
            raise KeyError(wa_id)
        check = await self.engine.verification.reference.verify(
            case.case_id, self.engine.settings.deposit_amount, payment_id
        )
        if not check.verified:
            return check, case
        if case.status == CaseStatus.CONFIRMED:
            return check, case
        session = self.sessions.get(wa_id)
        transition = self.engine.confirmed(check)
        case = await self._apply(
            case, session.state, transition, last_message=f"[operator] {payment_id}"
        )
        state = _resulting_state(session.state, transition)
        for text in transition.replies:
            await self._reply(wa_id, text, case.case_id, state)
        return check, await self.ledger.get(wa_id)


def _resulting_state(current: ConversationState, transition: Transition) -> ConversationState:
    if transition.reset:
        return ConversationState.MENU
    return transition.next_state or current
