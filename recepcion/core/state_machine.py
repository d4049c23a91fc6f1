"""
Conversation state machine.

``classify`` turns raw text into an ``InputClass`` without looking at the
session. ``ConversationEngine.step`` then dispatches on
``TABLE[state][input_class]``, falling back to the any-state rules and
finally to the state's default handler. Handlers never touch the session
store or the ledger: they describe the effects in a ``Transition`` and the
conversation service applies it.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any, Awaitable, Callable, Optional

from recepcion.adapters.mercadopago import MercadoPagoClient, PaymentProviderError
from recepcion.config import Settings
from recepcion.constants.catalog import (
    DEFAULT_ESTUDIO_LABEL,
    DEFAULT_TURNO_LABEL,
    SPECIALTIES,
    STUDIES,
    find_match,
)
from recepcion.core.ids import make_reference_id
from recepcion.core.text import (
    AESTHETICS_WORDS,
    AFFIRMATIVE_WORDS,
    CONTACT_WORDS,
    HANDOFF_WORDS,
    INSURANCE_WORDS,
    RESET_WORDS,
    contains_any,
    extract_operation_id,
    first_line,
    is_farewell,
    is_greeting,
    is_long_digit_string,
    is_paid_intent,
    normalize,
)
from recepcion.infra.logging_config import get_logger
from recepcion.schemas.case import Case, CaseStatus, EventType, FlowType, PatientType
from recepcion.schemas.payment import PaymentCheck
from recepcion.schemas.session import ChatSession, ConversationState
from recepcion.services.payment_verifier import PaymentVerification
from recepcion.services.reply_renderer import ReplyRenderer

logger = get_logger("state_machine")

_EDGE_PUNCTUATION = " .,;:!?¡¿"


class InputClass(StrEnum):
    EMPTY = "empty"
    MEDIA = "media"
    RESET = "reset"
    PAYMENT_REFERENCE = "payment_reference"
    AFFIRMATIVE = "affirmative"
    PAID = "paid"
    GREETING = "greeting"
    FAREWELL = "farewell"
    TEXT = "text"


@dataclass(frozen=True)
class ClassifiedInput:
    kind: InputClass
    raw: str
    norm: str
    operation_id: Optional[str] = None

    @property
    def bare(self) -> str:
        """Normalized text without surrounding punctuation."""
        return self.norm.strip(_EDGE_PUNCTUATION)

    @property
    def literal(self) -> str:
        """First non-blank line as typed, for free-text fields."""
        return first_line(self.raw).strip()


def classify(text: Optional[str], has_media: bool = False) -> ClassifiedInput:
    """Classify a message independently of the session state."""
    raw = text or ""
    norm = normalize(raw)
    operation_id = extract_operation_id(norm) if norm else None
    bare = norm.strip(_EDGE_PUNCTUATION)
    words = bare.split()

    if has_media:
        kind = InputClass.MEDIA
    elif not raw.strip():
        kind = InputClass.EMPTY
    elif not bare:
        kind = InputClass.TEXT
    elif bare in RESET_WORDS:
        kind = InputClass.RESET
    elif operation_id:
        kind = InputClass.PAYMENT_REFERENCE
    elif is_paid_intent(norm):
        kind = InputClass.PAID
    elif words[0].strip(_EDGE_PUNCTUATION) in AFFIRMATIVE_WORDS:
        kind = InputClass.AFFIRMATIVE
    elif is_greeting(norm):
        kind = InputClass.GREETING
    elif is_farewell(norm):
        kind = InputClass.FAREWELL
    else:
        kind = InputClass.TEXT
    return ClassifiedInput(kind=kind, raw=raw, norm=norm, operation_id=operation_id)


@dataclass
class LedgerEvent:
    event_type: EventType
    preview: str = ""
    payload: Optional[dict[str, Any]] = None


@dataclass
class Transition:
    """Effects of one step. ``next_state=None`` keeps the current state."""

    next_state: Optional[ConversationState] = None
    context_patch: dict[str, Any] = field(default_factory=dict)
    replies: list[str] = field(default_factory=list)
    case_patch: dict[str, Any] = field(default_factory=dict)
    events: list[LedgerEvent] = field(default_factory=list)
    reset: bool = False
    schedule_reminder: bool = False


@dataclass
class Turn:
    session: ChatSession
    case: Case
    inp: ClassifiedInput


Handler = Callable[["ConversationEngine", Turn], Awaitable[Transition]]

S = ConversationState
C = InputClass


class ConversationEngine:
    def __init__(
        self,
        settings: Settings,
        replies: ReplyRenderer,
        payments: MercadoPagoClient,
        verification: PaymentVerification,
    ) -> None:
        self.settings = settings
        self.replies = replies
        self.payments = payments
        self.verification = verification

    async def step(self, session: ChatSession, case: Case, inp: ClassifiedInput) -> Transition:
        handler = (
            TABLE[session.state].get(inp.kind)
            or ANY_STATE.get(inp.kind)
            or DEFAULTS[session.state]
        )
        transition = await handler(self, Turn(session=session, case=case, inp=inp))
        logger.debug(
            "Transition",
            extra={
                "wa_id": session.sender_id,
                "state": session.state.value,
                "input": inp.kind.value,
                "handler": handler.__name__,
                "next_state": (transition.next_state or session.state).value,
            },
        )
        return transition

    # -- shared building blocks ---------------------------------------------

    def _menu(self, reset: bool = True) -> Transition:
        return Transition(next_state=S.MENU, replies=[self.replies.render("menu")], reset=reset)

    def _booking(self, flow: FlowType, label: str) -> Transition:
        service_hint = ""
        if label in (DEFAULT_TURNO_LABEL, DEFAULT_ESTUDIO_LABEL):
            service_hint = "\n\n" + self.replies.render("ask_service_label")
        return Transition(
            next_state=S.AWAITING_BOOKING_DONE,
            context_patch={"flow": flow.value, "label": label},
            replies=[
                self.replies.render("booking_link", label=label, service_hint=service_hint)
            ],
            case_patch={
                "flow_type": flow,
                "service_label": label,
                "status": CaseStatus.AWAITING_MRTURNO,
            },
            events=[LedgerEvent(EventType.FLOW_SELECTED, label, {"flow": flow.value})],
        )

    def _handoff(self, turn: Turn) -> Transition:
        case_patch: dict[str, Any] = {"status": CaseStatus.HANDOFF}
        if turn.session.state == S.MENU:
            case_patch["flow_type"] = FlowType.RECEPCION
        return Transition(
            next_state=S.HANDOFF,
            replies=[self.replies.render("handoff_prompt")],
            case_patch=case_patch,
            events=[
                LedgerEvent(
                    EventType.HANDOFF_REQUESTED,
                    turn.inp.raw,
                    {"from_state": turn.session.state.value},
                )
            ],
        )

    def _service_label(self, turn: Turn) -> str:
        return (
            turn.session.context.get("label")
            or turn.case.service_label
            or DEFAULT_TURNO_LABEL
        )

    def _receipt_id(self) -> str:
        return make_reference_id(self.settings.receipt_prefix)

    async def _request_payment(self, turn: Turn, base: Transition) -> Transition:
        """Extend ``base`` with the deposit step: payment link, or direct confirmation."""
        if not self.settings.deposit_required:
            receipt_id = self._receipt_id()
            base.replies.append(self.replies.render("confirmed_no_deposit", receipt_id=receipt_id))
            base.case_patch["status"] = CaseStatus.CONFIRMED
            base.events.append(
                LedgerEvent(
                    EventType.PAYMENT_CONFIRMED,
                    receipt_id,
                    {"receipt_id": receipt_id, "deposit_required": False},
                )
            )
            base.next_state = S.CONFIRMED
            base.reset = True
            return base

        amount = self.settings.deposit_amount
        try:
            request = await self.payments.create_preference(
                turn.case.case_id, f"Seña - {self._service_label(turn)}", amount
            )
        except PaymentProviderError as e:
            logger.error(
                "Payment link creation failed: %s",
                e,
                extra={"case_id": turn.case.case_id, "wa_id": turn.case.wa_id},
            )
            base.replies.append(self.replies.render("payment_failed"))
            base.case_patch["status"] = CaseStatus.MP_FAILED
            base.events.append(
                LedgerEvent(EventType.PAYMENT_LINK_FAILED, str(e), {"error": str(e)})
            )
            base.next_state = S.HANDOFF
            return base

        base.replies.append(self.replies.render("payment_link", payment_link=request.link))
        base.context_patch.update(
            {
                "payment_link": request.link,
                "preference_id": request.preference_id,
                "reminded": False,
            }
        )
        base.case_patch.update(
            {
                "deposit_amount": amount,
                "payment_link": request.link,
                "status": CaseStatus.AWAITING_PAYMENT,
            }
        )
        base.events.append(
            LedgerEvent(
                EventType.PAYMENT_LINK,
                request.link,
                {"preference_id": request.preference_id, "amount": str(amount)},
            )
        )
        base.next_state = S.AWAITING_PAYMENT
        base.schedule_reminder = True
        return base

    def confirmed(self, check: PaymentCheck) -> Transition:
        receipt_id = self._receipt_id()
        payment_id = check.payment.payment_id if check.payment else None
        return Transition(
            next_state=S.CONFIRMED,
            replies=[self.replies.render("confirmed", receipt_id=receipt_id)],
            case_patch={"status": CaseStatus.CONFIRMED, "payment_op_id": payment_id},
            events=[
                LedgerEvent(
                    EventType.PAYMENT_CONFIRMED,
                    receipt_id,
                    {
                        "receipt_id": receipt_id,
                        "payment_id": payment_id,
                        "strategy": check.strategy,
                    },
                )
            ],
            reset=True,
        )

    # -- any state ----------------------------------------------------------

    async def reset_to_menu(self, turn: Turn) -> Transition:
        return self._menu()

    async def media_received(self, turn: Turn) -> Transition:
        return Transition(replies=[self.replies.render("media_received")])

    # -- menu ---------------------------------------------------------------

    def _menu_choice(self, turn: Turn) -> Optional[Transition]:
        norm = turn.inp.norm
        bare = turn.inp.bare
        if bare == "1":
            return self._booking(FlowType.TURNO, DEFAULT_TURNO_LABEL)
        if bare == "2":
            return self._booking(FlowType.ESTUDIO, DEFAULT_ESTUDIO_LABEL)
        if bare == "3":
            return Transition(replies=[self.replies.render("aesthetics")])
        if bare == "4":
            return Transition(replies=[self.replies.render("insurers")])
        if bare == "5":
            return Transition(replies=[self.replies.render("contact")])
        if bare == "6" or contains_any(norm, HANDOFF_WORDS):
            return self._handoff(turn)
        if contains_any(norm, INSURANCE_WORDS):
            return Transition(replies=[self.replies.render("insurers")])
        if contains_any(norm, CONTACT_WORDS):
            return Transition(replies=[self.replies.render("contact")])
        if contains_any(norm, AESTHETICS_WORDS):
            return Transition(replies=[self.replies.render("aesthetics")])
        study = find_match(norm, STUDIES)
        if study is not None:
            return self._booking(FlowType.ESTUDIO, study.label)
        specialty = find_match(norm, SPECIALTIES)
        if specialty is not None:
            return self._booking(FlowType.TURNO, specialty.label)
        if "turno" in norm:
            return self._booking(FlowType.TURNO, DEFAULT_TURNO_LABEL)
        if "estudio" in norm:
            return self._booking(FlowType.ESTUDIO, DEFAULT_ESTUDIO_LABEL)
        return None

    async def menu_text(self, turn: Turn) -> Transition:
        choice = self._menu_choice(turn)
        if choice is not None:
            return choice
        return Transition(
            replies=[self.replies.render("menu")],
            case_patch={"status": CaseStatus.FALLBACK},
        )

    async def menu_greeting(self, turn: Turn) -> Transition:
        # "hola, quiero turno de cardio" carries an intent past the greeting.
        choice = self._menu_choice(turn)
        if choice is not None:
            return choice
        return Transition(replies=[self.replies.render("greeting")])

    async def menu_farewell(self, turn: Turn) -> Transition:
        return Transition(replies=[self.replies.render("closing")])

    # -- awaiting_booking_done ----------------------------------------------

    async def booking_done(self, turn: Turn) -> Transition:
        return Transition(
            next_state=S.ASK_PATIENT_TYPE,
            replies=[self.replies.render("ask_patient_type")],
            case_patch={"status": CaseStatus.AWAITING_PATIENT_TYPE},
            events=[LedgerEvent(EventType.BOOKING_DONE, turn.inp.raw)],
        )

    async def booking_pending(self, turn: Turn) -> Transition:
        if contains_any(turn.inp.norm, HANDOFF_WORDS):
            return self._handoff(turn)
        study = find_match(turn.inp.norm, STUDIES)
        specialty = None if study is not None else find_match(turn.inp.norm, SPECIALTIES)
        if study is not None or specialty is not None:
            flow = FlowType.ESTUDIO if study is not None else FlowType.TURNO
            label = (study or specialty).label
            return Transition(
                context_patch={"flow": flow.value, "label": label},
                replies=[self.replies.render("service_noted", label=label)],
                case_patch={"flow_type": flow, "service_label": label},
                events=[LedgerEvent(EventType.FLOW_SELECTED, label, {"flow": flow.value})],
            )
        return Transition(replies=[self.replies.render("booking_reminder")])

    # -- ask_patient_type ---------------------------------------------------

    async def patient_type(self, turn: Turn) -> Transition:
        norm, bare = turn.inp.norm, turn.inp.bare
        if bare == "1" or "particular" in norm:
            base = Transition(
                case_patch={"patient_type": PatientType.PARTICULAR},
                events=[LedgerEvent(EventType.PATIENT_TYPE, turn.inp.raw, {"patient_type": "particular"})],
            )
            return await self._request_payment(turn, base)
        if bare == "2" or contains_any(norm, ("obra", "prepaga")):
            return Transition(
                next_state=S.ASK_OS_NAME,
                replies=[self.replies.render("ask_os_name")],
                case_patch={
                    "patient_type": PatientType.OBRA_SOCIAL,
                    "status": CaseStatus.AWAITING_OS_NAME,
                },
                events=[LedgerEvent(EventType.PATIENT_TYPE, turn.inp.raw, {"patient_type": "obra_social"})],
            )
        return Transition(replies=[self.replies.render("ask_patient_type")])

    # -- ask_os_name / ask_os_token -----------------------------------------

    async def os_name_retry(self, turn: Turn) -> Transition:
        return Transition(replies=[self.replies.render("ask_os_name_retry")])

    async def os_name(self, turn: Turn) -> Transition:
        name = turn.inp.literal
        if not turn.inp.bare or is_long_digit_string(turn.inp.norm):
            return await self.os_name_retry(turn)
        return Transition(
            next_state=S.ASK_OS_TOKEN,
            context_patch={"os_name": name},
            replies=[self.replies.render("ask_os_token", os_name=name)],
            case_patch={"os_name": name, "status": CaseStatus.AWAITING_OS_TOKEN},
        )

    async def os_token_retry(self, turn: Turn) -> Transition:
        os_name = turn.session.context.get("os_name") or turn.case.os_name or ""
        return Transition(replies=[self.replies.render("ask_os_token", os_name=os_name)])

    async def os_token(self, turn: Turn) -> Transition:
        if not turn.inp.bare:
            return await self.os_token_retry(turn)
        token = turn.inp.literal
        base = Transition(context_patch={"os_token": token}, case_patch={"os_token": token})
        return await self._request_payment(turn, base)

    # -- awaiting_payment ---------------------------------------------------

    async def payment_claimed(self, turn: Turn) -> Transition:
        operation_id = turn.inp.operation_id
        check = await self.verification.verify(
            turn.case.case_id, self.settings.deposit_amount, operation_id
        )
        if check.verified:
            return self.confirmed(check)
        op_line = f" (operación {operation_id})" if operation_id else ""
        return Transition(
            context_patch={"reported_op_id": operation_id} if operation_id else {},
            replies=[self.replies.render("payment_pending", op_line=op_line)],
            events=[
                LedgerEvent(
                    EventType.PAYMENT_UNVERIFIED,
                    turn.inp.raw,
                    {
                        "payment_id": operation_id,
                        "strategy": check.strategy,
                        "reason": check.reason,
                    },
                )
            ],
        )

    async def payment_media(self, turn: Turn) -> Transition:
        received = LedgerEvent(EventType.RECEIPT_MEDIA, turn.inp.raw, {"caption": turn.inp.raw or None})
        check = await self.verification.verify(
            turn.case.case_id, self.settings.deposit_amount, turn.inp.operation_id
        )
        if check.verified:
            transition = self.confirmed(check)
            transition.events.insert(0, received)
            return transition
        return Transition(
            next_state=S.HANDOFF,
            replies=[self.replies.render("manual_review")],
            case_patch={"status": CaseStatus.HANDOFF},
            events=[
                received,
                LedgerEvent(
                    EventType.HANDOFF_REQUESTED,
                    "receipt_review",
                    {"reason": "receipt_review", "verify_reason": check.reason},
                ),
            ],
        )

    async def payment_pending(self, turn: Turn) -> Transition:
        if contains_any(turn.inp.norm, HANDOFF_WORDS):
            return self._handoff(turn)
        return Transition(
            replies=[
                self.replies.render(
                    "payment_prompt",
                    payment_link=turn.session.context.get("payment_link")
                    or turn.case.payment_link
                    or "",
                )
            ]
        )

    # -- handoff ------------------------------------------------------------

    async def handoff_nudge(self, turn: Turn) -> Transition:
        return Transition(replies=[self.replies.render("handoff_prompt")])

    async def handoff_message(self, turn: Turn) -> Transition:
        if not turn.inp.bare:
            return await self.handoff_nudge(turn)
        return Transition(
            next_state=S.MENU,
            replies=[self.replies.render("handoff_ack")],
            events=[
                LedgerEvent(
                    EventType.HANDOFF_MESSAGE,
                    turn.inp.raw,
                    {"context": dict(turn.session.context)},
                )
            ],
            reset=True,
        )

    # -- confirmed (transient) ----------------------------------------------

    async def after_confirmation(self, turn: Turn) -> Transition:
        return self._menu()


E = ConversationEngine

# Rules that apply in every state unless the state's row overrides them.
ANY_STATE: dict[InputClass, Handler] = {
    C.EMPTY: E.reset_to_menu,
    C.RESET: E.reset_to_menu,
    C.MEDIA: E.media_received,
}

TABLE: dict[ConversationState, dict[InputClass, Handler]] = {
    S.MENU: {
        C.GREETING: E.menu_greeting,
        C.FAREWELL: E.menu_farewell,
    },
    S.AWAITING_BOOKING_DONE: {
        C.AFFIRMATIVE: E.booking_done,
    },
    S.ASK_PATIENT_TYPE: {},
    S.ASK_OS_NAME: {
        C.GREETING: E.os_name_retry,
        C.FAREWELL: E.os_name_retry,
    },
    S.ASK_OS_TOKEN: {
        C.GREETING: E.os_token_retry,
        C.FAREWELL: E.os_token_retry,
    },
    S.AWAITING_PAYMENT: {
        C.PAYMENT_REFERENCE: E.payment_claimed,
        C.PAID: E.payment_claimed,
        C.AFFIRMATIVE: E.payment_claimed,
        C.MEDIA: E.payment_media,
    },
    S.HANDOFF: {
        C.GREETING: E.handoff_nudge,
        C.FAREWELL: E.handoff_nudge,
    },
    S.CONFIRMED: {},
}

DEFAULTS: dict[ConversationState, Handler] = {
    S.MENU: E.menu_text,
    S.AWAITING_BOOKING_DONE: E.booking_pending,
    S.ASK_PATIENT_TYPE: E.patient_type,
    S.ASK_OS_NAME: E.os_name,
    S.ASK_OS_TOKEN: E.os_token,
    S.AWAITING_PAYMENT: E.payment_pending,
    S.HANDOFF: E.handoff_message,
    S.CONFIRMED: E.after_confirmation,
}
