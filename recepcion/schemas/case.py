"""Case ledger schemas: one Case per sender, append-only CaseEvents."""

from __future__ import annotations

import json
from datetime import datetime, timezone
from decimal import Decimal
from enum import StrEnum
from typing import Any, Optional
from uuid import uuid4

from pydantic import BaseModel, Field

PREVIEW_MAX_CHARS = 120


def _now() -> datetime:
    return datetime.now(timezone.utc)


def preview(text: Optional[str], limit: int = PREVIEW_MAX_CHARS) -> str:
    """Single-line, length-capped preview of user text."""
    return " ".join((text or "").split())[:limit]


class FlowType(StrEnum):
    TURNO = "turno"
    ESTUDIO = "estudio"
    RECEPCION = "recepcion"


class PatientType(StrEnum):
    UNSET = "unset"
    PARTICULAR = "particular"
    OBRA_SOCIAL = "obra_social"


class CaseStatus(StrEnum):
    LEAD = "lead"
    AWAITING_MRTURNO = "awaiting_mrturno"
    AWAITING_PATIENT_TYPE = "awaiting_patient_type"
    AWAITING_OS_NAME = "awaiting_os_name"
    AWAITING_OS_TOKEN = "awaiting_os_token"
    AWAITING_PAYMENT = "awaiting_payment"
    MP_FAILED = "mp_failed"
    CONFIRMED = "confirmed"
    HANDOFF = "handoff"
    FALLBACK = "fallback"


class EventType(StrEnum):
    CASE_CREATED = "case_created"
    FLOW_SELECTED = "flow_selected"
    BOOKING_DONE = "booking_done"
    PATIENT_TYPE = "patient_type"
    PAYMENT_LINK = "payment_link"
    PAYMENT_LINK_FAILED = "payment_link_failed"
    PAYMENT_UNVERIFIED = "payment_unverified"
    PAYMENT_CONFIRMED = "payment_confirmed"
    PAYMENT_REMINDER = "payment_reminder"
    RECEIPT_MEDIA = "receipt_media"
    HANDOFF_REQUESTED = "handoff_requested"
    HANDOFF_MESSAGE = "handoff_message"
    CASE_ID_ADOPTED = "case_id_adopted"


# Ordered ledger columns. The sheet layout depends on this order.
CASE_COLUMNS: tuple[str, ...] = (
    "created_at",
    "case_id",
    "wa_id",
    "flow_type",
    "service_label",
    "patient_type",
    "os_name",
    "os_token",
    "deposit_amount",
    "payment_link",
    "payment_op_id",
    "status",
    "last_message",
    "updated_at",
)

EVENT_COLUMNS: tuple[str, ...] = (
    "event_id",
    "created_at",
    "case_id",
    "wa_id",
    "event_type",
    "preview",
    "payload",
)

# Fields a ledger patch may touch; identity and created_at never change.
PATCHABLE_FIELDS = frozenset(CASE_COLUMNS) - {"created_at", "case_id", "wa_id"}


class Case(BaseModel):
    """Durable record of one sender's booking conversation."""

    case_id: str
    wa_id: str
    flow_type: Optional[FlowType] = None
    patient_type: PatientType = PatientType.UNSET
    os_name: Optional[str] = None
    os_token: Optional[str] = None
    service_label: Optional[str] = None
    deposit_amount: Optional[Decimal] = None
    payment_link: Optional[str] = None
    payment_op_id: Optional[str] = None
    status: CaseStatus = CaseStatus.LEAD
    last_message: str = ""
    created_at: datetime = Field(default_factory=_now)
    updated_at: datetime = Field(default_factory=_now)

    def apply(self, patch: dict[str, Any]) -> "Case":
        """Return a copy with ``patch`` applied; unknown or identity keys are rejected."""
        illegal = set(patch) - PATCHABLE_FIELDS
        if illegal:
            raise ValueError(f"Fields cannot be patched: {sorted(illegal)}")
        data = self.model_dump()
        data.update(patch)
        if "last_message" in patch:
            data["last_message"] = preview(patch["last_message"])
        data["updated_at"] = _now()
        return Case.model_validate(data)

    def to_row(self) -> list[str]:
        values = self.model_dump(mode="json")
        return ["" if values[col] is None else str(values[col]) for col in CASE_COLUMNS]

    @classmethod
    def from_row(cls, row: list[str]) -> "Case":
        padded = list(row) + [""] * (len(CASE_COLUMNS) - len(row))
        data = {col: (padded[i] or None) for i, col in enumerate(CASE_COLUMNS)}
        data["last_message"] = data["last_message"] or ""
        data["patient_type"] = data["patient_type"] or PatientType.UNSET
        data["status"] = data["status"] or CaseStatus.LEAD
        return cls.model_validate(data)


class CaseEvent(BaseModel):
    """Append-only audit entry. Never mutated after creation."""

    model_config = {"frozen": True}

    event_id: str = Field(default_factory=lambda: uuid4().hex)
    created_at: datetime = Field(default_factory=_now)
    case_id: str
    wa_id: str
    event_type: EventType
    preview: str = ""
    payload: Optional[dict[str, Any]] = None

    def to_row(self) -> list[str]:
        return [
            self.event_id,
            self.created_at.isoformat(),
            self.case_id,
            self.wa_id,
            self.event_type.value,
            self.preview,
            json.dumps(self.payload, ensure_ascii=False, default=str)
            if self.payload
            else "",
        ]
