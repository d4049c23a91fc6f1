"""Payment request/record schemas shared by the Mercado Pago adapter and verifiers."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Any, Optional

from pydantic import BaseModel, Field


class PaymentRequest(BaseModel):
    """Checkout preference created for a case deposit."""

    preference_id: str
    link: str
    external_reference: str
    amount: Decimal


class PaymentRecord(BaseModel):
    """Subset of a provider payment needed to match it against a case."""

    payment_id: str
    status: Optional[str] = None
    external_reference: Optional[str] = None
    amount: Optional[Decimal] = None
    date_created: Optional[datetime] = None
    raw: dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def from_provider(cls, data: dict[str, Any]) -> "PaymentRecord":
        amount = data.get("transaction_amount")
        return cls(
            payment_id=str(data.get("id", "")),
            status=data.get("status"),
            external_reference=data.get("external_reference"),
            amount=Decimal(str(amount)) if amount is not None else None,
            date_created=data.get("date_created"),
            raw=data,
        )


class PaymentCheck(BaseModel):
    """Outcome of a verification attempt."""

    verified: bool
    strategy: str
    payment: Optional[PaymentRecord] = None
    reason: Optional[str] = None


class ConfirmPaymentRequest(BaseModel):
    """Operator-supplied payment reference."""

    payment_id: str = Field(min_length=1)
