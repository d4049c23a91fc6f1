"""
Payment confirmation against Mercado Pago.

Both verifiers apply the same rule: a payment confirms a case only when it is
``approved``, its ``external_reference`` is the case id and its amount equals
the expected deposit. Provider errors count as "not verified".
"""

from __future__ import annotations

from decimal import Decimal
from typing import Optional, Protocol

from recepcion.adapters.mercadopago import MercadoPagoClient, PaymentProviderError
from recepcion.infra.logging_config import get_logger
from recepcion.schemas.payment import PaymentCheck, PaymentRecord

logger = get_logger("payment_verifier")

APPROVED = "approved"
AMOUNT_TOLERANCE = Decimal("0.000001")


def payment_matches(
    payment: PaymentRecord, case_id: str, expected_amount: Decimal
) -> Optional[str]:
    """None when the payment confirms the case, else the reason it does not."""
    if payment.status != APPROVED:
        return f"status_{payment.status or 'unknown'}"
    if payment.external_reference != case_id:
        return "reference_mismatch"
    if payment.amount is None or abs(payment.amount - Decimal(expected_amount)) >= AMOUNT_TOLERANCE:
        return "amount_mismatch"
    return None


class PaymentVerifier(Protocol):
    strategy: str

    async def verify(
        self, case_id: str, expected_amount: Decimal, payment_id: Optional[str] = None
    ) -> PaymentCheck: ...


class ReferencePaymentVerifier:
    """Looks the payment up by the operation id the user or operator supplied."""

    strategy = "reference"

    def __init__(self, client: MercadoPagoClient) -> None:
        self._client = client

    async def verify(
        self, case_id: str, expected_amount: Decimal, payment_id: Optional[str] = None
    ) -> PaymentCheck:
        if not payment_id:
            return PaymentCheck(verified=False, strategy=self.strategy, reason="no_reference")
        try:
            payment = await self._client.get_payment(payment_id)
        except PaymentProviderError as e:
            logger.warning(
                "Payment lookup failed: %s", e,
                extra={"case_id": case_id, "payment_id": payment_id},
            )
            return PaymentCheck(verified=False, strategy=self.strategy, reason="lookup_error")
        if payment is None:
            return PaymentCheck(verified=False, strategy=self.strategy, reason="not_found")
        reason = payment_matches(payment, case_id, expected_amount)
        return PaymentCheck(
            verified=reason is None, strategy=self.strategy, payment=payment, reason=reason
        )


class SearchPaymentVerifier:
    """Checks the most recent payment carrying the case id as external reference."""

    strategy = "search"

    def __init__(self, client: MercadoPagoClient) -> None:
        self._client = client

    async def verify(
        self, case_id: str, expected_amount: Decimal, payment_id: Optional[str] = None
    ) -> PaymentCheck:
        try:
            payments = await self._client.search_payments(case_id)
        except PaymentProviderError as e:
            logger.warning("Payment search failed: %s", e, extra={"case_id": case_id})
            return PaymentCheck(verified=False, strategy=self.strategy, reason="lookup_error")
        if not payments:
            return PaymentCheck(verified=False, strategy=self.strategy, reason="not_found")
        latest = payments[0]
        reason = payment_matches(latest, case_id, expected_amount)
        return PaymentCheck(
            verified=reason is None, strategy=self.strategy, payment=latest, reason=reason
        )


class PaymentVerification:
    """Picks the reference verifier when an operation id is known, else search."""

    def __init__(self, client: MercadoPagoClient) -> None:
        self.reference = ReferencePaymentVerifier(client)
        self.search = SearchPaymentVerifier(client)

    def select(self, payment_id: Optional[str]) -> PaymentVerifier:
        return self.reference if payment_id else self.search

    async def verify(
        self, case_id: str, expected_amount: Decimal, payment_id: Optional[str] = None
    ) -> PaymentCheck:
        check = await self.select(payment_id).verify(case_id, expected_amount, payment_id)
        logger.info(
            "Payment verification",
            extra={
                "case_id": case_id,
                "strategy": check.strategy,
                "verified": check.verified,
                "reason": check.reason,
            },
        )
        return check
