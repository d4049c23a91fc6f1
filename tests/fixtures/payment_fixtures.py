"""Mercado Pago payment records for verifier and flow tests."""

from decimal import Decimal

import pytest

from recepcion.schemas.payment import PaymentRecord


def payment_record(
    case_id,
    status="approved",
    amount="10000",
    payment_id="1319876543",
):
    return PaymentRecord(
        payment_id=payment_id,
        status=status,
        external_reference=case_id,
        amount=Decimal(amount),
    )


@pytest.fixture
def approved_payment():
    """Factory: approved payment for ``case_id`` with the default deposit."""

    def _build(case_id, **kwargs):
        return payment_record(case_id, **kwargs)

    return _build
