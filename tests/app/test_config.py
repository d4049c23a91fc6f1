"""Tests for Settings parsing."""

from decimal import Decimal

import pytest

from recepcion.config import Settings


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("10000", Decimal("10000")),
        ("$10.000", Decimal("10000")),
        ("10.000", Decimal("10000")),
        ("1.500,50", Decimal("1500.50")),
        ("1500,50", Decimal("1500.50")),
        ("1500.50", Decimal("1500.50")),
        ("1,500.50", Decimal("1500.50")),
        ("1.234.567", Decimal("1234567")),
        ("$ 12.500,5", Decimal("12500.5")),
        ("", Decimal("10000")),
        ("gratis", Decimal("10000")),
        ("0", Decimal("10000")),
    ],
)
def test_deposit_amount_parsing(raw, expected):
    assert Settings(deposit_amount=raw).deposit_amount == expected


def test_deposit_amount_accepts_numbers():
    assert Settings(deposit_amount=2500).deposit_amount == Decimal("2500")
    assert Settings(deposit_amount=Decimal("2500.75")).deposit_amount == Decimal("2500.75")
