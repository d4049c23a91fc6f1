"""Tests for text normalization and keyword detection."""

import pytest

from recepcion.core.text import (
    extract_operation_id,
    is_farewell,
    is_greeting,
    is_long_digit_string,
    is_paid_intent,
    normalize,
)


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("  Hola  ", "hola"),
        ("Buen Día", "buen dia"),
        ("\n\n  Cardiología \nsegunda linea", "cardiologia"),
        ("Dirección   y\thorarios", "direccion y horarios"),
        ("", ""),
        (None, ""),
    ],
)
def test_normalize(raw, expected):
    assert normalize(raw) == expected


@pytest.mark.parametrize(
    "raw",
    ["ÁRBOL  Ñandú", "  ya pagué ✅ ", "Operación Nº 123456", "\n\nOSDE\nmás"],
)
def test_normalize_is_idempotent(raw):
    once = normalize(raw)
    assert normalize(once) == once


@pytest.mark.parametrize(
    "text, expected",
    [
        ("id 123456789", "123456789"),
        ("op: 123456", "123456"),
        ("operacion nro 98765432", "98765432"),
        ("id#1234567", "1234567"),
        ("te paso el comprobante 12345678901", "12345678901"),
        ("mi dni es 30111222", None),
        ("id 12345", None),
        ("holter", None),
    ],
)
def test_extract_operation_id(text, expected):
    assert extract_operation_id(normalize(text)) == expected


def test_long_digit_string():
    assert is_long_digit_string("123456")
    assert is_long_digit_string("30111222")
    assert not is_long_digit_string("12345")
    assert not is_long_digit_string("osde 210")


def test_greeting_and_farewell_detection():
    assert is_greeting("hola")
    assert is_greeting("buenas tardes, quiero un turno")
    assert not is_greeting("holter")
    assert is_farewell("muchas gracias")
    assert is_farewell("ok chau")
    assert not is_farewell("cardiologia")


def test_paid_intent():
    assert is_paid_intent(normalize("Ya pagué"))
    assert is_paid_intent(normalize("te mando el comprobante"))
    assert not is_paid_intent(normalize("cuánto sale la seña?"))
