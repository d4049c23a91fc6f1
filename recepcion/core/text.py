"""
Text normalization and keyword detection for inbound messages.

Matching always runs on ``normalize(text)``: first non-blank line, trimmed,
lower-cased, diacritics transliterated away, inner whitespace collapsed.
"""

from __future__ import annotations

import re
from typing import Iterable, Optional

from unidecode import unidecode

# Labeled reference: "id 123456", "op: 123456", "operacion nro 123456", "ID#123456".
_LABELED_OP_ID = re.compile(
    r"\b(?:id|op|operacion)\b(?:\s*(?:de\s+pago|nro|n|no|num|numero))?[\s:#.\-]*(\d{6,})\b"
)
_BARE_OP_ID = re.compile(r"(?<!\d)(\d{10,})(?!\d)")
_LONG_DIGITS = re.compile(r"^[\d\s.\-]*\d{6,}[\d\s.\-]*$")

RESET_WORDS = frozenset({"0", "menu", "inicio"})
AFFIRMATIVE_WORDS = frozenset({"listo", "ok", "dale", "ya"})
PAID_WORDS = (
    "pague",
    "pagado",
    "abone",
    "transferi",
    "comprobante",
    "ya hice el pago",
    "ya esta pago",
)
GREETINGS = (
    "hola",
    "holaa",
    "buen dia",
    "buenas",
    "buenas tardes",
    "buenas noches",
    "hey",
    "que tal",
)
THANKS = ("gracias", "muchas gracias", "mil gracias", "genial gracias", "graciass")
FAREWELLS = ("chau", "chao", "hasta luego", "nos vemos", "adios", "bye")
HANDOFF_WORDS = ("recep", "humano", "persona")
INSURANCE_WORDS = ("obra", "prepaga", "osde", "swiss")
CONTACT_WORDS = ("horario", "direccion", "ubic")
AESTHETICS_WORDS = ("estetica",)


def first_line(text: Optional[str]) -> str:
    """First non-blank line of ``text`` (empty string when there is none)."""
    for line in (text or "").splitlines():
        if line.strip():
            return line
    return ""


def normalize(text: Optional[str]) -> str:
    line = unidecode(first_line(text)).lower()
    return " ".join(line.split())


def extract_operation_id(norm: str) -> Optional[str]:
    """Payment operation id in normalized text, labeled first then any 10+ digit run."""
    labeled = _LABELED_OP_ID.search(norm)
    if labeled:
        return labeled.group(1)
    bare = _BARE_OP_ID.search(norm)
    if bare:
        return bare.group(1)
    return None


def is_long_digit_string(norm: str) -> bool:
    return bool(_LONG_DIGITS.match(norm))


def _starts_with_any(norm: str, words: Iterable[str]) -> bool:
    return any(re.match(rf"{re.escape(w)}\b", norm) for w in words)


def contains_any(norm: str, words: Iterable[str]) -> bool:
    return any(w in norm for w in words)


def is_greeting(norm: str) -> bool:
    return _starts_with_any(norm, GREETINGS)


def is_farewell(norm: str) -> bool:
    return contains_any(norm, THANKS) or contains_any(norm, FAREWELLS)


def is_paid_intent(norm: str) -> bool:
    return contains_any(norm, PAID_WORDS)
