"""Short, readable identifiers for cases and receipts."""

from __future__ import annotations

import secrets
import time

_BASE36 = "0123456789ABCDEFGHIJKLMNOPQRSTUVWXYZ"


def _base36(value: int) -> str:
    if value == 0:
        return "0"
    digits = []
    while value:
        value, rem = divmod(value, 36)
        digits.append(_BASE36[rem])
    return "".join(reversed(digits))


def make_reference_id(prefix: str = "CEPA") -> str:
    """``<prefix>-<base36 epoch ms>-<6 hex>``, e.g. ``CEPA-M2X9K1AB-3F9A0C``."""
    stamp = _base36(int(time.time() * 1000))
    return f"{prefix}-{stamp}-{secrets.token_hex(3).upper()}"
