"""
Renders reply templates with clinic configuration.

Defaults come from ``DefaultReplies``; a JSON file (``REPLIES_FILE``) can
override any key with a string or a list of variants.
"""

from __future__ import annotations

import json
import random
from decimal import Decimal
from pathlib import Path
from typing import Any, Optional

from recepcion.config import Settings
from recepcion.constants.catalog import AESTHETICS, TOP_INSURERS
from recepcion.constants.replies import DefaultReplies
from recepcion.infra.logging_config import get_logger

logger = get_logger("reply_renderer")


def money_ars(amount: Decimal) -> str:
    """Format like es-AR: 10000 -> "10.000", 1234.5 -> "1.234,50"."""
    quantized = Decimal(amount).quantize(Decimal("0.01"))
    whole, cents = f"{quantized:,.2f}".split(".")
    whole = whole.replace(",", ".")
    return whole if cents == "00" else f"{whole},{cents}"


def load_overrides(path: Optional[str]) -> dict[str, Any]:
    if not path:
        return {}
    try:
        data = json.loads(Path(path).read_text(encoding="utf-8"))
    except (OSError, ValueError) as e:
        logger.warning("Reply overrides not loaded from %s: %s", path, e)
        return {}
    if not isinstance(data, dict):
        logger.warning("Reply overrides in %s must be a JSON object", path)
        return {}
    return data


class ReplyRenderer:
    def __init__(
        self,
        settings: Settings,
        overrides: Optional[dict[str, Any]] = None,
        rng: Optional[random.Random] = None,
    ) -> None:
        self._settings = settings
        self._templates: dict[str, Any] = dict(DefaultReplies.TEMPLATES)
        self._templates.update(
            overrides if overrides is not None else load_overrides(settings.replies_file)
        )
        self._rng = rng or random.Random()

    @property
    def amount(self) -> str:
        return money_ars(self._settings.deposit_amount)

    def _base_params(self) -> dict[str, Any]:
        s = self._settings
        params = {
            "clinic_name": s.clinic_name,
            "clinic_address": s.clinic_address,
            "clinic_hours": s.clinic_hours,
            "clinic_phone": s.clinic_phone,
            "clinic_email": s.clinic_email,
            "booking_url": s.booking_url,
            "amount": self.amount,
            "transferable_hours": s.deposit_transferable_hours,
            "insurers": "\n".join(f"• {name}" for name in TOP_INSURERS),
            "aesthetics": "\n".join(f"• {name}" for name in AESTHETICS),
            "service_hint": "",
        }
        params["deposit_policy"] = self._template("deposit_policy").format(**params)
        params["contact"] = self._template("contact").format(**params)
        params["menu"] = self._template("menu").format(**params)
        params["deposit_line"] = (
            f"\n\n✅ {params['deposit_policy']}" if s.deposit_required else ""
        )
        return params

    def _template(self, key: str) -> str:
        template = self._templates[key]
        if isinstance(template, list):
            return self._rng.choice(template)
        return template

    def render(self, key: str, **params: Any) -> str:
        """Render template ``key``; list templates pick a random variant."""
        values = self._base_params()
        values.update(params)
        return self._template(key).format(**values)
