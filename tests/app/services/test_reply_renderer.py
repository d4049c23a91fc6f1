"""Tests for ReplyRenderer and es-AR money formatting."""

import json
import random
from decimal import Decimal

import pytest

from recepcion.constants.replies import DefaultReplies
from recepcion.services.reply_renderer import ReplyRenderer, load_overrides, money_ars


@pytest.mark.parametrize(
    "amount, expected",
    [
        (Decimal("10000"), "10.000"),
        (Decimal("1234.5"), "1.234,50"),
        (Decimal("999"), "999"),
        (Decimal("1500000"), "1.500.000"),
    ],
)
def test_money_ars(amount, expected):
    assert money_ars(amount) == expected


@pytest.fixture
def renderer(settings):
    return ReplyRenderer(settings, overrides={}, rng=random.Random(1))


def test_every_default_template_renders(renderer):
    extra = {
        "label": "Cardiología",
        "os_name": "OSDE",
        "payment_link": "https://mp/checkout",
        "op_line": "",
        "receipt_id": "CEPA-20260101-AB12CD",
    }
    for key in DefaultReplies.TEMPLATES:
        assert renderer.render(key, **extra)


def test_menu_uses_clinic_name(renderer, settings):
    assert settings.clinic_name in renderer.render("menu")


def test_payment_link_includes_amount_and_policy(renderer):
    text = renderer.render("payment_link", payment_link="https://mp/checkout")
    assert "$10.000" in text
    assert "No reintegrable" in text
    assert "https://mp/checkout" in text


def test_deposit_line_follows_setting(renderer, settings):
    assert "Seña para confirmar" in renderer.render("booking_link", label="Holter")
    settings.deposit_required = False
    assert "Seña para confirmar" not in renderer.render("booking_link", label="Holter")


def test_variants_come_from_the_list(renderer, settings):
    variants = {
        v.format(clinic_name=settings.clinic_name) for v in DefaultReplies.TEMPLATES["closing"]
    }
    for _ in range(10):
        assert renderer.render("closing") in variants


def test_overrides_replace_defaults(settings):
    renderer = ReplyRenderer(
        settings, overrides={"closing": "Chau 👋", "contact": "Tel {clinic_phone}"}
    )
    assert renderer.render("closing") == "Chau 👋"
    assert renderer.render("contact") == f"Tel {settings.clinic_phone}"
    # Templates embedding the contact block pick up the override too.
    assert f"Tel {settings.clinic_phone}" in renderer.render(
        "confirmed", receipt_id="CEPA-1"
    )


def test_overrides_loaded_from_file(tmp_path, settings):
    path = tmp_path / "replies.json"
    path.write_text(json.dumps({"closing": ["A", "B"]}), encoding="utf-8")
    settings.replies_file = str(path)

    assert ReplyRenderer(settings).render("closing") in {"A", "B"}


def test_unreadable_overrides_are_ignored(tmp_path):
    path = tmp_path / "replies.json"
    path.write_text("[1, 2]", encoding="utf-8")
    assert load_overrides(str(path)) == {}
    assert load_overrides(str(tmp_path / "missing.json")) == {}
    assert load_overrides(None) == {}
