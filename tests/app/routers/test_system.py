"""Tests for health, privacy and system settings routes."""


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    body = response.json()
    assert body["ok"] is True
    assert body["uptime_s"] >= 0


def test_privacy_page(client, settings):
    response = client.get("/privacidad")
    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/html")
    assert settings.clinic_email in response.text


def test_system_settings_hide_secrets(client):
    response = client.get("/system/settings")

    assert response.status_code == 200
    body = response.json()
    assert body["database"]["database_driver"] == "sqlite"
    assert body["whatsapp"]["outbound_configured"] is True
    assert body["whatsapp"]["verify_token_set"] is True
    assert body["whatsapp"]["signature_check"] is False
    assert body["payments"]["mercadopago_configured"] is True
    assert body["ledger"]["backend"] == "memory"
    assert "verify-me" not in response.text
    assert "wa-token" not in response.text
    assert "TEST-mp-token" not in response.text
