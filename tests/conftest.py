import os

os.environ["ENV"] = "test"
os.environ.setdefault("LOG_LEVEL", "WARNING")

import random  # noqa: E402
from unittest.mock import AsyncMock, MagicMock  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from recepcion.adapters.ledger_backends import MemoryLedgerBackend  # noqa: E402
from recepcion.adapters.mercadopago import MercadoPagoClient  # noqa: E402
from recepcion.adapters.whatsapp import WhatsAppAdapter  # noqa: E402
from recepcion.config import Settings  # noqa: E402
from recepcion.core.app_state import AppState  # noqa: E402
from recepcion.db import Base, db_manager, get_db  # noqa: E402
from recepcion.schemas.messages import OutboundSendResult  # noqa: E402
from recepcion.schemas.payment import PaymentRequest  # noqa: E402
from recepcion.services.reply_renderer import ReplyRenderer  # noqa: E402

pytest_plugins = [
    "tests.fixtures.whatsapp_fixtures",
    "tests.fixtures.payment_fixtures",
]


@pytest.fixture(scope="function")
def db():
    """SQLite session with the message-log tables created fresh for each test."""
    db_manager.create_all()
    session = db_manager.session_factory()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=db_manager.engine)


@pytest.fixture
def settings():
    return Settings(
        wa_verify_token="verify-me",
        wa_access_token="wa-token",
        wa_phone_number_id="1029384756",
        meta_app_secret=None,
        mp_access_token="TEST-mp-token",
        google_sheets_id=None,
        deposit_required=True,
        deposit_amount="10000",
        payment_window_minutes=60,
        replies_file=None,
    )


@pytest.fixture
def wa_adapter(settings):
    """Real adapter (signature + parsing) with the Graph API send mocked out."""
    adapter = WhatsAppAdapter(
        access_token=settings.wa_access_token,
        phone_number_id=settings.wa_phone_number_id,
        app_secret=settings.meta_app_secret,
    )
    adapter.send = AsyncMock(
        return_value=OutboundSendResult(success=True, platform_message_id="wamid.OUT")
    )
    return adapter


@pytest.fixture
def mp_client(faker):
    client = MagicMock(spec=MercadoPagoClient)
    client.configured = True

    async def create_preference(case_id, title, amount):
        return PaymentRequest(
            preference_id=faker.uuid4(),
            link=f"https://www.mercadopago.com.ar/checkout/v1/redirect?pref_id={case_id}",
            external_reference=case_id,
            amount=amount,
        )

    client.create_preference = AsyncMock(side_effect=create_preference)
    client.get_payment = AsyncMock(return_value=None)
    client.search_payments = AsyncMock(return_value=[])
    return client


@pytest.fixture
def ledger_backend():
    return MemoryLedgerBackend()


@pytest.fixture
def app_state(db, settings, wa_adapter, mp_client, ledger_backend):
    return AppState(
        settings,
        adapter=wa_adapter,
        payments=mp_client,
        ledger_backend=ledger_backend,
        replies=ReplyRenderer(settings, overrides={}, rng=random.Random(7)),
    )


@pytest.fixture
def client(db, app_state):
    """Client with db override and testing mode (no background sweeper)."""
    from recepcion.main import create_app

    app = create_app(testing=True, state=app_state)

    def override_get_db():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()
