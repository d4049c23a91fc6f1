import os
from decimal import Decimal, InvalidOperation
from pathlib import Path

from dotenv import load_dotenv
from pydantic import AliasChoices, Field, field_validator, model_validator
from typing import Optional
from pydantic_settings import BaseSettings

DEFAULT_DATABASE_URL = "sqlite:///./recepcion.db"
DEFAULT_TEST_DATABASE_URL = "sqlite:///:memory:"
DEFAULT_DEPOSIT_AMOUNT = Decimal("10000")

# Project root (parent of recepcion/) - used so .env is found regardless of cwd
_PROJECT_ROOT = Path(__file__).resolve().parent.parent

# Explicitly load .env into os.environ so it works in tests and subprocesses
load_dotenv(_PROJECT_ROOT / ".env")


def _parse_amount(text: str) -> str:
    """
    Normalize a typed amount to a plain decimal string.

    When both separators appear the last one is the decimal mark. A lone
    separator followed by exactly three digits groups thousands.
    """
    cleaned = "".join(ch for ch in text if ch.isdigit() or ch in ".,")
    if not any(ch.isdigit() for ch in cleaned):
        return str(DEFAULT_DEPOSIT_AMOUNT)
    if "." in cleaned and "," in cleaned:
        decimal_mark = "." if cleaned.rfind(".") > cleaned.rfind(",") else ","
        grouping = "," if decimal_mark == "." else "."
        return cleaned.replace(grouping, "").replace(decimal_mark, ".")
    for mark in ".,":
        if mark in cleaned:
            whole, _, fraction = cleaned.rpartition(mark)
            if cleaned.count(mark) > 1 or len(fraction) == 3:
                return cleaned.replace(mark, "")
            return f"{whole}.{fraction}"
    return cleaned


class Settings(BaseSettings):
    app_name: str = "recepcion-autopilot"
    database_url: Optional[str] = None  # Will be set dynamically
    environment: str = Field(
        default="development",
        validation_alias=AliasChoices("ENV", "ENVIRONMENT"),
    )
    log_level: str = Field(default="INFO", json_schema_extra={"env": "LOG_LEVEL"})
    port: int = Field(default=3000, json_schema_extra={"env": "PORT"})

    # WhatsApp Cloud API
    wa_verify_token: Optional[str] = Field(
        default=None, json_schema_extra={"env": "WA_VERIFY_TOKEN"}
    )
    wa_access_token: Optional[str] = Field(
        default=None, json_schema_extra={"env": "WA_ACCESS_TOKEN"}
    )
    wa_phone_number_id: Optional[str] = Field(
        default=None, json_schema_extra={"env": "WA_PHONE_NUMBER_ID"}
    )
    meta_app_secret: Optional[str] = Field(
        default=None, json_schema_extra={"env": "META_APP_SECRET"}
    )
    graph_version: str = Field(
        default="v22.0", json_schema_extra={"env": "GRAPH_VERSION"}
    )
    wa_timeout_seconds: float = Field(
        default=10.0, json_schema_extra={"env": "WA_TIMEOUT_SECONDS"}
    )

    # Deposit (seña)
    deposit_required: bool = Field(
        default=True, json_schema_extra={"env": "DEPOSIT_REQUIRED"}
    )
    deposit_amount: Decimal = Field(
        default=DEFAULT_DEPOSIT_AMOUNT, json_schema_extra={"env": "DEPOSIT_AMOUNT"}
    )
    payment_window_minutes: int = Field(
        default=60, json_schema_extra={"env": "PAYMENT_WINDOW_MINUTES"}
    )

    # Mercado Pago
    mp_access_token: Optional[str] = Field(
        default=None, json_schema_extra={"env": "MP_ACCESS_TOKEN"}
    )
    mp_notification_url: Optional[str] = Field(
        default=None, json_schema_extra={"env": "MP_NOTIFICATION_URL"}
    )
    mp_back_url: Optional[str] = Field(
        default=None, json_schema_extra={"env": "MP_BACK_URL"}
    )

    # Google Sheets ledger
    google_sheets_id: Optional[str] = Field(
        default=None, json_schema_extra={"env": "GOOGLE_SHEETS_ID"}
    )
    google_service_account_json: Optional[str] = Field(
        default=None, json_schema_extra={"env": "GOOGLE_SERVICE_ACCOUNT_JSON"}
    )
    google_service_account_file: Optional[str] = Field(
        default=None, json_schema_extra={"env": "GOOGLE_SERVICE_ACCOUNT_FILE"}
    )
    sheets_cases_tab: str = Field(
        default="Cases", json_schema_extra={"env": "SHEETS_CASES_TAB"}
    )
    sheets_events_tab: str = Field(
        default="Events", json_schema_extra={"env": "SHEETS_EVENTS_TAB"}
    )

    # Session / dedup expiry
    session_ttl_minutes: int = Field(
        default=60, ge=1, json_schema_extra={"env": "SESSION_TTL_MINUTES"}
    )
    dedup_ttl_minutes: int = Field(
        default=10, ge=1, json_schema_extra={"env": "DEDUP_TTL_MINUTES"}
    )
    sweep_interval_seconds: int = Field(
        default=60, ge=1, json_schema_extra={"env": "SWEEP_INTERVAL_SECONDS"}
    )

    # Clinic copy
    clinic_name: str = Field(
        default="CEPA Consultorios (Luján de Cuyo)",
        json_schema_extra={"env": "CLINIC_NAME"},
    )
    clinic_address: str = Field(
        default="Constitución 46, Luján de Cuyo, Mendoza",
        json_schema_extra={"env": "CLINIC_ADDRESS"},
    )
    clinic_hours: str = Field(
        default="Lunes a sábados · 07:30 a 21:00",
        json_schema_extra={"env": "CLINIC_HOURS"},
    )
    clinic_phone: str = Field(
        default="261-4987007", json_schema_extra={"env": "CLINIC_PHONE"}
    )
    clinic_email: str = Field(
        default="cepadiagnosticomedicointegral@gmail.com",
        json_schema_extra={"env": "CLINIC_EMAIL"},
    )
    booking_url: str = Field(
        default="https://www.mrturno.com/m/@cepa",
        json_schema_extra={"env": "BOOKING_URL"},
    )
    deposit_transferable_hours: int = Field(
        default=24, json_schema_extra={"env": "DEPOSIT_TRANSFERABLE_HOURS"}
    )
    receipt_prefix: str = Field(
        default="CEPA", json_schema_extra={"env": "RECEIPT_PREFIX"}
    )
    replies_file: Optional[str] = Field(
        default=None, json_schema_extra={"env": "REPLIES_FILE"}
    )

    @field_validator("deposit_amount", mode="before")
    @classmethod
    def parse_deposit_amount(cls, value):
        """Accept es-AR amounts ("$10.000", "1.500,50") and plain "1500.50"."""
        if isinstance(value, str):
            value = _parse_amount(value)
        try:
            amount = Decimal(str(value))
        except InvalidOperation:
            return DEFAULT_DEPOSIT_AMOUNT
        return amount if amount > 0 else DEFAULT_DEPOSIT_AMOUNT

    @model_validator(mode="before")
    def set_database_url(cls, values):
        """Set the database_url dynamically based on the environment field."""
        environment = values.get("environment", os.getenv("ENV", "development"))
        if environment.lower() == "test":
            values["database_url"] = os.getenv(
                "TEST_DATABASE_URL", DEFAULT_TEST_DATABASE_URL
            )
        else:
            values["database_url"] = os.getenv("DATABASE_URL", DEFAULT_DATABASE_URL)

        return values

    @property
    def is_production(self) -> bool:
        """Check if the current environment is production."""
        return self.environment.lower() == "production"

    @property
    def is_test(self) -> bool:
        """Check if the current environment is test."""
        return self.environment.lower() == "test"

    @property
    def sheets_configured(self) -> bool:
        return bool(
            self.google_sheets_id
            and (self.google_service_account_json or self.google_service_account_file)
        )

    class ConfigDict:
        env_file = str(_PROJECT_ROOT / ".env")
        env_file_encoding = "utf-8"
        extra = "allow"  # Allow extra environment variables


def get_settings() -> Settings:
    """Get application settings with required environment variables."""
    return Settings()
