"""
Mercado Pago adapter.

Thin wrapper around the official SDK: create a checkout preference for a
case deposit, fetch a payment by id, search payments by external reference.
The SDK is synchronous, so calls run in the threadpool.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Any, Optional

import mercadopago
from starlette.concurrency import run_in_threadpool

from recepcion.infra.logging_config import get_logger
from recepcion.schemas.payment import PaymentRecord, PaymentRequest

logger = get_logger("mercadopago_adapter")


class PaymentProviderError(RuntimeError):
    """Provider unreachable, misconfigured or returned an error status."""


class MercadoPagoClient:
    def __init__(
        self,
        access_token: Optional[str],
        notification_url: Optional[str] = None,
        back_url: Optional[str] = None,
        sdk: Optional[Any] = None,
    ) -> None:
        self._access_token = access_token
        self._notification_url = notification_url
        self._back_url = back_url
        self._sdk = sdk

    @property
    def configured(self) -> bool:
        return bool(self._sdk is not None or self._access_token)

    def _get_sdk(self) -> Any:
        if self._sdk is None:
            if not self._access_token:
                raise PaymentProviderError("MP_ACCESS_TOKEN is not configured")
            self._sdk = mercadopago.SDK(self._access_token)
        return self._sdk

    @staticmethod
    def _unwrap(result: Any, action: str) -> dict[str, Any]:
        if not isinstance(result, dict):
            raise PaymentProviderError(f"{action}: unexpected SDK result")
        status = result.get("status")
        response = result.get("response") or {}
        if not isinstance(status, int) or status >= 400:
            message = response.get("message") if isinstance(response, dict) else None
            raise PaymentProviderError(f"{action}: HTTP {status} {message or ''}".strip())
        return response

    def _create_preference_sync(
        self, case_id: str, title: str, amount: Decimal
    ) -> PaymentRequest:
        data: dict[str, Any] = {
            "items": [
                {
                    "id": case_id,
                    "title": title,
                    "quantity": 1,
                    "currency_id": "ARS",
                    "unit_price": float(amount),
                }
            ],
            "external_reference": case_id,
            "metadata": {"case_id": case_id},
        }
        if self._notification_url:
            data["notification_url"] = self._notification_url
        if self._back_url:
            data["back_urls"] = {
                "success": self._back_url,
                "pending": self._back_url,
                "failure": self._back_url,
            }
        try:
            result = self._get_sdk().preference().create(data)
        except PaymentProviderError:
            raise
        except Exception as e:
            raise PaymentProviderError(f"create_preference: {e}") from e
        response = self._unwrap(result, "create_preference")
        link = response.get("init_point") or response.get("sandbox_init_point")
        if not link or not response.get("id"):
            raise PaymentProviderError("create_preference: response without init_point")
        return PaymentRequest(
            preference_id=str(response["id"]),
            link=link,
            external_reference=case_id,
            amount=amount,
        )

    def _get_payment_sync(self, payment_id: str) -> Optional[PaymentRecord]:
        try:
            result = self._get_sdk().payment().get(payment_id)
        except PaymentProviderError:
            raise
        except Exception as e:
            raise PaymentProviderError(f"get_payment: {e}") from e
        if isinstance(result, dict) and result.get("status") == 404:
            return None
        return PaymentRecord.from_provider(self._unwrap(result, "get_payment"))

    def _search_payments_sync(self, external_reference: str) -> list[PaymentRecord]:
        filters = {
            "external_reference": external_reference,
            "sort": "date_created",
            "criteria": "desc",
            "limit": 10,
        }
        try:
            result = self._get_sdk().payment().search(filters)
        except PaymentProviderError:
            raise
        except Exception as e:
            raise PaymentProviderError(f"search_payments: {e}") from e
        response = self._unwrap(result, "search_payments")
        return [PaymentRecord.from_provider(p) for p in response.get("results") or []]

    async def create_preference(
        self, case_id: str, title: str, amount: Decimal
    ) -> PaymentRequest:
        """Create a checkout preference with ``external_reference = case_id``."""
        request = await run_in_threadpool(
            self._create_preference_sync, case_id, title, amount
        )
        logger.info(
            "Payment preference created",
            extra={"case_id": case_id, "preference_id": request.preference_id},
        )
        return request

    async def get_payment(self, payment_id: str) -> Optional[PaymentRecord]:
        """Payment by provider id, None when it does not exist."""
        return await run_in_threadpool(self._get_payment_sync, payment_id)

    async def search_payments(self, external_reference: str) -> list[PaymentRecord]:
        """Payments for a reference, most recent first."""
        return await run_in_threadpool(self._search_payments_sync, external_reference)
