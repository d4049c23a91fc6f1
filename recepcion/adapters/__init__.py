"""Platform and provider adapters (WhatsApp, Mercado Pago, ledger backends)."""

from recepcion.adapters.base import BasePlatformAdapter
from recepcion.adapters.whatsapp import WhatsAppAdapter

__all__ = ["BasePlatformAdapter", "WhatsAppAdapter"]
