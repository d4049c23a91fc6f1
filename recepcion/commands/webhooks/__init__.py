"""Webhook command handlers."""

from recepcion.commands.webhooks.whatsapp_command import WhatsAppWebhookCommand

__all__ = ["WhatsAppWebhookCommand"]
