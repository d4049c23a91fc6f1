"""Outbound command handlers."""

from recepcion.commands.outbound.send_outbound_command import SendOutboundCommand

__all__ = ["SendOutboundCommand"]
