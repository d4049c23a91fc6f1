from recepcion.models.message_log import MessageLogEntry

__all__ = [
    "MessageLogEntry",
]
