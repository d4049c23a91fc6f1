from recepcion.services.case_ledger_service import CaseLedgerService
from recepcion.services.message_log_service import MessageLogService

__all__ = [
    "CaseLedgerService",
    "MessageLogService",
]
