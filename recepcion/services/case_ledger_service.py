"""
Case ledger: get-or-create one Case per sender and mirror every change to the
ledger backend (Google Sheets or in-memory).

Rows are located through an in-memory cache keyed by wa_id, falling back to
a column search on a miss. Backend failures are logged and never propagate:
the case id is still assigned and cached locally, and the row is written on
the next successful call.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass
from typing import Any, Callable, Optional

from starlette.concurrency import run_in_threadpool

from recepcion.adapters.ledger_backends import LedgerBackend
from recepcion.core.ids import make_reference_id
from recepcion.infra.logging_config import get_logger
from recepcion.schemas.case import Case, CaseEvent, EventType, preview

logger = get_logger("case_ledger")


@dataclass
class _CachedCase:
    case: Case
    row_number: Optional[int] = None


class CaseLedgerService:
    """Owns the wa_id -> (case, row) cache. One instance per process."""

    def __init__(
        self,
        backend: LedgerBackend,
        id_factory: Optional[Callable[[], str]] = None,
    ) -> None:
        self._backend = backend
        self._id_factory = id_factory or make_reference_id
        self._cache: dict[str, _CachedCase] = {}
        self._lock = threading.RLock()

    @property
    def backend(self) -> LedgerBackend:
        return self._backend

    # -- sync internals (run in threadpool) ---------------------------------

    def _lookup(self, wa_id: str) -> Optional[_CachedCase]:
        cached = self._cache.get(wa_id)
        if cached is not None:
            return cached
        try:
            found = self._backend.find_case_row(wa_id)
        except Exception as e:
            logger.error("Ledger lookup failed: %s", e, extra={"wa_id": wa_id})
            return None
        if found is None:
            return None
        row_number, row = found
        entry = _CachedCase(case=Case.from_row(row), row_number=row_number)
        self._cache[wa_id] = entry
        return entry

    def _write(self, entry: _CachedCase) -> None:
        row = entry.case.to_row()
        adopted_from: Optional[str] = None
        try:
            if entry.row_number is None:
                found = self._backend.find_case_row(entry.case.wa_id)
                if found is not None:
                    # The stored row owns the identity; keep its case id.
                    stored = Case.from_row(found[1])
                    if stored.case_id != entry.case.case_id:
                        adopted_from = entry.case.case_id
                        logger.warning(
                            "Adopting stored case id",
                            extra={
                                "wa_id": entry.case.wa_id,
                                "case_id": stored.case_id,
                                "local_case_id": entry.case.case_id,
                            },
                        )
                        entry.case = entry.case.model_copy(
                            update={
                                "case_id": stored.case_id,
                                "created_at": stored.created_at,
                            }
                        )
                    entry.row_number = found[0]
                    row = entry.case.to_row()
            if entry.row_number is None:
                entry.row_number = self._backend.append_case_row(row)
            else:
                self._backend.update_case_row(entry.row_number, row)
        except Exception as e:
            logger.error(
                "Ledger write failed: %s",
                e,
                extra={"case_id": entry.case.case_id, "wa_id": entry.case.wa_id},
            )
        if adopted_from is not None:
            # Payment links may still reference the local id.
            self._append_event(
                CaseEvent(
                    case_id=entry.case.case_id,
                    wa_id=entry.case.wa_id,
                    event_type=EventType.CASE_ID_ADOPTED,
                    preview=adopted_from,
                    payload={"local_case_id": adopted_from},
                )
            )

    def _append_event(self, event: CaseEvent) -> None:
        try:
            self._backend.append_event_row(event.to_row())
        except Exception as e:
            logger.error(
                "Ledger event append failed: %s",
                e,
                extra={"case_id": event.case_id, "event_type": event.event_type},
            )

    def _get_or_create_sync(self, wa_id: str, last_message: str) -> Case:
        with self._lock:
            entry = self._lookup(wa_id)
            if entry is not None:
                return entry.case
            case = Case(
                case_id=self._id_factory(),
                wa_id=wa_id,
                last_message=preview(last_message),
            )
            entry = _CachedCase(case=case)
            self._cache[wa_id] = entry
            self._write(entry)
            case = entry.case
            self._append_event(
                CaseEvent(
                    case_id=case.case_id,
                    wa_id=wa_id,
                    event_type=EventType.CASE_CREATED,
                    preview=case.last_message,
                )
            )
            logger.info(
                "Case created", extra={"case_id": case.case_id, "wa_id": wa_id}
            )
            return case

    def _update_sync(self, wa_id: str, patch: dict[str, Any]) -> Case:
        with self._lock:
            entry = self._lookup(wa_id)
            if entry is None:
                raise KeyError(f"No case for {wa_id}")
            if patch:
                entry.case = entry.case.apply(patch)
            self._write(entry)
            return entry.case

    # -- public API ---------------------------------------------------------

    async def get_or_create(self, wa_id: str, last_message: str = "") -> Case:
        """Case for ``wa_id``; created (and logged) on first contact only."""
        return await run_in_threadpool(self._get_or_create_sync, wa_id, last_message)

    async def get(self, wa_id: str) -> Optional[Case]:
        entry = await run_in_threadpool(self._lookup, wa_id)
        return entry.case if entry is not None else None

    async def update(self, wa_id: str, patch: dict[str, Any]) -> Case:
        """Apply ``patch`` to the sender's case and write the row in place."""
        return await run_in_threadpool(self._update_sync, wa_id, patch)

    async def log_event(
        self,
        case: Case,
        event_type: EventType,
        preview_text: str = "",
        payload: Optional[dict[str, Any]] = None,
    ) -> CaseEvent:
        event = CaseEvent(
            case_id=case.case_id,
            wa_id=case.wa_id,
            event_type=event_type,
            preview=preview(preview_text),
            payload=payload,
        )
        await run_in_threadpool(self._append_event, event)
        return event
