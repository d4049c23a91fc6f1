"""
Row-level storage backends for the case ledger.

Both backends speak in ordered rows (see ``CASE_COLUMNS`` / ``EVENT_COLUMNS``)
and 1-based sheet row numbers, row 1 being the header. ``SheetsLedgerBackend``
talks to Google Sheets through gspread; ``MemoryLedgerBackend`` keeps the same
layout in process and is used when no spreadsheet is configured.
"""

from __future__ import annotations

import base64
import json
import re
import threading
from typing import Any, Optional, Protocol, Sequence

import gspread
from google.oauth2.service_account import Credentials
from gspread.utils import rowcol_to_a1

from recepcion.infra.logging_config import get_logger
from recepcion.schemas.case import CASE_COLUMNS, EVENT_COLUMNS

logger = get_logger("ledger_backends")

SCOPES = ["https://www.googleapis.com/auth/spreadsheets"]
WA_ID_COLUMN = CASE_COLUMNS.index("wa_id") + 1
_UPDATED_ROW = re.compile(r"![A-Z]+(\d+)")


class LedgerWriteError(RuntimeError):
    """Spreadsheet unreachable or rejected a read/write."""


class LedgerBackend(Protocol):
    def find_case_row(self, wa_id: str) -> Optional[tuple[int, list[str]]]: ...
    def append_case_row(self, row: Sequence[str]) -> int: ...
    def update_case_row(self, row_number: int, row: Sequence[str]) -> None: ...
    def append_event_row(self, row: Sequence[str]) -> None: ...


class MemoryLedgerBackend:
    """In-process ledger with the spreadsheet's row layout."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self.cases: list[list[str]] = [list(CASE_COLUMNS)]
        self.events: list[list[str]] = [list(EVENT_COLUMNS)]

    def find_case_row(self, wa_id: str) -> Optional[tuple[int, list[str]]]:
        with self._lock:
            for index, row in enumerate(self.cases[1:], start=2):
                if row[WA_ID_COLUMN - 1] == wa_id:
                    return index, list(row)
        return None

    def append_case_row(self, row: Sequence[str]) -> int:
        with self._lock:
            self.cases.append(list(row))
            return len(self.cases)

    def update_case_row(self, row_number: int, row: Sequence[str]) -> None:
        with self._lock:
            self.cases[row_number - 1] = list(row)

    def append_event_row(self, row: Sequence[str]) -> None:
        with self._lock:
            self.events.append(list(row))


def load_service_account_info(raw: str) -> dict[str, Any]:
    """Service account JSON given raw or base64-encoded."""
    text = raw.strip()
    if not text.startswith("{"):
        text = base64.b64decode(text).decode("utf-8")
    return json.loads(text)


class SheetsLedgerBackend:
    """Google Sheets ledger: one worksheet for cases, one for events."""

    def __init__(
        self,
        spreadsheet_id: str,
        service_account_info: Optional[dict[str, Any]] = None,
        service_account_file: Optional[str] = None,
        cases_tab: str = "Cases",
        events_tab: str = "Events",
        client: Optional[gspread.Client] = None,
    ) -> None:
        self._spreadsheet_id = spreadsheet_id
        self._service_account_info = service_account_info
        self._service_account_file = service_account_file
        self._cases_tab = cases_tab
        self._events_tab = events_tab
        self._client = client
        self._cases_ws: Optional[gspread.Worksheet] = None
        self._events_ws: Optional[gspread.Worksheet] = None
        self._lock = threading.Lock()

    def _get_client(self) -> gspread.Client:
        if self._client is None:
            if self._service_account_info:
                creds = Credentials.from_service_account_info(
                    self._service_account_info, scopes=SCOPES
                )
            elif self._service_account_file:
                creds = Credentials.from_service_account_file(
                    self._service_account_file, scopes=SCOPES
                )
            else:
                raise LedgerWriteError("Google service account is not configured")
            self._client = gspread.authorize(creds)
        return self._client

    def _worksheet(self, title: str, headers: Sequence[str]) -> gspread.Worksheet:
        spreadsheet = self._get_client().open_by_key(self._spreadsheet_id)
        try:
            ws = spreadsheet.worksheet(title)
        except gspread.exceptions.WorksheetNotFound:
            ws = spreadsheet.add_worksheet(title=title, rows=1000, cols=len(headers))
            logger.info("Ledger worksheet created: %s", title)
        if ws.row_values(1) != list(headers):
            end = rowcol_to_a1(1, len(headers))
            ws.update(range_name=f"A1:{end}", values=[list(headers)])
        return ws

    def _cases(self) -> gspread.Worksheet:
        with self._lock:
            if self._cases_ws is None:
                self._cases_ws = self._worksheet(self._cases_tab, CASE_COLUMNS)
            return self._cases_ws

    def _events(self) -> gspread.Worksheet:
        with self._lock:
            if self._events_ws is None:
                self._events_ws = self._worksheet(self._events_tab, EVENT_COLUMNS)
            return self._events_ws

    def find_case_row(self, wa_id: str) -> Optional[tuple[int, list[str]]]:
        try:
            ws = self._cases()
            column = ws.col_values(WA_ID_COLUMN)
            for row_number, value in enumerate(column, start=1):
                if row_number > 1 and (value or "").strip() == wa_id:
                    return row_number, ws.row_values(row_number)
        except gspread.exceptions.GSpreadException as e:
            raise LedgerWriteError(f"find_case_row: {e}") from e
        return None

    def append_case_row(self, row: Sequence[str]) -> int:
        try:
            ws = self._cases()
            response = ws.append_row(list(row), value_input_option="RAW")
        except gspread.exceptions.GSpreadException as e:
            raise LedgerWriteError(f"append_case_row: {e}") from e
        updated_range = ((response or {}).get("updates") or {}).get("updatedRange", "")
        match = _UPDATED_ROW.search(updated_range)
        if match:
            return int(match.group(1))
        found = self.find_case_row(row[WA_ID_COLUMN - 1])
        if found is None:
            raise LedgerWriteError("append_case_row: appended row not found")
        return found[0]

    def update_case_row(self, row_number: int, row: Sequence[str]) -> None:
        start = rowcol_to_a1(row_number, 1)
        end = rowcol_to_a1(row_number, len(CASE_COLUMNS))
        try:
            self._cases().update(
                range_name=f"{start}:{end}",
                values=[list(row)],
                value_input_option="RAW",
            )
        except gspread.exceptions.GSpreadException as e:
            raise LedgerWriteError(f"update_case_row: {e}") from e

    def append_event_row(self, row: Sequence[str]) -> None:
        try:
            self._events().append_row(list(row), value_input_option="RAW")
        except gspread.exceptions.GSpreadException as e:
            raise LedgerWriteError(f"append_event_row: {e}") from e
