"""
Google Sheets adapters: the RESULTS sink and the CONFIG domain list.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from typing import Any

import gspread
from google.auth.exceptions import GoogleAuthError
from gspread.exceptions import GSpreadException, WorksheetNotFound
from gspread.utils import rowcol_to_a1

from app.config import SheetSettings
from app.domain.scan import RESULT_HEADERS, ScanRow
from app.scanning.errors import DomainSourceError, SinkError
from app.scanning.logging_utils import log_event
from app.scanning.normalization import parse_domain_column
from app.scanning.storage.base import DomainSource, ResultSink, SinkResult

logger = logging.getLogger(__name__)

_SHEET_ERRORS = (GSpreadException, GoogleAuthError, OSError)
_NEW_WORKSHEET_ROWS = 1000


def service_account_client_factory(credentials_path: str | None) -> Callable[[], Any]:
    """
    Return a lazy gspread client factory for a service-account JSON file.
    """

    def _factory() -> Any:
        if not credentials_path:
            raise GoogleAuthError("GOOGLE_SHEETS_CRED is not configured")
        return gspread.service_account(filename=credentials_path)

    return _factory


class _SpreadsheetHandle:
    def __init__(self, *, spreadsheet_id: str | None, client_factory: Callable[[], Any]) -> None:
        self._spreadsheet_id = spreadsheet_id
        self._client_factory = client_factory
        self._spreadsheet: Any | None = None

    def spreadsheet(self) -> Any:
        if self._spreadsheet is None:
            if not self._spreadsheet_id:
                raise GSpreadException("RESULTS_SPREADSHEET_ID is not configured")
            self._spreadsheet = self._client_factory().open_by_key(self._spreadsheet_id)
        return self._spreadsheet


class SheetResultSink(ResultSink):
    """
    Append scan rows to a worksheet, creating it with a bold frozen header
    when missing.
    """

    def __init__(
        self,
        settings: SheetSettings,
        *,
        client_factory: Callable[[], Any] | None = None,
    ) -> None:
        self._worksheet_title = settings.results_worksheet
        self._handle = _SpreadsheetHandle(
            spreadsheet_id=settings.spreadsheet_id,
            client_factory=client_factory or service_account_client_factory(settings.credentials_path),
        )
        self._worksheet: Any | None = None

    def append_rows(self, rows: Sequence[ScanRow]) -> SinkResult:
        if not rows:
            return SinkResult(saved_count=0)

        values = [row.to_values() for row in rows]
        try:
            worksheet = self._results_worksheet()
            worksheet.append_rows(values, value_input_option="RAW")
        except _SHEET_ERRORS as exc:
            raise SinkError(f"Failed to append {len(values)} rows to '{self._worksheet_title}': {exc}") from exc

        log_event(
            logger,
            logging.INFO,
            "rows_persisted",
            sink="sheets",
            worksheet=self._worksheet_title,
            saved_count=len(values),
        )
        return SinkResult(saved_count=len(values))

    def _results_worksheet(self) -> Any:
        if self._worksheet is not None:
            return self._worksheet

        spreadsheet = self._handle.spreadsheet()
        try:
            worksheet = spreadsheet.worksheet(self._worksheet_title)
        except WorksheetNotFound:
            worksheet = spreadsheet.add_worksheet(
                title=self._worksheet_title,
                rows=_NEW_WORKSHEET_ROWS,
                cols=len(RESULT_HEADERS),
            )
            header_range = f"A1:{rowcol_to_a1(1, len(RESULT_HEADERS))}"
            worksheet.update(range_name="A1", values=[list(RESULT_HEADERS)])
            worksheet.format(header_range, {"textFormat": {"bold": True}})
            worksheet.freeze(rows=1)
            log_event(logger, logging.INFO, "worksheet_created", worksheet=self._worksheet_title)

        self._worksheet = worksheet
        return worksheet


class SheetDomainSource(DomainSource):
    """
    Read domains from column A of the CONFIG worksheet; row 1 is a header.
    """

    def __init__(
        self,
        settings: SheetSettings,
        *,
        client_factory: Callable[[], Any] | None = None,
    ) -> None:
        self._worksheet_title = settings.domains_worksheet
        self._handle = _SpreadsheetHandle(
            spreadsheet_id=settings.spreadsheet_id,
            client_factory=client_factory or service_account_client_factory(settings.credentials_path),
        )

    def load_domains(self) -> list[str]:
        try:
            column = self._handle.spreadsheet().worksheet(self._worksheet_title).col_values(1)
        except _SHEET_ERRORS as exc:
            raise DomainSourceError(f"Failed to read domains from '{self._worksheet_title}': {exc}") from exc

        domains = parse_domain_column(column, has_header=True)
        log_event(logger, logging.INFO, "domains_loaded", worksheet=self._worksheet_title, count=len(domains))
        return domains
