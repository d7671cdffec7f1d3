"""
Google Sheets backend for the service records collection.

One worksheet holds every service document; row 1 is the header and column A
holds the record id.
"""

from __future__ import annotations

import logging
import time
from typing import Any, Dict, List, Mapping, Optional

import gspread
import pandas as pd
from google.oauth2.service_account import Credentials
from gspread.exceptions import APIError, GSpreadException
from gspread.utils import rowcol_to_a1
from requests.exceptions import RequestException

from service_tracker.errors import BackendError, RecordNotFound
from service_tracker.models import STORE_COLUMNS

SCOPES = (
    "https://www.googleapis.com/auth/spreadsheets",
    "https://www.googleapis.com/auth/drive",
)

log = logging.getLogger(__name__)


def _normalize_title(name: str) -> str:
    """Normalize worksheet titles for comparison"""
    if not name:
        return ""
    return ''.join(ch for ch in str(name).strip().lower() if ch.isalnum())


def _clean_value(val: Any) -> Any:
    if val is None:
        return ""
    if isinstance(val, float) and pd.isna(val):
        return ""
    return val


class SheetsBackend:
    """Reads and writes service rows on one worksheet of a Google spreadsheet"""

    def __init__(
        self,
        spreadsheet_id: str,
        credentials_info: Optional[Dict[str, Any]],
        worksheet_title: str = "services",
        columns: Optional[List[str]] = None,
    ):
        self.spreadsheet_id = spreadsheet_id
        self.worksheet_title = worksheet_title
        self.columns = list(columns or STORE_COLUMNS)
        self.gc = None
        self.spreadsheet = None
        self._worksheet = None
        self._credentials_info = credentials_info
        self._last_connection_time = 0.0

    # ------------------------------------------------------------------
    # Credential / client helpers
    # ------------------------------------------------------------------
    def _load_credentials(self) -> Credentials:
        if not self._credentials_info:
            raise BackendError("Google Sheets credentials not found in secrets. Please configure Google Sheets integration.")
        try:
            return Credentials.from_service_account_info(self._credentials_info, scopes=SCOPES)
        except (ValueError, KeyError) as exc:
            raise BackendError(f"Failed to load Google credentials: {exc}") from exc

    def _ensure_client(self):
        if self.gc and (time.time() - self._last_connection_time) < 300:
            return self.gc
        creds = self._load_credentials()
        self.gc = gspread.authorize(creds)
        self._last_connection_time = time.time()
        self.spreadsheet = None
        self._worksheet = None
        return self.gc

    def _call(self, action: str, fn, *args, **kwargs):
        try:
            return fn(*args, **kwargs)
        except APIError as exc:
            if exc.response.status_code == 429:
                raise BackendError(
                    f"Google Sheets rate limit reached while {action}. Please wait a few seconds and try again."
                ) from exc
            raise BackendError(f"Failed {action}: {exc}") from exc
        except (GSpreadException, RequestException) as exc:
            raise BackendError(f"Failed {action}: {exc}") from exc

    # ------------------------------------------------------------------
    # Worksheet helpers
    # ------------------------------------------------------------------
    def _open_worksheet(self):
        gc = self._ensure_client()
        if self._worksheet is not None:
            return self._worksheet
        if self.spreadsheet is None:
            self.spreadsheet = gc.open_by_key(self.spreadsheet_id)
        normalized_map = {_normalize_title(ws.title): ws for ws in self.spreadsheet.worksheets()}
        worksheet = normalized_map.get(_normalize_title(self.worksheet_title))
        if worksheet is None:
            log.info("Creating worksheet '%s' in spreadsheet %s", self.worksheet_title, self.spreadsheet_id)
            worksheet = self.spreadsheet.add_worksheet(title=self.worksheet_title, rows=1000, cols=len(self.columns))
            worksheet.append_row(self.columns, value_input_option="RAW")
        elif not [c for c in worksheet.row_values(1) if str(c).strip()]:
            worksheet.append_row(self.columns, value_input_option="RAW")
        self._worksheet = worksheet
        return worksheet

    def _worksheet_handle(self):
        return self._call("opening the services worksheet", self._open_worksheet)

    def _row_number(self, worksheet, record_id: str) -> int:
        ids = self._call("locating the record", worksheet.col_values, 1)
        for idx, value in enumerate(ids[1:], start=2):
            if str(value).strip() == str(record_id):
                return idx
        raise RecordNotFound(record_id)

    def _headers(self, worksheet) -> List[str]:
        headers = [str(c).strip() for c in self._call("reading the header row", worksheet.row_values, 1)]
        return headers or list(self.columns)

    # ------------------------------------------------------------------
    # Data operations
    # ------------------------------------------------------------------
    def read_rows(self) -> pd.DataFrame:
        """Read every stored row as a DataFrame of raw cell values"""
        worksheet = self._worksheet_handle()
        values = self._call("reading service records", worksheet.get_all_values)
        if not values:
            return pd.DataFrame(columns=self.columns)
        headers = [str(col).strip() for col in values[0]]
        rows = [row + ["" for _ in range(len(headers) - len(row))] for row in values[1:]]
        df = pd.DataFrame(rows, columns=headers)
        df = df[[col for col in df.columns if col]]
        for missing in self.columns:
            if missing not in df.columns:
                df[missing] = ""
        return df

    def append_row(self, row: Mapping[str, Any]) -> None:
        worksheet = self._worksheet_handle()
        headers = self._headers(worksheet)
        values = [_clean_value(row.get(col, "")) for col in headers]
        self._call("writing the service record", worksheet.append_row, values, value_input_option="RAW")

    def update_row(self, record_id: str, values: Mapping[str, Any]) -> None:
        worksheet = self._worksheet_handle()
        row_number = self._row_number(worksheet, record_id)
        headers = self._headers(worksheet)
        current = self._call("reading the service record", worksheet.row_values, row_number)
        current = current + ["" for _ in range(len(headers) - len(current))]
        merged = [
            _clean_value(values[col]) if col in values else current[idx]
            for idx, col in enumerate(headers)
        ]
        cell_range = f"A{row_number}:{rowcol_to_a1(row_number, len(headers))}"
        self._call(
            "updating the service record",
            worksheet.update,
            range_name=cell_range,
            values=[merged],
            value_input_option="RAW",
        )

    def delete_row(self, record_id: str) -> None:
        worksheet = self._worksheet_handle()
        row_number = self._row_number(worksheet, record_id)
        self._call("deleting the service record", worksheet.delete_rows, row_number)
