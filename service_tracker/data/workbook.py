from __future__ import annotations

import logging
import zipfile
from pathlib import Path
from typing import Any, List, Mapping, Optional

import pandas as pd
from openpyxl import Workbook, load_workbook
from openpyxl.utils.exceptions import InvalidFileException

from service_tracker.errors import BackendError, RecordNotFound
from service_tracker.models import STORE_COLUMNS

log = logging.getLogger(__name__)


def _match_sheet(wb, name: str) -> Optional[str]:
    target = name.strip().lower()
    for sheet in wb.sheetnames:
        if sheet.strip().lower() == target:
            return sheet
    return None


class WorkbookBackend:
    """Local .xlsx fallback store used when no Google Sheet is configured."""

    def __init__(self, path: str | Path, sheet_name: str = "services", columns: Optional[List[str]] = None):
        self.path = Path(path)
        self.sheet_name = sheet_name
        self.columns = list(columns or STORE_COLUMNS)

    def _load(self):
        try:
            if not self.path.exists():
                log.info("Creating local workbook %s", self.path)
                self.path.parent.mkdir(parents=True, exist_ok=True)
                wb = Workbook()
                ws = wb.active
                ws.title = self.sheet_name
                ws.append(self.columns)
                wb.save(self.path)
                return wb, ws
            wb = load_workbook(self.path)
        except (OSError, InvalidFileException, zipfile.BadZipFile) as exc:
            raise BackendError(f"Failed to open local workbook {self.path}: {exc}") from exc

        sheet = _match_sheet(wb, self.sheet_name)
        if sheet is None:
            ws = wb.create_sheet(self.sheet_name)
            ws.append(self.columns)
            self._save(wb)
            return wb, ws
        ws = wb[sheet]
        self._ensure_headers(wb, ws)
        return wb, ws

    def _ensure_headers(self, wb, ws) -> None:
        headers = self._headers(ws)
        changed = False
        for header in self.columns:
            if header not in headers:
                ws.cell(row=1, column=len(headers) + 1, value=header)
                headers.append(header)
                changed = True
        if changed:
            self._save(wb)

    def _save(self, wb) -> None:
        try:
            wb.save(self.path)
        except OSError as exc:
            raise BackendError(f"Failed to save local workbook {self.path}: {exc}") from exc

    @staticmethod
    def _headers(ws) -> List[str]:
        if ws.max_row < 1:
            return []
        first = next(ws.iter_rows(min_row=1, max_row=1, values_only=True), ())
        headers = [str(h).strip() if h is not None else "" for h in first]
        while headers and not headers[-1]:
            headers.pop()
        return headers

    def _row_number(self, ws, record_id: str) -> int:
        for idx, (value,) in enumerate(ws.iter_rows(min_row=2, max_col=1, values_only=True), start=2):
            if value is not None and str(value).strip() == str(record_id):
                return idx
        raise RecordNotFound(record_id)

    def read_rows(self) -> pd.DataFrame:
        _, ws = self._load()
        headers = self._headers(ws)
        rows = []
        for values in ws.iter_rows(min_row=2, max_col=len(headers), values_only=True):
            if all(v is None or str(v).strip() == "" for v in values):
                continue
            rows.append(["" if v is None else v for v in values])
        return pd.DataFrame(rows, columns=headers)

    def append_row(self, row: Mapping[str, Any]) -> None:
        wb, ws = self._load()
        headers = self._headers(ws)
        ws.append([row.get(h, "") for h in headers])
        self._save(wb)

    def update_row(self, record_id: str, values: Mapping[str, Any]) -> None:
        wb, ws = self._load()
        row_number = self._row_number(ws, record_id)
        for col_idx, header in enumerate(self._headers(ws), start=1):
            if header in values:
                ws.cell(row=row_number, column=col_idx, value=values[header])
        self._save(wb)

    def delete_row(self, record_id: str) -> None:
        wb, ws = self._load()
        ws.delete_rows(self._row_number(ws, record_id))
        self._save(wb)
