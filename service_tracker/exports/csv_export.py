from __future__ import annotations

import logging
from datetime import date
from typing import Callable, Optional, Sequence

from service_tracker.models import ServiceRecord

CSV_HEADERS = [
    "Employee Name",
    "Service Type",
    "Service Date",
    "Payment Amount",
    "Payment Mode",
    "Payment Accepted By",
]
CSV_MIME = "text/csv;charset=utf-8"

log = logging.getLogger(__name__)

Downloader = Callable[[str, bytes, str], None]
Notifier = Callable[[str, str], None]


def _quote(value) -> str:
    return '"' + str(value).replace('"', '""') + '"'


def _row(record: ServiceRecord) -> str:
    accepted_by = record.payment_accepted_by.value if record.payment_accepted_by else ""
    return ",".join([
        _quote(record.employee_name),
        _quote(record.service_type),
        record.service_date.strftime("%Y-%m-%d"),
        f"{record.payment_amount:.2f}",
        _quote(record.payment_mode.value),
        _quote(accepted_by),
    ])


def records_to_csv(records: Sequence[ServiceRecord]) -> str:
    return "\r\n".join([",".join(CSV_HEADERS)] + [_row(r) for r in records])


def export_filename(today: Optional[date] = None) -> str:
    today = today or date.today()
    return f"service_records_{today.strftime('%Y-%m-%d')}.csv"


def export_to_csv(
    records: Sequence[ServiceRecord],
    download: Optional[Downloader],
    notify: Notifier,
    today: Optional[date] = None,
) -> bool:
    """Hand the CSV to ``download``; returns True when a file was offered."""
    if not records:
        notify("info", "No data to export.")
        return False
    if download is None:
        notify("error", "CSV export is not supported in this environment.")
        return False
    file_name = export_filename(today)
    download(file_name, records_to_csv(records).encode("utf-8"), CSV_MIME)
    log.info("Exported %d service record(s) to %s", len(records), file_name)
    notify("success", "Service data exported to CSV.")
    return True
