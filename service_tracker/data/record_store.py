"""
Gateway between the app and the `services` collection.

Backends deal in raw rows keyed by stored column names (``employeeName``,
``serviceDate`` ...). Everything above this module deals in ``ServiceRecord``
objects with ``date``/``datetime`` values; the conversion happens here and
nowhere else.
"""

from __future__ import annotations

import logging
import threading
import uuid
from dataclasses import replace
from datetime import date, datetime, timezone
from typing import Any, Callable, Dict, Iterator, List, Mapping, Optional, Protocol

import pandas as pd

from service_tracker.errors import (
    BackendError,
    RecordNotFound,
    SubscriptionError,
    ValidationError,
    WriteError,
)
from service_tracker.models import (
    EDITABLE_FIELDS,
    FIELD_COLUMNS,
    IMMUTABLE_FIELDS,
    ServiceRecord,
    coerce_accepted_by,
    coerce_amount,
    coerce_payment_mode,
)

log = logging.getLogger(__name__)

Snapshot = List[ServiceRecord]


class RecordBackend(Protocol):
    def read_rows(self) -> pd.DataFrame: ...

    def append_row(self, row: Mapping[str, Any]) -> None: ...

    def update_row(self, record_id: str, values: Mapping[str, Any]) -> None: ...

    def delete_row(self, record_id: str) -> None: ...


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ----------------------------------------------------------------------
# Storage <-> domain conversion
# ----------------------------------------------------------------------
def date_to_timestamp(value: date) -> str:
    """Store calendar dates as UTC-midnight ISO timestamps."""
    return datetime(value.year, value.month, value.day, tzinfo=timezone.utc).isoformat().replace("+00:00", "Z")


def datetime_to_timestamp(value: datetime) -> str:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat(timespec="microseconds").replace("+00:00", "Z")


def parse_timestamp(value: Any) -> Optional[datetime]:
    if value is None or value == "":
        return None
    if isinstance(value, pd.Timestamp):
        value = value.to_pydatetime()
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day, tzinfo=timezone.utc)
    text = str(value).strip()
    if not text:
        return None
    parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)


def _encode_field(name: str, value: Any) -> Any:
    if name == "service_date":
        return date_to_timestamp(value)
    if name == "created_at":
        return datetime_to_timestamp(value) if value else ""
    if name == "payment_amount":
        return coerce_amount(value)
    if name == "payment_mode":
        return coerce_payment_mode(value).value
    if name == "payment_accepted_by":
        accepted_by = coerce_accepted_by(value)
        return accepted_by.value if accepted_by else ""
    return "" if value is None else str(value)


def record_to_row(record: ServiceRecord) -> Dict[str, Any]:
    return {column: _encode_field(name, getattr(record, name)) for name, column in FIELD_COLUMNS.items()}


def row_to_record(row: Mapping[str, Any]) -> ServiceRecord:
    service_date = parse_timestamp(row.get("serviceDate"))
    if service_date is None:
        raise ValueError(f"Row {row.get('id')!r} has no serviceDate")
    return ServiceRecord(
        id=str(row.get("id", "")).strip(),
        employee_name=str(row.get("employeeName", "")),
        service_type=str(row.get("serviceType", "")),
        service_date=service_date.date(),
        payment_amount=coerce_amount(row.get("paymentAmount") or 0),
        payment_mode=coerce_payment_mode(row.get("paymentMode")),
        payment_accepted_by=coerce_accepted_by(row.get("paymentAcceptedBy")),
        owner_user_id=str(row.get("userId", "")).strip(),
        created_at=parse_timestamp(row.get("createdAt")),
    )


# ----------------------------------------------------------------------
# Gateway
# ----------------------------------------------------------------------
class RecordStore:
    """Owner-scoped queries and writes against a record backend."""

    def __init__(
        self,
        backend: RecordBackend,
        poll_seconds: float = 5.0,
        clock: Callable[[], datetime] = _utcnow,
        id_factory: Callable[[], str] = lambda: uuid.uuid4().hex,
    ):
        self.backend = backend
        self.poll_seconds = poll_seconds
        self._clock = clock
        self._id_factory = id_factory

    def query(self, owner_user_id: str) -> Snapshot:
        """Records owned by ``owner_user_id``, newest service date first."""
        df = self.backend.read_rows()
        if df.empty or "userId" not in df.columns:
            return []
        df = df[df["userId"].astype(str).str.strip() == str(owner_user_id)].copy()
        if df.empty:
            return []
        df["_service_date"] = pd.to_datetime(df["serviceDate"], utc=True, errors="coerce", format="ISO8601")
        df["_created_at"] = pd.to_datetime(df["createdAt"], utc=True, errors="coerce", format="ISO8601")
        invalid = df["_service_date"].isna()
        if invalid.any():
            log.warning("Skipping %d service row(s) with an unreadable serviceDate", int(invalid.sum()))
            df = df[~invalid]
        # Same-day records fall back to newest createdAt first
        df = df.sort_values(["_service_date", "_created_at"], ascending=False, na_position="last", kind="mergesort")
        records = []
        for row in df.drop(columns=["_service_date", "_created_at"]).to_dict("records"):
            try:
                records.append(row_to_record(row))
            except (ValidationError, ValueError) as exc:
                log.warning("Skipping unreadable service row %r: %s", row.get("id"), exc)
        return records

    def subscribe(
        self,
        owner_user_id: str,
        on_snapshot: Optional[Callable[[Snapshot], None]] = None,
        on_error: Optional[Callable[[SubscriptionError], None]] = None,
    ) -> "RecordSubscription":
        return RecordSubscription(self, owner_user_id, on_snapshot, on_error, self.poll_seconds)

    def create(self, record: ServiceRecord) -> str:
        if not record.owner_user_id:
            raise ValidationError("A signed-in user is required to create records.", field="owner_user_id")
        record_id = self._id_factory()
        stored = replace(record, id=record_id, created_at=self._clock())
        try:
            self.backend.append_row(record_to_row(stored))
        except BackendError as exc:
            log.error("Failed to create service record: %s", exc)
            raise WriteError(f"Failed to add service record. {exc}") from exc
        log.info("Created service record", extra={"record_id": record_id, "owner": record.owner_user_id})
        return record_id

    def update(self, record_id: str, fields: Mapping[str, Any]) -> None:
        locked = [name for name in fields if name in IMMUTABLE_FIELDS]
        if locked:
            raise ValidationError(f"Field(s) cannot be changed: {', '.join(locked)}", field=locked[0])
        unknown = [name for name in fields if name not in EDITABLE_FIELDS]
        if unknown:
            raise ValidationError(f"Unknown field(s): {', '.join(unknown)}", field=unknown[0])
        values = {FIELD_COLUMNS[name]: _encode_field(name, value) for name, value in fields.items()}
        try:
            self.backend.update_row(record_id, values)
        except RecordNotFound as exc:
            log.warning("Update of missing service record %s", record_id)
            raise WriteError(str(exc)) from exc
        except BackendError as exc:
            log.error("Failed to update service record %s: %s", record_id, exc)
            raise WriteError(f"Failed to update service record. {exc}") from exc
        log.info("Updated service record", extra={"record_id": record_id})

    def delete(self, record_id: str) -> None:
        try:
            self.backend.delete_row(record_id)
        except RecordNotFound as exc:
            log.warning("Delete of missing service record %s", record_id)
            raise WriteError(str(exc)) from exc
        except BackendError as exc:
            log.error("Failed to delete service record %s: %s", record_id, exc)
            raise WriteError(f"Failed to delete service record. {exc}") from exc
        log.info("Deleted service record", extra={"record_id": record_id})


class RecordSubscription:
    """
    Live view of one owner's records.

    Every emission is a full snapshot. ``poll()`` runs one fetch and returns
    the snapshot only when it differs from the last one emitted; iterating
    polls every ``poll_seconds`` until ``close()``. A fetch failure calls
    ``on_error`` once and closes the subscription for good.
    """

    def __init__(
        self,
        store: RecordStore,
        owner_user_id: str,
        on_snapshot: Optional[Callable[[Snapshot], None]] = None,
        on_error: Optional[Callable[[SubscriptionError], None]] = None,
        poll_seconds: float = 5.0,
    ):
        self.owner_user_id = owner_user_id
        self.poll_seconds = poll_seconds
        self.latest: Optional[Snapshot] = None
        self.error: Optional[SubscriptionError] = None
        self._store = store
        self._on_snapshot = on_snapshot
        self._on_error = on_error
        self._closed = threading.Event()

    @property
    def closed(self) -> bool:
        return self._closed.is_set()

    @property
    def failed(self) -> bool:
        return self.error is not None

    def poll(self) -> Optional[Snapshot]:
        if self.closed:
            return None
        try:
            snapshot = self._store.query(self.owner_user_id)
        except (BackendError, ValidationError, ValueError) as exc:
            self._fail(exc)
            return None
        if self.latest is not None and snapshot == self.latest:
            return None
        self.latest = snapshot
        if self._on_snapshot is not None:
            self._on_snapshot(snapshot)
        return snapshot

    def _fail(self, exc: Exception) -> None:
        self.error = SubscriptionError(f"Failed to fetch services. {exc}")
        self._closed.set()
        log.error("Service record subscription for %s stopped: %s", self.owner_user_id, exc)
        if self._on_error is not None:
            self._on_error(self.error)

    def __iter__(self) -> Iterator[Snapshot]:
        while not self.closed:
            snapshot = self.poll()
            if snapshot is not None:
                yield snapshot
            if self._closed.wait(self.poll_seconds):
                break

    def close(self) -> None:
        self._closed.set()

    def __enter__(self) -> "RecordSubscription":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
