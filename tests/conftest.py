"""
Shared fakes for the Service Tracker tests.

Provides:
- MemoryBackend: in-process stand-in for the hosted `services` worksheet
- SpyStore: RecordStore wrapper that records every create call
- FakeIdentityProvider: scripted email/password provider
"""

from __future__ import annotations

from datetime import date, datetime, timedelta, timezone
from itertools import count
from typing import Any, Callable, Dict, List, Mapping, Optional

import pandas as pd
import pytest

from service_tracker.batch import BatchComposer
from service_tracker.data.record_store import RecordStore
from service_tracker.errors import AuthError, AuthReason, BackendError, RecordNotFound
from service_tracker.models import (
    STORE_COLUMNS,
    PaymentAcceptedBy,
    PaymentMode,
    ServiceRecord,
    UserIdentity,
)

OWNER = "user-asha-admin"
OTHER_OWNER = "user-someone-else"


class MemoryBackend:
    def __init__(self) -> None:
        self.rows: List[Dict[str, Any]] = []
        self.fail_reads = False
        self.fail_appends_after: Optional[int] = None
        self.append_calls = 0

    def read_rows(self) -> pd.DataFrame:
        if self.fail_reads:
            raise BackendError("read timed out")
        return pd.DataFrame([dict(r) for r in self.rows], columns=STORE_COLUMNS)

    def append_row(self, row: Mapping[str, Any]) -> None:
        if self.fail_appends_after is not None and self.append_calls >= self.fail_appends_after:
            raise BackendError("network down")
        self.append_calls += 1
        self.rows.append({c: row.get(c, "") for c in STORE_COLUMNS})

    def _find(self, record_id: str) -> Dict[str, Any]:
        for row in self.rows:
            if row["id"] == record_id:
                return row
        raise RecordNotFound(record_id)

    def update_row(self, record_id: str, values: Mapping[str, Any]) -> None:
        self._find(record_id).update(values)

    def delete_row(self, record_id: str) -> None:
        self.rows.remove(self._find(record_id))


class SpyStore:
    """Delegates to a real RecordStore and keeps every record passed to create()."""

    def __init__(self, store: RecordStore) -> None:
        self._store = store
        self.created: List[ServiceRecord] = []

    def create(self, record: ServiceRecord) -> str:
        self.created.append(record)
        return self._store.create(record)

    def __getattr__(self, name: str) -> Any:
        return getattr(self._store, name)


class FakeIdentityProvider:
    def __init__(self, accounts: Optional[Dict[str, str]] = None, current: Optional[UserIdentity] = None) -> None:
        self.accounts = dict(accounts or {})
        self._current = current
        self._listeners: List[Callable[[Optional[UserIdentity]], None]] = []
        self.unavailable = False

    @property
    def current_user(self) -> Optional[UserIdentity]:
        return self._current

    def on_auth_state_changed(self, listener):
        self._listeners.append(listener)
        return lambda: self._listeners.remove(listener)

    def _emit(self, user: Optional[UserIdentity]) -> None:
        self._current = user
        for listener in list(self._listeners):
            listener(user)

    def sign_in(self, email: str, password: str) -> UserIdentity:
        if self.unavailable:
            raise AuthError(AuthReason.NETWORK)
        if self.accounts.get(email) != password:
            raise AuthError(AuthReason.INVALID_CREDENTIALS)
        user = UserIdentity(uid=f"uid-{email}", email=email)
        self._emit(user)
        return user

    def sign_up(self, email: str, password: str) -> UserIdentity:
        if email in self.accounts:
            raise AuthError(AuthReason.EMAIL_IN_USE)
        if len(password) < 6:
            raise AuthError(AuthReason.WEAK_PASSWORD)
        self.accounts[email] = password
        user = UserIdentity(uid=f"uid-{email}", email=email)
        self._emit(user)
        return user

    def sign_out(self) -> None:
        self._emit(None)


def make_record(
    service_date: date,
    service_type: str = "Car Spa",
    employee_name: str = "Asha",
    amount: float = 500.0,
    owner: str = OWNER,
    mode: PaymentMode = PaymentMode.ONLINE,
    accepted_by: PaymentAcceptedBy = PaymentAcceptedBy.ORGANIZATION_ACCOUNT,
) -> ServiceRecord:
    return ServiceRecord(
        employee_name=employee_name,
        service_type=service_type,
        service_date=service_date,
        payment_amount=amount,
        payment_mode=mode,
        payment_accepted_by=accepted_by,
        owner_user_id=owner,
    )


@pytest.fixture
def backend() -> MemoryBackend:
    return MemoryBackend()


@pytest.fixture
def store(backend: MemoryBackend) -> RecordStore:
    ticks = count()
    start = datetime(2024, 3, 1, 12, 0, tzinfo=timezone.utc)
    ids = count(1)
    return RecordStore(
        backend,
        poll_seconds=0.01,
        clock=lambda: start + timedelta(seconds=next(ticks)),
        id_factory=lambda: f"rec-{next(ids):04d}",
    )


@pytest.fixture
def spy_store(store: RecordStore) -> SpyStore:
    return SpyStore(store)


@pytest.fixture
def composer() -> BatchComposer:
    c = BatchComposer()
    c.set_header(employee_name="Asha", service_date=date(2024, 3, 1))
    return c


@pytest.fixture
def today() -> date:
    return date(2024, 6, 30)
