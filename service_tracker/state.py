from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import MutableMapping, Optional

import streamlit as st

from service_tracker.batch import BatchComposer
from service_tracker.config import Settings, load_settings
from service_tracker.data.record_store import RecordStore, RecordSubscription
from service_tracker.data.workbook import WorkbookBackend
from service_tracker.integrations.google_sheets import SheetsBackend
from service_tracker.integrations.identity_toolkit import IdentityToolkitClient
from service_tracker.models import UserIdentity
from service_tracker.session import IdentitySession
from service_tracker.ui.notify import notify
from service_tracker.utils.logging import configure_logging

CONTEXT_KEY = "service_tracker_ctx"

# Per-user widget state, cleared on sign-out
BATCH_EMPLOYEE_KEY = "batch_employee"
BATCH_DATE_KEY = "batch_service_date"
# Edit/delete dialog requested from the live table, opened on the next full run
PENDING_DIALOG_KEY = "pending_record_dialog"

log = logging.getLogger(__name__)


@dataclass
class AppContext:
    """Everything one browser session needs, built once and passed to each UI part."""

    settings: Settings
    session: IdentitySession
    store: RecordStore
    composer: BatchComposer
    subscription: Optional[RecordSubscription] = None
    ui_state: Optional[MutableMapping] = None

    def widget_state(self) -> MutableMapping:
        return self.ui_state if self.ui_state is not None else st.session_state

    def on_user_changed(self, user: Optional[UserIdentity]) -> None:
        if self.subscription is not None and (user is None or user.uid != self.subscription.owner_user_id):
            self.subscription.close()
            self.subscription = None
        if user is None:
            self.composer = BatchComposer()
            widgets = self.widget_state()
            for key in (BATCH_EMPLOYEE_KEY, BATCH_DATE_KEY, PENDING_DIALOG_KEY):
                widgets.pop(key, None)

    def close(self) -> None:
        if self.subscription is not None:
            self.subscription.close()
            self.subscription = None
        self.session.close()


def build_backend(settings: Settings):
    if settings.uses_google_sheets:
        return SheetsBackend(settings.sheet_id, settings.service_account_info, settings.worksheet_title)
    log.info("No google_sheets_id configured; using local workbook %s", settings.workbook_path)
    return WorkbookBackend(settings.workbook_path, settings.worksheet_title)


def build_context(settings: Settings, provider=None, backend=None, ui_state=None) -> AppContext:
    provider = provider or IdentityToolkitClient(settings.identity_api_key, timeout=settings.identity_timeout)
    session = IdentitySession(provider)
    ctx = AppContext(
        settings=settings,
        session=session,
        store=RecordStore(backend or build_backend(settings), poll_seconds=settings.poll_seconds),
        composer=BatchComposer(),
        ui_state=ui_state,
    )
    session.add_listener(ctx.on_user_changed)
    return ctx


def init_state() -> AppContext:
    # Initialize once per browser session
    ctx = st.session_state.get(CONTEXT_KEY)
    if ctx is not None:
        return ctx
    settings = load_settings()
    configure_logging(settings.log_level, settings.log_json)
    ctx = build_context(settings)
    ctx.session.start()
    st.session_state[CONTEXT_KEY] = ctx
    return ctx


def ensure_subscription(ctx: AppContext) -> Optional[RecordSubscription]:
    """Open the live record query for the signed-in user if none is open.

    A failed subscription is kept as-is so live updates stay stopped until the
    page is reloaded.
    """
    user = ctx.session.current_user
    if user is None:
        return None
    if ctx.subscription is None:
        ctx.subscription = ctx.store.subscribe(
            user.uid,
            on_error=lambda exc: notify("error", "Failed to fetch services."),
        )
    return ctx.subscription
