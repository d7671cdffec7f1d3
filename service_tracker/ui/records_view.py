from typing import Optional

import streamlit as st

from service_tracker.models import ServiceRecord
from service_tracker.state import PENDING_DIALOG_KEY, AppContext, ensure_subscription
from service_tracker.ui.dialogs import delete_dialog, edit_dialog
from service_tracker.ui.export_panel import export_panel
from service_tracker.ui.notify import flush_notifications
from service_tracker.ui.table import service_table

DIALOG_ACTIONS = ("edit", "delete")


def request_dialog(ctx: AppContext, action: str, record: ServiceRecord) -> None:
    if action not in DIALOG_ACTIONS:
        raise ValueError(f"Unknown record action: {action}")
    ctx.widget_state()[PENDING_DIALOG_KEY] = (action, record)


def open_pending_dialog(ctx: AppContext) -> Optional[str]:
    """Open the dialog the table asked for, once. Returns the action opened."""
    pending = ctx.widget_state().pop(PENDING_DIALOG_KEY, None)
    if pending is None:
        return None
    action, record = pending
    if action == "edit":
        edit_dialog(ctx, record)
    else:
        delete_dialog(ctx, record)
    return action


def _ask(ctx: AppContext, action: str, record: ServiceRecord) -> None:
    request_dialog(ctx, action, record)
    # Full-app rerun: the dialog must live outside the timed fragment
    st.rerun()


def records_view(ctx: AppContext) -> None:
    """Live table of the signed-in user's records, re-polled every few seconds."""
    open_pending_dialog(ctx)

    @st.fragment(run_every=ctx.settings.poll_seconds)
    def _live():
        subscription = ensure_subscription(ctx)
        if subscription is None:
            return
        subscription.poll()
        flush_notifications()

        title, action = st.columns([4, 1])
        title.subheader("Service Records")
        title.caption("View and manage all recorded services.")
        records = subscription.latest
        if subscription.failed:
            st.error("Live updates stopped. Reload the page to try again.")
        if records is None:
            if not subscription.failed:
                st.write("Loading service records...")
            return

        with action:
            export_panel(records)
        service_table(
            records,
            on_edit=lambda record: _ask(ctx, "edit", record),
            on_delete=lambda record: _ask(ctx, "delete", record),
            org_label=ctx.settings.org_account_label,
        )

    _live()
