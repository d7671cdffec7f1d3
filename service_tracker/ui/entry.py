import datetime as dt
import logging

import streamlit as st

from service_tracker.batch import DraftEntry
from service_tracker.errors import PartialCommitError, ValidationError, WriteError
from service_tracker.models import MIN_SERVICE_DATE, PaymentAcceptedBy, PaymentMode, accepted_by_label
from service_tracker.state import BATCH_DATE_KEY, BATCH_EMPLOYEE_KEY, AppContext
from service_tracker.ui.notify import notify
from service_tracker.ui.service_form import OTHER, service_form, service_type_choice

log = logging.getLogger(__name__)


def _draft_card(ctx: AppContext, draft: DraftEntry, index: int) -> None:
    composer = ctx.composer
    key = f"draft_{draft.local_id}"
    modes = list(PaymentMode)
    accepted = list(PaymentAcceptedBy)
    type_options, type_index, other_text = service_type_choice(draft.service_type)

    with st.container(border=True):
        title, remove = st.columns([6, 1])
        title.markdown(f"**Service Entry #{index + 1}**")
        if remove.button("🗑️", key=f"{key}_remove", help="Remove service entry"):
            composer.remove_draft(draft.local_id)
            st.rerun()

        left, right = st.columns(2)
        service_type = left.selectbox(
            "Service Type", type_options, index=type_index, key=f"{key}_type", placeholder="Select service type"
        )
        if service_type == OTHER:
            service_type = right.text_input("Other service type", value=other_text, key=f"{key}_other")
        composer.update_draft(draft.local_id, "service_type", service_type or "")

        amount = left.number_input(
            "Payment Amount", min_value=0.0, step=0.01, format="%.2f",
            value=float(draft.payment_amount), key=f"{key}_amount",
        )
        composer.update_draft(draft.local_id, "payment_amount", amount)

        mode = right.selectbox(
            "Payment Mode", modes, index=modes.index(draft.payment_mode),
            format_func=lambda m: m.value, key=f"{key}_mode",
        )
        composer.update_draft(draft.local_id, "payment_mode", mode)

        accepted_by = left.selectbox(
            "Payment Accepted By",
            accepted,
            index=accepted.index(draft.payment_accepted_by) if draft.payment_accepted_by else None,
            format_func=lambda a: accepted_by_label(a, ctx.settings.org_account_label),
            placeholder="Select who accepted payment",
            key=f"{key}_accepted",
        )
        composer.update_draft(draft.local_id, "payment_accepted_by", accepted_by)


def batch_entry(ctx: AppContext) -> None:
    composer = ctx.composer
    header_left, header_right = st.columns(2)
    employee_name = header_left.text_input(
        "Employee Name", value=composer.header.employee_name, placeholder="e.g. John Doe", key=BATCH_EMPLOYEE_KEY
    )
    service_date = header_right.date_input(
        "Service Date",
        value=composer.header.service_date,
        min_value=MIN_SERVICE_DATE,
        max_value=dt.date.today(),
        format="YYYY/MM/DD",
        key=BATCH_DATE_KEY,
    )
    composer.set_header(employee_name=employee_name, service_date=service_date)

    for index, draft in enumerate(list(composer.drafts)):
        _draft_card(ctx, draft, index)

    if not composer.drafts:
        st.caption("No service entries yet. Fill in the employee and date, then add an entry.")

    add_col, save_col, discard_col = st.columns(3)
    if add_col.button("➕ Add Service Entry", disabled=not composer.header.is_complete, use_container_width=True):
        composer.add_draft()
        st.rerun()

    if composer.drafts and discard_col.button("Discard Entries", use_container_width=True):
        composer.clear_drafts()
        st.rerun()

    if composer.drafts and save_col.button("Save All Entries", type="primary", use_container_width=True):
        user = ctx.session.current_user
        with st.spinner("Saving..."):
            try:
                created = composer.commit(ctx.store, user.uid if user else "")
            except ValidationError as exc:
                st.error(str(exc))
                return
            except PartialCommitError as exc:
                notify("error", str(exc))
                st.rerun()
            except WriteError as exc:
                st.error(f"Failed to add service records. {exc}")
                return
        notify("success", f"Added {len(created)} service record(s).")
        st.rerun()


def single_entry(ctx: AppContext) -> None:
    record = service_form("quick_add_form", org_label=ctx.settings.org_account_label)
    if record is None:
        return
    user = ctx.session.current_user
    record.owner_user_id = user.uid if user else ""
    try:
        ctx.store.create(record)
    except (ValidationError, WriteError) as exc:
        st.error(str(exc))
        return
    notify("success", "Service record added.")
    st.rerun()
