import streamlit as st

from service_tracker.errors import ValidationError, WriteError
from service_tracker.models import ServiceRecord
from service_tracker.state import AppContext
from service_tracker.ui.notify import notify
from service_tracker.ui.service_form import service_form


def submit_update(ctx: AppContext, record_id: str, edited: ServiceRecord) -> bool:
    try:
        ctx.store.update(record_id, edited.editable_fields())
    except (ValidationError, WriteError) as exc:
        notify("error", f"Failed to update service record. {exc}")
        return False
    notify("success", "Service record updated.")
    return True


def submit_delete(ctx: AppContext, record_id: str) -> bool:
    try:
        ctx.store.delete(record_id)
    except WriteError as exc:
        notify("error", f"Failed to delete service record. {exc}")
        return False
    notify("success", "Service record deleted.")
    return True


@st.dialog("Edit Service Record", width="large")
def edit_dialog(ctx: AppContext, record: ServiceRecord) -> None:
    st.caption("Update the details for this service record. Click save when you're done.")
    edited = service_form(
        f"edit_form_{record.id}",
        initial=record,
        submit_label="Save Changes",
        org_label=ctx.settings.org_account_label,
    )
    if edited is not None:
        submit_update(ctx, record.id, edited)
        st.rerun()
    if st.button("Cancel", key=f"edit_cancel_{record.id}"):
        st.rerun()


@st.dialog("Are you sure?")
def delete_dialog(ctx: AppContext, record: ServiceRecord) -> None:
    st.write("This action cannot be undone. This will permanently delete the service record.")
    st.caption(f"{record.employee_name} · {record.service_type} · {record.service_date:%Y-%m-%d}")
    cancel, confirm = st.columns(2)
    if cancel.button("Cancel", use_container_width=True):
        st.rerun()
    if confirm.button("Delete", type="primary", use_container_width=True):
        submit_delete(ctx, record.id)
        st.rerun()
