from typing import Callable, Sequence

import pandas as pd
import streamlit as st

from service_tracker.models import ServiceRecord, accepted_by_label

TABLE_COLUMNS = ["Employee", "Service Type", "Date", "Amount", "Payment Mode", "Accepted By"]
COLUMN_WIDTHS = [3, 3, 2, 2, 2, 3, 1, 1]


def records_frame(records: Sequence[ServiceRecord], org_label: str = "Organization Account") -> pd.DataFrame:
    """Display rows for the live table, in snapshot order."""
    rows = [
        {
            "Employee": r.employee_name,
            "Service Type": r.service_type,
            "Date": r.service_date.strftime("%b %d, %Y").replace(" 0", " "),
            "Amount": f"{r.payment_amount:,.2f}",
            "Payment Mode": r.payment_mode.value,
            "Accepted By": accepted_by_label(r.payment_accepted_by, org_label),
        }
        for r in records
    ]
    return pd.DataFrame(rows, columns=TABLE_COLUMNS)


def service_table(
    records: Sequence[ServiceRecord],
    on_edit: Callable[[ServiceRecord], None],
    on_delete: Callable[[ServiceRecord], None],
    org_label: str = "Organization Account",
) -> None:
    if not records:
        st.caption("No services recorded yet.")
        return

    frame = records_frame(records, org_label)
    header = st.columns(COLUMN_WIDTHS)
    for col, label in zip(header, TABLE_COLUMNS + ["", ""]):
        col.markdown(f"**{label}**")
    for record, row in zip(records, frame.itertuples(index=False)):
        cols = st.columns(COLUMN_WIDTHS)
        for col, value in zip(cols, row):
            col.write(value)
        if cols[-2].button("✏️", key=f"edit_{record.id}", help="Edit service"):
            on_edit(record)
        if cols[-1].button("🗑️", key=f"delete_{record.id}", help="Delete service"):
            on_delete(record)
