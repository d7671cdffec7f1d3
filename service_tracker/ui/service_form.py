from __future__ import annotations

from datetime import date
from typing import Optional

import streamlit as st

from service_tracker.errors import ValidationError
from service_tracker.models import (
    MIN_SERVICE_DATE,
    SERVICE_TYPE_PRESETS,
    PaymentAcceptedBy,
    PaymentMode,
    ServiceRecord,
    accepted_by_label,
    validate_record,
)

OTHER = "Other"


def service_type_choice(current: str) -> tuple[list[str], Optional[int], str]:
    """Select options, selected index, and the 'Other' text for a stored service type."""
    options = SERVICE_TYPE_PRESETS + [OTHER]
    if not current:
        return options, None, ""
    if current in SERVICE_TYPE_PRESETS:
        return options, SERVICE_TYPE_PRESETS.index(current), ""
    return options, len(options) - 1, current


def service_form(
    key: str,
    initial: Optional[ServiceRecord] = None,
    submit_label: str = "Add Service",
    org_label: str = "Organization Account",
) -> Optional[ServiceRecord]:
    """Single-record form used for quick add and for editing.

    Returns a validated record (without id or owner) when submitted, else None.
    """
    modes = list(PaymentMode)
    accepted = list(PaymentAcceptedBy)
    type_options, type_index, other_text = service_type_choice(initial.service_type if initial else "")

    with st.form(key, clear_on_submit=initial is None):
        left, right = st.columns(2)
        employee_name = left.text_input(
            "Employee Name", value=initial.employee_name if initial else "", placeholder="e.g. John Doe"
        )
        service_date = right.date_input(
            "Service Date",
            value=initial.service_date if initial else None,
            min_value=MIN_SERVICE_DATE,
            max_value=date.today(),
            format="YYYY/MM/DD",
        )
        service_type = left.selectbox(
            "Service Type", type_options, index=type_index, placeholder="Select service type"
        )
        other_type = right.text_input("Other service type", value=other_text, placeholder="Used when 'Other' is selected")
        payment_amount = left.number_input(
            "Payment Amount",
            min_value=0.0,
            step=0.01,
            format="%.2f",
            value=float(initial.payment_amount) if initial else 0.0,
        )
        payment_mode = right.selectbox(
            "Payment Mode",
            modes,
            index=modes.index(initial.payment_mode) if initial else 0,
            format_func=lambda m: m.value,
        )
        payment_accepted_by = left.selectbox(
            "Payment Accepted By",
            accepted,
            index=accepted.index(initial.payment_accepted_by) if initial and initial.payment_accepted_by else None,
            format_func=lambda a: accepted_by_label(a, org_label),
            placeholder="Select who accepted payment",
        )
        submitted = st.form_submit_button(submit_label, type="primary")

    if not submitted:
        return None

    record = ServiceRecord(
        employee_name=employee_name,
        service_type=other_type if service_type == OTHER else (service_type or ""),
        service_date=service_date,
        payment_amount=payment_amount,
        payment_mode=payment_mode,
        payment_accepted_by=payment_accepted_by,
    )
    try:
        return validate_record(record)
    except ValidationError as exc:
        st.error(str(exc))
        return None
