"""
Batch entry: several service entries for one employee and date, saved as
independent records in one action. Batches themselves are never stored.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field
from datetime import date
from typing import Any, List, Optional

from service_tracker.errors import PartialCommitError, ValidationError, WriteError
from service_tracker.models import (
    PaymentAcceptedBy,
    PaymentMode,
    ServiceRecord,
    coerce_accepted_by,
    coerce_amount,
    coerce_payment_mode,
    validate_accepted_by,
    validate_employee_name,
    validate_payment_amount,
    validate_service_date,
    validate_service_type,
)

log = logging.getLogger(__name__)

_UNSET: Any = object()

DRAFT_FIELDS = ("service_type", "payment_amount", "payment_mode", "payment_accepted_by")


@dataclass
class BatchHeader:
    employee_name: str = ""
    service_date: Optional[date] = None

    @property
    def is_complete(self) -> bool:
        return bool(self.employee_name.strip()) and self.service_date is not None


@dataclass
class DraftEntry:
    local_id: str = field(default_factory=lambda: uuid.uuid4().hex)
    service_type: str = ""
    payment_amount: float = 0.0
    payment_mode: PaymentMode = PaymentMode.ONLINE
    payment_accepted_by: Optional[PaymentAcceptedBy] = None

    def validate(self, index: int) -> None:
        try:
            validate_service_type(self.service_type)
            validate_payment_amount(self.payment_amount)
            validate_accepted_by(self.payment_accepted_by)
        except ValidationError as exc:
            raise ValidationError(exc.message, field=exc.field, index=index) from None

    def to_record(self, header: BatchHeader, owner_user_id: str) -> ServiceRecord:
        return ServiceRecord(
            employee_name=header.employee_name.strip(),
            service_type=self.service_type.strip(),
            service_date=header.service_date,
            payment_amount=coerce_amount(self.payment_amount),
            payment_mode=self.payment_mode,
            payment_accepted_by=self.payment_accepted_by,
            owner_user_id=owner_user_id,
        )


class BatchComposer:
    def __init__(self) -> None:
        self.header = BatchHeader()
        self.drafts: List[DraftEntry] = []

    def set_header(self, employee_name: Any = _UNSET, service_date: Any = _UNSET) -> None:
        """Change the given header fields; passing ``service_date=None`` clears the date."""
        if employee_name is not _UNSET:
            self.header.employee_name = employee_name or ""
        if service_date is not _UNSET:
            self.header.service_date = service_date

    def add_draft(self) -> DraftEntry:
        if not self.header.is_complete:
            raise ValidationError("Enter the employee name and service date before adding entries.")
        draft = DraftEntry()
        self.drafts.append(draft)
        return draft

    def get_draft(self, local_id: str) -> DraftEntry:
        for draft in self.drafts:
            if draft.local_id == local_id:
                return draft
        raise KeyError(local_id)

    def update_draft(self, local_id: str, field_name: str, value: Any) -> None:
        if field_name not in DRAFT_FIELDS:
            raise ValidationError(f"Unknown service entry field: {field_name}", field=field_name)
        draft = self.get_draft(local_id)
        if field_name == "payment_amount":
            value = coerce_amount(value)
        elif field_name == "payment_mode":
            value = coerce_payment_mode(value)
        elif field_name == "payment_accepted_by":
            value = coerce_accepted_by(value)
        else:
            value = "" if value is None else str(value)
        setattr(draft, field_name, value)

    def remove_draft(self, local_id: str) -> None:
        self.drafts = [d for d in self.drafts if d.local_id != local_id]

    def clear_drafts(self) -> None:
        self.drafts = []

    def validate(self, today: Optional[date] = None) -> None:
        """Raise the first problem found in the header or any draft."""
        validate_employee_name(self.header.employee_name)
        validate_service_date(self.header.service_date, today)
        if not self.drafts:
            raise ValidationError("Add at least one service entry before saving.")
        for index, draft in enumerate(self.drafts):
            draft.validate(index)

    def commit(self, store, owner_user_id: str, today: Optional[date] = None) -> List[str]:
        """
        Validate everything, then create one record per draft in order.

        Nothing is written if any draft is invalid. A write failure part way
        through leaves the earlier records in place; those drafts are removed
        from the batch and ``PartialCommitError`` reports their ids. On full
        success the drafts are cleared and the header is kept.
        """
        self.validate(today)
        if not owner_user_id:
            raise ValidationError("Sign in before saving service records.")

        created: List[str] = []
        saved_local_ids = set()
        for draft in list(self.drafts):
            try:
                record_id = store.create(draft.to_record(self.header, owner_user_id))
            except WriteError as exc:
                if not created:
                    raise
                self.drafts = [d for d in self.drafts if d.local_id not in saved_local_ids]
                log.error("Batch commit stopped after %d of %d entries: %s", len(created), len(created) + len(self.drafts), exc)
                raise PartialCommitError(
                    f"Saved {len(created)} entr{'y' if len(created) == 1 else 'ies'} before an error: {exc}",
                    created_ids=created,
                ) from exc
            created.append(record_id)
            saved_local_ids.add(draft.local_id)

        self.clear_drafts()
        log.info("Batch commit saved %d service record(s)", len(created))
        return created
