from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Any, List, Optional

from service_tracker.errors import ValidationError


class PaymentMode(str, Enum):
    ONLINE = "Online"
    CASH = "Cash"


class PaymentAcceptedBy(str, Enum):
    ORGANIZATION_ACCOUNT = "OrganizationAccount"
    EMPLOYEE = "Employee"


SERVICE_TYPE_PRESETS: List[str] = ["Deep clean", "One time", "Car Spa"]
MIN_SERVICE_DATE = date(1900, 1, 1)

# Stored column order of the `services` collection
STORE_COLUMNS: List[str] = [
    "id",
    "employeeName",
    "serviceType",
    "serviceDate",
    "paymentAmount",
    "paymentMode",
    "paymentAcceptedBy",
    "userId",
    "createdAt",
]

FIELD_COLUMNS = {
    "id": "id",
    "employee_name": "employeeName",
    "service_type": "serviceType",
    "service_date": "serviceDate",
    "payment_amount": "paymentAmount",
    "payment_mode": "paymentMode",
    "payment_accepted_by": "paymentAcceptedBy",
    "owner_user_id": "userId",
    "created_at": "createdAt",
}

IMMUTABLE_FIELDS = ("id", "owner_user_id", "created_at")
EDITABLE_FIELDS = (
    "employee_name",
    "service_type",
    "service_date",
    "payment_amount",
    "payment_mode",
    "payment_accepted_by",
)


@dataclass(frozen=True)
class UserIdentity:
    uid: str
    email: str
    id_token: str = field(default="", repr=False, compare=False)
    refresh_token: str = field(default="", repr=False, compare=False)


@dataclass
class ServiceRecord:
    employee_name: str
    service_type: str
    service_date: date
    payment_amount: float
    payment_mode: PaymentMode
    payment_accepted_by: PaymentAcceptedBy
    owner_user_id: str = ""
    created_at: Optional[datetime] = None
    id: Optional[str] = None

    def editable_fields(self) -> dict:
        return {name: getattr(self, name) for name in EDITABLE_FIELDS}


def accepted_by_label(value: Optional[PaymentAcceptedBy], org_label: str = "Organization Account") -> str:
    if value is None:
        return ""
    if value is PaymentAcceptedBy.ORGANIZATION_ACCOUNT:
        return org_label
    return value.value


def coerce_payment_mode(value: Any) -> PaymentMode:
    if isinstance(value, PaymentMode):
        return value
    try:
        return PaymentMode(str(value).strip())
    except ValueError:
        raise ValidationError("Payment mode must be Online or Cash.", field="payment_mode") from None


def coerce_accepted_by(value: Any) -> Optional[PaymentAcceptedBy]:
    if value is None or value == "":
        return None
    if isinstance(value, PaymentAcceptedBy):
        return value
    try:
        return PaymentAcceptedBy(str(value).strip())
    except ValueError:
        raise ValidationError(
            "Payment accepted by must be the organization account or the employee.",
            field="payment_accepted_by",
        ) from None


def coerce_amount(value: Any) -> float:
    try:
        return round(float(value), 2)
    except (TypeError, ValueError):
        raise ValidationError("Payment amount must be a number.", field="payment_amount") from None


def validate_employee_name(value: Any) -> str:
    name = str(value or "").strip()
    if not name:
        raise ValidationError("Employee name is required.", field="employee_name")
    return name


def validate_service_type(value: Any) -> str:
    service_type = str(value or "").strip()
    if not service_type:
        raise ValidationError("Service type is required.", field="service_type")
    return service_type


def validate_service_date(value: Any, today: Optional[date] = None) -> date:
    if value is None:
        raise ValidationError("Service date is required.", field="service_date")
    if isinstance(value, datetime):
        value = value.date()
    if not isinstance(value, date):
        raise ValidationError("Service date must be a calendar date.", field="service_date")
    today = today or date.today()
    if value > today:
        raise ValidationError("Service date cannot be in the future.", field="service_date")
    if value < MIN_SERVICE_DATE:
        raise ValidationError("Service date cannot be before 1900-01-01.", field="service_date")
    return value


def validate_payment_amount(value: Any) -> float:
    amount = coerce_amount(value)
    if not math.isfinite(amount) or amount <= 0:
        raise ValidationError("Payment amount must be greater than zero.", field="payment_amount")
    return amount


def validate_accepted_by(value: Any) -> PaymentAcceptedBy:
    accepted_by = coerce_accepted_by(value)
    if accepted_by is None:
        raise ValidationError("Select who accepted the payment.", field="payment_accepted_by")
    return accepted_by


def validate_record(record: ServiceRecord, today: Optional[date] = None) -> ServiceRecord:
    """Check every user-editable field; returns the record with cleaned values."""
    record.employee_name = validate_employee_name(record.employee_name)
    record.service_type = validate_service_type(record.service_type)
    record.service_date = validate_service_date(record.service_date, today)
    record.payment_amount = validate_payment_amount(record.payment_amount)
    record.payment_mode = coerce_payment_mode(record.payment_mode)
    record.payment_accepted_by = validate_accepted_by(record.payment_accepted_by)
    return record
