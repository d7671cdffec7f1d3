from __future__ import annotations

from datetime import date

import pytest

from conftest import OWNER, make_record
from service_tracker.batch import BatchComposer
from service_tracker.errors import PartialCommitError, ValidationError, WriteError
from service_tracker.models import PaymentAcceptedBy, PaymentMode


def _fill(composer: BatchComposer, service_type: str, amount: float, mode: PaymentMode, accepted_by) -> str:
    draft = composer.add_draft()
    composer.update_draft(draft.local_id, "service_type", service_type)
    composer.update_draft(draft.local_id, "payment_amount", amount)
    composer.update_draft(draft.local_id, "payment_mode", mode)
    composer.update_draft(draft.local_id, "payment_accepted_by", accepted_by)
    return draft.local_id


def test_add_draft_requires_complete_header() -> None:
    composer = BatchComposer()
    with pytest.raises(ValidationError):
        composer.add_draft()

    composer.set_header(employee_name="Asha")
    with pytest.raises(ValidationError):
        composer.add_draft()

    composer.set_header(service_date=date(2024, 3, 1))
    draft = composer.add_draft()
    assert draft.service_type == ""
    assert draft.payment_amount == 0.0
    assert draft.payment_mode is PaymentMode.ONLINE
    assert draft.payment_accepted_by is None


def test_blank_employee_name_does_not_count_as_header() -> None:
    composer = BatchComposer()
    composer.set_header(employee_name="   ", service_date=date(2024, 3, 1))
    with pytest.raises(ValidationError):
        composer.add_draft()


def test_clearing_service_date_disables_adding_drafts(composer: BatchComposer) -> None:
    composer.add_draft()

    composer.set_header(service_date=None)

    assert composer.header.service_date is None
    assert not composer.header.is_complete
    assert composer.header.employee_name == "Asha"
    with pytest.raises(ValidationError):
        composer.add_draft()


def test_commit_after_clearing_date_writes_nothing(composer: BatchComposer, spy_store, today) -> None:
    _fill(composer, "Car Spa", 500, PaymentMode.ONLINE, PaymentAcceptedBy.EMPLOYEE)
    composer.set_header(service_date=None)

    with pytest.raises(ValidationError) as exc_info:
        composer.commit(spy_store, OWNER, today=today)

    assert exc_info.value.field == "service_date"
    assert spy_store.created == []


def test_drafts_get_distinct_local_ids(composer: BatchComposer) -> None:
    first = composer.add_draft()
    second = composer.add_draft()
    assert first.local_id != second.local_id


def test_update_draft_changes_one_field_of_one_draft(composer: BatchComposer) -> None:
    first = composer.add_draft()
    second = composer.add_draft()
    composer.update_draft(first.local_id, "service_type", "Deep clean")
    composer.update_draft(first.local_id, "payment_mode", "Cash")

    assert composer.get_draft(first.local_id).service_type == "Deep clean"
    assert composer.get_draft(first.local_id).payment_mode is PaymentMode.CASH
    assert composer.get_draft(second.local_id).service_type == ""
    assert composer.get_draft(second.local_id).payment_mode is PaymentMode.ONLINE


def test_update_draft_rejects_unknown_field_and_id(composer: BatchComposer) -> None:
    draft = composer.add_draft()
    with pytest.raises(ValidationError):
        composer.update_draft(draft.local_id, "employee_name", "Bob")
    with pytest.raises(KeyError):
        composer.update_draft("missing", "service_type", "Car Spa")


def test_remove_draft_leaves_others(composer: BatchComposer) -> None:
    first = composer.add_draft()
    second = composer.add_draft()
    third = composer.add_draft()
    composer.remove_draft(second.local_id)
    assert [d.local_id for d in composer.drafts] == [first.local_id, third.local_id]


def test_commit_issues_one_create_per_draft_with_header_and_owner(composer, spy_store, today) -> None:
    _fill(composer, "Car Spa", 500, PaymentMode.ONLINE, PaymentAcceptedBy.ORGANIZATION_ACCOUNT)
    _fill(composer, "Deep clean", 750.5, PaymentMode.CASH, PaymentAcceptedBy.EMPLOYEE)
    _fill(composer, "One time", 300, PaymentMode.CASH, PaymentAcceptedBy.EMPLOYEE)

    ids = composer.commit(spy_store, OWNER, today=today)

    assert len(ids) == 3
    assert len(spy_store.created) == 3
    assert [r.service_type for r in spy_store.created] == ["Car Spa", "Deep clean", "One time"]
    for record in spy_store.created:
        assert record.employee_name == "Asha"
        assert record.service_date == date(2024, 3, 1)
        assert record.owner_user_id == OWNER


def test_commit_stamps_each_record_with_its_own_created_at(composer, store, today) -> None:
    _fill(composer, "Car Spa", 500, PaymentMode.ONLINE, PaymentAcceptedBy.ORGANIZATION_ACCOUNT)
    _fill(composer, "One time", 300, PaymentMode.CASH, PaymentAcceptedBy.EMPLOYEE)

    composer.commit(store, OWNER, today=today)

    stamps = [r.created_at for r in store.query(OWNER)]
    assert all(stamps)
    assert len(set(stamps)) == 2


def test_successful_commit_clears_drafts_and_keeps_header(composer, store, today) -> None:
    _fill(composer, "Car Spa", 500, PaymentMode.ONLINE, PaymentAcceptedBy.ORGANIZATION_ACCOUNT)
    composer.commit(store, OWNER, today=today)

    assert composer.drafts == []
    assert composer.header.employee_name == "Asha"
    assert composer.header.service_date == date(2024, 3, 1)
    composer.add_draft()


@pytest.mark.parametrize(
    "service_type, amount, accepted_by, field",
    [
        ("", 100, PaymentAcceptedBy.EMPLOYEE, "service_type"),
        ("Car Spa", 0, PaymentAcceptedBy.EMPLOYEE, "payment_amount"),
        ("Car Spa", -5, PaymentAcceptedBy.EMPLOYEE, "payment_amount"),
        ("Car Spa", "nan", PaymentAcceptedBy.EMPLOYEE, "payment_amount"),
        ("Car Spa", float("inf"), PaymentAcceptedBy.EMPLOYEE, "payment_amount"),
        ("Car Spa", 100, None, "payment_accepted_by"),
    ],
)
def test_any_invalid_draft_aborts_whole_commit(composer, spy_store, backend, today, service_type, amount, accepted_by, field) -> None:
    _fill(composer, "Car Spa", 500, PaymentMode.ONLINE, PaymentAcceptedBy.ORGANIZATION_ACCOUNT)
    _fill(composer, service_type, amount, PaymentMode.CASH, accepted_by)

    with pytest.raises(ValidationError) as exc_info:
        composer.commit(spy_store, OWNER, today=today)

    assert exc_info.value.field == field
    assert exc_info.value.index == 1
    assert spy_store.created == []
    assert backend.rows == []
    assert len(composer.drafts) == 2


def test_first_validation_failure_is_reported(composer, spy_store, today) -> None:
    _fill(composer, "", 500, PaymentMode.ONLINE, PaymentAcceptedBy.EMPLOYEE)
    _fill(composer, "Car Spa", 0, PaymentMode.CASH, PaymentAcceptedBy.EMPLOYEE)

    with pytest.raises(ValidationError) as exc_info:
        composer.commit(spy_store, OWNER, today=today)

    assert exc_info.value.index == 0
    assert exc_info.value.field == "service_type"
    assert str(exc_info.value).startswith("Service entry #1:")


def test_commit_with_no_drafts_is_a_validation_error(composer, spy_store, today) -> None:
    with pytest.raises(ValidationError):
        composer.commit(spy_store, OWNER, today=today)
    assert spy_store.created == []


def test_commit_rejects_future_header_date(spy_store) -> None:
    composer = BatchComposer()
    composer.set_header(employee_name="Asha", service_date=date(2024, 7, 2))
    _fill(composer, "Car Spa", 500, PaymentMode.ONLINE, PaymentAcceptedBy.EMPLOYEE)

    with pytest.raises(ValidationError) as exc_info:
        composer.commit(spy_store, OWNER, today=date(2024, 7, 1))

    assert exc_info.value.field == "service_date"
    assert spy_store.created == []


def test_scenario_second_draft_with_zero_amount_persists_nothing(composer, spy_store, backend, today) -> None:
    _fill(composer, "Car Spa", 500, PaymentMode.ONLINE, PaymentAcceptedBy.ORGANIZATION_ACCOUNT)
    _fill(composer, "Deep clean", 0, PaymentMode.CASH, PaymentAcceptedBy.EMPLOYEE)

    with pytest.raises(ValidationError) as exc_info:
        composer.commit(spy_store, OWNER, today=today)

    assert exc_info.value.index == 1
    assert exc_info.value.field == "payment_amount"
    assert backend.rows == []


def test_scenario_single_valid_draft_appears_in_next_snapshot(composer, store, today) -> None:
    store.create(make_record(date(2024, 3, 5), service_type="Deep clean"))
    store.create(make_record(date(2024, 2, 20), service_type="Car Spa"))
    subscription = store.subscribe(OWNER)
    assert [r.service_date for r in subscription.poll()] == [date(2024, 3, 5), date(2024, 2, 20)]

    _fill(composer, "One time", 300, PaymentMode.CASH, PaymentAcceptedBy.EMPLOYEE)
    (new_id,) = composer.commit(store, OWNER, today=today)

    snapshot = subscription.poll()
    assert [r.service_date for r in snapshot] == [date(2024, 3, 5), date(2024, 3, 1), date(2024, 2, 20)]
    created = snapshot[1]
    assert created.id == new_id
    assert created.owner_user_id == OWNER
    assert created.created_at is not None
    assert created.service_type == "One time"
    assert created.payment_amount == 300
    assert created.payment_mode is PaymentMode.CASH
    assert created.payment_accepted_by is PaymentAcceptedBy.EMPLOYEE


def test_write_failure_mid_batch_keeps_earlier_records(composer, store, backend, today) -> None:
    _fill(composer, "Car Spa", 500, PaymentMode.ONLINE, PaymentAcceptedBy.ORGANIZATION_ACCOUNT)
    _fill(composer, "Deep clean", 800, PaymentMode.CASH, PaymentAcceptedBy.EMPLOYEE)
    third = _fill(composer, "One time", 300, PaymentMode.CASH, PaymentAcceptedBy.EMPLOYEE)
    backend.fail_appends_after = 2

    with pytest.raises(PartialCommitError) as exc_info:
        composer.commit(store, OWNER, today=today)

    assert len(exc_info.value.created_ids) == 2
    assert len(backend.rows) == 2
    assert [d.local_id for d in composer.drafts] == [third]


def test_write_failure_on_first_entry_is_a_plain_write_error(composer, store, backend, today) -> None:
    _fill(composer, "Car Spa", 500, PaymentMode.ONLINE, PaymentAcceptedBy.ORGANIZATION_ACCOUNT)
    backend.fail_appends_after = 0

    with pytest.raises(WriteError) as exc_info:
        composer.commit(store, OWNER, today=today)

    assert not isinstance(exc_info.value, PartialCommitError)
    assert len(composer.drafts) == 1
