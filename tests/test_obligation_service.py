"""Tests for owner-scoped obligation CRUD and lineage deletes."""

from datetime import date

import pytest

from exceptions import AccessDeniedError, ConflictError, NotFoundError, ValidationError
from models.obligation import ObligationKind
from models.recurring import TemplateKind


def _series(owner, recurring):
    recurring.create_template(owner, TemplateKind.PAYEE, {
        "name": "Internet",
        "expectedAmount": 40,
        "frequency": "MONTHLY",
        "startDate": date(2024, 1, 1),
    }, today=date(2024, 1, 1))


class TestCreateAndRead:

    def test_create_one_time_bill(self, owner, obligations, categories):
        utilities = categories.create(owner, "Utilities")

        bill = obligations.create_one_time(owner, ObligationKind.BILL, {
            "name": "Electricity", "amount": "75.5", "dueDate": "2024-04-02", "categoryId": utilities.id,
        })

        fetched = obligations.get(owner, bill.id)
        assert fetched.amount == 75.5
        assert fetched.template_id is None and fetched.parent_id is None
        assert fetched.category_name == "Utilities"

    def test_missing_fields_are_rejected(self, owner, obligations):
        with pytest.raises(ValidationError):
            obligations.create_one_time(owner, ObligationKind.BILL, {"amount": 1, "dueDate": "2024-01-01"})
        with pytest.raises(ValidationError):
            obligations.create_one_time(owner, ObligationKind.BILL, {"name": "X", "dueDate": "2024-01-01"})

    def test_get_enforces_ownership(self, owner, other_owner, obligations, one_time_bill):
        with pytest.raises(AccessDeniedError):
            obligations.get(other_owner, one_time_bill.id)
        with pytest.raises(NotFoundError):
            obligations.get(owner, one_time_bill.id + 100)
        with pytest.raises(NotFoundError):
            obligations.get(owner, one_time_bill.id, ObligationKind.INCOME)

    def test_lists_are_per_owner_and_kind(self, owner, other_owner, obligations, one_time_bill):
        obligations.create_one_time(owner, ObligationKind.INCOME, {"name": "Bonus", "amount": 500, "dueDate": "2024-03-15"})

        assert [b.name for b in obligations.list_bills(owner)] == ["Water"]
        assert [i.name for i in obligations.list_incomes(owner)] == ["Bonus"]
        assert obligations.list_bills(other_owner) == []


class TestUpdate:

    def test_update_changes_fields_and_refreshes_cache(self, owner, obligations, one_time_bill):
        obligations.list_bills(owner)

        obligations.update(owner, one_time_bill.id, {"amount": 55, "dueDate": date(2024, 3, 12)})

        bill = obligations.list_bills(owner)[0]
        assert bill.amount == 55.0 and bill.due_date == date(2024, 3, 12)

    def test_paid_state_is_not_editable(self, owner, obligations, one_time_bill):
        with pytest.raises(ValidationError):
            obligations.update(owner, one_time_bill.id, {"isPaid": True})

    def test_due_date_taken_by_a_sibling_is_a_conflict(self, owner, obligations, recurring):
        _series(owner, recurring)
        bills = obligations.list_bills(owner)

        with pytest.raises(ConflictError) as excinfo:
            obligations.update(owner, bills[1].id, {"dueDate": bills[2].due_date, "amount": 99})

        assert str(bills[2].due_date) in excinfo.value.message
        unchanged = obligations.get(owner, bills[1].id)
        assert unchanged.due_date == bills[1].due_date and unchanged.amount == 40.0

    def test_one_time_bills_may_share_a_due_date(self, owner, obligations, one_time_bill):
        other = obligations.create_one_time(owner, "BILL", {"name": "Gas", "amount": 30, "dueDate": "2024-03-11"})

        moved = obligations.update(owner, other.id, {"dueDate": one_time_bill.due_date})

        assert moved.due_date == one_time_bill.due_date


class TestDelete:

    def test_single_delete_keeps_the_rest_of_the_series(self, owner, obligations, recurring):
        _series(owner, recurring)
        bills = obligations.list_bills(owner)

        assert obligations.delete(owner, bills[3].id) == 1
        assert len(obligations.list_bills(owner)) == len(bills) - 1

    def test_cascade_from_child_removes_whole_lineage(self, owner, obligations, recurring, one_time_bill):
        _series(owner, recurring)
        series = [b for b in obligations.list_bills(owner) if b.template_id is not None]

        deleted = obligations.delete(owner, series[5].id, cascade=True)

        assert deleted == len(series)
        assert [b.id for b in obligations.list_bills(owner)] == [one_time_bill.id]

    def test_cascade_from_root_removes_whole_lineage(self, owner, obligations, recurring):
        _series(owner, recurring)
        root = obligations.list_bills(owner)[0]

        obligations.delete(owner, root.id, cascade=True)

        assert obligations.list_bills(owner) == []

    def test_foreign_delete_is_denied(self, owner, other_owner, obligations, one_time_bill):
        with pytest.raises(AccessDeniedError):
            obligations.delete(other_owner, one_time_bill.id, cascade=True)
        assert obligations.get(owner, one_time_bill.id)
