"""Tests for the paid/unpaid state machine and its ledger."""

from contextlib import contextmanager
from datetime import date

import pytest

from db.connection import transaction
from exceptions import AccessDeniedError, ConflictError, InvalidStateError, NotFoundError
from models.obligation import ObligationKind
from repositories.obligation_repo import ObligationRepository
from repositories.payment_repo import PaymentRepository
from services import cache_service, payment_service


def _ledger(obligation_id: int):
    return PaymentRepository().get_for_obligation(obligation_id)


def _record_order(monkeypatch, payments) -> list[str]:
    """Log cache invalidations and commits of the payment service in the order they happen."""
    events: list[str] = []
    real_transaction = payment_service.transaction
    real_invalidate = payments.cache.invalidate_many

    @contextmanager
    def recorded_transaction():
        with real_transaction() as conn:
            yield conn
        events.append("commit")

    def recorded_invalidate(owner_id, *kinds):
        events.append("invalidate")
        real_invalidate(owner_id, *kinds)

    monkeypatch.setattr(payment_service, "transaction", recorded_transaction)
    monkeypatch.setattr(payments.cache, "invalidate_many", recorded_invalidate)
    return events


class TestMarkPaid:

    def test_pay_records_ledger_entry(self, owner, payments, one_time_bill):
        bill, entry = payments.mark_paid(owner, one_time_bill.id, date(2024, 3, 5))

        assert bill.is_paid is True
        assert bill.paid_date == date(2024, 3, 5)
        assert entry.amount == 50.00
        stored = ObligationRepository().get_by_id(one_time_bill.id)
        assert stored.is_paid and stored.paid_date == date(2024, 3, 5)
        assert [(e.amount, e.paid_date) for e in _ledger(one_time_bill.id)] == [(50.0, date(2024, 3, 5))]

    def test_paid_date_defaults_to_today(self, owner, payments, one_time_bill):
        bill, _ = payments.mark_paid(owner, one_time_bill.id)

        assert bill.paid_date == date.today()

    def test_double_pay_is_a_conflict(self, owner, payments, one_time_bill):
        payments.mark_paid(owner, one_time_bill.id, date(2024, 3, 5))

        with pytest.raises(ConflictError):
            payments.mark_paid(owner, one_time_bill.id, date(2024, 3, 6))
        assert len(_ledger(one_time_bill.id)) == 1
        assert ObligationRepository().get_by_id(one_time_bill.id).paid_date == date(2024, 3, 5)

    def test_foreign_owner_is_denied(self, other_owner, payments, one_time_bill):
        with pytest.raises(AccessDeniedError):
            payments.mark_paid(other_owner, one_time_bill.id)
        assert _ledger(one_time_bill.id) == []

    def test_unknown_id_is_not_found(self, owner, payments):
        with pytest.raises(NotFoundError):
            payments.mark_paid(owner, 9999)

    def test_kind_mismatch_is_not_found(self, owner, payments, one_time_bill):
        with pytest.raises(NotFoundError):
            payments.mark_paid(owner, one_time_bill.id, kind=ObligationKind.INCOME)


class TestMarkUnpaid:

    def test_pay_then_unpay_round_trip(self, owner, payments, one_time_bill):
        payments.mark_paid(owner, one_time_bill.id, date(2024, 3, 5))

        bill = payments.mark_unpaid(owner, one_time_bill.id)

        assert bill.is_paid is False and bill.paid_date is None
        stored = ObligationRepository().get_by_id(one_time_bill.id)
        assert stored.is_paid is False and stored.paid_date is None
        assert _ledger(one_time_bill.id) == []

    def test_unpay_of_unpaid_is_a_conflict(self, owner, payments, one_time_bill):
        with pytest.raises(ConflictError) as exc_info:
            payments.mark_unpaid(owner, one_time_bill.id)
        assert not isinstance(exc_info.value, InvalidStateError)

    def test_paid_without_ledger_is_invalid_state(self, owner, payments, one_time_bill):
        with transaction() as conn, conn.cursor() as cur:
            ObligationRepository().set_paid_state(cur, one_time_bill.id, True, date(2024, 3, 5))

        with pytest.raises(InvalidStateError):
            payments.mark_unpaid(owner, one_time_bill.id)
        assert ObligationRepository().get_by_id(one_time_bill.id).is_paid is True

    def test_unpay_removes_only_the_latest_entry(self, owner, payments, one_time_bill):
        payments.mark_paid(owner, one_time_bill.id, date(2024, 3, 1))
        payments.mark_unpaid(owner, one_time_bill.id)
        payments.mark_paid(owner, one_time_bill.id, date(2024, 3, 9))

        payments.mark_unpaid(owner, one_time_bill.id)

        assert _ledger(one_time_bill.id) == []

    def test_foreign_owner_cannot_unpay(self, owner, other_owner, payments, one_time_bill):
        payments.mark_paid(owner, one_time_bill.id, date(2024, 3, 5))

        with pytest.raises(AccessDeniedError):
            payments.mark_unpaid(other_owner, one_time_bill.id)
        assert len(_ledger(one_time_bill.id)) == 1


class TestCacheCoherence:

    def test_list_reflects_payment_immediately(self, owner, obligations, payments, one_time_bill):
        assert obligations.list_bills(owner)[0].is_paid is False

        payments.mark_paid(owner, one_time_bill.id, date(2024, 3, 5))
        assert obligations.list_bills(owner)[0].is_paid is True
        assert len(obligations.payment_history(owner)) == 1

        payments.mark_unpaid(owner, one_time_bill.id)
        assert obligations.list_bills(owner)[0].is_paid is False
        assert obligations.payment_history(owner) == []

    def test_history_lists_newest_first(self, owner, obligations, payments):
        first = obligations.create_one_time(owner, "BILL", {"name": "A", "amount": 10, "dueDate": "2024-03-01"})
        second = obligations.create_one_time(owner, "BILL", {"name": "B", "amount": 20, "dueDate": "2024-03-02"})
        payments.mark_paid(owner, first.id, date(2024, 3, 1))
        payments.mark_paid(owner, second.id, date(2024, 3, 4))

        history = obligations.payment_history(owner)

        assert [h["name"] for h in history] == ["B", "A"]
        assert history[0]["paidDate"] == "2024-03-04"

    def test_pay_invalidates_before_and_after_commit(self, owner, payments, monkeypatch, one_time_bill):
        events = _record_order(monkeypatch, payments)

        payments.mark_paid(owner, one_time_bill.id, date(2024, 3, 5))

        assert events == ["invalidate", "commit", "invalidate"]

    def test_unpay_invalidates_before_and_after_commit(self, owner, payments, monkeypatch, one_time_bill):
        payments.mark_paid(owner, one_time_bill.id, date(2024, 3, 5))
        events = _record_order(monkeypatch, payments)

        payments.mark_unpaid(owner, one_time_bill.id)

        assert events == ["invalidate", "commit", "invalidate"]

    def test_list_loaded_inside_the_transition_is_not_kept(self, owner, obligations, payments, monkeypatch,
                                                          one_time_bill):
        obligations.list_bills(owner)
        real_set_paid_state = payments.obligation_repo.set_paid_state

        def load_while_writing(cur, obligation_id, is_paid, paid_date):
            real_set_paid_state(cur, obligation_id, is_paid, paid_date)
            # a reader refilling the cache from the pre-commit view
            payments.cache.get_or_load((owner, cache_service.BILLS), lambda: "stale")

        monkeypatch.setattr(payments.obligation_repo, "set_paid_state", load_while_writing)
        payments.mark_paid(owner, one_time_bill.id, date(2024, 3, 5))

        assert obligations.list_bills(owner)[0].is_paid is True
