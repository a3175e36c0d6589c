"""Tests for the scheduled notification jobs."""

from datetime import date

import pytest

from db.connection import transaction
from models.notification import NotificationType, ProviderType
from services.notification_dispatcher import NotificationDispatcher
from services.notification_scheduler import NotificationScheduler
from services.notification_settings_service import NotificationSettingsService
from tests.conftest import RecordingProvider

TODAY = date(2024, 3, 6)  # a Wednesday


@pytest.fixture
def slack():
    return RecordingProvider()


@pytest.fixture
def dispatcher(slack):
    return NotificationDispatcher({ProviderType.SLACK: slack}, timeout=2, deadline=5)


@pytest.fixture
def settings(db, cache, dispatcher):
    return NotificationSettingsService(cache, dispatcher)


@pytest.fixture
def scheduler(obligations, dispatcher, recurring):
    return NotificationScheduler(obligations, dispatcher, recurring, max_workers=2)


def _subscribe(settings, owner_id, ntype, **type_settings):
    settings.update_provider(owner_id, "SLACK", {"enabled": True, "webhook_url": f"https://hooks.test/{owner_id}"})
    settings.update_type(owner_id, ntype, {"enabled": True, "providers": ["SLACK"], **type_settings})


def _bill(obligations, owner_id, name, due, amount=25):
    return obligations.create_one_time(owner_id, "BILL", {"name": name, "amount": amount, "dueDate": due})


class TestBillDue:

    def test_sends_for_bills_due_in_days_before(self, owner, obligations, settings, scheduler, slack):
        _subscribe(settings, owner, "BILL_DUE")
        _bill(obligations, owner, "Water", date(2024, 3, 9))
        _bill(obligations, owner, "Later", date(2024, 3, 10))

        report = scheduler.run_bill_due(TODAY)

        assert [(r.key, r.status, r.detail) for r in report.results] == [(owner, "ok", ["SLACK"])]
        credentials, message = slack.calls[0]
        assert credentials == {"webhook_url": f"https://hooks.test/{owner}"}
        assert message.subject == "Upcoming Bills Reminder"
        assert "Water" in message.body and "Later" not in message.body

    def test_custom_days_before(self, owner, obligations, settings, scheduler, slack):
        _subscribe(settings, owner, "BILL_DUE", days_before=4)
        _bill(obligations, owner, "Later", date(2024, 3, 10))

        scheduler.run_bill_due(TODAY)

        assert "Later" in slack.calls[0][1].body

    def test_paid_bills_are_not_reminded(self, owner, obligations, payments, settings, scheduler, slack):
        _subscribe(settings, owner, "BILL_DUE")
        bill = _bill(obligations, owner, "Water", date(2024, 3, 9))
        payments.mark_paid(owner, bill.id, TODAY)

        report = scheduler.run_bill_due(TODAY)

        assert report.results[0].status == "skipped"
        assert slack.calls == []

    def test_disabled_type_is_not_processed(self, owner, obligations, settings, scheduler, slack):
        _subscribe(settings, owner, "BILL_DUE")
        settings.update_type(owner, "BILL_DUE", {"enabled": False})
        _bill(obligations, owner, "Water", date(2024, 3, 9))

        assert scheduler.run_bill_due(TODAY).results == []


class TestIsolation:

    def test_failing_owner_does_not_stop_the_run(self, owner, other_owner, obligations, settings, scheduler, slack):
        for owner_id in (owner, other_owner):
            _subscribe(settings, owner_id, "BILL_OVERDUE")
            _bill(obligations, owner_id, "Gym", date(2024, 3, 1))

        real_call = slack.__call__

        def fail_for_first_owner(credentials, message, timeout):
            if credentials["webhook_url"].endswith(str(owner)):
                raise RuntimeError("channel archived")
            real_call(credentials, message, timeout)

        scheduler.dispatcher.registry[ProviderType.SLACK] = fail_for_first_owner
        report = scheduler.run_bill_overdue(TODAY)

        statuses = {r.key: r.status for r in report.results}
        assert statuses == {owner: "failed", other_owner: "ok"}
        assert "channel archived" in report.failures[0].error
        assert len(slack.calls) == 1

    def test_malformed_settings_fail_only_that_owner(self, owner, other_owner, obligations, settings, scheduler):
        for owner_id in (owner, other_owner):
            _subscribe(settings, owner_id, "BILL_OVERDUE")
            _bill(obligations, owner_id, "Gym", date(2024, 3, 1))
        with transaction() as conn, conn.cursor() as cur:
            cur.execute("UPDATE notification_types SET settings = %s WHERE owner_id = %s;", ("{broken", owner))

        report = scheduler.run_bill_overdue(TODAY)

        statuses = {r.key: (r.status, r.error) for r in report.results}
        assert statuses[owner] == ("failed", "malformed notification settings")
        assert statuses[other_owner][0] == "ok"

    def test_no_linked_provider_is_skipped(self, owner, obligations, settings, scheduler):
        settings.update_type(owner, "BILL_OVERDUE", {"enabled": True})
        _bill(obligations, owner, "Gym", date(2024, 3, 1))

        report = scheduler.run_bill_overdue(TODAY)

        assert (report.results[0].status, report.results[0].detail) == ("skipped", "no enabled providers")

    def test_overlapping_run_is_skipped(self, owner, settings, scheduler):
        _subscribe(settings, owner, "BILL_OVERDUE")
        lock = scheduler._job_locks[NotificationType.BILL_OVERDUE]
        lock.acquire()
        try:
            report = scheduler.run_bill_overdue(TODAY)
        finally:
            lock.release()

        assert [r.status for r in report.results] == ["skipped"]


class TestSummaries:

    def test_weekly_summary(self, owner, obligations, settings, scheduler, slack):
        _subscribe(settings, owner, "WEEKLY_SUMMARY")
        _bill(obligations, owner, "Water", date(2024, 3, 4), amount=50)
        _bill(obligations, owner, "Rent", date(2024, 3, 12), amount=1200)
        obligations.create_one_time(owner, "INCOME", {"name": "Salary", "amount": 2000, "dueDate": date(2024, 3, 8)})

        report = scheduler.run_weekly_summary(TODAY)

        assert report.results[0].status == "ok"
        message = slack.calls[0][1]
        assert message.subject.startswith("Weekly Financial Summary - Mar 3 to Mar 09, 2024")
        assert "Net: $1,950.00" in message.body
        assert "Upcoming Bills Next Week (1):" in message.body

    def test_monthly_summary_is_sent_even_when_empty(self, owner, settings, scheduler, slack):
        _subscribe(settings, owner, "MONTHLY_SUMMARY")

        report = scheduler.run_job("MONTHLY_SUMMARY", date(2024, 3, 1))

        assert report.results[0].status == "ok"
        assert slack.calls[0][1].subject == "Monthly Financial Summary - March 2024"


class TestLifecycle:

    def test_start_registers_jobs_and_stop_shuts_down(self, scheduler):
        scheduler.start()
        try:
            assert scheduler.running
            job_ids = {job.id for job in scheduler.scheduler.get_jobs()}
            assert job_ids == {t.value for t in NotificationType} | {"GENERATION_SWEEP"}
        finally:
            scheduler.stop()
        assert not scheduler.running
