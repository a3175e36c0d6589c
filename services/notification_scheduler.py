"""
services/notification_scheduler.py
----------------------------------
Cron-driven notification jobs.

    BILL_DUE          daily 09:00     unpaid bills due in ``days_before`` days
    BILL_OVERDUE      daily 10:00     unpaid bills past their due date
    WEEKLY_SUMMARY    Sunday 08:00    this week's totals and next week's bills
    MONTHLY_SUMMARY   1st, 08:00      this month against the previous one
    generation sweep  daily 02:00     keeps every template generated to the horizon

Every job can also be run directly with an explicit ``today``. A run
processes each owner with an enabled configuration on a bounded worker
pool and returns a BatchReport; one owner's failure is recorded and
logged, never fatal to the run.
"""

import threading
from concurrent.futures import ThreadPoolExecutor
from datetime import date, timedelta
from typing import Callable, Optional

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.cron import CronTrigger

from config import DEFAULT_DAYS_BEFORE, SCHEDULER_MAX_WORKERS
from exceptions import ProviderDeliveryError
from models.notification import Message, NotificationType, NotificationTypeConfig
from models.obligation import ObligationKind
from models.report import BatchReport, ItemResult
from repositories.notification_repo import NotificationRepository
from services import digest_service
from services.notification_dispatcher import NotificationDispatcher
from services.obligation_service import ObligationService
from services.recurring_service import RecurringService
from utils.logger import bind, get_logger

logger = get_logger(__name__)

SWEEP_JOB = "GENERATION_SWEEP"

_TRIGGERS = {
    NotificationType.BILL_DUE: dict(hour=9, minute=0),
    NotificationType.BILL_OVERDUE: dict(hour=10, minute=0),
    NotificationType.WEEKLY_SUMMARY: dict(day_of_week="sun", hour=8, minute=0),
    NotificationType.MONTHLY_SUMMARY: dict(day=1, hour=8, minute=0),
}


class NotificationScheduler:
    """
    Owns the APScheduler instance and the job bodies.

    Usage:
        scheduler = NotificationScheduler(obligations, dispatcher, recurring)
        scheduler.start()
        ...
        report = scheduler.run_bill_due(today=date(2024, 3, 1))
        ...
        scheduler.stop()
    """

    def __init__(
        self,
        obligations: ObligationService,
        dispatcher: NotificationDispatcher,
        recurring: Optional[RecurringService] = None,
        max_workers: int = SCHEDULER_MAX_WORKERS,
    ):
        self.obligations = obligations
        self.dispatcher = dispatcher
        self.recurring = recurring
        self.max_workers = max_workers
        self.repo = NotificationRepository()
        self.scheduler = BackgroundScheduler()
        self._job_locks = {job: threading.Lock() for job in [*NotificationType, SWEEP_JOB]}
        self._builders: dict[NotificationType, Callable[[NotificationTypeConfig, date], Optional[Message]]] = {
            NotificationType.BILL_DUE: self._build_bill_due,
            NotificationType.BILL_OVERDUE: self._build_bill_overdue,
            NotificationType.WEEKLY_SUMMARY: self._build_weekly_summary,
            NotificationType.MONTHLY_SUMMARY: self._build_monthly_summary,
        }

    # ── LIFECYCLE ─────────────────────────────────────────

    @property
    def running(self) -> bool:
        return self.scheduler.running

    def start(self) -> None:
        if self.scheduler.running:
            logger.warning("Notification scheduler already running")
            return
        for ntype, fields in _TRIGGERS.items():
            self.scheduler.add_job(
                self.run_job,
                CronTrigger(**fields),
                args=[ntype],
                id=ntype.value,
                replace_existing=True,
                max_instances=1,
                coalesce=True,
            )
        if self.recurring is not None:
            self.scheduler.add_job(
                self.run_generation_sweep,
                CronTrigger(hour=2, minute=0),
                id=SWEEP_JOB,
                replace_existing=True,
                max_instances=1,
                coalesce=True,
            )
        self.scheduler.start()
        logger.info(f"Notification scheduler started with {len(self.scheduler.get_jobs())} jobs")

    def stop(self) -> None:
        if not self.scheduler.running:
            return
        self.scheduler.shutdown(wait=True)
        logger.info("Notification scheduler stopped")

    # ── JOBS ──────────────────────────────────────────────

    def run_bill_due(self, today: Optional[date] = None) -> BatchReport:
        return self.run_job(NotificationType.BILL_DUE, today)

    def run_bill_overdue(self, today: Optional[date] = None) -> BatchReport:
        return self.run_job(NotificationType.BILL_OVERDUE, today)

    def run_weekly_summary(self, today: Optional[date] = None) -> BatchReport:
        return self.run_job(NotificationType.WEEKLY_SUMMARY, today)

    def run_monthly_summary(self, today: Optional[date] = None) -> BatchReport:
        return self.run_job(NotificationType.MONTHLY_SUMMARY, today)

    def run_job(self, ntype: NotificationType, today: Optional[date] = None) -> BatchReport:
        """
        Run one notification job over every owner that enabled it.

        If the previous run of the same job is still executing, this firing
        is skipped and the report holds a single skipped item.
        """
        ntype = NotificationType(ntype)
        today = today or date.today()
        report = BatchReport(name=f"{ntype.value} {today}")
        lock = self._job_locks[ntype]
        if not lock.acquire(blocking=False):
            logger.warning(f"{ntype.value}: previous run still executing; skipped")
            report.add(ItemResult.skipped(ntype.value, "previous run still executing"))
            return report

        try:
            configs = self.repo.get_enabled_types(ntype)
            with ThreadPoolExecutor(max_workers=self.max_workers, thread_name_prefix=ntype.value.lower()) as pool:
                for result in pool.map(lambda c: self._process_owner(c, today), configs):
                    report.add(result)
        finally:
            lock.release()

        logger.info(report.summary())
        return report

    def run_generation_sweep(self, today: Optional[date] = None) -> BatchReport:
        """Extend every owner's recurring templates to the horizon."""
        if self.recurring is None:
            raise RuntimeError("Generation sweep needs a RecurringService")
        lock = self._job_locks[SWEEP_JOB]
        if not lock.acquire(blocking=False):
            logger.warning("Generation sweep: previous run still executing; skipped")
            report = BatchReport(name="generation_sweep")
            report.add(ItemResult.skipped(SWEEP_JOB, "previous run still executing"))
            return report
        try:
            return self.recurring.run_generation_sweep(today)
        finally:
            lock.release()

    # ── PER OWNER ─────────────────────────────────────────

    def _process_owner(self, config: NotificationTypeConfig, today: date) -> ItemResult:
        owner_id = config.owner_id
        log = bind(logger, owner=owner_id, job=config.type.value)
        if config.settings is None:
            log.error("Notification settings could not be parsed")
            return ItemResult.failed(owner_id, "malformed notification settings")

        try:
            message = self._builders[config.type](config, today)
            if message is None:
                return ItemResult.skipped(owner_id, "nothing to send")
            providers = self.repo.get_enabled_providers(config.id)
            if not providers:
                log.info("No enabled providers linked; skipped")
                return ItemResult.skipped(owner_id, "no enabled providers")
            delivered = self.dispatcher.send(owner_id, message, providers)
            return ItemResult.ok(owner_id, [p.value for p in delivered])
        except ProviderDeliveryError as e:
            # Already logged by the dispatcher.
            return ItemResult.failed(owner_id, str(e))
        except Exception as e:
            log.error(f"Notification job failed: {e}")
            return ItemResult.failed(owner_id, str(e))

    # ── MESSAGE BUILDERS ──────────────────────────────────

    def _build_bill_due(self, config: NotificationTypeConfig, today: date) -> Optional[Message]:
        days_before = int(config.settings.get("days_before", DEFAULT_DAYS_BEFORE))
        due_day = today + timedelta(days=days_before)
        bills = self.obligations.unpaid_bills_due_on(config.owner_id, due_day)
        return digest_service.due_digest(bills, due_day) if bills else None

    def _build_bill_overdue(self, config: NotificationTypeConfig, today: date) -> Optional[Message]:
        bills = self.obligations.unpaid_bills_before(config.owner_id, today)
        return digest_service.overdue_digest(bills) if bills else None

    def _build_weekly_summary(self, config: NotificationTypeConfig, today: date) -> Message:
        owner_id = config.owner_id
        start, end = digest_service.week_bounds(today)
        next_start, next_end = end + timedelta(days=1), end + timedelta(days=7)
        bills = self.obligations.due_between(owner_id, start, end, ObligationKind.BILL)
        incomes = self.obligations.due_between(owner_id, start, end, ObligationKind.INCOME)
        upcoming = [
            b for b in self.obligations.due_between(owner_id, next_start, next_end, ObligationKind.BILL)
            if not b.is_paid
        ]
        return digest_service.weekly_digest(today, bills, incomes, upcoming)

    def _build_monthly_summary(self, config: NotificationTypeConfig, today: date) -> Message:
        owner_id = config.owner_id
        start, end = digest_service.month_bounds(today)
        prev_start, prev_end = digest_service.previous_month_bounds(today)
        return digest_service.monthly_digest(
            today,
            self.obligations.due_between(owner_id, start, end, ObligationKind.BILL),
            self.obligations.due_between(owner_id, start, end, ObligationKind.INCOME),
            self.obligations.due_between(owner_id, prev_start, prev_end, ObligationKind.BILL),
            self.obligations.due_between(owner_id, prev_start, prev_end, ObligationKind.INCOME),
        )
