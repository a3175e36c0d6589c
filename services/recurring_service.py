"""
services/recurring_service.py
------------------------------
Business logic for recurring templates (payees and income sources) and
the generation of their obligations up to the rolling horizon.
"""

import threading
from contextlib import contextmanager
from datetime import date
from typing import Optional

from config import GENERATION_HORIZON_MONTHS, GENERATION_MAX_RETRIES
from db.connection import INTEGRITY_ERRORS, transaction
from exceptions import GenerationRaceError, NotFoundError, ValidationError
from models.obligation import Obligation, ObligationKind
from models.recurring import Frequency, RecurringTemplate, TemplateKind
from models.report import BatchReport, ItemResult
from repositories.obligation_repo import ObligationRepository
from repositories.template_repo import TemplateRepository
from services import cache_service
from services.cache_service import CacheService
from services.category_service import CategoryService
from services.obligation_service import (
    cache_kinds_for,
    parse_amount,
    parse_date,
    require_text,
)
from services.recurrence import compute_occurrences, horizon_from
from utils.logger import bind, get_logger

logger = get_logger(__name__)


class RecurringService:
    """
    Handles all business logic for recurring templates.

    Responsibilities:
        - Validate and store payees / income sources.
        - Keep each template's obligations generated up to the horizon,
          without ever inserting the same due date twice.
        - Run the on-demand and scheduled "check recurring" passes.
    """

    def __init__(
        self,
        cache: CacheService,
        horizon_months: int = GENERATION_HORIZON_MONTHS,
        max_retries: int = GENERATION_MAX_RETRIES,
    ):
        self.cache = cache
        self.horizon_months = horizon_months
        self.max_retries = max_retries
        self.template_repo = TemplateRepository()
        self.obligation_repo = ObligationRepository()
        self.categories = CategoryService(cache)
        self._locks: dict[int, threading.Lock] = {}
        self._locks_guard = threading.Lock()

    # ── TEMPLATES ─────────────────────────────────────────

    def create_template(
        self, owner_id: int, kind: TemplateKind, data: dict, today: Optional[date] = None
    ) -> tuple[RecurringTemplate, int]:
        """
        Validate and save a template, then generate its first batch.

        Args:
            owner_id: Owner of the new template.
            kind: PAYEE or INCOME_SOURCE.
            data: ``name``, ``expectedAmount``, ``frequency``, ``startDate``,
                optional ``categoryId`` and ``description``.
            today: Reference date for the horizon; defaults to today.

        Returns:
            The saved template and the number of obligations created.
        """
        raw_frequency = str(data.get("frequency") or "").upper()
        try:
            frequency = Frequency(raw_frequency)
        except ValueError:
            raise ValidationError(f"Invalid frequency: {data.get('frequency')!r}")

        template = RecurringTemplate(
            owner_id=owner_id,
            kind=TemplateKind(kind),
            name=require_text(data.get("name")),
            expected_amount=parse_amount(data.get("expectedAmount"), "expectedAmount"),
            frequency=frequency,
            start_date=parse_date(data.get("startDate"), "startDate"),
            category_id=self.categories.resolve(owner_id, data.get("categoryId")),
            description=data.get("description"),
        )
        self.template_repo.add(template)
        self.cache.invalidate_many(owner_id, cache_service.TEMPLATES)
        created = self.ensure_template(template, today)
        return template, created

    def list_templates(self, owner_id: int, kind: Optional[TemplateKind] = None) -> list[RecurringTemplate]:
        templates = self.cache.get_or_load(
            (owner_id, cache_service.TEMPLATES),
            lambda: self.template_repo.get_all(owner_id),
        )
        if kind is None:
            return templates
        return [t for t in templates if t.kind == TemplateKind(kind)]

    def update_template(
        self,
        owner_id: int,
        template_id: int,
        data: dict,
        today: Optional[date] = None,
        kind: Optional[TemplateKind] = None,
    ) -> tuple[RecurringTemplate, int]:
        """
        Edit a template's name, expected amount, category or description.

        The change is copied onto the template's unpaid obligations due on or
        after ``today``; paid and past ones keep what was recorded. Frequency
        and start date define the generated schedule and cannot be changed.

        Returns:
            The updated template and the number of obligations it was copied onto.

        Raises:
            NotFoundError: Unknown or foreign template, or one of another ``kind``.
        """
        if "frequency" in data or "startDate" in data:
            raise ValidationError("Frequency and start date cannot be changed; create a new template instead")
        template = self._get_owned(owner_id, template_id, kind)
        if "name" in data:
            template.name = require_text(data["name"])
        if "expectedAmount" in data:
            template.expected_amount = parse_amount(data["expectedAmount"], "expectedAmount")
        if "categoryId" in data:
            template.category_id = self.categories.resolve(owner_id, data["categoryId"])
        if "description" in data:
            template.description = data["description"]

        kinds = (cache_service.TEMPLATES, *cache_kinds_for(ObligationKind(template.obligation_kind)))
        with transaction() as conn, conn.cursor() as cur:
            self.template_repo.update(template, cur)
            updated = self.obligation_repo.apply_template(cur, template, today or date.today())
            self.cache.invalidate_many(owner_id, *kinds)
        self.cache.invalidate_many(owner_id, *kinds)
        bind(logger, owner=owner_id, template=template_id).info(
            f"Updated template; copied onto {updated} upcoming obligation(s)"
        )
        return template, updated

    def delete_template(self, owner_id: int, template_id: int, kind: Optional[TemplateKind] = None) -> None:
        """Delete a template and every obligation generated from it."""
        template = self._get_owned(owner_id, template_id, kind)
        kinds = (cache_service.TEMPLATES, *cache_kinds_for(ObligationKind(template.obligation_kind)))
        with transaction() as conn, conn.cursor() as cur:
            self.template_repo.delete(template_id, owner_id, cur)
            self.cache.invalidate_many(owner_id, *kinds)
        self.cache.invalidate_many(owner_id, *kinds)

    # ── GENERATION ────────────────────────────────────────

    def ensure_template(self, template: RecurringTemplate, today: Optional[date] = None) -> int:
        """
        Generate the missing obligations of one template up to the horizon.

        Idempotent: a second call with the same ``today`` creates nothing.
        A concurrent writer that wins the race on the same due date surfaces
        as GenerationRaceError; the pass is retried from the fresh watermark.

        Returns:
            Number of obligations created.

        Raises:
            GenerationRaceError: Still losing the race after ``max_retries`` attempts.
        """
        today = today or date.today()
        log = bind(logger, owner=template.owner_id, template=template.id)
        last_error: Optional[GenerationRaceError] = None

        for attempt in range(1, self.max_retries + 1):
            try:
                with self._template_lock(template.id):
                    created = self._generate(template, today)
            except GenerationRaceError as e:
                last_error = e
                log.warning(f"Generation race (attempt {attempt}/{self.max_retries}): {e}")
                continue
            if created:
                self.cache.invalidate_many(
                    template.owner_id, *cache_kinds_for(ObligationKind(template.obligation_kind))
                )
                log.info(f"Generated {created} obligation(s) up to {horizon_from(today, self.horizon_months)}")
            return created

        log.error(f"Giving up after {self.max_retries} attempts")
        raise last_error

    def check_recurring(self, owner_id: int, today: Optional[date] = None) -> BatchReport:
        """
        Run ``ensure_template`` over every template of one owner.

        A failing template is recorded and the pass moves on to the next one.
        """
        today = today or date.today()
        report = BatchReport(name=f"check_recurring owner={owner_id}")
        for template in self.template_repo.get_all(owner_id):
            report.add(self._ensure_item(template, today))
        logger.info(report.summary())
        return report

    def run_generation_sweep(self, today: Optional[date] = None) -> BatchReport:
        """Daily pass over every owner with a recurring template."""
        today = today or date.today()
        report = BatchReport(name="generation_sweep")
        for owner_id in self.template_repo.get_recurring_owner_ids():
            for template in self.template_repo.get_all(owner_id):
                report.add(self._ensure_item(template, today))
        logger.info(report.summary())
        return report

    # ── HELPERS ───────────────────────────────────────────

    def _get_owned(self, owner_id: int, template_id: int, kind: Optional[TemplateKind] = None) -> RecurringTemplate:
        template = self.template_repo.get_by_id(template_id)
        if template is None or template.owner_id != owner_id:
            raise NotFoundError("Template not found", {"owner": owner_id, "template": template_id})
        if kind is not None and template.kind != TemplateKind(kind):
            raise NotFoundError("Template not found", {"owner": owner_id, "template": template_id})
        return template

    def _ensure_item(self, template: RecurringTemplate, today: date) -> ItemResult:
        try:
            return ItemResult.ok(template.id, self.ensure_template(template, today))
        except Exception as e:
            bind(logger, owner=template.owner_id, template=template.id).error(f"Generation failed: {e}")
            return ItemResult.failed(template.id, str(e))

    @contextmanager
    def _template_lock(self, template_id: int):
        with self._locks_guard:
            lock = self._locks.setdefault(template_id, threading.Lock())
        with lock:
            yield

    def _generate(self, template: RecurringTemplate, today: date) -> int:
        """One generation attempt inside a single transaction."""
        horizon = horizon_from(today, self.horizon_months)
        try:
            with transaction() as conn, conn.cursor() as cur:
                locked = self.template_repo.lock(cur, template.id)
                if locked is None:
                    raise NotFoundError("Template not found",
                                        {"owner": template.owner_id, "template": template.id})

                created = 0
                # Rows created before the watermark existed fall back to the stored max.
                latest = locked.generated_through or self.obligation_repo.find_max_due_date(locked.id, cur)
                if latest is None:
                    root = self.obligation_repo.insert(cur, self._instance(locked, locked.start_date))
                    root_id = root.id
                    latest = locked.start_date
                    created += 1
                else:
                    root_id = self.obligation_repo.find_lineage_root(cur, locked.id)

                due_dates = compute_occurrences(locked, horizon, after_date=latest)
                # An edited due date may already sit on a future occurrence.
                taken = self.obligation_repo.due_dates_after(cur, locked.id, latest)
                pending = [d for d in due_dates if d not in taken]
                if pending and root_id is None:
                    root_id = self.obligation_repo.insert(cur, self._instance(locked, pending.pop(0))).id
                    created += 1
                created += self.obligation_repo.bulk_insert(
                    [self._instance(locked, d, root_id) for d in pending], cur
                )

                through = due_dates[-1] if due_dates else latest
                if through != locked.generated_through:
                    self.template_repo.set_generated_through(cur, locked.id, through)
                if created:
                    self.cache.invalidate_many(
                        locked.owner_id, *cache_kinds_for(ObligationKind(locked.obligation_kind))
                    )
                return created
        except INTEGRITY_ERRORS as e:
            raise GenerationRaceError(
                "Occurrence already exists", {"owner": template.owner_id, "template": template.id}
            ) from e

    @staticmethod
    def _instance(template: RecurringTemplate, due_date: date, parent_id: Optional[int] = None) -> Obligation:
        return Obligation(
            owner_id=template.owner_id,
            kind=ObligationKind(template.obligation_kind),
            name=template.name,
            amount=template.expected_amount,
            due_date=due_date,
            template_id=template.id,
            category_id=template.category_id,
            parent_id=parent_id,
            description=template.description,
        )
