"""
services/obligation_service.py
------------------------------
Business logic for bills and income entries: owner-scoped CRUD,
lineage-aware deletes, and cached read models.
"""

from datetime import date
from typing import Any, Optional

from db.connection import INTEGRITY_ERRORS, transaction
from exceptions import AccessDeniedError, ConflictError, NotFoundError, ValidationError
from models.obligation import Obligation, ObligationKind
from repositories.obligation_repo import ObligationRepository
from repositories.payment_repo import PaymentRepository
from repositories.template_repo import TemplateRepository
from services import cache_service
from services.cache_service import CacheService
from services.category_service import CategoryService
from utils.logger import bind, get_logger

logger = get_logger(__name__)


def require_owned(obligation: Optional[Obligation], obligation_id: int, owner_id: int) -> Obligation:
    """
    Enforce row-level ownership.

    Raises:
        NotFoundError: No record with this id.
        AccessDeniedError: The record belongs to another owner.
    """
    if obligation is None:
        raise NotFoundError("Obligation not found", {"owner": owner_id, "obligation": obligation_id})
    if obligation.owner_id != owner_id:
        raise AccessDeniedError("Obligation belongs to another owner",
                                {"owner": owner_id, "obligation": obligation_id})
    return obligation


def cache_kinds_for(kind: ObligationKind) -> tuple[str, ...]:
    """Resource kinds to invalidate after a write to an obligation of ``kind``."""
    listing = cache_service.BILLS if ObligationKind(kind) == ObligationKind.BILL else cache_service.INCOMES
    return listing, cache_service.PAYMENTS


def parse_amount(value: Any, field: str = "amount") -> float:
    try:
        amount = float(value)
    except (TypeError, ValueError):
        raise ValidationError(f"Invalid {field}: {value!r}")
    if amount < 0:
        raise ValidationError(f"{field} must not be negative")
    return round(amount, 2)


def parse_date(value: Any, field: str = "date") -> date:
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value)[:10])
    except (TypeError, ValueError):
        raise ValidationError(f"Invalid {field}: {value!r}")


def require_text(value: Any, field: str = "name", max_length: int = 100) -> str:
    text = str(value).strip() if value is not None else ""
    if not text:
        raise ValidationError(f"Missing required field: {field}")
    if len(text) > max_length:
        raise ValidationError(f"{field} is longer than {max_length} characters")
    return text


class ObligationService:
    """
    Owner-scoped access to obligations.

    Reads of whole lists go through the cache; every write invalidates the
    owner's affected resource kinds before returning.
    """

    def __init__(self, cache: CacheService):
        self.cache = cache
        self.repo = ObligationRepository()
        self.payment_repo = PaymentRepository()
        self.template_repo = TemplateRepository()
        self.categories = CategoryService(cache)

    # ── READ ──────────────────────────────────────────────

    def list_bills(self, owner_id: int) -> list[Obligation]:
        return self.cache.get_or_load(
            (owner_id, cache_service.BILLS),
            lambda: self.repo.get_all(owner_id, ObligationKind.BILL),
        )

    def list_incomes(self, owner_id: int) -> list[Obligation]:
        return self.cache.get_or_load(
            (owner_id, cache_service.INCOMES),
            lambda: self.repo.get_all(owner_id, ObligationKind.INCOME),
        )

    def get(self, owner_id: int, obligation_id: int, kind: Optional[ObligationKind] = None) -> Obligation:
        """
        Fetch one obligation owned by ``owner_id``.

        Args:
            kind: When given, a record of the other kind counts as not found.
        """
        obligation = require_owned(self.repo.get_by_id(obligation_id), obligation_id, owner_id)
        if kind is not None and obligation.kind != ObligationKind(kind):
            raise NotFoundError(f"{ObligationKind(kind).value.title()} not found",
                                {"owner": owner_id, "obligation": obligation_id})
        return obligation

    def payment_history(self, owner_id: int) -> list[dict]:
        return self.cache.get_or_load(
            (owner_id, cache_service.PAYMENTS),
            lambda: self.payment_repo.get_history(owner_id),
        )

    def payments_for(self, owner_id: int, obligation_id: int) -> list[dict]:
        self.get(owner_id, obligation_id)
        return [e.to_dict() for e in self.payment_repo.get_for_obligation(obligation_id)]

    def unpaid_bills_due_on(self, owner_id: int, day: date) -> list[Obligation]:
        return self.repo.get_by_date_range(owner_id, day, day, ObligationKind.BILL, unpaid_only=True)

    def unpaid_bills_before(self, owner_id: int, day: date) -> list[Obligation]:
        return [
            o for o in self.repo.get_by_date_range(owner_id, None, day, ObligationKind.BILL, unpaid_only=True)
            if o.due_date < day
        ]

    def due_between(self, owner_id: int, start: date, end: date, kind: ObligationKind) -> list[Obligation]:
        return self.repo.get_by_date_range(owner_id, start, end, kind)

    # ── CREATE ────────────────────────────────────────────

    def create_one_time(self, owner_id: int, kind: ObligationKind, data: dict) -> Obligation:
        """
        Create a standalone bill or income entry (no template, no lineage).

        Args:
            data: ``name``, ``amount``, ``dueDate``, optional ``categoryId`` and ``description``.
        """
        obligation = Obligation(
            owner_id=owner_id,
            kind=ObligationKind(kind),
            name=require_text(data.get("name")),
            amount=parse_amount(data.get("amount")),
            due_date=parse_date(data.get("dueDate"), "dueDate"),
            category_id=self.categories.resolve(owner_id, data.get("categoryId")),
            description=data.get("description"),
        )
        kinds = cache_kinds_for(obligation.kind)
        with transaction() as conn, conn.cursor() as cur:
            self.repo.insert(cur, obligation)
            self.cache.invalidate_many(owner_id, *kinds)
        self.cache.invalidate_many(owner_id, *kinds)
        bind(logger, owner=owner_id, obligation=obligation.id).info(
            f"Added {obligation.kind.value} '{obligation.name}' due {obligation.due_date}"
        )
        return self.get(owner_id, obligation.id)

    # ── UPDATE ────────────────────────────────────────────

    def update(self, owner_id: int, obligation_id: int, data: dict, kind: Optional[ObligationKind] = None) -> Obligation:
        """
        Edit name, amount, due date, category or description.
        Paid state cannot be changed here; use PaymentService.

        Raises:
            ConflictError: The new due date is already taken by another
                occurrence of the same template.
        """
        if "isPaid" in data or "paidDate" in data:
            raise ValidationError("Paid state changes only through pay/unpay")
        obligation = self.get(owner_id, obligation_id, kind)
        if "name" in data:
            obligation.name = require_text(data["name"])
        if "amount" in data:
            obligation.amount = parse_amount(data["amount"])
        if "dueDate" in data:
            obligation.due_date = parse_date(data["dueDate"], "dueDate")
        if "categoryId" in data:
            obligation.category_id = self.categories.resolve(owner_id, data["categoryId"])
        if "description" in data:
            obligation.description = data["description"]

        kinds = cache_kinds_for(obligation.kind)
        try:
            with transaction() as conn, conn.cursor() as cur:
                self.repo.update(obligation, cur)
                self.cache.invalidate_many(owner_id, *kinds)
        except INTEGRITY_ERRORS as e:
            raise ConflictError(
                f"Template #{obligation.template_id} already has an occurrence due {obligation.due_date}",
                {"owner": owner_id, "obligation": obligation_id},
            ) from e
        self.cache.invalidate_many(owner_id, *kinds)
        bind(logger, owner=owner_id, obligation=obligation_id).info("Updated obligation")
        return self.get(owner_id, obligation_id)

    # ── DELETE ────────────────────────────────────────────

    def delete(
        self, owner_id: int, obligation_id: int, cascade: bool = False, kind: Optional[ObligationKind] = None
    ) -> int:
        """
        Delete one obligation, or its whole lineage group.

        Args:
            cascade: False deletes only this record. True deletes the lineage
                root and every instance generated under it, whether called
                on the root or on any child. A generated lineage takes its
                template with it, so nothing is generated again.

        Returns:
            Number of obligations deleted.
        """
        obligation = self.get(owner_id, obligation_id, kind)
        kinds = cache_kinds_for(obligation.kind)
        if cascade and obligation.template_id is not None:
            kinds += (cache_service.TEMPLATES,)

        with transaction() as conn, conn.cursor() as cur:
            if not cascade:
                deleted = self.repo.delete(obligation_id, owner_id, cur)
            elif obligation.template_id is not None:
                deleted = self.repo.delete_for_template(obligation.template_id, owner_id, cur)
                self.template_repo.delete(obligation.template_id, owner_id, cur)
            else:
                deleted = self.repo.delete_lineage(obligation.lineage_root, owner_id, cur)
            self.cache.invalidate_many(owner_id, *kinds)
        self.cache.invalidate_many(owner_id, *kinds)
        bind(logger, owner=owner_id, obligation=obligation_id).info(
            f"Deleted {deleted} obligation(s) (cascade={cascade})"
        )
        return deleted
