"""
services/payment_service.py
---------------------------
The paid/unpaid state machine.

    Unpaid --mark_paid--> Paid      ledger entry created, is_paid = true
    Paid --mark_unpaid--> Unpaid    latest ledger entry deleted, is_paid = false

Each transition runs in one database transaction with the obligation row
locked, so nobody can observe the ledger and the obligation disagreeing.
Marking a paid obligation paid again is a conflict, not an overwrite.
The affected cache entries are dropped once before the commit and once
after it, so no reader is served the pre-transition lists.
"""

from datetime import date
from typing import Optional

from db.connection import transaction
from exceptions import ConflictError, InvalidStateError, NotFoundError
from models.obligation import Obligation, ObligationKind, PaymentLedgerEntry
from repositories.obligation_repo import ObligationRepository
from repositories.payment_repo import PaymentRepository
from services.cache_service import CacheService
from services.obligation_service import cache_kinds_for, require_owned
from utils.logger import bind, get_logger

logger = get_logger(__name__)


class PaymentService:
    """Applies pay/unpay transitions and keeps the cache coherent."""

    def __init__(self, cache: CacheService):
        self.cache = cache
        self.obligation_repo = ObligationRepository()
        self.payment_repo = PaymentRepository()

    def mark_paid(
        self,
        owner_id: int,
        obligation_id: int,
        paid_date: Optional[date] = None,
        kind: Optional[ObligationKind] = None,
    ) -> tuple[Obligation, PaymentLedgerEntry]:
        """
        Unpaid -> Paid.

        Args:
            owner_id: Caller; must own the obligation.
            obligation_id: Obligation to pay.
            paid_date: Payment date, today when None.
            kind: When given, an obligation of the other kind counts as not found.

        Returns:
            The updated obligation and the new ledger entry.

        Raises:
            NotFoundError / AccessDeniedError: Unknown or foreign obligation.
            ConflictError: The obligation is already paid.
        """
        paid_date = paid_date or date.today()
        log = bind(logger, owner=owner_id, obligation=obligation_id)

        with transaction() as conn, conn.cursor() as cur:
            obligation = self._lock_owned(cur, owner_id, obligation_id, kind)
            if obligation.is_paid:
                raise ConflictError("Obligation is already paid",
                                    {"owner": owner_id, "obligation": obligation_id})
            entry = self.payment_repo.add(cur, PaymentLedgerEntry(
                obligation_id=obligation_id,
                amount=obligation.amount,
                paid_date=paid_date,
            ))
            self.obligation_repo.set_paid_state(cur, obligation_id, True, paid_date)
            self.cache.invalidate_many(owner_id, *cache_kinds_for(obligation.kind))

        obligation.is_paid = True
        obligation.paid_date = paid_date
        self.cache.invalidate_many(owner_id, *cache_kinds_for(obligation.kind))
        log.info(f"Marked paid on {paid_date} (ledger #{entry.id}, amount {entry.amount:.2f})")
        return obligation, entry

    def mark_unpaid(self, owner_id: int, obligation_id: int, kind: Optional[ObligationKind] = None) -> Obligation:
        """
        Paid -> Unpaid.

        Deletes exactly the most recent ledger entry (by paid date) and
        clears is_paid / paid_date.

        Raises:
            NotFoundError / AccessDeniedError: Unknown or foreign obligation.
            ConflictError: The obligation is not paid.
            InvalidStateError: Paid but no ledger entry exists (corrupt data).
        """
        log = bind(logger, owner=owner_id, obligation=obligation_id)

        with transaction() as conn, conn.cursor() as cur:
            obligation = self._lock_owned(cur, owner_id, obligation_id, kind)
            if not obligation.is_paid:
                raise ConflictError("Obligation is not paid",
                                    {"owner": owner_id, "obligation": obligation_id})
            entry = self.payment_repo.latest(cur, obligation_id)
            if entry is None:
                log.error("Obligation is marked paid but has no ledger entry")
                raise InvalidStateError("No payment record found for paid obligation",
                                        {"owner": owner_id, "obligation": obligation_id})
            self.payment_repo.delete(cur, entry.id)
            self.obligation_repo.set_paid_state(cur, obligation_id, False, None)
            self.cache.invalidate_many(owner_id, *cache_kinds_for(obligation.kind))

        obligation.is_paid = False
        obligation.paid_date = None
        self.cache.invalidate_many(owner_id, *cache_kinds_for(obligation.kind))
        log.info(f"Marked unpaid (removed ledger #{entry.id})")
        return obligation

    def _lock_owned(self, cur, owner_id: int, obligation_id: int, kind: Optional[ObligationKind]) -> Obligation:
        obligation = require_owned(self.obligation_repo.lock(cur, obligation_id), obligation_id, owner_id)
        if kind is not None and obligation.kind != ObligationKind(kind):
            raise NotFoundError(f"{ObligationKind(kind).value.title()} not found",
                                {"owner": owner_id, "obligation": obligation_id})
        return obligation
