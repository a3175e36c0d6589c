"""
models/obligation.py
--------------------
Domain models for concrete bill/income instances and their payment ledger.
"""

from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum
from typing import Optional


class ObligationKind(str, Enum):
    BILL = "BILL"
    INCOME = "INCOME"


@dataclass
class Obligation:
    """
    A single bill or income instance with a due date and a paid/unpaid state.

    Attributes:
        id: Database primary key (None for new records).
        owner_id: External owner id.
        kind: BILL or INCOME.
        name: Copied from the template, or given for one-time items.
        amount: Amount due (or expected, for income).
        due_date: The date this instance falls due.
        template_id: Source template, None for standalone one-time items.
        is_paid: Only PaymentService changes this.
        paid_date: Date of the authoritative ledger entry, None when unpaid.
        category_id: Optional category reference.
        parent_id: Lineage root (the template's first instance); None on the root itself.
        description: Free-text note.
        category_name: Joined from categories when listing, not persisted.
        created_at: Timestamp when the record was created.
    """
    owner_id: int
    kind: ObligationKind
    name: str
    amount: float
    due_date: date
    template_id: Optional[int] = None
    is_paid: bool = False
    paid_date: Optional[date] = None
    category_id: Optional[int] = None
    parent_id: Optional[int] = None
    description: Optional[str] = None
    category_name: Optional[str] = None
    id: Optional[int] = None
    created_at: Optional[datetime] = None

    @property
    def lineage_root(self) -> Optional[int]:
        """Id shared by every member of this record's lineage group."""
        return self.parent_id if self.parent_id is not None else self.id

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "ownerId": self.owner_id,
            "kind": self.kind.value,
            "name": self.name,
            "amount": self.amount,
            "dueDate": self.due_date.isoformat(),
            "templateId": self.template_id,
            "isPaid": self.is_paid,
            "paidDate": self.paid_date.isoformat() if self.paid_date else None,
            "categoryId": self.category_id,
            "category": self.category_name,
            "parentId": self.parent_id,
            "description": self.description,
        }

    def __str__(self) -> str:
        status = "paid" if self.is_paid else "unpaid"
        return f"{self.name}: {self.amount:.2f} due {self.due_date} ({status})"


@dataclass
class PaymentLedgerEntry:
    """
    Immutable record of a completed payment against an obligation.

    Attributes:
        id: Database primary key (None for new records).
        obligation_id: The obligation that was paid.
        amount: Amount paid (copied from the obligation at pay time).
        paid_date: Date of payment.
        created_at: Timestamp when the record was created.
    """
    obligation_id: int
    amount: float
    paid_date: date
    id: Optional[int] = None
    created_at: Optional[datetime] = None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "obligationId": self.obligation_id,
            "amount": self.amount,
            "paidDate": self.paid_date.isoformat(),
        }
