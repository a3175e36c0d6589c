"""
models/recurring.py
-------------------
Domain model for recurring templates (payees and income sources).
"""

from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum
from typing import Optional


class Frequency(str, Enum):
    """How often a template produces a new obligation."""
    WEEKLY = "WEEKLY"
    BIWEEKLY = "BIWEEKLY"
    MONTHLY = "MONTHLY"
    QUARTERLY = "QUARTERLY"
    BIANNUAL = "BIANNUAL"
    ANNUAL = "ANNUAL"
    ONE_TIME = "ONE_TIME"


class TemplateKind(str, Enum):
    PAYEE = "PAYEE"
    INCOME_SOURCE = "INCOME_SOURCE"


@dataclass
class RecurringTemplate:
    """
    Represents a recurring definition from which obligations are generated.

    Attributes:
        id: Database primary key (None for new records).
        owner_id: External owner id.
        kind: PAYEE produces bills, INCOME_SOURCE produces income entries.
        name: Friendly name (e.g., 'Rent', 'Salary').
        expected_amount: Amount copied onto every generated obligation.
        frequency: Recurrence interval.
        start_date: Anchor date; no occurrence is ever generated before it.
        category_id: Optional category reference.
        description: Copied onto every generated obligation.
        generated_through: Latest due date generation has covered; the next
            pass starts after it, so deleted occurrences stay deleted.
        created_at: Timestamp when the record was created.
    """
    owner_id: int
    kind: TemplateKind
    name: str
    expected_amount: float
    frequency: Frequency
    start_date: date
    category_id: Optional[int] = None
    description: Optional[str] = None
    generated_through: Optional[date] = None
    id: Optional[int] = None
    created_at: Optional[datetime] = None

    @property
    def obligation_kind(self) -> str:
        return "BILL" if self.kind == TemplateKind.PAYEE else "INCOME"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "ownerId": self.owner_id,
            "kind": self.kind.value,
            "name": self.name,
            "expectedAmount": self.expected_amount,
            "frequency": self.frequency.value,
            "startDate": self.start_date.isoformat(),
            "categoryId": self.category_id,
            "description": self.description,
            "generatedThrough": self.generated_through.isoformat() if self.generated_through else None,
        }

    def __str__(self) -> str:
        return f"{self.name}: {self.expected_amount:.2f} ({self.frequency.value}) from {self.start_date}"
