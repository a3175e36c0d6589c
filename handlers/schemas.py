"""
handlers/schemas.py
-------------------
Pydantic request bodies. Field names follow the JSON the clients send.
"""

from datetime import date
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class ObligationCreate(BaseModel):
    """One-time bill or income entry."""
    name: str = Field(min_length=1, max_length=100)
    amount: float = Field(ge=0)
    dueDate: date
    categoryId: Optional[int] = None
    description: Optional[str] = None


class ObligationUpdate(BaseModel):
    # paid state is not editable here
    model_config = ConfigDict(extra="forbid")

    name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    amount: Optional[float] = Field(default=None, ge=0)
    dueDate: Optional[date] = None
    categoryId: Optional[int] = None
    description: Optional[str] = None


class PaymentRequest(BaseModel):
    paymentDate: Optional[date] = None


class TemplateCreate(BaseModel):
    """Payee or income source."""
    name: str = Field(min_length=1, max_length=100)
    expectedAmount: float = Field(ge=0)
    frequency: str
    startDate: date
    categoryId: Optional[int] = None
    description: Optional[str] = None


class CategoryCreate(BaseModel):
    name: str = Field(min_length=1, max_length=50)


class TemplateUpdate(BaseModel):
    # frequency and start date define the generated schedule
    model_config = ConfigDict(extra="forbid")

    name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    expectedAmount: Optional[float] = Field(default=None, ge=0)
    categoryId: Optional[int] = None
    description: Optional[str] = None
