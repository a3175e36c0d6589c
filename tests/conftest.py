"""
Pytest configuration and shared fixtures.

Every test that touches the database gets a fresh in-memory SQLite
database through the same pool/repository code used in production.
"""

from datetime import date

import pytest

from db.connection import close_pool, init_pool
from db.init_db import create_tables
from models.notification import Message
from repositories.owner_repo import OwnerRepository
from services.cache_service import CacheService
from services.category_service import CategoryService
from services.obligation_service import ObligationService
from services.payment_service import PaymentService
from services.recurring_service import RecurringService

OWNER = 1001
OTHER_OWNER = 2002


@pytest.fixture
def db():
    """Fresh in-memory database for one test."""
    close_pool()
    init_pool(database_url="sqlite:///:memory:")
    create_tables()
    yield
    close_pool()


@pytest.fixture
def owner(db) -> int:
    OwnerRepository().ensure_owner(OWNER)
    return OWNER


@pytest.fixture
def other_owner(db) -> int:
    OwnerRepository().ensure_owner(OTHER_OWNER)
    return OTHER_OWNER


@pytest.fixture
def cache() -> CacheService:
    return CacheService(ttl_seconds=60)


@pytest.fixture
def obligations(db, cache) -> ObligationService:
    return ObligationService(cache)


@pytest.fixture
def payments(db, cache) -> PaymentService:
    return PaymentService(cache)


@pytest.fixture
def recurring(db, cache) -> RecurringService:
    return RecurringService(cache)


@pytest.fixture
def categories(db, cache) -> CategoryService:
    return CategoryService(cache)


@pytest.fixture
def one_time_bill(owner, obligations):
    """A single unpaid 50.00 bill due 2024-03-10."""
    return obligations.create_one_time(owner, "BILL", {
        "name": "Water",
        "amount": 50.00,
        "dueDate": date(2024, 3, 10),
    })


class RecordingProvider:
    """Provider double that records calls and can be told to fail."""

    def __init__(self, error: Exception = None):
        self.error = error
        self.calls: list[tuple[dict, Message]] = []

    def __call__(self, credentials: dict, message: Message, timeout: float) -> None:
        self.calls.append((credentials, message))
        if self.error is not None:
            raise self.error
