"""
handlers/dependencies.py
------------------------
The service container built at startup and the dependency that hands it
to route functions.
"""

from dataclasses import dataclass
from typing import Optional

from fastapi import Request

from services.cache_service import CacheService
from services.category_service import CategoryService
from services.notification_dispatcher import NotificationDispatcher
from services.notification_scheduler import NotificationScheduler
from services.notification_settings_service import NotificationSettingsService
from services.obligation_service import ObligationService
from services.payment_service import PaymentService
from services.recurring_service import RecurringService


@dataclass
class Services:
    """Every service shares the one CacheService instance."""
    cache: CacheService
    obligations: ObligationService
    payments: PaymentService
    recurring: RecurringService
    categories: CategoryService
    dispatcher: NotificationDispatcher
    settings: NotificationSettingsService
    scheduler: NotificationScheduler


def build_services(cache: CacheService, dispatcher: Optional[NotificationDispatcher] = None) -> Services:
    dispatcher = dispatcher or NotificationDispatcher()
    obligations = ObligationService(cache)
    recurring = RecurringService(cache)
    return Services(
        cache=cache,
        obligations=obligations,
        payments=PaymentService(cache),
        recurring=recurring,
        categories=CategoryService(cache),
        dispatcher=dispatcher,
        settings=NotificationSettingsService(cache, dispatcher),
        scheduler=NotificationScheduler(obligations, dispatcher, recurring),
    )


def get_services(request: Request) -> Services:
    return request.app.state.services
