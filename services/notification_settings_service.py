"""
services/notification_settings_service.py
-----------------------------------------
Per-owner notification configuration: which providers are set up with
which credentials, and which notification kinds go to which providers.
"""

from typing import Any

from exceptions import NotFoundError, ValidationError
from models.notification import (
    NotificationProviderConfig,
    NotificationType,
    NotificationTypeConfig,
    ProviderType,
)
from repositories.notification_repo import NotificationRepository
from services import cache_service
from services.cache_service import CacheService
from services.notification_dispatcher import NotificationDispatcher
from utils.logger import bind, get_logger

logger = get_logger(__name__)


def parse_provider_type(value: Any) -> ProviderType:
    try:
        return ProviderType(str(value).upper())
    except ValueError:
        raise ValidationError(f"Unknown provider type: {value!r}")


def parse_notification_type(value: Any) -> NotificationType:
    try:
        return NotificationType(str(value).upper())
    except ValueError:
        raise ValidationError(f"Unknown notification type: {value!r}")


class NotificationSettingsService:
    """Reads and writes the notification settings of one owner at a time."""

    def __init__(self, cache: CacheService, dispatcher: NotificationDispatcher):
        self.cache = cache
        self.dispatcher = dispatcher
        self.repo = NotificationRepository()

    def get_settings(self, owner_id: int) -> dict:
        """
        Returns:
            ``{"providers": {TYPE: {"enabled": bool, **credentials}},
               "types": {TYPE: {"enabled": bool, **settings, "providers": [TYPE, ...]}}}``
        """
        return self.cache.get_or_load((owner_id, cache_service.SETTINGS), lambda: self._load(owner_id))

    def update_provider(self, owner_id: int, provider_type: Any, data: dict) -> dict:
        """
        Create or replace one provider's configuration.

        Args:
            data: ``enabled`` plus the provider's credentials as flat keys.
        """
        ptype = parse_provider_type(provider_type)
        credentials = {k: v for k, v in data.items() if k != "enabled"}
        self.repo.upsert_provider(NotificationProviderConfig(
            owner_id=owner_id,
            provider_type=ptype,
            enabled=bool(data.get("enabled", False)),
            credentials=credentials,
        ))
        self.cache.invalidate_many(owner_id, cache_service.SETTINGS)
        return self.get_settings(owner_id)

    def update_type(self, owner_id: int, notification_type: Any, data: dict) -> dict:
        """
        Create or replace one notification kind's configuration.

        Args:
            data: ``enabled``, optional ``providers`` (replaces the linked set)
                and kind-specific settings such as ``days_before``.
        """
        ntype = parse_notification_type(notification_type)
        providers = data.get("providers")
        if providers is not None:
            if not isinstance(providers, list):
                raise ValidationError("providers must be a list of provider types")
            providers = [parse_provider_type(p) for p in providers]

        settings = {k: v for k, v in data.items() if k not in ("enabled", "providers")}
        if "days_before" in settings:
            try:
                settings["days_before"] = int(settings["days_before"])
            except (TypeError, ValueError):
                raise ValidationError(f"Invalid days_before: {settings['days_before']!r}")
            if settings["days_before"] < 0:
                raise ValidationError("days_before must not be negative")

        self.repo.upsert_type(
            NotificationTypeConfig(
                owner_id=owner_id,
                type=ntype,
                enabled=bool(data.get("enabled", False)),
                settings=settings,
            ),
            providers,
        )
        self.cache.invalidate_many(owner_id, cache_service.SETTINGS)
        return self.get_settings(owner_id)

    def test_provider(self, owner_id: int, provider_type: Any) -> None:
        """
        Send the canned test message through one configured provider.

        Raises:
            NotFoundError: The provider is not configured.
            ValidationError: The provider is disabled.
            ProviderDeliveryError: Delivery failed.
        """
        ptype = parse_provider_type(provider_type)
        provider = self.repo.get_provider(owner_id, ptype)
        if provider is None:
            raise NotFoundError(f"{ptype.value} provider not configured", {"owner": owner_id})
        if not provider.enabled:
            raise ValidationError(f"{ptype.value} provider is disabled", {"owner": owner_id})
        self.dispatcher.test(provider)
        bind(logger, owner=owner_id).info(f"Test notification sent via {ptype.value}")

    def _load(self, owner_id: int) -> dict:
        providers = {
            p.provider_type.value: {"enabled": p.enabled, **p.credentials}
            for p in self.repo.get_providers(owner_id)
        }
        types = {
            t.type.value: {
                "enabled": t.enabled,
                **(t.settings or {}),
                "providers": [p.value for p in t.providers],
            }
            for t in self.repo.get_types(owner_id)
        }
        return {"providers": providers, "types": types}
