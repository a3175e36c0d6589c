"""
models/notification.py
----------------------
Domain models for notification providers, notification kinds and messages.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional


class ProviderType(str, Enum):
    """External delivery channels."""
    EMAIL = "EMAIL"
    PUSHOVER = "PUSHOVER"
    DISCORD = "DISCORD"
    SLACK = "SLACK"
    TELEGRAM = "TELEGRAM"


class NotificationType(str, Enum):
    """Scheduled notification kinds."""
    BILL_DUE = "BILL_DUE"
    BILL_OVERDUE = "BILL_OVERDUE"
    WEEKLY_SUMMARY = "WEEKLY_SUMMARY"
    MONTHLY_SUMMARY = "MONTHLY_SUMMARY"


@dataclass(frozen=True)
class Message:
    """A rendered notification: plain-text subject and body."""
    subject: str
    body: str


@dataclass
class NotificationProviderConfig:
    """
    An owner's configuration for one delivery channel.

    Attributes:
        owner_id: External owner id.
        provider_type: Which channel.
        enabled: Disabled providers are never dispatched to.
        credentials: Opaque key/value map handed to the provider
            (e.g. webhook_url, smtp_server, app_token).
    """
    owner_id: int
    provider_type: ProviderType
    enabled: bool = False
    credentials: dict[str, str] = field(default_factory=dict)
    id: Optional[int] = None


@dataclass
class NotificationTypeConfig:
    """
    An owner's configuration for one scheduled notification kind.

    Attributes:
        owner_id: External owner id.
        type: Which notification kind.
        enabled: Disabled kinds are skipped by the scheduler.
        settings: Kind-specific options, e.g. ``{"days_before": 3}``;
            None when the stored JSON could not be parsed.
        providers: Provider types linked to this kind.
    """
    owner_id: int
    type: NotificationType
    enabled: bool = False
    settings: Optional[dict] = field(default_factory=dict)
    providers: list[ProviderType] = field(default_factory=list)
    id: Optional[int] = None
