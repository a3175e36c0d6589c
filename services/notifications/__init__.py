"""
services/notifications/
-----------------------
Delivery providers. Each provider is one ``send(credentials, message, timeout)``
function; the dispatcher looks them up in PROVIDERS by provider type.

A provider raises on any failure and returns None on success.
"""

from typing import Callable

from models.notification import Message, ProviderType
from services.notifications import email_provider, telegram_provider, webhook_providers

SendFn = Callable[[dict, Message, float], None]

PROVIDERS: dict[ProviderType, SendFn] = {
    ProviderType.EMAIL: email_provider.send,
    ProviderType.PUSHOVER: webhook_providers.send_pushover,
    ProviderType.DISCORD: webhook_providers.send_discord,
    ProviderType.SLACK: webhook_providers.send_slack,
    ProviderType.TELEGRAM: telegram_provider.send,
}
