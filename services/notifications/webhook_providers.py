"""
services/notifications/webhook_providers.py
-------------------------------------------
HTTP providers: Pushover, Discord and Slack.
"""

import requests

from config import PROVIDER_TIMEOUT_SECONDS
from exceptions import ValidationError
from models.notification import Message

PUSHOVER_URL = "https://api.pushover.net/1/messages.json"


def _require(credentials: dict, *keys: str) -> None:
    missing = [k for k in keys if not credentials.get(k)]
    if missing:
        raise ValidationError(f"Missing credentials: {', '.join(missing)}")


def _post(url: str, payload: dict, timeout: float) -> None:
    response = requests.post(url, json=payload, timeout=timeout)
    response.raise_for_status()


def send_pushover(credentials: dict, message: Message, timeout: float = PROVIDER_TIMEOUT_SECONDS) -> None:
    """Credentials: ``app_token``, ``user_key``."""
    _require(credentials, "app_token", "user_key")
    _post(PUSHOVER_URL, {
        "token": credentials["app_token"],
        "user": credentials["user_key"],
        "title": message.subject,
        "message": message.body,
    }, timeout)


def send_discord(credentials: dict, message: Message, timeout: float = PROVIDER_TIMEOUT_SECONDS) -> None:
    """Credentials: ``webhook_url``."""
    _require(credentials, "webhook_url")
    _post(credentials["webhook_url"], {"content": f"**{message.subject}**\n{message.body}"}, timeout)


def send_slack(credentials: dict, message: Message, timeout: float = PROVIDER_TIMEOUT_SECONDS) -> None:
    """Credentials: ``webhook_url``."""
    _require(credentials, "webhook_url")
    _post(credentials["webhook_url"], {"text": f"*{message.subject}*\n{message.body}"}, timeout)
