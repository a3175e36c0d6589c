"""
services/notifications/telegram_provider.py
-------------------------------------------
Telegram delivery through python-telegram-bot.

Credentials: ``bot_token``, ``chat_id``.
"""

import asyncio

from telegram import Bot

from config import PROVIDER_TIMEOUT_SECONDS
from exceptions import ValidationError
from models.notification import Message


async def _send_async(token: str, chat_id: str, text: str, timeout: float) -> None:
    async with Bot(token) as bot:
        await bot.send_message(
            chat_id=chat_id,
            text=text,
            connect_timeout=timeout,
            read_timeout=timeout,
            write_timeout=timeout,
        )


def send(credentials: dict, message: Message, timeout: float = PROVIDER_TIMEOUT_SECONDS) -> None:
    token = credentials.get("bot_token")
    chat_id = credentials.get("chat_id")
    if not token or not chat_id:
        raise ValidationError("Missing credentials: bot_token and chat_id are required")
    # Runs on a dispatcher worker thread, which has no event loop of its own.
    asyncio.run(_send_async(token, chat_id, f"{message.subject}\n\n{message.body}", timeout))
