"""
services/notification_dispatcher.py
-----------------------------------
Fans one message out to an owner's providers.

Each provider is called independently on its own worker thread with a
per-call timeout, and the whole dispatch is bounded by an overall
deadline. A failing or hanging provider never prevents delivery through
the others; failures are collected and raised together once every
provider has had its chance.
"""

import time
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError
from typing import Optional

from config import DISPATCH_DEADLINE_SECONDS, PROVIDER_TIMEOUT_SECONDS
from exceptions import ProviderDeliveryError
from models.notification import Message, NotificationProviderConfig, ProviderType
from services.notifications import PROVIDERS, SendFn
from utils.logger import bind, get_logger

logger = get_logger(__name__)

TEST_MESSAGE = Message(
    subject="Test Notification",
    body="This is a test notification from your finance app.",
)


class NotificationDispatcher:
    """
    Usage:
        dispatcher = NotificationDispatcher()
        delivered = dispatcher.send(owner_id, message, providers)
    """

    def __init__(
        self,
        registry: Optional[dict[ProviderType, SendFn]] = None,
        timeout: float = PROVIDER_TIMEOUT_SECONDS,
        deadline: float = DISPATCH_DEADLINE_SECONDS,
    ):
        self.registry = registry if registry is not None else PROVIDERS
        self.timeout = timeout
        self.deadline = deadline

    def send(
        self, owner_id: int, message: Message, providers: list[NotificationProviderConfig]
    ) -> list[ProviderType]:
        """
        Deliver ``message`` through every enabled provider.

        Returns:
            Provider types that delivered successfully.

        Raises:
            ProviderDeliveryError: After all attempts, if at least one provider
                failed or timed out. Successful deliveries are not rolled back.
        """
        log = bind(logger, owner=owner_id)
        active = [p for p in providers if p.enabled]
        if not active:
            log.warning(f"No enabled providers for '{message.subject}'")
            return []

        delivered: list[ProviderType] = []
        failures: dict[str, str] = {}
        executor = ThreadPoolExecutor(max_workers=len(active), thread_name_prefix="notify")
        try:
            started = time.monotonic()
            deadline_at = started + self.deadline
            futures = []
            for provider in active:
                send_fn = self.registry.get(provider.provider_type)
                if send_fn is None:
                    failures[provider.provider_type.value] = "unsupported provider"
                    continue
                futures.append(
                    (provider.provider_type, executor.submit(send_fn, provider.credentials, message, self.timeout))
                )

            for ptype, future in futures:
                wait_until = min(started + self.timeout, deadline_at)
                try:
                    future.result(timeout=max(0.0, wait_until - time.monotonic()))
                    delivered.append(ptype)
                except FutureTimeoutError:
                    future.cancel()
                    failures[ptype.value] = f"timed out after {self.timeout:g}s"
                except Exception as e:
                    failures[ptype.value] = str(e) or e.__class__.__name__
        finally:
            # Timed-out calls keep running in the background; do not wait for them.
            executor.shutdown(wait=False)

        if delivered:
            log.info(f"Delivered '{message.subject}' via {', '.join(p.value for p in delivered)}")
        if failures:
            error = ProviderDeliveryError(failures, {"owner": owner_id})
            log.error(str(error))
            raise error
        return delivered

    def test(self, provider: NotificationProviderConfig) -> None:
        """
        Send the canned test message through one provider.

        Raises:
            ProviderDeliveryError: The provider failed.
        """
        self.send(provider.owner_id, TEST_MESSAGE, [provider])
