"""Tests for provider fan-out and partial-failure isolation."""

import threading

import pytest

from exceptions import ProviderDeliveryError
from models.notification import Message, NotificationProviderConfig, ProviderType
from services.notification_dispatcher import TEST_MESSAGE, NotificationDispatcher
from tests.conftest import RecordingProvider

MESSAGE = Message(subject="Overdue Bills Alert", body="You have 1 overdue bill(s)")


def _config(ptype: ProviderType, enabled: bool = True, **credentials) -> NotificationProviderConfig:
    return NotificationProviderConfig(owner_id=7, provider_type=ptype, enabled=enabled, credentials=credentials)


class TestSend:

    def test_all_providers_receive_the_message(self):
        email, slack = RecordingProvider(), RecordingProvider()
        dispatcher = NotificationDispatcher({ProviderType.EMAIL: email, ProviderType.SLACK: slack})

        delivered = dispatcher.send(7, MESSAGE, [
            _config(ProviderType.EMAIL, username="me@example.com"),
            _config(ProviderType.SLACK, webhook_url="https://hooks.example/x"),
        ])

        assert set(delivered) == {ProviderType.EMAIL, ProviderType.SLACK}
        assert email.calls == [({"username": "me@example.com"}, MESSAGE)]
        assert slack.calls[0][1] is MESSAGE

    def test_one_failure_does_not_block_the_others(self):
        email = RecordingProvider()
        discord = RecordingProvider(error=RuntimeError("webhook returned 500"))
        slack = RecordingProvider()
        dispatcher = NotificationDispatcher({
            ProviderType.EMAIL: email, ProviderType.DISCORD: discord, ProviderType.SLACK: slack,
        })

        with pytest.raises(ProviderDeliveryError) as exc_info:
            dispatcher.send(7, MESSAGE, [
                _config(ProviderType.EMAIL), _config(ProviderType.DISCORD), _config(ProviderType.SLACK),
            ])

        assert exc_info.value.failures == {"DISCORD": "webhook returned 500"}
        assert "DISCORD: webhook returned 500" in str(exc_info.value)
        assert len(email.calls) == 1 and len(slack.calls) == 1

    def test_hanging_provider_times_out(self):
        release = threading.Event()

        def hanging(credentials, message, timeout):
            release.wait(5)

        fast = RecordingProvider()
        dispatcher = NotificationDispatcher(
            {ProviderType.PUSHOVER: hanging, ProviderType.SLACK: fast}, timeout=0.2, deadline=1.0,
        )
        try:
            with pytest.raises(ProviderDeliveryError) as exc_info:
                dispatcher.send(7, MESSAGE, [_config(ProviderType.PUSHOVER), _config(ProviderType.SLACK)])
        finally:
            release.set()

        assert "timed out" in exc_info.value.failures["PUSHOVER"]
        assert len(fast.calls) == 1

    def test_disabled_providers_are_skipped(self):
        email = RecordingProvider()
        dispatcher = NotificationDispatcher({ProviderType.EMAIL: email})

        assert dispatcher.send(7, MESSAGE, [_config(ProviderType.EMAIL, enabled=False)]) == []
        assert email.calls == []

    def test_unregistered_provider_is_reported(self):
        dispatcher = NotificationDispatcher({})

        with pytest.raises(ProviderDeliveryError) as exc_info:
            dispatcher.send(7, MESSAGE, [_config(ProviderType.TELEGRAM)])

        assert exc_info.value.failures == {"TELEGRAM": "unsupported provider"}


class TestTest:

    def test_sends_canned_message(self):
        slack = RecordingProvider()
        dispatcher = NotificationDispatcher({ProviderType.SLACK: slack})

        dispatcher.test(_config(ProviderType.SLACK, webhook_url="https://hooks.example/x"))

        assert slack.calls[0][1] == TEST_MESSAGE
        assert TEST_MESSAGE.subject == "Test Notification"
