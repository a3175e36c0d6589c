"""Tests for notification settings storage and provider tests."""

import pytest

from exceptions import NotFoundError, ProviderDeliveryError, ValidationError
from models.notification import ProviderType
from services.notification_dispatcher import NotificationDispatcher
from services.notification_settings_service import NotificationSettingsService
from tests.conftest import RecordingProvider


@pytest.fixture
def slack():
    return RecordingProvider()


@pytest.fixture
def settings(db, cache, slack):
    return NotificationSettingsService(cache, NotificationDispatcher({ProviderType.SLACK: slack}))


class TestSettings:

    def test_empty_settings(self, owner, settings):
        assert settings.get_settings(owner) == {"providers": {}, "types": {}}

    def test_provider_and_type_round_trip(self, owner, settings):
        settings.update_provider(owner, "slack", {"enabled": True, "webhook_url": "https://hooks.test/1"})
        result = settings.update_type(
            owner, "BILL_DUE", {"enabled": True, "days_before": "5", "providers": ["SLACK"]}
        )

        assert result == {
            "providers": {"SLACK": {"enabled": True, "webhook_url": "https://hooks.test/1"}},
            "types": {"BILL_DUE": {"enabled": True, "days_before": 5, "providers": ["SLACK"]}},
        }

    def test_update_replaces_links_and_ignores_unconfigured_providers(self, owner, settings):
        settings.update_provider(owner, "SLACK", {"enabled": True, "webhook_url": "x"})
        settings.update_type(owner, "WEEKLY_SUMMARY", {"enabled": True, "providers": ["SLACK", "EMAIL"]})

        assert settings.get_settings(owner)["types"]["WEEKLY_SUMMARY"]["providers"] == ["SLACK"]

        settings.update_type(owner, "WEEKLY_SUMMARY", {"enabled": False, "providers": []})
        assert settings.get_settings(owner)["types"]["WEEKLY_SUMMARY"] == {"enabled": False, "providers": []}

    def test_settings_are_per_owner(self, owner, other_owner, settings):
        settings.update_provider(owner, "SLACK", {"enabled": True, "webhook_url": "x"})

        assert settings.get_settings(other_owner)["providers"] == {}

    @pytest.mark.parametrize("call", [
        lambda s, o: s.update_provider(o, "FAX", {"enabled": True}),
        lambda s, o: s.update_type(o, "DAILY_DIGEST", {"enabled": True}),
        lambda s, o: s.update_type(o, "BILL_DUE", {"enabled": True, "providers": "SLACK"}),
        lambda s, o: s.update_type(o, "BILL_DUE", {"enabled": True, "days_before": -1}),
    ])
    def test_invalid_updates(self, owner, settings, call):
        with pytest.raises(ValidationError):
            call(settings, owner)


class TestTestProvider:

    def test_missing_provider(self, owner, settings):
        with pytest.raises(NotFoundError):
            settings.test_provider(owner, "SLACK")

    def test_disabled_provider(self, owner, settings, slack):
        settings.update_provider(owner, "SLACK", {"enabled": False, "webhook_url": "x"})

        with pytest.raises(ValidationError):
            settings.test_provider(owner, "SLACK")
        assert slack.calls == []

    def test_sends_test_message(self, owner, settings, slack):
        settings.update_provider(owner, "SLACK", {"enabled": True, "webhook_url": "x"})

        settings.test_provider(owner, "SLACK")

        credentials, message = slack.calls[0]
        assert credentials == {"webhook_url": "x"}
        assert message.subject == "Test Notification"

    def test_delivery_failure_propagates(self, owner, settings, slack):
        slack.error = RuntimeError("invalid_token")
        settings.update_provider(owner, "SLACK", {"enabled": True, "webhook_url": "x"})

        with pytest.raises(ProviderDeliveryError) as exc_info:
            settings.test_provider(owner, "SLACK")
        assert exc_info.value.failures == {"SLACK": "invalid_token"}
