"""
Module: test_factory.py
Description: Unit tests for WebhookProcessorFactory.
"""

import pytest

from courier_webhooks.errors import UnsupportedProviderError
from courier_webhooks.models.webhook import WebhookProvider
from courier_webhooks.processors.doordash import DoorDashWebhookProcessor
from courier_webhooks.processors.factory import WebhookProcessorFactory
from courier_webhooks.processors.uber import UberWebhookProcessor


class TestWebhookProcessorFactory:
    """Test cases for processor lookup."""

    def test_get_processor_by_enum(self, factory, doordash_processor, uber_processor):
        assert factory.get_processor(WebhookProvider.DOORDASH) is doordash_processor
        assert factory.get_processor(WebhookProvider.UBER) is uber_processor

    @pytest.mark.parametrize("name", ["doordash", "DoorDash", " DOORDASH "])
    def test_get_processor_by_name_is_case_insensitive(self, factory, doordash_processor, name):
        assert factory.get_processor_by_name(name) is doordash_processor

    def test_get_processor_accepts_names(self, factory, uber_processor):
        assert factory.get_processor("Uber") is uber_processor

    def test_same_instance_every_time(self, factory):
        assert factory.get_processor_by_name("uber") is factory.get_processor_by_name("UBER")

    @pytest.mark.parametrize("name", ["lyft", "", None])
    def test_unknown_name_raises(self, factory, name):
        with pytest.raises(UnsupportedProviderError):
            factory.get_processor_by_name(name)

    def test_unknown_enum_raises(self, factory):
        with pytest.raises(UnsupportedProviderError, match="unknown"):
            factory.get_processor(WebhookProvider.UNKNOWN)

    def test_unregistered_provider_raises(self, doordash_processor):
        factory = WebhookProcessorFactory([doordash_processor])

        with pytest.raises(UnsupportedProviderError):
            factory.get_processor(WebhookProvider.UBER)

    def test_unsupported_provider_error_is_value_error(self, factory):
        with pytest.raises(ValueError):
            factory.get_processor_by_name("lyft")

    def test_from_settings(self, test_settings, store, recording_sink):
        factory = WebhookProcessorFactory.from_settings(test_settings, store, recording_sink)

        doordash = factory.get_processor(WebhookProvider.DOORDASH)
        uber = factory.get_processor(WebhookProvider.UBER)

        assert isinstance(doordash, DoorDashWebhookProcessor)
        assert isinstance(uber, UberWebhookProcessor)
        assert doordash.verifier.developer_id == test_settings.doordash_developer_id
        assert doordash.verifier.tolerance_seconds == 300
        assert uber.verifier.client_secret == test_settings.uber_client_secret
        assert doordash.sink is recording_sink
        assert set(factory.providers) == {WebhookProvider.DOORDASH, WebhookProvider.UBER}
