"""
Module: factory.py
Description: Registry resolving webhook processors by provider.

Built once by the composition root; each provider maps to a single
processor instance for the life of the process.
"""

from typing import Dict, Iterable, Optional, Union

from courier_webhooks.delivery.sink import DeliveryStatusSink
from courier_webhooks.errors import UnsupportedProviderError
from courier_webhooks.models.webhook import WebhookProvider
from courier_webhooks.processors.base import BaseWebhookProcessor
from courier_webhooks.processors.doordash import DoorDashWebhookProcessor
from courier_webhooks.processors.uber import UberWebhookProcessor
from courier_webhooks.storage.webhook_store import WebhookStore


class WebhookProcessorFactory:
    """
    Lookup of one processor per provider.

    Example:
        >>> factory = WebhookProcessorFactory([doordash_processor, uber_processor])
        >>> factory.get_processor_by_name("DoorDash") is doordash_processor
        True
    """

    def __init__(self, processors: Iterable[BaseWebhookProcessor] = ()):
        self._processors: Dict[WebhookProvider, BaseWebhookProcessor] = {}
        for processor in processors:
            self.register(processor)

    @classmethod
    def from_settings(
        cls,
        settings,
        store: WebhookStore,
        sink: Optional[DeliveryStatusSink] = None
    ) -> "WebhookProcessorFactory":
        """Build the DoorDash and Uber processors sharing one store and sink."""
        return cls([
            DoorDashWebhookProcessor.from_settings(settings, store, sink),
            UberWebhookProcessor.from_settings(settings, store, sink),
        ])

    @property
    def providers(self):
        return tuple(self._processors)

    def register(self, processor: BaseWebhookProcessor) -> None:
        """Register a processor under its provider, replacing any previous one."""
        if processor.provider == WebhookProvider.UNKNOWN:
            raise UnsupportedProviderError(processor.provider.value)
        self._processors[processor.provider] = processor

    def get_processor(self, provider: Union[WebhookProvider, str]) -> BaseWebhookProcessor:
        """
        Get the processor for a provider.

        Raises:
            UnsupportedProviderError: If no processor is registered
        """
        if not isinstance(provider, WebhookProvider):
            return self.get_processor_by_name(provider)

        processor = self._processors.get(provider)
        if processor is None:
            raise UnsupportedProviderError(provider.value)
        return processor

    def get_processor_by_name(self, name: str) -> BaseWebhookProcessor:
        """
        Get a processor by case-insensitive provider name.

        Raises:
            UnsupportedProviderError: If the name matches no registered provider
        """
        provider = WebhookProvider.from_name(name)
        processor = self._processors.get(provider)
        if processor is None:
            raise UnsupportedProviderError(name)
        return processor
