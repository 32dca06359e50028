"""
Module: uber.py
Description: Uber webhook processor.

Besides status forwarding, Uber's courier update events are logged with
the courier position so live tracking can be followed per delivery.
"""

from datetime import datetime
from typing import Any, Optional

from courier_webhooks.delivery.sink import DeliveryStatusSink
from courier_webhooks.models.webhook import NormalizedEvent, WebhookEventType, WebhookProvider
from courier_webhooks.normalization.uber import normalize_uber_event
from courier_webhooks.processors.base import BaseWebhookProcessor
from courier_webhooks.storage.webhook_store import WebhookStore
from courier_webhooks.utils.logger import get_logger
from courier_webhooks.verification.uber import UberSignatureVerifier

logger = get_logger(__name__)


class UberWebhookProcessor(BaseWebhookProcessor):
    """Processes Uber Direct (and legacy Uber) delivery webhooks."""

    provider = WebhookProvider.UBER

    @classmethod
    def from_settings(
        cls,
        settings,
        store: WebhookStore,
        sink: Optional[DeliveryStatusSink] = None
    ) -> "UberWebhookProcessor":
        verifier = UberSignatureVerifier(
            client_secret=settings.uber_client_secret,
            bypass=settings.webhook_verification_bypass,
        )
        return cls(verifier, store, sink)

    def normalize(self, raw_payload: Any, received_at: Optional[datetime] = None) -> NormalizedEvent:
        return normalize_uber_event(raw_payload, received_at)

    async def handle_event(self, event: NormalizedEvent) -> None:
        if event.event_type == WebhookEventType.COURIER_LOCATION_UPDATED and event.location:
            logger.info(
                "Courier location update",
                delivery_id=event.delivery_id,
                latitude=event.location.latitude,
                longitude=event.location.longitude
            )
        await super().handle_event(event)
