"""
Module: doordash.py
Description: DoorDash webhook processor.
"""

from datetime import datetime
from typing import Any, Optional

from courier_webhooks.delivery.sink import DeliveryStatusSink
from courier_webhooks.models.webhook import NormalizedEvent, WebhookProvider
from courier_webhooks.normalization.doordash import normalize_doordash_event
from courier_webhooks.processors.base import BaseWebhookProcessor
from courier_webhooks.storage.webhook_store import WebhookStore
from courier_webhooks.verification.doordash import DoorDashSignatureVerifier


class DoorDashWebhookProcessor(BaseWebhookProcessor):
    """Processes DoorDash Drive delivery webhooks."""

    provider = WebhookProvider.DOORDASH

    @classmethod
    def from_settings(
        cls,
        settings,
        store: WebhookStore,
        sink: Optional[DeliveryStatusSink] = None
    ) -> "DoorDashWebhookProcessor":
        verifier = DoorDashSignatureVerifier(
            signing_secret=settings.doordash_signing_secret,
            developer_id=settings.doordash_developer_id,
            tolerance_seconds=settings.doordash_signature_tolerance_seconds,
            bypass=settings.webhook_verification_bypass,
        )
        return cls(verifier, store, sink)

    def normalize(self, raw_payload: Any, received_at: Optional[datetime] = None) -> NormalizedEvent:
        return normalize_doordash_event(raw_payload, received_at)
