"""
Module: base.py
Description: Shared processing pipeline for provider webhooks.

A processing attempt runs verify -> normalize -> dispatch -> record.
Fresh webhooks are verified before anything is stored; an unverifiable
request never becomes an audit record. Once a record exists, every
attempt ends with exactly one WebhookStore.update_webhook call, whatever
normalization or dispatch raised.

Key Components:
- BaseWebhookProcessor.process_webhook(): Full pipeline for a fresh webhook
- BaseWebhookProcessor.process_record(): One attempt for a stored record
- BaseWebhookProcessor.handle_event(): Side-effect dispatch by event type

Dependencies: verification, normalization, storage, delivery.sink
Author: Courier Webhooks Team
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Dict, Mapping, Optional

from courier_webhooks.delivery.sink import DeliveryStatusSink, LoggingStatusSink
from courier_webhooks.models.webhook import (
    NormalizedEvent,
    ProcessingResult,
    WebhookProvider,
    WebhookRecord,
)
from courier_webhooks.storage.webhook_store import WebhookStore
from courier_webhooks.utils.logger import get_logger
from courier_webhooks.verification.base import SignatureVerifier

logger = get_logger(__name__)

INVALID_SIGNATURE_MESSAGE = "Invalid webhook signature"


def _signature_failure() -> ProcessingResult:
    # Authentication failures are never retried
    return ProcessingResult(
        success=False,
        message=INVALID_SIGNATURE_MESSAGE,
        error_type="WebhookSignatureError",
        retryable=False
    )


class BaseWebhookProcessor(ABC):
    """
    Base class for provider webhook processors.

    Subclasses set `provider` and implement normalize(); verification is
    delegated to the injected SignatureVerifier.

    Attributes:
        verifier: Provider signature verifier
        store: Webhook store receiving records and attempt outcomes
        sink: Downstream receiver of status-bearing events
    """

    provider: WebhookProvider = WebhookProvider.UNKNOWN

    def __init__(
        self,
        verifier: SignatureVerifier,
        store: WebhookStore,
        sink: Optional[DeliveryStatusSink] = None
    ):
        self.verifier = verifier
        self.store = store
        self.sink = sink or LoggingStatusSink()

    @property
    def bypass_verification(self) -> bool:
        return self.verifier.bypass

    def capture_headers(self, headers: Optional[Mapping[str, str]]) -> Dict[str, str]:
        """Headers worth persisting for later re-verification."""
        return self.verifier.capture_headers(headers)

    def verify_webhook(
        self,
        raw_payload: Any,
        headers: Optional[Mapping[str, str]],
        now: Optional[datetime] = None
    ) -> bool:
        """Check the webhook signature (always True under bypass)."""
        return self.verifier.verify(raw_payload, headers, now=now)

    @abstractmethod
    def normalize(self, raw_payload: Any, received_at: Optional[datetime] = None) -> NormalizedEvent:
        """Map the raw payload into a NormalizedEvent."""

    async def handle_event(self, event: NormalizedEvent) -> None:
        """
        Dispatch side effects for a normalized event.

        Status-bearing events are forwarded to the sink; other event types
        are only logged.
        """
        logger.info(
            "Handling webhook event",
            provider=self.provider.value,
            event_type=event.event_type.value,
            delivery_id=event.delivery_id
        )

        if not event.is_status_event:
            return

        await self.sink.publish(event)

        if event.tracking_url:
            logger.info(
                "Delivery tracking URL",
                provider=self.provider.value,
                delivery_id=event.delivery_id,
                tracking_url=event.tracking_url
            )

    async def process_webhook(
        self,
        raw_payload: Dict[str, Any],
        headers: Optional[Mapping[str, str]] = None
    ) -> ProcessingResult:
        """
        Verify, store and process a freshly received webhook.

        Args:
            raw_payload: Parsed provider body
            headers: Request headers

        Returns:
            ProcessingResult of the attempt; a signature failure is
            returned without storing anything

        Raises:
            WebhookStorageError: If the record could not be persisted
        """
        if not self.verify_webhook(raw_payload, headers):
            logger.warning("Rejected webhook with invalid signature", provider=self.provider.value)
            return _signature_failure()

        record = await self.store.store_webhook(
            self.provider, raw_payload, self.capture_headers(headers)
        )
        return await self._run_attempt(record)

    async def process_record(self, record: WebhookRecord) -> ProcessingResult:
        """
        Run one processing attempt for an already stored record.

        The signature is re-checked from the persisted headers, with the
        replay window evaluated at the record's verification time so that
        later retries see the same verdict as intake.

        Args:
            record: Stored webhook record

        Returns:
            ProcessingResult of the attempt (also recorded in the store)
        """
        if not self.verify_webhook(record.raw_payload, record.headers, now=record.verification_time):
            logger.warning(
                "Stored webhook failed signature verification",
                webhook_id=record.webhook_id,
                provider=self.provider.value
            )
            result = _signature_failure()
            await self.store.update_webhook(record.webhook_id, result)
            return result

        return await self._run_attempt(record)

    async def _run_attempt(self, record: WebhookRecord) -> ProcessingResult:
        try:
            event = self.normalize(record.raw_payload, record.received_at)
            await self.handle_event(event)
            result = ProcessingResult(
                success=True,
                message=f"Processed {event.event_type.value} event for delivery {event.delivery_id}",
                event=event
            )
        except Exception as e:
            logger.error(
                "Webhook processing error",
                webhook_id=record.webhook_id,
                provider=self.provider.value,
                error=str(e),
                error_type=type(e).__name__,
                exc_info=True
            )
            result = ProcessingResult.from_exception(f"Error processing webhook: {e}", e)

        await self.store.update_webhook(record.webhook_id, result)
        return result
