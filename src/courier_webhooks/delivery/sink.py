"""
Module: delivery/sink.py
Description: Downstream forwarding of normalized delivery status events.

Processors hand status-bearing events to a DeliveryStatusSink. Persisting
delivery status is owned by a downstream service; the sink is the seam.

Key Components:
- DeliveryStatusSink: Sink interface
- LoggingStatusSink: Logs status and tracking URL (default)
- HttpStatusSink: POSTs events to a downstream URL with retries
- build_status_sink(): Sink selection from settings

Dependencies: httpx, tenacity, logger
"""

from abc import ABC, abstractmethod
from typing import Optional

import httpx

from courier_webhooks.delivery.retry import transient_http_retry
from courier_webhooks.models.webhook import NormalizedEvent
from courier_webhooks.utils.logger import get_logger

logger = get_logger(__name__)


class DeliveryStatusSink(ABC):
    """Receives normalized delivery status events."""

    @abstractmethod
    async def publish(self, event: NormalizedEvent) -> None:
        """Forward one event; raising marks the attempt as failed."""


class LoggingStatusSink(DeliveryStatusSink):
    """Sink that only logs the status change."""

    async def publish(self, event: NormalizedEvent) -> None:
        logger.info(
            "Delivery status update",
            provider=event.provider.value,
            delivery_id=event.delivery_id,
            external_delivery_id=event.external_delivery_id,
            event_type=event.event_type.value,
            status=event.status.value if event.status else None,
            tracking_url=event.tracking_url
        )


class HttpStatusSink(DeliveryStatusSink):
    """
    HTTP client forwarding events to a downstream service.

    Transient failures are retried in-attempt; if they persist, the error
    propagates and the webhook attempt is retried by the queue.
    """

    def __init__(self, url: str, timeout_seconds: int = 10, max_attempts: int = 3):
        """
        Initialize the HTTP status sink.

        Args:
            url: Downstream endpoint receiving events
            timeout_seconds: HTTP timeout in seconds
            max_attempts: In-attempt retries for transient errors

        Raises:
            ValueError: If url is invalid
        """
        if not url or not isinstance(url, str):
            raise ValueError("url must be a non-empty string")
        if not url.startswith(('http://', 'https://')):
            raise ValueError("url must be a valid HTTP/HTTPS URL")

        self.url = url
        self.timeout = httpx.Timeout(timeout_seconds, connect=timeout_seconds)
        self._post = transient_http_retry(max_attempts)(self._post_once)

        logger.info(
            "HTTP status sink initialized",
            url=url,
            timeout_seconds=timeout_seconds
        )

    async def _post_once(self, body: dict) -> None:
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            response = await client.post(
                self.url,
                json=body,
                headers={'Content-Type': 'application/json'}
            )
            response.raise_for_status()

    async def publish(self, event: NormalizedEvent) -> None:
        body = event.model_dump(mode="json")
        try:
            await self._post(body)
        except httpx.HTTPStatusError as e:
            logger.warning(
                "Status forwarding HTTP error",
                event_id=event.id,
                status_code=e.response.status_code,
                response=e.response.text[:500]
            )
            raise
        except httpx.HTTPError as e:
            logger.warning(
                "Status forwarding failed",
                event_id=event.id,
                error=str(e),
                error_type=type(e).__name__
            )
            raise

        logger.info(
            "Status event forwarded",
            event_id=event.id,
            delivery_id=event.delivery_id,
            url=self.url
        )


def build_status_sink(url: Optional[str], timeout_seconds: int = 10) -> DeliveryStatusSink:
    """HTTP sink when a URL is configured, logging sink otherwise."""
    if url:
        return HttpStatusSink(url, timeout_seconds=timeout_seconds)
    return LoggingStatusSink()
