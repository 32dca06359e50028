"""
Module: delivery/queue.py
Description: Accept-then-process webhook queue with durable retries.

WebhookQueue authenticates and stores an inbound webhook, then runs the
first processing attempt as a background task so the HTTP caller gets
its answer as soon as the record is durable. Failed attempts are retried
on a fixed backoff schedule with one loop timer per record id; arming a
new timer always cancels the previous one, and an id never has two
attempts running at once.

Retry state lives in the WebhookStore, so start() can rebuild the timer
map after a restart from the pending records alone.

Key Components:
- WebhookQueue.add_to_queue(): Intake (authenticate, store, attempt 1)
- WebhookQueue.schedule_retry(): Cancel-and-replace retry timer
- WebhookQueue.start() / stop(): Re-arm pending retries / shut down
- WebhookQueue.replay_webhook(): Manual replay as a new record

Dependencies: asyncio, storage, processors, delivery.retry, utils.metrics
Author: Courier Webhooks Team
"""

import asyncio
from typing import TYPE_CHECKING, Any, Dict, List, Mapping, Optional, Union

from courier_webhooks.delivery.retry import RetryPolicy
from courier_webhooks.errors import WebhookNotFoundError, WebhookSignatureError
from courier_webhooks.models.webhook import (
    ProcessingResult,
    WebhookProvider,
    WebhookRecord,
    WebhookStatus,
)
from courier_webhooks.storage.webhook_store import WebhookStore
from courier_webhooks.utils.logger import get_logger
from courier_webhooks.utils.metrics import (
    WEBHOOK_RETRIES_SCHEDULED,
    WEBHOOKS_FAILED,
    WEBHOOKS_PROCESSED,
    WEBHOOKS_RECEIVED,
)

if TYPE_CHECKING:
    from courier_webhooks.processors.factory import WebhookProcessorFactory

logger = get_logger(__name__)

DEFAULT_RESTART_DELAY_SECONDS = 5.0


class WebhookQueue:
    """
    Retry scheduler for stored webhooks.

    Attributes:
        store: Webhook store holding retry state
        factory: Processor registry
        policy: Retry bound and backoff schedule
        restart_delay: Delay before re-armed retries fire after start()
        metrics: Optional MetricsClient for intake/outcome counters

    Example:
        >>> queue = WebhookQueue(store, factory, RetryPolicy(3, [60, 300, 1800]))
        >>> await queue.start()
        >>> webhook_id = await queue.add_to_queue("doordash", payload, headers)
    """

    def __init__(
        self,
        store: WebhookStore,
        factory: "WebhookProcessorFactory",
        policy: Optional[RetryPolicy] = None,
        restart_delay: float = DEFAULT_RESTART_DELAY_SECONDS,
        metrics=None
    ):
        self.store = store
        self.factory = factory
        self.policy = policy or RetryPolicy()
        self.restart_delay = restart_delay
        self.metrics = metrics
        self._timers: Dict[str, asyncio.TimerHandle] = {}
        self._in_flight: Dict[str, asyncio.Task] = {}
        self._stopped = False

    async def add_to_queue(
        self,
        provider: Union[WebhookProvider, str],
        raw_payload: Dict[str, Any],
        headers: Optional[Mapping[str, str]] = None
    ) -> str:
        """
        Accept a webhook and start processing it.

        The signature is checked before anything is stored. Once the
        record is durable, attempt 1 is started in the background and the
        id is returned without waiting for its outcome.

        Args:
            provider: Provider enum or name from the request path
            raw_payload: Parsed request body
            headers: Request headers

        Returns:
            Generated webhook id

        Raises:
            UnsupportedProviderError: If no processor handles the provider
            WebhookSignatureError: If the signature is invalid
            WebhookStorageError: If the record could not be persisted
        """
        processor = self.factory.get_processor(provider)

        if not processor.verify_webhook(raw_payload, headers):
            logger.warning("Rejected webhook with invalid signature", provider=processor.provider.value)
            raise WebhookSignatureError(processor.provider.value)

        record = await self.store.store_webhook(
            processor.provider,
            raw_payload,
            processor.capture_headers(headers)
        )

        self._count(WEBHOOKS_RECEIVED, record.provider)
        self._spawn(record.webhook_id)

        logger.info(
            "Webhook queued",
            webhook_id=record.webhook_id,
            provider=record.provider.value
        )
        return record.webhook_id

    async def replay_webhook(self, webhook_id: str) -> WebhookRecord:
        """
        Re-submit a stored webhook as a new record.

        The replay keeps the source's payload, headers and authentication
        instant, so it verifies exactly as the original did.

        Raises:
            WebhookNotFoundError: If the source id is unknown
            WebhookStorageError: If the replay could not be persisted
        """
        source = self.store.get_webhook(webhook_id)
        if source is None:
            raise WebhookNotFoundError(webhook_id)

        self.factory.get_processor(source.provider)

        record = await self.store.store_webhook(
            source.provider,
            source.raw_payload,
            source.headers,
            authenticated_at=source.verification_time,
            replay_of=source.webhook_id
        )
        self._spawn(record.webhook_id)

        logger.info(
            "Webhook replay queued",
            webhook_id=record.webhook_id,
            replay_of=source.webhook_id,
            source_status=source.status.value
        )
        return record

    async def delete_webhook(self, webhook_id: str) -> bool:
        """Cancel any pending retry and delete the record."""
        self.cancel_retry(webhook_id)
        return await self.store.delete_webhook(webhook_id)

    def schedule_retry(self, webhook_id: str, delay: float) -> None:
        """Arm the retry timer for an id, replacing any existing one."""
        self.cancel_retry(webhook_id)

        loop = asyncio.get_running_loop()
        self._timers[webhook_id] = loop.call_later(delay, self._fire_retry, webhook_id)

        logger.info("Retry scheduled", webhook_id=webhook_id, delay_seconds=delay)

    def cancel_retry(self, webhook_id: str) -> bool:
        """Cancel a not-yet-fired retry timer; returns whether one existed."""
        handle = self._timers.pop(webhook_id, None)
        if handle is None:
            return False
        handle.cancel()
        return True

    def has_scheduled_retry(self, webhook_id: str) -> bool:
        return webhook_id in self._timers

    def scheduled_ids(self) -> List[str]:
        return list(self._timers)

    def is_in_flight(self, webhook_id: str) -> bool:
        task = self._in_flight.get(webhook_id)
        return task is not None and not task.done()

    async def start(self) -> int:
        """
        Re-arm retries for pending records left over from a previous run.

        Each eligible record gets exactly one timer, firing after
        restart_delay.

        Returns:
            Number of retries armed
        """
        self._stopped = False
        pending = self.store.get_pending_webhooks(self.policy.max_attempts)
        for record in pending:
            self.schedule_retry(record.webhook_id, self.restart_delay)

        logger.info("Webhook queue started", rearmed=len(pending))
        return len(pending)

    async def stop(self) -> None:
        """Cancel every timer and wait for in-flight attempts to finish."""
        self._stopped = True
        for webhook_id in list(self._timers):
            self.cancel_retry(webhook_id)

        running = [task for task in self._in_flight.values() if not task.done()]
        if running:
            await asyncio.gather(*running, return_exceptions=True)

        logger.info("Webhook queue stopped", awaited=len(running))

    async def drain(self, timeout: Optional[float] = None, poll_interval: float = 0.01) -> None:
        """
        Wait until no retry timers or in-flight attempts remain.

        Raises:
            asyncio.TimeoutError: If the queue is still busy after timeout
        """
        async def _wait_idle():
            while True:
                running = [task for task in self._in_flight.values() if not task.done()]
                if running:
                    await asyncio.wait(running)
                elif self._timers:
                    await asyncio.sleep(poll_interval)
                else:
                    return

        await asyncio.wait_for(_wait_idle(), timeout)

    def _spawn(self, webhook_id: str) -> None:
        task = asyncio.create_task(self._run_attempt(webhook_id))
        self._in_flight[webhook_id] = task

        def _forget(done: asyncio.Task) -> None:
            if self._in_flight.get(webhook_id) is done:
                del self._in_flight[webhook_id]

        task.add_done_callback(_forget)

    def _fire_retry(self, webhook_id: str) -> None:
        self._timers.pop(webhook_id, None)
        if self._stopped:
            return

        if self.is_in_flight(webhook_id):
            # The running attempt schedules its own follow-up
            logger.info("Retry dropped, attempt already in flight", webhook_id=webhook_id)
            return

        self._spawn(webhook_id)

    async def _run_attempt(self, webhook_id: str) -> None:
        record = self.store.get_webhook(webhook_id)
        if record is None:
            logger.warning("Skipping attempt for unknown webhook", webhook_id=webhook_id)
            return
        if record.is_terminal:
            logger.debug("Skipping attempt for terminal webhook", webhook_id=webhook_id)
            return

        attempt = record.processing_attempts + 1
        logger.info(
            "Processing attempt started",
            webhook_id=webhook_id,
            provider=record.provider.value,
            attempt=attempt
        )

        try:
            processor = self.factory.get_processor(record.provider)
            await processor.process_record(record)
        except Exception as e:
            logger.error(
                "Processor raised during attempt",
                webhook_id=webhook_id,
                attempt=attempt,
                error=str(e),
                error_type=type(e).__name__,
                exc_info=True
            )
            await self.store.update_webhook(
                webhook_id,
                ProcessingResult.from_exception(f"Error processing webhook: {e}", e)
            )

        self._after_attempt(webhook_id)

    def _after_attempt(self, webhook_id: str) -> None:
        record = self.store.get_webhook(webhook_id)
        if record is None:
            return

        if record.status == WebhookStatus.PROCESSED:
            self._count(WEBHOOKS_PROCESSED, record.provider)
            logger.info(
                "Webhook processed",
                webhook_id=webhook_id,
                attempts=record.processing_attempts
            )
            return

        if record.status == WebhookStatus.PENDING and self.policy.should_retry(record.processing_attempts):
            if self._stopped:
                return
            self.schedule_retry(webhook_id, self.policy.delay_for_attempt(record.processing_attempts))
            self._count(WEBHOOK_RETRIES_SCHEDULED, record.provider)
            return

        error = record.processing_result.error if record.processing_result else None
        logger.error(
            "Webhook failed permanently",
            webhook_id=webhook_id,
            provider=record.provider.value,
            attempts=record.processing_attempts,
            error=error
        )
        self._count(WEBHOOKS_FAILED, record.provider)

    def _count(self, metric_name: str, provider: WebhookProvider) -> None:
        if self.metrics is not None:
            self.metrics.count(metric_name, provider.value)
