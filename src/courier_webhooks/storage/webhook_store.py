"""
Module: webhook_store.py
Description: Durable audit store for inbound webhooks.

WebhookStore is the sole writer of WebhookRecord state. Every record is
persisted through a RecordBackend at creation and on every update, and
mirrored in an in-memory index that serves all reads. Callers always get
copies, so nothing outside the store can mutate a record.

Key Components:
- store_webhook(): Create a pending record (fails loudly if not durable)
- update_webhook(): Record one processing attempt and its outcome
- get_*(): Reads by id, provider, status and retry eligibility
- load(): Rebuild the index from the backend after a restart

Dependencies: pydantic, copy, uuid, datetime
Author: Courier Webhooks Team
"""

import copy
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Mapping, Optional, Union
from uuid import uuid4

from pydantic import ValidationError

from courier_webhooks.errors import WebhookStorageError
from courier_webhooks.models.webhook import (
    ProcessingAttempt,
    ProcessingResult,
    WebhookProvider,
    WebhookRecord,
    WebhookStatus,
)
from courier_webhooks.storage.backends import RecordBackend
from courier_webhooks.utils.logger import get_logger

logger = get_logger(__name__)

DEFAULT_MAX_ATTEMPTS = 3


def generate_webhook_id() -> str:
    """Generate a webhook record id (whk_ + 16 hex chars)."""
    return f"whk_{uuid4().hex[:16]}"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _as_provider(provider: Union[WebhookProvider, str]) -> WebhookProvider:
    if isinstance(provider, WebhookProvider):
        return provider
    return WebhookProvider.from_name(provider)


class WebhookStore:
    """
    Append-only record keeper for inbound webhooks.

    Attributes:
        backend: Durable backend the records are written to
        max_attempts: Attempts after which a failing record becomes failed

    Example:
        >>> store = WebhookStore(FileRecordBackend("data/webhooks"))
        >>> store.load()
        >>> record = await store.store_webhook(WebhookProvider.UBER, payload, headers)
        >>> await store.update_webhook(record.webhook_id, result)
    """

    def __init__(self, backend: RecordBackend, max_attempts: int = DEFAULT_MAX_ATTEMPTS):
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")

        self.backend = backend
        self.max_attempts = max_attempts
        self._records: Dict[str, WebhookRecord] = {}

    def __len__(self) -> int:
        return len(self._records)

    def load(self) -> int:
        """
        Load every persisted record into the in-memory index.

        Unreadable documents are logged and skipped. Pending records whose
        attempts already reach max_attempts (the limit was lowered since
        they were written) are marked failed, so they are never re-armed.

        Returns:
            Number of records loaded
        """
        loaded = 0
        for document in self.backend.list_all():
            try:
                record = WebhookRecord.model_validate(document)
            except ValidationError as e:
                logger.error(
                    "Skipping invalid webhook record",
                    webhook_id=document.get("webhook_id"),
                    error=str(e)
                )
                continue
            if record.status == WebhookStatus.PENDING and record.processing_attempts >= self.max_attempts:
                self._fail_exhausted(record)
            self._records[record.webhook_id] = record
            loaded += 1

        logger.info("Loaded webhooks from storage", count=loaded)
        return loaded

    def _fail_exhausted(self, record: WebhookRecord) -> None:
        record.status = WebhookStatus.FAILED
        logger.warning(
            "Pending webhook exceeds max attempts, marking failed",
            webhook_id=record.webhook_id,
            attempts=record.processing_attempts,
            max_attempts=self.max_attempts
        )
        try:
            self._persist(record)
        except Exception as e:
            # Index keeps the failed status; the document is corrected on the next load
            logger.error(
                "Failed to persist exhausted webhook",
                webhook_id=record.webhook_id,
                error=str(e),
                error_type=type(e).__name__
            )

    def _new_id(self) -> str:
        webhook_id = generate_webhook_id()
        while webhook_id in self._records:
            webhook_id = generate_webhook_id()
        return webhook_id

    def _persist(self, record: WebhookRecord) -> None:
        self.backend.put(record.webhook_id, record.model_dump(mode="json"))

    async def store_webhook(
        self,
        provider: Union[WebhookProvider, str],
        raw_payload: Dict[str, Any],
        headers: Optional[Mapping[str, str]] = None,
        authenticated_at: Optional[datetime] = None,
        replay_of: Optional[str] = None
    ) -> WebhookRecord:
        """
        Create and persist a pending webhook record.

        The record only enters the index once it is durable, so a failed
        write leaves no trace and the caller can fail the intake.

        Args:
            provider: Provider that sent the webhook
            raw_payload: Untouched provider body
            headers: Verification headers to keep for retries
            authenticated_at: Instant the signature was accepted
            replay_of: Source record id for manual replays

        Returns:
            Copy of the stored record

        Raises:
            WebhookStorageError: If the record could not be persisted
        """
        received_at = _utcnow()
        record = WebhookRecord(
            webhook_id=self._new_id(),
            provider=_as_provider(provider),
            received_at=received_at,
            authenticated_at=authenticated_at or received_at,
            raw_payload=copy.deepcopy(raw_payload),
            headers={str(k).lower(): str(v) for k, v in (headers or {}).items()},
            replay_of=replay_of,
        )

        try:
            self._persist(record)
        except Exception as e:
            logger.error(
                "Failed to persist new webhook",
                webhook_id=record.webhook_id,
                provider=record.provider.value,
                error=str(e),
                error_type=type(e).__name__
            )
            raise WebhookStorageError(record.webhook_id, e) from e

        self._records[record.webhook_id] = record
        logger.info(
            "Webhook stored",
            webhook_id=record.webhook_id,
            provider=record.provider.value,
            replay_of=replay_of
        )
        return record.model_copy(deep=True)

    async def update_webhook(
        self,
        webhook_id: str,
        result: ProcessingResult
    ) -> Optional[WebhookRecord]:
        """
        Record one processing attempt.

        Increments processing_attempts and appends to the attempt history.
        A successful result makes the record processed; a non-retryable
        failure, or one that exhausts max_attempts, makes it failed;
        otherwise it stays pending.
        Terminal records are left untouched. A failed write is logged and
        the in-memory state is kept, so the next update persists it again.

        Args:
            webhook_id: Record to update
            result: Outcome of the attempt

        Returns:
            Copy of the updated record, or None if the id is unknown
        """
        record = self._records.get(webhook_id)
        if record is None:
            logger.warning("Cannot update unknown webhook", webhook_id=webhook_id)
            return None

        if record.is_terminal:
            logger.warning(
                "Ignoring update for terminal webhook",
                webhook_id=webhook_id,
                status=record.status.value
            )
            return record.model_copy(deep=True)

        attempted_at = _utcnow()
        if record.last_processing_attempt and attempted_at <= record.last_processing_attempt:
            attempted_at = record.last_processing_attempt + timedelta(microseconds=1)

        record.processing_attempts += 1
        record.last_processing_attempt = attempted_at
        record.processing_result = result
        record.attempts.append(ProcessingAttempt(
            attempt=record.processing_attempts,
            attempted_at=attempted_at,
            success=result.success,
            message=result.message,
        ))

        if result.success:
            record.status = WebhookStatus.PROCESSED
            record.processed_at = attempted_at
        elif not result.retryable or record.processing_attempts >= self.max_attempts:
            record.status = WebhookStatus.FAILED

        try:
            self._persist(record)
        except Exception as e:
            logger.error(
                "Failed to persist webhook update",
                webhook_id=webhook_id,
                attempt=record.processing_attempts,
                error=str(e),
                error_type=type(e).__name__
            )

        logger.info(
            "Webhook attempt recorded",
            webhook_id=webhook_id,
            attempt=record.processing_attempts,
            success=result.success,
            status=record.status.value
        )
        return record.model_copy(deep=True)

    async def delete_webhook(self, webhook_id: str) -> bool:
        """
        Delete a record from the index and the backend.

        Returns:
            True if the record existed

        Raises:
            WebhookStorageError: If the backend delete fails
        """
        if webhook_id not in self._records:
            return False

        try:
            self.backend.delete(webhook_id)
        except Exception as e:
            logger.error("Failed to delete webhook", webhook_id=webhook_id, error=str(e))
            raise WebhookStorageError(webhook_id, e) from e

        del self._records[webhook_id]
        logger.info("Webhook deleted", webhook_id=webhook_id)
        return True

    def get_webhook(self, webhook_id: str) -> Optional[WebhookRecord]:
        """Get a copy of one record, or None."""
        record = self._records.get(webhook_id)
        return record.model_copy(deep=True) if record else None

    def get_webhooks(
        self,
        provider: Optional[Union[WebhookProvider, str]] = None,
        status: Optional[Union[WebhookStatus, str]] = None
    ) -> List[WebhookRecord]:
        """
        Get records, optionally filtered, oldest first.

        Args:
            provider: Only records from this provider
            status: Only records in this status
        """
        wanted_provider = _as_provider(provider) if provider is not None else None
        wanted_status = WebhookStatus(status) if status is not None else None

        records = [
            record for record in self._records.values()
            if (wanted_provider is None or record.provider == wanted_provider)
            and (wanted_status is None or record.status == wanted_status)
        ]
        records.sort(key=lambda r: r.received_at)
        return [record.model_copy(deep=True) for record in records]

    def get_all_webhooks(self) -> List[WebhookRecord]:
        return self.get_webhooks()

    def get_webhooks_by_provider(self, provider: Union[WebhookProvider, str]) -> List[WebhookRecord]:
        return self.get_webhooks(provider=provider)

    def get_webhooks_by_status(self, status: Union[WebhookStatus, str]) -> List[WebhookRecord]:
        return self.get_webhooks(status=status)

    def get_pending_webhooks(self, max_attempts: Optional[int] = None) -> List[WebhookRecord]:
        """Pending records that still have attempts left."""
        limit = max_attempts if max_attempts is not None else self.max_attempts
        return [
            record for record in self.get_webhooks(status=WebhookStatus.PENDING)
            if record.processing_attempts < limit
        ]
