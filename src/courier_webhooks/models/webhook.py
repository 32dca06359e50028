"""
Module: webhook.py
Description: Webhook data models for the courier webhook service.

Defines the durable WebhookRecord audit model, the provider-agnostic
NormalizedEvent projection and the ProcessingResult that links them.

Key Components:
- WebhookProvider: Courier providers, with tolerant name resolution
- WebhookEventType / DeliveryStatus: Standardized vocabularies
- WebhookStatus: Record lifecycle (pending, processed, failed)
- NormalizedEvent: Provider-agnostic delivery event
- ProcessingResult: Outcome of a single processing attempt
- WebhookRecord: One inbound webhook with its attempt history

Dependencies: pydantic, datetime, enum, typing
Author: Courier Webhooks Team
"""

from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from courier_webhooks.utils.logger import get_logger

logger = get_logger(__name__)


class WebhookProvider(str, Enum):
    """Courier providers that deliver webhooks."""

    DOORDASH = "doordash"
    UBER = "uber"
    UNKNOWN = "unknown"

    @classmethod
    def from_name(cls, name: Optional[str]) -> "WebhookProvider":
        """
        Resolve a provider from a free-form name.

        Matching is case-insensitive and ignores surrounding whitespace.
        Unrecognized names resolve to UNKNOWN and are logged.

        Args:
            name: Provider name, e.g. 'DoorDash' or 'uber'

        Returns:
            Matching WebhookProvider, or WebhookProvider.UNKNOWN
        """
        normalized = (name or "").strip().lower()
        provider = _PROVIDER_ALIASES.get(normalized)
        if provider is None:
            logger.warning("Unrecognized webhook provider name", provider_name=name)
            return cls.UNKNOWN
        return provider


_PROVIDER_ALIASES = {
    "doordash": WebhookProvider.DOORDASH,
    "door_dash": WebhookProvider.DOORDASH,
    "uber": WebhookProvider.UBER,
    "uber_direct": WebhookProvider.UBER,
    "postmates": WebhookProvider.UBER,
}


class WebhookEventType(str, Enum):
    """Standardized webhook event types across providers."""

    CREATED = "delivery.created"
    STATUS_CHANGED = "delivery.status_changed"
    PICKUP = "delivery.pickup"
    IN_TRANSIT = "delivery.in_transit"
    COMPLETED = "delivery.completed"
    CANCELLED = "delivery.cancelled"
    FAILED = "delivery.failed"
    RETURNED = "delivery.returned"
    COURIER_LOCATION_UPDATED = "courier.location.updated"
    UNKNOWN = "unknown"


# Event types that carry delivery status information
STATUS_EVENT_TYPES = frozenset({
    WebhookEventType.CREATED,
    WebhookEventType.STATUS_CHANGED,
    WebhookEventType.PICKUP,
    WebhookEventType.IN_TRANSIT,
    WebhookEventType.COMPLETED,
    WebhookEventType.CANCELLED,
    WebhookEventType.FAILED,
    WebhookEventType.RETURNED,
})


class DeliveryStatus(str, Enum):
    """Standardized delivery status across providers."""

    PENDING = "pending"
    ASSIGNED = "assigned"
    PICKUP = "pickup"
    IN_TRANSIT = "in_transit"
    DELIVERED = "delivered"
    FAILED = "failed"
    CANCELLED = "cancelled"
    RETURNED = "returned"
    UNKNOWN = "unknown"


class WebhookStatus(str, Enum):
    """Processing state of a stored webhook record."""

    PENDING = "pending"
    PROCESSED = "processed"
    FAILED = "failed"


TERMINAL_STATUSES = frozenset({WebhookStatus.PROCESSED, WebhookStatus.FAILED})


class Location(BaseModel):
    """Courier or dropoff coordinates."""

    latitude: float
    longitude: float


class NormalizedEvent(BaseModel):
    """
    Provider-agnostic delivery event.

    Recomputed from the stored raw payload on every processing attempt;
    it is embedded in ProcessingResult and never stored on its own.

    Attributes:
        id: Provider event id, or a fallback derived from the payload
        provider: Provider that sent the webhook
        event_type: Standardized event type
        delivery_id: Provider delivery id (empty string when absent)
        external_delivery_id: Merchant-side delivery id, when reported
        timestamp: Event time reported by the provider, else receipt time
        status: Normalized delivery status (status-bearing events only)
        status_details: Provider status text
        location: Courier location, when reported
        estimated_delivery_time: Dropoff ETA, when reported
        tracking_url: Customer tracking link, when reported
    """

    model_config = ConfigDict(frozen=True)

    id: str
    provider: WebhookProvider
    event_type: WebhookEventType
    delivery_id: str = ""
    external_delivery_id: Optional[str] = None
    timestamp: datetime
    status: Optional[DeliveryStatus] = None
    status_details: Optional[str] = None
    location: Optional[Location] = None
    estimated_delivery_time: Optional[datetime] = None
    tracking_url: Optional[str] = None

    @property
    def is_status_event(self) -> bool:
        """Whether the event reports a delivery status change."""
        return self.event_type in STATUS_EVENT_TYPES


class ProcessingResult(BaseModel):
    """
    Outcome of a single webhook processing attempt.

    A failure with retryable=False (e.g. a signature that no longer
    verifies) ends the record immediately instead of consuming retries.
    """

    success: bool
    message: str
    event: Optional[NormalizedEvent] = None
    error: Optional[str] = None
    error_type: Optional[str] = None
    retryable: bool = True

    @classmethod
    def from_exception(cls, message: str, exc: BaseException) -> "ProcessingResult":
        """Build a failed result carrying the exception text and type."""
        return cls(
            success=False,
            message=message,
            error=str(exc),
            error_type=type(exc).__name__,
        )


class ProcessingAttempt(BaseModel):
    """One entry of a record's append-only attempt history."""

    attempt: int = Field(..., ge=1)
    attempted_at: datetime
    success: bool
    message: str


class WebhookRecord(BaseModel):
    """
    Durable audit record for one inbound webhook delivery.

    One record exists per inbound HTTP delivery; retries update the same
    record. raw_payload and headers are kept exactly as received so that
    retries and manual replays verify and normalize the same input.

    Attributes:
        webhook_id: Generated record identifier
        provider: Provider that sent the webhook
        received_at: Time of first intake
        authenticated_at: Reference instant for signature verification
        raw_payload: Untouched provider body
        headers: Lower-cased verification headers captured at intake
        status: pending, processed or failed
        processing_attempts: Number of processing attempts so far
        last_processing_attempt: Time of the most recent attempt
        processed_at: Time of the first successful attempt
        processing_result: Outcome of the most recent attempt
        attempts: Append-only attempt history
        replay_of: Source record id when created by a manual replay
    """

    model_config = ConfigDict(validate_assignment=True)

    webhook_id: str = Field(
        ...,
        description="Unique webhook record identifier",
        pattern=r"^whk_[a-f0-9]{16}$"
    )
    provider: WebhookProvider
    received_at: datetime
    authenticated_at: Optional[datetime] = None
    raw_payload: Dict[str, Any]
    headers: Dict[str, str] = Field(default_factory=dict)
    status: WebhookStatus = WebhookStatus.PENDING
    processing_attempts: int = Field(default=0, ge=0)
    last_processing_attempt: Optional[datetime] = None
    processed_at: Optional[datetime] = None
    processing_result: Optional[ProcessingResult] = None
    attempts: List[ProcessingAttempt] = Field(default_factory=list)
    replay_of: Optional[str] = None

    @property
    def is_terminal(self) -> bool:
        """Whether the record has reached processed or failed."""
        return self.status in TERMINAL_STATUSES

    @property
    def verification_time(self) -> datetime:
        """Instant the signature replay window is evaluated against."""
        return self.authenticated_at or self.received_at
