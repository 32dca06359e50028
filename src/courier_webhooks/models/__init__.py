"""
Module: models
Description: Package initialization for Pydantic data models.

- webhook: WebhookRecord, NormalizedEvent, ProcessingResult and enums
- payloads: Tolerant typed views over raw provider bodies
- response: HTTP response models
"""

from .webhook import (
    DeliveryStatus,
    Location,
    NormalizedEvent,
    ProcessingAttempt,
    ProcessingResult,
    STATUS_EVENT_TYPES,
    WebhookEventType,
    WebhookProvider,
    WebhookRecord,
    WebhookStatus,
)
from .response import WebhookAcceptedResponse, WebhookListResponse, WebhookRejectedResponse

__all__ = [
    "DeliveryStatus",
    "Location",
    "NormalizedEvent",
    "ProcessingAttempt",
    "ProcessingResult",
    "STATUS_EVENT_TYPES",
    "WebhookEventType",
    "WebhookProvider",
    "WebhookRecord",
    "WebhookStatus",
    "WebhookAcceptedResponse",
    "WebhookListResponse",
    "WebhookRejectedResponse",
]
