"""
Module: common.py
Description: Helpers shared by the provider event normalizers.

Covers timestamp parsing for the ISO-string and epoch formats couriers
use, first-non-empty field probing, coordinate extraction, deterministic
fallback event ids and table-driven vocabulary mapping.
"""

import hashlib
import json
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Sequence, Tuple, TypeVar

from courier_webhooks.models.payloads import Coordinates
from courier_webhooks.models.webhook import DeliveryStatus, Location, WebhookEventType
from courier_webhooks.utils.logger import get_logger

logger = get_logger(__name__)

T = TypeVar("T")

# Epoch values above this are milliseconds
_EPOCH_MILLIS_THRESHOLD = 1e12

def parse_timestamp(value: Any) -> Optional[datetime]:
    """
    Parse an ISO-8601 string or epoch number into an aware UTC datetime.

    Epoch values may be seconds or milliseconds; numeric strings are
    treated as epochs. Returns None for anything unparseable.
    """
    if value is None or isinstance(value, bool):
        return None

    if isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        try:
            value = float(text)
        except ValueError:
            try:
                parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
            except ValueError:
                return None
            if parsed.tzinfo is None:
                parsed = parsed.replace(tzinfo=timezone.utc)
            return parsed.astimezone(timezone.utc)

    if isinstance(value, (int, float)):
        seconds = value / 1000 if value > _EPOCH_MILLIS_THRESHOLD else value
        try:
            return datetime.fromtimestamp(seconds, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return None

    return None


def first_present(*values: Optional[T]) -> Optional[T]:
    """Return the first value that is neither None nor an empty string."""
    for value in values:
        if value is not None and value != "":
            return value
    return None


def to_location(*candidates: Optional[Coordinates]) -> Optional[Location]:
    """Build a Location from the first candidate with both coordinates."""
    for coords in candidates:
        if coords is None:
            continue
        latitude = first_present(coords.lat, coords.latitude)
        longitude = first_present(coords.lng, coords.longitude)
        if latitude is not None and longitude is not None:
            return Location(latitude=latitude, longitude=longitude)
    return None


def fallback_event_id(prefix: str, raw_payload: Any) -> str:
    """Deterministic event id for payloads that carry none."""
    canonical = json.dumps(raw_payload, sort_keys=True, separators=(",", ":"), default=str)
    digest = hashlib.sha256(canonical.encode("utf-8")).hexdigest()[:16]
    return f"{prefix}-{digest}"


def map_event_type(
    value: Optional[str],
    exact: Dict[str, WebhookEventType],
    substrings: Sequence[Tuple[str, WebhookEventType]],
    provider: str
) -> WebhookEventType:
    """
    Map a provider event type via exact match, then ordered substrings.

    Unrecognized values map to UNKNOWN and are logged.
    """
    if not value:
        logger.warning("Webhook payload has no event type", provider=provider)
        return WebhookEventType.UNKNOWN

    normalized = value.strip().lower()
    if normalized in exact:
        return exact[normalized]
    for fragment, event_type in substrings:
        if fragment in normalized:
            return event_type

    logger.warning("Unknown webhook event type", provider=provider, event_type=value)
    return WebhookEventType.UNKNOWN


def map_delivery_status(
    value: Optional[str],
    table: Dict[str, DeliveryStatus],
    provider: str
) -> DeliveryStatus:
    """
    Map a provider status string.

    Missing text maps to UNKNOWN silently; unrecognized text maps to
    UNKNOWN with a warning.
    """
    if not value:
        return DeliveryStatus.UNKNOWN

    status = table.get(value.strip().lower())
    if status is None:
        logger.warning("Unknown delivery status", provider=provider, status=value)
        return DeliveryStatus.UNKNOWN
    return status

