"""
Module: doordash.py
Description: Normalize DoorDash webhook payloads.

Handles the nested shape (`event_type` + `data.delivery_*`) and the flat
Drive shape (`event_name` + top-level delivery fields).
"""

from datetime import datetime, timezone
from typing import Any, Optional

from courier_webhooks.models.payloads import DoorDashDeliveryData, DoorDashPayload
from courier_webhooks.models.webhook import (
    STATUS_EVENT_TYPES,
    DeliveryStatus,
    NormalizedEvent,
    WebhookEventType,
    WebhookProvider,
)
from courier_webhooks.normalization.common import (
    fallback_event_id,
    first_present,
    map_delivery_status,
    map_event_type,
    parse_timestamp,
    to_location,
)

PROVIDER = WebhookProvider.DOORDASH.value

EVENT_TYPES = {
    "delivery_created": WebhookEventType.CREATED,
    "delivery_status_update": WebhookEventType.STATUS_CHANGED,
}

# Checked in order; the first fragment found in the event name wins
EVENT_TYPE_FRAGMENTS = (
    ("picked_up", WebhookEventType.PICKUP),
    ("enroute_to_dropoff", WebhookEventType.IN_TRANSIT),
    ("en_route_to_dropoff", WebhookEventType.IN_TRANSIT),
    ("dropped_off", WebhookEventType.COMPLETED),
    ("delivered", WebhookEventType.COMPLETED),
    ("cancel", WebhookEventType.CANCELLED),
    ("return", WebhookEventType.RETURNED),
    ("failed", WebhookEventType.FAILED),
    ("location", WebhookEventType.COURIER_LOCATION_UPDATED),
    ("created", WebhookEventType.CREATED),
    ("status", WebhookEventType.STATUS_CHANGED),
    ("dasher", WebhookEventType.STATUS_CHANGED),
)

DELIVERY_STATUSES = {
    "created": DeliveryStatus.PENDING,
    "pending": DeliveryStatus.PENDING,
    "quote": DeliveryStatus.PENDING,
    "dasher_assigned": DeliveryStatus.ASSIGNED,
    "dasher_confirmed": DeliveryStatus.ASSIGNED,
    "enroute_to_pickup": DeliveryStatus.ASSIGNED,
    "arrived_at_pickup": DeliveryStatus.ASSIGNED,
    "picked_up": DeliveryStatus.PICKUP,
    "en_route_to_dropoff": DeliveryStatus.IN_TRANSIT,
    "enroute_to_dropoff": DeliveryStatus.IN_TRANSIT,
    "arrived_at_dropoff": DeliveryStatus.IN_TRANSIT,
    "delivered": DeliveryStatus.DELIVERED,
    "dropped_off": DeliveryStatus.DELIVERED,
    "delivery_failed": DeliveryStatus.FAILED,
    "failed": DeliveryStatus.FAILED,
    "canceled": DeliveryStatus.CANCELLED,
    "cancelled": DeliveryStatus.CANCELLED,
    "returned": DeliveryStatus.RETURNED,
    "delivery_returned": DeliveryStatus.RETURNED,
}


def normalize_doordash_event(
    raw_payload: Any,
    received_at: Optional[datetime] = None
) -> NormalizedEvent:
    """
    Map a raw DoorDash webhook body into a NormalizedEvent.

    Args:
        raw_payload: Parsed DoorDash JSON body
        received_at: Receipt time, used when the payload has no event time

    Returns:
        NormalizedEvent for the payload
    """
    payload = DoorDashPayload.parse(raw_payload)
    data = payload.data or DoorDashDeliveryData()

    event_type = map_event_type(
        first_present(payload.event_type, payload.event_name),
        EVENT_TYPES,
        EVENT_TYPE_FRAGMENTS,
        PROVIDER
    )
    timestamp = (
        parse_timestamp(payload.created_at)
        or received_at
        or datetime.now(timezone.utc)
    )

    fields = {
        "id": payload.event_id or fallback_event_id("dd-event", raw_payload),
        "provider": WebhookProvider.DOORDASH,
        "event_type": event_type,
        "delivery_id": first_present(data.delivery_id, payload.delivery_id) or "",
        "external_delivery_id": first_present(
            data.external_delivery_id, payload.external_delivery_id
        ),
        "timestamp": timestamp,
        "location": to_location(data.dasher_location, payload.dasher_location),
    }

    if event_type in STATUS_EVENT_TYPES:
        raw_status = first_present(data.delivery_status, payload.delivery_status)
        fields.update(
            status=map_delivery_status(raw_status, DELIVERY_STATUSES, PROVIDER),
            status_details=first_present(
                data.status_details, payload.status_details, raw_status
            ) or "",
            estimated_delivery_time=parse_timestamp(first_present(
                data.estimated_delivery_time,
                data.dropoff_time_estimated,
                payload.dropoff_time_estimated
            )),
            tracking_url=first_present(data.tracking_url, payload.tracking_url),
        )

    return NormalizedEvent(**fields)

