"""
Module: uber.py
Description: Normalize Uber webhook payloads.

Uber has sent two payload families: the legacy style, with the delivery
id and status under `meta` and courier/dropoff details under `resource`,
and the Direct style, with the delivery object under `data`. Each field
is looked up across both in a fixed priority order and the first non-empty
value wins.
"""

from datetime import datetime, timezone
from typing import Any, Optional

from courier_webhooks.models.payloads import (
    UberCourier,
    UberDeliveryData,
    UberDropoff,
    UberMeta,
    UberPayload,
    UberResource,
)
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

PROVIDER = WebhookProvider.UBER.value

EVENT_TYPES = {
    "event.delivery_status": WebhookEventType.STATUS_CHANGED,
    "event.courier_update": WebhookEventType.COURIER_LOCATION_UPDATED,
}

EVENT_TYPE_FRAGMENTS = (
    ("delivery.created", WebhookEventType.CREATED),
    ("status.changed", WebhookEventType.STATUS_CHANGED),
    ("pickup.completed", WebhookEventType.PICKUP),
    ("delivery.completed", WebhookEventType.COMPLETED),
    ("cancelled", WebhookEventType.CANCELLED),
    ("canceled", WebhookEventType.CANCELLED),
    ("returned", WebhookEventType.RETURNED),
    ("failed", WebhookEventType.FAILED),
    ("courier", WebhookEventType.COURIER_LOCATION_UPDATED),
)

DELIVERY_STATUSES = {
    # Direct API statuses
    "pending": DeliveryStatus.PENDING,
    "pickup": DeliveryStatus.ASSIGNED,
    "pickup_complete": DeliveryStatus.PICKUP,
    "dropoff": DeliveryStatus.IN_TRANSIT,
    "delivered": DeliveryStatus.DELIVERED,
    "canceled": DeliveryStatus.CANCELLED,
    "cancelled": DeliveryStatus.CANCELLED,
    "returned": DeliveryStatus.RETURNED,
    # Legacy API statuses
    "created": DeliveryStatus.PENDING,
    "courier_assigned": DeliveryStatus.ASSIGNED,
    "accepted": DeliveryStatus.ASSIGNED,
    "picked_up": DeliveryStatus.PICKUP,
    "in_transit": DeliveryStatus.IN_TRANSIT,
    "en_route_to_dropoff": DeliveryStatus.IN_TRANSIT,
    "completed": DeliveryStatus.DELIVERED,
    "failed": DeliveryStatus.FAILED,
    "delivery_failed": DeliveryStatus.FAILED,
}


def normalize_uber_event(
    raw_payload: Any,
    received_at: Optional[datetime] = None
) -> NormalizedEvent:
    """
    Map a raw Uber webhook body into a NormalizedEvent.

    Args:
        raw_payload: Parsed Uber JSON body (legacy or Direct style)
        received_at: Receipt time, used when the payload has no event time

    Returns:
        NormalizedEvent for the payload
    """
    payload = UberPayload.parse(raw_payload)
    meta = payload.meta or UberMeta()
    data = payload.data or UberDeliveryData()
    resource = payload.resource or UberResource()
    data_courier = data.courier or UberCourier()
    resource_courier = resource.courier or UberCourier()
    dropoff = resource.dropoff or UberDropoff()

    event_type = map_event_type(
        first_present(payload.kind, payload.event_type),
        EVENT_TYPES,
        EVENT_TYPE_FRAGMENTS,
        PROVIDER
    )
    timestamp = (
        parse_timestamp(payload.created)
        or parse_timestamp(payload.event_time)
        or parse_timestamp(meta.timestamp)
        or received_at
        or datetime.now(timezone.utc)
    )

    fields = {
        "id": first_present(payload.id, payload.event_id)
        or fallback_event_id("uber-event", raw_payload),
        "provider": WebhookProvider.UBER,
        "event_type": event_type,
        "delivery_id": first_present(
            payload.delivery_id, meta.resource_id, data.id, resource.id
        ) or "",
        "external_delivery_id": first_present(data.external_id, payload.external_id),
        "timestamp": timestamp,
        "location": to_location(
            payload.location, data_courier.location, resource_courier.location
        ),
    }

    if event_type in STATUS_EVENT_TYPES:
        raw_status = first_present(
            payload.status, meta.status, data.status, resource.delivery_status
        )
        fields.update(
            status=map_delivery_status(raw_status, DELIVERY_STATUSES, PROVIDER),
            status_details=raw_status or "",
            estimated_delivery_time=parse_timestamp(first_present(
                data.dropoff_eta, dropoff.expected_delivery_time, dropoff.eta
            )),
            tracking_url=first_present(
                data.tracking_url, payload.tracking_url, resource.tracking_url
            ),
        )

    return NormalizedEvent(**fields)
