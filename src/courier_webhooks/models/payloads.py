"""
Module: payloads.py
Description: Tolerant typed views over raw provider webhook bodies.

Both couriers have shipped several payload shapes over time. These models
give every field an optional, typed home: unknown keys are kept, and a
value of the wrong shape becomes None instead of failing the parse.
Normalizers read from these views rather than from raw dictionaries.
"""

from typing import Any, Optional, Union

from pydantic import BaseModel, ConfigDict, ValidationError, field_validator

Timestamp = Union[float, str]


class TolerantModel(BaseModel):
    """Base model where every malformed field degrades to None."""

    model_config = ConfigDict(
        extra="allow",
        coerce_numbers_to_str=True,
        str_strip_whitespace=True,
    )

    @field_validator("*", mode="wrap")
    @classmethod
    def drop_malformed(cls, value: Any, handler):
        try:
            return handler(value)
        except ValidationError:
            return None

    @classmethod
    def parse(cls, raw: Any):
        """Parse a raw body, treating non-objects as empty payloads."""
        return cls.model_validate(raw if isinstance(raw, dict) else {})


class Coordinates(TolerantModel):
    """Coordinates reported as lat/lng or latitude/longitude."""

    lat: Optional[float] = None
    lng: Optional[float] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None


# DoorDash

class DoorDashDeliveryData(TolerantModel):
    """Nested `data` object of DoorDash status webhooks."""

    delivery_id: Optional[str] = None
    external_delivery_id: Optional[str] = None
    delivery_status: Optional[str] = None
    status_details: Optional[str] = None
    estimated_delivery_time: Optional[Timestamp] = None
    dropoff_time_estimated: Optional[Timestamp] = None
    tracking_url: Optional[str] = None
    dasher_location: Optional[Coordinates] = None


class DoorDashPayload(TolerantModel):
    """DoorDash webhook body (nested `data` style and flat Drive style)."""

    event_id: Optional[str] = None
    event_type: Optional[str] = None
    event_name: Optional[str] = None
    created_at: Optional[Timestamp] = None
    delivery_id: Optional[str] = None
    external_delivery_id: Optional[str] = None
    delivery_status: Optional[str] = None
    status_details: Optional[str] = None
    tracking_url: Optional[str] = None
    dropoff_time_estimated: Optional[Timestamp] = None
    dasher_location: Optional[Coordinates] = None
    data: Optional[DoorDashDeliveryData] = None


# Uber

class UberCourier(TolerantModel):
    location: Optional[Coordinates] = None


class UberDropoff(TolerantModel):
    expected_delivery_time: Optional[Timestamp] = None
    eta: Optional[Timestamp] = None


class UberMeta(TolerantModel):
    """Legacy `meta` block: resource id and status."""

    resource_id: Optional[str] = None
    status: Optional[str] = None
    timestamp: Optional[Timestamp] = None


class UberResource(TolerantModel):
    """Legacy `resource` block: courier and dropoff details."""

    id: Optional[str] = None
    delivery_status: Optional[str] = None
    tracking_url: Optional[str] = None
    courier: Optional[UberCourier] = None
    dropoff: Optional[UberDropoff] = None


class UberDeliveryData(TolerantModel):
    """Direct API `data` block: the delivery object."""

    id: Optional[str] = None
    external_id: Optional[str] = None
    status: Optional[str] = None
    tracking_url: Optional[str] = None
    dropoff_eta: Optional[Timestamp] = None
    courier: Optional[UberCourier] = None


class UberPayload(TolerantModel):
    """Uber webhook body (legacy resource/meta style and Direct data style)."""

    id: Optional[str] = None
    event_id: Optional[str] = None
    kind: Optional[str] = None
    event_type: Optional[str] = None
    delivery_id: Optional[str] = None
    external_id: Optional[str] = None
    status: Optional[str] = None
    created: Optional[Timestamp] = None
    event_time: Optional[Timestamp] = None
    tracking_url: Optional[str] = None
    location: Optional[Coordinates] = None
    meta: Optional[UberMeta] = None
    data: Optional[UberDeliveryData] = None
    resource: Optional[UberResource] = None

