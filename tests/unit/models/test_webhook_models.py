"""
Module: test_webhook_models.py
Description: Unit tests for the webhook data models.
"""

from datetime import datetime, timedelta, timezone

import pytest
from pydantic import ValidationError

from courier_webhooks.models.webhook import (
    DeliveryStatus,
    NormalizedEvent,
    ProcessingResult,
    WebhookEventType,
    WebhookProvider,
    WebhookRecord,
    WebhookStatus,
)

RECEIVED_AT = datetime(2024, 1, 15, 10, 30, tzinfo=timezone.utc)


class TestWebhookProvider:
    """Test cases for provider name resolution."""

    @pytest.mark.parametrize("name, expected", [
        ("doordash", WebhookProvider.DOORDASH),
        (" DoorDash ", WebhookProvider.DOORDASH),
        ("UBER", WebhookProvider.UBER),
        ("uber_direct", WebhookProvider.UBER),
        ("lyft", WebhookProvider.UNKNOWN),
        ("", WebhookProvider.UNKNOWN),
        (None, WebhookProvider.UNKNOWN),
    ])
    def test_from_name(self, name, expected):
        assert WebhookProvider.from_name(name) == expected


class TestWebhookRecord:
    """Test cases for WebhookRecord validation and behavior."""

    def test_defaults(self):
        record = WebhookRecord(
            webhook_id="whk_0123456789abcdef",
            provider=WebhookProvider.UBER,
            received_at=RECEIVED_AT,
            raw_payload={"kind": "event.delivery_status"}
        )

        assert record.status == WebhookStatus.PENDING
        assert record.processing_attempts == 0
        assert record.attempts == []
        assert record.is_terminal is False
        assert record.verification_time == RECEIVED_AT

    @pytest.mark.parametrize("webhook_id", [
        "evt_0123456789abcdef",
        "whk_0123",
        "whk_0123456789ABCDEF",
    ])
    def test_webhook_id_pattern(self, webhook_id):
        with pytest.raises(ValidationError):
            WebhookRecord(
                webhook_id=webhook_id,
                provider=WebhookProvider.UBER,
                received_at=RECEIVED_AT,
                raw_payload={}
            )

    def test_verification_time_prefers_authenticated_at(self):
        authenticated_at = RECEIVED_AT - timedelta(hours=2)
        record = WebhookRecord(
            webhook_id="whk_0123456789abcdef",
            provider=WebhookProvider.DOORDASH,
            received_at=RECEIVED_AT,
            authenticated_at=authenticated_at,
            raw_payload={},
            status=WebhookStatus.FAILED
        )

        assert record.verification_time == authenticated_at
        assert record.is_terminal is True

    def test_serialization_round_trip_keeps_result(self):
        event = NormalizedEvent(
            id="evt-1",
            provider=WebhookProvider.DOORDASH,
            event_type=WebhookEventType.STATUS_CHANGED,
            delivery_id="d1",
            timestamp=RECEIVED_AT,
            status=DeliveryStatus.DELIVERED
        )
        record = WebhookRecord(
            webhook_id="whk_0123456789abcdef",
            provider=WebhookProvider.DOORDASH,
            received_at=RECEIVED_AT,
            raw_payload={"data": {"delivery_id": "d1"}},
            processing_result=ProcessingResult(success=True, message="ok", event=event)
        )

        restored = WebhookRecord.model_validate(record.model_dump(mode="json"))

        assert restored == record
        assert restored.processing_result.event.status == DeliveryStatus.DELIVERED


def test_processing_result_from_exception():
    result = ProcessingResult.from_exception("Error processing webhook: boom", KeyError("boom"))

    assert result.success is False
    assert result.error_type == "KeyError"
    assert result.event is None


def test_status_event_classification():
    def event(event_type):
        return NormalizedEvent(
            id="evt-1",
            provider=WebhookProvider.UBER,
            event_type=event_type,
            timestamp=RECEIVED_AT
        )

    assert event(WebhookEventType.CANCELLED).is_status_event is True
    assert event(WebhookEventType.COURIER_LOCATION_UPDATED).is_status_event is False
    assert event(WebhookEventType.UNKNOWN).is_status_event is False
