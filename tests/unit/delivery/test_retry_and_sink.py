"""
Module: test_retry_and_sink.py
Description: Unit tests for the retry policy and status sinks.

HTTP forwarding is tested with pytest-httpx; transient failures are
retried in-attempt and persistent ones propagate.
"""

import json
from datetime import datetime, timezone

import httpx
import pytest

from courier_webhooks.delivery.retry import RetryPolicy
from courier_webhooks.delivery.sink import (
    HttpStatusSink,
    LoggingStatusSink,
    build_status_sink,
)
from courier_webhooks.models.webhook import (
    DeliveryStatus,
    NormalizedEvent,
    WebhookEventType,
    WebhookProvider,
)

SINK_URL = "https://status.example.test/deliveries"


@pytest.fixture
def delivered_event():
    return NormalizedEvent(
        id="evt-1",
        provider=WebhookProvider.DOORDASH,
        event_type=WebhookEventType.STATUS_CHANGED,
        delivery_id="d1",
        timestamp=datetime(2024, 1, 15, 10, 30, tzinfo=timezone.utc),
        status=DeliveryStatus.DELIVERED,
        tracking_url="https://track.example/d1"
    )


class TestRetryPolicy:
    """Test cases for RetryPolicy."""

    def test_defaults(self):
        policy = RetryPolicy()

        assert policy.max_attempts == 3
        assert policy.intervals == (60.0, 300.0, 1800.0)

    @pytest.mark.parametrize("attempts_made, expected", [
        (0, 60),
        (1, 60),
        (2, 300),
        (3, 1800),
        (7, 1800),
    ])
    def test_delay_clamps_to_last_interval(self, attempts_made, expected):
        assert RetryPolicy(3, [60, 300, 1800]).delay_for_attempt(attempts_made) == expected

    def test_should_retry_bounded_by_max_attempts(self):
        policy = RetryPolicy(max_attempts=3)

        assert policy.should_retry(1) is True
        assert policy.should_retry(2) is True
        assert policy.should_retry(3) is False

    def test_invalid_configuration(self):
        with pytest.raises(ValueError, match="max_attempts"):
            RetryPolicy(max_attempts=0)
        with pytest.raises(ValueError, match="intervals"):
            RetryPolicy(intervals=[])


class TestHttpStatusSink:
    """Test cases for HttpStatusSink."""

    def test_invalid_url(self):
        with pytest.raises(ValueError, match="valid HTTP/HTTPS URL"):
            HttpStatusSink("ftp://status.example.test")
        with pytest.raises(ValueError, match="non-empty"):
            HttpStatusSink("")

    @pytest.mark.asyncio
    async def test_publish_posts_event_json(self, httpx_mock, delivered_event):
        httpx_mock.add_response(url=SINK_URL, method="POST", status_code=200)

        await HttpStatusSink(SINK_URL).publish(delivered_event)

        request = httpx_mock.get_request()
        body = json.loads(request.content)
        assert body["delivery_id"] == "d1"
        assert body["status"] == "delivered"
        assert body["event_type"] == "delivery.status_changed"

    @pytest.mark.asyncio
    async def test_transient_error_retried(self, httpx_mock, delivered_event):
        httpx_mock.add_response(url=SINK_URL, method="POST", status_code=503)
        httpx_mock.add_response(url=SINK_URL, method="POST", status_code=200)

        await HttpStatusSink(SINK_URL, max_attempts=2).publish(delivered_event)

        assert len(httpx_mock.get_requests()) == 2

    @pytest.mark.asyncio
    async def test_persistent_error_raises(self, httpx_mock, delivered_event):
        httpx_mock.add_response(url=SINK_URL, method="POST", status_code=500)
        httpx_mock.add_response(url=SINK_URL, method="POST", status_code=500)

        with pytest.raises(httpx.HTTPStatusError):
            await HttpStatusSink(SINK_URL, max_attempts=2).publish(delivered_event)

    @pytest.mark.asyncio
    async def test_network_error_raises(self, httpx_mock, delivered_event):
        httpx_mock.add_exception(httpx.ConnectError("refused"))

        with pytest.raises(httpx.ConnectError):
            await HttpStatusSink(SINK_URL, max_attempts=1).publish(delivered_event)


@pytest.mark.asyncio
async def test_logging_sink_accepts_events(delivered_event):
    await LoggingStatusSink().publish(delivered_event)


def test_build_status_sink():
    assert isinstance(build_status_sink(None), LoggingStatusSink)

    sink = build_status_sink(SINK_URL, timeout_seconds=5)
    assert isinstance(sink, HttpStatusSink)
    assert sink.url == SINK_URL
