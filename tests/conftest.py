"""
Module: conftest.py
Description: Shared pytest fixtures for courier webhook tests.

Provides test settings, signed provider requests, file-backed stores,
processors wired to a recording sink, and a moto-mocked DynamoDB table.
"""

import hashlib
import hmac
import json
import time

import boto3
import pytest
from moto import mock_aws
from pydantic_settings import SettingsConfigDict

from courier_webhooks.config.settings import Settings
from courier_webhooks.delivery.queue import WebhookQueue
from courier_webhooks.delivery.retry import RetryPolicy
from courier_webhooks.delivery.sink import DeliveryStatusSink
from courier_webhooks.processors.doordash import DoorDashWebhookProcessor
from courier_webhooks.processors.factory import WebhookProcessorFactory
from courier_webhooks.processors.uber import UberWebhookProcessor
from courier_webhooks.storage.backends import FileRecordBackend
from courier_webhooks.storage.webhook_store import WebhookStore
from courier_webhooks.verification.doordash import DoorDashSignatureVerifier
from courier_webhooks.verification.uber import UberSignatureVerifier

DOORDASH_SIGNING_SECRET = "test-doordash-signing-secret"
DOORDASH_DEVELOPER_ID = "test-developer-id"
UBER_CLIENT_SECRET = "test-uber-client-secret"
TEST_TABLE_NAME = "test-courier-webhooks"


class TestSettings(Settings):
    """Test settings that don't read the .env file."""

    model_config = SettingsConfigDict(
        env_file=None,
        case_sensitive=False,
        extra="ignore"
    )


class RecordingSink(DeliveryStatusSink):
    """Status sink collecting published events; fails the first N calls."""

    def __init__(self, failures: int = 0):
        self.failures = failures
        self.calls = 0
        self.events = []

    async def publish(self, event):
        self.calls += 1
        if self.calls <= self.failures:
            raise RuntimeError(f"downstream unavailable (call {self.calls})")
        self.events.append(event)


def compact_json(payload) -> str:
    return json.dumps(payload, separators=(",", ":"))


def _hmac(secret: str, message: str) -> str:
    return hmac.new(secret.encode("utf-8"), message.encode("utf-8"), hashlib.sha256).hexdigest()


@pytest.fixture
def test_settings(tmp_path):
    """
    Provide test configuration settings.

    Records go to a per-test directory and retries fire almost
    immediately.
    """
    return TestSettings(
        app_name="Courier Webhooks Test",
        app_version="0.3.0-test",
        log_level="DEBUG",
        stage="test",
        webhook_storage_backend="file",
        webhook_storage_path=str(tmp_path / "webhooks"),
        webhooks_table_name=TEST_TABLE_NAME,
        doordash_signing_secret=DOORDASH_SIGNING_SECRET,
        doordash_developer_id=DOORDASH_DEVELOPER_ID,
        uber_client_secret=UBER_CLIENT_SECRET,
        retry_intervals_seconds=[0.01, 0.01, 0.01],
        restart_retry_delay_seconds=0.01,
        status_sink_url=None,
        metrics_enabled=False
    )


@pytest.fixture
def sign_doordash():
    """
    Build DoorDash signature headers for a payload.

    Usage: headers = sign_doordash(payload, timestamp=None)
    """
    def _sign(payload, timestamp=None, secret=DOORDASH_SIGNING_SECRET):
        ts = str(int(timestamp if timestamp is not None else time.time()))
        signature = _hmac(secret, f"{ts}{DOORDASH_DEVELOPER_ID}{compact_json(payload)}")
        return {
            "X-DoorDash-Signature": f"t={ts},v1={signature}",
            "X-DoorDash-Timestamp": ts,
        }
    return _sign


@pytest.fixture
def sign_uber():
    """
    Build Uber signature headers for a payload.

    Usage: headers = sign_uber(payload, header="X-Uber-Signature")
    """
    def _sign(payload, header="X-Uber-Signature", secret=UBER_CLIENT_SECRET):
        return {header: _hmac(secret, compact_json(payload))}
    return _sign


@pytest.fixture
def doordash_status_payload():
    """DoorDash status update for delivery d1, delivered."""
    return {
        "event_type": "delivery_status_update",
        "data": {
            "delivery_id": "d1",
            "external_delivery_id": "e1",
            "delivery_status": "delivered"
        }
    }


@pytest.fixture
def uber_status_payload():
    """Legacy-style Uber status change for delivery u1, delivered."""
    return {
        "event_type": "delivery.status.changed",
        "meta": {
            "resource_id": "u1",
            "status": "delivered"
        }
    }


@pytest.fixture
def doordash_verifier():
    return DoorDashSignatureVerifier(
        signing_secret=DOORDASH_SIGNING_SECRET,
        developer_id=DOORDASH_DEVELOPER_ID
    )


@pytest.fixture
def uber_verifier():
    return UberSignatureVerifier(client_secret=UBER_CLIENT_SECRET)


@pytest.fixture
def file_backend(tmp_path):
    return FileRecordBackend(str(tmp_path / "webhooks"))


@pytest.fixture
def store(file_backend):
    """Provide a WebhookStore over a temporary directory."""
    return WebhookStore(file_backend, max_attempts=3)


@pytest.fixture
def recording_sink():
    return RecordingSink()


@pytest.fixture
def doordash_processor(doordash_verifier, store, recording_sink):
    return DoorDashWebhookProcessor(doordash_verifier, store, recording_sink)


@pytest.fixture
def uber_processor(uber_verifier, store, recording_sink):
    return UberWebhookProcessor(uber_verifier, store, recording_sink)


@pytest.fixture
def factory(doordash_processor, uber_processor):
    return WebhookProcessorFactory([doordash_processor, uber_processor])


@pytest.fixture
def retry_policy():
    return RetryPolicy(max_attempts=3, intervals=[0.01, 0.01, 0.01])


@pytest.fixture
def queue(store, factory, retry_policy):
    """Provide a WebhookQueue with near-immediate retries."""
    return WebhookQueue(store, factory, retry_policy, restart_delay=0.01)


@pytest.fixture
def aws_credentials(monkeypatch):
    """Fake AWS credentials so boto3 never reaches a real account."""
    monkeypatch.setenv("AWS_ACCESS_KEY_ID", "testing")
    monkeypatch.setenv("AWS_SECRET_ACCESS_KEY", "testing")
    monkeypatch.setenv("AWS_SECURITY_TOKEN", "testing")
    monkeypatch.setenv("AWS_SESSION_TOKEN", "testing")
    monkeypatch.setenv("AWS_DEFAULT_REGION", "us-east-1")


@pytest.fixture
def mock_webhooks_table(aws_credentials):
    """
    Create mock DynamoDB table for webhook records.

    Uses moto to mock AWS DynamoDB with the production key schema.
    """
    with mock_aws():
        dynamodb = boto3.resource('dynamodb', region_name='us-east-1')

        table = dynamodb.create_table(
            TableName=TEST_TABLE_NAME,
            KeySchema=[
                {
                    'AttributeName': 'webhook_id',
                    'KeyType': 'HASH'
                }
            ],
            AttributeDefinitions=[
                {
                    'AttributeName': 'webhook_id',
                    'AttributeType': 'S'
                }
            ],
            BillingMode='PAY_PER_REQUEST'
        )

        yield table
