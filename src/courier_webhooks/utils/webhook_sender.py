"""
Module: webhook_sender.py
Description: Correctly signed test webhooks for a running service.

Builds DoorDash and Uber payloads in the shapes the couriers send, signs
them the way each provider does (fresh timestamp plus developer id for
DoorDash, body HMAC for Uber) and POSTs them, so the real verification
path can be exercised end to end without bypassing signatures.

Key Components:
- SignedWebhookSender: Signs and posts test webhooks
- build_doordash_payload() / build_uber_payload(): Provider-shaped bodies
- LIFECYCLE: Status sequence used by simulate_lifecycle()

Dependencies: httpx, asyncio, verification, config
Author: Courier Webhooks Team
"""

import asyncio
import time
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Union

import httpx

from courier_webhooks.config.settings import Settings
from courier_webhooks.models.webhook import WebhookProvider
from courier_webhooks.utils.logger import get_logger
from courier_webhooks.verification.base import compute_hmac_sha256, serialize_payload

logger = get_logger(__name__)

# (stage, DoorDash status, Uber status)
LIFECYCLE = (
    ("created", "created", "created"),
    ("assigned", "dasher_assigned", "courier_assigned"),
    ("pickup", "picked_up", "picked_up"),
    ("in_transit", "en_route_to_dropoff", "en_route_to_dropoff"),
    ("delivered", "delivered", "delivered"),
)


def _unique_suffix() -> str:
    return str(int(time.time() * 1000))


def build_doordash_payload(
    event_type: str = "delivery_status_update",
    delivery_id: Optional[str] = None,
    external_delivery_id: Optional[str] = None,
    status: str = "delivered"
) -> Dict[str, Any]:
    """DoorDash Drive webhook body with a nested data object."""
    suffix = _unique_suffix()
    now = datetime.now(timezone.utc).isoformat()
    return {
        "event_type": event_type,
        "event_id": f"test-event-{suffix}",
        "created_at": now,
        "data": {
            "delivery_id": delivery_id or f"dd-test-delivery-{suffix}",
            "external_delivery_id": external_delivery_id or f"test-external-{suffix}",
            "delivery_status": status,
            "status_time": now,
        },
    }


def build_uber_payload(
    event_type: str = "delivery.status.changed",
    delivery_id: Optional[str] = None,
    status: str = "delivered"
) -> Dict[str, Any]:
    """Legacy Uber webhook body with meta and resource objects."""
    now = int(time.time())
    return {
        "event_type": event_type,
        "event_id": f"test-event-{_unique_suffix()}",
        "meta": {
            "resource_id": delivery_id or f"uber-test-delivery-{_unique_suffix()}",
            "status": status,
            "timestamp": now,
        },
        "event_time": now,
        "resource": {
            "delivery_status": status,
            "courier": {"location": {"latitude": 37.7749, "longitude": -122.4194}},
            "dropoff": {"expected_delivery_time": now + 600},
        },
    }


class SignedWebhookSender:
    """
    Sends signed courier webhooks to a webhook service.

    Attributes:
        base_url: Service root, e.g. http://127.0.0.1:8000
        timeout: HTTP timeout in seconds

    Example:
        >>> sender = SignedWebhookSender.from_settings(settings, "http://127.0.0.1:8000")
        >>> response = await sender.send_doordash(status="picked_up")
        >>> response.json()["webhookId"]
    """

    def __init__(
        self,
        base_url: str,
        doordash_signing_secret: str,
        doordash_developer_id: str,
        uber_client_secret: str,
        timeout: float = 10.0
    ):
        if not base_url.startswith(('http://', 'https://')):
            raise ValueError("base_url must be a valid HTTP/HTTPS URL")

        self.base_url = base_url.rstrip("/")
        self.doordash_signing_secret = doordash_signing_secret
        self.doordash_developer_id = doordash_developer_id
        self.uber_client_secret = uber_client_secret
        self.timeout = timeout

    @classmethod
    def from_settings(cls, settings: Settings, base_url: str) -> "SignedWebhookSender":
        """Sign with the same secrets the service verifies with."""
        return cls(
            base_url,
            doordash_signing_secret=settings.doordash_signing_secret,
            doordash_developer_id=settings.doordash_developer_id,
            uber_client_secret=settings.uber_client_secret,
            timeout=float(settings.status_sink_timeout)
        )

    def sign_doordash(self, body: str, timestamp: Optional[int] = None) -> Dict[str, str]:
        ts = str(timestamp if timestamp is not None else int(time.time()))
        signature = compute_hmac_sha256(
            self.doordash_signing_secret, f"{ts}{self.doordash_developer_id}{body}"
        )
        return {
            "X-DoorDash-Signature": f"t={ts},v1={signature}",
            "X-DoorDash-Timestamp": ts,
        }

    def sign_uber(self, body: str) -> Dict[str, str]:
        return {"X-Uber-Signature": compute_hmac_sha256(self.uber_client_secret, body)}

    async def send(
        self,
        provider: Union[WebhookProvider, str],
        payload: Dict[str, Any]
    ) -> httpx.Response:
        """
        Sign and POST one payload to /webhooks/{provider}.

        The body is sent exactly as it was signed. Non-2xx responses are
        returned, not raised, so callers can inspect 401s.

        Raises:
            ValueError: If the provider is not supported
            httpx.HTTPError: On transport failures
        """
        provider = provider if isinstance(provider, WebhookProvider) else WebhookProvider.from_name(provider)
        body = serialize_payload(payload)

        if provider == WebhookProvider.DOORDASH:
            headers = self.sign_doordash(body)
        elif provider == WebhookProvider.UBER:
            headers = self.sign_uber(body)
        else:
            raise ValueError(f"Unsupported provider: {provider.value}")

        url = f"{self.base_url}/webhooks/{provider.value}"
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            response = await client.post(
                url,
                content=body.encode("utf-8"),
                headers={"Content-Type": "application/json", **headers}
            )

        logger.info(
            "Test webhook sent",
            provider=provider.value,
            event_type=payload.get("event_type"),
            status_code=response.status_code
        )
        return response

    async def send_doordash(self, **payload_fields) -> httpx.Response:
        return await self.send(WebhookProvider.DOORDASH, build_doordash_payload(**payload_fields))

    async def send_uber(self, **payload_fields) -> httpx.Response:
        return await self.send(WebhookProvider.UBER, build_uber_payload(**payload_fields))

    async def simulate_lifecycle(
        self,
        provider: Union[WebhookProvider, str],
        delivery_id: Optional[str] = None,
        pause_seconds: float = 0.5
    ) -> List[httpx.Response]:
        """
        Send one webhook per delivery stage, from creation to delivery.

        Returns:
            Responses in stage order
        """
        provider = provider if isinstance(provider, WebhookProvider) else WebhookProvider.from_name(provider)
        delivery_id = delivery_id or f"test-delivery-{_unique_suffix()}"

        responses = []
        for index, (stage, doordash_status, uber_status) in enumerate(LIFECYCLE):
            if index:
                await asyncio.sleep(pause_seconds)

            if provider == WebhookProvider.DOORDASH:
                payload = build_doordash_payload(
                    "delivery_created" if stage == "created" else "delivery_status_update",
                    delivery_id,
                    f"ext-{delivery_id}",
                    doordash_status
                )
            elif provider == WebhookProvider.UBER:
                payload = build_uber_payload(
                    "delivery.created" if stage == "created" else "delivery.status.changed",
                    delivery_id,
                    uber_status
                )
            else:
                raise ValueError(f"Unsupported provider: {provider.value}")

            responses.append(await self.send(provider, payload))

        return responses
