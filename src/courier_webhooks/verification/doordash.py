"""
Module: doordash.py
Description: DoorDash webhook signature verification.

DoorDash sends `X-DoorDash-Signature: t=<timestamp>,v1=<hex>` together
with a timestamp header. The v1 value is an HMAC-SHA256, keyed by the
signing secret, over `timestamp + developer_id + body`. Timestamps older
than the tolerance window are rejected to block replays.
"""

import hmac
from datetime import datetime, timezone
from typing import Any, Mapping, Optional

from courier_webhooks.utils.logger import get_logger
from courier_webhooks.verification.base import (
    SignatureVerifier,
    compute_hmac_sha256,
    get_header,
    serialize_payload,
)

logger = get_logger(__name__)

SIGNATURE_HEADER = "x-doordash-signature"
TIMESTAMP_HEADERS = ("x-doordash-timestamp", "x-doordash-signature-timestamp")
DEFAULT_TOLERANCE_SECONDS = 300


def parse_signature_header(signature: str) -> Optional[str]:
    """Extract the v1 value from a `t=...,v1=...` signature header."""
    for part in signature.split(","):
        key, _, value = part.strip().partition("=")
        if key == "v1" and value:
            return value.strip()
    return None


class DoorDashSignatureVerifier(SignatureVerifier):
    """Verifies DoorDash webhook signatures."""

    provider = "doordash"
    header_names = (SIGNATURE_HEADER,) + TIMESTAMP_HEADERS

    def __init__(
        self,
        signing_secret: str,
        developer_id: str,
        tolerance_seconds: int = DEFAULT_TOLERANCE_SECONDS,
        bypass: bool = False
    ):
        super().__init__(bypass=bypass)
        self.signing_secret = signing_secret
        self.developer_id = developer_id
        self.tolerance_seconds = tolerance_seconds

    def _verify(
        self,
        raw_payload: Any,
        headers: Optional[Mapping[str, str]],
        now: Optional[datetime]
    ) -> bool:
        signature = get_header(headers, SIGNATURE_HEADER)
        timestamp = get_header(headers, *TIMESTAMP_HEADERS)

        if not signature or not timestamp:
            logger.warning(
                "DoorDash webhook missing required headers",
                signature_present=bool(signature),
                timestamp_present=bool(timestamp)
            )
            return False

        if not self.signing_secret or not self.developer_id:
            logger.error("DoorDash signing secret or developer id not configured")
            return False

        try:
            request_time = int(timestamp.strip())
        except ValueError:
            logger.warning("DoorDash webhook timestamp is not an integer", timestamp=timestamp)
            return False

        reference = (now or datetime.now(timezone.utc)).timestamp()
        if reference - request_time > self.tolerance_seconds:
            logger.warning(
                "DoorDash webhook timestamp is too old",
                timestamp=request_time,
                age_seconds=int(reference - request_time),
                tolerance_seconds=self.tolerance_seconds
            )
            return False

        provided = parse_signature_header(signature)
        if not provided:
            logger.warning("DoorDash webhook signature has no v1 value")
            return False

        message = f"{timestamp.strip()}{self.developer_id}{serialize_payload(raw_payload)}"
        expected = compute_hmac_sha256(self.signing_secret, message)

        if not hmac.compare_digest(expected, provided.lower()):
            logger.warning("DoorDash webhook signature mismatch")
            return False

        return True
