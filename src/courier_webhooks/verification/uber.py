"""
Module: uber.py
Description: Uber webhook signature verification.

Uber signs the JSON body with HMAC-SHA256 keyed by the client secret and
sends the hex digest in `X-Uber-Signature` (legacy Postmates integrations
use `X-Postmates-Signature`).
"""

import hmac
from datetime import datetime
from typing import Any, Mapping, Optional

from courier_webhooks.utils.logger import get_logger
from courier_webhooks.verification.base import (
    SignatureVerifier,
    compute_hmac_sha256,
    get_header,
    serialize_payload,
)

logger = get_logger(__name__)

SIGNATURE_HEADERS = ("x-uber-signature", "x-postmates-signature")


class UberSignatureVerifier(SignatureVerifier):
    """Verifies Uber webhook signatures."""

    provider = "uber"
    header_names = SIGNATURE_HEADERS

    def __init__(self, client_secret: str, bypass: bool = False):
        super().__init__(bypass=bypass)
        self.client_secret = client_secret

    def _verify(
        self,
        raw_payload: Any,
        headers: Optional[Mapping[str, str]],
        now: Optional[datetime]
    ) -> bool:
        signature = get_header(headers, *SIGNATURE_HEADERS)
        if not signature:
            logger.warning("Uber webhook missing signature header")
            return False

        if not self.client_secret:
            logger.error("Uber client secret not configured")
            return False

        expected = compute_hmac_sha256(self.client_secret, serialize_payload(raw_payload))
        if not hmac.compare_digest(expected, signature.strip().lower()):
            logger.warning("Uber webhook signature mismatch")
            return False

        return True
