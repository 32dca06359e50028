"""
Module: base.py
Description: Shared pieces of provider signature verification.

Verifiers authenticate an inbound payload against a provider secret and
header scheme. verify() is pure apart from logging and never raises on
malformed input; it returns False instead.
"""

import hashlib
import hmac
import json
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Dict, Mapping, Optional, Tuple

from courier_webhooks.utils.logger import get_logger

logger = get_logger(__name__)


def serialize_payload(raw_payload: Any) -> str:
    """
    Serialize a payload the way providers sign it.

    Raw strings and bytes are used as-is; parsed JSON is re-serialized in
    compact form with keys in their original order.
    """
    if isinstance(raw_payload, bytes):
        return raw_payload.decode("utf-8")
    if isinstance(raw_payload, str):
        return raw_payload
    return json.dumps(raw_payload, separators=(",", ":"), ensure_ascii=False)


def compute_hmac_sha256(secret: str, message: str) -> str:
    """Hex HMAC-SHA256 of message under secret."""
    return hmac.new(
        secret.encode("utf-8"),
        message.encode("utf-8"),
        hashlib.sha256,
    ).hexdigest()


def get_header(headers: Optional[Mapping[str, str]], *names: str) -> Optional[str]:
    """Case-insensitive lookup of the first present, non-empty header."""
    if not headers:
        return None
    lowered = {str(k).lower(): v for k, v in headers.items()}
    for name in names:
        value = lowered.get(name.lower())
        if value:
            return str(value)
    return None


class SignatureVerifier(ABC):
    """
    Base class for provider signature verifiers.

    Attributes:
        provider: Provider name used in log context
        header_names: Lower-cased headers the verifier reads
        bypass: Development bypass; verify() always succeeds when set
    """

    provider: str = "unknown"
    header_names: Tuple[str, ...] = ()

    def __init__(self, bypass: bool = False):
        self.bypass = bypass
        if bypass:
            logger.warning(
                "Webhook signature verification bypass enabled",
                provider=self.provider
            )

    def capture_headers(self, headers: Optional[Mapping[str, str]]) -> Dict[str, str]:
        """
        Extract the headers needed to re-verify this webhook later.

        Args:
            headers: Request headers in any case

        Returns:
            Lower-cased subset of headers listed in header_names
        """
        captured = {}
        for name in self.header_names:
            value = get_header(headers, name)
            if value is not None:
                captured[name] = value
        return captured

    def verify(
        self,
        raw_payload: Any,
        headers: Optional[Mapping[str, str]],
        now: Optional[datetime] = None
    ) -> bool:
        """
        Authenticate a payload against its signature headers.

        Args:
            raw_payload: Parsed JSON body, or the raw body text
            headers: Request headers
            now: Reference time for replay windows (defaults to now)

        Returns:
            True if the signature is valid (or bypass is enabled)
        """
        if self.bypass:
            logger.debug("Skipping signature verification", provider=self.provider)
            return True

        try:
            return self._verify(raw_payload, headers, now)
        except Exception as e:
            logger.error(
                "Signature verification error",
                provider=self.provider,
                error=str(e),
                error_type=type(e).__name__
            )
            return False

    @abstractmethod
    def _verify(
        self,
        raw_payload: Any,
        headers: Optional[Mapping[str, str]],
        now: Optional[datetime]
    ) -> bool:
        """Provider-specific verification."""
