"""
Package: verification
Description: Provider webhook signature verifiers.
"""

from .base import SignatureVerifier, compute_hmac_sha256, serialize_payload
from .doordash import DoorDashSignatureVerifier
from .uber import UberSignatureVerifier

__all__ = [
    "SignatureVerifier",
    "DoorDashSignatureVerifier",
    "UberSignatureVerifier",
    "compute_hmac_sha256",
    "serialize_payload",
]
