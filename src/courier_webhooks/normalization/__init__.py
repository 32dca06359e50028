"""
Package: normalization
Description: Map raw provider payloads into NormalizedEvent.

Normalizers are pure: the same payload and receipt time always produce
the same NormalizedEvent.
"""

from .doordash import normalize_doordash_event
from .uber import normalize_uber_event

__all__ = ["normalize_doordash_event", "normalize_uber_event"]
