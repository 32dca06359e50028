"""
Package: processors
Description: Provider webhook processors and their registry.
"""

from .base import INVALID_SIGNATURE_MESSAGE, BaseWebhookProcessor
from .doordash import DoorDashWebhookProcessor
from .factory import WebhookProcessorFactory
from .uber import UberWebhookProcessor

__all__ = [
    "INVALID_SIGNATURE_MESSAGE",
    "BaseWebhookProcessor",
    "DoorDashWebhookProcessor",
    "UberWebhookProcessor",
    "WebhookProcessorFactory",
]
