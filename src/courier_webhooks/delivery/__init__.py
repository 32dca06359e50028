"""
Package: delivery
Description: Retry scheduling and downstream status forwarding.
"""

from .queue import WebhookQueue
from .retry import RetryPolicy, transient_http_retry
from .sink import DeliveryStatusSink, HttpStatusSink, LoggingStatusSink, build_status_sink

__all__ = [
    "WebhookQueue",
    "RetryPolicy",
    "transient_http_retry",
    "DeliveryStatusSink",
    "HttpStatusSink",
    "LoggingStatusSink",
    "build_status_sink",
]
