"""
Package: utils
Description: Shared utilities for the courier webhook service.

- logger: structlog configuration and get_logger()
- metrics: CloudWatch custom metrics publishing
- webhook_sender: Signed test webhooks for a running service
"""

from .logger import configure_logging, get_logger

__all__ = ["configure_logging", "get_logger"]
