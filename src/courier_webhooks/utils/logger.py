"""
Module: logger.py
Description: Structured logging configuration for the courier webhook service.

Configures structlog for JSON output so webhook intake, processing and
retry scheduling can be followed per webhook id in any log aggregator.

Key Components:
- JSON output with timestamp and level processors
- configure_logging() to apply the configured minimum level
- get_logger() helper function

Dependencies: structlog, logging, datetime
Author: Courier Webhooks Team
"""

import logging
from datetime import datetime, timezone

import structlog


def _add_timestamp(logger, method_name, event_dict):
    """
    Add ISO 8601 timestamp to log entries.

    Args:
        logger: Logger instance
        method_name: Log method name (info, error, etc.)
        event_dict: Current log event dictionary

    Returns:
        Updated event dictionary with timestamp
    """
    event_dict["timestamp"] = datetime.now(timezone.utc).isoformat()
    return event_dict


def _add_log_level(logger, method_name, event_dict):
    """Add the upper-cased log level to the event dictionary."""
    event_dict["level"] = method_name.upper()
    return event_dict


_PROCESSORS = [
    _add_timestamp,
    _add_log_level,
    structlog.processors.format_exc_info,
    structlog.processors.JSONRenderer(),
]


def configure_logging(log_level: str = "INFO") -> None:
    """
    Configure structlog with JSON rendering and a minimum level.

    Args:
        log_level: Standard logging level name (DEBUG, INFO, ...)
    """
    level = logging.getLevelName(log_level.upper())
    if not isinstance(level, int):
        level = logging.INFO

    structlog.configure(
        processors=_PROCESSORS,
        logger_factory=structlog.WriteLoggerFactory(),
        wrapper_class=structlog.make_filtering_bound_logger(level),
        cache_logger_on_first_use=False,
    )


configure_logging()


def get_logger(name: str) -> structlog.BoundLogger:
    """
    Get a configured structlog logger instance.

    Args:
        name: Logger name (typically __name__)

    Returns:
        Configured structlog logger instance

    Example:
        >>> logger = get_logger(__name__)
        >>> logger.info("Webhook stored", webhook_id="whk_0f3a9c1d2b4e5f60", provider="uber")
        {"event": "Webhook stored", "webhook_id": "whk_0f3a9c1d2b4e5f60", "provider": "uber", "timestamp": "...", "level": "INFO"}
    """
    return structlog.get_logger(name)
