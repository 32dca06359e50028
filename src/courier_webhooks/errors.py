"""
Module: errors.py
Description: Exception types raised across the webhook pipeline.
"""


class WebhookError(Exception):
    """Base class for webhook pipeline errors."""


class WebhookSignatureError(WebhookError):
    """Raised when an inbound webhook fails signature verification."""

    def __init__(self, provider: str, message: str = "Invalid webhook signature"):
        super().__init__(message)
        self.provider = provider
        self.message = message


class UnsupportedProviderError(WebhookError, ValueError):
    """Raised when no processor is registered for a provider."""

    def __init__(self, provider: str):
        super().__init__(f"Unsupported webhook provider: {provider}")
        self.provider = provider


class WebhookStorageError(WebhookError):
    """Raised when a webhook record cannot be durably written."""

    def __init__(self, webhook_id: str, cause: Exception):
        super().__init__(f"Failed to persist webhook {webhook_id}: {cause}")
        self.webhook_id = webhook_id
        self.cause = cause


class WebhookNotFoundError(WebhookError, KeyError):
    """Raised when a webhook record id is not known to the store."""

    def __init__(self, webhook_id: str):
        super().__init__(webhook_id)
        self.webhook_id = webhook_id

    def __str__(self) -> str:
        return f"Webhook not found: {self.webhook_id}"
