"""
Module: response.py
Description: API response models for the webhook HTTP boundary.

Key Components:
- WebhookAcceptedResponse: 202 body returned on intake
- WebhookRejectedResponse: body returned when a signature is rejected
- WebhookListResponse: filtered record listing

Dependencies: pydantic, typing
"""

from typing import List

from pydantic import BaseModel, ConfigDict, Field

from courier_webhooks.models.webhook import WebhookRecord


class WebhookAcceptedResponse(BaseModel):
    """
    Response returned once a webhook has been durably stored.

    The processing outcome is never part of this response; it is only
    visible through the record query endpoints.
    """

    model_config = ConfigDict(populate_by_name=True)

    success: bool = Field(default=True, description="Intake succeeded")
    webhook_id: str = Field(
        ...,
        serialization_alias="webhookId",
        description="Identifier of the stored webhook record"
    )


class WebhookRejectedResponse(BaseModel):
    """Response returned when intake is refused before storage."""

    success: bool = Field(default=False, description="Intake refused")
    message: str = Field(..., description="Reason the webhook was refused")


class WebhookListResponse(BaseModel):
    """Webhook records matching a query."""

    count: int = Field(..., ge=0, description="Number of records returned")
    webhooks: List[WebhookRecord] = Field(default_factory=list)
