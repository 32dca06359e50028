"""
Module: webhooks.py
Description: HTTP boundary for courier webhooks.

Implements the webhook endpoints of the service:
- POST /webhooks/{provider}: Authenticate, store and queue a webhook
- GET /webhooks, GET /webhooks/{webhook_id}: Record queries
- POST /webhooks/{webhook_id}/replay: Manual replay of a stored webhook
- DELETE /webhooks/{webhook_id}: Remove a record and its pending retry

Intake answers 202 as soon as the record is durable; the processing
outcome is only visible through the query endpoints.

Key Components:
- receive_webhook(): Provider intake endpoint
- get_queue() / get_store(): Dependencies reading the app's components
- Provider info routes for browser access

Dependencies: FastAPI, json, typing
Author: Courier Webhooks Team
"""

import json
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi import status as status_codes
from fastapi.responses import JSONResponse, Response

from courier_webhooks.delivery.queue import WebhookQueue
from courier_webhooks.errors import (
    UnsupportedProviderError,
    WebhookNotFoundError,
    WebhookSignatureError,
    WebhookStorageError,
)
from courier_webhooks.models.response import (
    WebhookAcceptedResponse,
    WebhookListResponse,
    WebhookRejectedResponse,
)
from courier_webhooks.models.webhook import WebhookProvider, WebhookRecord, WebhookStatus
from courier_webhooks.storage.webhook_store import WebhookStore
from courier_webhooks.utils.logger import get_logger

router = APIRouter(prefix="/webhooks", tags=["webhooks"])
logger = get_logger(__name__)


def get_queue(request: Request) -> WebhookQueue:
    """
    Dependency returning the application's webhook queue.

    The queue is built once by the application lifespan and kept on
    app.state for the life of the process.
    """
    return request.app.state.queue


def get_store(request: Request) -> WebhookStore:
    """Dependency returning the application's webhook store."""
    return request.app.state.store


def _accepted(webhook_id: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_codes.HTTP_202_ACCEPTED,
        content=WebhookAcceptedResponse(webhook_id=webhook_id).model_dump(by_alias=True)
    )


def _provider_info(provider: WebhookProvider) -> dict:
    return {
        "message": f"{provider.value} webhook endpoint. Send webhooks with POST.",
        "provider": provider.value,
        "method": "POST"
    }


@router.get("/doordash")
async def doordash_info() -> dict:
    """Informational response for browser access to the DoorDash endpoint."""
    return _provider_info(WebhookProvider.DOORDASH)


@router.get("/uber")
async def uber_info() -> dict:
    """Informational response for browser access to the Uber endpoint."""
    return _provider_info(WebhookProvider.UBER)


@router.post("/{provider}", status_code=status_codes.HTTP_202_ACCEPTED)
async def receive_webhook(
    provider: str,
    request: Request,
    queue: WebhookQueue = Depends(get_queue)
):
    """
    Receive a courier webhook.

    Verifies the provider signature, stores the webhook durably and
    starts processing in the background.

    Args:
        provider: Provider name from the path (doordash | uber)
        request: Incoming request (raw JSON body and signature headers)
        queue: Webhook queue (injected via dependency)

    Returns:
        202 with {"success": true, "webhookId": ...}

    Raises:
        HTTPException: 400 if the body is not a JSON object
        HTTPException: 404 if the provider is not supported
        HTTPException: 500 if the webhook could not be stored

    Example:
        POST /webhooks/doordash
        x-doordash-signature: t=1700000000,v1=5f2b...
        x-doordash-timestamp: 1700000000
        {"event_type": "delivery_status_update", "data": {"delivery_id": "d1"}}

        Response (202):
        {"success": true, "webhookId": "whk_3f9a0c1d2e4b5a69"}
    """
    body = await request.body()
    try:
        raw_payload = json.loads(body)
    except ValueError:
        logger.warning("Webhook body is not valid JSON", provider=provider)
        raise HTTPException(
            status_code=status_codes.HTTP_400_BAD_REQUEST,
            detail="Webhook body must be valid JSON"
        )

    if not isinstance(raw_payload, dict):
        raise HTTPException(
            status_code=status_codes.HTTP_400_BAD_REQUEST,
            detail="Webhook body must be a JSON object"
        )

    try:
        webhook_id = await queue.add_to_queue(provider, raw_payload, dict(request.headers))
    except UnsupportedProviderError as e:
        raise HTTPException(
            status_code=status_codes.HTTP_404_NOT_FOUND,
            detail=str(e)
        )
    except WebhookSignatureError as e:
        return JSONResponse(
            status_code=status_codes.HTTP_401_UNAUTHORIZED,
            content=WebhookRejectedResponse(message=e.message).model_dump()
        )
    except WebhookStorageError as e:
        logger.error("Webhook intake failed", provider=provider, error=str(e))
        raise HTTPException(
            status_code=status_codes.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to store webhook"
        )

    return _accepted(webhook_id)


@router.get("", response_model=WebhookListResponse)
async def list_webhooks(
    provider: Optional[str] = None,
    status: Optional[str] = None,
    store: WebhookStore = Depends(get_store)
) -> WebhookListResponse:
    """
    List webhook records, oldest first.

    Args:
        provider: Only records from this provider
        status: Only records in this status (pending | processed | failed)

    Example:
        GET /webhooks?provider=uber&status=failed

    Empty or blank filter values are treated as absent.
    """
    provider = (provider or "").strip() or None
    status = (status or "").strip() or None

    if status is not None:
        try:
            status = WebhookStatus(status.lower())
        except ValueError:
            raise HTTPException(
                status_code=status_codes.HTTP_400_BAD_REQUEST,
                detail=f"Invalid status filter: {status}"
            )

    records = store.get_webhooks(provider=provider, status=status)

    logger.info(
        "Listed webhooks",
        provider=provider,
        status=status.value if status else None,
        count=len(records)
    )
    return WebhookListResponse(count=len(records), webhooks=records)


@router.get("/{webhook_id}", response_model=WebhookRecord)
async def get_webhook(
    webhook_id: str,
    store: WebhookStore = Depends(get_store)
) -> WebhookRecord:
    """
    Retrieve a webhook record with its payload and attempt history.

    Raises:
        HTTPException: 404 if the record does not exist
    """
    record = store.get_webhook(webhook_id)
    if record is None:
        raise HTTPException(
            status_code=status_codes.HTTP_404_NOT_FOUND,
            detail=f"Webhook {webhook_id} not found"
        )
    return record


@router.post("/{webhook_id}/replay", status_code=status_codes.HTTP_202_ACCEPTED)
async def replay_webhook(
    webhook_id: str,
    queue: WebhookQueue = Depends(get_queue)
):
    """
    Replay a stored webhook as a new record.

    Used to recover records that failed permanently; the new record
    references its source through replay_of.

    Raises:
        HTTPException: 404 if the record does not exist
        HTTPException: 500 if the replay could not be stored
    """
    try:
        record = await queue.replay_webhook(webhook_id)
    except WebhookNotFoundError as e:
        raise HTTPException(
            status_code=status_codes.HTTP_404_NOT_FOUND,
            detail=str(e)
        )
    except WebhookStorageError as e:
        logger.error("Webhook replay failed", webhook_id=webhook_id, error=str(e))
        raise HTTPException(
            status_code=status_codes.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to store webhook replay"
        )

    return _accepted(record.webhook_id)


@router.delete("/{webhook_id}", status_code=status_codes.HTTP_204_NO_CONTENT)
async def delete_webhook(
    webhook_id: str,
    queue: WebhookQueue = Depends(get_queue)
) -> Response:
    """
    Delete a webhook record and cancel any pending retry.

    Raises:
        HTTPException: 404 if the record does not exist
        HTTPException: 500 if the backend delete fails
    """
    try:
        deleted = await queue.delete_webhook(webhook_id)
    except WebhookStorageError:
        raise HTTPException(
            status_code=status_codes.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to delete webhook"
        )

    if not deleted:
        raise HTTPException(
            status_code=status_codes.HTTP_404_NOT_FOUND,
            detail=f"Webhook {webhook_id} not found"
        )

    return Response(status_code=status_codes.HTTP_204_NO_CONTENT)
