"""Facebook webhook endpoints.

This module adapts the receive pipeline to HTTP:

- GET answers the subscription verification handshake
- POST authenticates a delivery, classifies its messaging events and hands
  each one to the event handler

The raw body is passed through untouched because the signature is computed
over the exact bytes the platform sent. Pipeline errors map to status codes:
bad signature 403, malformed envelope 400. Handler errors propagate.
"""

import logging

import logfire
from fastapi import APIRouter, Depends, Request, Response
from fastapi.responses import JSONResponse, PlainTextResponse

from messenger_receive.config import get_settings
from messenger_receive.constants import SIGNATURE_256_HEADER, SIGNATURE_HEADER
from messenger_receive.logging_config import mask_pii
from messenger_receive.models.events import Event
from messenger_receive.services.payload_walker import EventHandler
from messenger_receive.services.webhook_errors import (
    SignatureVerificationError,
    WebhookPayloadError,
    WebhookVerificationError,
)
from messenger_receive.services.webhook_receiver import MessengerReceiver

logger = logging.getLogger(__name__)
router = APIRouter()


def get_receiver() -> MessengerReceiver:
    """Build the receiver from application settings."""
    settings = get_settings()
    return MessengerReceiver(
        app_secret=settings.facebook_app_secret,
        verify_token=settings.facebook_verify_token,
    )


def log_event(event: Event) -> None:
    """Default event handler: record each classified event."""
    logfire.info(
        "Messenger event received",
        kind=event.kind.value,
        sender_id=mask_pii(event.sender_id),
        timestamp=event.timestamp.isoformat() if event.timestamp else None,
    )


def get_event_handler() -> EventHandler:
    """Event handler dependency.

    Applications override this with ``app.dependency_overrides`` to plug in
    their own handling.
    """
    return log_event


def _signature_from(request: Request) -> str | None:
    # An empty header is still a signature and must fail verification
    signature = request.headers.get(SIGNATURE_256_HEADER)
    if signature is None:
        signature = request.headers.get(SIGNATURE_HEADER)
    return signature


@router.get("")
async def verify_webhook(
    request: Request,
    receiver: MessengerReceiver = Depends(get_receiver),
):
    """Facebook webhook verification endpoint."""
    mode = request.query_params.get("hub.mode")
    token = request.query_params.get("hub.verify_token")
    challenge = request.query_params.get("hub.challenge")

    try:
        receiver.verify_webhook(mode, token)
    except WebhookVerificationError as e:
        logger.warning("Webhook verification failed: %s", e)
        return Response(status_code=403)

    logger.info("Webhook verified successfully")
    return PlainTextResponse(challenge or "")


@router.post("")
async def handle_webhook(
    request: Request,
    receiver: MessengerReceiver = Depends(get_receiver),
    event_handler: EventHandler = Depends(get_event_handler),
):
    """Handle incoming Facebook Messenger webhook events."""
    body = await request.body()
    signature = _signature_from(request)

    if signature is None and get_settings().webhook_require_signature:
        logger.warning("Rejected unsigned webhook delivery")
        return JSONResponse(
            status_code=401,
            content={"status": "error", "detail": "Missing signature header"},
        )

    try:
        receiver.on_receive_events(body, signature, event_handler)
    except SignatureVerificationError as e:
        logger.warning("Webhook signature rejected: %s", e)
        return JSONResponse(
            status_code=403,
            content={"status": "error", "detail": "Invalid signature"},
        )
    except WebhookPayloadError as e:
        logger.warning("Invalid webhook payload: %s", e)
        return JSONResponse(
            status_code=400,
            content={"status": "error", "detail": str(e)},
        )

    return {"status": "ok"}
