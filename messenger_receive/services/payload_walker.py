"""Webhook envelope validation and traversal.

The walk is push-based: each messaging event is classified and handed to
the handler before the next one is read, so handler side effects observe
document order and a failing handler stops the walk immediately. Nothing
is buffered.
"""

import json
from typing import Any, Callable, Iterator

import logfire
from pydantic import ValidationError

from messenger_receive.constants import OBJECT_TYPE_PAGE
from messenger_receive.models.events import Event
from messenger_receive.models.messenger import MessengerWebhookPayload
from messenger_receive.services.event_classifier import classify_event
from messenger_receive.services.webhook_errors import WebhookPayloadError

EventHandler = Callable[[Event], Any]


def parse_envelope(request_payload: str | bytes | None) -> MessengerWebhookPayload:
    """Decode and validate a webhook envelope.

    Raises:
        WebhookPayloadError: If the body is missing, is not a JSON object,
            is not a page subscription, or lacks the entry/messaging arrays
    """
    if request_payload is None:
        raise WebhookPayloadError("Request payload must be provided")

    # ValueError also covers oversized integer literals; deep nesting
    # exhausts the recursion limit
    try:
        document = json.loads(request_payload)
    except (ValueError, RecursionError) as e:
        raise WebhookPayloadError(f"Request payload is not valid JSON: {e}") from e

    if not isinstance(document, dict):
        raise WebhookPayloadError("Request payload must be a JSON object")

    # Checked before the envelope is validated so misrouted subscriptions
    # (e.g. instagram) fail without any messaging event being read
    object_type = document.get("object")
    if not isinstance(object_type, str) or object_type.lower() != OBJECT_TYPE_PAGE:
        raise WebhookPayloadError(
            "'object' property must be 'page'. Make sure this is a page subscription"
        )

    try:
        return MessengerWebhookPayload.model_validate(document)
    except ValidationError as e:
        raise WebhookPayloadError(f"Invalid webhook envelope: {e}") from e


def iter_messaging_events(envelope: MessengerWebhookPayload) -> Iterator[Event]:
    """Lazily classify every messaging event, entries and events in order."""
    for entry in envelope.entry:
        for raw_event in entry.messaging:
            yield classify_event(raw_event, fallback_timestamp=entry.time)


def walk_payload(request_payload: str | bytes | None, event_handler: EventHandler) -> None:
    """Validate the envelope and hand each classified event to the handler.

    Args:
        request_payload: Raw webhook body
        event_handler: Called once per messaging event, synchronously

    Raises:
        WebhookPayloadError: If the envelope is invalid (no handler call is
            made in that case)
    """
    envelope = parse_envelope(request_payload)

    dispatched = 0
    for event in iter_messaging_events(envelope):
        event_handler(event)
        dispatched += 1

    logfire.info(
        "Webhook payload processed",
        entries=len(envelope.entry),
        events=dispatched,
    )
