"""Messenger webhook authentication and event classification."""

from messenger_receive.models.attachments import (
    AttachmentType,
    EventNarrowingError,
    LocationAttachment,
    Referral,
    RichMediaAttachment,
)
from messenger_receive.models.events import (
    AccountLinkingEvent,
    AccountLinkingStatus,
    AttachmentMessageEvent,
    Event,
    EventKind,
    MessageDeliveredEvent,
    MessageEchoEvent,
    MessageReadEvent,
    OptInEvent,
    PostbackEvent,
    QuickReplyMessageEvent,
    ReferralEvent,
    TextMessageEvent,
    UnsupportedEvent,
)
from messenger_receive.services.event_classifier import classify_event
from messenger_receive.services.payload_walker import walk_payload
from messenger_receive.services.signature_verifier import (
    compute_signature,
    is_signature_valid,
)
from messenger_receive.services.webhook_errors import (
    SignatureVerificationError,
    WebhookError,
    WebhookPayloadError,
    WebhookVerificationError,
)
from messenger_receive.services.webhook_receiver import MessengerReceiver

__all__ = [
    "AttachmentType",
    "EventNarrowingError",
    "LocationAttachment",
    "Referral",
    "RichMediaAttachment",
    "AccountLinkingEvent",
    "AccountLinkingStatus",
    "AttachmentMessageEvent",
    "Event",
    "EventKind",
    "MessageDeliveredEvent",
    "MessageEchoEvent",
    "MessageReadEvent",
    "OptInEvent",
    "PostbackEvent",
    "QuickReplyMessageEvent",
    "ReferralEvent",
    "TextMessageEvent",
    "UnsupportedEvent",
    "classify_event",
    "walk_payload",
    "compute_signature",
    "is_signature_valid",
    "SignatureVerificationError",
    "WebhookError",
    "WebhookPayloadError",
    "WebhookVerificationError",
    "MessengerReceiver",
]
