"""Typed Messenger events and the Event facade.

Every raw messaging event classifies into exactly one of the variant models
below. Consumers receive an ``Event`` wrapping that variant and either
branch on the ``is_*`` predicates before calling the matching ``as_*``
accessor, or ``match`` on ``event.variant`` directly:

    match event.variant:
        case TextMessageEvent(text=text):
            ...
        case UnsupportedEvent():
            ...

Adding a platform event kind means adding a variant here and a rule to
``messenger_receive.services.event_classifier.CLASSIFICATION_RULES``.
"""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import ClassVar, TypeVar, Union

from pydantic import BaseModel, ConfigDict, Field

from messenger_receive.models.attachments import (
    EventNarrowingError,
    LocationAttachment,
    Referral,
    RichMediaAttachment,
)


class EventKind(str, Enum):
    """Tag of each event variant."""

    TEXT_MESSAGE = "text_message"
    QUICK_REPLY_MESSAGE = "quick_reply_message"
    ATTACHMENT_MESSAGE = "attachment_message"
    MESSAGE_ECHO = "message_echo"
    OPT_IN = "opt_in"
    POSTBACK = "postback"
    REFERRAL = "referral"
    ACCOUNT_LINKING = "account_linking"
    MESSAGE_READ = "message_read"
    MESSAGE_DELIVERED = "message_delivered"
    UNSUPPORTED = "unsupported"


class AccountLinkingStatus(str, Enum):
    """Account linking outcome."""

    LINKED = "linked"
    UNLINKED = "unlinked"


class BaseEvent(BaseModel):
    """Attributes shared by all classified events."""

    model_config = ConfigDict(frozen=True)

    kind: ClassVar[EventKind]

    sender_id: str = Field(..., description="Sender id (PSID, or page id for echoes)")
    recipient_id: str = Field(..., description="Recipient id")
    timestamp: datetime = Field(..., description="Event time (UTC)")


class MessageEvent(BaseEvent):
    """Base for events about a single message."""

    message_id: str = Field(..., description="Message id (mid)")


class TextMessageEvent(MessageEvent):
    kind: ClassVar[EventKind] = EventKind.TEXT_MESSAGE

    text: str


class QuickReplyMessageEvent(MessageEvent):
    kind: ClassVar[EventKind] = EventKind.QUICK_REPLY_MESSAGE

    text: str
    payload: str


class AttachmentMessageEvent(MessageEvent):
    kind: ClassVar[EventKind] = EventKind.ATTACHMENT_MESSAGE

    attachments: tuple[RichMediaAttachment | LocationAttachment, ...]


class MessageEchoEvent(MessageEvent):
    """A message sent by the page, echoed back to the webhook."""

    kind: ClassVar[EventKind] = EventKind.MESSAGE_ECHO

    app_id: str
    metadata: str | None = None


class OptInEvent(BaseEvent):
    kind: ClassVar[EventKind] = EventKind.OPT_IN

    ref_payload: str | None = None


class PostbackEvent(BaseEvent):
    kind: ClassVar[EventKind] = EventKind.POSTBACK

    title: str
    payload: str | None = None
    referral: Referral | None = None


class ReferralEvent(BaseEvent):
    kind: ClassVar[EventKind] = EventKind.REFERRAL

    referral: Referral


class AccountLinkingEvent(BaseEvent):
    """Account linked or unlinked.

    ``authorization_code`` is only ever set when ``status`` is LINKED.
    """

    kind: ClassVar[EventKind] = EventKind.ACCOUNT_LINKING

    status: AccountLinkingStatus
    authorization_code: str | None = None


class MessageReadEvent(BaseEvent):
    kind: ClassVar[EventKind] = EventKind.MESSAGE_READ

    watermark: datetime


class MessageDeliveredEvent(BaseEvent):
    """Delivery receipt.

    ``message_ids`` is None when the receipt carried no id list, which is
    distinct from an empty tuple.
    """

    kind: ClassVar[EventKind] = EventKind.MESSAGE_DELIVERED

    watermark: datetime
    message_ids: tuple[str, ...] | None = None


class UnsupportedEvent(BaseModel):
    """Fallback for shapes no rule recognizes, or that were malformed.

    Keeps whichever base attributes could be read.
    """

    model_config = ConfigDict(frozen=True)

    kind: ClassVar[EventKind] = EventKind.UNSUPPORTED

    sender_id: str | None = None
    recipient_id: str | None = None
    timestamp: datetime | None = None


EventVariant = Union[
    TextMessageEvent,
    QuickReplyMessageEvent,
    AttachmentMessageEvent,
    MessageEchoEvent,
    OptInEvent,
    PostbackEvent,
    ReferralEvent,
    AccountLinkingEvent,
    MessageReadEvent,
    MessageDeliveredEvent,
    UnsupportedEvent,
]

_V = TypeVar("_V")


@dataclass(frozen=True)
class Event:
    """Facade over exactly one event variant."""

    variant: EventVariant

    @property
    def kind(self) -> EventKind:
        return self.variant.kind

    @property
    def sender_id(self) -> str | None:
        return self.variant.sender_id

    @property
    def recipient_id(self) -> str | None:
        return self.variant.recipient_id

    @property
    def timestamp(self) -> datetime | None:
        return self.variant.timestamp

    def _narrow(self, variant_type: type[_V]) -> _V:
        if self.kind is not variant_type.kind:
            raise EventNarrowingError(
                f"Event is a {type(self.variant).__name__}, "
                f"not a {variant_type.__name__}"
            )
        return self.variant

    # Predicates

    def is_text_message_event(self) -> bool:
        return self.kind is EventKind.TEXT_MESSAGE

    def is_quick_reply_message_event(self) -> bool:
        return self.kind is EventKind.QUICK_REPLY_MESSAGE

    def is_attachment_message_event(self) -> bool:
        return self.kind is EventKind.ATTACHMENT_MESSAGE

    def is_message_echo_event(self) -> bool:
        return self.kind is EventKind.MESSAGE_ECHO

    def is_opt_in_event(self) -> bool:
        return self.kind is EventKind.OPT_IN

    def is_postback_event(self) -> bool:
        return self.kind is EventKind.POSTBACK

    def is_referral_event(self) -> bool:
        return self.kind is EventKind.REFERRAL

    def is_account_linking_event(self) -> bool:
        return self.kind is EventKind.ACCOUNT_LINKING

    def is_message_read_event(self) -> bool:
        return self.kind is EventKind.MESSAGE_READ

    def is_message_delivered_event(self) -> bool:
        return self.kind is EventKind.MESSAGE_DELIVERED

    def is_unsupported_event(self) -> bool:
        return self.kind is EventKind.UNSUPPORTED

    # Narrowing accessors

    def as_text_message_event(self) -> TextMessageEvent:
        return self._narrow(TextMessageEvent)

    def as_quick_reply_message_event(self) -> QuickReplyMessageEvent:
        return self._narrow(QuickReplyMessageEvent)

    def as_attachment_message_event(self) -> AttachmentMessageEvent:
        return self._narrow(AttachmentMessageEvent)

    def as_message_echo_event(self) -> MessageEchoEvent:
        return self._narrow(MessageEchoEvent)

    def as_opt_in_event(self) -> OptInEvent:
        return self._narrow(OptInEvent)

    def as_postback_event(self) -> PostbackEvent:
        return self._narrow(PostbackEvent)

    def as_referral_event(self) -> ReferralEvent:
        return self._narrow(ReferralEvent)

    def as_account_linking_event(self) -> AccountLinkingEvent:
        return self._narrow(AccountLinkingEvent)

    def as_message_read_event(self) -> MessageReadEvent:
        return self._narrow(MessageReadEvent)

    def as_message_delivered_event(self) -> MessageDeliveredEvent:
        return self._narrow(MessageDeliveredEvent)

    def as_unsupported_event(self) -> UnsupportedEvent:
        return self._narrow(UnsupportedEvent)
