"""Classification of raw messaging events into typed Event variants.

Many platform event shapes overlap: an echo can carry ``text`` or
``attachments``, a postback can embed a ``referral``. Overlaps are resolved
by CLASSIFICATION_RULES, an ordered table in which the first matching rule
wins. Keep every discriminant in that table; do not add field checks
elsewhere.

Classification never raises for event content. Shapes no rule recognizes,
and shapes that match a rule but are malformed, become UnsupportedEvent so
that new platform event kinds do not break older consumers.
"""

from typing import Any, Callable, NamedTuple

import logfire
from pydantic import ValidationError

from messenger_receive.constants import (
    PROP_ACCOUNT_LINKING,
    PROP_APP_ID,
    PROP_ATTACHMENTS,
    PROP_AUTHORIZATION_CODE,
    PROP_DELIVERY,
    PROP_IS_ECHO,
    PROP_MESSAGE,
    PROP_METADATA,
    PROP_MID,
    PROP_OPTIN,
    PROP_PAYLOAD,
    PROP_POSTBACK,
    PROP_QUICK_REPLY,
    PROP_READ,
    PROP_RECIPIENT,
    PROP_REF,
    PROP_REFERRAL,
    PROP_SENDER,
    PROP_STATUS,
    PROP_TEXT,
    PROP_TIMESTAMP,
    PROP_TITLE,
    PROP_WATERMARK,
)
from messenger_receive.logging_config import mask_pii
from messenger_receive.models.events import (
    AccountLinkingEvent,
    AccountLinkingStatus,
    AttachmentMessageEvent,
    Event,
    EventKind,
    EventVariant,
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
from messenger_receive.services.event_parsers import (
    MalformedEventError,
    parse_account_linking_status,
    parse_attachments,
    parse_id,
    parse_instant,
    parse_message_ids,
    parse_optional_str,
    parse_participant_id,
    parse_quick_reply_payload,
    parse_referral,
)

RawEvent = dict[str, Any]
BaseAttributes = dict[str, Any]


class ClassificationRule(NamedTuple):
    """One row of the classification table."""

    kind: EventKind
    matches: Callable[[RawEvent], bool]
    build: Callable[[RawEvent, BaseAttributes], EventVariant]


# =============================================================================
# Discriminants
# =============================================================================


def _message(raw_event: RawEvent) -> dict[str, Any]:
    message = raw_event.get(PROP_MESSAGE)
    return message if isinstance(message, dict) else {}


def _is_echo(raw_event: RawEvent) -> bool:
    return _message(raw_event).get(PROP_IS_ECHO) is True


def _has_attachments(raw_event: RawEvent) -> bool:
    return _message(raw_event).get(PROP_ATTACHMENTS) is not None


def _has_quick_reply_payload(raw_event: RawEvent) -> bool:
    quick_reply = _message(raw_event).get(PROP_QUICK_REPLY)
    return isinstance(quick_reply, dict) and quick_reply.get(PROP_PAYLOAD) is not None


def _has_text(raw_event: RawEvent) -> bool:
    return _message(raw_event).get(PROP_TEXT) is not None


def _has(prop: str) -> Callable[[RawEvent], bool]:
    def matches(raw_event: RawEvent) -> bool:
        return raw_event.get(prop) is not None

    return matches


# =============================================================================
# Builders
# =============================================================================


def _section(raw_event: RawEvent, prop: str) -> dict[str, Any]:
    section = raw_event.get(prop)
    if not isinstance(section, dict):
        raise MalformedEventError(f"'{prop}' must be an object")
    return section


def _build_echo(raw_event: RawEvent, base: BaseAttributes) -> MessageEchoEvent:
    message = _message(raw_event)
    return MessageEchoEvent(
        **base,
        message_id=parse_id(message.get(PROP_MID)),
        app_id=parse_id(message.get(PROP_APP_ID)),
        metadata=parse_optional_str(message.get(PROP_METADATA)),
    )


def _build_attachment_message(
    raw_event: RawEvent, base: BaseAttributes
) -> AttachmentMessageEvent:
    message = _message(raw_event)
    return AttachmentMessageEvent(
        **base,
        message_id=parse_id(message.get(PROP_MID)),
        attachments=parse_attachments(message.get(PROP_ATTACHMENTS)),
    )


def _build_quick_reply_message(
    raw_event: RawEvent, base: BaseAttributes
) -> QuickReplyMessageEvent:
    message = _message(raw_event)
    return QuickReplyMessageEvent(
        **base,
        message_id=parse_id(message.get(PROP_MID)),
        text=message.get(PROP_TEXT),
        payload=parse_quick_reply_payload(message),
    )


def _build_text_message(raw_event: RawEvent, base: BaseAttributes) -> TextMessageEvent:
    message = _message(raw_event)
    return TextMessageEvent(
        **base,
        message_id=parse_id(message.get(PROP_MID)),
        text=message.get(PROP_TEXT),
    )


def _build_opt_in(raw_event: RawEvent, base: BaseAttributes) -> OptInEvent:
    optin = _section(raw_event, PROP_OPTIN)
    return OptInEvent(**base, ref_payload=parse_optional_str(optin.get(PROP_REF)))


def _build_postback(raw_event: RawEvent, base: BaseAttributes) -> PostbackEvent:
    postback = _section(raw_event, PROP_POSTBACK)

    referral = None
    if postback.get(PROP_REFERRAL) is not None:
        try:
            referral = parse_referral(postback[PROP_REFERRAL])
        except MalformedEventError as e:
            logfire.info(
                "Ignoring malformed referral nested in postback",
                sender_id=mask_pii(base["sender_id"]),
                error=str(e),
            )

    return PostbackEvent(
        **base,
        title=postback.get(PROP_TITLE),
        payload=parse_optional_str(postback.get(PROP_PAYLOAD)),
        referral=referral,
    )


def _build_referral(raw_event: RawEvent, base: BaseAttributes) -> ReferralEvent:
    return ReferralEvent(**base, referral=parse_referral(raw_event.get(PROP_REFERRAL)))


def _build_account_linking(
    raw_event: RawEvent, base: BaseAttributes
) -> AccountLinkingEvent:
    account_linking = _section(raw_event, PROP_ACCOUNT_LINKING)
    status = parse_account_linking_status(account_linking.get(PROP_STATUS))

    authorization_code = None
    if status is AccountLinkingStatus.LINKED:
        authorization_code = parse_optional_str(
            account_linking.get(PROP_AUTHORIZATION_CODE)
        )

    return AccountLinkingEvent(
        **base, status=status, authorization_code=authorization_code
    )


def _build_message_read(raw_event: RawEvent, base: BaseAttributes) -> MessageReadEvent:
    read = _section(raw_event, PROP_READ)
    return MessageReadEvent(**base, watermark=parse_instant(read.get(PROP_WATERMARK)))


def _build_message_delivered(
    raw_event: RawEvent, base: BaseAttributes
) -> MessageDeliveredEvent:
    delivery = _section(raw_event, PROP_DELIVERY)
    return MessageDeliveredEvent(
        **base,
        watermark=parse_instant(delivery.get(PROP_WATERMARK)),
        message_ids=parse_message_ids(delivery),
    )


# =============================================================================
# Rule Table
# =============================================================================

# Order matters: echoes can carry text or attachments, and postbacks can
# embed a referral.
CLASSIFICATION_RULES: tuple[ClassificationRule, ...] = (
    ClassificationRule(EventKind.MESSAGE_ECHO, _is_echo, _build_echo),
    ClassificationRule(
        EventKind.ATTACHMENT_MESSAGE, _has_attachments, _build_attachment_message
    ),
    ClassificationRule(
        EventKind.QUICK_REPLY_MESSAGE,
        _has_quick_reply_payload,
        _build_quick_reply_message,
    ),
    ClassificationRule(EventKind.TEXT_MESSAGE, _has_text, _build_text_message),
    ClassificationRule(EventKind.OPT_IN, _has(PROP_OPTIN), _build_opt_in),
    ClassificationRule(EventKind.POSTBACK, _has(PROP_POSTBACK), _build_postback),
    ClassificationRule(EventKind.REFERRAL, _has(PROP_REFERRAL), _build_referral),
    ClassificationRule(
        EventKind.ACCOUNT_LINKING,
        _has(PROP_ACCOUNT_LINKING),
        _build_account_linking,
    ),
    ClassificationRule(EventKind.MESSAGE_READ, _has(PROP_READ), _build_message_read),
    ClassificationRule(
        EventKind.MESSAGE_DELIVERED,
        _has(PROP_DELIVERY),
        _build_message_delivered,
    ),
)


def match_rule(raw_event: RawEvent) -> ClassificationRule | None:
    """Return the first rule whose discriminant matches, if any."""
    for rule in CLASSIFICATION_RULES:
        if rule.matches(raw_event):
            return rule
    return None


def _read_base_attributes(
    raw_event: RawEvent, fallback_timestamp: int | None
) -> BaseAttributes:
    """Read sender, recipient and timestamp; unreadable values become None."""
    base: BaseAttributes = {}

    for key, prop in (("sender_id", PROP_SENDER), ("recipient_id", PROP_RECIPIENT)):
        try:
            base[key] = parse_participant_id(raw_event, prop)
        except MalformedEventError:
            base[key] = None

    # Some delivery receipts omit the timestamp; the entry time stands in
    timestamp = raw_event.get(PROP_TIMESTAMP)
    if timestamp is None:
        timestamp = fallback_timestamp
    try:
        base["timestamp"] = parse_instant(timestamp)
    except MalformedEventError:
        base["timestamp"] = None

    return base


def classify_event(
    raw_event: RawEvent,
    *,
    fallback_timestamp: int | None = None,
) -> Event:
    """Classify one raw messaging event.

    Args:
        raw_event: Decoded messaging event object
        fallback_timestamp: Epoch milliseconds used when the event has no
            timestamp of its own (the enclosing entry's ``time``)

    Returns:
        Event wrapping exactly one variant; UnsupportedEvent when no rule
        matches or the matching rule's payload is malformed

    Non-object input is only possible for direct callers: the walker rejects
    envelopes whose messaging items are not objects before classifying.
    """
    if not isinstance(raw_event, dict):
        logfire.info(
            "Messaging event is not an object",
            value_type=type(raw_event).__name__,
        )
        return Event(UnsupportedEvent())

    base = _read_base_attributes(raw_event, fallback_timestamp)
    rule = match_rule(raw_event)

    if rule is None:
        logfire.info(
            "Unsupported messaging event",
            sender_id=mask_pii(base["sender_id"]),
            keys=sorted(raw_event.keys()),
        )
        return Event(UnsupportedEvent(**base))

    missing = [key for key, value in base.items() if value is None]
    if missing:
        logfire.info(
            "Messaging event lacks base attributes, classified as unsupported",
            kind=rule.kind.value,
            missing=missing,
        )
        return Event(UnsupportedEvent(**base))

    try:
        variant = rule.build(raw_event, base)
    except (MalformedEventError, ValidationError) as e:
        logfire.info(
            "Malformed messaging event classified as unsupported",
            kind=rule.kind.value,
            sender_id=mask_pii(base["sender_id"]),
            error=str(e),
        )
        return Event(UnsupportedEvent(**base))

    return Event(variant)
