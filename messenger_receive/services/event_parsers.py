"""Decoders for the nested structures of a raw messaging event.

Each parser takes a fragment of already-decoded JSON and returns a typed
value, raising MalformedEventError when the fragment does not have the
expected shape. The classifier turns that error into an UnsupportedEvent,
so nothing here needs to guard against every possible input.

Attachments are the exception: an attachment that cannot be understood is
still returned (as a RichMediaAttachment without a type) because callers
correlate attachments with the source array by index.
"""

from datetime import datetime, timedelta, timezone
from typing import Any

from messenger_receive.constants import (
    PROP_AD_ID,
    PROP_COORDINATES,
    PROP_ID,
    PROP_LAT,
    PROP_LONG,
    PROP_MIDS,
    PROP_PAYLOAD,
    PROP_QUICK_REPLY,
    PROP_REF,
    PROP_SOURCE,
    PROP_TYPE,
    PROP_URL,
)
from messenger_receive.models.attachments import (
    AttachmentType,
    LocationAttachment,
    Referral,
    RichMediaAttachment,
)
from messenger_receive.models.events import AccountLinkingStatus

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)

_ATTACHMENT_TYPES = {member.value: member for member in AttachmentType}


class MalformedEventError(ValueError):
    """Raised when a messaging event fragment has an unexpected shape."""

    pass


def _is_number(value: Any) -> bool:
    # bool is an int subclass but never a valid number on the wire
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def parse_instant(value: Any) -> datetime:
    """Convert platform epoch milliseconds to an aware UTC datetime."""
    if not isinstance(value, int) or isinstance(value, bool):
        raise MalformedEventError(f"Expected epoch milliseconds, got {value!r}")
    try:
        return _EPOCH + timedelta(milliseconds=value)
    except OverflowError:
        raise MalformedEventError(f"Epoch milliseconds out of range: {value}")


def parse_id(value: Any) -> str:
    """Normalize a platform id, which may arrive as a string or a number."""
    if isinstance(value, str):
        return value
    if isinstance(value, int) and not isinstance(value, bool):
        return str(value)
    raise MalformedEventError(f"Expected an id, got {value!r}")


def parse_optional_str(value: Any) -> str | None:
    if value is None:
        return None
    if not isinstance(value, str):
        raise MalformedEventError(f"Expected a string, got {value!r}")
    return value


def parse_participant_id(raw_event: dict[str, Any], prop: str) -> str:
    """Read ``<prop>.id`` (sender or recipient) from a messaging event."""
    participant = raw_event.get(prop)
    if not isinstance(participant, dict):
        raise MalformedEventError(f"Missing '{prop}' object")
    return parse_id(participant.get(PROP_ID))


def parse_referral(data: Any) -> Referral:
    """Decode a referral object (standalone or nested in a postback)."""
    if not isinstance(data, dict):
        raise MalformedEventError("Referral must be an object")

    source = data.get(PROP_SOURCE)
    referral_type = data.get(PROP_TYPE)
    if not isinstance(source, str) or not isinstance(referral_type, str):
        raise MalformedEventError("Referral requires 'source' and 'type'")

    ad_id = data.get(PROP_AD_ID)
    return Referral(
        source=source,
        type=referral_type,
        ref=parse_optional_str(data.get(PROP_REF)),
        ad_id=parse_id(ad_id) if ad_id is not None else None,
    )


def _parse_location(payload: dict[str, Any]) -> LocationAttachment | None:
    coordinates = payload.get(PROP_COORDINATES)
    if not isinstance(coordinates, dict):
        return None

    latitude = coordinates.get(PROP_LAT)
    longitude = coordinates.get(PROP_LONG)
    if not (_is_number(latitude) and _is_number(longitude)):
        return None

    try:
        return LocationAttachment(latitude=float(latitude), longitude=float(longitude))
    except OverflowError:
        return None


def parse_attachment(data: Any) -> RichMediaAttachment | LocationAttachment:
    """Decode one attachment.

    Objects whose payload carries coordinates are locations. Everything
    else is rich media; an unrecognized media type yields ``type=None``.
    """
    if not isinstance(data, dict):
        return RichMediaAttachment()

    payload = data.get(PROP_PAYLOAD)
    if not isinstance(payload, dict):
        payload = {}

    location = _parse_location(payload)
    if location is not None:
        return location

    url = payload.get(PROP_URL)
    if not isinstance(url, str):
        # Fallback attachments (shared links) carry the url at the top level
        url = data.get(PROP_URL)

    media_type = data.get(PROP_TYPE)
    return RichMediaAttachment(
        type=_ATTACHMENT_TYPES.get(media_type) if isinstance(media_type, str) else None,
        url=url if isinstance(url, str) else None,
    )


def parse_attachments(data: Any) -> tuple[RichMediaAttachment | LocationAttachment, ...]:
    """Decode the attachment array, preserving order and length."""
    if not isinstance(data, list):
        raise MalformedEventError("'attachments' must be an array")
    return tuple(parse_attachment(item) for item in data)


def parse_quick_reply_payload(message: dict[str, Any]) -> str | None:
    """Return ``message.quick_reply.payload``, or None when absent."""
    quick_reply = message.get(PROP_QUICK_REPLY)
    if not isinstance(quick_reply, dict):
        return None
    return parse_optional_str(quick_reply.get(PROP_PAYLOAD))


def parse_account_linking_status(value: Any) -> AccountLinkingStatus:
    """Map the platform's exact "linked" / "unlinked" strings to the enum."""
    try:
        return AccountLinkingStatus(value)
    except ValueError:
        raise MalformedEventError(f"Unknown account linking status: {value!r}")


def parse_message_ids(delivery: dict[str, Any]) -> tuple[str, ...] | None:
    """Return the delivered message ids; None when the list is absent."""
    if PROP_MIDS not in delivery or delivery[PROP_MIDS] is None:
        return None

    mids = delivery[PROP_MIDS]
    if not isinstance(mids, list):
        raise MalformedEventError("'mids' must be an array")
    return tuple(parse_id(mid) for mid in mids)
