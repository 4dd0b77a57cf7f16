"""Nested structures carried by messaging events: attachments and referrals."""

from enum import Enum
from typing import ClassVar

from pydantic import BaseModel, ConfigDict, Field


class EventNarrowingError(AssertionError):
    """Raised when a value is narrowed to a variant it does not hold.

    This signals a defect in the calling code: check the ``is_*`` predicate
    (or the ``kind``) before calling the matching ``as_*`` accessor.
    """

    pass


class Referral(BaseModel):
    """How a user entered the conversation (m.me link, ad, plugin, ...)."""

    model_config = ConfigDict(frozen=True)

    source: str = Field(..., description="Referral source, e.g. SHORTLINK or ADS")
    type: str = Field(..., description="Referral type, e.g. OPEN_THREAD")
    ref: str | None = Field(default=None, description="Developer-defined ref parameter")
    ad_id: str | None = Field(default=None, description="Ad id when source is ADS")


class AttachmentType(str, Enum):
    """Media types of rich-media attachments."""

    IMAGE = "image"
    VIDEO = "video"
    AUDIO = "audio"
    FILE = "file"
    TEMPLATE = "template"
    FALLBACK = "fallback"


class Attachment(BaseModel):
    """Common base of the attachment variants.

    Exactly one of ``is_rich_media_attachment()`` and
    ``is_location_attachment()`` is true for any instance.
    """

    model_config = ConfigDict(frozen=True)

    is_location: ClassVar[bool] = False

    def is_rich_media_attachment(self) -> bool:
        return not self.is_location

    def is_location_attachment(self) -> bool:
        return self.is_location

    def as_rich_media_attachment(self) -> "RichMediaAttachment":
        if not isinstance(self, RichMediaAttachment):
            raise EventNarrowingError(
                f"{type(self).__name__} is not a RichMediaAttachment"
            )
        return self

    def as_location_attachment(self) -> "LocationAttachment":
        if not isinstance(self, LocationAttachment):
            raise EventNarrowingError(
                f"{type(self).__name__} is not a LocationAttachment"
            )
        return self


class RichMediaAttachment(Attachment):
    """Image, video, audio, file, template or fallback attachment.

    ``type`` is None when the platform sent a media type this library does
    not know yet.
    """

    type: AttachmentType | None = None
    url: str | None = None


class LocationAttachment(Attachment):
    """Location shared by the user."""

    is_location: ClassVar[bool] = True

    latitude: float
    longitude: float
