"""Incoming Facebook Messenger webhook envelope models."""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class MessengerEntry(BaseModel):
    """Facebook webhook entry: one page-scoped batch of messaging events."""

    model_config = ConfigDict(coerce_numbers_to_str=True)

    id: str | None = Field(default=None, description="Page id")
    time: int | None = Field(default=None, description="Delivery time (epoch ms)")
    messaging: list[dict[str, Any]] = Field(
        ..., description="Raw messaging events, classified one by one"
    )


class MessengerWebhookPayload(BaseModel):
    """Facebook webhook payload."""

    object: str
    entry: list[MessengerEntry]
