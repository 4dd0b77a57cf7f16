"""Error taxonomy for the webhook receive pipeline.

Each failure kind is a distinct type so the HTTP layer can answer with the
right status code:

- SignatureVerificationError: body signature present but wrong (403)
- WebhookVerificationError: hub.mode / hub.verify_token rejected (403)
- WebhookPayloadError: body is not a valid page envelope (400)

Unsupported event shapes are not errors; they surface as UnsupportedEvent.
"""


class WebhookError(Exception):
    """Base exception for webhook receive errors."""

    pass


class SignatureVerificationError(WebhookError):
    """Raised when the provided signature does not match the request body."""

    pass


class WebhookVerificationError(WebhookError):
    """Raised when a webhook subscription verification request is rejected."""

    pass


class WebhookPayloadError(WebhookError, ValueError):
    """Raised when the request body violates the webhook envelope schema."""

    pass
