"""Entry point of the webhook receive pipeline.

MessengerReceiver gates every delivery on its signature, then walks the
payload and hands each classified event to the caller's handler:

    receiver = MessengerReceiver(app_secret="...", verify_token="...")
    receiver.on_receive_events(body, request.headers.get("X-Hub-Signature"), handle)

The receiver holds only its configuration, so one instance can serve
concurrent requests; each call works on its own payload and handler.
"""

import hmac

import logfire

from messenger_receive.constants import HUB_MODE_SUBSCRIBE
from messenger_receive.services.payload_walker import EventHandler, walk_payload
from messenger_receive.services.signature_verifier import is_signature_valid
from messenger_receive.services.webhook_errors import (
    SignatureVerificationError,
    WebhookPayloadError,
    WebhookVerificationError,
)


class MessengerReceiver:
    """Authenticate and classify Messenger webhook deliveries."""

    def __init__(self, app_secret: str | None, verify_token: str | None = None):
        """Initialize with the app's shared secrets.

        Args:
            app_secret: App secret used to check body signatures. Without
                it, signed deliveries cannot be verified and are rejected.
            verify_token: Token expected during subscription verification.
                Without it, every verification request is rejected.
        """
        self._app_secret = app_secret
        self._verify_token = verify_token

    def verify_signature(self, request_payload: str | bytes, signature: str) -> None:
        """Check the body signature.

        Raises:
            SignatureVerificationError: If the signature does not match
        """
        if not self._app_secret:
            raise SignatureVerificationError(
                "Signature provided but no app secret is configured"
            )
        if not is_signature_valid(request_payload, signature, self._app_secret):
            raise SignatureVerificationError(
                "Signature verification failed. "
                "Provided signature does not match calculated signature."
            )

    def on_receive_events(
        self,
        request_payload: str | bytes | None,
        signature: str | None,
        event_handler: EventHandler,
    ) -> None:
        """Verify, parse and dispatch one webhook delivery.

        Args:
            request_payload: Raw request body, exactly as received
            signature: Signature header value, or None to skip verification
            event_handler: Called once per messaging event, in document order

        Raises:
            SignatureVerificationError: Signature present but wrong; the body
                is not parsed
            WebhookPayloadError: Body is not a valid page envelope
        """
        if request_payload is None:
            raise WebhookPayloadError("Request payload must be provided")

        if signature is not None:
            self.verify_signature(request_payload, signature)
        else:
            logfire.warn(
                "No signature provided, hence the signature verification is "
                "skipped. THIS IS NOT RECOMMENDED"
            )

        walk_payload(request_payload, event_handler)

    def verify_webhook(self, mode: str | None, verify_token: str | None) -> None:
        """Check a subscription verification request (hub.mode, hub.verify_token).

        Raises:
            WebhookVerificationError: If the mode is not "subscribe" or the
                token does not match the configured verify token
        """
        if mode != HUB_MODE_SUBSCRIBE:
            raise WebhookVerificationError(
                f"Webhook verification failed. Mode '{mode}' is invalid."
            )

        if (
            not self._verify_token
            or verify_token is None
            or not hmac.compare_digest(
                verify_token.encode("utf-8"), self._verify_token.encode("utf-8")
            )
        ):
            raise WebhookVerificationError(
                "Webhook verification failed. Verify token is invalid."
            )

        logfire.info("Webhook verified successfully")
