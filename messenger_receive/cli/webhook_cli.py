"""Typer-based developer CLI for recorded webhook payloads.

Usage:
    messenger-receive sign payload.json --secret APP_SECRET
    messenger-receive inspect payload.json --signature sha1=...
"""

import os

os.environ.setdefault("LOGFIRE_IGNORE_NO_CONFIG", "1")

import json
from pathlib import Path
from typing import Optional

import typer
from dotenv import load_dotenv

from messenger_receive.models.events import Event
from messenger_receive.services.signature_verifier import (
    SUPPORTED_ALGORITHMS,
    compute_signature,
)
from messenger_receive.services.webhook_errors import (
    SignatureVerificationError,
    WebhookPayloadError,
)
from messenger_receive.services.webhook_receiver import MessengerReceiver

load_dotenv(".env")
load_dotenv(".env.local")

app = typer.Typer(help="Sign and inspect recorded Messenger webhook payloads.")

EXIT_AUTHENTICATION_FAILED = 1
EXIT_INVALID_PAYLOAD = 2

_BASE_FIELDS = {"sender_id", "recipient_id", "timestamp"}


def describe_event(index: int, event: Event) -> str:
    """One-line summary of a classified event."""
    details = event.variant.model_dump(mode="json", exclude=_BASE_FIELDS)
    timestamp = event.timestamp.isoformat() if event.timestamp else "-"
    line = (
        f"#{index} {event.kind.value} "
        f"from={event.sender_id or '-'} to={event.recipient_id or '-'} at={timestamp}"
    )
    if details:
        line += f" {json.dumps(details, sort_keys=True)}"
    return line


@app.command()
def sign(
    payload_file: Path = typer.Argument(
        ..., exists=True, dir_okay=False, help="Recorded webhook body"
    ),
    secret: str = typer.Option(
        ..., "--secret", envvar="FACEBOOK_APP_SECRET", help="App secret"
    ),
    algorithm: str = typer.Option("sha1", "--algorithm", help="sha1 or sha256"),
):
    """Print the signature header value for a payload file."""
    if algorithm not in SUPPORTED_ALGORITHMS:
        typer.echo(f"✗ Unsupported algorithm: {algorithm}", err=True)
        raise typer.Exit(EXIT_INVALID_PAYLOAD)

    typer.echo(compute_signature(payload_file.read_bytes(), secret, algorithm))


@app.command()
def inspect(
    payload_file: Path = typer.Argument(
        ..., exists=True, dir_okay=False, help="Recorded webhook body"
    ),
    secret: Optional[str] = typer.Option(
        None, "--secret", envvar="FACEBOOK_APP_SECRET", help="App secret"
    ),
    signature: Optional[str] = typer.Option(
        None, "--signature", help="Signature header value to verify"
    ),
):
    """Run a payload file through the receive pipeline and list its events."""
    receiver = MessengerReceiver(app_secret=secret)
    count = 0

    def print_event(event: Event) -> None:
        nonlocal count
        count += 1
        typer.echo(describe_event(count, event))

    try:
        receiver.on_receive_events(payload_file.read_bytes(), signature, print_event)
    except SignatureVerificationError as e:
        typer.echo(f"✗ {e}", err=True)
        raise typer.Exit(EXIT_AUTHENTICATION_FAILED)
    except WebhookPayloadError as e:
        typer.echo(f"✗ {e}", err=True)
        raise typer.Exit(EXIT_INVALID_PAYLOAD)

    typer.echo(f"✓ {count} event(s) classified")


if __name__ == "__main__":
    app()
