"""Tests for the webhook CLI."""

import json

import pytest
from typer.testing import CliRunner

from messenger_receive.cli.webhook_cli import (
    EXIT_AUTHENTICATION_FAILED,
    EXIT_INVALID_PAYLOAD,
    app,
    describe_event,
)
from messenger_receive.models.events import Event, UnsupportedEvent
from messenger_receive.services.event_classifier import classify_event

runner = CliRunner()


@pytest.fixture
def payload_file(tmp_path, signed_payload):
    """Reference payload written to disk."""
    body, _ = signed_payload
    path = tmp_path / "payload.json"
    path.write_text(body, encoding="utf-8")
    return path


class TestSignCommand:
    """Test `sign`."""

    def test_prints_reference_signature(self, payload_file, signed_payload, app_secret):
        _, signature = signed_payload

        result = runner.invoke(app, ["sign", str(payload_file), "--secret", app_secret])

        assert result.exit_code == 0
        assert result.output.strip() == signature

    def test_secret_from_environment(self, payload_file, signed_payload, app_secret):
        _, signature = signed_payload

        result = runner.invoke(
            app, ["sign", str(payload_file)], env={"FACEBOOK_APP_SECRET": app_secret}
        )

        assert result.exit_code == 0
        assert result.output.strip() == signature

    def test_sha256(self, payload_file, app_secret):
        result = runner.invoke(
            app,
            ["sign", str(payload_file), "--secret", app_secret, "--algorithm", "sha256"],
        )

        assert result.exit_code == 0
        assert result.output.startswith("sha256=")

    def test_unsupported_algorithm(self, payload_file, app_secret):
        result = runner.invoke(
            app,
            ["sign", str(payload_file), "--secret", app_secret, "--algorithm", "md5"],
        )

        assert result.exit_code == EXIT_INVALID_PAYLOAD

    def test_missing_file(self, tmp_path, app_secret):
        result = runner.invoke(
            app, ["sign", str(tmp_path / "missing.json"), "--secret", app_secret]
        )

        assert result.exit_code != 0


class TestInspectCommand:
    """Test `inspect`."""

    def test_lists_classified_events(self, payload_file, signed_payload, app_secret):
        _, signature = signed_payload

        result = runner.invoke(
            app,
            [
                "inspect",
                str(payload_file),
                "--secret",
                app_secret,
                "--signature",
                signature,
            ],
        )

        assert result.exit_code == 0
        assert "#1 text_message from=1256217357730577 to=1717527131834678" in result.output
        assert '"text": "34wrr3wr"' in result.output
        assert "✓ 1 event(s) classified" in result.output

    def test_unsigned_inspection(self, payload_file):
        result = runner.invoke(app, ["inspect", str(payload_file)], env={})

        assert result.exit_code == 0
        assert "✓ 1 event(s) classified" in result.output

    def test_bad_signature(self, payload_file, app_secret):
        result = runner.invoke(
            app,
            [
                "inspect",
                str(payload_file),
                "--secret",
                app_secret,
                "--signature",
                "sha1=0000000000000000000000000000000000000000",
            ],
        )

        assert result.exit_code == EXIT_AUTHENTICATION_FAILED
        assert "✓" not in result.output

    def test_invalid_payload(self, tmp_path):
        path = tmp_path / "payload.json"
        path.write_text(json.dumps({"object": "instagram", "entry": []}))

        result = runner.invoke(app, ["inspect", str(path)])

        assert result.exit_code == EXIT_INVALID_PAYLOAD

    def test_oversized_integer_payload(self, tmp_path):
        path = tmp_path / "payload.json"
        path.write_text('{"object":"page","entry":[{"time":' + "1" * 5000 + ',"messaging":[]}]}')

        result = runner.invoke(app, ["inspect", str(path)])

        assert result.exit_code == EXIT_INVALID_PAYLOAD


class TestDescribeEvent:
    """Test the one-line event summary."""

    def test_includes_variant_fields(self, build_messaging_event):
        event = classify_event(
            build_messaging_event(account_linking={"status": "unlinked"})
        )

        line = describe_event(3, event)

        assert line.startswith(
            "#3 account_linking from=USER_ID to=PAGE_ID at=2016-03-23T00:25:52.478000+00:00"
        )
        assert '"status": "unlinked"' in line

    def test_unsupported_without_attributes(self):
        assert describe_event(1, Event(UnsupportedEvent())) == "#1 unsupported from=- to=- at=-"
