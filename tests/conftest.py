"""Shared pytest fixtures and configuration.

Fixture Categories:
1. Payload builders: build_messaging_event, build_envelope, envelope_json
2. Pipeline objects: receiver, instant
3. Infrastructure: mock_settings, mock_logfire, logfire_capture, test_client
"""

import json
import os
from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock, Mock, patch

import pytest

# Suppress warnings when logfire isn't configured in tests
os.environ.setdefault("LOGFIRE_IGNORE_NO_CONFIG", "1")

import logfire

TEST_APP_SECRET = "60efff025951cddde78c8d03de52cc90"
TEST_VERIFY_TOKEN = "CUSTOM_VERIFY_TOKEN"

# Reference body and signature for TEST_APP_SECRET
SIGNED_PAYLOAD = (
    '{"object":"page","entry":[{"id":"1717527131834678","time":1475942721780,'
    '"messaging":[{"sender":{"id":"1256217357730577"},"recipient":{"id":"1717527131834678"},'
    '"timestamp":1475942721741,"message":{"mid":"mid.1475942721728:3b9e3646712f9bed52",'
    '"seq":123,"text":"34wrr3wr"}}]}]}'
)
SIGNED_PAYLOAD_SIGNATURE = "sha1=3daa41999293ff66c3eb313e04bcf77861bb0276"

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


@pytest.fixture
def app_secret():
    """Shared secret the reference signature was computed with."""
    return TEST_APP_SECRET


@pytest.fixture
def signed_payload():
    """Reference (body, signature) pair signed with app_secret."""
    return SIGNED_PAYLOAD, SIGNED_PAYLOAD_SIGNATURE


@pytest.fixture
def instant():
    """Convert epoch milliseconds to the expected aware datetime."""

    def convert(epoch_millis: int) -> datetime:
        return _EPOCH + timedelta(milliseconds=epoch_millis)

    return convert


@pytest.fixture
def build_messaging_event():
    """Build a raw messaging event with default sender/recipient/timestamp.

    Keyword arguments are merged into the event; pass a value of None to
    drop a default key.
    """

    def build(**fields):
        event = {
            "sender": {"id": "USER_ID"},
            "recipient": {"id": "PAGE_ID"},
            "timestamp": 1458692752478,
        }
        event.update(fields)
        return {key: value for key, value in event.items() if value is not None}

    return build


@pytest.fixture
def build_envelope():
    """Build a webhook envelope with one entry per messaging list."""

    def build(*messaging_lists, object_type="page", entry_time=1458692752478):
        return {
            "object": object_type,
            "entry": [
                {"id": "PAGE_ID", "time": entry_time, "messaging": list(messaging)}
                for messaging in messaging_lists
            ],
        }

    return build


@pytest.fixture
def envelope_json(build_envelope):
    """Serialize an envelope holding the given messaging events."""

    def build(*messaging_events, **kwargs):
        return json.dumps(build_envelope(list(messaging_events), **kwargs))

    return build


@pytest.fixture
def receiver():
    """MessengerReceiver configured with the test secrets."""
    from messenger_receive.services.webhook_receiver import MessengerReceiver

    return MessengerReceiver(app_secret=TEST_APP_SECRET, verify_token=TEST_VERIFY_TOKEN)


@pytest.fixture
def mock_settings(monkeypatch):
    """Mock application settings."""
    from messenger_receive.config import Settings

    settings = Settings(
        facebook_verify_token=TEST_VERIFY_TOKEN,
        facebook_app_secret=TEST_APP_SECRET,
        webhook_require_signature=False,
        env="local",
        logfire_token=None,
        sentry_dsn=None,
    )

    monkeypatch.setattr("messenger_receive.config.get_settings", lambda: settings)
    # Patch where get_settings is used so request handlers see the mock
    monkeypatch.setattr("messenger_receive.main.get_settings", lambda: settings)
    monkeypatch.setattr("messenger_receive.api.webhook.get_settings", lambda: settings)
    monkeypatch.setattr("messenger_receive.logging_config.get_settings", lambda: settings)
    return settings


@pytest.fixture
def logfire_capture():
    """
    Capture Logfire logs for testing.

    Yields a list of (level, args, kwargs) tuples.
    """
    captured_logs = []

    def capture(level):
        def record(*args, **kwargs):
            captured_logs.append((level, args, kwargs))

        return record

    with (
        patch("logfire.info", side_effect=capture("info")),
        patch("logfire.warn", side_effect=capture("warn")),
        patch("logfire.error", side_effect=capture("error")),
    ):
        yield captured_logs


@pytest.fixture
def mock_logfire(monkeypatch):
    """
    Mock Logfire for tests that don't need to verify logging behavior.
    """
    from contextlib import contextmanager

    @contextmanager
    def mock_span(*args, **kwargs):
        yield {}

    mock_logfire_module = MagicMock()
    mock_logfire_module.info = Mock()
    mock_logfire_module.warn = Mock()
    mock_logfire_module.error = Mock()
    mock_logfire_module.span = mock_span
    mock_logfire_module.configure = Mock()
    mock_logfire_module.instrument_fastapi = Mock()
    mock_logfire_module.instrument_pydantic = Mock()

    # Patch module-level imports in our code (only modules that use logfire)
    monkeypatch.setattr("messenger_receive.services.event_classifier.logfire", mock_logfire_module)
    monkeypatch.setattr("messenger_receive.services.payload_walker.logfire", mock_logfire_module)
    monkeypatch.setattr("messenger_receive.services.webhook_receiver.logfire", mock_logfire_module)
    monkeypatch.setattr("messenger_receive.api.webhook.logfire", mock_logfire_module)
    monkeypatch.setattr("messenger_receive.logging_config.logfire", mock_logfire_module)
    monkeypatch.setattr("messenger_receive.main.logfire", mock_logfire_module)

    return mock_logfire_module


@pytest.fixture
def test_client(mock_settings, mock_logfire):
    """FastAPI TestClient for E2E tests."""
    from fastapi.testclient import TestClient
    from messenger_receive.main import app

    app.dependency_overrides.clear()
    yield TestClient(app)
    app.dependency_overrides.clear()
