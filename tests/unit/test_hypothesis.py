"""Additional property-based tests with Hypothesis."""

import json

from hypothesis import HealthCheck, assume, given, settings, strategies as st

from messenger_receive.services.event_classifier import classify_event
from messenger_receive.services.payload_walker import walk_payload
from messenger_receive.services.signature_verifier import (
    compute_signature,
    is_signature_valid,
)

PREDICATES = (
    "is_text_message_event",
    "is_quick_reply_message_event",
    "is_attachment_message_event",
    "is_message_echo_event",
    "is_opt_in_event",
    "is_postback_event",
    "is_referral_event",
    "is_account_linking_event",
    "is_message_read_event",
    "is_message_delivered_event",
    "is_unsupported_event",
)

json_scalars = st.one_of(
    st.none(),
    st.booleans(),
    st.integers(min_value=-(2**53), max_value=2**53),
    st.text(max_size=20),
)
json_values = st.recursive(
    json_scalars,
    lambda children: st.one_of(
        st.lists(children, max_size=4),
        st.dictionaries(st.text(max_size=10), children, max_size=4),
    ),
    max_leaves=12,
)

# HMAC zero-pads keys, so secrets differing only by trailing NULs collide.
# Secrets are UTF-8 encoded, so lone surrogates are excluded.
secrets = st.text(
    alphabet=st.characters(codec="utf-8", exclude_characters="\x00"),
    min_size=1,
    max_size=40,
)


def section_strategy():
    """Known event sections with arbitrary, often malformed, contents."""
    return st.fixed_dictionaries(
        {},
        optional={
            "message": st.fixed_dictionaries(
                {},
                optional={
                    "mid": st.one_of(st.text(max_size=10), json_scalars),
                    "text": json_scalars,
                    "is_echo": json_scalars,
                    "app_id": json_scalars,
                    "attachments": json_values,
                    "quick_reply": json_values,
                },
            ),
            "optin": json_values,
            "postback": json_values,
            "referral": json_values,
            "account_linking": json_values,
            "read": json_values,
            "delivery": json_values,
        },
    )


raw_events = st.builds(
    lambda base, sections: {**base, **sections},
    st.fixed_dictionaries(
        {},
        optional={
            "sender": st.one_of(st.fixed_dictionaries({"id": st.text(max_size=10)}), json_values),
            "recipient": st.one_of(st.fixed_dictionaries({"id": st.text(max_size=10)}), json_values),
            "timestamp": st.one_of(st.integers(min_value=0, max_value=2**41), json_scalars),
        },
    ),
    section_strategy(),
)


class TestClassificationProperties:
    """Property-based tests for classification."""

    @settings(suppress_health_check=[HealthCheck.too_slow])
    @given(raw_event=raw_events)
    def test_exactly_one_predicate_holds(self, raw_event):
        """Property: any event shape classifies without raising, into one variant."""
        event = classify_event(raw_event)

        assert sum(getattr(event, name)() for name in PREDICATES) == 1

    @settings(suppress_health_check=[HealthCheck.too_slow])
    @given(raw_event=raw_events)
    def test_classification_is_deterministic(self, raw_event):
        """Property: classifying the same event twice gives equal results."""
        assert classify_event(raw_event) == classify_event(raw_event)

    @given(raw_event=json_values)
    def test_arbitrary_json_never_raises(self, raw_event):
        """Property: even non-event JSON degrades to a variant."""
        event = classify_event(raw_event)

        assert sum(getattr(event, name)() for name in PREDICATES) == 1


class TestSignatureProperties:
    """Property-based tests for signature verification."""

    @given(
        body=st.binary(max_size=200),
        secret=st.text(min_size=1, max_size=40),
        algorithm=st.sampled_from(["sha1", "sha256"]),
    )
    def test_computed_signature_verifies(self, body: bytes, secret: str, algorithm: str):
        """Property: a signature computed over a body verifies against it."""
        signature = compute_signature(body, secret, algorithm)

        assert is_signature_valid(body, signature, secret)

    @given(
        body=st.binary(min_size=1, max_size=200),
        secret=st.text(min_size=1, max_size=40),
        index=st.integers(min_value=0),
    )
    def test_any_byte_change_invalidates(self, body: bytes, secret: str, index: int):
        """Property: flipping one byte of the body breaks the signature."""
        signature = compute_signature(body, secret)
        position = index % len(body)
        mutated = body[:position] + bytes([body[position] ^ 0x01]) + body[position + 1 :]

        assert not is_signature_valid(mutated, signature, secret)

    @given(
        body=st.binary(max_size=200),
        secret=secrets,
        other=secrets,
    )
    def test_other_secret_invalidates(self, body: bytes, secret: str, other: str):
        """Property: a different secret yields a non-matching signature."""
        assume(secret != other)

        assert not is_signature_valid(body, compute_signature(body, other), secret)


class TestWalkProperties:
    """Property-based tests for payload traversal."""

    @given(
        entry_sizes=st.lists(st.integers(min_value=0, max_value=5), max_size=5),
    )
    def test_events_dispatched_once_each_in_order(self, entry_sizes):
        """Property: handler sees every messaging event exactly once, in order."""
        counter = iter(range(1000))
        document = {
            "object": "page",
            "entry": [
                {
                    "id": "PAGE_ID",
                    "time": 1,
                    "messaging": [
                        {
                            "sender": {"id": "USER_ID"},
                            "recipient": {"id": "PAGE_ID"},
                            "timestamp": 1,
                            "optin": {"ref": str(next(counter))},
                        }
                        for _ in range(size)
                    ],
                }
                for size in entry_sizes
            ],
        }
        seen = []

        walk_payload(json.dumps(document), seen.append)

        assert [event.as_opt_in_event().ref_payload for event in seen] == [
            str(index) for index in range(sum(entry_sizes))
        ]
