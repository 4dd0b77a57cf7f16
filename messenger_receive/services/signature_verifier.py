"""Webhook signature verification.

The platform signs every delivery with an HMAC of the raw request body,
keyed with the app secret, and sends it as ``<algorithm>=<hex digest>`` in
the ``X-Hub-Signature`` (sha1) or ``X-Hub-Signature-256`` (sha256) header.

The body must be hashed exactly as received. Re-serializing parsed JSON
changes whitespace and escaping and breaks verification.
"""

import hashlib
import hmac
from typing import Callable

from messenger_receive.constants import DEFAULT_SIGNATURE_ALGORITHM

SUPPORTED_ALGORITHMS: dict[str, Callable] = {
    "sha1": hashlib.sha1,
    "sha256": hashlib.sha256,
}


def _as_bytes(body: bytes | str) -> bytes:
    if isinstance(body, str):
        return body.encode("utf-8")
    return body


def compute_signature(
    body: bytes | str,
    app_secret: str,
    algorithm: str = DEFAULT_SIGNATURE_ALGORITHM,
) -> str:
    """Compute the signature header value for a request body.

    Args:
        body: Raw request body (str bodies are UTF-8 encoded)
        app_secret: Application shared secret
        algorithm: Algorithm tag, one of SUPPORTED_ALGORITHMS

    Returns:
        Header value of the form ``<algorithm>=<hex digest>``

    Raises:
        ValueError: If the algorithm is not supported
    """
    digestmod = SUPPORTED_ALGORITHMS.get(algorithm)
    if digestmod is None:
        raise ValueError(f"Unsupported signature algorithm: {algorithm}")

    digest = hmac.new(
        key=app_secret.encode("utf-8"),
        msg=_as_bytes(body),
        digestmod=digestmod,
    ).hexdigest()
    return f"{algorithm}={digest}"


def is_signature_valid(body: bytes | str, signature: str, app_secret: str) -> bool:
    """Check a provided signature against the body.

    Malformed header values and unknown algorithm tags never match.

    Args:
        body: Raw request body, byte-identical to what the sender hashed
        signature: Header value of the form ``<algorithm>=<hex digest>``
        app_secret: Application shared secret

    Returns:
        True if the signature matches the body
    """
    algorithm, separator, provided_digest = signature.partition("=")
    algorithm = algorithm.strip().lower()
    if not separator or algorithm not in SUPPORTED_ALGORITHMS:
        return False

    expected = compute_signature(body, app_secret, algorithm)
    _, _, expected_digest = expected.partition("=")

    # Constant-time comparison to prevent timing attacks
    return hmac.compare_digest(
        expected_digest.encode("ascii"),
        provided_digest.strip().lower().encode("utf-8"),
    )
