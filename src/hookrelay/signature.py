"""Webhook signature verification.

GitHub signs the raw request body with HMAC keyed by the shared secret and
sends the hex digest as ``sha1=<hex>`` (``X-Hub-Signature``) or
``sha256=<hex>`` (``X-Hub-Signature-256``). GitLab sends the secret itself
as a token. Both are compared in constant time.
"""

from __future__ import annotations

import hashlib
import hmac
import re
from typing import Literal, Protocol, runtime_checkable

Algorithm = Literal["sha1", "sha256"]

_DIGESTS = {
    "sha1": hashlib.sha1,
    "sha256": hashlib.sha256,
}

DEFAULT_ALGORITHM: Algorithm = "sha1"

_LOWER_HEX = re.compile(r"[0-9a-f]+")


@runtime_checkable
class MacBackend(Protocol):
    """Keyed-hash MAC capability used by the verifier."""

    def compute(self, secret: bytes, message: bytes, algorithm: Algorithm) -> bytes:
        """Return the raw MAC of ``message`` keyed by ``secret``."""
        ...


class HmacBackend:
    """MAC backend built on the standard library ``hmac`` module."""

    def compute(self, secret: bytes, message: bytes, algorithm: Algorithm) -> bytes:
        return hmac.new(key=secret, msg=message, digestmod=_DIGESTS[algorithm]).digest()


default_backend: MacBackend = HmacBackend()


def compute_signature(
    secret: bytes,
    message: bytes,
    algorithm: Algorithm = DEFAULT_ALGORITHM,
    backend: MacBackend | None = None,
) -> str:
    """Compute the hex HMAC signature of a webhook body.

    Args:
        secret: Shared secret used as the HMAC key.
        message: Raw request body.
        algorithm: "sha1" (default) or "sha256".
        backend: MAC backend; the stdlib backend if None.

    Returns:
        Hex digest, without the ``algorithm=`` prefix.
    """
    backend = backend or default_backend
    return backend.compute(secret, message, algorithm).hex()


def _split_signature(provided_signature: str) -> tuple[Algorithm, str] | None:
    """Split ``"sha1=<hex>"`` into its algorithm and hex parts.

    A bare hex string is taken as SHA-1. Unknown prefixes give None.
    """
    if "=" not in provided_signature:
        return DEFAULT_ALGORITHM, provided_signature
    prefix, _, hex_digest = provided_signature.partition("=")
    if prefix == "sha1":
        return "sha1", hex_digest
    if prefix == "sha256":
        return "sha256", hex_digest
    return None


def verify_signature(
    secret: bytes,
    message: bytes,
    provided_signature: str,
    backend: MacBackend | None = None,
) -> bool:
    """Verify an HMAC signature over a webhook body.

    Never raises: a malformed signature is simply not valid.

    Args:
        secret: Shared secret used as the HMAC key.
        message: Raw request body that was signed.
        provided_signature: Signature header value, ``sha1=<hex>``,
            ``sha256=<hex>`` or bare hex (SHA-1).
        backend: MAC backend; the stdlib backend if None.

    Returns:
        True if the signature matches, False otherwise.
    """
    if not isinstance(provided_signature, str):
        return False
    parts = _split_signature(provided_signature)
    if parts is None:
        return False
    algorithm, hex_digest = parts
    # Providers send lowercase hex; anything else is malformed
    if not _LOWER_HEX.fullmatch(hex_digest):
        return False

    expected = compute_signature(secret, message, algorithm, backend)
    return hmac.compare_digest(expected.encode("ascii"), hex_digest.encode("ascii"))


def verify_token(secret: bytes, provided_token: str) -> bool:
    """Verify a shared-token header (GitLab's ``X-Gitlab-Token``).

    Args:
        secret: Configured shared secret.
        provided_token: Token header value.

    Returns:
        True if the token equals the secret.
    """
    if not isinstance(provided_token, str):
        return False
    try:
        token = provided_token.encode("utf-8")
    except UnicodeEncodeError:
        return False
    return hmac.compare_digest(secret, token)
