"""Delivery construction: verification outcome plus optional payload parsing."""

from __future__ import annotations

import json
from typing import Any

from hookrelay.logging import get_logger
from hookrelay.models import DecodedFields, Delivery, SignatureState
from hookrelay.signature import MacBackend, verify_signature, verify_token

logger = get_logger(__name__)


def check_signature(
    decoded: DecodedFields,
    secret: bytes | None,
    backend: MacBackend | None = None,
) -> SignatureState:
    """Decide the signature state for decoded request fields.

    No secret configured gives NOT_CHECKED. A configured secret with no
    signature header gives INVALID.
    """
    if secret is None:
        return SignatureState.NOT_CHECKED
    if decoded.signature is None:
        logger.debug("Secret configured but no signature header present")
        return SignatureState.INVALID

    if decoded.provider.signature_scheme == "token":
        valid = verify_token(secret, decoded.signature)
    else:
        valid = verify_signature(secret, decoded.body, decoded.signature, backend)

    if not valid:
        logger.debug("Signature did not match", provider=decoded.provider.value)
    return SignatureState.from_bool(valid)


def parse_payload(payload_text: str | None) -> Any | None:
    """Parse payload text as JSON.

    Returns None if the text is not valid JSON or nests too deeply to parse.
    """
    if payload_text is None:
        return None
    try:
        return json.loads(payload_text)
    except (ValueError, RecursionError) as e:
        logger.warning("Payload is not valid JSON", error=str(e))
        return None


def build_delivery(
    decoded: DecodedFields,
    secret: bytes | None = None,
    parse_enabled: bool = True,
    backend: MacBackend | None = None,
) -> Delivery:
    """Assemble the canonical Delivery for a decoded request.

    Verification and parsing problems are recorded on the Delivery rather
    than raised, so handlers can see and decide.

    Args:
        decoded: Output of the decoder.
        secret: Shared secret, or None if the listener has none configured.
        parse_enabled: Parse the payload text into a JSON value.
        backend: MAC backend for HMAC verification.

    Returns:
        The built Delivery.
    """
    return Delivery(
        event=decoded.event,
        id=decoded.delivery_id,
        provider=decoded.provider,
        content_type=decoded.content_type,
        payload_raw=decoded.body,
        payload_text=decoded.payload_text,
        payload=parse_payload(decoded.payload_text) if parse_enabled else None,
        signature=decoded.signature,
        signature_valid=check_signature(decoded, secret, backend),
    )
