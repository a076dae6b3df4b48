"""Delivery models: the canonical unit of work handed to handlers."""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from .provider import ProviderProfile


class ContentType(str, Enum):
    """Request body encodings the decoder understands."""

    JSON = "application/json"
    FORM = "application/x-www-form-urlencoded"


class SignatureState(str, Enum):
    """Outcome of signature verification for one delivery.

    NOT_CHECKED means no secret was configured. It is never the same
    thing as INVALID.
    """

    NOT_CHECKED = "not_checked"
    VALID = "valid"
    INVALID = "invalid"

    @classmethod
    def from_bool(cls, valid: bool) -> SignatureState:
        return cls.VALID if valid else cls.INVALID

    @property
    def is_authenticated(self) -> bool:
        """True only when a configured secret verified the delivery."""
        return self is SignatureState.VALID


class DecodedFields(BaseModel):
    """Fields extracted from a request before verification.

    Attributes:
        provider: Provider the request was decoded as.
        content_type: Encoding of the request body.
        raw_event: Event name exactly as sent by the provider.
        event: Normalized event name.
        delivery_id: Provider-assigned delivery identifier, if sent.
        signature: Signature or token header value, if sent.
        body: The raw request body.
        payload_text: The JSON payload text. For form-encoded requests this
            is the nested ``payload`` field; None if that field is absent.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    provider: ProviderProfile
    content_type: ContentType
    raw_event: str
    event: str
    delivery_id: str | None = None
    signature: str | None = None
    body: bytes = b""
    payload_text: str | None = None


class Delivery(BaseModel):
    """One normalized webhook event, ready for handler consumption.

    ``payload_raw`` is always the unmodified request body. ``payload`` is
    derived from it and may be None even when the body is present (parsing
    disabled, or the body is not valid JSON). ``payload_text`` is the JSON
    text before parsing: the body itself, or the ``payload`` field of a
    form-encoded body.

    Attributes:
        event: Canonical event name (lowercase, underscore-separated).
        id: Provider-assigned delivery identifier, if sent.
        provider: Provider that sent the delivery.
        content_type: Encoding of the request body.
        payload_raw: The original request body bytes.
        payload_text: Unparsed payload text, if the body carried one.
        payload: Parsed JSON value, if parsing is enabled and succeeded.
        signature: Signature or token header value as received, if sent.
        signature_valid: Signature verification outcome.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    event: str = Field(description="Canonical event name")
    id: str | None = Field(default=None, description="Delivery identifier")
    provider: ProviderProfile = Field(description="Webhook source")
    content_type: ContentType = Field(default=ContentType.JSON)
    payload_raw: bytes = Field(description="Original request body")
    payload_text: str | None = Field(default=None, description="Unparsed payload text")
    payload: Any | None = Field(default=None, description="Parsed payload value")
    # GitLab tokens are the shared secret itself
    signature: str | None = Field(
        default=None, repr=False, description="Received signature header"
    )
    signature_valid: SignatureState = Field(default=SignatureState.NOT_CHECKED)

    @property
    def authenticated(self) -> bool:
        """True if a configured secret verified this delivery."""
        return self.signature_valid.is_authenticated
