"""Provider profiles: header names and signing schemes per webhook source."""

from __future__ import annotations

from collections.abc import Mapping
from enum import Enum
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

# How the signature header authenticates a delivery
SignatureScheme = Literal["hmac", "token"]


class ProviderProfile(str, Enum):
    """Webhook source dialect."""

    GITHUB = "github"
    GITLAB = "gitlab"

    @property
    def headers(self) -> ProviderHeaders:
        """Header-name table for this provider."""
        return PROVIDER_HEADERS[self]

    @property
    def signature_scheme(self) -> SignatureScheme:
        """Signing scheme used by this provider."""
        return self.headers.scheme


class ProviderHeaders(BaseModel):
    """Request headers a provider uses to describe a delivery.

    Header names are stored lowercase; lookups are case-insensitive.

    Attributes:
        event: Header carrying the event name.
        delivery_id: Header carrying the delivery identifier, if any.
        signature: Headers carrying the signature, in order of preference.
        scheme: "hmac" for keyed-hash signatures, "token" for shared tokens.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    event: str
    delivery_id: str | None = None
    signature: tuple[str, ...] = Field(default_factory=tuple)
    scheme: SignatureScheme = "hmac"


PROVIDER_HEADERS: dict[ProviderProfile, ProviderHeaders] = {
    ProviderProfile.GITHUB: ProviderHeaders(
        event="x-github-event",
        delivery_id="x-github-delivery",
        signature=("x-hub-signature-256", "x-hub-signature"),
        scheme="hmac",
    ),
    ProviderProfile.GITLAB: ProviderHeaders(
        event="x-gitlab-event",
        delivery_id="x-gitlab-event-uuid",
        signature=("x-gitlab-token",),
        scheme="token",
    ),
}


def detect_provider(headers: Mapping[str, str]) -> ProviderProfile | None:
    """Guess the provider from which event header is present.

    Args:
        headers: Request headers with lowercase keys.

    Returns:
        The matching profile, or None if no known event header is present.
    """
    for profile, table in PROVIDER_HEADERS.items():
        if table.event in headers:
            return profile
    return None
