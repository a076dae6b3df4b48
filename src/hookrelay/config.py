"""Configuration management for hookrelay."""

import logging
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, SecretStr, field_validator, model_validator
from pydantic_settings import BaseSettings

from hookrelay.models import ProviderProfile

logger = logging.getLogger(__name__)

ProviderSetting = Literal["github", "gitlab", "auto"]


def _reject_empty_secret(value: SecretStr | None) -> SecretStr | None:
    if value is not None and not value.get_secret_value():
        raise ValueError("secret must not be empty; leave it unset to disable verification")
    return value


class ListenerConfig(BaseModel):
    """Options resolved once when a listener is constructed.

    Attributes:
        provider: "github", "gitlab", or "auto" to detect from the headers.
        secret: Shared secret. None disables signature verification.
        parse_payload: Parse the payload into a JSON value on the Delivery.
        support_form_encoded: Accept application/x-www-form-urlencoded bodies.
        require_valid_signature: Refuse deliveries whose signature is not
            valid instead of passing them to handlers.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    provider: ProviderSetting = Field(
        default="auto",
        description="Webhook provider, or 'auto' to detect per request",
    )
    secret: SecretStr | None = Field(
        default=None,
        description="Shared secret for signature verification",
    )
    parse_payload: bool = Field(
        default=True,
        description="Parse the payload into a JSON value",
    )
    support_form_encoded: bool = Field(
        default=True,
        description="Accept form-encoded request bodies",
    )
    require_valid_signature: bool = Field(
        default=False,
        description="Refuse deliveries whose signature is not valid",
    )

    @field_validator("secret")
    @classmethod
    def validate_secret(cls, value: SecretStr | None) -> SecretStr | None:
        """Reject an empty secret; an unset secret disables verification."""
        return _reject_empty_secret(value)

    @model_validator(mode="after")
    def validate_signature_policy(self) -> "ListenerConfig":
        """A required signature can never be valid without a secret."""
        if self.require_valid_signature and self.secret is None:
            raise ValueError("require_valid_signature needs a secret to verify against")
        return self

    @property
    def provider_profile(self) -> ProviderProfile | None:
        """Fixed provider profile, or None when detecting per request."""
        if self.provider == "auto":
            return None
        return ProviderProfile(self.provider)

    @property
    def secret_bytes(self) -> bytes | None:
        """Secret as the bytes used for verification."""
        if self.secret is None:
            return None
        return self.secret.get_secret_value().encode("utf-8")


class Settings(BaseSettings):
    """hookrelay configuration loaded from environment variables.

    All settings can be overridden via environment variables with
    the HOOKRELAY_ prefix. For example:
        HOOKRELAY_PROVIDER=gitlab
        HOOKRELAY_SECRET=s3cr3t
    """

    provider: ProviderSetting = Field(
        default="auto",
        description="Webhook provider, or 'auto' to detect per request",
    )
    secret: SecretStr | None = Field(
        default=None,
        description="Shared secret for signature verification",
    )
    parse_payload: bool = Field(
        default=True,
        description="Parse the payload into a JSON value",
    )
    support_form_encoded: bool = Field(
        default=True,
        description="Accept form-encoded request bodies",
    )
    require_valid_signature: bool = Field(
        default=False,
        description="Refuse deliveries whose signature is not valid",
    )

    # Logging
    log_level: str = Field(
        default="INFO",
        description="Logging level",
    )
    log_format: Literal["json", "text"] = Field(
        default="json",
        description="Log output format",
    )

    model_config = {
        "env_prefix": "HOOKRELAY_",
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }

    @field_validator("secret")
    @classmethod
    def validate_secret(cls, value: SecretStr | None) -> SecretStr | None:
        """Reject an empty secret; an unset secret disables verification."""
        return _reject_empty_secret(value)

    def to_listener_config(self) -> ListenerConfig:
        """Build the listener options from these settings."""
        if self.secret is None:
            logger.warning("No webhook secret configured; signatures will not be checked")
        return ListenerConfig(
            provider=self.provider,
            secret=self.secret,
            parse_payload=self.parse_payload,
            support_form_encoded=self.support_form_encoded,
            require_valid_signature=self.require_valid_signature,
        )
