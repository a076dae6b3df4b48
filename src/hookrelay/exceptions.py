"""hookrelay exception hierarchy.

Provides structured exceptions for the verification and dispatch pipeline.
All exceptions inherit from HookRelayError for easy catching.
"""

from __future__ import annotations


class HookRelayError(Exception):
    """Base exception for all hookrelay errors.

    Attributes:
        message: Human-readable error description.
        code: Machine-readable error code for HTTP responses.
    """

    code: str = "hookrelay_error"

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)

    def to_dict(self) -> dict[str, object]:
        """Convert exception to API-friendly dictionary."""
        return {
            "error": {
                "code": self.code,
                "message": self.message,
            }
        }


class DecodeError(HookRelayError):
    """The request could not be turned into delivery fields.

    Terminal for the request: no handler is invoked.
    """

    code: str = "decode_error"


class UnsupportedContentTypeError(DecodeError):
    """The declared content type is not one the listener accepts.

    Attributes:
        content_type: The content type that was rejected.
    """

    code: str = "unsupported_content_type"

    def __init__(self, content_type: str) -> None:
        self.content_type = content_type
        super().__init__(f"Unsupported content type: {content_type}")

    def to_dict(self) -> dict[str, object]:
        """Convert exception to API-friendly dictionary."""
        return {
            "error": {
                "code": self.code,
                "content_type": self.content_type,
                "message": self.message,
            }
        }


class MissingEventHeaderError(DecodeError):
    """No event name could be found in the request.

    Attributes:
        header: The header that was expected to carry the event name,
            or None when the provider itself could not be determined.
    """

    code: str = "missing_event_header"

    def __init__(self, header: str | None) -> None:
        self.header = header
        if header is None:
            message = "Could not determine delivery type"
        else:
            message = f"Missing event header: {header}"
        super().__init__(message)

    def to_dict(self) -> dict[str, object]:
        """Convert exception to API-friendly dictionary."""
        return {
            "error": {
                "code": self.code,
                "header": self.header,
                "message": self.message,
            }
        }


class VerificationError(HookRelayError):
    """Signature verification blocked the request."""

    code: str = "verification_error"


class SignatureRejectedError(VerificationError):
    """A delivery was refused because its signature is not valid.

    Only raised when the listener is configured to require valid
    signatures; otherwise the outcome is recorded on the Delivery.
    """

    code: str = "signature_rejected"


class HandlerError(HookRelayError):
    """A registered handler failed while processing a delivery.

    Attributes:
        hook: Name of the hook whose handler failed.
        event: Event name the hook was registered for.
        original: The exception raised by the handler.
    """

    code: str = "handler_error"

    def __init__(self, hook: str, event: str, original: BaseException) -> None:
        self.hook = hook
        self.event = event
        self.original = original
        super().__init__(f"Handler {hook!r} for '{event}' failed: {original!r}")

    def to_dict(self) -> dict[str, object]:
        """Convert exception to API-friendly dictionary."""
        return {
            "error": {
                "code": self.code,
                "hook": self.hook,
                "event": self.event,
                "message": self.message,
            }
        }


class ConfigurationError(HookRelayError):
    """Configuration error.

    Raised when listener configuration is missing or invalid.
    """

    code: str = "configuration_error"


class RegistryFrozenError(HookRelayError):
    """A hook was registered after the registry started serving."""

    code: str = "registry_frozen"
