"""hookrelay: verified webhook deliveries for GitHub and GitLab.

Turns inbound webhook requests into typed, signature-checked Delivery
records and dispatches them to registered handlers.

Quick Start:
    from hookrelay import ListenerConfig, WebhookListener, WebhookRequest

    listener = WebhookListener(config=ListenerConfig(secret="s3cr3t"))

    @listener.on("push")
    def on_push(delivery):
        print("Pushed to", delivery.payload["ref"])

    @listener.on("*")
    def log_everything(delivery):
        print(delivery.event, delivery.signature_valid)

    outcome = listener.dispatch(WebhookRequest(headers=headers, body=body))

Providers:
    - GitHub: HMAC signatures (X-Hub-Signature-256 / X-Hub-Signature)
    - GitLab: shared token (X-Gitlab-Token); "Push Hook" routes as "push_hook"
"""

__version__ = "0.1.0"

# Pipeline stages and configuration
from .builder import build_delivery
from .config import ListenerConfig, Settings
from .decoder import HeaderMap, decode

# Dispatch
from .dispatcher import WebhookListener, WebhookRequest

# Exceptions
from .exceptions import (
    ConfigurationError,
    DecodeError,
    HandlerError,
    HookRelayError,
    MissingEventHeaderError,
    RegistryFrozenError,
    SignatureRejectedError,
    UnsupportedContentTypeError,
    VerificationError,
)

# Logging
from .logging import bound_context, clear_context, configure_logging, get_logger

# Models
from .models import (
    ContentType,
    DecodedFields,
    Delivery,
    DispatchOutcome,
    DispatchStage,
    HandlerResult,
    ProviderProfile,
    SignatureState,
)
from .normalizer import normalize_event
from .registry import WILDCARD, Hook, HookRegistry
from .signature import HmacBackend, MacBackend, compute_signature, verify_signature, verify_token

__all__ = [
    # Version
    "__version__",
    # Configuration
    "ListenerConfig",
    "Settings",
    # Pipeline
    "HeaderMap",
    "decode",
    "normalize_event",
    "build_delivery",
    "compute_signature",
    "verify_signature",
    "verify_token",
    "MacBackend",
    "HmacBackend",
    # Dispatch
    "WILDCARD",
    "Hook",
    "HookRegistry",
    "WebhookListener",
    "WebhookRequest",
    # Exceptions
    "HookRelayError",
    "DecodeError",
    "UnsupportedContentTypeError",
    "MissingEventHeaderError",
    "VerificationError",
    "SignatureRejectedError",
    "HandlerError",
    "ConfigurationError",
    "RegistryFrozenError",
    # Logging
    "configure_logging",
    "get_logger",
    "bound_context",
    "clear_context",
    # Models
    "ContentType",
    "DecodedFields",
    "Delivery",
    "DispatchOutcome",
    "DispatchStage",
    "HandlerResult",
    "ProviderProfile",
    "SignatureState",
]
