"""Data models for hookrelay.

Types:
    - ProviderProfile: GitHub or GitLab dialect, with its header table
    - DecodedFields: What the decoder extracted from a request
    - Delivery: Canonical, verified webhook event passed to handlers
    - SignatureState: not_checked / valid / invalid
    - HandlerResult, DispatchOutcome: What a dispatch produced
"""

from .delivery import ContentType, DecodedFields, Delivery, SignatureState
from .outcome import DispatchOutcome, DispatchStage, HandlerResult
from .provider import (
    PROVIDER_HEADERS,
    ProviderHeaders,
    ProviderProfile,
    SignatureScheme,
    detect_provider,
)

__all__ = [
    # Providers
    "PROVIDER_HEADERS",
    "ProviderHeaders",
    "ProviderProfile",
    "SignatureScheme",
    "detect_provider",
    # Deliveries
    "ContentType",
    "DecodedFields",
    "Delivery",
    "SignatureState",
    # Outcomes
    "DispatchOutcome",
    "DispatchStage",
    "HandlerResult",
]
