"""Event name normalization.

GitLab sends event names such as ``"Push Hook"``; GitHub sends ``"push"``.
Both are matched against registrations in lowercase, underscore-separated
form, so a GitLab push is routed as ``"push_hook"``.
"""

from __future__ import annotations

import re

from hookrelay.models import ProviderProfile

_WHITESPACE = re.compile(r"\s+")


def normalize_event(provider: ProviderProfile, raw_event_name: str) -> str:
    """Map a provider's event name to its canonical form.

    Idempotent: normalizing a normalized name returns it unchanged.

    Args:
        provider: Provider dialect the name was sent in.
        raw_event_name: Event name as it appeared in the request header.

    Returns:
        The canonical event name.

    Examples:
        >>> normalize_event(ProviderProfile.GITLAB, "Merge Request Hook")
        'merge_request_hook'
        >>> normalize_event(ProviderProfile.GITHUB, "pull_request")
        'pull_request'
    """
    if provider is ProviderProfile.GITLAB:
        return _WHITESPACE.sub("_", raw_event_name.strip()).lower()
    return raw_event_name
