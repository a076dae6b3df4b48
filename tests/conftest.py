"""Pytest configuration and shared fixtures."""

from __future__ import annotations

import json
import sys
from pathlib import Path

import pytest

from hookrelay import (
    HookRegistry,
    ListenerConfig,
    WebhookListener,
    WebhookRequest,
    clear_context,
    compute_signature,
)

# Add tests directory to path so request helpers can be imported
tests_dir = Path(__file__).parent
if str(tests_dir) not in sys.path:
    sys.path.insert(0, str(tests_dir))

SECRET = "s3cr3t"

PUSH_PAYLOAD = {"ref": "refs/heads/main", "commits": []}


def github_request(
    event: str = "push",
    payload: object = PUSH_PAYLOAD,
    secret: str | None = SECRET,
    delivery_id: str | None = "d-1",
    content_type: str | None = "application/json",
) -> WebhookRequest:
    """Build a GitHub-style JSON request, signed with SHA-1 when a secret is given."""
    body = json.dumps(payload).encode("utf-8")
    headers = {"X-GitHub-Event": event}
    if delivery_id is not None:
        headers["X-GitHub-Delivery"] = delivery_id
    if secret is not None:
        headers["X-Hub-Signature"] = "sha1=" + compute_signature(secret.encode(), body)
    if content_type is not None:
        headers["Content-Type"] = content_type
    return WebhookRequest.create(headers, body)


def gitlab_request(
    event: str = "Push Hook",
    payload: object = PUSH_PAYLOAD,
    token: str | None = SECRET,
) -> WebhookRequest:
    """Build a GitLab-style JSON request carrying a shared token."""
    headers = {
        "X-Gitlab-Event": event,
        "X-Gitlab-Event-UUID": "g-1",
        "Content-Type": "application/json",
    }
    if token is not None:
        headers["X-Gitlab-Token"] = token
    return WebhookRequest.create(headers, json.dumps(payload).encode("utf-8"))


@pytest.fixture(autouse=True)
def _clean_log_context():
    """Keep bound log context from leaking between tests."""
    clear_context()
    yield
    clear_context()


@pytest.fixture
def registry() -> HookRegistry:
    """Create an empty hook registry."""
    return HookRegistry()


@pytest.fixture
def listener(registry: HookRegistry) -> WebhookListener:
    """Create a GitHub listener with a shared secret."""
    return WebhookListener(
        registry=registry,
        config=ListenerConfig(provider="github", secret=SECRET),
    )
