"""Tests for the webhook listener and dispatch pipeline."""

from __future__ import annotations

import asyncio
from urllib.parse import urlencode

import pytest
import structlog
from conftest import SECRET, github_request, gitlab_request

from hookrelay import (
    ListenerConfig,
    Settings,
    WebhookListener,
    WebhookRequest,
    compute_signature,
)
from hookrelay.exceptions import (
    HandlerError,
    MissingEventHeaderError,
    RegistryFrozenError,
    SignatureRejectedError,
    UnsupportedContentTypeError,
)
from hookrelay.models import DispatchStage, ProviderProfile, SignatureState


class TestWebhookRequest:
    """Tests for the request value object."""

    def test_headers_normalized(self):
        """Plain dict headers should become a case-insensitive map."""
        request = WebhookRequest(headers={"Content-Type": "application/json"})
        assert request.headers["content-type"] == "application/json"

    def test_declared_content_type_from_header(self):
        """Content type falls back to the Content-Type header."""
        request = WebhookRequest.create({"Content-Type": "application/json"}, b"{}")
        assert request.declared_content_type == "application/json"

    def test_explicit_content_type_wins(self):
        """An explicit content type overrides the header."""
        request = WebhookRequest.create(
            {"Content-Type": "application/json"},
            b"",
            content_type="application/x-www-form-urlencoded",
        )
        assert request.declared_content_type == "application/x-www-form-urlencoded"


class TestDispatch:
    """Tests for synchronous dispatch."""

    def test_signed_push_reaches_handler(self, listener: WebhookListener):
        """A signed GitHub push should reach its handler verified and parsed."""
        seen = []
        listener.register("push", seen.append)

        outcome = listener.dispatch(github_request())

        assert outcome.ok
        assert outcome.matched
        assert len(seen) == 1
        delivery = seen[0]
        assert delivery.event == "push"
        assert delivery.id == "d-1"
        assert delivery.provider is ProviderProfile.GITHUB
        assert delivery.signature_valid is SignatureState.VALID
        assert delivery.payload == {"ref": "refs/heads/main", "commits": []}
        assert outcome.delivery == delivery

    def test_bad_signature_still_dispatched(self, listener: WebhookListener):
        """Without a signature policy, an invalid signature is only recorded."""
        seen = []
        listener.register("push", seen.append)

        outcome = listener.dispatch(github_request(secret="wrong"))

        assert outcome.ok
        assert seen[0].signature_valid is SignatureState.INVALID

    def test_no_secret_not_checked(self):
        """A listener without a secret never checks signatures."""
        seen = []
        listener = WebhookListener()
        listener.register("push", seen.append)

        listener.dispatch(github_request(secret="anything"))

        assert seen[0].signature_valid is SignatureState.NOT_CHECKED

    def test_handler_return_values(self, listener: WebhookListener):
        """Results should carry handler return values in order."""
        listener.register("*", lambda d: "audit", name="audit")
        listener.register("push", lambda d: d.payload["ref"], name="ref")

        outcome = listener.dispatch(github_request())

        assert [(r.hook, r.event, r.value) for r in outcome.results] == [
            ("audit", "*", "audit"),
            ("ref", "push", "refs/heads/main"),
        ]

    def test_unmatched_event(self, listener: WebhookListener):
        """An event with no hooks should dispatch nothing and not fail."""
        listener.register("issues", lambda d: None)

        outcome = listener.dispatch(github_request())

        assert outcome.ok
        assert not outcome.matched
        assert outcome.delivery is not None

    def test_handler_failure_isolated(self, listener: WebhookListener):
        """A failing handler should not stop the ones after it."""
        calls = []

        def boom(delivery):
            calls.append("boom")
            raise RuntimeError("kaboom")

        listener.register("push", boom)
        listener.register("push", lambda d: calls.append("after"), name="after")

        outcome = listener.dispatch(github_request())

        assert calls == ["boom", "after"]
        assert not outcome.ok
        assert outcome.error is None
        assert [r.hook for r in outcome.failed] == ["boom"]
        error = outcome.failed[0].error
        assert isinstance(error, HandlerError)
        assert isinstance(error.original, RuntimeError)
        assert error.event == "push"
        assert outcome.results[1].ok

    def test_coroutine_handler_rejected(self, listener: WebhookListener):
        """Coroutine handlers need adispatch()."""

        async def async_handler(delivery):
            return "never"

        listener.register("push", async_handler)

        outcome = listener.dispatch(github_request())

        assert len(outcome.failed) == 1
        assert isinstance(outcome.failed[0].error.original, TypeError)

    def test_decode_failure_runs_no_handler(self, listener: WebhookListener):
        """A request that fails to decode should run no handler."""
        calls = []
        listener.register("*", calls.append)

        outcome = listener.dispatch(github_request(content_type="text/plain"))

        assert calls == []
        assert outcome.stage is DispatchStage.DECODE
        assert isinstance(outcome.error, UnsupportedContentTypeError)
        assert outcome.delivery is None
        assert not outcome.ok
        with pytest.raises(UnsupportedContentTypeError):
            outcome.raise_for_error()

    def test_missing_event_header(self, listener: WebhookListener):
        """A request without event header should stop at decoding."""
        request = WebhookRequest.create({"Content-Type": "application/json"}, b"{}")
        outcome = listener.dispatch(request)

        assert outcome.stage is DispatchStage.DECODE
        assert isinstance(outcome.error, MissingEventHeaderError)

    def test_registry_frozen_after_dispatch(self, listener: WebhookListener):
        """Registration should be refused once dispatching has started."""
        listener.dispatch(github_request())

        with pytest.raises(RegistryFrozenError):
            listener.register("push", lambda d: None)

    def test_log_context_bound_during_handlers(self, listener: WebhookListener):
        """Handlers should see the event and delivery id in log context."""
        contexts = []
        listener.register(
            "push", lambda d: contexts.append(structlog.contextvars.get_contextvars())
        )

        listener.dispatch(github_request())

        assert contexts[0]["webhook_event"] == "push"
        assert contexts[0]["delivery_id"] == "d-1"
        assert "webhook_event" not in structlog.contextvars.get_contextvars()


class TestSignaturePolicy:
    """Tests for refusing deliveries whose signature is not valid."""

    @pytest.fixture
    def strict_listener(self) -> WebhookListener:
        """Create a listener that requires valid signatures."""
        return WebhookListener(
            config=ListenerConfig(provider="github", secret=SECRET, require_valid_signature=True)
        )

    def test_invalid_signature_refused(self, strict_listener: WebhookListener):
        """An invalid signature should stop before any handler runs."""
        calls = []
        strict_listener.register("push", calls.append)

        outcome = strict_listener.dispatch(github_request(secret="wrong"))

        assert calls == []
        assert outcome.stage is DispatchStage.VERIFY
        assert isinstance(outcome.error, SignatureRejectedError)
        assert outcome.delivery is not None
        assert outcome.delivery.signature_valid is SignatureState.INVALID

    def test_missing_signature_refused(self, strict_listener: WebhookListener):
        """A missing signature should be refused too."""
        outcome = strict_listener.dispatch(github_request(secret=None))
        assert outcome.stage is DispatchStage.VERIFY

    def test_valid_signature_accepted(self, strict_listener: WebhookListener):
        """A valid signature should dispatch normally."""
        calls = []
        strict_listener.register("push", calls.append)

        outcome = strict_listener.dispatch(github_request())

        assert outcome.ok
        assert len(calls) == 1


class TestGitLab:
    """Tests for GitLab deliveries."""

    def test_push_hook(self):
        """A GitLab push should route as push_hook with a verified token."""
        seen = []
        listener = WebhookListener(config=ListenerConfig(secret=SECRET))
        listener.register("push_hook", seen.append)

        outcome = listener.dispatch(gitlab_request())

        assert outcome.ok
        assert seen[0].provider is ProviderProfile.GITLAB
        assert seen[0].id == "g-1"
        assert seen[0].signature_valid is SignatureState.VALID

    def test_wrong_token(self):
        """A wrong token should be recorded as invalid."""
        seen = []
        listener = WebhookListener(config=ListenerConfig(provider="gitlab", secret=SECRET))
        listener.register("push_hook", seen.append)

        listener.dispatch(gitlab_request(token="nope"))

        assert seen[0].signature_valid is SignatureState.INVALID

    def test_form_encoded_issue_hook(self):
        """A form-encoded GitLab issue should parse the nested payload."""
        seen = []
        listener = WebhookListener()
        listener.register("issue_hook", seen.append)
        body = urlencode({"payload": '{"action":"opened"}'}).encode()

        outcome = listener.dispatch(
            WebhookRequest.create(
                {
                    "X-Gitlab-Event": "Issue Hook",
                    "Content-Type": "application/x-www-form-urlencoded",
                },
                body,
            )
        )

        assert outcome.ok
        assert seen[0].event == "issue_hook"
        assert seen[0].payload == {"action": "opened"}
        assert seen[0].payload_raw == body

    def test_fixed_provider_ignores_other_headers(self):
        """A listener fixed to GitHub should not accept GitLab requests."""
        listener = WebhookListener(config=ListenerConfig(provider="github"))
        outcome = listener.dispatch(gitlab_request())
        assert outcome.stage is DispatchStage.DECODE


class TestAsyncDispatch:
    """Tests for dispatching on the event loop."""

    @pytest.mark.asyncio
    async def test_async_handlers_in_registration_order(self, listener: WebhookListener):
        """Results should follow registration order, not completion order."""

        async def slow(delivery):
            await asyncio.sleep(0.02)
            return "slow"

        async def fast(delivery):
            return "fast"

        listener.register("push", slow)
        listener.register("push", fast)
        listener.register("push", lambda d: "sync", name="sync")

        outcome = await listener.adispatch(github_request())

        assert outcome.ok
        assert [r.value for r in outcome.results] == ["slow", "fast", "sync"]

    @pytest.mark.asyncio
    async def test_async_failure_isolated(self, listener: WebhookListener):
        """A failing coroutine handler should not affect the others."""

        async def boom(delivery):
            raise ValueError("bad")

        listener.register("push", boom)
        listener.register("push", lambda d: "ok", name="ok")

        outcome = await listener.adispatch(github_request())

        assert [r.hook for r in outcome.failed] == ["boom"]
        assert outcome.results[1].value == "ok"

    @pytest.mark.asyncio
    async def test_async_decode_failure(self, listener: WebhookListener):
        """Decode failures abort async dispatch the same way."""
        outcome = await listener.adispatch(WebhookRequest.create({}, b"{}"))
        assert outcome.stage is DispatchStage.DECODE

    @pytest.mark.asyncio
    async def test_concurrent_dispatches(self, listener: WebhookListener):
        """Concurrent requests should each get their own Delivery."""
        seen = []

        async def record(delivery):
            await asyncio.sleep(0)
            seen.append(delivery.id)

        listener.register("push", record)

        await asyncio.gather(
            *(listener.adispatch(github_request(delivery_id=f"d-{i}")) for i in range(5))
        )

        assert sorted(seen) == [f"d-{i}" for i in range(5)]


class TestFromSettings:
    """Tests for building a listener from settings."""

    def test_from_settings(self):
        """Settings should carry through to the listener config."""
        settings = Settings(provider="gitlab", secret=SECRET, parse_payload=False)
        listener = WebhookListener.from_settings(settings)
        assert listener.config.provider == "gitlab"
        assert listener.config.secret_bytes == SECRET.encode()
        assert listener.config.parse_payload is False


class TestEndToEnd:
    """Full request-to-Delivery scenarios."""

    def test_unsigned_json_push(self):
        """A JSON push with no secret configured should arrive not checked."""
        seen = []
        listener = WebhookListener()
        listener.register("push", seen.append)

        listener.dispatch(
            WebhookRequest.create(
                {"X-GitHub-Event": "push", "Content-Type": "application/json"},
                b'{"ref":"refs/heads/main"}',
            )
        )

        assert seen[0].event == "push"
        assert seen[0].payload == {"ref": "refs/heads/main"}
        assert seen[0].signature_valid is SignatureState.NOT_CHECKED

    @pytest.mark.parametrize(
        "signature_header",
        [
            {},
            {"X-Hub-Signature": "sha1=0000"},
            {"X-Hub-Signature-256": "garbage"},
        ],
    )
    def test_no_secret_never_invalid(self, signature_header):
        """Without a secret the state is not checked whatever headers arrive."""
        seen = []
        listener = WebhookListener()
        listener.register("push", seen.append)

        listener.dispatch(
            WebhookRequest.create({"X-GitHub-Event": "push", **signature_header}, b"{}")
        )

        assert seen[0].signature_valid is SignatureState.NOT_CHECKED

    def test_signed_hello(self):
        """A correct MAC verifies; one flipped character does not."""
        seen = []
        listener = WebhookListener(config=ListenerConfig(secret="s3cr3t"))
        listener.register("push", seen.append)
        signature = "sha1=" + compute_signature(b"s3cr3t", b"hello")
        flipped = signature[:-1] + ("0" if signature[-1] != "0" else "1")

        for value in (signature, flipped):
            listener.dispatch(
                WebhookRequest.create(
                    {"X-GitHub-Event": "push", "X-Hub-Signature": value}, b"hello"
                )
            )

        assert [d.signature_valid for d in seen] == [SignatureState.VALID, SignatureState.INVALID]
        assert seen[0].payload is None
        assert seen[0].payload_raw == b"hello"

    def test_missing_signature_with_secret(self):
        """A configured secret with no signature header is invalid."""
        seen = []
        listener = WebhookListener(config=ListenerConfig(secret="s3cr3t"))
        listener.register("push", seen.append)

        listener.dispatch(WebhookRequest.create({"X-GitHub-Event": "push"}, b"{}"))

        assert seen[0].signature_valid is SignatureState.INVALID

    def test_deeply_nested_body(self):
        """A body too deeply nested to parse should still reach handlers."""
        seen = []
        listener = WebhookListener()
        listener.register("push", seen.append)
        body = b"[" * 200000

        outcome = listener.dispatch(
            WebhookRequest.create(
                {"X-GitHub-Event": "push", "Content-Type": "application/json"}, body
            )
        )

        assert outcome.ok
        assert seen[0].payload is None
        assert seen[0].payload_raw == body

    def test_form_payload_text_without_parsing(self):
        """With parsing off, form handlers still get the nested JSON text."""
        seen = []
        listener = WebhookListener(config=ListenerConfig(parse_payload=False))
        listener.register("issue_hook", seen.append)

        listener.dispatch(
            WebhookRequest.create(
                {
                    "X-Gitlab-Event": "Issue Hook",
                    "Content-Type": "application/x-www-form-urlencoded",
                },
                urlencode({"payload": '{"action":"opened"}'}).encode(),
            )
        )

        assert seen[0].payload is None
        assert seen[0].payload_text == '{"action":"opened"}'
