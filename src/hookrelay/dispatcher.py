"""Webhook dispatch: request to verified Delivery to handlers.

The listener decodes a request, normalizes its event name, verifies its
signature, builds the Delivery and invokes every matching hook. Wildcard
hooks run first, then hooks registered for the exact event, each group in
registration order. A failing handler is recorded in the outcome and never
stops the handlers after it.

Example:
    ```python
    from hookrelay import ListenerConfig, WebhookListener, WebhookRequest

    listener = WebhookListener(config=ListenerConfig(provider="github", secret="s3cr3t"))

    @listener.on("push")
    def on_push(delivery):
        return delivery.payload["ref"]

    outcome = listener.dispatch(
        WebhookRequest(headers=request_headers, body=request_body)
    )
    ```
"""

from __future__ import annotations

import asyncio
import inspect
from dataclasses import dataclass, field

from hookrelay.builder import build_delivery
from hookrelay.config import ListenerConfig, Settings
from hookrelay.decoder import HeaderMap, HeaderSource, decode
from hookrelay.exceptions import DecodeError, HandlerError, SignatureRejectedError
from hookrelay.logging import bound_context, get_logger
from hookrelay.models import Delivery, DispatchOutcome, DispatchStage, HandlerResult
from hookrelay.registry import Handler, Hook, HookRegistry
from hookrelay.signature import MacBackend, default_backend

logger = get_logger(__name__)


@dataclass(frozen=True)
class WebhookRequest:
    """An inbound request as handed over by the HTTP layer.

    Attributes:
        headers: Request headers; looked up case-insensitively.
        body: Fully read request body.
        content_type: Declared content type. Taken from the Content-Type
            header when None.
    """

    headers: HeaderMap = field(default_factory=HeaderMap)
    body: bytes = b""
    content_type: str | None = None

    def __post_init__(self) -> None:
        if not isinstance(self.headers, HeaderMap):
            object.__setattr__(self, "headers", HeaderMap(self.headers))

    @classmethod
    def create(
        cls,
        headers: HeaderSource,
        body: bytes = b"",
        content_type: str | None = None,
    ) -> WebhookRequest:
        """Create a request from any header mapping or list of pairs."""
        return cls(headers=HeaderMap(headers), body=body, content_type=content_type)

    @property
    def declared_content_type(self) -> str | None:
        if self.content_type is not None:
            return self.content_type
        return self.headers.get("content-type")


class WebhookListener:
    """Verifies webhook requests and dispatches them to registered hooks.

    Configuration is resolved once here. After the first dispatch the
    registry is frozen, so concurrent dispatches only ever read it.
    """

    def __init__(
        self,
        registry: HookRegistry | None = None,
        config: ListenerConfig | None = None,
        backend: MacBackend | None = None,
    ) -> None:
        """Initialize the listener.

        Args:
            registry: Hooks to dispatch to. A new empty registry if None.
            config: Listener options. Defaults: auto-detect provider, no
                secret, parsing and form support enabled.
            backend: MAC backend for HMAC verification.
        """
        self.registry = registry if registry is not None else HookRegistry()
        self.config = config or ListenerConfig()
        self._provider = self.config.provider_profile
        self._secret = self.config.secret_bytes
        self._backend = backend or default_backend

    @classmethod
    def from_settings(
        cls,
        settings: Settings | None = None,
        registry: HookRegistry | None = None,
    ) -> WebhookListener:
        """Create a listener configured from environment settings."""
        settings = settings or Settings()
        return cls(registry=registry, config=settings.to_listener_config())

    def register(self, event: str, handler: Handler, name: str | None = None) -> Hook:
        """Register a handler on this listener's registry."""
        return self.registry.register(event, handler, name=name)

    def on(self, event: str, name: str | None = None):
        """Decorator registering a handler on this listener's registry."""
        return self.registry.on(event, name=name)

    def prepare(self, request: WebhookRequest) -> Delivery | DispatchOutcome:
        """Run decoding and verification for a request.

        Returns:
            The Delivery, or an aborted DispatchOutcome if the request
            failed to decode or its signature was refused by policy.
        """
        self.registry.freeze()

        try:
            decoded = decode(
                request.declared_content_type,
                request.headers,
                request.body,
                provider=self._provider,
                support_form_encoded=self.config.support_form_encoded,
            )
        except DecodeError as e:
            logger.info(
                "Rejected webhook request",
                stage=DispatchStage.DECODE.value,
                error=e.message,
            )
            return DispatchOutcome.aborted(DispatchStage.DECODE, e)

        delivery = build_delivery(
            decoded,
            secret=self._secret,
            parse_enabled=self.config.parse_payload,
            backend=self._backend,
        )
        logger.debug(
            "Received delivery",
            webhook_event=delivery.event,
            delivery_id=delivery.id,
            provider=delivery.provider.value,
            signature_state=delivery.signature_valid.value,
        )

        if self.config.require_valid_signature and not delivery.authenticated:
            error = SignatureRejectedError(
                f"Signature {delivery.signature_valid.value} for '{delivery.event}' delivery"
            )
            logger.info(
                "Rejected webhook request",
                stage=DispatchStage.VERIFY.value,
                webhook_event=delivery.event,
                delivery_id=delivery.id,
            )
            return DispatchOutcome.aborted(DispatchStage.VERIFY, error, delivery)

        return delivery

    def dispatch(self, request: WebhookRequest) -> DispatchOutcome:
        """Process a request and run matching handlers synchronously.

        Coroutine handlers cannot run here; they are recorded as failed
        with a HandlerError pointing to adispatch().
        """
        prepared = self.prepare(request)
        if isinstance(prepared, DispatchOutcome):
            return prepared
        delivery = prepared

        hooks = self._match(delivery)
        with bound_context(webhook_event=delivery.event, delivery_id=delivery.id):
            results = [self._invoke(hook, delivery) for hook in hooks]
        return DispatchOutcome(delivery=delivery, results=results)

    async def adispatch(self, request: WebhookRequest) -> DispatchOutcome:
        """Process a request and run matching handlers on the event loop.

        Handlers are started in registration order and awaited together;
        results are reported in registration order whatever order they
        complete in. Plain functions run inline on the loop.
        """
        prepared = self.prepare(request)
        if isinstance(prepared, DispatchOutcome):
            return prepared
        delivery = prepared

        hooks = self._match(delivery)
        with bound_context(webhook_event=delivery.event, delivery_id=delivery.id):
            results = await asyncio.gather(*(self._ainvoke(hook, delivery) for hook in hooks))
        return DispatchOutcome(delivery=delivery, results=list(results))

    def _match(self, delivery: Delivery) -> list[Hook]:
        hooks = self.registry.handlers_for(delivery.event)
        if hooks:
            logger.debug("Matched hooks", webhook_event=delivery.event, count=len(hooks))
        else:
            logger.debug("No matched hook configured", webhook_event=delivery.event)
        return hooks

    def _invoke(self, hook: Hook, delivery: Delivery) -> HandlerResult:
        logger.debug("Running hook", hook=hook.name, hook_event=hook.event)
        try:
            value = hook.handler(delivery)
        except Exception as e:
            return self._failed(hook, delivery, e)

        if inspect.isawaitable(value):
            if inspect.iscoroutine(value):
                value.close()
            return self._failed(
                hook,
                delivery,
                TypeError("Coroutine handlers must be dispatched with adispatch()"),
            )
        return HandlerResult(hook=hook.name, event=hook.event, value=value)

    async def _ainvoke(self, hook: Hook, delivery: Delivery) -> HandlerResult:
        logger.debug("Running hook", hook=hook.name, hook_event=hook.event)
        try:
            value = hook.handler(delivery)
            if inspect.isawaitable(value):
                value = await value
        except Exception as e:
            return self._failed(hook, delivery, e)
        return HandlerResult(hook=hook.name, event=hook.event, value=value)

    def _failed(self, hook: Hook, delivery: Delivery, error: Exception) -> HandlerResult:
        logger.warning(
            "Hook failed",
            hook=hook.name,
            hook_event=hook.event,
            webhook_event=delivery.event,
            exc_info=error,
        )
        return HandlerResult(
            hook=hook.name,
            event=hook.event,
            error=HandlerError(hook.name, hook.event, error),
        )
