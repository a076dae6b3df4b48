"""Hook registry: event name to an ordered list of handlers.

Registration happens during setup. Once a listener starts dispatching it
freezes the registry, after which lookups are read-only and safe to run
from concurrent requests without locking.

Example:
    ```python
    from hookrelay import Delivery, HookRegistry

    registry = HookRegistry()

    @registry.on("push")
    def on_push(delivery: Delivery) -> None:
        print("Pushed!", delivery.id)

    registry.register("*", lambda delivery: print(delivery.event))
    ```
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from hookrelay.exceptions import ConfigurationError, RegistryFrozenError
from hookrelay.logging import get_logger
from hookrelay.models import Delivery, ProviderProfile
from hookrelay.normalizer import normalize_event

logger = get_logger(__name__)

# Registration key that matches every event
WILDCARD = "*"

# A handler consumes a Delivery and returns an outcome, or an awaitable of one
Handler = Callable[[Delivery], Any]


@dataclass(frozen=True)
class Hook:
    """A handler registered for one event name.

    Attributes:
        event: Event name the hook listens to, or "*" for every event.
        handler: Callable invoked with the Delivery.
        name: Label used in logs and dispatch results.
    """

    event: str
    handler: Handler
    name: str

    @property
    def is_wildcard(self) -> bool:
        return self.event == WILDCARD


def _handler_name(handler: Handler) -> str:
    return getattr(handler, "__name__", None) or type(handler).__name__


class HookRegistry:
    """Ordered registry of hooks keyed by event name.

    Registering a second handler for an event appends it; nothing is ever
    replaced. Wildcard hooks run before event-specific hooks, and each
    group runs in registration order.
    """

    def __init__(self) -> None:
        self._hooks: dict[str, list[Hook]] = {}
        self._frozen = False

    def register(self, event: str, handler: Handler, name: str | None = None) -> Hook:
        """Append a handler for an event.

        Args:
            event: Canonical event name, or "*" for every event.
            handler: Callable accepting a Delivery. May be a coroutine function.
            name: Label for logs and results; defaults to the handler's name.

        Returns:
            The registered Hook.

        Raises:
            RegistryFrozenError: The registry is already serving requests.
            ConfigurationError: The event name is empty or not in canonical
                (lowercase, underscore-separated) form, or the handler is
                not callable.
        """
        if self._frozen:
            raise RegistryFrozenError(
                f"Cannot register a hook for '{event}' after dispatching has started"
            )
        if not isinstance(event, str) or not event.strip():
            raise ConfigurationError("Hook event name must be a non-empty string")
        if not callable(handler):
            raise ConfigurationError(f"Handler for '{event}' is not callable")
        canonical = normalize_event(ProviderProfile.GITLAB, event)
        if event != WILDCARD and canonical != event:
            # Deliveries are routed by normalized name
            raise ConfigurationError(
                f"Hook event '{event}' is not a canonical event name; use '{canonical}'"
            )

        hook = Hook(event=event, handler=handler, name=name or _handler_name(handler))
        self._hooks.setdefault(event, []).append(hook)
        logger.debug("Registered hook", hook_event=event, hook=hook.name)
        return hook

    def on(self, event: str, name: str | None = None) -> Callable[[Handler], Handler]:
        """Decorator form of register()."""

        def decorator(handler: Handler) -> Handler:
            self.register(event, handler, name=name)
            return handler

        return decorator

    def handlers_for(self, event: str) -> list[Hook]:
        """Hooks matching an event: wildcard hooks first, then exact matches."""
        matched = list(self._hooks.get(WILDCARD, ()))
        if event != WILDCARD:
            matched.extend(self._hooks.get(event, ()))
        return matched

    def freeze(self) -> None:
        """Stop accepting registrations."""
        self._frozen = True

    @property
    def frozen(self) -> bool:
        return self._frozen

    @property
    def events(self) -> list[str]:
        """Registered event names, in first-registration order."""
        return list(self._hooks)

    def __len__(self) -> int:
        return sum(len(hooks) for hooks in self._hooks.values())

    def __contains__(self, event: object) -> bool:
        return event in self._hooks
