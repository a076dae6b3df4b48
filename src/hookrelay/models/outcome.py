"""Dispatch outcome models.

A dispatch either stops before any handler runs (decode failure, or a
signature rejected by policy) or produces one HandlerResult per matched
hook, in registration order.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from hookrelay.exceptions import HandlerError, HookRelayError

from .delivery import Delivery


class DispatchStage(str, Enum):
    """Pipeline stage at which a dispatch stopped."""

    DECODE = "decode"
    VERIFY = "verify"


@dataclass
class HandlerResult:
    """Outcome of one handler invocation.

    Attributes:
        hook: Name of the hook that ran.
        event: Event key the hook was registered under ("*" for wildcard).
        value: Whatever the handler returned.
        error: HandlerError wrapping the raised exception, if any.
    """

    hook: str
    event: str
    value: Any = None
    error: HandlerError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass
class DispatchOutcome:
    """Aggregated result of dispatching one request.

    Attributes:
        delivery: The built Delivery, or None if decoding failed.
        results: One entry per invoked handler, in registration order.
        error: Terminal error that stopped the dispatch, if any.
        stage: Stage at which the dispatch stopped, if it did.
    """

    delivery: Delivery | None = None
    results: list[HandlerResult] = field(default_factory=list)
    error: HookRelayError | None = None
    stage: DispatchStage | None = None

    @classmethod
    def aborted(
        cls,
        stage: DispatchStage,
        error: HookRelayError,
        delivery: Delivery | None = None,
    ) -> DispatchOutcome:
        """Create an outcome for a dispatch that stopped before any handler ran."""
        return cls(delivery=delivery, error=error, stage=stage)

    @property
    def ok(self) -> bool:
        """True if the dispatch completed and every handler succeeded."""
        return self.error is None and all(result.ok for result in self.results)

    @property
    def matched(self) -> bool:
        """True if at least one handler was invoked."""
        return bool(self.results)

    @property
    def failed(self) -> list[HandlerResult]:
        """Handler results that carry an error."""
        return [result for result in self.results if not result.ok]

    def raise_for_error(self) -> None:
        """Raise the terminal error, if the dispatch stopped early."""
        if self.error is not None:
            raise self.error
