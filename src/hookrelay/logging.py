"""Structured logging for hookrelay.

Log records carry the delivery they belong to: the listener binds
``webhook_event`` and ``delivery_id`` while handlers run, so anything a
handler logs through structlog is tagged with them too. Signature and
secret values are masked before rendering.
"""

from __future__ import annotations

import logging
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from typing import TYPE_CHECKING, Any

import structlog

if TYPE_CHECKING:
    from structlog.typing import EventDict, Processor, WrappedLogger

# Keys whose values must never reach a log sink
SENSITIVE_KEYS = frozenset({"secret", "signature", "token"})

REDACTED = "[redacted]"

_configured = False


def redact_sensitive(_logger: WrappedLogger, _method: str, event_dict: EventDict) -> EventDict:
    """Mask signature and secret values in a log record."""
    for key in SENSITIVE_KEYS.intersection(event_dict):
        if event_dict[key] is not None:
            event_dict[key] = REDACTED
    return event_dict


def configure_logging(level: str = "INFO", format: str = "json") -> None:
    """Configure structlog for the listener.

    Args:
        level: Log level name. Unknown names fall back to INFO.
        format: "json" for production, "text" for a colored console.
    """
    global _configured

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, level.upper(), logging.INFO),
    )

    processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        redact_sensitive,
        structlog.processors.TimeStamper(fmt="iso"),
    ]
    if format.lower() == "json":
        processors += [structlog.processors.format_exc_info, structlog.processors.JSONRenderer()]
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=True))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )
    _configured = True


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """Get a structured logger, configuring defaults on first use."""
    if not _configured:
        configure_logging()
    return structlog.get_logger(name)  # type: ignore[no-any-return]


@contextmanager
def bound_context(**values: Any) -> Iterator[None]:
    """Bind context variables for the duration of a block.

    Keys that were already bound get their previous values back on exit.

    Example:
        ```python
        with bound_context(webhook_event="push", delivery_id="d-1"):
            logger.info("Running hooks")
        ```
    """
    with structlog.contextvars.bound_contextvars(**values):
        yield


def clear_context() -> None:
    """Drop every bound context variable."""
    structlog.contextvars.clear_contextvars()
