"""FastAPI application wrapper for a webhook listener."""

from __future__ import annotations

from fastapi import FastAPI

from hookrelay.config import Settings
from hookrelay.dispatcher import WebhookListener
from hookrelay.logging import configure_logging, get_logger

from .router import create_router

logger = get_logger(__name__)


def create_app(
    listener: WebhookListener | None = None,
    path: str = "/webhook",
    settings: Settings | None = None,
) -> FastAPI:
    """Create a FastAPI application serving one webhook endpoint.

    Args:
        listener: Listener with hooks registered. Built from settings if None.
        path: Route path for the webhook endpoint.
        settings: Optional settings. Uses environment if None.

    Returns:
        Configured FastAPI application.

    Example:
        ```python
        import uvicorn
        from hookrelay import WebhookListener
        from hookrelay.api import create_app

        listener = WebhookListener.from_settings()
        listener.register("push", lambda delivery: print("Pushed!"))
        uvicorn.run(create_app(listener), host="0.0.0.0", port=4567)
        ```
    """
    if settings is None:
        settings = Settings()

    configure_logging(level=settings.log_level, format=settings.log_format)

    if listener is None:
        listener = WebhookListener.from_settings(settings)

    app = FastAPI(
        title="hookrelay",
        description="Verified GitHub/GitLab webhook dispatch.",
        version="0.1.0",
    )
    app.include_router(create_router(listener, path=path))
    logger.info(
        "Webhook route registered",
        path=path,
        provider=listener.config.provider,
        hooks=len(listener.registry),
    )
    return app
