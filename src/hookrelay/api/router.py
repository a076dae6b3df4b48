"""FastAPI router that feeds webhook requests to a listener."""

from __future__ import annotations

from fastapi import APIRouter, Request, status
from fastapi.responses import PlainTextResponse

from hookrelay.dispatcher import WebhookListener, WebhookRequest
from hookrelay.logging import get_logger
from hookrelay.models import DispatchOutcome, DispatchStage

logger = get_logger(__name__)


def outcome_response(outcome: DispatchOutcome) -> PlainTextResponse:
    """Translate a dispatch outcome into the reply sent to the provider.

    Decode failures and unmatched events answer 202 so the provider does
    not treat them as delivery errors. Handler failures are logged by the
    listener and still answer 200.
    """
    if outcome.stage is DispatchStage.DECODE:
        message = outcome.error.message if outcome.error else "Invalid payload"
        return PlainTextResponse(message, status_code=status.HTTP_202_ACCEPTED)
    if outcome.stage is DispatchStage.VERIFY:
        return PlainTextResponse("Invalid signature", status_code=status.HTTP_401_UNAUTHORIZED)
    if not outcome.matched:
        return PlainTextResponse(
            "No matched hook configured", status_code=status.HTTP_202_ACCEPTED
        )
    return PlainTextResponse("OK", status_code=status.HTTP_200_OK)


def create_router(listener: WebhookListener, path: str = "/webhook") -> APIRouter:
    """Create a router with a single POST endpoint for webhook deliveries.

    Args:
        listener: Listener that verifies and dispatches the deliveries.
        path: Route path for the endpoint.

    Returns:
        An APIRouter to include in the application.

    Example:
        ```python
        app = FastAPI()
        app.include_router(create_router(listener), prefix="/hooks")
        ```
    """
    router = APIRouter()

    @router.post(path, tags=["webhooks"], response_class=PlainTextResponse)
    async def receive_webhook(request: Request) -> PlainTextResponse:
        """Receive one webhook delivery."""
        body = await request.body()
        outcome = await listener.adispatch(WebhookRequest(headers=request.headers, body=body))
        if outcome.failed:
            logger.warning(
                "Delivery processed with handler failures",
                delivery_id=outcome.delivery.id if outcome.delivery else None,
                failed=[result.hook for result in outcome.failed],
            )
        return outcome_response(outcome)

    return router
