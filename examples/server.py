#!/usr/bin/env python3
"""Serve a webhook endpoint for GitHub and GitLab.

Demonstrates:
- Registering handlers for one event and for every event
- Async handlers running under the FastAPI adapter
- Settings read from HOOKRELAY_* environment variables

Prerequisites:
    - pip install "hookrelay[server]"
    - Secret in .env: HOOKRELAY_SECRET=s3cr3t

Try it:
    curl -X POST localhost:4567/webhook \\
        -H "X-GitHub-Event: ping" -H "Content-Type: application/json" -d '{}'
"""

import asyncio

import uvicorn

from hookrelay import Delivery, Settings, WebhookListener, get_logger
from hookrelay.api import create_app

logger = get_logger("examples.server")

settings = Settings()
listener = WebhookListener.from_settings(settings)


@listener.on("*")
def audit(delivery: Delivery) -> None:
    logger.info(
        "Delivery received",
        provider=delivery.provider.value,
        signature_state=delivery.signature_valid.value,
    )


@listener.on("push")
@listener.on("push_hook")
async def on_push(delivery: Delivery) -> str | None:
    if not delivery.authenticated or not isinstance(delivery.payload, dict):
        return None
    await asyncio.sleep(0)
    ref = delivery.payload.get("ref")
    logger.info("Push received", ref=ref)
    return ref


@listener.on("ping")
def on_ping(delivery: Delivery) -> str:
    return "pong"


app = create_app(listener, settings=settings)

if __name__ == "__main__":
    uvicorn.run(app, host="0.0.0.0", port=4567)
