"""FastAPI adapter for hookrelay.

Example:
    ```python
    import uvicorn
    from hookrelay import WebhookListener
    from hookrelay.api import create_app

    listener = WebhookListener.from_settings()
    uvicorn.run(create_app(listener), host="0.0.0.0", port=4567)
    ```
"""

from .app import create_app
from .router import create_router, outcome_response

__all__ = [
    "create_app",
    "create_router",
    "outcome_response",
]
