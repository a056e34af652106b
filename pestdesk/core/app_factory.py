from __future__ import annotations

"""Application factory for the FastAPI app.

Centralizes app construction (metadata, middleware, handlers, routers) so
tests can build isolated instances.
"""

from fastapi import FastAPI

from pestdesk import __version__
from pestdesk.api.routes import chat_router, health_router
from pestdesk.core.config import settings
from pestdesk.core.exception_handlers import setup_exception_handlers
from pestdesk.core.logging import configure_logging
from pestdesk.core.middleware import request_id_middleware

OPENAPI_TAGS = [
    {
        "name": "Chat",
        "description": "Pest-control questions, backend status and free-tier quota.",
    },
    {
        "name": "Health",
        "description": "Liveness checks.",
    },
]


def create_app() -> FastAPI:
    """Create and configure the FastAPI application instance.

    Returns:
        Configured FastAPI app with middleware, handlers and routers.
    """
    # Logging first so subsequent init logs are formatted as desired
    configure_logging(settings.log)

    app = FastAPI(
        title="PestDesk API",
        description=(
            "Pest-control advisory chat. Questions (text or images) are answered by "
            "a hosted LLM via OpenRouter or Gemini, with a deterministic local "
            "fallback when the provider is unavailable. Free-tier quotas apply "
            "per client per minute and per UTC day."
        ),
        version=__version__,
        openapi_tags=OPENAPI_TAGS,
        debug=settings.app.debug,
    )

    app.middleware("http")(request_id_middleware)

    setup_exception_handlers(app)

    app.include_router(chat_router, prefix="/api")
    app.include_router(health_router)

    return app
