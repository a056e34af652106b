from __future__ import annotations

from pestdesk.api.routes.chat import router as chat_router
from pestdesk.api.routes.health import router as health_router

__all__ = ["chat_router", "health_router"]
