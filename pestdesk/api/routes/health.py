from __future__ import annotations

from fastapi import APIRouter

router = APIRouter(tags=["Health"])


@router.get("/health")
def health_check() -> dict:
    """Liveness probe used by the hosting platform.

    Returns:
        dict: ``{"status": "ok"}``; does not call the AI provider.
    """

    return {"status": "ok"}
