import logging
from typing import Annotated

from fastapi import APIRouter, Depends, Header, Request

from pestdesk.adapters.llm.factory import create_chat_client
from pestdesk.core.config import settings
from pestdesk.core.errors import ValidationAppError
from pestdesk.core.rate_limit import enforce_rate_limit, get_rate_limiter, rate_limit_key_for
from pestdesk.schemas.chat import (
    ChatRequest,
    ChatResponse,
    RateLimitStatusResponse,
    StatusResponse,
)
from pestdesk.services.chat_service import ChatService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Chat"])

_chat_service: ChatService | None = None


def get_chat_service() -> ChatService:
    """Return the process-wide chat service, building it on first use.

    A missing or unknown provider does not stop the server: it runs in
    fallback-only mode and reports ``live: false``.
    """
    global _chat_service

    if _chat_service is None:
        try:
            llm = create_chat_client()
        except ValidationAppError as exc:
            logger.warning(
                "llm.not_configured",
                extra={"error_code": exc.code, "provider": settings.llm.provider},
            )
            llm = None
        _chat_service = ChatService(llm=llm, safety_first=settings.app.fallback_safety_first)
    return _chat_service


@router.post(
    "/chat",
    response_model=ChatResponse,
    response_model_exclude_none=True,
)
async def send_chat(
    payload: ChatRequest,
    request: Request,
    x_api_key: Annotated[str | None, Header(alias="X-API-Key")] = None,
    service: ChatService = Depends(get_chat_service),
) -> ChatResponse:
    """Answer a pest-control question.

    Returns the live AI answer, or a local fallback answer (``isFallback:
    true``) when the provider fails and ``liveOnly`` is false. Malformed or
    empty messages are rejected before any free-tier quota is consumed.

    Raises:
        ValidationAppError: 400 for an empty or oversized message.
        HTTPException: 429 when the free-tier quota is exhausted.
        LLMAppError: 502 when the provider fails in live-only mode.
    """
    service.validate(payload)
    await enforce_rate_limit(request, x_api_key)
    return await service.reply(payload)


@router.get("/status", response_model=StatusResponse)
def get_status(service: ChatService = Depends(get_chat_service)) -> StatusResponse:
    """Report whether a live AI backend is configured."""
    return service.status()


@router.get("/rate-limit", response_model=RateLimitStatusResponse)
def get_rate_limit_status(key: str = Depends(rate_limit_key_for)) -> RateLimitStatusResponse:
    """Remaining free-tier quota for the caller; does not consume quota."""
    status = get_rate_limiter().get_status(key)
    return RateLimitStatusResponse(
        per_minute_limit=status.per_minute_limit,
        per_day_limit=status.per_day_limit,
        day_remaining=status.day_remaining,
        minute_remaining=status.minute_remaining,
        day_reset_in_seconds=status.day_reset_in_seconds,
    )
