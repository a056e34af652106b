"""Chat orchestration: live AI answer first, local fallback second.

The service builds the conversation (system prompt, replayed history, new
user message), asks the configured provider for a reply and, when that
fails and the caller allowed it, answers from the local keyword table
instead. Quota checks happen before this service is reached.
"""

import logging
from typing import Any

from pestdesk.adapters.llm.base import AbstractChatClient, ChatMessageDict
from pestdesk.core.config import settings
from pestdesk.core.errors import LLMAppError, ValidationAppError
from pestdesk.schemas.chat import ChatRequest, ChatResponse, StatusResponse
from pestdesk.services.fallback_service import get_local_reply

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = (
    "You are the Professional Pest Control Intelligence Assistant (2026 Edition). "
    "Developed by Osteen. You are based in Nairobi, Kenya. "
    "Provide warm, empathetic, and expert advice on pest control. "
    "Use Markdown tables for comparisons. Use LaTeX for chemical formulas if mentioned."
)


def build_messages(request: ChatRequest) -> list[ChatMessageDict]:
    """Assemble the provider conversation for a chat request.

    Multimodal messages are forwarded as a list of OpenAI-style parts.
    """
    messages: list[ChatMessageDict] = [{"role": "system", "content": SYSTEM_PROMPT}]
    messages.extend({"role": turn.role, "content": turn.content} for turn in request.history)

    if isinstance(request.message, str):
        content: Any = request.message
    else:
        content = [part.model_dump() for part in request.message]
    messages.append({"role": "user", "content": content})
    return messages


class ChatService:
    """Answers chat requests via a live provider with a local safety net.

    Attributes:
        llm: Live chat client, or None when no provider is configured.
        safety_first: Passed through to the local fallback classifier.
    """

    def __init__(self, llm: AbstractChatClient | None, *, safety_first: bool = False) -> None:
        self.llm = llm
        self.safety_first = safety_first

    def status(self) -> StatusResponse:
        live = self.llm is not None
        return StatusResponse(
            gemini=live and getattr(self.llm, "provider", None) == "gemini",
            live=live,
        )

    def validate(self, request: ChatRequest) -> None:
        """Reject empty or oversized messages.

        Raises:
            ValidationAppError: ``empty_message`` or ``message_too_long``.
        """
        text = request.text_content()
        if not text.strip() and not request.has_images():
            raise ValidationAppError(
                code="empty_message",
                message="Message must contain text or an image.",
            )
        if len(text) > settings.app.max_message_chars:
            raise ValidationAppError(
                code="message_too_long",
                message="Message is too long.",
                details={
                    "max_chars": settings.app.max_message_chars,
                    "actual_chars": len(text),
                },
            )

    def _fallback(self, request: ChatRequest, reason: str) -> ChatResponse:
        reply = get_local_reply(request.text_content(), safety_first=self.safety_first)
        logger.info(
            "chat.fallback_used",
            extra={"reason": reason, "note": reply.note},
        )
        return ChatResponse(response=reply.answer, is_fallback=True, note=reply.note)

    async def reply(self, request: ChatRequest) -> ChatResponse:
        """Answer one chat message.

        Raises:
            ValidationAppError: If the message is empty or too long.
            LLMAppError: If the live provider fails (or is not configured)
                and the request is live-only.
        """
        self.validate(request)

        if self.llm is None:
            if request.live_only:
                raise LLMAppError(
                    code="llm_not_configured",
                    message="AI service is not configured on this server.",
                    details={"hint": "Set LLM_API_KEY or send liveOnly=false to use the local fallback."},
                )
            return self._fallback(request, reason="llm_not_configured")

        try:
            answer = await self.llm.generate_reply(build_messages(request), model=request.model)
        except LLMAppError as exc:
            logger.warning(
                "llm.request_failed",
                extra={
                    "error_code": exc.code,
                    "provider": self.llm.provider,
                    "live_only": request.live_only,
                },
            )
            if request.live_only:
                raise
            return self._fallback(request, reason=exc.code)

        logger.info(
            "chat.live_reply",
            extra={
                "provider": self.llm.provider,
                "model": request.model or self.llm.model,
                "history_turns": len(request.history),
                "has_images": request.has_images(),
            },
        )
        return ChatResponse(response=answer, is_fallback=False)
