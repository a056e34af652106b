"""OpenRouter chat client adapter (OpenAI-compatible API)."""

import logging
from typing import Any

from openai import APIStatusError, AsyncOpenAI, OpenAIError

from pestdesk.adapters.llm.base import AbstractChatClient, ChatMessageDict
from pestdesk.core.errors import LLMAppError

logger = logging.getLogger(__name__)

OPENROUTER_BASE_URL = "https://openrouter.ai/api/v1"
DEFAULT_MODEL = "google/gemini-2.0-flash-001"


class OpenRouterClient(AbstractChatClient):
    """Client for OpenRouter chat completions.

    Uses the official OpenAI Python SDK with async support, pointed at the
    OpenRouter endpoint. Multimodal (image_url) parts pass through unchanged.
    """

    provider = "openrouter"

    def __init__(
        self,
        api_key: str,
        model: str | None = None,
        base_url: str | None = None,
        timeout_seconds: float = 45.0,
        temperature: float = 0.7,
        http_referer: str | None = None,
        app_title: str | None = None,
    ) -> None:
        """Initialize the async client.

        Args:
            api_key: OpenRouter API key.
            model: Default model slug; DEFAULT_MODEL when omitted.
            base_url: Override for the OpenRouter endpoint.
            timeout_seconds: Timeout for requests in seconds.
            temperature: Default sampling temperature.
            http_referer: Site URL OpenRouter uses for attribution.
            app_title: App name OpenRouter uses for attribution.
        """
        headers: dict[str, str] = {}
        if http_referer:
            headers["HTTP-Referer"] = http_referer
        if app_title:
            headers["X-Title"] = app_title

        self.client = AsyncOpenAI(
            api_key=api_key,
            base_url=base_url or OPENROUTER_BASE_URL,
            timeout=timeout_seconds,
            default_headers=headers or None,
        )
        self.model = model or DEFAULT_MODEL
        self.temperature = temperature

    async def generate_reply(
        self,
        messages: list[ChatMessageDict],
        *,
        model: str | None = None,
        **kwargs: Any,
    ) -> str:
        """Generate the next assistant message via chat completions.

        Raises:
            LLMAppError: On transport/API errors or an empty completion.
        """
        model_name = model or self.model
        request_params: dict[str, Any] = {
            "model": model_name,
            "messages": messages,
            "temperature": kwargs.pop("temperature", self.temperature),
        }
        for param in ("max_tokens", "top_p", "seed"):
            if param in kwargs:
                request_params[param] = kwargs[param]

        try:
            response = await self.client.chat.completions.create(**request_params)
        except APIStatusError as exc:
            raise LLMAppError(
                code="llm_upstream_error",
                message="AI service is currently unavailable.",
                details={
                    "provider": self.provider,
                    "model": model_name,
                    "upstream_status": exc.status_code,
                    "upstream_message": str(exc.message),
                },
            ) from exc
        except OpenAIError as exc:
            raise LLMAppError(
                code="llm_request_failed",
                message="AI service is currently unavailable.",
                details={"provider": self.provider, "model": model_name},
            ) from exc

        choices = getattr(response, "choices", None) or []
        message = getattr(choices[0], "message", None) if choices else None
        content = getattr(message, "content", None)
        if not isinstance(content, str) or not content.strip():
            raise LLMAppError(
                code="llm_empty_response",
                message="AI service returned an empty response.",
                details={"provider": self.provider, "model": model_name},
            )

        return content.strip()
