"""Google Gemini chat client adapter (google-genai SDK)."""

from __future__ import annotations

import base64
import binascii
import logging
import mimetypes
from typing import Any

from google import genai
from google.genai import errors as genai_errors
from google.genai import types

from pestdesk.adapters.llm.base import AbstractChatClient, ChatMessageDict
from pestdesk.core.errors import LLMAppError

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "gemini-2.0-flash"

_ROLE_MAP = {"user": "user", "assistant": "model"}


def _image_part(url: str) -> types.Part:
    """Build an image part from a data: URL (inline bytes) or a remote URL."""
    if url.startswith("data:"):
        header, _, encoded = url.partition(",")
        mime_type = header[len("data:"):].split(";")[0] or "image/jpeg"
        try:
            data = base64.b64decode(encoded, validate=True)
        except (binascii.Error, ValueError) as exc:
            raise LLMAppError(
                code="invalid_image_data",
                message="Image data URL is not valid base64.",
                details={"provider": "gemini"},
            ) from exc
        return types.Part.from_bytes(data=data, mime_type=mime_type)

    mime_type = mimetypes.guess_type(url)[0] or "image/jpeg"
    return types.Part.from_uri(file_uri=url, mime_type=mime_type)


def _to_parts(content: Any) -> list[types.Part]:
    if isinstance(content, str):
        return [types.Part.from_text(text=content)]

    parts: list[types.Part] = []
    for item in content:
        if item.get("type") == "text":
            parts.append(types.Part.from_text(text=item["text"]))
        elif item.get("type") == "image_url":
            parts.append(_image_part(item["image_url"]["url"]))
    return parts


def to_gemini_contents(
    messages: list[ChatMessageDict],
) -> tuple[str | None, list[types.Content]]:
    """Split OpenAI-style messages into a system instruction and Gemini contents."""
    system_chunks: list[str] = []
    contents: list[types.Content] = []
    for message in messages:
        role = message["role"]
        if role == "system":
            system_chunks.append(str(message["content"]))
            continue
        contents.append(
            types.Content(role=_ROLE_MAP.get(role, "user"), parts=_to_parts(message["content"]))
        )
    system_instruction = "\n\n".join(system_chunks) or None
    return system_instruction, contents


class GeminiClient(AbstractChatClient):
    """Client for Gemini ``generate_content`` through the async SDK surface."""

    provider = "gemini"

    def __init__(
        self,
        api_key: str,
        model: str | None = None,
        base_url: str | None = None,
        timeout_seconds: float = 45.0,
        temperature: float = 0.7,
    ) -> None:
        http_options = types.HttpOptions(
            base_url=base_url,
            timeout=int(timeout_seconds * 1000),
        )
        self.client = genai.Client(api_key=api_key.strip(), http_options=http_options)
        self.model = model or DEFAULT_MODEL
        self.temperature = temperature

    async def generate_reply(
        self,
        messages: list[ChatMessageDict],
        *,
        model: str | None = None,
        **kwargs: Any,
    ) -> str:
        model_name = model or self.model
        system_instruction, contents = to_gemini_contents(messages)
        config = types.GenerateContentConfig(
            system_instruction=system_instruction,
            temperature=kwargs.pop("temperature", self.temperature),
            max_output_tokens=kwargs.get("max_tokens"),
        )

        try:
            response = await self.client.aio.models.generate_content(
                model=model_name,
                contents=contents,
                config=config,
            )
        except genai_errors.APIError as exc:
            raise LLMAppError(
                code="llm_upstream_error",
                message="AI service is currently unavailable.",
                details={
                    "provider": self.provider,
                    "model": model_name,
                    "upstream_status": exc.code,
                    "upstream_message": str(exc.message),
                },
            ) from exc
        except Exception as exc:
            # Transport errors surface as httpx/aiohttp exceptions
            raise LLMAppError(
                code="llm_request_failed",
                message="AI service is currently unavailable.",
                details={"provider": self.provider, "model": model_name},
            ) from exc

        text = (getattr(response, "text", None) or "").strip()
        if not text:
            raise LLMAppError(
                code="llm_empty_response",
                message="AI service returned an empty response.",
                details={"provider": self.provider, "model": model_name},
            )
        return text
