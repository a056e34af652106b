"""Pydantic schemas for the chat API.

Field names on the wire are camelCase (``liveOnly``, ``isFallback``) to
match the web client; Python code uses snake_case attributes.
"""

from __future__ import annotations

from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class TextPart(BaseModel):
    """Plain text segment of a multimodal message."""

    type: Literal["text"]
    text: str


class ImageURL(BaseModel):
    url: str = Field(..., description="HTTP(S) URL or base64 data: URL of the image.")


class ImagePart(BaseModel):
    """Image segment of a multimodal message (photo of the pest or damage)."""

    type: Literal["image_url"]
    image_url: ImageURL


MessagePart = Annotated[Union[TextPart, ImagePart], Field(discriminator="type")]


class HistoryMessage(BaseModel):
    """A previous turn of the conversation, replayed to the model."""

    role: Literal["user", "assistant"]
    content: str


class ChatRequest(_CamelModel):
    """Chat message sent by the web client."""

    message: Union[str, list[MessagePart]] = Field(
        ...,
        description="User question as text, or a list of text/image parts.",
    )
    live_only: bool = Field(
        default=True,
        description="Fail instead of returning a local fallback answer when the AI provider is unavailable.",
    )
    model: str | None = Field(
        default=None,
        description="Override the configured model for this request.",
    )
    history: list[HistoryMessage] = Field(
        default_factory=list,
        description="Earlier turns of the conversation, oldest first.",
    )

    def text_content(self) -> str:
        """Text portion of the message (image parts are ignored)."""
        if isinstance(self.message, str):
            return self.message
        return "\n".join(part.text for part in self.message if isinstance(part, TextPart))

    def has_images(self) -> bool:
        if isinstance(self.message, str):
            return False
        return any(isinstance(part, ImagePart) for part in self.message)


class ChatResponse(_CamelModel):
    """Answer returned to the web client."""

    response: str = Field(..., description="Answer text (Markdown).")
    is_fallback: bool = Field(
        ...,
        description="True when the answer was produced locally instead of by the AI provider.",
    )
    note: str | None = Field(
        default=None,
        description="Fallback marker: 'using local fallback' or 'safety-first'.",
    )


class StatusResponse(BaseModel):
    """Which AI backends the server can currently reach."""

    gemini: bool = Field(..., description="True when the Gemini provider is configured.")
    live: bool = Field(..., description="True when any live AI provider is configured.")


class RateLimitStatusResponse(_CamelModel):
    """Remaining free-tier quota for the calling client."""

    per_minute_limit: int
    per_day_limit: int
    day_remaining: int
    minute_remaining: int
    day_reset_in_seconds: int | None = None
