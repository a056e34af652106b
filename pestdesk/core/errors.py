"""Application-level exception types.

Domain errors shared by services and adapters so that handlers can map them
to consistent HTTP responses. Rate-limit rejections are deliberately not
exceptions: the limiter returns a result value and the HTTP layer turns it
into a 429.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, NotRequired, TypedDict


class ErrorDetails(TypedDict, total=False):
    """Structured error context for observability and clients."""

    code: str
    message: str
    hint: str
    provider: str
    model: str
    upstream_status: int
    upstream_message: str
    max_chars: int
    actual_chars: int
    request_id: str
    context: NotRequired[dict[str, Any]]


@dataclass
class AppError(Exception):
    """Base error for application/domain failures.

    Attributes:
        code: Stable, machine-readable error code.
        message: Human-readable error message.
        details: Optional structured details for debugging/observability.
    """

    code: str
    message: str
    details: ErrorDetails | None = None

    def __post_init__(self) -> None:
        # Populate Exception args so str(error) is useful in logs/tracebacks.
        super().__init__(self.message)


class ValidationAppError(AppError):
    """Raised when input/config validation fails."""


class LLMAppError(AppError):
    """Raised when the hosted LLM provider cannot produce an answer."""
