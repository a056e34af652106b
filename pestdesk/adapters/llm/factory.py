"""Factory pattern for creating chat client instances."""

from pestdesk.adapters.llm.base import AbstractChatClient
from pestdesk.adapters.llm.gemini_client import GeminiClient
from pestdesk.adapters.llm.openrouter_client import OpenRouterClient
from pestdesk.core.config import settings
from pestdesk.core.errors import ValidationAppError

SUPPORTED_PROVIDERS = ("openrouter", "gemini")


def create_chat_client() -> AbstractChatClient:
    """Instantiate the chat client for the configured provider.

    Reads configuration from pestdesk.core.config.settings (Pydantic Settings).

    Returns:
        AbstractChatClient: Configured chat client instance.

    Raises:
        ValidationAppError: If the provider is unknown or has no API key.
    """
    provider = settings.llm.provider.lower()

    if provider not in SUPPORTED_PROVIDERS:
        raise ValidationAppError(
            code="llm_unknown_provider",
            message=(
                f"Unknown LLM provider: '{provider}'. "
                f"Supported providers: {', '.join(SUPPORTED_PROVIDERS)}"
            ),
        )

    if not settings.llm.api_key:
        raise ValidationAppError(
            code="llm_missing_api_key",
            message=f"{provider} provider requires LLM_API_KEY environment variable",
            details={"provider": provider},
        )

    if provider == "gemini":
        return GeminiClient(
            api_key=settings.llm.api_key,
            model=settings.llm.model,
            base_url=settings.llm.base_url,
            timeout_seconds=settings.llm.timeout_seconds,
            temperature=settings.llm.temperature,
        )

    return OpenRouterClient(
        api_key=settings.llm.api_key,
        model=settings.llm.model,
        base_url=settings.llm.base_url,
        timeout_seconds=settings.llm.timeout_seconds,
        temperature=settings.llm.temperature,
        http_referer=settings.llm.http_referer,
        app_title=settings.llm.app_title,
    )
