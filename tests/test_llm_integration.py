"""Integration tests for LLM adapter layer."""

import base64
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest
from openai import APIConnectionError, APIStatusError

from pestdesk.adapters.llm import GeminiClient, OpenRouterClient, create_chat_client
from pestdesk.adapters.llm.gemini_client import DEFAULT_MODEL as GEMINI_DEFAULT_MODEL
from pestdesk.adapters.llm.gemini_client import to_gemini_contents
from pestdesk.adapters.llm.openrouter_client import DEFAULT_MODEL as OPENROUTER_DEFAULT_MODEL
from pestdesk.adapters.llm.openrouter_client import OPENROUTER_BASE_URL
from pestdesk.core.config import LLMSettings, Settings
from pestdesk.core.errors import LLMAppError, ValidationAppError

MESSAGES = [
    {"role": "system", "content": "You are a pest assistant."},
    {"role": "user", "content": "Rats in my kitchen"},
    {"role": "assistant", "content": "Seal the gaps."},
    {"role": "user", "content": "Which bait is safest?"},
]


def _completion(content):
    response = MagicMock()
    response.choices = [MagicMock(message=MagicMock(content=content))]
    return response


class TestOpenRouterClientIntegration:
    """Test OpenRouter client integration with mocked API calls."""

    def test_points_at_openrouter_with_attribution_headers(self) -> None:
        client = OpenRouterClient(
            api_key="test-key",
            model="google/gemini-2.0-flash-001",
            http_referer="https://example.test",
            app_title="Pest Desk",
        )

        assert str(client.client.base_url).rstrip("/") == OPENROUTER_BASE_URL
        assert client.client.default_headers["HTTP-Referer"] == "https://example.test"
        assert client.client.default_headers["X-Title"] == "Pest Desk"

    @pytest.mark.asyncio
    async def test_generate_reply_success(self) -> None:
        """The client forwards the conversation and returns trimmed text."""
        client = OpenRouterClient(api_key="test-key-123", model="google/gemini-2.0-flash-001")

        with patch.object(
            client.client.chat.completions,
            "create",
            new_callable=AsyncMock,
            return_value=_completion("  Use snap traps along walls.  "),
        ) as mock_create:
            result = await client.generate_reply(MESSAGES)

        assert result == "Use snap traps along walls."
        call_kwargs = mock_create.call_args.kwargs
        assert call_kwargs["messages"] == MESSAGES
        assert call_kwargs["model"] == "google/gemini-2.0-flash-001"
        assert call_kwargs["temperature"] == 0.7

    @pytest.mark.asyncio
    async def test_generate_reply_uses_model_override(self) -> None:
        client = OpenRouterClient(api_key="test-key", model="default/model")

        with patch.object(
            client.client.chat.completions,
            "create",
            new_callable=AsyncMock,
            return_value=_completion("ok"),
        ) as mock_create:
            await client.generate_reply(MESSAGES, model="other/model")

        assert mock_create.call_args.kwargs["model"] == "other/model"

    @pytest.mark.asyncio
    async def test_empty_completion_raises(self) -> None:
        client = OpenRouterClient(api_key="test-key", model="m")

        with patch.object(
            client.client.chat.completions,
            "create",
            new_callable=AsyncMock,
            return_value=_completion("   "),
        ):
            with pytest.raises(LLMAppError) as exc:
                await client.generate_reply(MESSAGES)

        assert exc.value.code == "llm_empty_response"

    @pytest.mark.asyncio
    async def test_choice_without_message_raises_empty_response(self) -> None:
        client = OpenRouterClient(api_key="test-key", model="m")
        response = MagicMock()
        response.choices = [SimpleNamespace(index=0, finish_reason="error")]

        with patch.object(
            client.client.chat.completions,
            "create",
            new_callable=AsyncMock,
            return_value=response,
        ):
            with pytest.raises(LLMAppError) as exc:
                await client.generate_reply(MESSAGES)

        assert exc.value.code == "llm_empty_response"

    @pytest.mark.asyncio
    async def test_upstream_status_error_is_wrapped(self) -> None:
        client = OpenRouterClient(api_key="test-key", model="m")
        request = httpx.Request("POST", f"{OPENROUTER_BASE_URL}/chat/completions")
        upstream = APIStatusError(
            "Service Unavailable",
            response=httpx.Response(503, request=request),
            body=None,
        )

        with patch.object(
            client.client.chat.completions,
            "create",
            new_callable=AsyncMock,
            side_effect=upstream,
        ):
            with pytest.raises(LLMAppError) as exc:
                await client.generate_reply(MESSAGES)

        assert exc.value.code == "llm_upstream_error"
        assert exc.value.details["upstream_status"] == 503
        assert exc.value.details["provider"] == "openrouter"

    @pytest.mark.asyncio
    async def test_connection_error_is_wrapped(self) -> None:
        client = OpenRouterClient(api_key="test-key", model="m")
        request = httpx.Request("POST", f"{OPENROUTER_BASE_URL}/chat/completions")

        with patch.object(
            client.client.chat.completions,
            "create",
            new_callable=AsyncMock,
            side_effect=APIConnectionError(request=request),
        ):
            with pytest.raises(LLMAppError) as exc:
                await client.generate_reply(MESSAGES)

        assert exc.value.code == "llm_request_failed"


class TestGeminiClientIntegration:
    """Test Gemini client with the SDK call mocked."""

    def test_to_gemini_contents_splits_system_and_maps_roles(self) -> None:
        system, contents = to_gemini_contents(MESSAGES)

        assert system == "You are a pest assistant."
        assert [c.role for c in contents] == ["user", "model", "user"]
        assert contents[0].parts[0].text == "Rats in my kitchen"

    def test_to_gemini_contents_inlines_data_url_images(self) -> None:
        raw = b"\x89PNG fake"
        data_url = "data:image/png;base64," + base64.b64encode(raw).decode()
        messages = [
            {
                "role": "user",
                "content": [
                    {"type": "text", "text": "What is this bug?"},
                    {"type": "image_url", "image_url": {"url": data_url}},
                ],
            }
        ]

        system, contents = to_gemini_contents(messages)

        assert system is None
        parts = contents[0].parts
        assert parts[0].text == "What is this bug?"
        assert parts[1].inline_data.data == raw
        assert parts[1].inline_data.mime_type == "image/png"

    def test_invalid_data_url_raises(self) -> None:
        messages = [
            {
                "role": "user",
                "content": [{"type": "image_url", "image_url": {"url": "data:image/png;base64,@@@"}}],
            }
        ]

        with pytest.raises(LLMAppError) as exc:
            to_gemini_contents(messages)
        assert exc.value.code == "invalid_image_data"

    @pytest.mark.asyncio
    async def test_generate_reply_success(self) -> None:
        client = GeminiClient(api_key="test-key", model="gemini-2.0-flash")
        response = MagicMock(text="Termites need a professional inspection.")

        with patch.object(
            client.client.aio.models,
            "generate_content",
            new_callable=AsyncMock,
            return_value=response,
        ) as mock_generate:
            result = await client.generate_reply(MESSAGES)

        assert result == "Termites need a professional inspection."
        call_kwargs = mock_generate.call_args.kwargs
        assert call_kwargs["model"] == "gemini-2.0-flash"
        assert call_kwargs["config"].system_instruction == "You are a pest assistant."
        assert len(call_kwargs["contents"]) == 3

    @pytest.mark.asyncio
    async def test_empty_text_raises(self) -> None:
        client = GeminiClient(api_key="test-key", model="gemini-2.0-flash")

        with patch.object(
            client.client.aio.models,
            "generate_content",
            new_callable=AsyncMock,
            return_value=MagicMock(text=None),
        ):
            with pytest.raises(LLMAppError) as exc:
                await client.generate_reply(MESSAGES)

        assert exc.value.code == "llm_empty_response"

    @pytest.mark.asyncio
    async def test_transport_error_is_wrapped(self) -> None:
        client = GeminiClient(api_key="test-key", model="gemini-2.0-flash")

        with patch.object(
            client.client.aio.models,
            "generate_content",
            new_callable=AsyncMock,
            side_effect=httpx.ConnectTimeout("timed out"),
        ):
            with pytest.raises(LLMAppError) as exc:
                await client.generate_reply(MESSAGES)

        assert exc.value.code == "llm_request_failed"
        assert exc.value.details["provider"] == "gemini"


class TestChatClientFactory:
    """Test chat client factory pattern."""

    @staticmethod
    def _settings(**llm_overrides) -> Settings:
        llm = {"provider": "openrouter", "api_key": "test-key", "model": "google/gemini-2.0-flash-001"}
        llm.update(llm_overrides)
        return Settings(llm=LLMSettings(**llm))

    def test_creates_openrouter_client(self) -> None:
        with patch("pestdesk.adapters.llm.factory.settings", self._settings(model="meta/llama")):
            client = create_chat_client()

        assert isinstance(client, OpenRouterClient)
        assert client.model == "meta/llama"

    def test_creates_gemini_client(self) -> None:
        with patch(
            "pestdesk.adapters.llm.factory.settings",
            self._settings(provider="Gemini", model="gemini-2.0-flash"),
        ):
            client = create_chat_client()

        assert isinstance(client, GeminiClient)
        assert client.provider == "gemini"

    def test_gemini_uses_its_own_default_model(self) -> None:
        with patch(
            "pestdesk.adapters.llm.factory.settings",
            self._settings(provider="gemini", model=None),
        ):
            client = create_chat_client()

        assert isinstance(client, GeminiClient)
        assert client.model == GEMINI_DEFAULT_MODEL
        assert "/" not in client.model

    def test_openrouter_uses_its_own_default_model(self) -> None:
        with patch("pestdesk.adapters.llm.factory.settings", self._settings(model=None)):
            client = create_chat_client()

        assert client.model == OPENROUTER_DEFAULT_MODEL

    def test_missing_api_key_raises_error(self) -> None:
        with patch("pestdesk.adapters.llm.factory.settings", self._settings(api_key=None)):
            with pytest.raises(ValidationAppError, match="requires LLM_API_KEY") as exc:
                create_chat_client()

        assert exc.value.code == "llm_missing_api_key"

    def test_unknown_provider_raises_error(self) -> None:
        with patch("pestdesk.adapters.llm.factory.settings", self._settings(provider="unknown-provider")):
            with pytest.raises(ValidationAppError, match="Unknown LLM provider") as exc:
                create_chat_client()

        assert exc.value.code == "llm_unknown_provider"
