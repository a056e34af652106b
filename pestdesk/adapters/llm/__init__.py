"""LLM adapter layer - abstracts over hosted chat providers."""

from pestdesk.adapters.llm.base import AbstractChatClient
from pestdesk.adapters.llm.factory import create_chat_client
from pestdesk.adapters.llm.gemini_client import GeminiClient
from pestdesk.adapters.llm.openrouter_client import OpenRouterClient

__all__ = [
    "AbstractChatClient",
    "GeminiClient",
    "OpenRouterClient",
    "create_chat_client",
]
