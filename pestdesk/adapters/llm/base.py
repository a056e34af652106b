from abc import ABC, abstractmethod
from typing import Any

# OpenAI-style chat message: {"role": ..., "content": str | list[part dict]}
ChatMessageDict = dict[str, Any]


class AbstractChatClient(ABC):
	"""Interface for hosted LLM chat providers."""

	provider: str = "unknown"
	model: str

	@abstractmethod
	async def generate_reply(
		self,
		messages: list[ChatMessageDict],
		*,
		model: str | None = None,
		**kwargs: Any,
	) -> str:
		"""Generate the assistant's next message for a conversation.

		Args:
			messages: Conversation in OpenAI chat format, system prompt first.
			model: Optional per-request model override.
			**kwargs: Provider-specific options (e.g., temperature, max_tokens).

		Returns:
			str: Non-empty reply text.

		Raises:
			LLMAppError: If the provider call fails or returns no usable text.
		"""
		...
