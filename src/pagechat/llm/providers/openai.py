import logging
from collections.abc import Sequence
from typing import Any

from openai import APIConnectionError, APIStatusError, AsyncOpenAI

from ...errors import ProviderError, StreamError
from ..base import LLMProvider
from ..models import ChatMessage, ModelConfig

logger = logging.getLogger(__name__)


class OpenAICompatibleProvider(LLMProvider):
    """One-shot calls against any OpenAI-compatible endpoint.

    Hidden design decisions:
    - API client initialization (OpenAI SDK pointed at the config's base URL)
    - Message format conversion
    - Mapping SDK errors onto the pagechat error taxonomy
    """

    def __init__(self, model_config: ModelConfig, **client_kwargs: Any):
        """Initialize the provider.

        Args:
            model_config: Resolved backend configuration
            **client_kwargs: Additional kwargs for AsyncOpenAI client
        """
        self._config = model_config
        self._client = AsyncOpenAI(
            api_key=model_config.api_key,
            base_url=model_config.base_url,
            **client_kwargs
        )

    @property
    def model(self) -> str:
        """Get the configured model identifier."""
        return self._config.model

    async def chat_completion(
        self,
        messages: Sequence[ChatMessage],
        temperature: float | None = None,
        max_tokens: int | None = None,
        **kwargs: Any
    ) -> str:
        """Generate a complete reply using the Chat Completions API."""
        request_params: dict[str, Any] = {
            "model": self._config.model,
            "messages": [msg.to_wire() for msg in messages],
            "temperature": self._config.temperature if temperature is None else temperature,
            "max_tokens": max_tokens or self._config.max_tokens,
            **kwargs
        }

        try:
            completion = await self._client.chat.completions.create(**request_params)
        except APIStatusError as e:
            raise ProviderError(e.message, e.status_code) from e
        except APIConnectionError as e:
            raise StreamError(f"Request to {self._config.base_url} failed: {e}") from e

        if not completion.choices:
            return ""
        return completion.choices[0].message.content or ""

    async def list_models(self) -> list[str]:
        """List model identifiers from GET /models, sorted."""
        try:
            page = await self._client.models.list()
        except APIStatusError as e:
            raise ProviderError(e.message, e.status_code) from e
        except APIConnectionError as e:
            raise StreamError(f"Request to {self._config.base_url} failed: {e}") from e

        return sorted(model.id for model in page.data)

    async def test_connection(self) -> bool:
        """Send a one-token completion to verify credentials and model id."""
        try:
            await self.chat_completion(
                [ChatMessage(role="user", content="Hello")],
                max_tokens=1,
            )
        except (ProviderError, StreamError) as e:
            logger.warning("Connection test for %s failed: %s", self._config.name, e)
            return False
        return True

    async def close(self) -> None:
        """Close the OpenAI client."""
        await self._client.close()
