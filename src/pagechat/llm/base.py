from abc import ABC, abstractmethod
from collections.abc import Sequence
from typing import Any

from .models import ChatMessage


class LLMProvider(ABC):
    """Abstract base class for one-shot (non-streaming) backend calls.

    Streaming exchanges go through StreamingClient; this interface covers
    the auxiliary calls a settings screen or CLI makes against the same
    endpoint: a single completion, model discovery and a connectivity
    check.

    Supports async context manager protocol for proper resource cleanup:
        async with provider:
            text = await provider.chat_completion(messages)
    """

    @abstractmethod
    async def chat_completion(
        self,
        messages: Sequence[ChatMessage],
        temperature: float | None = None,
        max_tokens: int | None = None,
        **kwargs: Any
    ) -> str:
        """Generate a complete (non-streamed) reply.

        Args:
            messages: Conversation to send
            temperature: Sampling temperature (None uses the model config)
            max_tokens: Maximum tokens to generate (None uses the model config)
            **kwargs: Provider-specific parameters

        Returns:
            The reply text

        Raises:
            ProviderError: On a non-success response
        """
        pass

    @abstractmethod
    async def list_models(self) -> list[str]:
        """List model identifiers offered by the endpoint."""
        pass

    @abstractmethod
    async def test_connection(self) -> bool:
        """Send a minimal request and report whether it succeeded."""
        pass

    @abstractmethod
    async def close(self) -> None:
        """Close any open connections or resources."""
        pass

    async def __aenter__(self) -> "LLMProvider":
        """Async context manager entry."""
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        """Async context manager exit with automatic cleanup.

        Note: Suppresses "Event loop is closed" errors during cleanup.
        This is a known harmless race condition in httpx/anyio cleanup:
        https://github.com/encode/httpx/issues/914
        """
        try:
            await self.close()
        except RuntimeError as e:
            if "Event loop is closed" not in str(e):
                raise
