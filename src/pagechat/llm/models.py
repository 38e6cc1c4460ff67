from collections.abc import AsyncIterator
from datetime import datetime, timezone
from enum import Enum
from typing import Literal
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, model_validator

from ..config import DEFAULT_MAX_TOKENS, DEFAULT_TEMPERATURE
from ..errors import ConfigurationError
from .cancellation import CancellationToken

Role = Literal["system", "user", "assistant"]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def new_message_id() -> str:
    """Generate an opaque message identifier."""
    return uuid4().hex


class ChatMessage(BaseModel):
    """Represents a chat message in a conversation.

    Frozen: the controller "grows" a streaming assistant reply by replacing
    the message in its slot with a copy carrying the same id.
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=new_message_id, description="Opaque message identifier")
    role: Role = Field(description="Role of the message sender: 'user', 'assistant', or 'system'")
    content: str = Field(description="Content of the message")
    created_at: datetime = Field(default_factory=_utcnow)

    def to_wire(self) -> dict[str, str]:
        """Format for the chat completions request body."""
        return {"role": self.role, "content": self.content}


class ProviderKind(str, Enum):
    """Completion backends, each carrying its default endpoint."""

    OPENAI = "openai"
    ANTHROPIC = "anthropic"
    DEEPSEEK = "deepseek"
    CUSTOM = "custom"

    @property
    def default_endpoint(self) -> str | None:
        """Base URL used when a model config has no explicit endpoint."""
        return _DEFAULT_ENDPOINTS[self]


_DEFAULT_ENDPOINTS: dict[ProviderKind, str | None] = {
    ProviderKind.OPENAI: "https://api.openai.com/v1",
    ProviderKind.ANTHROPIC: "https://api.anthropic.com/v1",
    ProviderKind.DEEPSEEK: "https://api.deepseek.com/v1",
    ProviderKind.CUSTOM: None,
}


class ModelConfig(BaseModel):
    """Resolved configuration for one completion backend.

    Immutable for the lifetime of an exchange.
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(description="Configuration identifier")
    name: str = Field(description="Display name")
    provider: ProviderKind = Field(description="Backend provider tag")
    api_key: str = Field(repr=False, description="Bearer token for the endpoint")
    api_endpoint: str | None = Field(
        default=None,
        description="Base URL override; provider default when omitted"
    )
    model: str = Field(description="Model identifier sent to the backend")
    temperature: float = Field(default=DEFAULT_TEMPERATURE, ge=0.0, le=2.0)
    max_tokens: int = Field(default=DEFAULT_MAX_TOKENS, ge=1)

    @model_validator(mode="after")
    def check_endpoint(self) -> "ModelConfig":
        """Custom providers have no default endpoint to fall back on."""
        if self.provider is ProviderKind.CUSTOM and not self.api_endpoint:
            raise ConfigurationError(
                f"Model '{self.name}' uses the custom provider and requires an api_endpoint"
            )
        return self

    @property
    def base_url(self) -> str:
        """Endpoint the requests are sent to, without a trailing slash."""
        endpoint = self.api_endpoint or self.provider.default_endpoint
        return endpoint.rstrip("/")


class DeltaStream:
    """Pull-based stream of text deltas for one exchange.

    Wraps the streaming client's async iterator and checks the cancellation
    token on every pull, so a consumer observes a clean end of stream as
    soon as the token fires.

    Usage:
        stream = client.stream(messages, model, token)
        async for delta in stream:
            print(delta, end="")
        print(stream.deltas_yielded)
    """

    def __init__(self, async_iter: AsyncIterator[str], token: CancellationToken):
        """Initialize with an async iterator of text deltas.

        Args:
            async_iter: Async iterator yielding non-empty text deltas
            token: Cancellation token checked before each pull
        """
        self._iter = async_iter
        self._token = token
        self._deltas_yielded = 0
        self._closed = False

    @property
    def deltas_yielded(self) -> int:
        """Number of deltas handed to the consumer so far."""
        return self._deltas_yielded

    @property
    def cancelled(self) -> bool:
        """Whether the stream ended because its token fired."""
        return self._token.cancelled

    def __aiter__(self) -> "DeltaStream":
        """Return self as async iterator."""
        return self

    async def __anext__(self) -> str:
        """Get the next delta, or stop if cancelled or exhausted."""
        if self._closed or self._token.cancelled:
            await self.aclose()
            raise StopAsyncIteration
        try:
            delta = await self._iter.__anext__()
        except StopAsyncIteration:
            self._closed = True
            raise
        self._deltas_yielded += 1
        return delta

    async def aclose(self) -> None:
        """Release the underlying response. Safe to call more than once."""
        if self._closed:
            return
        self._closed = True
        aclose = getattr(self._iter, "aclose", None)
        if aclose is not None:
            await aclose()
