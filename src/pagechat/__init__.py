"""
pagechat: stream conversations with an LLM about the page you are reading.

Composes page-aware requests, streams replies token by token with
cancellation, and keeps the latest conversation for every page.
"""

__version__ = "0.1.0"

from .chat import (
    Composition,
    ExchangeController,
    ExchangeResult,
    ExchangeState,
    MessageComposer,
    PageContent,
    RequestKind,
)
from .errors import (
    ContentExtractionFailed,
    ContextTooLarge,
    PageChatError,
    ProviderError,
    StreamError,
)
from .history import ConversationRecord, HistoryStore, create_history_store
from .llm import (
    CancellationToken,
    ChatMessage,
    ModelConfig,
    ModelRegistry,
    ProviderKind,
    StreamingClient,
)

__all__ = [
    "CancellationToken",
    "ChatMessage",
    "Composition",
    "ContentExtractionFailed",
    "ContextTooLarge",
    "ConversationRecord",
    "ExchangeController",
    "ExchangeResult",
    "ExchangeState",
    "HistoryStore",
    "MessageComposer",
    "ModelConfig",
    "ModelRegistry",
    "PageChatError",
    "PageContent",
    "ProviderError",
    "ProviderKind",
    "RequestKind",
    "StreamError",
    "StreamingClient",
    "create_history_store",
]
