from .base import LLMProvider
from .cancellation import CancellationToken, StreamAborted
from .factory import create_llm_provider
from .models import ChatMessage, DeltaStream, ModelConfig, ProviderKind, Role
from .providers import OpenAICompatibleProvider
from .registry import ModelRegistry
from .streaming import StreamingClient, build_payload, classify_error, parse_frame

__all__ = [
    "CancellationToken",
    "ChatMessage",
    "DeltaStream",
    "LLMProvider",
    "ModelConfig",
    "ModelRegistry",
    "OpenAICompatibleProvider",
    "ProviderKind",
    "Role",
    "StreamAborted",
    "StreamingClient",
    "build_payload",
    "classify_error",
    "create_llm_provider",
    "parse_frame",
]
