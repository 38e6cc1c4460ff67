from typing import Any

from .base import LLMProvider
from .models import ModelConfig
from .providers import OpenAICompatibleProvider


def create_llm_provider(model_config: ModelConfig, **client_kwargs: Any) -> LLMProvider:
    """Create a one-shot LLM provider for a resolved model config.

    Every supported provider tag speaks the OpenAI-compatible protocol, so
    the tag only selects the default endpoint (see ProviderKind).

    Args:
        model_config: Resolved backend configuration
        **client_kwargs: Additional kwargs for the underlying SDK client

    Returns:
        Initialized LLM provider instance

    Examples:
        >>> config = ModelConfig(
        ...     id="ds", name="DeepSeek", provider="deepseek",
        ...     api_key="sk-...", model="deepseek-chat"
        ... )
        >>> provider = create_llm_provider(config)
    """
    return OpenAICompatibleProvider(model_config, **client_kwargs)
