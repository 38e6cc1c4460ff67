from .openai import OpenAICompatibleProvider

__all__ = [
    "OpenAICompatibleProvider",
]
