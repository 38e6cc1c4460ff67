"""Error taxonomy for the chat pipeline.

Cancellation is deliberately absent: a stopped exchange is an outcome,
not an exception.
"""

from .config import CONTEXT_OVERFLOW_GUIDANCE


class PageChatError(Exception):
    """Base class for all pagechat errors."""


class ConfigurationError(PageChatError):
    """A model or store configuration is invalid."""


class ModelNotConfigured(PageChatError):
    """No completion backend is available to resolve."""


class ContentExtractionFailed(PageChatError):
    """Page text could not be extracted; no request was sent."""

    def __init__(self, message: str = "Failed to extract page content"):
        super().__init__(message)


class ProviderError(PageChatError):
    """The completion endpoint answered with a non-success status."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class ContextTooLarge(ProviderError):
    """The provider rejected the input as exceeding its context window."""

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        guidance: str = CONTEXT_OVERFLOW_GUIDANCE,
    ):
        super().__init__(message, status_code)
        self.guidance = guidance

    def __str__(self) -> str:
        return f"Content exceeds the model's context limit: {self.message}\n\n{self.guidance}"


class StreamError(PageChatError):
    """Transport failure while reading a stream, not caused by cancellation."""
