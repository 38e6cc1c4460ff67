"""Configuration constants.

Centralizes defaults shared by the composer, streaming client and history store.
"""

from pathlib import Path

# Completion request defaults
DEFAULT_TEMPERATURE = 0.7
DEFAULT_MAX_TOKENS = 2000

# Frame parsing
SSE_DATA_PREFIX = "data: "
SSE_DONE_SENTINEL = "[DONE]"
MALFORMED_FRAME_LOG_LIMIT = 200  # Characters of a bad frame kept in the log

# Lowercase substrings that mark a provider error as a context overflow
CONTEXT_OVERFLOW_MARKERS = (
    "token",
    "context length",
    "too long",
    "maximum",
    "exceeds",
)

CONTEXT_OVERFLOW_GUIDANCE = (
    "Try a model with a larger context window, or shorten the page content."
)

# History configuration
MAX_HISTORY_RECORDS = 100
DEFAULT_HISTORY_PATH = Path.home() / ".pagechat" / "history.db"

# Template placeholder replaced with extracted page text
CONTENT_PLACEHOLDER = "{{content}}"
