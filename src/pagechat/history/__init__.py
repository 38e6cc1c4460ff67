"""Conversation history module for pagechat.

Keeps the latest conversation for each page, bounded in total size.
"""

from .base import HistoryStore
from .factory import create_history_store
from .in_memory import InMemoryHistoryStore
from .models import ConversationRecord, HistoryContext

__all__ = [
    "ConversationRecord",
    "HistoryContext",
    "HistoryStore",
    "InMemoryHistoryStore",
    "create_history_store",
]
