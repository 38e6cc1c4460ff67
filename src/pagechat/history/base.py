"""Abstract base class for conversation history backends.

This module defines the interface for per-page conversation storage.
The abstraction hides:
- Storage format (JSON, SQLite, etc.)
- Persistence mechanism (file, database, in-memory)
- Connection management

Every backend keeps the same invariants: at most one record per page URL,
most-recent-first ordering, and no more than `max_records` records.
"""

from abc import ABC, abstractmethod
from typing import Any

from ..config import MAX_HISTORY_RECORDS
from .models import ConversationRecord


class HistoryStore(ABC):
    """Abstract conversation history backend."""

    def __init__(self, max_records: int = MAX_HISTORY_RECORDS):
        if max_records < 1:
            raise ValueError("max_records must be at least 1")
        self._max_records = max_records

    @property
    def max_records(self) -> int:
        """Upper bound on stored records; the oldest are evicted first."""
        return self._max_records

    @abstractmethod
    async def connect(self) -> None:
        """Initialize the history backend."""

    @abstractmethod
    async def disconnect(self) -> None:
        """Close the history backend gracefully."""

    @abstractmethod
    async def save(self, record: ConversationRecord) -> None:
        """Store `record` as the current conversation for its page.

        Removes any record with the same page_url, inserts the new one at
        the front, then drops the oldest records beyond max_records.
        """

    @abstractmethod
    async def get(self, page_url: str) -> ConversationRecord | None:
        """Return the conversation stored for a page, if any."""

    @abstractmethod
    async def delete(self, record_id: str) -> bool:
        """Delete one record by id. Returns whether a record was removed."""

    @abstractmethod
    async def clear(self) -> None:
        """Delete every record."""

    @abstractmethod
    async def list_records(self, limit: int | None = None) -> list[ConversationRecord]:
        """Return records, most recent first."""

    async def count(self) -> int:
        """Number of stored records."""
        return len(await self.list_records())

    async def search(
        self,
        query: str | None = None,
        model_name: str | None = None,
    ) -> list[ConversationRecord]:
        """Filter records by title/URL substring and model name."""
        return [
            record for record in await self.list_records()
            if record.matches(query, model_name)
        ]

    @property
    @abstractmethod
    def backend_type(self) -> str:
        """Get the backend type identifier."""

    async def __aenter__(self) -> "HistoryStore":
        await self.connect()
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.disconnect()
