"""In-memory conversation history backend.

Simple list-based storage for session-only history.
Data is lost when the application exits.
"""

import logging

from ..config import MAX_HISTORY_RECORDS
from .base import HistoryStore
from .models import ConversationRecord

logger = logging.getLogger(__name__)


class InMemoryHistoryStore(HistoryStore):
    """In-memory history (session-only).

    Suitable for single-session use or testing.
    """

    def __init__(self, max_records: int = MAX_HISTORY_RECORDS):
        super().__init__(max_records)
        self._records: list[ConversationRecord] = []

    async def connect(self) -> None:
        """Initialize storage (no-op for in-memory)."""
        pass

    async def disconnect(self) -> None:
        """Close storage (no-op for in-memory)."""
        pass

    async def save(self, record: ConversationRecord) -> None:
        records = [
            existing for existing in self._records
            if existing.page_url != record.page_url and existing.id != record.id
        ]
        records.insert(0, record)

        evicted = len(records) - self._max_records
        if evicted > 0:
            logger.debug("Evicting %d oldest history record(s)", evicted)
        self._records = records[:self._max_records]

    async def get(self, page_url: str) -> ConversationRecord | None:
        for record in self._records:
            if record.page_url == page_url:
                return record
        return None

    async def delete(self, record_id: str) -> bool:
        before = len(self._records)
        self._records = [r for r in self._records if r.id != record_id]
        return len(self._records) < before

    async def clear(self) -> None:
        self._records = []

    async def list_records(self, limit: int | None = None) -> list[ConversationRecord]:
        if limit is None:
            return list(self._records)
        return self._records[:limit]

    @property
    def backend_type(self) -> str:
        return "memory"
