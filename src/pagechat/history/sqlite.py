"""SQLite conversation history backend.

Provides persistent history storage using a SQLite database file.
Uses aiosqlite for async access.
"""

import logging
from pathlib import Path

import aiosqlite

from ..config import DEFAULT_HISTORY_PATH, MAX_HISTORY_RECORDS
from .base import HistoryStore
from .models import ConversationRecord

logger = logging.getLogger(__name__)


class SQLiteHistoryStore(HistoryStore):
    """SQLite-backed conversation history.

    Each record is stored as its JSON document next to the columns used
    for lookup. Insertion order (the autoincrement position) defines
    recency, so eviction never depends on clock resolution.
    """

    def __init__(
        self,
        path: str | Path = DEFAULT_HISTORY_PATH,
        max_records: int = MAX_HISTORY_RECORDS,
    ):
        super().__init__(max_records)
        self._db_path = Path(path)
        self._connection: aiosqlite.Connection | None = None

    @property
    def path(self) -> Path:
        return self._db_path

    async def connect(self) -> None:
        """Initialize database connection and schema."""
        if self._connection is not None:
            return
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._connection = await aiosqlite.connect(self._db_path)
        await self._create_schema()

    async def _create_schema(self) -> None:
        """Create database tables."""
        await self._connection.execute("""
            CREATE TABLE IF NOT EXISTS conversation_history (
                position INTEGER PRIMARY KEY AUTOINCREMENT,
                id TEXT NOT NULL UNIQUE,
                page_url TEXT NOT NULL UNIQUE,
                page_title TEXT NOT NULL,
                model_name TEXT NOT NULL,
                data TEXT NOT NULL
            )
        """)
        await self._connection.commit()

    def _require_connection(self) -> aiosqlite.Connection:
        if self._connection is None:
            raise RuntimeError("History store is not connected; call connect() first")
        return self._connection

    async def disconnect(self) -> None:
        """Close database connection."""
        if self._connection:
            await self._connection.close()
            self._connection = None

    async def save(self, record: ConversationRecord) -> None:
        conn = self._require_connection()

        # Replace, insert and evict commit together or not at all
        try:
            await conn.execute(
                "DELETE FROM conversation_history WHERE page_url = ? OR id = ?",
                (record.page_url, record.id)
            )
            await conn.execute(
                """
                INSERT INTO conversation_history (id, page_url, page_title, model_name, data)
                VALUES (?, ?, ?, ?, ?)
                """,
                (
                    record.id,
                    record.page_url,
                    record.page_title,
                    record.model_name,
                    record.model_dump_json(),
                )
            )
            cursor = await conn.execute(
                """
                DELETE FROM conversation_history
                WHERE position NOT IN (
                    SELECT position FROM conversation_history
                    ORDER BY position DESC
                    LIMIT ?
                )
                """,
                (self._max_records,)
            )
            await conn.commit()
        except Exception:
            await conn.rollback()
            raise

        if cursor.rowcount > 0:
            logger.debug("Evicted %d oldest history record(s)", cursor.rowcount)

    async def get(self, page_url: str) -> ConversationRecord | None:
        conn = self._require_connection()
        async with conn.execute(
            "SELECT data FROM conversation_history WHERE page_url = ?",
            (page_url,)
        ) as cursor:
            row = await cursor.fetchone()

        if row is None:
            return None
        return ConversationRecord.model_validate_json(row[0])

    async def delete(self, record_id: str) -> bool:
        conn = self._require_connection()
        cursor = await conn.execute(
            "DELETE FROM conversation_history WHERE id = ?",
            (record_id,)
        )
        await conn.commit()
        return cursor.rowcount > 0

    async def clear(self) -> None:
        conn = self._require_connection()
        await conn.execute("DELETE FROM conversation_history")
        await conn.commit()

    async def list_records(self, limit: int | None = None) -> list[ConversationRecord]:
        conn = self._require_connection()
        query = "SELECT data FROM conversation_history ORDER BY position DESC"
        params: tuple[int, ...] = ()
        if limit is not None:
            query += " LIMIT ?"
            params = (limit,)

        async with conn.execute(query, params) as cursor:
            rows = await cursor.fetchall()

        return [ConversationRecord.model_validate_json(row[0]) for row in rows]

    async def count(self) -> int:
        conn = self._require_connection()
        async with conn.execute("SELECT COUNT(*) FROM conversation_history") as cursor:
            row = await cursor.fetchone()
        return row[0]

    @property
    def backend_type(self) -> str:
        return "sqlite"
