"""
Conversation repository. Sqlite-backed persistence for Conversation entities.
"""

from __future__ import annotations

import logging
import sqlite3
import uuid
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterator, Optional, Union

from watchgpt.models.conversation import Conversation

logger = logging.getLogger(__name__)


def _to_epoch(moment: datetime) -> float:
    return moment.timestamp()


def _from_epoch(value: float) -> datetime:
    return datetime.fromtimestamp(value, tz=timezone.utc)


class ConversationStore:
    def __init__(self, db_path: Union[str, Path] = ":memory:"):
        self._db_path = str(db_path)
        self._shared: Optional[sqlite3.Connection] = None
        if self._db_path == ":memory:":
            # An in-memory database lives only as long as its connection.
            self._shared = sqlite3.connect(self._db_path)

    @contextmanager
    def _connection(self) -> Iterator[sqlite3.Connection]:
        if self._shared is not None:
            yield self._shared
            return
        Path(self._db_path).parent.mkdir(parents=True, exist_ok=True)
        conn = sqlite3.connect(self._db_path)
        try:
            yield conn
        finally:
            conn.close()

    def init(self) -> None:
        """Create the conversations table."""
        with self._connection() as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS conversations (
                    id TEXT PRIMARY KEY,
                    messages_data BLOB NOT NULL,
                    mode TEXT NOT NULL DEFAULT 'general',
                    created_at REAL NOT NULL,
                    updated_at REAL NOT NULL
                )
            """)
            conn.execute("CREATE INDEX IF NOT EXISTS idx_conv_updated ON conversations(updated_at)")
            conn.commit()
        logger.debug(f"Conversation store ready at {self._db_path}")

    def insert(self, conversation: Conversation) -> None:
        with self._connection() as conn:
            conn.execute(
                "INSERT INTO conversations (id, messages_data, mode, created_at, updated_at) VALUES (?, ?, ?, ?, ?)",
                self._row(conversation),
            )
            conn.commit()

    def save(self, conversation: Conversation) -> None:
        """Insert or overwrite a conversation."""
        with self._connection() as conn:
            conn.execute(
                """
                INSERT INTO conversations (id, messages_data, mode, created_at, updated_at)
                VALUES (?, ?, ?, ?, ?)
                ON CONFLICT(id) DO UPDATE SET
                    messages_data = excluded.messages_data,
                    mode = excluded.mode,
                    updated_at = excluded.updated_at
                """,
                self._row(conversation),
            )
            conn.commit()

    def get(self, conversation_id: Union[str, uuid.UUID]) -> Optional[Conversation]:
        with self._connection() as conn:
            row = conn.execute(
                "SELECT id, messages_data, mode, created_at, updated_at FROM conversations WHERE id = ?",
                (str(conversation_id),),
            ).fetchone()
        return self._conversation(row) if row else None

    def list(self) -> list[Conversation]:
        """All conversations, most recently updated first."""
        with self._connection() as conn:
            rows = conn.execute(
                "SELECT id, messages_data, mode, created_at, updated_at FROM conversations ORDER BY updated_at DESC"
            ).fetchall()
        return [self._conversation(row) for row in rows]

    def delete(self, conversation: Conversation) -> None:
        with self._connection() as conn:
            conn.execute("DELETE FROM conversations WHERE id = ?", (str(conversation.id),))
            conn.commit()

    def close(self) -> None:
        if self._shared is not None:
            self._shared.close()
            self._shared = None

    @staticmethod
    def _row(conversation: Conversation) -> tuple:
        return (
            str(conversation.id),
            conversation.messages_data,
            conversation.mode,
            _to_epoch(conversation.created_at),
            _to_epoch(conversation.updated_at),
        )

    @staticmethod
    def _conversation(row: tuple) -> Conversation:
        conv_id, data, mode, created_at, updated_at = row
        if data is None:
            data = b""
        elif isinstance(data, str):
            # Rows written as TEXT by other tools.
            data = data.encode()
        return Conversation.from_storage(
            id=uuid.UUID(conv_id),
            messages_data=bytes(data),
            mode=mode,
            created_at=_from_epoch(created_at),
            updated_at=_from_epoch(updated_at),
        )
