from __future__ import annotations

import asyncio
import logging
import sqlite3
import threading
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from zion.constants import MessageRole
from zion.core.common.exceptions import MessageStoreError
from zion.core.interfaces.message_store_interface import IMessageStore, StoredMessage

logger = logging.getLogger(__name__)

_VALID_ROLES = {role.value for role in MessageRole}


def _validate(role: str, content: str) -> None:
    if role not in _VALID_ROLES:
        raise MessageStoreError(
            f"Invalid message role: {role!r}", details={"role": role}
        )
    if not isinstance(content, str):
        raise MessageStoreError("Message content must be a string")


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _stats(messages: list[StoredMessage]) -> dict[str, Any]:
    """Summarize messages given oldest first."""
    return {
        "total_messages": len(messages),
        "user_messages": sum(1 for m in messages if m.role == MessageRole.USER.value),
        "assistant_messages": sum(
            1 for m in messages if m.role == MessageRole.ASSISTANT.value
        ),
        "first_message": messages[0].timestamp if messages else None,
        "last_message": messages[-1].timestamp if messages else None,
    }


class InMemoryMessageStore(IMessageStore):
    """In-memory implementation of the message store.

    Messages are not persisted. Suitable for development and testing.
    """

    def __init__(self) -> None:
        self._messages: list[StoredMessage] = []

    async def save_message(self, role: str, content: str) -> None:
        _validate(role, content)
        self._messages.append(
            StoredMessage(
                role=role, content=content, timestamp=_now(), id=len(self._messages) + 1
            )
        )

    async def get_history(self, limit: int = 10) -> list[StoredMessage]:
        if limit <= 0:
            return []
        return list(reversed(self._messages[-limit:]))

    async def search_messages(self, term: str) -> list[StoredMessage]:
        needle = term.casefold()
        return [m for m in reversed(self._messages) if needle in m.content.casefold()]

    async def clear_history(self) -> None:
        self._messages.clear()

    async def get_stats(self) -> dict[str, Any]:
        return _stats(self._messages)


class SQLiteMessageStore(IMessageStore):
    """Message log persisted in a SQLite database file."""

    def __init__(self, path: str | Path = ":memory:") -> None:
        self.path = str(path)
        if self.path != ":memory:":
            Path(self.path).parent.mkdir(parents=True, exist_ok=True)
        self._lock = threading.Lock()
        try:
            self._conn = sqlite3.connect(self.path, check_same_thread=False)
            self._conn.row_factory = sqlite3.Row
            self._conn.create_function(
                "casefold", 1, lambda s: s.casefold() if s else s, deterministic=True
            )
            with self._conn:
                self._conn.execute(
                    """
                    CREATE TABLE IF NOT EXISTS messages (
                        id INTEGER PRIMARY KEY AUTOINCREMENT,
                        role TEXT NOT NULL,
                        content TEXT NOT NULL,
                        timestamp TEXT NOT NULL
                    )
                    """
                )
        except sqlite3.Error as e:
            raise MessageStoreError(
                f"Could not open message database {self.path}: {e}"
            ) from e
        logger.debug("Message store opened at %s", self.path)

    def _query(self, sql: str, params: tuple[Any, ...] = ()) -> list[StoredMessage]:
        try:
            with self._lock:
                rows = self._conn.execute(sql, params).fetchall()
        except sqlite3.Error as e:
            raise MessageStoreError(f"Message query failed: {e}") from e
        return [
            StoredMessage(
                role=row["role"],
                content=row["content"],
                timestamp=row["timestamp"],
                id=row["id"],
            )
            for row in rows
        ]

    def _write(self, sql: str, params: tuple[Any, ...] = ()) -> None:
        try:
            with self._lock, self._conn:
                self._conn.execute(sql, params)
        except sqlite3.Error as e:
            raise MessageStoreError(f"Message write failed: {e}") from e

    async def save_message(self, role: str, content: str) -> None:
        _validate(role, content)
        await asyncio.to_thread(
            self._write,
            "INSERT INTO messages (role, content, timestamp) VALUES (?, ?, ?)",
            (role, content, _now()),
        )

    async def get_history(self, limit: int = 10) -> list[StoredMessage]:
        if limit <= 0:
            return []
        return await asyncio.to_thread(
            self._query,
            "SELECT id, role, content, timestamp FROM messages ORDER BY id DESC LIMIT ?",
            (limit,),
        )

    async def search_messages(self, term: str) -> list[StoredMessage]:
        # instr() avoids LIKE wildcard escaping
        return await asyncio.to_thread(
            self._query,
            "SELECT id, role, content, timestamp FROM messages "
            "WHERE instr(casefold(content), ?) > 0 ORDER BY id DESC",
            (term.casefold(),),
        )

    async def clear_history(self) -> None:
        await asyncio.to_thread(self._write, "DELETE FROM messages")
        logger.info("Message history cleared")

    async def get_stats(self) -> dict[str, Any]:
        return await asyncio.to_thread(self._fetch_stats)

    def _fetch_stats(self) -> dict[str, Any]:
        try:
            with self._lock:
                row = self._conn.execute(
                    """
                    SELECT COUNT(*) AS total,
                           COALESCE(SUM(role = 'user'), 0) AS users,
                           COALESCE(SUM(role = 'assistant'), 0) AS assistants,
                           MIN(timestamp) AS first,
                           MAX(timestamp) AS last
                    FROM messages
                    """
                ).fetchone()
        except sqlite3.Error as e:
            raise MessageStoreError(f"Message query failed: {e}") from e
        return {
            "total_messages": row["total"],
            "user_messages": row["users"],
            "assistant_messages": row["assistants"],
            "first_message": row["first"],
            "last_message": row["last"],
        }

    async def close(self) -> None:
        await asyncio.to_thread(self._close)

    def _close(self) -> None:
        with self._lock:
            self._conn.close()
