from __future__ import annotations

import sqlite3
from pathlib import Path
from typing import Any

from support_chat.errors import StoreError


class MemoryStore:
    """Thin wrapper over a SQLite connection holding conversations and messages."""

    def __init__(self, db_path: str):
        self._db_path = db_path
        try:
            if db_path != ":memory:":
                Path(db_path).parent.mkdir(parents=True, exist_ok=True)
            self._conn = sqlite3.connect(db_path, check_same_thread=False)
            self._conn.row_factory = sqlite3.Row
            self._conn.execute("PRAGMA foreign_keys = ON")
            self._initialize_schema()
        except (sqlite3.Error, OSError) as exc:
            raise StoreError(f"Could not open database {db_path}: {exc}") from exc

    @property
    def db_path(self) -> str:
        return self._db_path

    def close(self) -> None:
        self._conn.close()

    def execute(self, query: str, params: tuple[Any, ...] = ()) -> sqlite3.Cursor:
        try:
            return self._conn.execute(query, params)
        except sqlite3.Error as exc:
            raise StoreError(str(exc)) from exc

    def commit(self) -> None:
        try:
            self._conn.commit()
        except sqlite3.Error as exc:
            raise StoreError(str(exc)) from exc

    def rollback(self) -> None:
        try:
            self._conn.rollback()
        except sqlite3.Error as exc:
            raise StoreError(str(exc)) from exc

    def _initialize_schema(self) -> None:
        self._conn.executescript(
            """
            CREATE TABLE IF NOT EXISTS conversations (
                id TEXT PRIMARY KEY,
                created_at TEXT NOT NULL,
                updated_at TEXT NOT NULL
            );

            CREATE TABLE IF NOT EXISTS messages (
                id TEXT PRIMARY KEY,
                conversation_id TEXT NOT NULL REFERENCES conversations(id) ON DELETE CASCADE,
                seq INTEGER NOT NULL,
                sender TEXT NOT NULL CHECK (sender IN ('user', 'ai')),
                text TEXT NOT NULL,
                created_at TEXT NOT NULL,
                UNIQUE(conversation_id, seq)
            );

            CREATE INDEX IF NOT EXISTS idx_messages_conversation_seq
                ON messages(conversation_id, seq);
            """
        )
        self._conn.commit()
