from __future__ import annotations

import sqlite3
from uuid import uuid4

from loguru import logger

from support_chat.errors import ConversationNotFound, StoreError
from support_chat.memory.models import ROLE_TO_SENDER, Conversation, Message, utc_now
from support_chat.memory.store import MemoryStore


def _to_message(row: sqlite3.Row) -> Message:
    return Message(
        id=row["id"],
        conversation_id=row["conversation_id"],
        seq=int(row["seq"]),
        sender=row["sender"],
        text=row["text"],
        created_at=row["created_at"],
    )


class ConversationStore:
    def __init__(self, store: MemoryStore):
        self._store = store

    def get(self, conversation_id: str) -> Conversation | None:
        row = self._store.execute(
            "SELECT id, created_at, updated_at FROM conversations WHERE id = ? LIMIT 1",
            (conversation_id,),
        ).fetchone()
        if row is None:
            return None
        return Conversation(
            id=row["id"],
            created_at=row["created_at"],
            updated_at=row["updated_at"],
            messages=tuple(self.history(conversation_id)),
        )

    def create(self) -> Conversation:
        conversation_id = str(uuid4())
        now = utc_now()
        try:
            self._store.execute(
                "INSERT INTO conversations (id, created_at, updated_at) VALUES (?, ?, ?)",
                (conversation_id, now, now),
            )
            self._store.commit()
        except StoreError:
            self._store.rollback()
            raise
        logger.info(f"Conversation created: {conversation_id}")
        return Conversation(id=conversation_id, created_at=now, updated_at=now)

    def get_or_create(self, session_id: str | None) -> Conversation:
        """Resolve a client session id; anything unknown starts a fresh conversation."""
        if session_id:
            conversation = self.get(session_id)
            if conversation is not None:
                return conversation
            logger.info(f"Unknown session id {session_id!r}, starting a new conversation")
        return self.create()

    def append(self, conversation_id: str, role: str, text: str) -> Message:
        sender = ROLE_TO_SENDER.get(role, role)
        if sender not in ROLE_TO_SENDER.values():
            raise ValueError(f"Unsupported message role: {role!r}")

        now = utc_now()
        message_id = str(uuid4())
        try:
            touched = self._store.execute(
                "UPDATE conversations SET updated_at = ? WHERE id = ?",
                (now, conversation_id),
            )
            if touched.rowcount == 0:
                self._store.rollback()
                raise ConversationNotFound(conversation_id)

            # seq is assigned inside the INSERT so concurrent appends cannot share one.
            self._store.execute(
                """
                INSERT INTO messages (id, conversation_id, seq, sender, text, created_at)
                VALUES (
                    ?, ?,
                    (SELECT COALESCE(MAX(seq), 0) + 1 FROM messages WHERE conversation_id = ?),
                    ?, ?, ?
                )
                """,
                (message_id, conversation_id, conversation_id, sender, text, now),
            )
            self._store.commit()
        except StoreError:
            # A failed append must not leave its updated_at bump pending on the shared connection.
            self._store.rollback()
            raise
        row = self._store.execute(
            "SELECT * FROM messages WHERE id = ?",
            (message_id,),
        ).fetchone()
        return _to_message(row)

    def history(self, conversation_id: str) -> list[Message]:
        rows = self._store.execute(
            """
            SELECT id, conversation_id, seq, sender, text, created_at
            FROM messages
            WHERE conversation_id = ?
            ORDER BY seq ASC
            """,
            (conversation_id,),
        ).fetchall()
        return [_to_message(row) for row in rows]
