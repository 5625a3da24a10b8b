"""Async Data Access Layer for the CHAT_MESSAGE table.

Provides ChatHistoryDAL with whole-history replace/list/delete operations
compatible with `utils.database_init.AsyncDatabaseInitializer`.
"""

from __future__ import annotations

import json
import time
from typing import List, Sequence

from models.chat_models import Attachment, Message
from utils.database_init import AsyncDatabaseInitializer


class ChatHistoryDAL:
    """Data access layer for persisted chat histories.

    A chat's history is always written as a whole: `replace_messages`
    deletes the previous rows and inserts the new list in one transaction,
    so readers never see a half-written conversation.
    """

    _COLUMNS = ("message_id", "role", "content", "attachments")
    _COLUMN_LIST = ", ".join(_COLUMNS)

    def __init__(self, db_initializer: AsyncDatabaseInitializer) -> None:
        self._db = db_initializer

    async def replace_messages(self, chat_id: str, messages: Sequence[Message]) -> int:
        """Store `messages` as the complete history of `chat_id`.

        Returns:
            The number of rows written.
        """
        created_at = int(time.time())
        rows = [
            (
                chat_id,
                position,
                msg.id,
                msg.role,
                msg.content,
                self._encode_attachments(msg),
                created_at,
            )
            for position, msg in enumerate(messages)
        ]

        async with self._db.connection() as conn:
            await conn.execute("DELETE FROM CHAT_MESSAGE WHERE chat_id = ?", (chat_id,))
            await conn.executemany(
                "INSERT INTO CHAT_MESSAGE (chat_id, position, message_id, role, content, attachments, created_at) "
                "VALUES (?, ?, ?, ?, ?, ?, ?)",
                rows,
            )
            await conn.commit()
        return len(rows)

    async def list_messages(self, chat_id: str) -> List[Message]:
        """Return the stored history for `chat_id` in conversation order."""
        async with self._db.connection() as conn:
            cur = await conn.execute(
                f"SELECT {self._COLUMN_LIST} FROM CHAT_MESSAGE WHERE chat_id = ? ORDER BY position",
                (chat_id,),
            )
            rows = await cur.fetchall()
            return [self._row_to_message(r) for r in rows]

    async def delete_chat(self, chat_id: str) -> bool:
        """Delete every row of `chat_id`. Returns True if anything was removed."""
        async with self._db.connection() as conn:
            await conn.execute("DELETE FROM CHAT_MESSAGE WHERE chat_id = ?", (chat_id,))
            await conn.commit()
            cur = await conn.execute("SELECT changes()")
            changed = await cur.fetchone()
            return bool(changed and changed[0] > 0)

    @staticmethod
    def _encode_attachments(msg: Message) -> str | None:
        if not msg.attachments:
            return None
        return json.dumps([item.to_payload() for item in msg.attachments])

    @staticmethod
    def _row_to_message(row: Sequence[object]) -> Message:
        """Convert a DB row tuple into a Message."""
        attachments = tuple(
            Attachment(name=item["name"], mime_type=item["mimeType"], inline_data=item["inlineData"])
            for item in json.loads(row[3] or "[]")
        )
        return Message(
            id=str(row[0]),
            role=str(row[1]),
            content=str(row[2]),
            attachments=attachments,
        )
