"""Chat history persistence bound to a single chat id."""

from typing import List, Sequence

from dal.chat_history_dal import ChatHistoryDAL
from models.chat_models import Message


class ChatHistoryStore:
    """Persistence collaborator for one chat session: `load()` and `save()`."""

    def __init__(self, dal: ChatHistoryDAL, chat_id: str) -> None:
        if not chat_id:
            raise ValueError("chat_id is required.")
        self._dal = dal
        self.chat_id = chat_id

    async def load(self) -> List[Message]:
        return await self._dal.list_messages(self.chat_id)

    async def save(self, messages: Sequence[Message]) -> None:
        await self._dal.replace_messages(self.chat_id, list(messages))
