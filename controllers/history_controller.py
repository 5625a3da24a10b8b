from fastapi import Request, HTTPException
from typing import Any, Dict, List

from dal.chat_history_dal import ChatHistoryDAL
from models.chat_models import Message
from services.history_store import ChatHistoryStore


def _store(request: Request, chat_id: str) -> ChatHistoryStore:
    """Build the history store for `chat_id` from the shared database."""
    db_initializer = getattr(request.app.state, "db_initializer", None)
    if db_initializer is None:
        raise HTTPException(status_code=503, detail="Chat history storage is not configured")
    return ChatHistoryStore(ChatHistoryDAL(db_initializer), chat_id)


async def load_history(request: Request, chat_id: str) -> Dict[str, Any]:
    """Return the persisted messages of a chat.

    Args:
        request: FastAPI Request (used to access the shared database).
        chat_id: Identifier of the chat whose history is requested.

    Returns:
        A dict with `chat_id` and `messages` in wire format.
    """
    messages = await _store(request, chat_id).load()
    return {"chat_id": chat_id, "messages": [msg.to_payload() for msg in messages]}


async def save_history(request: Request, chat_id: str, messages: List[Message]) -> Dict[str, Any]:
    """Replace the persisted history of a chat with `messages`."""
    await _store(request, chat_id).save(messages)
    return {"chat_id": chat_id, "message_count": len(messages)}


async def delete_history(request: Request, chat_id: str) -> Dict[str, Any]:
    """Delete a chat's history. Raises HTTPException(404) when nothing was stored."""
    db_initializer = getattr(request.app.state, "db_initializer", None)
    if db_initializer is None:
        raise HTTPException(status_code=503, detail="Chat history storage is not configured")
    deleted = await ChatHistoryDAL(db_initializer).delete_chat(chat_id)
    if not deleted:
        raise HTTPException(status_code=404, detail=f"Chat {chat_id} not found")
    return {"chat_id": chat_id, "deleted": True}
