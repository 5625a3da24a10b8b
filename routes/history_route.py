"""FastAPI routes for persisted chat histories."""

from fastapi import APIRouter, HTTPException, Request

from controllers.history_controller import delete_history, load_history, save_history
from routes.schemas import HistoryPayload

router = APIRouter(prefix="/chats")


@router.get("/{chat_id}/messages")
async def get_history_route(request: Request, chat_id: str):
    try:
        return await load_history(request, chat_id)
    except HTTPException:
        raise
    except Exception as exc:
        raise HTTPException(status_code=500, detail=str(exc))


@router.put("/{chat_id}/messages")
async def put_history_route(request: Request, chat_id: str, payload: HistoryPayload):
    try:
        return await save_history(request, chat_id, [item.to_message() for item in payload.messages])
    except HTTPException:
        raise
    except Exception as exc:
        raise HTTPException(status_code=500, detail=str(exc))


@router.delete("/{chat_id}")
async def delete_history_route(request: Request, chat_id: str):
    try:
        return await delete_history(request, chat_id)
    except HTTPException:
        raise
    except Exception as exc:
        raise HTTPException(status_code=500, detail=str(exc))
