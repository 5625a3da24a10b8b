"""FastAPI routes for conversation turns and one-shot generation."""

import logging
from typing import Any, Type, TypeVar

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ValidationError

from controllers.turn_controller import generate_output, process_turn
from routes.schemas import GeneratePayload, TurnPayload
from services.chat.turn_handler import TurnFailedError, TurnValidationError

LOGGER = logging.getLogger(__name__)
PayloadT = TypeVar("PayloadT", bound=BaseModel)

router = APIRouter()


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


def _describe(exc: ValidationError) -> str:
    first = exc.errors()[0]
    location = ".".join(str(part) for part in first.get("loc", ()))
    return f"Invalid request body: {location}: {first.get('msg', 'invalid value')}"


async def _read_payload(request: Request, model: Type[PayloadT]) -> PayloadT:
    """Parse the JSON body into `model`, mapping every failure to a 400."""
    try:
        body: Any = await request.json()
    except ValueError as exc:
        raise TurnValidationError(400, "Request body must be valid JSON") from exc
    if not body:
        raise TurnValidationError(400, "Request body is required")
    try:
        return model.model_validate(body)
    except ValidationError as exc:
        raise TurnValidationError(400, _describe(exc)) from exc


@router.post("/turn")
async def post_turn(request: Request):
    """Answer the conversation in the request body with the next assistant reply."""
    try:
        payload = await _read_payload(request, TurnPayload)
        messages = [item.to_message() for item in payload.messages]
        return await process_turn(request, messages, payload.model, payload.contextOptimization)
    except (TurnValidationError, TurnFailedError) as exc:
        return _error(exc.status_code, exc.message)
    except Exception as exc:
        LOGGER.exception("Unhandled error while processing turn")
        return _error(500, str(exc) or "Internal server error")


@router.post("/generate")
async def post_generate(request: Request):
    """Run a single prompt without conversation history."""
    try:
        payload = await _read_payload(request, GeneratePayload)
        return await generate_output(request, payload.prompt or "", payload.model)
    except (TurnValidationError, TurnFailedError) as exc:
        return _error(exc.status_code, exc.message)
    except Exception:
        LOGGER.exception("Unhandled error while generating output")
        return _error(500, "Internal server error")
