"""Turn and one-shot generation helpers bound to application state."""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from fastapi import Request

from models.chat_models import Message
from services.chat.turn_handler import TurnHandler


def _handler(request: Request) -> TurnHandler:
	return request.app.state.turn_handler


async def process_turn(
	request: Request,
	messages: List[Message],
	model_id: Optional[str] = None,
	context_optimization: bool = True,
) -> Dict[str, Any]:
	"""Answer the conversation and return the ``{"response": ...}`` body."""
	text = await _handler(request).handle(messages, model_id=model_id, use_cache=context_optimization)
	return {"response": text}


async def generate_output(request: Request, prompt: str, model_id: Optional[str] = None) -> Dict[str, Any]:
	"""Run a one-shot prompt and return the ``{"output": ...}`` body."""
	text = await _handler(request).generate(prompt, model_id=model_id)
	return {"output": text}
