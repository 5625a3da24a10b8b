"""HTTP transport from the chat session to the turn endpoint."""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional, Sequence

import httpx

from models.chat_models import Message

LOGGER = logging.getLogger(__name__)


class TurnRequestError(Exception):
	"""Non-2xx answer or transport failure while sending a turn."""

	def __init__(self, status_code: int, raw_message: str) -> None:
		super().__init__(f"HTTP error! status: {status_code}: {raw_message}")
		self.status_code = status_code
		self.raw_message = raw_message


class TurnClient:
	"""Post whole conversations to ``POST /turn`` and return the reply text."""

	_REQUEST_TIMEOUT = httpx.Timeout(120.0, connect=5.0)

	def __init__(
		self,
		base_url: str,
		*,
		client: Optional[httpx.AsyncClient] = None,
		timeout: Optional[httpx.Timeout] = None,
	) -> None:
		self._owns_client = client is None
		self._client = client or httpx.AsyncClient(
			base_url=base_url.rstrip("/"),
			timeout=timeout or self._REQUEST_TIMEOUT,
		)

	async def send_turn(
		self,
		messages: Sequence[Message],
		*,
		model: Optional[str] = None,
		context_optimization: bool = True,
	) -> str:
		"""Return the assistant reply for ``messages``.

		Raises:
			TurnRequestError: The server answered with an error status or could not be reached.
		"""
		body: Dict[str, Any] = {
			"messages": [msg.to_payload() for msg in messages],
			"contextOptimization": context_optimization,
		}
		if model:
			body["model"] = model
		LOGGER.debug("Posting %d messages to /turn", len(messages))
		try:
			response = await self._client.post("/turn", json=body)
		except httpx.HTTPError as exc:
			raise TurnRequestError(500, str(exc) or exc.__class__.__name__) from exc

		if response.status_code >= 400:
			raise TurnRequestError(response.status_code, response.text)
		try:
			data = response.json()
		except ValueError as exc:
			raise TurnRequestError(502, "Turn endpoint returned invalid JSON") from exc
		reply = data.get("response") if isinstance(data, dict) else None
		if not isinstance(reply, str):
			raise TurnRequestError(502, "Turn endpoint response is missing 'response'")
		return reply

	async def aclose(self) -> None:
		if self._owns_client:
			await self._client.aclose()
