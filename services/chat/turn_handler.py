"""Answer one conversation turn: validate, consult the cache, call the model."""

from __future__ import annotations

import logging
from typing import Callable, Optional, Sequence, Tuple

from models.chat_models import Message, Role
from services.chat.context_assembler import ContextAssembler
from services.chat.error_classifier import extract_error_message
from services.chat.message_parts import parse_model_name, parse_provider_from_model
from services.chat.response_cache import ResponseCache
from services.credentials import resolve_api_key
from services.openai.model_gateway import ModelGateway, ProviderError

LOGGER = logging.getLogger(__name__)


class TurnValidationError(Exception):
	"""Malformed or incomplete turn request; always answered with a 4xx."""

	def __init__(self, status_code: int, message: str) -> None:
		super().__init__(message)
		self.status_code = status_code
		self.message = message


class TurnFailedError(Exception):
	"""Provider failure translated into the status and message sent to the client."""

	def __init__(self, status_code: int, message: str) -> None:
		super().__init__(message)
		self.status_code = status_code
		self.message = message


def last_user_message(messages: Sequence[Message]) -> Optional[Message]:
	for msg in reversed(messages):
		if msg.role == Role.USER.value:
			return msg
	return None


class TurnHandler:
	"""Backend entry point for ``POST /turn``.

	Holds no per-request state; the response cache is the only shared mutable
	object and is safe to use from concurrent requests.
	"""

	def __init__(
		self,
		cache: ResponseCache,
		gateway: ModelGateway,
		assembler: Optional[ContextAssembler] = None,
		*,
		provider_name: str = "OpenAI",
		default_model: str = "gpt-5",
		key_resolver: Callable[[str], Optional[str]] = resolve_api_key,
	) -> None:
		self.cache = cache
		self.gateway = gateway
		self.assembler = assembler or ContextAssembler()
		self.provider_name = provider_name
		self.default_model = default_model
		self._resolve_key = key_resolver

	def _target(self, model_id: Optional[str]) -> Tuple[str, str]:
		"""Return ``(provider, model)`` for an optional ``provider:model`` id."""
		if not model_id:
			return self.provider_name, self.default_model
		provider = parse_provider_from_model(model_id)
		if provider == "unknown":
			provider = self.provider_name
		return provider, parse_model_name(model_id) or self.default_model

	def _require_api_key(self, provider: str) -> str:
		api_key = self._resolve_key(provider)
		if not api_key:
			raise TurnValidationError(401, f"API key not configured for provider {provider}")
		return api_key

	async def handle(
		self,
		messages: Sequence[Message],
		*,
		model_id: Optional[str] = None,
		use_cache: bool = True,
	) -> str:
		"""Return the reply text for the conversation ending in ``messages``.

		Raises:
			TurnValidationError: Empty history, no user message or no credential.
			TurnFailedError: The provider call failed; nothing was cached.
		"""
		if not messages:
			raise TurnValidationError(400, "Request must include a non-empty messages list")
		prompt = last_user_message(messages)
		if prompt is None:
			raise TurnValidationError(400, "No user message found")

		provider, model = self._target(model_id)
		api_key = self._require_api_key(provider)

		key = self.cache.key(messages)
		if use_cache:
			cached = self.cache.get(key)
			if cached is not None:
				LOGGER.info("Returning cached response for %d messages", len(messages))
				return cached

		turns = self.assembler.assemble(messages)
		LOGGER.info("Sending %d context turns to %s (%s)", len(turns), provider, model)
		try:
			text = await self.gateway.send(turns, prompt.content, model=model, api_key=api_key)
		except ProviderError as exc:
			message = extract_error_message(exc.raw_message)
			LOGGER.error("Turn failed with status %s: %s", exc.status_code, message)
			raise TurnFailedError(exc.status_code or 500, message) from exc

		if use_cache:
			self.cache.put(key, text)
		return text

	async def generate(self, prompt: str, *, model_id: Optional[str] = None) -> str:
		"""One-shot generation with no history, preamble or cache."""
		if not prompt or not isinstance(prompt, str):
			raise TurnValidationError(400, "Prompt is required and must be a string")
		provider, model = self._target(model_id)
		api_key = self._require_api_key(provider)
		try:
			return await self.gateway.send([], prompt, model=model, api_key=api_key)
		except ProviderError as exc:
			message = extract_error_message(exc.raw_message)
			LOGGER.error("Generation failed with status %s: %s", exc.status_code, message)
			raise TurnFailedError(exc.status_code or 500, message) from exc
