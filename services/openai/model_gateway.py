"""Single-shot chat completion against the OpenAI Responses API.

The gateway sends the assembled provider turns plus the user prompt in one
request and waits for the full reply. It never retries: retry is a decision
left to the chat session, which knows whether the user asked for one.
"""

import asyncio
import json
import logging
import time
from typing import Any, Callable, Dict, List, Optional, Sequence

import openai
from openai import AsyncOpenAI

from models.chat_models import ProviderTurn
from services.openai.response_parser import extract_text, extract_usage

LOGGER = logging.getLogger(__name__)
DEFAULT_TIMEOUT_SECONDS = 60.0


class ProviderError(Exception):
    """Transport or provider failure carrying the status to report upstream."""

    def __init__(self, status_code: int, raw_message: str) -> None:
        super().__init__(raw_message)
        self.status_code = status_code
        self.raw_message = raw_message


def _input_message(role: str, text: str) -> Dict[str, Any]:
    if role == "user":
        return {"type": "message", "role": "user", "content": [{"type": "input_text", "text": text}]}
    return {"type": "message", "role": "assistant", "content": [{"type": "output_text", "text": text}]}


def _status_error_message(exc: "openai.APIStatusError") -> str:
    """Keep structured error bodies as JSON so callers can parse them."""
    body = getattr(exc, "body", None)
    if isinstance(body, (dict, list)):
        return json.dumps(body)
    return getattr(exc, "message", None) or str(exc)


class ModelGateway:
    """Invoke the language model once per turn and return its text.

    Args:
        client: Optional shared ``AsyncOpenAI`` client. When omitted, one client
            per API key is created on first use.
        timeout_seconds: Hard upper bound on one provider call.
        client_factory: Builds a client from an API key; mainly for tests.
    """

    def __init__(
        self,
        client: Optional[AsyncOpenAI] = None,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
        client_factory: Optional[Callable[[str], AsyncOpenAI]] = None,
    ) -> None:
        self.client = client
        self.timeout_seconds = timeout_seconds
        self._client_factory = client_factory or self._default_factory
        self._clients: Dict[str, AsyncOpenAI] = {}

    def _default_factory(self, api_key: str) -> AsyncOpenAI:
        return AsyncOpenAI(api_key=api_key, max_retries=0, timeout=self.timeout_seconds)

    def _resolve_client(self, api_key: Optional[str]) -> AsyncOpenAI:
        """Return the injected client or a cached per-key client."""
        if self.client is not None:
            return self.client
        if not api_key:
            raise ProviderError(401, "API key is required to call the model provider.")
        client = self._clients.get(api_key)
        if client is None:
            client = self._client_factory(api_key)
            self._clients[api_key] = client
        return client

    def open_clients(self) -> List[AsyncOpenAI]:
        """Return the injected client and every per-key client created so far."""
        clients = list(self._clients.values())
        if self.client is not None:
            clients.append(self.client)
        return clients

    @staticmethod
    def build_input(turns: Sequence[ProviderTurn], user_prompt: str) -> List[Dict[str, Any]]:
        messages = [_input_message(turn.role, turn.text) for turn in turns]
        messages.append(_input_message("user", user_prompt))
        return messages

    async def send(
        self,
        turns: Sequence[ProviderTurn],
        user_prompt: str,
        *,
        model: str,
        api_key: Optional[str] = None,
    ) -> str:
        """Return the model's full reply text.

        Raises:
            ProviderError: On any provider-reported, transport or timeout failure,
                or when the provider returns no text.
        """
        client = self._resolve_client(api_key)
        start = time.time()
        try:
            response = await asyncio.wait_for(
                client.responses.create(model=model, input=self.build_input(turns, user_prompt)),
                timeout=self.timeout_seconds,
            )
        except asyncio.TimeoutError as exc:
            LOGGER.error("Model provider call exceeded %.1fs", self.timeout_seconds)
            raise ProviderError(504, f"Model provider timed out after {self.timeout_seconds:.0f}s") from exc
        except openai.APIStatusError as exc:
            LOGGER.error("Model provider returned status %s: %s", exc.status_code, exc)
            raise ProviderError(exc.status_code, _status_error_message(exc)) from exc
        except openai.APITimeoutError as exc:
            LOGGER.error("Model provider request timed out: %s", exc)
            raise ProviderError(504, str(exc) or "Request timed out") from exc
        except openai.APIConnectionError as exc:
            LOGGER.error("Model provider connection failed: %s", exc)
            raise ProviderError(503, str(exc) or "Connection error") from exc
        except openai.OpenAIError as exc:
            LOGGER.error("Model provider error: %s", exc)
            raise ProviderError(500, str(exc)) from exc

        text = extract_text(response)
        usage = extract_usage(response)
        LOGGER.info(
            "Model reply in %.3fs (model=%s, input_tokens=%s, output_tokens=%s)",
            time.time() - start,
            model,
            usage["input_tokens"],
            usage["output_tokens"],
        )
        if not text:
            raise ProviderError(502, "Model provider returned an empty response")
        return text
