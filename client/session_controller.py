"""Client-side state machine for one chat session.

The controller owns the message list. Each turn posts the entire history to
the turn endpoint; one turn may be in flight at a time. Persistence and the
change hook are sampled so bursts of state changes cost one save.
"""

from __future__ import annotations

import asyncio
import dataclasses
import logging
from typing import Callable, Iterable, List, Optional, Protocol, Sequence, Set, Tuple

from client.turn_client import TurnRequestError
from models.chat_models import ErrorAlert, Message, Role, SessionState, SessionStatus, new_message_id
from services.chat.error_classifier import build_alert, build_error_info
from services.chat.message_parts import create_message_parts, image_attachments, parse_provider_from_model
from utils.sampler import Sampler
from utils.settings import ChatSettings

LOGGER = logging.getLogger(__name__)

SAMPLE_INTERVAL_SECONDS = 0.05


class TurnTransport(Protocol):
	async def send_turn(
		self, messages: Sequence[Message], *, model: Optional[str] = None, context_optimization: bool = True
	) -> str: ...


class HistoryPersistence(Protocol):
	async def load(self) -> List[Message]: ...

	async def save(self, messages: Sequence[Message]) -> None: ...


def _log_notification(text: str) -> None:
	LOGGER.warning(text)


class SessionController:
	"""Track history, loading/abort state and errors for one conversation.

	Args:
		transport: Sends whole histories and returns the reply text.
		settings: Read-only chat settings (model id, context optimization flag).
		persistence: Optional history store receiving the full list after growth.
		initial_messages: Hydrated history; saving starts once it grows.
		notify: Non-blocking user notification, used for persistence failures.
		on_change: Sampled hook receiving ``(messages, is_loading)``.
		sample_interval: Minimum seconds between sampled side effects.
	"""

	def __init__(
		self,
		transport: TurnTransport,
		*,
		settings: Optional[ChatSettings] = None,
		persistence: Optional[HistoryPersistence] = None,
		initial_messages: Iterable[Message] = (),
		notify: Callable[[str], None] = _log_notification,
		on_change: Optional[Callable[[List[Message], bool], None]] = None,
		sample_interval: float = SAMPLE_INTERVAL_SECONDS,
	) -> None:
		initial = list(initial_messages)
		self._transport = transport
		self.settings = settings or ChatSettings()
		self._persistence = persistence
		self._notify = notify
		self._on_change = on_change
		self._state = SessionState(messages=initial, initial_count=len(initial))
		self._sampler = Sampler(self._process_sampled, sample_interval)
		self._turn_seq = 0
		self._save_tasks: Set[asyncio.Task] = set()
		self._save_lock = asyncio.Lock()

	@classmethod
	async def start(
		cls,
		transport: TurnTransport,
		persistence: Optional[HistoryPersistence] = None,
		**kwargs,
	) -> "SessionController":
		"""Create a controller hydrated from ``persistence``."""
		initial = await persistence.load() if persistence is not None else []
		return cls(transport, persistence=persistence, initial_messages=initial, **kwargs)

	@property
	def messages(self) -> Tuple[Message, ...]:
		return tuple(self._state.messages)

	@property
	def status(self) -> SessionStatus:
		return self._state.status

	@property
	def is_loading(self) -> bool:
		return self._state.status is SessionStatus.SENDING

	@property
	def aborted(self) -> bool:
		return self._state.status is SessionStatus.ABORTED

	@property
	def pending_error_alert(self) -> Optional[ErrorAlert]:
		return self._state.pending_error_alert

	@property
	def provider_name(self) -> str:
		return parse_provider_from_model(self.settings.selected_model_id)

	async def append(self, message: Message) -> Optional[Message]:
		"""Send ``message`` with the whole history and return the assistant reply.

		While a turn is in flight this aborts it instead and returns None. Also
		returns None when the turn fails or is aborted before its reply lands.
		"""
		if self._state.status is SessionStatus.SENDING:
			LOGGER.info("Turn already in flight; treating append as abort")
			self.abort()
			return None

		self._turn_seq += 1
		turn = self._turn_seq
		history = [*self._state.messages, message]
		self._state.messages = history
		self._state.status = SessionStatus.SENDING
		self._state.pending_error_alert = None
		self._changed()

		try:
			reply = await self._transport.send_turn(
				history,
				model=self.settings.selected_model_id,
				context_optimization=self.settings.context_optimization_enabled,
			)
		except TurnRequestError as exc:
			if turn != self._turn_seq:
				LOGGER.info("Ignoring failure of aborted turn: %s", exc)
				return None
			self._handle_error(exc.status_code, exc.raw_message)
			return None
		except BaseException:
			# Includes cancellation; the next append must not be read as an abort.
			if turn == self._turn_seq:
				self._state.status = SessionStatus.IDLE
				self._changed()
			raise

		if turn != self._turn_seq:
			LOGGER.info("Discarding reply that arrived after abort")
			return None

		assistant = Message(id=new_message_id(Role.ASSISTANT.value), role=Role.ASSISTANT.value, content=reply)
		self._state.messages = [*history, assistant]
		self._state.status = SessionStatus.IDLE
		self._changed()
		return assistant

	async def send_text(self, text: str, images: Sequence[str] = ()) -> Optional[Message]:
		"""Build a user message from text and data-URL images, then append it.

		Blank text is ignored and returns None without contacting the backend.
		"""
		if not text.strip():
			LOGGER.info("Ignoring blank message")
			return None
		message = Message(
			id=new_message_id(Role.USER.value),
			role=Role.USER.value,
			content=text,
			attachments=image_attachments(images),
			render_parts=tuple(create_message_parts(text, images)),
		)
		return await self.append(message)

	async def reload(self) -> Optional[Message]:
		"""Append the most recent user message again; no-op without one."""
		last_user = next(
			(msg for msg in reversed(self._state.messages) if msg.role == Role.USER.value),
			None,
		)
		if last_user is None:
			LOGGER.info("No user message found to reload")
			return None
		return await self.append(dataclasses.replace(last_user, id=new_message_id(Role.USER.value)))

	def abort(self) -> None:
		"""Stop waiting for the current turn. The server-side call keeps running."""
		self._turn_seq += 1
		self._state.status = SessionStatus.ABORTED
		LOGGER.info(
			"Chat response aborted (provider=%s, model=%s)",
			self.provider_name,
			self.settings.selected_model_id,
		)
		self._changed()

	def clear_error_alert(self) -> None:
		self._state.pending_error_alert = None

	async def flush(self) -> None:
		"""Run any sampled work now and wait for outstanding saves."""
		self._sampler.flush()
		if self._save_tasks:
			await asyncio.gather(*list(self._save_tasks))

	def _handle_error(self, status_code: int, raw_message: str) -> None:
		info = build_error_info(status_code, raw_message, self.provider_name)
		LOGGER.error(
			"chat request failed (kind=%s, status=%s, retryable=%s, provider=%s): %s",
			info.kind.value,
			info.status_code,
			info.is_retryable,
			info.provider_name,
			info.message,
		)
		self._state.pending_error_alert = build_alert(info)
		self._state.status = SessionStatus.IDLE
		self._changed()

	def _changed(self) -> None:
		self._sampler(list(self._state.messages), self.is_loading)

	def _process_sampled(self, messages: List[Message], is_loading: bool) -> None:
		if self._on_change is not None:
			self._on_change(messages, is_loading)
		if self._persistence is not None and len(messages) > self._state.initial_count:
			task = asyncio.get_running_loop().create_task(self._save(messages))
			self._save_tasks.add(task)
			task.add_done_callback(self._save_tasks.discard)

	async def _save(self, messages: List[Message]) -> None:
		# Saves land in the order they were sampled.
		async with self._save_lock:
			try:
				await self._persistence.save(messages)
			except Exception as exc:
				LOGGER.error("Failed to persist chat history: %s", exc)
				self._notify(f"Failed to save chat history: {exc}")
