"""Build the bounded provider context for a conversation turn."""

from __future__ import annotations

from typing import Callable, List, Sequence

from models.chat_models import Message, ProviderTurn, Role
from services.chat.prompts import acknowledgement, system_prompt

HISTORY_WINDOW = 10


class ContextAssembler:
	"""Turn a full message history into preamble + recent provider turns.

	Older turns are truncated, never summarized. The newest message is left
	out because the gateway sends the user prompt as the final turn itself.
	"""

	def __init__(
		self,
		window: int = HISTORY_WINDOW,
		instruction: Callable[[], str] = system_prompt,
	) -> None:
		if window < 1:
			raise ValueError("window must be at least 1")
		self.window = window
		self._instruction = instruction

	def preamble(self) -> List[ProviderTurn]:
		return [
			ProviderTurn(role="user", text=self._instruction()),
			ProviderTurn(role="model", text=acknowledgement()),
		]

	def assemble(self, history: Sequence[Message]) -> List[ProviderTurn]:
		"""Return the preamble followed by at most ``window - 1`` prior turns."""
		conversation = [msg for msg in history if msg.role != Role.SYSTEM.value]
		recent = conversation[-self.window:-1]
		turns = self.preamble()
		turns.extend(
			ProviderTurn(role="user" if msg.role == Role.USER.value else "model", text=msg.content)
			for msg in recent
		)
		return turns
