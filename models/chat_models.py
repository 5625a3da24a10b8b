"""Conversation domain models shared by the turn handler and the session client."""

from __future__ import annotations

import itertools
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple, Union

_ID_SEQUENCE = itertools.count(1)


def new_message_id(role: str) -> str:
	"""Return a unique, roughly time-ordered id such as ``user-1718000000000-3``."""
	return f"{role}-{int(time.time() * 1000)}-{next(_ID_SEQUENCE)}"


class Role(str, Enum):
	USER = "user"
	ASSISTANT = "assistant"
	SYSTEM = "system"


@dataclass(frozen=True)
class Attachment:
	"""File attached to a message, carried inline as base64."""

	name: str
	mime_type: str
	inline_data: str

	def to_payload(self) -> Dict[str, str]:
		return {"name": self.name, "mimeType": self.mime_type, "inlineData": self.inline_data}


@dataclass(frozen=True)
class TextPart:
	text: str
	type: str = "text"


@dataclass(frozen=True)
class FilePart:
	mime_type: str
	data: str
	type: str = "file"


RenderPart = Union[TextPart, FilePart]


@dataclass(frozen=True)
class Message:
	"""One conversation entry. Never mutated after it joins a history."""

	id: str
	role: str
	content: str
	attachments: Tuple[Attachment, ...] = ()
	render_parts: Tuple[RenderPart, ...] = ()

	def to_payload(self) -> Dict[str, Any]:
		"""Return the wire representation sent to ``POST /turn``."""
		payload: Dict[str, Any] = {"id": self.id, "role": self.role, "content": self.content}
		if self.attachments:
			payload["attachments"] = [item.to_payload() for item in self.attachments]
		return payload


@dataclass(frozen=True)
class ProviderTurn:
	"""Single turn in the provider's vocabulary: ``user`` or ``model``."""

	role: str
	text: str


@dataclass
class CacheEntry:
	key: str
	value: str
	created_at: float


class ErrorKind(str, Enum):
	AUTHENTICATION = "authentication"
	RATE_LIMIT = "rate_limit"
	QUOTA = "quota"
	NETWORK = "network"
	UNKNOWN = "unknown"


@dataclass(frozen=True)
class ErrorInfo:
	"""Classified failure of one turn."""

	message: str
	is_retryable: bool
	status_code: int
	provider_name: str
	kind: ErrorKind
	retry_delay_ms: int = 0


@dataclass(frozen=True)
class ErrorAlert:
	"""Titled alert surfaced to the user after a failed turn."""

	title: str
	description: str
	provider_name: str
	kind: ErrorKind
	is_retryable: bool
	info: Optional[ErrorInfo] = None


class SessionStatus(str, Enum):
	IDLE = "idle"
	SENDING = "sending"
	ABORTED = "aborted"


@dataclass
class SessionState:
	"""In-memory state of one chat session on the client."""

	messages: List[Message] = field(default_factory=list)
	status: SessionStatus = SessionStatus.IDLE
	pending_error_alert: Optional[ErrorAlert] = None
	initial_count: int = 0
