"""Time-boxed memo of recent model replies keyed by conversation tail."""

from __future__ import annotations

import hashlib
import logging
import threading
import time
from typing import Callable, Dict, Optional, Sequence

from models.chat_models import CacheEntry, Message

LOGGER = logging.getLogger(__name__)

DEFAULT_TTL_SECONDS = 5 * 60
DEFAULT_MAX_ENTRIES = 100
KEY_TAIL = 3
KEY_CONTENT_CHARS = 100


def cache_key(history: Sequence[Message]) -> str:
	"""Digest the last messages by role and leading content only.

	Ids are ignored, so identical tails from different conversations collide.
	"""
	tail = history[-KEY_TAIL:] if history else []
	raw = "|".join(f"{msg.role}:{msg.content[:KEY_CONTENT_CHARS]}" for msg in tail)
	return hashlib.sha256(raw.encode("utf-8")).hexdigest()


class ResponseCache:
	"""FIFO-bounded reply cache with lazy TTL expiry.

	All reads and writes go through one lock so a lookup never observes a
	half-applied eviction.
	"""

	def __init__(
		self,
		ttl_seconds: float = DEFAULT_TTL_SECONDS,
		max_entries: int = DEFAULT_MAX_ENTRIES,
		clock: Callable[[], float] = time.monotonic,
	) -> None:
		if max_entries < 1:
			raise ValueError("max_entries must be at least 1")
		self.ttl_seconds = ttl_seconds
		self.max_entries = max_entries
		self._clock = clock
		self._entries: Dict[str, CacheEntry] = {}
		self._lock = threading.Lock()

	@staticmethod
	def key(history: Sequence[Message]) -> str:
		return cache_key(history)

	def get(self, key: str) -> Optional[str]:
		"""Return the cached reply, or None when missing or expired."""
		with self._lock:
			entry = self._entries.get(key)
			if entry is None:
				return None
			if self._clock() - entry.created_at < self.ttl_seconds:
				return entry.value
			del self._entries[key]
			LOGGER.debug("Evicted expired cache entry %s", key[:12])
			return None

	def put(self, key: str, value: str) -> None:
		"""Insert or overwrite; a new key beyond the bound evicts the oldest insert."""
		with self._lock:
			existing = self._entries.get(key)
			if existing is not None:
				# Overwrites keep their first insertion slot.
				existing.value = value
				existing.created_at = self._clock()
				return
			if len(self._entries) >= self.max_entries:
				oldest = next(iter(self._entries))
				del self._entries[oldest]
			self._entries[key] = CacheEntry(key=key, value=value, created_at=self._clock())

	def __len__(self) -> int:
		with self._lock:
			return len(self._entries)

	def __contains__(self, key: object) -> bool:
		with self._lock:
			return key in self._entries
