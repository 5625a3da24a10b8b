"""Environment-backed settings for the turn service and the chat client."""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Optional

DEFAULT_PROVIDER = "OpenAI"
DEFAULT_MODEL = "gpt-5"


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def _env_number(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw)
    except ValueError as exc:
        raise RuntimeError(f"{name}={raw!r} is not a number") from exc


@dataclass(frozen=True)
class ServiceSettings:
    """Backend configuration read once at application startup.

    Attributes:
        default_model: Model name used when a turn does not name one.
        provider_name: Provider whose credential the turn handler resolves.
        provider_timeout_seconds: Upper bound on a single provider call.
        cache_ttl_seconds: Lifetime of a cached reply.
        cache_max_entries: Maximum number of cached replies kept in memory.
        database_dir: Directory holding the chat history database, if any.
    """

    default_model: str = DEFAULT_MODEL
    provider_name: str = DEFAULT_PROVIDER
    provider_timeout_seconds: float = 60.0
    cache_ttl_seconds: float = 300.0
    cache_max_entries: int = 100
    database_dir: Optional[str] = None

    @classmethod
    def from_env(cls) -> "ServiceSettings":
        return cls(
            default_model=os.getenv("OPENAI_MODEL", DEFAULT_MODEL),
            provider_timeout_seconds=_env_number("PROVIDER_TIMEOUT_SECONDS", 60.0),
            cache_ttl_seconds=_env_number("RESPONSE_CACHE_TTL_SECONDS", 300.0),
            cache_max_entries=int(_env_number("RESPONSE_CACHE_MAX_ENTRIES", 100)),
            database_dir=os.getenv("DATABASE_DIR") or None,
        )


@dataclass(frozen=True)
class ChatSettings:
    """Read-only settings the chat session consults on every turn."""

    selected_model_id: str = f"{DEFAULT_PROVIDER}:{DEFAULT_MODEL}"
    context_optimization_enabled: bool = True
    api_url: str = "http://127.0.0.1:8000"

    @classmethod
    def from_env(cls) -> "ChatSettings":
        model = os.getenv("OPENAI_MODEL", DEFAULT_MODEL)
        return cls(
            selected_model_id=os.getenv("SELECTED_MODEL_ID", f"{DEFAULT_PROVIDER}:{model}"),
            context_optimization_enabled=_env_bool("CONTEXT_OPTIMIZATION", True),
            api_url=os.getenv("CHAT_API_URL", "http://127.0.0.1:8000"),
        )
