"""Shared fixtures and fakes for the chat pipeline tests."""

from __future__ import annotations

import asyncio
from types import SimpleNamespace
from typing import List, Optional, Sequence
from unittest.mock import AsyncMock

import pytest

from models.chat_models import Message


class FakeClock:
    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeGateway:
    """Stands in for ModelGateway; records every call."""

    def __init__(self, reply: str = "Hello from the model", error: Optional[Exception] = None) -> None:
        self.reply = reply
        self.error = error
        self.calls: List[dict] = []

    async def send(self, turns, user_prompt, *, model, api_key=None):
        self.calls.append({"turns": list(turns), "prompt": user_prompt, "model": model, "api_key": api_key})
        if self.error is not None:
            raise self.error
        return self.reply

    def open_clients(self):
        return []


class FakeTransport:
    """Stands in for TurnClient; optionally blocks until `gate` is set."""

    def __init__(self, reply: str = "assistant reply", error: Optional[Exception] = None) -> None:
        self.reply = reply
        self.error = error
        self.gate: Optional[asyncio.Event] = None
        self.calls: List[dict] = []

    async def send_turn(self, messages: Sequence[Message], *, model=None, context_optimization=True) -> str:
        self.calls.append(
            {"messages": list(messages), "model": model, "context_optimization": context_optimization}
        )
        if self.gate is not None:
            await self.gate.wait()
        if self.error is not None:
            raise self.error
        return self.reply


class MemoryPersistence:
    def __init__(self, initial: Sequence[Message] = (), fail: bool = False) -> None:
        self.initial = list(initial)
        self.fail = fail
        self.saved: List[List[Message]] = []

    async def load(self) -> List[Message]:
        return list(self.initial)

    async def save(self, messages: Sequence[Message]) -> None:
        if self.fail:
            raise OSError("disk full")
        self.saved.append(list(messages))


def make_message(role: str, content: str, msg_id: Optional[str] = None) -> Message:
    return Message(id=msg_id or f"{role}-{content}", role=role, content=content)


def make_history(count: int) -> List[Message]:
    """Alternate user/assistant messages ``m0 .. m{count-1}``."""
    return [make_message("user" if i % 2 == 0 else "assistant", f"m{i}", f"id-{i}") for i in range(count)]


def make_openai_client(reply: str = "Hello from the model") -> SimpleNamespace:
    response = SimpleNamespace(
        output=[
            SimpleNamespace(
                type="message",
                content=[SimpleNamespace(type="output_text", text=reply)],
            )
        ],
        output_text=reply,
        usage=SimpleNamespace(input_tokens=12, output_tokens=4),
    )
    return SimpleNamespace(responses=SimpleNamespace(create=AsyncMock(return_value=response)))


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def api_key(monkeypatch: pytest.MonkeyPatch) -> str:
    monkeypatch.setenv("OPENAI_API_KEY", "sk-test")
    return "sk-test"
