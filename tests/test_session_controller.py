"""Tests for the client-side SessionController state machine."""

from __future__ import annotations

import asyncio
import json

import pytest
from conftest import FakeTransport, MemoryPersistence, make_message

from client.session_controller import SessionController
from client.turn_client import TurnRequestError
from models.chat_models import ErrorKind, SessionStatus
from utils.settings import ChatSettings


@pytest.mark.asyncio
async def test_append_sends_full_history_and_appends_reply():
    transport = FakeTransport(reply="4")
    prior = [make_message("user", "1+1?"), make_message("assistant", "2")]
    session = SessionController(transport, initial_messages=prior)

    reply = await session.append(make_message("user", "2+2?"))

    assert reply is not None and reply.content == "4" and reply.role == "assistant"
    assert [m.content for m in transport.calls[0]["messages"]] == ["1+1?", "2", "2+2?"]
    assert [m.content for m in session.messages] == ["1+1?", "2", "2+2?", "4"]
    assert session.status is SessionStatus.IDLE


@pytest.mark.asyncio
async def test_settings_are_forwarded_with_each_turn():
    transport = FakeTransport()
    settings = ChatSettings(selected_model_id="OpenAI:gpt-4.1-mini", context_optimization_enabled=False)
    session = SessionController(transport, settings=settings)

    await session.send_text("hi")

    assert transport.calls[0]["model"] == "OpenAI:gpt-4.1-mini"
    assert transport.calls[0]["context_optimization"] is False
    assert session.provider_name == "OpenAI"


@pytest.mark.asyncio
async def test_append_while_sending_aborts_instead_of_sending_again():
    transport = FakeTransport(reply="late reply")
    transport.gate = asyncio.Event()
    session = SessionController(transport)

    first = asyncio.create_task(session.append(make_message("user", "slow question")))
    await asyncio.sleep(0)
    assert session.status is SessionStatus.SENDING

    second = await session.append(make_message("user", "impatient"))

    assert second is None
    assert session.status is SessionStatus.ABORTED
    assert len(transport.calls) == 1

    transport.gate.set()
    assert await first is None
    assert [m.content for m in session.messages] == ["slow question"]
    assert session.status is SessionStatus.ABORTED


@pytest.mark.asyncio
async def test_aborted_flag_clears_on_next_successful_send():
    session = SessionController(FakeTransport(reply="ok"))
    session.abort()
    assert session.aborted

    await session.send_text("again")

    assert not session.aborted
    assert session.status is SessionStatus.IDLE


@pytest.mark.asyncio
async def test_failure_sets_alert_and_appends_nothing():
    error = TurnRequestError(401, json.dumps({"error": "API key not configured for provider OpenAI"}))
    session = SessionController(FakeTransport(error=error))

    result = await session.send_text("hello")

    assert result is None
    assert [m.role for m in session.messages] == ["user"]
    assert session.status is SessionStatus.IDLE
    alert = session.pending_error_alert
    assert alert is not None
    assert alert.kind is ErrorKind.AUTHENTICATION
    assert alert.title == "Authentication Error"
    assert alert.is_retryable is False
    assert alert.provider_name == "OpenAI"

    session.clear_error_alert()
    assert session.pending_error_alert is None


@pytest.mark.asyncio
async def test_server_error_is_retryable_network_failure():
    session = SessionController(FakeTransport(error=TurnRequestError(503, "Service Unavailable")))
    await session.send_text("hello")
    alert = session.pending_error_alert
    assert alert.kind is ErrorKind.NETWORK
    assert alert.is_retryable is True


@pytest.mark.asyncio
async def test_reload_without_user_message_is_noop():
    transport = FakeTransport()
    prior = [make_message("assistant", "welcome")]
    session = SessionController(transport, initial_messages=prior)

    assert await session.reload() is None
    assert session.messages == tuple(prior)
    assert transport.calls == []


@pytest.mark.asyncio
async def test_reload_reappends_last_user_message():
    transport = FakeTransport(reply="answer")
    session = SessionController(transport)
    await session.send_text("question")

    await session.reload()

    contents = [m.content for m in session.messages]
    assert contents == ["question", "answer", "question", "answer"]
    ids = [m.id for m in session.messages]
    assert len(set(ids)) == len(ids)
    assert len(transport.calls) == 2


@pytest.mark.asyncio
async def test_send_text_builds_render_parts_and_attachments():
    transport = FakeTransport()
    session = SessionController(transport)

    await session.send_text("see image", ["data:image/png;base64,QUJD"])

    sent = transport.calls[0]["messages"][0]
    assert sent.render_parts[0].text == "see image"
    assert sent.render_parts[1].mime_type == "image/png"
    assert sent.render_parts[1].data == "QUJD"
    assert sent.attachments[0].inline_data == "QUJD"


@pytest.mark.asyncio
async def test_history_is_persisted_once_it_grows():
    persistence = MemoryPersistence(initial=[make_message("user", "old"), make_message("assistant", "old reply")])
    session = await SessionController.start(FakeTransport(reply="new reply"), persistence, sample_interval=0)

    session.abort()
    await session.flush()
    assert persistence.saved == []

    await session.send_text("new")
    await session.flush()

    assert persistence.saved[-1] == list(session.messages)
    assert len(persistence.saved[-1]) == 4


@pytest.mark.asyncio
async def test_rapid_changes_are_coalesced():
    persistence = MemoryPersistence()
    session = SessionController(FakeTransport(reply="r"), persistence=persistence, sample_interval=10)

    await session.send_text("a")
    await session.flush()

    # leading save at send time, one trailing save for the reply
    assert len(persistence.saved) == 2
    assert [m.content for m in persistence.saved[-1]] == ["a", "r"]


@pytest.mark.asyncio
async def test_persistence_failure_notifies_without_rollback():
    notices = []
    persistence = MemoryPersistence(fail=True)
    session = SessionController(
        FakeTransport(reply="r"), persistence=persistence, notify=notices.append, sample_interval=0
    )

    await session.send_text("a")
    await session.flush()

    assert notices and "disk full" in notices[0]
    assert [m.content for m in session.messages] == ["a", "r"]


@pytest.mark.asyncio
async def test_change_hook_receives_loading_state():
    seen = []
    session = SessionController(
        FakeTransport(reply="r"),
        on_change=lambda messages, loading: seen.append((len(messages), loading)),
        sample_interval=0,
    )

    await session.send_text("a")

    assert seen == [(1, True), (2, False)]


@pytest.mark.asyncio
async def test_cancelled_append_returns_session_to_idle():
    transport = FakeTransport(reply="never delivered")
    transport.gate = asyncio.Event()
    session = SessionController(transport)

    pending = asyncio.create_task(session.append(make_message("user", "slow question")))
    await asyncio.sleep(0)
    assert session.status is SessionStatus.SENDING

    pending.cancel()
    with pytest.raises(asyncio.CancelledError):
        await pending
    assert session.status is SessionStatus.IDLE

    transport.gate = None
    transport.reply = "answer"
    reply = await session.append(make_message("user", "second try"))

    assert reply is not None and reply.content == "answer"
    assert len(transport.calls) == 2
    assert session.status is SessionStatus.IDLE


@pytest.mark.asyncio
async def test_blank_text_is_not_sent():
    transport = FakeTransport()
    session = SessionController(transport)

    assert await session.send_text("   ") is None
    assert await session.send_text("") is None

    assert transport.calls == []
    assert session.messages == ()
    assert session.status is SessionStatus.IDLE
