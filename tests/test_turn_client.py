"""Tests for the HTTP TurnClient using httpx.MockTransport."""

from __future__ import annotations

import json

import httpx
import pytest
from conftest import make_message

from client.turn_client import TurnClient, TurnRequestError


def _client(handler) -> TurnClient:
    http = httpx.AsyncClient(transport=httpx.MockTransport(handler), base_url="http://chat.test")
    return TurnClient("http://chat.test", client=http)


@pytest.mark.asyncio
async def test_posts_whole_history_and_returns_reply():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["path"] = request.url.path
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={"response": "pong"})

    client = _client(handler)
    reply = await client.send_turn(
        [make_message("user", "ping", "u1")], model="OpenAI:gpt-5", context_optimization=False
    )

    assert reply == "pong"
    assert seen["path"] == "/turn"
    assert seen["body"] == {
        "messages": [{"id": "u1", "role": "user", "content": "ping"}],
        "contextOptimization": False,
        "model": "OpenAI:gpt-5",
    }


@pytest.mark.asyncio
async def test_error_status_raises_with_raw_body():
    client = _client(lambda request: httpx.Response(429, json={"error": "Rate limit reached"}))

    with pytest.raises(TurnRequestError) as info:
        await client.send_turn([make_message("user", "hi")])

    assert info.value.status_code == 429
    assert json.loads(info.value.raw_message) == {"error": "Rate limit reached"}


@pytest.mark.asyncio
async def test_transport_failure_defaults_to_500():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(TurnRequestError) as info:
        await _client(handler).send_turn([make_message("user", "hi")])

    assert info.value.status_code == 500
    assert "connection refused" in info.value.raw_message


@pytest.mark.asyncio
async def test_missing_response_field_is_an_error():
    client = _client(lambda request: httpx.Response(200, json={"unexpected": True}))
    with pytest.raises(TurnRequestError) as info:
        await client.send_turn([make_message("user", "hi")])
    assert info.value.status_code == 502
