"""
Claude adapter over a mocked Messages API
"""

import asyncio

import httpx
import orjson
import pytest

from kabyar.providers.base import AIMessage
from kabyar.providers.claude import ClaudeAdapter, ClaudeStreamError

MESSAGES = [
    AIMessage(role="system", content="You are a tutor."),
    AIMessage(role="user", content="Say hello"),
]


def sse(*events):
    lines = []
    for event in events:
        lines.append(f"event: {event['type']}")
        lines.append("data: " + orjson.dumps(event).decode())
        lines.append("")
    return ("\n".join(lines) + "\n").encode()


def text_delta(text):
    return {"type": "content_block_delta", "index": 0, "delta": {"type": "text_delta", "text": text}}


def make_adapter(handler):
    return ClaudeAdapter(client=httpx.AsyncClient(transport=httpx.MockTransport(handler)))


async def collect(stream):
    return [chunk async for chunk in stream]


def test_stream_yields_text_deltas_in_order():
    seen = {}

    def handler(request):
        seen["url"] = str(request.url)
        seen["headers"] = request.headers
        seen["body"] = orjson.loads(request.content)
        body = sse(
            {"type": "message_start", "message": {"id": "msg_1"}},
            text_delta("Hel"),
            text_delta(""),
            {"type": "content_block_delta", "index": 0, "delta": {"type": "input_json_delta", "partial_json": "{}"}},
            text_delta("lo, "),
            {"type": "ping"},
            text_delta("world!"),
            {"type": "message_stop"},
        )
        return httpx.Response(200, content=body, headers={"content-type": "text/event-stream"})

    adapter = make_adapter(handler)

    async def run():
        stream = await adapter.stream(MESSAGES, "sk-ant", "fast")
        return await collect(stream)

    chunks = asyncio.run(run())

    assert chunks == [b"Hel", b"lo, ", b"world!"]
    assert seen["url"].endswith("/v1/messages")
    assert seen["headers"]["x-api-key"] == "sk-ant"
    assert seen["headers"]["anthropic-version"] == "2023-06-01"
    assert seen["body"]["system"] == "You are a tutor."
    assert seen["body"]["messages"] == [{"role": "user", "content": "Say hello"}]
    assert seen["body"]["model"] == "claude-3-5-haiku-20241022"
    assert seen["body"]["stream"] is True


def test_stream_error_event_raises():
    def handler(request):
        body = sse(
            text_delta("partial"),
            {"type": "error", "error": {"type": "overloaded_error", "message": "Overloaded"}},
        )
        return httpx.Response(200, content=body)

    adapter = make_adapter(handler)

    async def run():
        stream = await adapter.stream(MESSAGES, "sk-ant")
        return await collect(stream)

    with pytest.raises(ClaudeStreamError, match="Overloaded"):
        asyncio.run(run())


def test_stream_http_error_raises_before_streaming():
    def handler(request):
        return httpx.Response(401, json={"error": {"message": "invalid x-api-key"}})

    adapter = make_adapter(handler)

    with pytest.raises(httpx.HTTPStatusError):
        asyncio.run(adapter.stream(MESSAGES, "bad-key"))


def test_chat_joins_text_blocks():
    def handler(request):
        body = orjson.loads(request.content)
        assert "stream" not in body
        return httpx.Response(200, json={
            "model": "claude-3-5-sonnet-20241022",
            "content": [{"type": "text", "text": "Hello, "}, {"type": "text", "text": "world!"}],
            "usage": {"input_tokens": 7, "output_tokens": 5},
        })

    adapter = make_adapter(handler)
    response = asyncio.run(adapter.chat(MESSAGES, "sk-ant"))

    assert response.content == "Hello, world!"
    assert response.tokens == 12
    assert response.model == "claude-3-5-sonnet-20241022"


def test_no_system_field_without_system_messages():
    seen = {}

    def handler(request):
        seen["body"] = orjson.loads(request.content)
        return httpx.Response(200, json={"content": [], "model": "m"})

    adapter = make_adapter(handler)
    asyncio.run(adapter.chat([AIMessage(role="user", content="hi")], "sk-ant"))

    assert "system" not in seen["body"]
