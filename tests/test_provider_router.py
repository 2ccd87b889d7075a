"""
Provider router, adapter base helpers and the SDK-backed adapters
"""

import asyncio
from types import SimpleNamespace

import pytest

from kabyar.config import settings
from kabyar.errors import InvalidMessagesError, ProviderConfigError
from kabyar.providers.base import AIMessage, encode_deltas, split_system
from kabyar.providers.gemini import GeminiAdapter
from kabyar.providers.openai_adapter import GrokAdapter, OpenAICompatibleAdapter, ThesysAdapter
from kabyar.providers.router import ProviderRouter

from conftest import PROVIDERS, FakeAdapter

USER_ONLY = [{"role": "user", "content": "hello"}]


def make_router(**kwargs):
    adapters = {name: FakeAdapter(name=name, **kwargs) for name in PROVIDERS}
    return ProviderRouter(adapters=adapters, api_keys={name: f"{name}-key" for name in PROVIDERS}), adapters


async def collect(stream):
    return [chunk async for chunk in stream]


def test_unknown_provider():
    router, _ = make_router()
    with pytest.raises(ProviderConfigError):
        asyncio.run(router.chat("mistral", USER_ONLY))


def test_missing_api_key_fails_at_call_time():
    router = ProviderRouter(adapters={"openai": FakeAdapter(name="openai")}, api_keys={})
    with pytest.raises(ProviderConfigError, match="OPENAI_API_KEY"):
        asyncio.run(router.chat("openai", USER_ONLY))


def test_api_key_read_from_settings(monkeypatch):
    monkeypatch.setattr(settings, "XAI_API_KEY", "xai-from-env")
    adapter = FakeAdapter(name="grok")
    router = ProviderRouter(adapters={"grok": adapter})

    asyncio.run(router.chat("grok", USER_ONLY))

    assert adapter.calls[0]["api_key"] == "xai-from-env"


def test_system_only_messages_rejected():
    router, adapters = make_router()
    with pytest.raises(InvalidMessagesError):
        asyncio.run(router.stream("grok", [{"role": "system", "content": "rules"}]))
    assert adapters["grok"].calls == []


def test_chat_returns_content_and_model():
    router, adapters = make_router(content="Four.")

    response = asyncio.run(router.chat("claude", USER_ONLY, "smart"))

    assert response.content == "Four."
    assert response.model == "fake-smart"
    assert response.tokens == 12
    assert adapters["claude"].calls[0]["api_key"] == "claude-key"


def test_stream_preserves_order_and_drops_empty_deltas():
    router, _ = make_router(chunks=["a", "", "b", "c"])

    async def run():
        stream = await router.stream("gemini", USER_ONLY)
        return await collect(stream)

    assert asyncio.run(run()) == [b"a", b"b", b"c"]


def test_tier_resolution():
    grok = GrokAdapter()
    assert grok.resolve_model("smart") == "grok-4-0709"
    assert grok.resolve_model(None) == "grok-3-mini"
    assert grok.resolve_model("grok-2-custom") == "grok-2-custom"


def test_split_system_joins_instructions():
    system, turns = split_system([
        AIMessage(role="system", content="one"),
        AIMessage(role="user", content="hi"),
        AIMessage(role="system", content="two"),
    ])
    assert system == "one\n\ntwo"
    assert [t.content for t in turns] == ["hi"]


def test_encode_deltas_closes_upstream_on_early_exit():
    closed = []

    async def deltas():
        yield "x"
        yield "y"

    async def on_close():
        closed.append(True)

    async def run():
        stream = encode_deltas(deltas(), on_close=on_close)
        first = await stream.__anext__()
        await stream.aclose()
        return first

    assert asyncio.run(run()) == b"x"
    assert closed == [True]


# OpenAI-compatible adapters with a stand-in SDK client

class FakeCompletions:
    def __init__(self, chunks=()):
        self.kwargs = None
        self.chunks = chunks
        self.closed = False

    async def create(self, **kwargs):
        self.kwargs = kwargs
        if kwargs.get("stream"):
            return FakeStream(self)
        return SimpleNamespace(
            model="gpt-4o-mini-2024",
            choices=[SimpleNamespace(message=SimpleNamespace(content="Hi!"))],
            usage=SimpleNamespace(total_tokens=9),
        )


class FakeStream:
    def __init__(self, completions):
        self.completions = completions

    async def __aiter__(self):
        for text in self.completions.chunks:
            yield SimpleNamespace(choices=[SimpleNamespace(delta=SimpleNamespace(content=text))])
        yield SimpleNamespace(choices=[])

    async def close(self):
        self.completions.closed = True


def fake_openai_factory(completions, seen):
    def factory(api_key):
        seen.append(api_key)
        return SimpleNamespace(chat=SimpleNamespace(completions=completions))
    return factory


def test_openai_chat_sends_sampling_settings():
    completions, seen = FakeCompletions(), []
    adapter = OpenAICompatibleAdapter(client_factory=fake_openai_factory(completions, seen))

    response = asyncio.run(adapter.chat([AIMessage(role="user", content="hi", id="m1")], "sk-openai", "fast"))

    assert response.content == "Hi!"
    assert response.tokens == 9
    assert seen == ["sk-openai"]
    assert completions.kwargs["model"] == "gpt-3.5-turbo"
    assert completions.kwargs["messages"] == [{"role": "user", "content": "hi"}]
    assert completions.kwargs["temperature"] == 0.7
    assert completions.kwargs["max_tokens"] == 4096


def test_openai_stream_skips_empty_and_closes():
    completions, seen = FakeCompletions(chunks=["Hel", None, "lo"]), []
    adapter = OpenAICompatibleAdapter(client_factory=fake_openai_factory(completions, seen))

    async def run():
        stream = await adapter.stream([AIMessage(role="user", content="hi")], "sk")
        return await collect(stream)

    assert asyncio.run(run()) == [b"Hel", b"lo"]
    assert completions.kwargs["stream"] is True
    assert completions.closed


def test_thesys_adapter_uses_service_defaults():
    completions, seen = FakeCompletions(), []
    adapter = ThesysAdapter(client_factory=fake_openai_factory(completions, seen))

    asyncio.run(adapter.chat([AIMessage(role="user", content="hi")], "th-key", "smart"))

    assert completions.kwargs["model"] == "c1/openai/gpt-5/v-20251230"
    assert "temperature" not in completions.kwargs
    assert adapter.base_url == settings.THESYS_BASE_URL


def test_grok_points_at_xai():
    assert GrokAdapter().base_url == settings.GROK_BASE_URL


# Gemini with a stand-in genai client

class FakeGeminiModels:
    def __init__(self):
        self.kwargs = None

    async def generate_content(self, **kwargs):
        self.kwargs = kwargs
        return SimpleNamespace(text="Bonjour", usage_metadata=SimpleNamespace(total_token_count=4))

    async def generate_content_stream(self, **kwargs):
        self.kwargs = kwargs

        async def chunks():
            for text in ("Bon", None, "jour"):
                yield SimpleNamespace(text=text)

        return chunks()


def test_gemini_maps_roles_and_system_instruction():
    models = FakeGeminiModels()
    adapter = GeminiAdapter(client_factory=lambda api_key: SimpleNamespace(aio=SimpleNamespace(models=models)))
    messages = [
        AIMessage(role="system", content="Answer in French."),
        AIMessage(role="user", content="Hello"),
        AIMessage(role="assistant", content="Salut"),
        AIMessage(role="user", content="Again"),
    ]

    response = asyncio.run(adapter.chat(messages, "g-key", "fast"))

    assert response.content == "Bonjour"
    assert response.tokens == 4
    assert models.kwargs["model"] == "gemini-1.5-flash"
    assert [c.role for c in models.kwargs["contents"]] == ["user", "model", "user"]
    assert models.kwargs["contents"][1].parts[0].text == "Salut"
    assert models.kwargs["config"].system_instruction == "Answer in French."


def test_gemini_stream_drops_empty_chunks():
    models = FakeGeminiModels()
    adapter = GeminiAdapter(client_factory=lambda api_key: SimpleNamespace(aio=SimpleNamespace(models=models)))

    async def run():
        stream = await adapter.stream([AIMessage(role="user", content="Hello")], "g-key")
        return await collect(stream)

    assert asyncio.run(run()) == [b"Bon", b"jour"]


# client reuse and shutdown

class ClosableClient(SimpleNamespace):
    async def close(self):
        self.closed = True


def test_openai_client_reused_per_key_and_closed():
    completions, seen = FakeCompletions(), []
    clients = []

    def factory(api_key):
        seen.append(api_key)
        client = ClosableClient(chat=SimpleNamespace(completions=completions), closed=False)
        clients.append(client)
        return client

    adapter = OpenAICompatibleAdapter(client_factory=factory)
    message = [AIMessage(role="user", content="hi")]

    async def run():
        await adapter.chat(message, "key-a")
        await adapter.chat(message, "key-a")
        await adapter.chat(message, "key-b")
        await adapter.aclose()

    asyncio.run(run())

    assert seen == ["key-a", "key-b"]
    assert all(client.closed for client in clients)


def test_gemini_client_reused_and_closed():
    models = FakeGeminiModels()
    closed = []
    built = []

    async def aclose():
        closed.append(True)

    def factory(api_key):
        built.append(api_key)
        return SimpleNamespace(aio=SimpleNamespace(models=models, aclose=aclose))

    adapter = GeminiAdapter(client_factory=factory)
    router = ProviderRouter(adapters={"gemini": adapter}, api_keys={"gemini": "g-key"})

    async def run():
        await router.chat("gemini", USER_ONLY)
        await router.chat("gemini", USER_ONLY)
        await router.aclose()

    asyncio.run(run())

    assert built == ["g-key"]
    assert closed == [True]
