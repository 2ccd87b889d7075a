"""
Shared fixtures: fake provider adapters and an app wired to in-memory stores.
"""

import asyncio
from typing import List, Optional, Sequence

import pytest
from fastapi.testclient import TestClient

from kabyar.config import settings
from kabyar.providers.base import AIResponse, ProviderAdapter, encode_deltas
from kabyar.providers.router import ProviderRouter, get_provider_router
from kabyar.services.credits import CreditLedger, get_credit_ledger
from kabyar.services.profiles import ProfileStore, get_profile_store
from kabyar.services.thesys_service import ThesysRelayService, get_thesys_service
from kabyar.services.thread_store import ThreadStore

TEST_TOKEN = "test-token"
PROVIDERS = ("openai", "claude", "gemini", "grok")


class FakeAdapter(ProviderAdapter):
    """Scripted adapter; records every call it receives."""

    tier_models = {"smart": "fake-smart", "normal": "fake-normal", "fast": "fake-fast"}

    def __init__(
        self,
        name: str = "grok",
        chunks: Sequence[str] = ("Hel", "lo, ", "world!"),
        content: str = "",
        error: Optional[Exception] = None,
        gate: Optional[asyncio.Event] = None,
        gate_after: Optional[int] = None,
        stream_error: Optional[Exception] = None,
    ):
        self.provider_name = name
        self.chunks = list(chunks)
        self.content = content
        self.error = error
        self.gate = gate
        self.gate_after = gate_after
        self.stream_error = stream_error
        self.calls: List[dict] = []
        self.closed = False

    async def chat(self, messages, api_key, model=None):
        self.calls.append({"op": "chat", "messages": messages, "api_key": api_key, "model": model})
        if self.error:
            raise self.error
        return AIResponse(content=self.content, model=self.resolve_model(model), tokens=12)

    async def stream(self, messages, api_key, model=None):
        self.calls.append({"op": "stream", "messages": messages, "api_key": api_key, "model": model})
        if self.error:
            raise self.error

        async def deltas():
            for index, chunk in enumerate(self.chunks):
                if self.gate is not None and index == self.gate_after:
                    await self.gate.wait()
                yield chunk
            if self.stream_error is not None:
                raise self.stream_error

        async def mark_closed():
            self.closed = True

        return encode_deltas(deltas(), on_close=mark_closed)


@pytest.fixture
def auth_headers(monkeypatch):
    monkeypatch.setattr(settings, "AUTH_TOKEN", TEST_TOKEN)
    monkeypatch.setattr(settings, "SKIP_AUTH_TOKEN", False)
    monkeypatch.setattr(settings, "DEFAULT_PROVIDER", "grok")
    return {"Authorization": f"Bearer {TEST_TOKEN}", "X-User-Id": "student-1"}


@pytest.fixture
def adapters():
    return {name: FakeAdapter(name=name) for name in PROVIDERS}


@pytest.fixture
def provider_router(adapters):
    return ProviderRouter(adapters=adapters, api_keys={name: f"{name}-key" for name in PROVIDERS})


@pytest.fixture
def ledger():
    return CreditLedger(daily_credits=50, reward_credits=5)


@pytest.fixture
def profiles():
    return ProfileStore()


@pytest.fixture
def thesys_adapter():
    return FakeAdapter(name="thesys")


@pytest.fixture
def thread_store():
    return ThreadStore(ttl_seconds=3600, max_threads=10)


@pytest.fixture
def thesys_service(thread_store, thesys_adapter):
    return ThesysRelayService(store=thread_store, adapter=thesys_adapter, api_key="thesys-key")


@pytest.fixture
def client(auth_headers, provider_router, ledger, profiles, thesys_service):
    from main import app

    app.dependency_overrides[get_provider_router] = lambda: provider_router
    app.dependency_overrides[get_credit_ledger] = lambda: ledger
    app.dependency_overrides[get_profile_store] = lambda: profiles
    app.dependency_overrides[get_thesys_service] = lambda: thesys_service
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()
