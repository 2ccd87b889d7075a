"""
Provider routing: pick an adapter by name, resolve its API key, call it.
"""

from typing import Any, AsyncIterator, Dict, Iterable, Optional

from ..config import settings, SUPPORTED_PROVIDERS
from ..errors import InvalidMessagesError, ProviderConfigError
from ..helpers import debug_log
from .base import AIResponse, ProviderAdapter, as_messages
from .claude import ClaudeAdapter
from .gemini import GeminiAdapter
from .openai_adapter import GrokAdapter, OpenAICompatibleAdapter


API_KEY_SETTINGS = {
    "openai": "OPENAI_API_KEY",
    "claude": "ANTHROPIC_API_KEY",
    "gemini": "GOOGLE_AI_API_KEY",
    "grok": "XAI_API_KEY",
}


def default_adapters() -> Dict[str, ProviderAdapter]:
    return {
        "openai": OpenAICompatibleAdapter(),
        "claude": ClaudeAdapter(),
        "gemini": GeminiAdapter(),
        "grok": GrokAdapter(),
    }


class ProviderRouter:
    """
    Registry of adapters keyed by provider name.

    api_keys overrides the settings lookup; tests pass fixed keys here.
    """

    def __init__(
        self,
        adapters: Optional[Dict[str, ProviderAdapter]] = None,
        api_keys: Optional[Dict[str, Optional[str]]] = None,
    ):
        self.adapters = adapters if adapters is not None else default_adapters()
        self._api_keys = api_keys

    def get_adapter(self, provider: str) -> ProviderAdapter:
        adapter = self.adapters.get(provider)
        if adapter is None or provider not in SUPPORTED_PROVIDERS:
            raise ProviderConfigError(f"Unsupported AI provider: {provider}")
        return adapter

    def resolve_api_key(self, provider: str) -> str:
        if self._api_keys is not None:
            api_key = self._api_keys.get(provider)
        else:
            api_key = getattr(settings, API_KEY_SETTINGS.get(provider, ""), None)

        if not api_key:
            env_name = API_KEY_SETTINGS.get(provider, provider.upper())
            raise ProviderConfigError(f"{env_name} is not configured")
        return api_key

    def _prepare(self, provider: str, messages: Iterable[Any]):
        adapter = self.get_adapter(provider)
        normalized = as_messages(messages)
        if not any(msg.role != "system" for msg in normalized):
            raise InvalidMessagesError("At least one non-system message is required")
        api_key = self.resolve_api_key(provider)
        return adapter, normalized, api_key

    async def chat(
        self,
        provider: str,
        messages: Iterable[Any],
        model_tier: Optional[str] = None,
    ) -> AIResponse:
        adapter, normalized, api_key = self._prepare(provider, messages)
        debug_log("[ROUTER] chat", provider=provider, model_tier=model_tier)
        return await adapter.chat(normalized, api_key, model_tier)

    async def stream(
        self,
        provider: str,
        messages: Iterable[Any],
        model_tier: Optional[str] = None,
    ) -> AsyncIterator[bytes]:
        adapter, normalized, api_key = self._prepare(provider, messages)
        debug_log("[ROUTER] stream", provider=provider, model_tier=model_tier)
        return await adapter.stream(normalized, api_key, model_tier)

    async def aclose(self) -> None:
        """Close the SDK clients every adapter has opened."""
        for adapter in self.adapters.values():
            await adapter.aclose()


provider_router = ProviderRouter()


def get_provider_router() -> ProviderRouter:
    """FastAPI dependency; overridden in tests."""
    return provider_router
