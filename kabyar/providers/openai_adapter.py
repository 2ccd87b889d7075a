"""
OpenAI-compatible adapters: OpenAI itself, Grok (x.ai) and the generative-UI
tutor service, which all speak the chat completions API.
"""

from typing import AsyncIterator, Callable, Dict, List, Optional

from openai import AsyncOpenAI

from ..config import settings, OPENAI_MODELS, GROK_MODELS, THESYS_MODELS
from ..helpers import debug_log, error_log, perf_timer
from .base import AIMessage, AIResponse, ProviderAdapter, encode_deltas


class OpenAICompatibleAdapter(ProviderAdapter):
    """LLM adapter using the OpenAI SDK."""

    provider_name = "openai"
    tier_models = OPENAI_MODELS
    # Sampling overrides; the tutor service runs with its own defaults
    send_sampling = True

    def __init__(self, client_factory: Optional[Callable[[str], AsyncOpenAI]] = None):
        self._client_factory = client_factory or self._build_client
        # one SDK client (and connection pool) per API key
        self._clients: Dict[str, AsyncOpenAI] = {}

    @property
    def base_url(self) -> Optional[str]:
        return None

    def _build_client(self, api_key: str) -> AsyncOpenAI:
        return AsyncOpenAI(api_key=api_key, base_url=self.base_url)

    def _get_client(self, api_key: str) -> AsyncOpenAI:
        client = self._clients.get(api_key)
        if client is None:
            client = self._client_factory(api_key)
            self._clients[api_key] = client
        return client

    async def aclose(self) -> None:
        clients = list(self._clients.values())
        self._clients.clear()
        for client in clients:
            await client.close()
        if clients:
            debug_log(f"[{self.provider_name.upper()}] clients closed", count=len(clients))

    def _build_params(self, messages: List[AIMessage], model: str) -> dict:
        params = {
            "model": model,
            "messages": [msg.to_dict() for msg in messages],
        }
        if self.send_sampling:
            params["temperature"] = settings.TEMPERATURE
            params["max_tokens"] = settings.MAX_TOKENS
        return params

    async def chat(
        self,
        messages: List[AIMessage],
        api_key: str,
        model: Optional[str] = None,
    ) -> AIResponse:
        actual_model = self.resolve_model(model)
        client = self._get_client(api_key)

        debug_log(
            f"[{self.provider_name.upper()}] chat request",
            model=actual_model,
            messages=len(messages),
        )

        try:
            with perf_timer(f"{self.provider_name}_chat"):
                completion = await client.chat.completions.create(
                    **self._build_params(messages, actual_model)
                )
        except Exception as e:
            error_log(f"[{self.provider_name.upper()}] chat failed", error=str(e))
            raise

        content = ""
        if completion.choices:
            content = completion.choices[0].message.content or ""
        tokens = completion.usage.total_tokens if completion.usage else None

        return AIResponse(
            content=content,
            model=completion.model or actual_model,
            tokens=tokens,
        )

    async def stream(
        self,
        messages: List[AIMessage],
        api_key: str,
        model: Optional[str] = None,
    ) -> AsyncIterator[bytes]:
        actual_model = self.resolve_model(model)
        client = self._get_client(api_key)

        debug_log(
            f"[{self.provider_name.upper()}] stream request",
            model=actual_model,
            messages=len(messages),
        )

        response = await client.chat.completions.create(
            **self._build_params(messages, actual_model),
            stream=True,
        )

        async def deltas():
            async for chunk in response:
                if chunk.choices:
                    yield chunk.choices[0].delta.content

        return encode_deltas(deltas(), on_close=response.close)


class GrokAdapter(OpenAICompatibleAdapter):
    """Grok through x.ai's OpenAI-compatible endpoint."""

    provider_name = "grok"
    tier_models = GROK_MODELS

    @property
    def base_url(self) -> Optional[str]:
        return settings.GROK_BASE_URL


class ThesysAdapter(OpenAICompatibleAdapter):
    """Hosted generative-UI completions used by the interactive tutor."""

    provider_name = "thesys"
    tier_models = THESYS_MODELS
    send_sampling = False

    @property
    def base_url(self) -> Optional[str]:
        return settings.THESYS_BASE_URL
