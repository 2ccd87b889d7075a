"""
Gemini adapter on the google-genai SDK.
"""

from typing import AsyncIterator, Callable, Dict, List, Optional

from google import genai
from google.genai import types

from ..config import settings, GEMINI_MODELS
from ..helpers import debug_log, perf_timer
from .base import AIMessage, AIResponse, ProviderAdapter, encode_deltas, split_system


class GeminiAdapter(ProviderAdapter):
    provider_name = "gemini"
    tier_models = GEMINI_MODELS

    def __init__(self, client_factory: Optional[Callable[[str], genai.Client]] = None):
        self._client_factory = client_factory or (lambda api_key: genai.Client(api_key=api_key))
        self._clients: Dict[str, genai.Client] = {}

    def _get_client(self, api_key: str) -> genai.Client:
        client = self._clients.get(api_key)
        if client is None:
            client = self._client_factory(api_key)
            self._clients[api_key] = client
        return client

    async def aclose(self) -> None:
        clients = list(self._clients.values())
        self._clients.clear()
        for client in clients:
            await client.aio.aclose()

    def _build_request(self, messages: List[AIMessage]):
        system, turns = split_system(messages)
        # Gemini calls the assistant side "model"
        contents = [
            types.Content(
                role="model" if msg.role == "assistant" else "user",
                parts=[types.Part(text=msg.content)],
            )
            for msg in turns
        ]
        config = types.GenerateContentConfig(
            system_instruction=system,
            temperature=settings.TEMPERATURE,
            max_output_tokens=settings.MAX_TOKENS,
        )
        return contents, config

    async def chat(
        self,
        messages: List[AIMessage],
        api_key: str,
        model: Optional[str] = None,
    ) -> AIResponse:
        actual_model = self.resolve_model(model)
        client = self._get_client(api_key)
        contents, config = self._build_request(messages)

        with perf_timer("gemini_chat"):
            response = await client.aio.models.generate_content(
                model=actual_model,
                contents=contents,
                config=config,
            )

        tokens = None
        if response.usage_metadata is not None:
            tokens = response.usage_metadata.total_token_count

        return AIResponse(content=response.text or "", model=actual_model, tokens=tokens)

    async def stream(
        self,
        messages: List[AIMessage],
        api_key: str,
        model: Optional[str] = None,
    ) -> AsyncIterator[bytes]:
        actual_model = self.resolve_model(model)
        client = self._get_client(api_key)
        contents, config = self._build_request(messages)

        debug_log("[GEMINI] stream request", model=actual_model, messages=len(messages))
        response = await client.aio.models.generate_content_stream(
            model=actual_model,
            contents=contents,
            config=config,
        )

        async def deltas():
            async for chunk in response:
                yield chunk.text

        return encode_deltas(deltas(), on_close=getattr(response, "aclose", None))
