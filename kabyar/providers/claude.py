"""
Claude adapter speaking the Anthropic Messages API over httpx.

System turns are lifted into the top-level ``system`` field; streaming reads
the SSE feed and forwards ``text_delta`` payloads only.
"""

from typing import AsyncIterator, List, Optional

import httpx
import orjson

from ..config import settings, CLAUDE_MODELS
from ..helpers import debug_log, error_log, perf_timer
from ..services.network_manager import network_manager
from .base import AIMessage, AIResponse, ProviderAdapter, encode_deltas, split_system


class ClaudeStreamError(RuntimeError):
    """An ``error`` event inside an otherwise successful SSE stream."""


class ClaudeAdapter(ProviderAdapter):
    provider_name = "claude"
    tier_models = CLAUDE_MODELS

    def __init__(self, client: Optional[httpx.AsyncClient] = None):
        self._client = client

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is not None:
            return self._client
        return await network_manager.get_client()

    @property
    def url(self) -> str:
        return settings.ANTHROPIC_BASE_URL.rstrip("/") + "/v1/messages"

    def _headers(self, api_key: str) -> dict:
        return {
            "x-api-key": api_key,
            "anthropic-version": settings.ANTHROPIC_VERSION,
            "content-type": "application/json",
        }

    def _build_payload(self, messages: List[AIMessage], model: str, stream: bool) -> dict:
        system, turns = split_system(messages)
        payload = {
            "model": model,
            "max_tokens": settings.MAX_TOKENS,
            "temperature": settings.TEMPERATURE,
            "messages": [msg.to_dict() for msg in turns],
        }
        if system:
            payload["system"] = system
        if stream:
            payload["stream"] = True
        return payload

    async def chat(
        self,
        messages: List[AIMessage],
        api_key: str,
        model: Optional[str] = None,
    ) -> AIResponse:
        actual_model = self.resolve_model(model)
        client = await self._get_client()

        with perf_timer("claude_chat"):
            response = await client.post(
                self.url,
                content=orjson.dumps(self._build_payload(messages, actual_model, stream=False)),
                headers=self._headers(api_key),
            )

        if response.status_code != 200:
            error_log(
                "[CLAUDE] upstream error",
                status_code=response.status_code,
                error_detail=response.text[:200],
            )
            response.raise_for_status()

        data = orjson.loads(response.content)
        content = "".join(
            block.get("text", "")
            for block in data.get("content", [])
            if block.get("type") == "text"
        )
        usage = data.get("usage") or {}
        tokens = None
        if usage:
            tokens = usage.get("input_tokens", 0) + usage.get("output_tokens", 0)

        return AIResponse(content=content, model=data.get("model", actual_model), tokens=tokens)

    async def stream(
        self,
        messages: List[AIMessage],
        api_key: str,
        model: Optional[str] = None,
    ) -> AsyncIterator[bytes]:
        actual_model = self.resolve_model(model)
        client = await self._get_client()

        request = client.build_request(
            "POST",
            self.url,
            content=orjson.dumps(self._build_payload(messages, actual_model, stream=True)),
            headers=self._headers(api_key),
        )
        response = await client.send(request, stream=True)

        if response.status_code != 200:
            error_text = await response.aread()
            await response.aclose()
            error_log(
                "[CLAUDE] upstream error",
                status_code=response.status_code,
                error_detail=error_text.decode("utf-8", errors="ignore")[:200],
            )
            response.raise_for_status()

        debug_log("[CLAUDE] stream opened", model=actual_model)
        return encode_deltas(self._iter_text(response), on_close=response.aclose)

    async def _iter_text(self, response: httpx.Response) -> AsyncIterator[str]:
        async for line in response.aiter_lines():
            line = line.strip()
            if not line.startswith("data:"):
                continue

            data_str = line[5:].strip()
            if not data_str:
                continue

            try:
                event = orjson.loads(data_str)
            except orjson.JSONDecodeError:
                continue

            event_type = event.get("type")
            if event_type == "content_block_delta":
                delta = event.get("delta") or {}
                if delta.get("type") == "text_delta":
                    yield delta.get("text", "")
            elif event_type == "error":
                detail = (event.get("error") or {}).get("message", "unknown error")
                raise ClaudeStreamError(f"Claude stream error: {detail}")
            elif event_type == "message_stop":
                return
