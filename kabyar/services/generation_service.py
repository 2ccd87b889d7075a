"""
Shared plumbing for the generation routes: provider choice, credit charging
and streamed text responses.
"""

import asyncio
from typing import AsyncIterator, Iterable, List, Optional

from fastapi import Depends
from fastapi.responses import StreamingResponse

from ..config import settings
from ..errors import InsufficientCreditsError
from ..helpers import (
    bind_request_context,
    debug_log,
    error_log,
    info_log,
    request_stage_log,
    reset_request_context,
)
from ..providers.base import AIMessage, AIResponse
from ..providers.router import ProviderRouter, get_provider_router
from .credits import CreditLedger, estimate_cost, estimate_text_cost, get_credit_ledger
from .profiles import ProfileStore, get_profile_store

CONTEXT_KEYS = ("user_id", "feature", "provider", "model_tier")

STREAM_HEADERS = {
    "Cache-Control": "no-cache",
    "X-Content-Type-Options": "nosniff",
}


class GenerationService:
    def __init__(
        self,
        router: ProviderRouter,
        ledger: CreditLedger,
        profiles: ProfileStore,
    ) -> None:
        self.router = router
        self.ledger = ledger
        self.profiles = profiles

    def resolve_provider(self, user_id: str, requested: Optional[str]) -> str:
        """Request value, then the user's saved preference, then the default."""
        return requested or self.profiles.preferred_provider(user_id) or settings.DEFAULT_PROVIDER

    def begin(
        self,
        user_id: str,
        feature: str,
        provider: Optional[str],
        model_tier: Optional[str],
        priced_text: Optional[str] = None,
        words: Optional[int] = None,
    ) -> dict:
        """
        Price and charge one generation, returning the call context.

        Raises:
            InsufficientCreditsError: before any provider is contacted.
        """
        if words is not None:
            cost = estimate_cost(feature, words)
        elif priced_text is not None:
            cost = estimate_text_cost(feature, priced_text)
        else:
            cost = estimate_cost(feature)

        selected = self.resolve_provider(user_id, provider)
        tier = model_tier or "normal"
        bind_request_context(feature=feature, provider=selected, model_tier=tier)

        try:
            self.ledger.charge(user_id, cost)
        except InsufficientCreditsError:
            reset_request_context(*CONTEXT_KEYS)
            raise
        request_stage_log("provider_selected", "Provider selected", cost=cost)
        return {"user_id": user_id, "provider": selected, "model_tier": tier, "cost": cost}

    def refund(self, context: dict) -> None:
        self.ledger.refund(context["user_id"], context["cost"])
        debug_log("[CREDITS] refunded failed generation", amount=context["cost"])

    async def complete(self, context: dict, messages: Iterable[AIMessage]) -> AIResponse:
        try:
            response = await self.router.chat(context["provider"], messages, context["model_tier"])
        except Exception:
            self.refund(context)
            raise
        finally:
            reset_request_context(*CONTEXT_KEYS)
        request_stage_log("completed", "Buffered generation finished", model=response.model, tokens=response.tokens)
        return response

    async def stream_response(self, context: dict, messages: List[AIMessage]) -> StreamingResponse:
        """
        Open the upstream stream, then hand it to FastAPI as text/plain.

        Failures while opening surface to the route; failures after the first
        byte end the response.
        """
        try:
            upstream = await self.router.stream(context["provider"], messages, context["model_tier"])
        except Exception:
            self.refund(context)
            reset_request_context(*CONTEXT_KEYS)
            raise

        request_stage_log("stream_ready", "Streaming response handed to FastAPI", media_type="text/plain")
        return StreamingResponse(
            relay_text(upstream),
            media_type="text/plain",
            headers=STREAM_HEADERS,
        )


async def relay_text(upstream: AsyncIterator[bytes]) -> AsyncIterator[bytes]:
    """Forward chunks unchanged and in order, closing upstream however we stop."""
    sent = 0
    request_stage_log("stream_dispatch", "Forwarding streamed chunks")
    try:
        async for chunk in upstream:
            sent += len(chunk)
            yield chunk
        request_stage_log("stream_finished", "Stream completed", bytes=sent)
    except asyncio.CancelledError:
        info_log("[STREAM] client aborted", bytes=sent)
        raise
    except Exception as exc:
        error_log("[STREAM] upstream failed mid-stream", bytes=sent, error=str(exc))
        raise
    finally:
        await upstream.aclose()
        reset_request_context(*CONTEXT_KEYS)


def get_generation_service(
    router: ProviderRouter = Depends(get_provider_router),
    ledger: CreditLedger = Depends(get_credit_ledger),
    profiles: ProfileStore = Depends(get_profile_store),
) -> GenerationService:
    return GenerationService(router, ledger, profiles)
