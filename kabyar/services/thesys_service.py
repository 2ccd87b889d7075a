"""
Tutor chat relay: thread history in, generative-UI stream out.
"""

import asyncio
from typing import AsyncIterator, Awaitable, Callable, List, Optional

from ..config import settings
from ..errors import ClientAbortedError, ProviderConfigError
from ..helpers import error_log, info_log, request_stage_log
from ..providers.base import AIMessage
from ..providers.openai_adapter import ThesysAdapter
from ..schemas import ThesysRequest
from .thread_store import ThreadStore, thread_store


class ThesysRelayService:
    """
    Relay one tutor turn.

    The user prompt is stored before the upstream call; the assistant reply is
    stored only when the upstream stream ends on its own. A consumer that
    stops early (disconnect, cancellation, aclose) leaves the thread as it was.
    """

    def __init__(
        self,
        store: Optional[ThreadStore] = None,
        adapter: Optional[ThesysAdapter] = None,
        api_key: Optional[str] = None,
    ) -> None:
        self.store = store if store is not None else thread_store
        self.adapter = adapter if adapter is not None else ThesysAdapter()
        self._api_key = api_key

    def resolve_api_key(self) -> str:
        api_key = self._api_key or settings.THESYS_API_KEY
        if not api_key:
            raise ProviderConfigError("THESYS_API_KEY is not configured")
        return api_key

    async def open_stream(
        self,
        request: ThesysRequest,
        is_disconnected: Callable[[], Awaitable[bool]],
    ) -> AsyncIterator[bytes]:
        """
        Record the prompt and open the upstream stream.

        Raises:
            ClientAbortedError: the client went away before the upstream call.
        """
        self.store.append(
            request.thread_id,
            AIMessage(role="user", content=request.prompt.content),
        )

        if await is_disconnected():
            info_log("[THESYS] client gone before upstream call", thread_id=request.thread_id)
            raise ClientAbortedError()

        history: List[AIMessage] = self.store.messages(request.thread_id)
        upstream = await self.adapter.stream(history, self.resolve_api_key(), request.model)
        request_stage_log(
            "upstream_opened",
            "Tutor stream opened",
            thread_id=request.thread_id,
            model=self.adapter.resolve_model(request.model),
        )
        return self.relay(request.thread_id, request.response_id, upstream)

    async def relay(
        self,
        thread_id: str,
        response_id: str,
        upstream: AsyncIterator[bytes],
    ) -> AsyncIterator[bytes]:
        chunks: List[bytes] = []
        try:
            async for chunk in upstream:
                chunks.append(chunk)
                yield chunk
        except asyncio.CancelledError:
            info_log("[THESYS] stream aborted by client", thread_id=thread_id)
            raise
        except Exception as exc:
            error_log("[THESYS] upstream stream failed", thread_id=thread_id, error=str(exc))
            raise
        finally:
            await upstream.aclose()

        content = b"".join(chunks).decode("utf-8", errors="replace")
        if content:
            self.store.append(
                thread_id,
                AIMessage(role="assistant", content=content, id=response_id),
            )
        request_stage_log("stream_completed", "Tutor reply stored", thread_id=thread_id, chars=len(content))


thesys_service = ThesysRelayService()


def get_thesys_service() -> ThesysRelayService:
    return thesys_service
