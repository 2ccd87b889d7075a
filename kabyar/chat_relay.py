"""
Client side of the tutor chat relay.

ChatRelay owns one thread's visible message list and at most one in-flight
generation. A generation moves IDLE -> SENDING -> STREAMING and ends in
COMPLETED, STOPPED or ERRORED. Stopping and superseding both cancel the
generation task; the current-assistant-id check after every read makes sure
a stale stream never writes to the thread.
"""

import asyncio
import codecs
import itertools
from dataclasses import dataclass
from enum import Enum
from typing import AsyncIterator, Callable, Iterable, List, Optional

import httpx
import orjson
from fastuuid import uuid4

from .config import settings
from .errors import InsufficientCreditsError, UpstreamError
from .helpers import debug_log, error_log, info_log
from .uploads import UploadedFile, attach_files, select_files

STOPPED_SENTINEL = "[[STOPPED]]"
FAILURE_MESSAGE = "Something went wrong. Please try again."
RELAY_PATH = "/api/ai/thesys"


class RelayState(str, Enum):
    IDLE = "idle"
    SENDING = "sending"
    STREAMING = "streaming"
    COMPLETED = "completed"
    STOPPED = "stopped"
    ERRORED = "errored"


@dataclass
class ChatMessage:
    id: str
    role: str
    content: str


class HttpRelayTransport:
    """POST a tutor turn and expose the response body as a byte iterator."""

    def __init__(
        self,
        base_url: str,
        token: Optional[str] = None,
        user_id: Optional[str] = None,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.token = token if token is not None else settings.AUTH_TOKEN
        self.user_id = user_id
        self._client = client
        self._owns_client = client is None

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=httpx.Timeout(10.0, read=None))
        return self._client

    def _headers(self) -> dict:
        headers = {"Content-Type": "application/json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        if self.user_id:
            headers["X-User-Id"] = self.user_id
        return headers

    async def open(self, payload: dict) -> AsyncIterator[bytes]:
        """
        Send the request and return the streaming body.

        Raises:
            InsufficientCreditsError: the server answered 402.
            UpstreamError: any other non-success status.
        """
        client = self._get_client()
        request = client.build_request(
            "POST",
            self.base_url + RELAY_PATH,
            content=orjson.dumps(payload),
            headers=self._headers(),
        )
        response = await client.send(request, stream=True)

        if response.status_code >= 400:
            body = await response.aread()
            await response.aclose()
            if response.status_code == 402:
                data = orjson.loads(body)
                raise InsufficientCreditsError(data["creditsNeeded"], data["creditsRemaining"])
            raise UpstreamError(response.status_code, body.decode("utf-8", errors="replace"))

        return self._iter_body(response)

    async def _iter_body(self, response: httpx.Response) -> AsyncIterator[bytes]:
        try:
            async for chunk in response.aiter_bytes():
                yield chunk
        finally:
            await response.aclose()

    async def aclose(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None


class ChatRelay:
    def __init__(
        self,
        transport,
        thread_id: Optional[str] = None,
        model: Optional[str] = None,
        on_chunk: Optional[Callable[["ChatRelay"], None]] = None,
    ) -> None:
        self.transport = transport
        self.thread_id = thread_id or str(uuid4())
        self.model = model
        self.on_chunk = on_chunk

        self.messages: List[ChatMessage] = []
        self.state = RelayState.IDLE
        self.streaming_content = ""
        self.streaming_message_id: Optional[str] = None

        self._current_assistant_id: Optional[str] = None
        self._stopped = False
        self._task: Optional[asyncio.Task] = None
        self._ids = itertools.count(1)

    # message list

    def _add_message(self, role: str, content: str) -> ChatMessage:
        message = ChatMessage(id=f"msg-{next(self._ids)}", role=role, content=content)
        self.messages.append(message)
        return message

    def _update_message(self, message_id: str, content: str) -> None:
        for message in self.messages:
            if message.id == message_id:
                message.content = content
                return

    def _remove_message(self, message_id: str) -> None:
        self.messages = [m for m in self.messages if m.id != message_id]

    def get_message(self, message_id: str) -> Optional[ChatMessage]:
        return next((m for m in self.messages if m.id == message_id), None)

    def history(self) -> List[dict]:
        """Prior turns worth forwarding: no empty placeholders, no stopped replies."""
        return [
            {"role": m.role, "content": m.content}
            for m in self.messages
            if m.content and m.content != STOPPED_SENTINEL
        ]

    @property
    def is_busy(self) -> bool:
        return self._task is not None and not self._task.done()

    # generation

    async def send(self, content: str, files: Iterable[UploadedFile] = ()) -> Optional[ChatMessage]:
        """
        Post a user turn and stream the reply into a placeholder message.

        A send already in flight is superseded. Returns the assistant message,
        or None when there was nothing to send.

        Raises:
            InsufficientCreditsError: the server refused the turn with 402.
        """
        files = select_files(files)
        if not content.strip() and not files:
            return None

        if self.is_busy:
            info_log("[RELAY] superseding in-flight generation", message_id=self._current_assistant_id)
            self._task.cancel()

        self._stopped = False
        history = self.history()

        self._add_message("user", content.strip())
        assistant = self._add_message("assistant", "")
        self._current_assistant_id = assistant.id
        self.streaming_message_id = assistant.id
        self.streaming_content = ""
        self.state = RelayState.SENDING

        payload = {
            "prompt": {"role": "user", "content": attach_files(content.strip(), files)},
            "threadId": self.thread_id,
            "responseId": assistant.id,
            "model": self.model,
            "chatHistory": history,
        }

        task = asyncio.ensure_future(self._generate(assistant.id, payload))
        self._task = task
        try:
            await task
        except asyncio.CancelledError:
            # Our own stop()/supersede cancelled the generation; only a
            # cancellation aimed at the caller propagates
            current = asyncio.current_task()
            if current is not None and current.cancelling():
                raise
            debug_log("[RELAY] generation cancelled", message_id=assistant.id)
        return self.get_message(assistant.id)

    def stop(self) -> None:
        """Stop the in-flight generation immediately; never waits on the network."""
        self._stopped = True

        if self._task is not None and not self._task.done():
            self._task.cancel()

        if self._current_assistant_id is not None:
            self._update_message(self._current_assistant_id, STOPPED_SENTINEL)
            self.state = RelayState.STOPPED

        self.streaming_content = ""
        self.streaming_message_id = None
        self._current_assistant_id = None

    def _is_live(self, assistant_id: str) -> bool:
        return not self._stopped and self._current_assistant_id == assistant_id

    async def _generate(self, assistant_id: str, payload: dict) -> None:
        body = None
        try:
            try:
                body = await self.transport.open(payload)
            except InsufficientCreditsError as exc:
                info_log(
                    "[RELAY] insufficient credits",
                    needed=exc.credits_needed,
                    remaining=exc.credits_remaining,
                )
                if self._is_live(assistant_id):
                    self._remove_message(assistant_id)
                    self.state = RelayState.IDLE
                raise

            if not self._is_live(assistant_id):
                return
            self.state = RelayState.STREAMING

            decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
            full_content = ""
            async for chunk in body:
                if not self._is_live(assistant_id):
                    return
                full_content += decoder.decode(chunk)
                self.streaming_content = full_content
                if self.on_chunk is not None:
                    self.on_chunk(self)

            if not self._is_live(assistant_id):
                return
            full_content += decoder.decode(b"", final=True)
            if full_content:
                self._update_message(assistant_id, full_content)
            self.state = RelayState.COMPLETED
        except (asyncio.CancelledError, InsufficientCreditsError):
            raise
        except Exception as exc:
            if self._stopped:
                return
            error_log("[RELAY] generation failed", message_id=assistant_id, error=str(exc))
            self._update_message(assistant_id, FAILURE_MESSAGE)
            if self._current_assistant_id == assistant_id:
                self.state = RelayState.ERRORED
        finally:
            if body is not None:
                await body.aclose()
            if self._current_assistant_id == assistant_id:
                self._current_assistant_id = None
                self.streaming_content = ""
                self.streaming_message_id = None
