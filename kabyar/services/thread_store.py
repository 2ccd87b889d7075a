"""
In-memory tutor thread store.

Threads are created lazily with the tutor system prompt and expire after
THREAD_TTL_SECONDS of inactivity; past THREAD_MAX_COUNT the least recently
used thread is evicted.
"""

import time
from collections import OrderedDict
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional

from ..config import settings
from ..helpers import debug_log, info_log
from ..prompts import TUTOR_SYSTEM_PROMPT
from ..providers.base import AIMessage


@dataclass
class Thread:
    id: str
    messages: List[AIMessage]
    created_at: float
    last_used: float = field(default=0.0)


class ThreadStore:
    def __init__(
        self,
        ttl_seconds: Optional[int] = None,
        max_threads: Optional[int] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.ttl_seconds = ttl_seconds if ttl_seconds is not None else settings.THREAD_TTL_SECONDS
        self.max_threads = max_threads if max_threads is not None else settings.THREAD_MAX_COUNT
        self._clock = clock
        self._threads: "OrderedDict[str, Thread]" = OrderedDict()

    def _new_messages(self) -> List[AIMessage]:
        return [AIMessage(role="system", content=TUTOR_SYSTEM_PROMPT)]

    def _expire(self, now: float) -> None:
        if self.ttl_seconds <= 0:
            return
        expired = [
            thread_id
            for thread_id, thread in self._threads.items()
            if now - thread.last_used > self.ttl_seconds
        ]
        for thread_id in expired:
            del self._threads[thread_id]
        if expired:
            debug_log("[THREADS] expired idle threads", count=len(expired))

    def get(self, thread_id: str) -> Thread:
        """Return the thread, creating it when missing or expired."""
        now = self._clock()
        self._expire(now)

        thread = self._threads.get(thread_id)
        if thread is None:
            thread = Thread(id=thread_id, messages=self._new_messages(), created_at=now)
            self._threads[thread_id] = thread
            while len(self._threads) > self.max_threads:
                evicted_id, _ = self._threads.popitem(last=False)
                info_log("[THREADS] evicted least recently used thread", thread_id=evicted_id)

        thread.last_used = now
        self._threads.move_to_end(thread_id)
        return thread

    def append(self, thread_id: str, message: AIMessage) -> None:
        self.get(thread_id).messages.append(message)

    def messages(self, thread_id: str) -> List[AIMessage]:
        return list(self.get(thread_id).messages)

    def openai_messages(self, thread_id: str) -> List[Dict[str, str]]:
        """Chat-completions message list with ids stripped."""
        return [msg.to_dict() for msg in self.get(thread_id).messages]

    def clear(self, thread_id: str) -> None:
        self.get(thread_id).messages = self._new_messages()

    def delete(self, thread_id: str) -> bool:
        return self._threads.pop(thread_id, None) is not None

    def thread_ids(self) -> List[str]:
        self._expire(self._clock())
        return list(self._threads)

    def __contains__(self, thread_id: str) -> bool:
        return thread_id in self._threads


thread_store = ThreadStore()
