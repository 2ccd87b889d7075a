"""
Abstract base class for LLM provider adapters.

Every vendor adapter takes the same normalized message list and exposes the
same two calls, so the router can swap vendors without the routes knowing.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, AsyncIterator, Awaitable, Callable, Dict, Iterable, List, Optional, Tuple


@dataclass
class AIMessage:
    """A message in a conversation with the LLM."""
    role: str  # "system", "user", or "assistant"
    content: str
    id: Optional[str] = None

    def to_dict(self) -> Dict[str, str]:
        # ids never go upstream
        return {"role": self.role, "content": self.content}


@dataclass
class AIResponse:
    """Buffered response from a provider."""
    content: str
    model: str
    tokens: Optional[int] = None


def as_messages(raw: Iterable[Any]) -> List[AIMessage]:
    """Normalize dicts / pydantic models / AIMessage into AIMessage objects."""
    messages = []
    for item in raw:
        if isinstance(item, AIMessage):
            messages.append(item)
        elif isinstance(item, dict):
            messages.append(AIMessage(role=item["role"], content=item["content"], id=item.get("id")))
        else:
            messages.append(AIMessage(role=item.role, content=item.content, id=getattr(item, "id", None)))
    return messages


def split_system(messages: List[AIMessage]) -> Tuple[Optional[str], List[AIMessage]]:
    """Separate system instructions from the chat turns (Claude / Gemini shape)."""
    system_parts = [m.content for m in messages if m.role == "system"]
    turns = [m for m in messages if m.role != "system"]
    system = "\n\n".join(system_parts) if system_parts else None
    return system, turns


async def encode_deltas(
    deltas: AsyncIterator[Optional[str]],
    on_close: Optional[Callable[[], Awaitable[Any]]] = None,
) -> AsyncIterator[bytes]:
    """
    Turn a vendor's text-delta iterator into a UTF-8 byte stream.

    Empty deltas are dropped; order is preserved. on_close releases the
    upstream connection however the consumer stops iterating.
    """
    try:
        async for text in deltas:
            if text:
                yield text.encode("utf-8")
    finally:
        if on_close is not None:
            await on_close()


class ProviderAdapter(ABC):
    """Interface implemented once per vendor."""

    provider_name: str
    tier_models: Dict[str, str]
    default_tier: str = "normal"

    def resolve_model(self, model_or_tier: Optional[str] = None) -> str:
        """Map smart/normal/fast to a concrete model; concrete names pass through."""
        if not model_or_tier:
            return self.tier_models[self.default_tier]
        return self.tier_models.get(model_or_tier, model_or_tier)

    async def aclose(self) -> None:
        """Release any clients the adapter holds; called on shutdown."""

    @abstractmethod
    async def chat(
        self,
        messages: List[AIMessage],
        api_key: str,
        model: Optional[str] = None,
    ) -> AIResponse:
        """
        Generate a complete response.

        Raises:
            Exception on any vendor failure; nothing is classified or retried.
        """

    @abstractmethod
    async def stream(
        self,
        messages: List[AIMessage],
        api_key: str,
        model: Optional[str] = None,
    ) -> AsyncIterator[bytes]:
        """
        Open a streaming generation and return its UTF-8 byte chunks.

        The upstream request is made before this returns, so connection and
        authentication failures surface here rather than mid-stream.
        """
