from .base import AIMessage, AIResponse, ProviderAdapter
from .claude import ClaudeAdapter
from .gemini import GeminiAdapter
from .openai_adapter import GrokAdapter, OpenAICompatibleAdapter, ThesysAdapter
from .router import ProviderRouter, get_provider_router, provider_router

__all__ = [
    "AIMessage",
    "AIResponse",
    "ProviderAdapter",
    "ClaudeAdapter",
    "GeminiAdapter",
    "GrokAdapter",
    "OpenAICompatibleAdapter",
    "ThesysAdapter",
    "ProviderRouter",
    "get_provider_router",
    "provider_router",
]
