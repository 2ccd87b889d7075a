"""
FastAPI application configuration module
"""

import os
from functools import lru_cache
from typing import Optional

from dotenv import load_dotenv
from pydantic_settings import BaseSettings

# .env values win over the inherited environment, even when empty
load_dotenv(override=True)

SUPPORTED_PROVIDERS = ("openai", "claude", "gemini", "grok")


class Settings(BaseSettings):
    """Application settings"""

    # Provider API keys - checked when a provider is called, never at startup
    OPENAI_API_KEY: Optional[str] = os.getenv("OPENAI_API_KEY")
    ANTHROPIC_API_KEY: Optional[str] = os.getenv("ANTHROPIC_API_KEY")
    GOOGLE_AI_API_KEY: Optional[str] = os.getenv("GOOGLE_AI_API_KEY")
    XAI_API_KEY: Optional[str] = os.getenv("XAI_API_KEY")
    THESYS_API_KEY: Optional[str] = os.getenv("THESYS_API_KEY")

    DEFAULT_PROVIDER: str = os.getenv("DEFAULT_PROVIDER", "grok").lower()

    # Upstream endpoints
    GROK_BASE_URL: str = os.getenv("GROK_BASE_URL", "https://api.x.ai/v1")
    ANTHROPIC_BASE_URL: str = os.getenv("ANTHROPIC_BASE_URL", "https://api.anthropic.com")
    ANTHROPIC_VERSION: str = os.getenv("ANTHROPIC_VERSION", "2023-06-01")
    THESYS_BASE_URL: str = os.getenv("THESYS_BASE_URL", "https://api.thesys.dev/v1/embed/")

    # Generation defaults shared by every adapter
    TEMPERATURE: float = float(os.getenv("TEMPERATURE", "0.7"))
    MAX_TOKENS: int = int(os.getenv("MAX_TOKENS", "4096"))

    # Session check
    AUTH_TOKEN: str = os.getenv("AUTH_TOKEN", "sk-your-api-key")
    SKIP_AUTH_TOKEN: bool = os.getenv("SKIP_AUTH_TOKEN", "false").lower() == "true"

    # Credits
    DAILY_CREDITS: int = int(os.getenv("DAILY_CREDITS", "50"))
    AD_REWARD_CREDITS: int = int(os.getenv("AD_REWARD_CREDITS", "5"))
    AD_REWARD_DAILY_LIMIT: int = int(os.getenv("AD_REWARD_DAILY_LIMIT", "10"))

    # Tutor thread store
    THREAD_TTL_SECONDS: int = int(os.getenv("THREAD_TTL_SECONDS", "86400"))
    THREAD_MAX_COUNT: int = int(os.getenv("THREAD_MAX_COUNT", "1000"))

    # Server Configuration
    LISTEN_PORT: int = int(os.getenv("LISTEN_PORT", "8080"))

    # Logging Configuration - three levels: false, info, debug
    _log_level_str: str = os.getenv("LOG_LEVEL", "info").lower()
    LOG_LEVEL: str = _log_level_str if _log_level_str in ["false", "info", "debug"] else "info"

    # Outbound proxy for raw httpx calls (Claude adapter, relay client)
    HTTPS_PROXY: Optional[str] = os.getenv("HTTPS_PROXY") or None


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()


settings = get_settings()


# Model tier mapping per provider - smart / normal / fast
OPENAI_MODELS = {
    "smart": "gpt-4o",
    "normal": "gpt-4o-mini",
    "fast": "gpt-3.5-turbo",
}

CLAUDE_MODELS = {
    "smart": "claude-3-opus-20240229",
    "normal": "claude-3-5-sonnet-20241022",
    "fast": "claude-3-5-haiku-20241022",
}

GEMINI_MODELS = {
    "smart": "gemini-1.5-pro",
    "normal": "gemini-2.0-flash-exp",
    "fast": "gemini-1.5-flash",
}

GROK_MODELS = {
    "smart": "grok-4-0709",
    "normal": "grok-3-mini",
    "fast": "grok-4-1-fast-reasoning",
}

# Generative-UI service used by the tutor chat
THESYS_MODELS = {
    "smart": "c1/openai/gpt-5/v-20251230",
    "normal": "c1/anthropic/claude-sonnet-4/v-20251230",
    "fast": "c1-exp/anthropic/claude-haiku-4.5/v-20251230",
}
