"""Shared httpx client management for raw upstream calls."""

from __future__ import annotations

import asyncio
from typing import Optional, Dict

import httpx

from ..helpers import info_log, error_log
from ..config import settings


_CONNECTION_POOL_CONFIG: Dict[str, object] = {
    "limits": httpx.Limits(
        max_keepalive_connections=20,
        max_connections=100,
        keepalive_expiry=30,
    ),
    "timeout": httpx.Timeout(
        connect=10.0,
        read=120.0,
        write=30.0,
        pool=10.0,
    ),
    "http2": True,
}


class NetworkManager:
    """Own the pooled AsyncClient; one per process, optionally proxied."""

    def __init__(self, proxy_url: Optional[str] = None) -> None:
        self._client: Optional[httpx.AsyncClient] = None
        self._client_lock = asyncio.Lock()
        self._proxy_url = proxy_url

        if self._proxy_url:
            info_log("[PROXY] outbound proxy configured", proxy=self._proxy_url)

    async def get_client(self) -> httpx.AsyncClient:
        async with self._client_lock:
            if self._client is None or self._client.is_closed:
                if self._proxy_url:
                    info_log("[CLIENT] creating proxied client", proxy=self._proxy_url)
                    self._client = httpx.AsyncClient(proxy=self._proxy_url, **_CONNECTION_POOL_CONFIG)
                else:
                    info_log("[CLIENT] creating default client")
                    self._client = httpx.AsyncClient(**_CONNECTION_POOL_CONFIG)
            return self._client

    async def cleanup_clients(self) -> None:
        async with self._client_lock:
            client = self._client
            self._client = None

        if client:
            try:
                await client.aclose()
                info_log("[CLIENT] client closed")
            except Exception as exc:  # pragma: no cover - logged only
                error_log("[CLIENT] failed to close client", error=str(exc))


network_manager = NetworkManager(proxy_url=settings.HTTPS_PROXY)
