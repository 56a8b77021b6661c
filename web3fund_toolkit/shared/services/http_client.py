"""
Shared HTTP client for content gateway requests.

Centralizes httpx async client creation with timeouts, connection pooling
and a consistent User-Agent.
"""

from __future__ import annotations

import os
from typing import Optional

import httpx

DEFAULT_TIMEOUT = float(os.getenv("WEB3FUND_HTTP_TIMEOUT", "10"))
DEFAULT_CONNECT_TIMEOUT = float(os.getenv("WEB3FUND_HTTP_CONNECT_TIMEOUT", "5"))
USER_AGENT = os.getenv("WEB3FUND_HTTP_UA", "web3fund-toolkit/1.x")

_async_client: Optional[httpx.AsyncClient] = None


def _build_limits() -> httpx.Limits:
    return httpx.Limits(max_keepalive_connections=10, max_connections=20)


def _build_timeout() -> httpx.Timeout:
    return httpx.Timeout(DEFAULT_TIMEOUT, connect=DEFAULT_CONNECT_TIMEOUT)


def get_async_client() -> httpx.AsyncClient:
    """Get a shared asynchronous httpx client."""
    global _async_client
    if _async_client is None:
        _async_client = httpx.AsyncClient(
            timeout=_build_timeout(),
            limits=_build_limits(),
            headers={"User-Agent": USER_AGENT},
            follow_redirects=True,
        )
    return _async_client


async def aclose_async_client() -> None:
    global _async_client
    if _async_client is not None:
        await _async_client.aclose()
        _async_client = None
