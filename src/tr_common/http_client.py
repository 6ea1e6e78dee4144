"""Shared httpx.AsyncClient for outbound calls (price oracle).

One pooled client per process, created lazily and closed in the app lifespan.
Per-call timeouts are enforced by the caller; the client timeout is only a
backstop.
"""

import httpx

from config.settings import settings

_client: httpx.AsyncClient | None = None


def get_http_client() -> httpx.AsyncClient:
    global _client  # noqa: PLW0603
    if _client is None:
        _client = httpx.AsyncClient(
            base_url=settings.PRICE_API_URL,
            timeout=httpx.Timeout(settings.PRICE_TIMEOUT_SECONDS),
            headers={"Accept": "application/json"},
        )
    return _client


async def close_http_client() -> None:
    global _client  # noqa: PLW0603
    if _client is not None:
        await _client.aclose()
        _client = None
