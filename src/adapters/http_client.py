"""Wrapper de httpx.

- Estandariza base URL, timeouts, headers y autenticación por organización.
- Facilita testeo: se puede inyectar un `httpx.MockTransport`.
"""

from __future__ import annotations

import httpx

from core.config import AppSettings

API_KEY_HEADER = "X-Cisco-Meraki-API-Key"


def build_async_client(
    settings: AppSettings | None = None,
    *,
    api_key: str,
    extra_headers: dict[str, str] | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> httpx.AsyncClient:
    """Crea un `httpx.AsyncClient` ligado a una API key.

    Un cliente por organización: el timeout fijo aplica a cada request
    individual, no a la operación completa.
    """

    settings = settings or AppSettings()
    headers: dict[str, str] = {
        "User-Agent": settings.user_agent,
        "Accept": "application/json",
        "Content-Type": "application/json",
        API_KEY_HEADER: api_key,
    }
    if extra_headers:
        headers.update(extra_headers)
    return httpx.AsyncClient(
        base_url=settings.base_url.rstrip("/"),
        timeout=httpx.Timeout(settings.http_timeout_seconds),
        # El Dashboard redirige a shards regionales (n123.meraki.com).
        follow_redirects=True,
        headers=headers,
        transport=transport,
    )
