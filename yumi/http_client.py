"""Shared HTTP client for the identity provider and the image CDN.

A single pooled httpx.AsyncClient. Callers pass their own timeout when
the default does not fit, e.g. the userinfo lookup:

    from yumi.http_client import http
    resp = await http.get(settings.auth_userinfo_url, headers=..., timeout=10)

Closed from the app lifespan on shutdown.
"""

import httpx

from .config import APP_VERSION

http = httpx.AsyncClient(
    timeout=httpx.Timeout(30, connect=5),
    limits=httpx.Limits(max_connections=20, max_keepalive_connections=10),
    headers={"User-Agent": f"yumi-api/{APP_VERSION}"},
)


async def close_clients():
    try:
        await http.aclose()
    except RuntimeError:
        # Loop already closed during interpreter shutdown
        pass
