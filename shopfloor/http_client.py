"""Shared HTTP client construction — connection pooling for outbound requests.

Callers own the client they build and close it on shutdown:

    client = build_client(timeout=15)
    resp = await client.post(url, json=payload)
    await close_client(client)
"""

import httpx

_LIMITS = httpx.Limits(
    max_connections=10,
    max_keepalive_connections=5,
    keepalive_expiry=30,
)


def build_client(timeout: float = 15, headers: dict[str, str] | None = None) -> httpx.AsyncClient:
    return httpx.AsyncClient(
        timeout=timeout,
        limits=_LIMITS,
        follow_redirects=False,
        headers=headers,
    )


async def close_client(client: httpx.AsyncClient) -> None:
    try:
        await client.aclose()
    except RuntimeError:
        pass
