from __future__ import annotations

import asyncio

import httpx

from crmrecon.adapters.http_resilience import RateLimit, ResilienceConfig, ResilientClient


def test_client_applies_default_headers_and_base_url() -> None:
    seen: list[httpx.Request] = []

    async def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"ok": True})

    config = ResilienceConfig(
        name="test",
        base_url="https://acme.my.crm.test",
        ratelimit=RateLimit(max_calls=5, per_seconds=1.0),
        default_headers={"Authorization": "Bearer secret"},
    )

    async def run() -> httpx.Response:
        async with ResilientClient(config) as client:
            assert client._client.headers["Authorization"] == "Bearer secret"  # noqa: SLF001  # type: ignore[reportPrivateUsage]
            await client.aclose()
            client._client = httpx.AsyncClient(  # noqa: SLF001  # type: ignore[reportPrivateUsage]
                base_url=config.base_url or "",
                headers=config.default_headers,
                transport=httpx.MockTransport(handler),
            )
            return await client.patch("/services/data/v60.0/sobjects", json={})

    response = asyncio.run(run())

    assert response.json() == {"ok": True}
    assert str(seen[0].url) == "https://acme.my.crm.test/services/data/v60.0/sobjects"
    assert seen[0].method == "PATCH"
