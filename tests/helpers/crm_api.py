"""Fake hosted CRM API served through ``httpx.MockTransport``."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

import httpx

from crmrecon.adapters.http_resilience import ResilienceConfig, ResilientClient

if TYPE_CHECKING:
    from collections.abc import Callable

INSTANCE_URL = "https://acme.my.crm.test"
DATA_PATH = "/services/data/v60.0"


@dataclass
class FakeCrmApi:
    """Serves queued responses and records every request it receives."""

    responses: list[httpx.Response] = field(default_factory=list)
    requests: list[httpx.Request] = field(default_factory=list)

    def reply(self, payload: object, *, status_code: int = 200) -> None:
        self.responses.append(httpx.Response(status_code, json=payload))

    def reply_text(self, text: str, *, status_code: int = 200) -> None:
        self.responses.append(
            httpx.Response(status_code, text=text, headers={"Content-Type": "text/html"})
        )

    def handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self.responses.pop(0)

    def body(self, index: int = -1) -> dict[str, object]:
        return json.loads(self.requests[index].content)


def make_client_factory(
    handler: Callable[[httpx.Request], httpx.Response],
) -> Callable[[ResilienceConfig], ResilientClient]:
    async def async_handler(request: httpx.Request) -> httpx.Response:
        return handler(request)

    def factory(resilience: ResilienceConfig) -> ResilientClient:
        client = ResilientClient(resilience)
        client._client = httpx.AsyncClient(transport=httpx.MockTransport(async_handler))  # noqa: SLF001  # type: ignore[reportPrivateUsage]
        return client

    return factory
