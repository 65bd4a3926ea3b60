from __future__ import annotations

import httpx


class UpstreamClient:
    def __init__(
        self,
        base_url: str,
        *,
        timeout_seconds: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout_seconds = timeout_seconds
        self.transport = transport

    async def forward(
        self,
        method: str,
        path: str,
        *,
        query: str,
        headers: list[tuple[str, str]],
        body: bytes,
    ) -> httpx.Response:
        url = f"{self.base_url}{path}"
        if query:
            url = f"{url}?{query}"
        async with httpx.AsyncClient(timeout=self.timeout_seconds, transport=self.transport) as client:
            return await client.request(method, url, headers=headers, content=body)
