"""
HTTP client utilities for talking to remote tenant APIs.
"""

import asyncio
from typing import Any

import aiohttp


class AsyncHTTPClient:
    """JSON-over-HTTP client bound to one aiohttp session.

    Use as an async context manager. Non-2xx responses raise
    ``aiohttp.ClientResponseError``; empty bodies decode to ``{}``.
    """

    def __init__(self, timeout: int = 30, headers: dict[str, Any] | None = None) -> None:
        self.timeout = aiohttp.ClientTimeout(total=timeout)
        self.default_headers = dict(headers or {})
        self.session: aiohttp.ClientSession | None = None

    async def __aenter__(self) -> "AsyncHTTPClient":
        self.session = aiohttp.ClientSession(timeout=self.timeout)
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        if self.session:
            await self.session.close()
            self.session = None

    def _headers(self, headers: dict[str, Any] | None) -> dict[str, Any] | None:
        if not self.default_headers:
            return headers
        return {**self.default_headers, **(headers or {})}

    async def _request(self, method: str, url: str, **kwargs: Any) -> dict[str, Any]:
        if not self.session:
            raise RuntimeError("HTTP client not initialized. Use async context manager.")

        # aiohttp returns a request context manager; test doubles may return a coroutine
        request_ctx = getattr(self.session, method)(url, **kwargs)
        if asyncio.iscoroutine(request_ctx):
            request_ctx = await request_ctx

        async with request_ctx as response:
            raised = response.raise_for_status()
            if asyncio.iscoroutine(raised):
                await raised
            if response.status == 204 or response.content_length == 0:
                return {}
            return await response.json()

    async def get(
        self,
        url: str,
        headers: dict[str, Any] | None = None,
        params: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        kwargs: dict[str, Any] = {"headers": self._headers(headers)}
        if params:
            kwargs["params"] = params
        return await self._request("get", url, **kwargs)

    async def post(
        self,
        url: str,
        data: dict[str, Any] | None = None,
        headers: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        return await self._request("post", url, json=data, headers=self._headers(headers))

    async def put(
        self,
        url: str,
        data: dict[str, Any] | None = None,
        headers: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        return await self._request("put", url, json=data, headers=self._headers(headers))

    async def delete(self, url: str, headers: dict[str, Any] | None = None) -> dict[str, Any]:
        return await self._request("delete", url, headers=self._headers(headers))
