"""Client for the remote Draft Store API."""

import asyncio
from abc import ABC, abstractmethod
from typing import Any

import aiohttp
from pydantic import ValidationError

from services.drafts.errors import DraftStoreError
from shared.http_client import AsyncHTTPClient
from shared.models import DraftWriteResult, RemoteDraft
from shared.utils import config, setup_logging

logger = setup_logging("draft-store-client")

DRAFTS_PATH = "/api/tenant/drafts"


class DraftStoreClient(ABC):
    """CRUD contract of the remote Draft Store."""

    @abstractmethod
    async def create_draft(
        self, key: str, content: Any, metadata: dict[str, Any] | None = None
    ) -> DraftWriteResult:
        pass

    @abstractmethod
    async def update_draft(
        self, draft_id: str, content: Any, metadata: dict[str, Any] | None = None
    ) -> DraftWriteResult:
        pass

    @abstractmethod
    async def delete_draft(self, draft_id: str) -> None:
        pass

    @abstractmethod
    async def get_drafts(self, key: str) -> list[RemoteDraft]:
        pass


class HTTPDraftStoreClient(DraftStoreClient):
    """Draft Store client over HTTP.

    Every failure surfaces as :class:`DraftStoreError`; HTTP errors carry their
    status code, transport errors carry none.
    """

    def __init__(self, base_url: str | None = None, token: str | None = None, timeout: int = 30) -> None:
        self.base_url = (base_url or config.get("drafts_api_url", "http://localhost:3000")).rstrip("/")
        self.token = token or config.get("drafts_api_token")
        self.timeout = timeout

    def _headers(self) -> dict[str, str]:
        headers = {"Accept": "application/json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    def _url(self, draft_id: str | None = None) -> str:
        if draft_id is None:
            return f"{self.base_url}{DRAFTS_PATH}"
        return f"{self.base_url}{DRAFTS_PATH}/{draft_id}"

    async def _request(
        self,
        method: str,
        url: str,
        data: dict[str, Any] | None = None,
        params: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        try:
            async with AsyncHTTPClient(timeout=self.timeout, headers=self._headers()) as http:
                if method == "GET":
                    return await http.get(url, params=params)
                if method == "POST":
                    return await http.post(url, data=data)
                if method == "PUT":
                    return await http.put(url, data=data)
                if method == "DELETE":
                    return await http.delete(url)
                raise ValueError(f"Unsupported method {method}")
        except aiohttp.ClientResponseError as e:
            raise DraftStoreError(e.message or "Draft store request failed", status_code=e.status) from e
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise DraftStoreError(f"Draft store unreachable: {e!s}") from e

    @staticmethod
    def _write_result(body: dict[str, Any]) -> DraftWriteResult:
        try:
            return DraftWriteResult.model_validate(body)
        except ValidationError as e:
            raise DraftStoreError(f"Malformed draft store response: {e!s}", status_code=502) from e

    async def create_draft(
        self, key: str, content: Any, metadata: dict[str, Any] | None = None
    ) -> DraftWriteResult:
        payload = {"key": key, "content": content, "metadata": metadata}
        return self._write_result(await self._request("POST", self._url(), data=payload))

    async def update_draft(
        self, draft_id: str, content: Any, metadata: dict[str, Any] | None = None
    ) -> DraftWriteResult:
        payload = {"content": content, "metadata": metadata}
        return self._write_result(await self._request("PUT", self._url(draft_id), data=payload))

    async def delete_draft(self, draft_id: str) -> None:
        await self._request("DELETE", self._url(draft_id))

    async def get_drafts(self, key: str) -> list[RemoteDraft]:
        body = await self._request("GET", self._url(), params={"key": key})
        drafts: list[RemoteDraft] = []
        for raw in body.get("drafts") or []:
            try:
                drafts.append(RemoteDraft.model_validate(raw))
            except ValidationError as e:
                logger.warning(f"Skipping malformed remote draft for key {key}: {e!s}")
        return drafts
