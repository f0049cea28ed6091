"""Tests for the remote Draft Store client."""

import asyncio
from datetime import UTC, datetime
from unittest.mock import AsyncMock, MagicMock, patch

import aiohttp
import pytest

from services.drafts import DraftStoreError, HTTPDraftStoreClient

BASE_URL = "http://drafts.test"


@pytest.fixture
def http():
    """Patch the HTTP client used by the draft store client."""
    with patch("services.drafts.client.AsyncHTTPClient") as mock_client_class:
        mock_http = AsyncMock()
        mock_client_class.return_value.__aenter__.return_value = mock_http
        mock_http.client_class = mock_client_class
        yield mock_http


class TestDraftStoreError:
    """Error classification."""

    @pytest.mark.parametrize("status", [None, 408, 429, 500, 502, 503])
    def test_transient(self, status) -> None:
        assert DraftStoreError("failed", status_code=status).transient is True

    @pytest.mark.parametrize("status", [400, 401, 403, 404, 409, 422])
    def test_permanent(self, status) -> None:
        assert DraftStoreError("failed", status_code=status).transient is False

    def test_not_found(self) -> None:
        assert DraftStoreError("gone", status_code=404).not_found is True
        assert DraftStoreError("boom", status_code=500).not_found is False

    def test_message_includes_status(self) -> None:
        assert str(DraftStoreError("Bad draft", status_code=422)) == "Bad draft (status 422)"
        assert str(DraftStoreError("offline")) == "offline"


class TestHTTPDraftStoreClient:
    """Request shapes and error mapping."""

    @pytest.mark.asyncio
    async def test_create_draft(self, http) -> None:
        http.post.return_value = {"id": "d1", "updated_at": "2024-05-01T10:00:00Z"}
        client = HTTPDraftStoreClient(base_url=BASE_URL + "/", token="secret")

        result = await client.create_draft("post-1", {"text": "hi"}, {"channel": "instagram"})

        assert result.id == "d1"
        assert result.updated_at == datetime(2024, 5, 1, 10, 0, tzinfo=UTC)
        http.post.assert_awaited_once_with(
            f"{BASE_URL}/api/tenant/drafts",
            data={"key": "post-1", "content": {"text": "hi"}, "metadata": {"channel": "instagram"}},
        )
        http.client_class.assert_called_with(
            timeout=30,
            headers={"Accept": "application/json", "Authorization": "Bearer secret"},
        )

    @pytest.mark.asyncio
    async def test_update_draft(self, http) -> None:
        http.put.return_value = {"id": "d1"}
        client = HTTPDraftStoreClient(base_url=BASE_URL)

        result = await client.update_draft("d1", {"text": "edited"})

        assert result.id == "d1"
        assert result.updated_at is None
        http.put.assert_awaited_once_with(
            f"{BASE_URL}/api/tenant/drafts/d1",
            data={"content": {"text": "edited"}, "metadata": None},
        )

    @pytest.mark.asyncio
    async def test_delete_draft(self, http) -> None:
        http.delete.return_value = {}
        await HTTPDraftStoreClient(base_url=BASE_URL).delete_draft("d1")
        http.delete.assert_awaited_once_with(f"{BASE_URL}/api/tenant/drafts/d1")

    @pytest.mark.asyncio
    async def test_get_drafts_skips_malformed_entries(self, http) -> None:
        http.get.return_value = {
            "drafts": [
                {"id": "d1", "key": "post-1", "content": {"text": "hi"}, "updated_at": "2024-05-01T10:00:00Z"},
                {"key": "post-1"},
            ]
        }
        drafts = await HTTPDraftStoreClient(base_url=BASE_URL).get_drafts("post-1")

        assert [draft.id for draft in drafts] == ["d1"]
        http.get.assert_awaited_once_with(f"{BASE_URL}/api/tenant/drafts", params={"key": "post-1"})

    @pytest.mark.asyncio
    async def test_get_drafts_empty_body(self, http) -> None:
        http.get.return_value = {}
        assert await HTTPDraftStoreClient(base_url=BASE_URL).get_drafts("post-1") == []

    @pytest.mark.asyncio
    async def test_http_error_keeps_status(self, http) -> None:
        http.put.side_effect = aiohttp.ClientResponseError(
            request_info=MagicMock(), history=(), status=422, message="Unprocessable Entity"
        )
        with pytest.raises(DraftStoreError) as exc_info:
            await HTTPDraftStoreClient(base_url=BASE_URL).update_draft("d1", {})

        assert exc_info.value.status_code == 422
        assert exc_info.value.transient is False

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "error",
        [aiohttp.ClientConnectionError("refused"), asyncio.TimeoutError()],
    )
    async def test_transport_errors_are_transient(self, http, error) -> None:
        http.post.side_effect = error
        with pytest.raises(DraftStoreError) as exc_info:
            await HTTPDraftStoreClient(base_url=BASE_URL).create_draft("post-1", {})

        assert exc_info.value.status_code is None
        assert exc_info.value.transient is True

    @pytest.mark.asyncio
    async def test_malformed_write_response(self, http) -> None:
        http.post.return_value = {"ok": True}
        with pytest.raises(DraftStoreError) as exc_info:
            await HTTPDraftStoreClient(base_url=BASE_URL).create_draft("post-1", {})
        assert exc_info.value.transient is True

    def test_defaults_from_config(self) -> None:
        client = HTTPDraftStoreClient()
        assert client.base_url == "http://localhost:3000"
        assert client._headers() == {"Accept": "application/json"}
