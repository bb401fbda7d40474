"""Unit tests for HTTP client wrapper."""

import httpx
import pytest

from catalog_sync.fetcher.http_client import AsyncHTTPClient


class TestAsyncHTTPClient:

    @pytest.mark.asyncio
    async def test_initialization_with_defaults(self):
        async with AsyncHTTPClient() as client:
            assert client.connect_timeout == 3.0
            assert client.read_timeout == 10.0

    @pytest.mark.asyncio
    async def test_context_manager_lifecycle(self):
        client = AsyncHTTPClient()

        async with client:
            assert client._client is not None

        assert client._client is None

    @pytest.mark.asyncio
    async def test_get_without_context_raises(self):
        client = AsyncHTTPClient()
        with pytest.raises(RuntimeError, match="not initialized"):
            await client.get("http://feed.test/products")

    @pytest.mark.asyncio
    async def test_get_request_with_mock_transport(self):
        def handler(request):
            return httpx.Response(200, json={"status": "ok"})

        async with AsyncHTTPClient(transport=httpx.MockTransport(handler)) as client:
            response = await client.get("http://feed.test/products")

        assert response.status_code == 200
        assert response.json() == {"status": "ok"}

    @pytest.mark.asyncio
    async def test_get_request_with_params_and_headers(self):
        seen = {}

        def handler(request):
            seen["url"] = str(request.url)
            seen["accept"] = request.headers.get("accept")
            seen["agent"] = request.headers.get("x-sync-agent")
            return httpx.Response(200, json={})

        async with AsyncHTTPClient(
            transport=httpx.MockTransport(handler),
            headers={"X-Sync-Agent": "catalog-sync"},
        ) as client:
            await client.get("http://feed.test/products", params={"limit": 20, "skip": 40})

        assert "limit=20" in seen["url"]
        assert "skip=40" in seen["url"]
        assert seen["accept"] == "application/json"
        assert seen["agent"] == "catalog-sync"

    @pytest.mark.asyncio
    async def test_timeout_configuration_applied(self):
        async with AsyncHTTPClient(connect_timeout=5.0, read_timeout=12.0) as client:
            timeout = client._client.timeout
            assert timeout.connect == 5.0
            assert timeout.read == 12.0
