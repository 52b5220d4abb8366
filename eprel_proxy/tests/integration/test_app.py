"""
HTTP tests for the FastAPI app.

ASGITransport does not run the lifespan, so the catalog service is wired
manually with a mocked EPREL client.
"""

from typing import Any, AsyncIterator, cast
from unittest.mock import AsyncMock

import pytest
import pytest_asyncio
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient

from eprel_proxy.app import create_app
from eprel_proxy.application.catalog.catalog_service import CatalogService
from eprel_proxy.config import Settings
from eprel_proxy.domain.shared.errors import (
    UpstreamConnectionError,
    UpstreamFormatError,
    UpstreamHTTPError,
    UpstreamTimeoutError,
)


@pytest.fixture
def app(catalog_service: CatalogService) -> FastAPI:
    application = create_app(Settings(environment="test", eprel_api_key="test-key-1234"))
    application.state.catalog = catalog_service
    return application


@pytest_asyncio.fixture
async def client(app: FastAPI) -> AsyncIterator[AsyncClient]:
    transport = ASGITransport(app=cast(Any, app))
    async with AsyncClient(transport=transport, base_url="http://testserver") as ac:
        yield ac


def _assert_error_body(body: dict[str, Any], status: int, path: str, method: str = "GET") -> None:
    assert body["statusCode"] == status
    assert body["path"] == path
    assert body["method"] == method
    assert body["message"]
    assert body["timestamp"]


async def test_health(client: AsyncClient) -> None:
    resp = await client.get("/health")
    body = resp.json()

    assert resp.status_code == 200
    assert body["status"] == "OK"
    assert body["message"] == "EPREL API Server is running"
    assert body["environment"] == "test"
    assert body["version"]


async def test_brands(client: AsyncClient) -> None:
    resp = await client.get("/api/brands")
    body = resp.json()

    assert resp.status_code == 200
    assert body["brands"] == ["AGM", "FOSSIBOT", "MEIZU", "Meizu"]
    assert body["total"] == 4
    assert "generatedAt" in body


async def test_smartphones_camel_case(client: AsyncClient) -> None:
    resp = await client.get("/api/smartphones", params={"brand": "meizu", "limit": 1})
    body = resp.json()

    assert resp.status_code == 200
    assert body["pagination"] == {"total": 2, "count": 1, "limit": 1, "offset": 0}
    assert body["filters"] == {"brand": "meizu"}

    phone = body["smartphones"][0]
    assert phone["id"] == "M512H"
    assert phone["modelName"] == "M512H"
    assert phone["deviceType"] == "SMARTPHONE"
    assert phone["eprelUrl"].startswith("https://eprel.ec.europa.eu/")
    assert phone["metrics"]["ipRating"] == "IP54"
    assert phone["metrics"]["repairabilityIndex"] == 3.58
    assert "lastUpdated" in phone


async def test_smartphones_placeholders(client: AsyncClient) -> None:
    resp = await client.get("/api/smartphones/FB-P1")
    metrics = resp.json()["smartphone"]["metrics"]

    assert resp.status_code == 200
    assert metrics["energyClass"] == "—"
    assert metrics["ratedBatteryCapacity"] is None


async def test_empty_brand_means_no_filter(client: AsyncClient) -> None:
    resp = await client.get("/api/smartphones", params={"brand": ""})
    body = resp.json()

    assert body["pagination"]["total"] == 5
    assert body["filters"]["brand"] is None


@pytest.mark.parametrize(
    "params",
    [{"limit": 0}, {"limit": 101}, {"limit": "ten"}, {"offset": -1}],
)
async def test_smartphones_invalid_pagination(client: AsyncClient, params: dict[str, Any]) -> None:
    resp = await client.get("/api/smartphones", params=params)

    assert resp.status_code == 400
    _assert_error_body(resp.json(), 400, "/api/smartphones")


async def test_search(client: AsyncClient) -> None:
    resp = await client.get("/api/smartphones/search/agm", params={"limit": 1})
    body = resp.json()

    assert resp.status_code == 200
    assert body["query"] == "agm"
    assert body["total"] == 1
    assert body["results"][0]["id"] == "AGM-G2"


async def test_search_too_short(client: AsyncClient, mock_eprel_client: AsyncMock) -> None:
    resp = await client.get("/api/smartphones/search/i")

    assert resp.status_code == 400
    body = resp.json()
    _assert_error_body(body, 400, "/api/smartphones/search/i")
    assert "at least 2 characters" in body["message"]
    mock_eprel_client.fetch_product_group.assert_not_awaited()


async def test_search_limit_above_max(client: AsyncClient) -> None:
    resp = await client.get("/api/smartphones/search/agm", params={"limit": 51})
    assert resp.status_code == 400


async def test_smartphone_not_found(client: AsyncClient) -> None:
    resp = await client.get("/api/smartphones/UNKNOWN")
    body = resp.json()

    assert resp.status_code == 404
    _assert_error_body(body, 404, "/api/smartphones/UNKNOWN")
    assert body["message"] == "Smartphone with ID 'UNKNOWN' not found"


@pytest.mark.parametrize(
    ("error", "status"),
    [
        (UpstreamHTTPError(503, "Service Unavailable"), 502),
        (UpstreamHTTPError(401, "Invalid API key"), 400),
        (UpstreamTimeoutError("EPREL API request timeout"), 504),
        (UpstreamFormatError("Invalid response format from EPREL API"), 502),
        (UpstreamConnectionError("Failed to communicate with EPREL API"), 502),
    ],
)
async def test_upstream_error_status(
    client: AsyncClient, mock_eprel_client: AsyncMock, error: Exception, status: int
) -> None:
    mock_eprel_client.fetch_product_group.side_effect = error

    resp = await client.get("/api/brands")

    assert resp.status_code == status
    _assert_error_body(resp.json(), status, "/api/brands")


async def test_upstream_error_not_cached(client: AsyncClient, mock_eprel_client: AsyncMock) -> None:
    mock_eprel_client.fetch_product_group.side_effect = UpstreamTimeoutError("timeout")
    assert (await client.get("/api/brands")).status_code == 504

    mock_eprel_client.fetch_product_group.side_effect = None
    resp = await client.get("/api/brands")

    assert resp.status_code == 200
    assert resp.json()["total"] == 4


async def test_cache_stats_and_clear(client: AsyncClient, mock_eprel_client: AsyncMock) -> None:
    await client.get("/api/brands")
    await client.get("/api/brands")
    mock_eprel_client.fetch_product_group.assert_awaited_once()

    stats = (await client.get("/api/cache/stats")).json()
    assert stats["entryCount"] == 1
    assert stats["keys"] == ["brands:{}"]

    resp = await client.delete("/api/cache")
    assert resp.status_code == 200
    assert resp.json()["message"] == "Cache cleared successfully"

    stats = (await client.get("/api/cache/stats")).json()
    assert stats["entryCount"] == 0
    assert stats["keys"] == []


async def test_unexpected_error_is_500(app: FastAPI, mock_eprel_client: AsyncMock) -> None:
    mock_eprel_client.fetch_product_group.side_effect = RuntimeError("boom")

    transport = ASGITransport(app=cast(Any, app), raise_app_exceptions=False)
    async with AsyncClient(transport=transport, base_url="http://testserver") as ac:
        resp = await ac.get("/api/brands")

    assert resp.status_code == 500
    body = resp.json()
    _assert_error_body(body, 500, "/api/brands")
    assert body["message"] == "Internal server error"


async def test_cors_allows_configured_origin(client: AsyncClient) -> None:
    resp = await client.get("/health", headers={"Origin": "http://localhost:5173"})
    assert resp.headers["access-control-allow-origin"] == "http://localhost:5173"
