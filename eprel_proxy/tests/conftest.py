"""
Shared fixtures for the catalog proxy tests.

Sample EPREL records are shaped after real entries of the
``smartphonestablets20231669`` product group.
"""

from typing import Any
from unittest.mock import AsyncMock

import pytest

from eprel_proxy.application.catalog.catalog_service import CatalogService
from eprel_proxy.domain.catalog.models import EPRELProduct
from eprel_proxy.infrastructure.cache.ttl_cache import TTLCache
from eprel_proxy.infrastructure.eprel.api_client import EPRELClient


class FakeClock:
    """Manually advanced time source (seconds)."""

    def __init__(self, start: float = 1_700_000_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


# ═══════════════════════════════════════════════════════════
# RAW EPREL RECORDS
# ═══════════════════════════════════════════════════════════


@pytest.fixture
def meizu_record() -> dict[str, Any]:
    """Complete EPREL record (MEIZU M512H)."""
    return {
        "modelIdentifier": "M512H",
        "supplierOrTrademark": "MEIZU",
        "trademarkOwner": "Meizu Technology Co., Ltd.",
        "deviceType": "SMARTPHONE",
        "energyClass": "B",
        "repairabilityClass": "B",
        "repairabilityIndex": 3.58,
        "batteryEnduranceInCycles": 10,
        "batteryEndurancePerCycle": 2978,
        "ingressProtectionRating": "IP54",
        "fallsWithoutDefect": 180,
        "ratedBatteryCapacity": 5000,
        "operatingSystem": "ANDROID",
        "publicUrl": "https://eprel.ec.europa.eu/screen/product/smartphonestablets20231669/1234567",
        "registrantNature": "MANUFACTURER",
    }


@pytest.fixture
def sparse_record() -> dict[str, Any]:
    """Record carrying only the mandatory identity fields."""
    return {
        "modelIdentifier": "FB-P1",
        "supplierOrTrademark": "FOSSIBOT",
        "deviceType": "SMARTPHONE",
    }


@pytest.fixture
def catalog_records(meizu_record: dict[str, Any], sparse_record: dict[str, Any]) -> list[dict[str, Any]]:
    """Five records across three brands, in upstream order."""
    return [
        meizu_record,
        {
            "modelIdentifier": "AGM-G2",
            "supplierOrTrademark": "AGM",
            "deviceType": "SMARTPHONE",
            "energyClass": "A",
            "ingressProtectionRating": "IP68",
        },
        sparse_record,
        {
            "modelIdentifier": "M612H",
            "supplierOrTrademark": "Meizu",
            "deviceType": "SMARTPHONE",
            "energyClass": "C",
        },
        {
            "modelIdentifier": "AGM-H5",
            "supplierOrTrademark": "AGM",
            "deviceType": "TABLET",
        },
    ]


@pytest.fixture
def catalog_products(catalog_records: list[dict[str, Any]]) -> list[EPRELProduct]:
    return [EPRELProduct.model_validate(r) for r in catalog_records]


# ═══════════════════════════════════════════════════════════
# INFRASTRUCTURE FIXTURES
# ═══════════════════════════════════════════════════════════


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def cache(clock: FakeClock) -> TTLCache:
    """Fresh cache, 5 minutes TTL, manual clock."""
    return TTLCache(ttl_ms=300_000, clock=clock)


@pytest.fixture
def mock_eprel_client(catalog_products: list[EPRELProduct]) -> AsyncMock:
    """Mock EPREL client.

    Default behavior: returns the five sample records.
    Override ``fetch_product_group`` in tests for other scenarios.
    """
    client = AsyncMock(spec=EPRELClient)
    client.fetch_product_group.return_value = catalog_products
    return client


@pytest.fixture
def catalog_service(mock_eprel_client: AsyncMock, cache: TTLCache) -> CatalogService:
    """Catalog service with mocked upstream and isolated cache."""
    return CatalogService(client=mock_eprel_client, cache=cache)
