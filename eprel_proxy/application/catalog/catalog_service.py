"""
Smartphone catalog service.

Answers the frontend queries from a single EPREL bulk listing, memoized
per query in the shared TTL cache.
"""

import json
from datetime import datetime, timezone
from typing import Any, Optional

import structlog

from eprel_proxy.domain.catalog.eprel_mapper import EPRELMapper
from eprel_proxy.domain.catalog.models import (
    BrandsResponse,
    CacheClearedResponse,
    CacheStats,
    EPRELProduct,
    Filters,
    Pagination,
    SearchResponse,
    Smartphone,
    SmartphoneQuery,
    SmartphoneResponse,
    SmartphonesResponse,
)
from eprel_proxy.domain.shared.errors import (
    InvalidQueryError,
    SmartphoneNotFoundError,
)
from eprel_proxy.infrastructure.cache.ttl_cache import TTLCache
from eprel_proxy.infrastructure.eprel.api_client import EPRELClient

logger = structlog.get_logger(__name__)

MIN_SEARCH_LENGTH = 2


def make_cache_key(operation: str, **arguments: Any) -> str:
    """Build a deterministic cache key.

    Arguments are serialized as JSON with sorted keys, so keyword order
    never changes the key and ``None`` stays distinct from ``"None"``.

    Example:
        >>> make_cache_key("search", query="ip", limit=5)
        'search:{"limit":5,"query":"ip"}'
        >>> make_cache_key("brands")
        'brands:{}'
    """
    payload = json.dumps(arguments, sort_keys=True, separators=(",", ":"), default=str)
    return f"{operation}:{payload}"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class CatalogService:
    """Read-through catalog over the EPREL smartphone product group.

    Flow for every query:
    1. Build cache key from operation + arguments
    2. Return live cache entry if any
    3. Otherwise fetch EPREL once, normalize, derive, store, return

    Upstream errors propagate unchanged and are never cached.
    """

    def __init__(self, client: EPRELClient, cache: TTLCache) -> None:
        """Initialize service.

        Args:
            client: Initialized EPREL client
            cache: Process-wide response cache
        """
        self.client = client
        self.cache = cache

    def _normalize_all(self, products: list[EPRELProduct]) -> list[Smartphone]:
        """Normalize records, skipping those without a model identifier."""
        normalized_at = _utcnow()
        smartphones = [
            EPRELMapper.to_smartphone(p, normalized_at)
            for p in products
            if p.model_identifier and p.model_identifier.strip()
        ]

        skipped = len(products) - len(smartphones)
        if skipped:
            logger.warning("Skipped EPREL records without modelIdentifier", count=skipped)

        return smartphones

    async def list_brands(self) -> BrandsResponse:
        """List distinct supplier names, sorted ascending."""

        async def produce() -> BrandsResponse:
            logger.info("Fetching brands from EPREL API")
            products = await self.client.fetch_product_group()

            brands = sorted({p.supplier_or_trademark for p in products if p.supplier_or_trademark})

            logger.info("Found unique brands", total=len(brands))
            return BrandsResponse(brands=brands, total=len(brands), generated_at=_utcnow())

        return await self.cache.get_or_set(make_cache_key("brands"), produce)

    async def list_smartphones(self, query: Optional[SmartphoneQuery] = None) -> SmartphonesResponse:
        """List smartphones with optional brand filter and pagination.

        Brand matches case-insensitively on the whole name. ``offset`` is
        applied even when ``limit`` is not given.

        Args:
            query: Brand filter, limit, offset

        Returns:
            Page of smartphones with pagination metadata
        """
        q = query or SmartphoneQuery()

        async def produce() -> SmartphonesResponse:
            logger.info(
                "Fetching smartphones from EPREL API",
                brand=q.brand,
                limit=q.limit,
                offset=q.offset,
            )
            smartphones = self._normalize_all(await self.client.fetch_product_group())

            if q.brand:
                wanted = q.brand.lower()
                smartphones = [s for s in smartphones if s.brand.lower() == wanted]

            total = len(smartphones)
            end = q.offset + q.limit if q.limit is not None else None
            page = smartphones[q.offset : end]

            logger.info("Returning smartphones", count=len(page), total=total)
            return SmartphonesResponse(
                smartphones=page,
                pagination=Pagination(
                    total=total,
                    count=len(page),
                    limit=q.limit,
                    offset=q.offset,
                ),
                filters=Filters(brand=q.brand),
                generated_at=_utcnow(),
            )

        key = make_cache_key("smartphones", **q.model_dump())
        return await self.cache.get_or_set(key, produce)

    async def get_smartphone(self, model_id: str) -> SmartphoneResponse:
        """Get one smartphone by exact model identifier.

        Raises:
            SmartphoneNotFoundError: If no record has that identifier
        """

        async def produce() -> SmartphoneResponse:
            logger.info("Fetching smartphone by ID", model_id=model_id)
            products = await self.client.fetch_product_group()

            product = next((p for p in products if p.model_identifier == model_id), None)
            if product is None:
                raise SmartphoneNotFoundError(model_id)

            smartphone = EPRELMapper.to_smartphone(product, _utcnow())
            logger.info(
                "Found smartphone",
                brand=smartphone.brand,
                model_name=smartphone.model_name,
            )
            return SmartphoneResponse(smartphone=smartphone, generated_at=_utcnow())

        return await self.cache.get_or_set(make_cache_key("smartphone", id=model_id), produce)

    async def search(self, query: str, limit: Optional[int] = None) -> SearchResponse:
        """Search by model identifier or brand substring (case-insensitive).

        The query is matched and echoed as given, surrounding whitespace
        included.

        Args:
            query: At least 2 characters, not all whitespace
            limit: Max results (no default here, the HTTP layer sets one)

        Raises:
            InvalidQueryError: If the query is too short or blank
        """
        term = query or ""
        if len(term) < MIN_SEARCH_LENGTH:
            raise InvalidQueryError(
                f"Search query must be at least {MIN_SEARCH_LENGTH} characters long"
            )
        if not term.strip():
            raise InvalidQueryError("Search query must not be blank")

        async def produce() -> SearchResponse:
            logger.info("Searching smartphones", query=term, limit=limit)
            needle = term.lower()
            products = await self.client.fetch_product_group()

            matches = [
                p
                for p in products
                if (p.model_identifier and needle in p.model_identifier.lower())
                or (p.supplier_or_trademark and needle in p.supplier_or_trademark.lower())
            ]
            results = self._normalize_all(matches)
            if limit is not None:
                results = results[:limit]

            logger.info("Search completed", query=term, total=len(results))
            return SearchResponse(
                results=results,
                query=term,
                total=len(results),
                generated_at=_utcnow(),
            )

        key = make_cache_key("search", query=term, limit=limit)
        return await self.cache.get_or_set(key, produce)

    def clear_cache(self) -> CacheClearedResponse:
        """Drop every cached response."""
        self.cache.clear()
        return CacheClearedResponse(message="Cache cleared successfully", generated_at=_utcnow())

    def cache_stats(self) -> CacheStats:
        return self.cache.stats()
