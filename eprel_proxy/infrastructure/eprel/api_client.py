"""
EPREL API client.

Handles HTTP requests to the EU Product Registry for Energy Labelling.
One bulk GET per call, no retries: a failure surfaces immediately.
"""

import asyncio
from typing import Optional

import aiohttp
import structlog
from pydantic import ValidationError as PydanticValidationError

from eprel_proxy.domain.catalog.eprel_mapper import EPRELMapper
from eprel_proxy.domain.catalog.models import EPRELProduct
from eprel_proxy.domain.shared.errors import (
    ExternalServiceError,
    UpstreamConnectionError,
    UpstreamFormatError,
    UpstreamHTTPError,
    UpstreamTimeoutError,
)

logger = structlog.get_logger(__name__)


class EPRELClient:
    """EPREL public API client."""

    DEFAULT_BASE_URL = "https://eprel.ec.europa.eu/api/public"
    DEFAULT_PRODUCT_GROUP = "smartphonestablets20231669"
    USER_AGENT = "EPREL-Proxy/1.0"

    def __init__(
        self,
        api_key: str,
        base_url: str = DEFAULT_BASE_URL,
        product_group: str = DEFAULT_PRODUCT_GROUP,
        timeout_seconds: float = 10.0,
    ) -> None:
        """Initialize API client.

        Args:
            api_key: Value sent in the X-API-KEY header
            base_url: EPREL public API root
            product_group: Product group listed by ``fetch_product_group``
            timeout_seconds: Total deadline per request
        """
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.product_group = product_group
        self.timeout_seconds = timeout_seconds
        self._session: Optional[aiohttp.ClientSession] = None

        if not api_key:
            logger.warning("EPREL API key not configured")

    async def __aenter__(self) -> "EPRELClient":
        """Async context manager entry."""
        self._session = aiohttp.ClientSession(
            headers={
                "X-API-KEY": self.api_key,
                "Accept": "application/json",
                "User-Agent": self.USER_AGENT,
            }
        )
        return self

    async def __aexit__(self, *args: object) -> None:
        """Async context manager exit."""
        if self._session:
            await self._session.close()
            self._session = None

    @property
    def product_group_url(self) -> str:
        return f"{self.base_url}/products/{self.product_group}"

    async def fetch_product_group(self) -> list[EPRELProduct]:
        """Fetch every record of the configured product group.

        Returns:
            Validated EPREL records (possibly empty)

        Raises:
            UpstreamHTTPError: EPREL answered with a non-2xx status
            UpstreamTimeoutError: Deadline elapsed, request cancelled
            UpstreamFormatError: Body is not JSON or has no ``hits`` list
            UpstreamConnectionError: EPREL unreachable
            ExternalServiceError: Client used outside ``async with``

        Example:
            >>> async def test():
            ...     async with EPRELClient(api_key="secret") as client:
            ...         return await client.fetch_product_group()
        """
        if not self._session:
            msg = "Client not initialized, use async with"
            raise ExternalServiceError(msg)

        url = self.product_group_url
        logger.info("Making EPREL API request", url=url)

        try:
            async with self._session.get(
                url,
                timeout=aiohttp.ClientTimeout(total=self.timeout_seconds),
            ) as response:
                if not 200 <= response.status < 300:
                    body = await response.text()
                    logger.warning(
                        "EPREL API error",
                        status=response.status,
                        body=body[:200],
                    )
                    raise UpstreamHTTPError(response.status, body)

                try:
                    data = await response.json(content_type=None)
                except ValueError as e:
                    raise UpstreamFormatError("EPREL response is not valid JSON") from e

        except asyncio.TimeoutError as e:
            logger.error("EPREL API request timeout", timeout_s=self.timeout_seconds)
            raise UpstreamTimeoutError("EPREL API request timeout") from e

        except aiohttp.ClientError as e:
            logger.error("EPREL API request failed", error=str(e))
            msg = f"Failed to communicate with EPREL API: {e}"
            raise UpstreamConnectionError(msg) from e

        try:
            page = EPRELMapper.parse_page(data)
        except PydanticValidationError as e:
            logger.error("Invalid response format from EPREL API", errors=e.error_count())
            raise UpstreamFormatError("Invalid response format from EPREL API") from e

        products: list[EPRELProduct] = []
        for hit in page.hits:
            try:
                products.append(EPRELProduct.model_validate(hit))
            except PydanticValidationError:
                logger.warning("Skipped malformed EPREL record", hit_type=type(hit).__name__)

        logger.info(
            "EPREL API request successful",
            hits=len(products),
            skipped=len(page.hits) - len(products),
            size=page.size,
        )
        return products
