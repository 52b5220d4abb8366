"""FastAPI entry point.

HTTP boundary over the catalog service: query validation, error-to-status
mapping, CORS, health check. The lifespan owns the EPREL client session and
the process-wide cache.
"""

from __future__ import annotations

import logging as _logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any, AsyncIterator, Optional

import structlog
from dotenv import load_dotenv
from fastapi import APIRouter, Depends, FastAPI, Path, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from eprel_proxy import __version__
from eprel_proxy.application.catalog.catalog_service import CatalogService
from eprel_proxy.config import Settings, load_settings
from eprel_proxy.domain.catalog.models import (
    BrandsResponse,
    CacheClearedResponse,
    CacheStats,
    SearchResponse,
    SmartphoneQuery,
    SmartphoneResponse,
    SmartphonesResponse,
)
from eprel_proxy.domain.shared.errors import (
    DomainError,
    InvalidQueryError,
    SmartphoneNotFoundError,
    UpstreamConnectionError,
    UpstreamFormatError,
    UpstreamHTTPError,
    UpstreamTimeoutError,
)
from eprel_proxy.infrastructure.cache.ttl_cache import TTLCache
from eprel_proxy.infrastructure.eprel.api_client import EPRELClient

APP_NAME = "EPREL API Server"

SMARTPHONES_MAX_LIMIT = 100
SEARCH_MAX_LIMIT = 50
SEARCH_DEFAULT_LIMIT = 20


def configure_logging(level: str) -> None:
    """Stdlib logging for uvicorn/FastAPI, structlog for our modules."""
    level_no = getattr(_logging, level.upper(), _logging.INFO)
    _logging.basicConfig(
        level=level_no,
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )
    structlog.configure(
        processors=[
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.dev.ConsoleRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level_no),
    )


# ═══════════════════════════════════════════════════════════
# ERROR MAPPING
# ═══════════════════════════════════════════════════════════


def status_for(exc: Exception) -> int:
    """HTTP status for a domain error raised by the core."""
    if isinstance(exc, UpstreamHTTPError):
        return 502 if exc.is_server_error else 400
    if isinstance(exc, UpstreamTimeoutError):
        return 504
    if isinstance(exc, (UpstreamFormatError, UpstreamConnectionError)):
        return 502
    if isinstance(exc, SmartphoneNotFoundError):
        return 404
    if isinstance(exc, InvalidQueryError):
        return 400
    return 500


def _error_body(request: Request, status: int, message: str) -> dict[str, Any]:
    return {
        "statusCode": status,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "path": request.url.path,
        "method": request.method,
        "message": message,
    }


def register_exception_handlers(app: FastAPI) -> None:
    logger = structlog.get_logger("eprel_proxy.http")

    @app.exception_handler(DomainError)
    async def _domain_error(request: Request, exc: DomainError) -> JSONResponse:
        status = status_for(exc)
        if status >= 500:
            logger.error(
                "Request failed",
                method=request.method,
                path=request.url.path,
                status=status,
                error=str(exc),
                error_type=type(exc).__name__,
            )
        else:
            logger.warning(
                "Request rejected",
                method=request.method,
                path=request.url.path,
                status=status,
                error=str(exc),
            )
        return JSONResponse(status_code=status, content=_error_body(request, status, str(exc)))

    @app.exception_handler(RequestValidationError)
    async def _validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
        messages = [f"{'.'.join(str(p) for p in e['loc'])}: {e['msg']}" for e in exc.errors()]
        logger.warning("Invalid request", path=request.url.path, errors=messages)
        body = _error_body(request, 400, "; ".join(messages))
        return JSONResponse(status_code=400, content=body)

    @app.exception_handler(Exception)
    async def _unhandled(request: Request, exc: Exception) -> JSONResponse:
        logger.exception("Unhandled error", path=request.url.path)
        return JSONResponse(status_code=500, content=_error_body(request, 500, "Internal server error"))


# ═══════════════════════════════════════════════════════════
# ROUTES
# ═══════════════════════════════════════════════════════════


def get_catalog(request: Request) -> CatalogService:
    return request.app.state.catalog  # type: ignore[no-any-return]


router = APIRouter(prefix="/api")


@router.get("/brands", response_model=BrandsResponse, tags=["eprel"])
async def get_brands(catalog: CatalogService = Depends(get_catalog)) -> BrandsResponse:
    return await catalog.list_brands()


@router.get("/smartphones", response_model=SmartphonesResponse, tags=["eprel"])
async def get_smartphones(
    brand: Optional[str] = Query(None, description="Filter by brand name", examples=["MEIZU"]),
    limit: Optional[int] = Query(None, ge=1, le=SMARTPHONES_MAX_LIMIT),
    offset: int = Query(0, ge=0),
    catalog: CatalogService = Depends(get_catalog),
) -> SmartphonesResponse:
    query = SmartphoneQuery(brand=brand or None, limit=limit, offset=offset)
    return await catalog.list_smartphones(query)


@router.get("/smartphones/search/{query}", response_model=SearchResponse, tags=["eprel"])
async def search_smartphones(
    query: str = Path(..., description="Model or brand substring (min 2 chars)"),
    limit: int = Query(SEARCH_DEFAULT_LIMIT, ge=1, le=SEARCH_MAX_LIMIT),
    catalog: CatalogService = Depends(get_catalog),
) -> SearchResponse:
    return await catalog.search(query, limit)


@router.get("/smartphones/{model_id}", response_model=SmartphoneResponse, tags=["eprel"])
async def get_smartphone(
    model_id: str,
    catalog: CatalogService = Depends(get_catalog),
) -> SmartphoneResponse:
    return await catalog.get_smartphone(model_id)


@router.get("/cache/stats", response_model=CacheStats, tags=["cache"])
async def get_cache_stats(catalog: CatalogService = Depends(get_catalog)) -> CacheStats:
    return catalog.cache_stats()


@router.delete("/cache", response_model=CacheClearedResponse, tags=["cache"])
async def clear_cache(catalog: CatalogService = Depends(get_catalog)) -> CacheClearedResponse:
    return catalog.clear_cache()


# ═══════════════════════════════════════════════════════════
# APPLICATION FACTORY
# ═══════════════════════════════════════════════════════════


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """Build the FastAPI app.

    Args:
        settings: Explicit settings, defaults to environment

    Returns:
        App whose lifespan opens the EPREL session and creates the cache
    """
    settings = settings or load_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        logger = structlog.get_logger("startup")
        logger.info(
            "startup.config",
            environment=settings.environment,
            base_url=settings.eprel_base_url,
            product_group=settings.eprel_product_group,
            timeout_ms=settings.eprel_timeout_ms,
            cache_ttl_s=settings.cache_ttl_s,
            api_key_present=bool(settings.eprel_api_key),
            api_key_masked=settings.masked_api_key(),
            allowed_origins=list(settings.allowed_origins),
        )

        client = EPRELClient(
            api_key=settings.eprel_api_key,
            base_url=settings.eprel_base_url,
            product_group=settings.eprel_product_group,
            timeout_seconds=settings.eprel_timeout_s,
        )
        async with client as initialized_client:
            app.state.catalog = CatalogService(
                client=initialized_client,
                cache=TTLCache(ttl_ms=settings.cache_ttl_ms),
            )
            logger.info("lifespan.ready", status="serving")
            yield
            logger.info("lifespan.shutdown", status="cleanup")

    app = FastAPI(
        title=APP_NAME,
        description="API server for EPREL smartphone comparison data",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.settings = settings

    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(settings.allowed_origins),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    register_exception_handlers(app)

    @app.get("/health", tags=["health"])
    async def health() -> dict[str, str]:
        return {
            "status": "OK",
            "message": f"{APP_NAME} is running",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "version": __version__,
            "environment": settings.environment,
        }

    app.include_router(router)
    return app


def main() -> None:  # pragma: no cover
    import uvicorn

    load_dotenv()
    settings = load_settings()
    configure_logging(settings.log_level)
    uvicorn.run(create_app(settings), host="0.0.0.0", port=settings.port)
