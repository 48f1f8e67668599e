"""SoleScan Backend -- FastAPI Application Entry Point."""

import asyncio
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from solescan.api.v1.router import api_v1_router
from solescan.config import settings
from solescan.core.exceptions import InvalidQueryError
from solescan.core.logging import configure_logging
from solescan.schemas import ErrorDetail, ErrorResponse
from solescan.scrapers.factory import AdapterFactory
from solescan.scrapers.navigation import Navigator
from solescan.scrapers.orchestrator import SearchOrchestrator
from solescan.scrapers.register_adapters import register_all_adapters
from solescan.scrapers.unblocker import BrowserQLUnblocker
from solescan.scrapers.utils.browser_manager import BrowserManager
from solescan.scrapers.utils.currency import CurrencyConverter
from solescan.scrapers.utils.rate_limiter import SourceRateLimiter
from solescan.services.cache_service import SearchCacheService
from solescan.services.search_service import SearchService

logger = structlog.get_logger(__name__)


async def _refresh_rates_loop() -> None:
    while True:
        await asyncio.sleep(settings.EXCHANGE_RATE_TTL)
        await CurrencyConverter.refresh_rates()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan: build shared resources, then release them."""
    configure_logging()
    logger.info("server_starting", environment=settings.ENVIRONMENT, debug=settings.DEBUG)

    # Result cache (disabled when REDIS_URL is empty)
    cache = SearchCacheService(settings.REDIS_URL, ttl=settings.SEARCH_CACHE_TTL)
    if cache.enabled and not await cache.health_check():
        logger.warning("redis_unavailable", detail="searches will run uncached until Redis answers")

    # Browser session and navigation protocol
    browser_manager = BrowserManager()
    unblocker = BrowserQLUnblocker() if settings.unblocker_configured else None
    navigator = Navigator(unblocker=unblocker)

    # Adapters and the engine
    factory = AdapterFactory(
        rate_limiter=SourceRateLimiter(),
        browser_manager=browser_manager,
        navigator=navigator,
    )
    register_all_adapters(factory)
    orchestrator = SearchOrchestrator(factory)
    search_service = SearchService(orchestrator, cache)

    app.state.cache = cache
    app.state.browser_manager = browser_manager
    app.state.adapter_factory = factory
    app.state.search_service = search_service

    # Fetch live exchange rates on startup and keep them fresh
    await CurrencyConverter.refresh_rates()
    exchange_task = asyncio.create_task(_refresh_rates_loop())

    yield

    logger.info("server_stopping")
    exchange_task.cancel()
    await search_service.drain()
    await factory.close()
    if unblocker is not None:
        await unblocker.close()
    await browser_manager.stop()
    await cache.close()


app = FastAPI(
    title="SoleScan API",
    description="Sneaker price aggregator across Canadian and global resale platforms",
    version="0.1.0",
    docs_url="/docs" if settings.DEBUG else None,
    redoc_url="/redoc" if settings.DEBUG else None,
    lifespan=lifespan,
)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=[settings.FRONTEND_URL, "http://localhost:3000"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(InvalidQueryError)
async def invalid_query_handler(request: Request, exc: InvalidQueryError) -> JSONResponse:
    body = ErrorResponse(error=ErrorDetail(code="invalid_query", message=exc.message))
    return JSONResponse(status_code=400, content=body.model_dump())


# Register API v1 router
app.include_router(api_v1_router, prefix="/api/v1")


@app.get("/")
async def root():
    """Root endpoint with API information."""
    return {
        "name": "SoleScan API",
        "version": "0.1.0",
        "description": "Sneaker price aggregator",
        "docs": "/docs" if settings.DEBUG else None,
        "health": "/api/v1/health",
    }
