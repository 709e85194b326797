"""FastAPI application entry point for the URL shortener service.

This module configures the FastAPI application with middleware, lifecycle
management, error mapping and route registration.

Application Lifecycle Diagram
=============================
::
    ┌─────────────┐
    │  uvicorn    │
    │  startup    │
    └──────┬──────┘
           ▼
    ┌─────────────┐
    │ lifespan()  │
    │ startup:    │
    │ UrlShortener│
    │ .create()   │
    └──────┬──────┘
           ▼
    ┌─────────────┐
    │ SEED_URLS?  │── yes ──▶ clear() + add() each
    └──────┬──────┘
           ▼
    ┌─────────────┐
    │ CLEAR_TIME  │── > 0 ──▶ periodic_clear() task
    └──────┬──────┘
           ▼
    ┌─────────────┐
    │ Serve HTTP  │
    │ requests    │
    └──────┬──────┘
           ▼
    ┌─────────────┐
    │ lifespan()  │
    │ shutdown:   │
    │ cancel task │
    │ close()     │
    └─────────────┘

How to Use
===========
**Step 1 — Run with uvicorn**::
    uvicorn shortener.main:app --host 0.0.0.0 --port 8080

**Step 2 — Or through the CLI**::
    url-shortener postgresql+asyncpg://u:p@db/shortener 8080 http://foo.com/bar

**Step 3 — Make API calls**::
    curl -X POST "http://localhost:8080/x-url?url=http://foo.com/bar"
    curl "http://localhost:8080/x-url?url=http://foo.com/bar"

Key Behaviours
===============
- ShortenerError maps to 400, or 404 for NOT_FOUND.
- Any other exception becomes a 500 SERVER_ERROR and is logged.
- Prometheus metrics are exposed at /metrics.
- The periodic clear is cancelled before the store is closed.
"""

__all__ = ["app", "create_app", "periodic_clear", "ERROR_STATUS"]

import asyncio
import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from prometheus_fastapi_instrumentator import Instrumentator

from shortener.cache import connect_cache
from shortener.config import Settings, get_settings
from shortener.errors import ErrorKind, ShortenerError
from shortener.logging_config import get_logger, setup_logging
from shortener.routes import router
from shortener.schemas import ErrorResponse
from shortener.service import UrlShortener

BAD_REQUEST = 400
NOT_FOUND = 404
SERVER_ERROR = 500

ERROR_STATUS = {
    ErrorKind.NOT_FOUND: NOT_FOUND,
}


async def periodic_clear(shortener: UrlShortener, interval: float, logger: logging.Logger) -> None:
    """Wipe the store every ``interval`` seconds until cancelled."""
    if interval <= 0:
        raise ValueError(f"interval must be positive, got {interval!r}")
    while True:
        await asyncio.sleep(interval)
        logger.info("clear")
        try:
            await shortener.clear()
        except Exception as exc:
            logger.error(f"Periodic clear failed: {exc}")


async def seed(shortener: UrlShortener, urls: list[str], logger: logging.Logger) -> None:
    await shortener.clear()
    for url in urls:
        result = await shortener.add(url)
        logger.info(f"{url} => {result.value}")


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    settings: Settings = app.state.settings
    logger = setup_logging(settings.LOG_LEVEL)

    # Startup
    cache = connect_cache(settings.REDIS_URL, settings.CACHE_TTL_SECONDS) if settings.REDIS_URL else None
    shortener = await UrlShortener.create(settings.DATABASE_URL, settings.service_base, cache=cache)
    app.state.shortener = shortener
    logger.info(f"Shortening under {shortener.base}")

    if settings.SEED_URLS:
        await seed(shortener, settings.SEED_URLS, logger)

    clear_task = None
    if settings.SHORTENER_CLEAR_TIME > 0:
        clear_task = asyncio.create_task(periodic_clear(shortener, settings.SHORTENER_CLEAR_TIME, logger))

    yield

    # Shutdown
    if clear_task is not None:
        clear_task.cancel()
        try:
            await clear_task
        except asyncio.CancelledError:
            pass
    await shortener.close()
    app.state.shortener = None


async def shortener_error_handler(request: Request, exc: ShortenerError) -> JSONResponse:
    status = ERROR_STATUS.get(exc.kind, BAD_REQUEST)
    return JSONResponse(
        status_code=status,
        content=ErrorResponse(status=status, code=exc.code, message=exc.message).model_dump(),
    )


async def server_error_handler(request: Request, exc: Exception) -> JSONResponse:
    get_logger("http").exception(f"Unhandled error on {request.url.path}")
    return JSONResponse(status_code=SERVER_ERROR, content={"code": "SERVER_ERROR", "message": str(exc)})


def create_app(settings: Settings | None = None) -> FastAPI:
    settings = settings or get_settings()

    app = FastAPI(
        title=settings.APP_NAME,
        version="1.0.0",
        description="Shortens URLs under a configured domain and tracks their use",
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.shortener = None

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_exception_handler(ShortenerError, shortener_error_handler)
    app.add_exception_handler(Exception, server_error_handler)

    # /metrics must be registered before the catch-all /{token} route
    Instrumentator(
        should_group_status_codes=True,
        should_ignore_untemplated=False,
        should_respect_env_var=False,
    ).instrument(app).expose(app)

    app.include_router(router)
    return app


app = create_app()
