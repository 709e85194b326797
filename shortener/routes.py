"""FastAPI route definitions for the URL shortener web service.

API Endpoint Overview
=====================
::
    GET    /health
        └─ HealthResponse (200)

    POST   /x-url?url=<long url>
        └─ UrlValue (201) or 400

    GET    /x-url?url=<long or short url>
        └─ MappingRecord (200) or 400/404

    DELETE /x-url?url=<long or short url>
        └─ {} (200) or 400/404

    POST   /x-text   {"text": "..."}
        └─ TextScanResponse (201)

    GET    /:token
        └─ 302 Redirect or 404

Key Behaviours
===============
- Handlers only translate; every rule lives in UrlShortener.
- ShortenerError is mapped to a status by the handler in shortener.main,
  except on the redirect route where every failure is a 404.
- The redirect route rebuilds the short URL from the request host and
  the configured PORT, so it matches the service base.
"""

from fastapi import APIRouter, Depends, Path, Query, Request
from fastapi.responses import JSONResponse, RedirectResponse

from shortener.dependencies import RequestContext, get_request_context
from shortener.enums import HealthStatus
from shortener.errors import ShortenerError
from shortener.schemas import (
    ErrorResponse,
    HealthResponse,
    MappingRecord,
    TextScanRequest,
    TextScanResponse,
    UrlValue,
)
from shortener.text_scan import shorten_text

__all__ = ["router"]

router = APIRouter()

CREATED = 201
FOUND = 302
NOT_FOUND = 404


@router.get("/health", response_model=HealthResponse, tags=["health"])
async def health_check(ctx: RequestContext = Depends(get_request_context)) -> HealthResponse:
    db_status = HealthStatus.HEALTHY
    cache_status = HealthStatus.DISABLED

    try:
        await ctx.shortener.ping()
    except Exception as e:
        ctx.logger.error(f"Database health check failed: {e}")
        db_status = HealthStatus.UNHEALTHY

    if ctx.shortener.cache is not None:
        cache_status = HealthStatus.HEALTHY
        try:
            await ctx.shortener.cache.ping()
        except Exception as e:
            ctx.logger.error(f"Cache health check failed: {e}")
            cache_status = HealthStatus.UNHEALTHY

    status = (
        HealthStatus.UNHEALTHY
        if HealthStatus.UNHEALTHY in (db_status, cache_status)
        else HealthStatus.HEALTHY
    )
    return HealthResponse(status=status, database=db_status, cache=cache_status)


@router.post("/x-url", response_model=UrlValue, status_code=CREATED, tags=["urls"])
async def add_url(
    url: str = Query(..., description="Long URL to shorten"),
    ctx: RequestContext = Depends(get_request_context),
) -> UrlValue:
    ctx.logger.info(f"Shorten requested: {url}")
    result = await ctx.shortener.add(url)
    ctx.logger.info(f"Shortened {url} -> {result.value} in {ctx.get_duration():.1f}ms")
    return result


@router.get("/x-url", response_model=MappingRecord, tags=["urls"])
async def get_info(
    url: str = Query(..., description="Long or short URL"),
    ctx: RequestContext = Depends(get_request_context),
) -> MappingRecord:
    return await ctx.shortener.info(url)


@router.delete("/x-url", tags=["urls"])
async def deactivate_url(
    url: str = Query(..., description="Long or short URL"),
    ctx: RequestContext = Depends(get_request_context),
) -> dict:
    ctx.logger.info(f"Deactivation requested: {url}")
    return await ctx.shortener.deactivate(url)


@router.post("/x-text", response_model=TextScanResponse, status_code=CREATED, tags=["text"])
async def shorten_text_urls(
    payload: TextScanRequest,
    ctx: RequestContext = Depends(get_request_context),
) -> TextScanResponse:
    result = await shorten_text(ctx.shortener, payload.text)
    if result.failed:
        ctx.logger.info(f"Text scan left {len(result.failed)} URL(s) unshortened")
    return result


@router.get(
    "/{token}",
    tags=["redirect"],
    responses={FOUND: {"description": "Redirect to the long URL"}, NOT_FOUND: {"model": ErrorResponse}},
)
async def redirect_to_url(
    request: Request,
    token: str = Path(..., pattern=r"^[a-z0-9]+$"),
    ctx: RequestContext = Depends(get_request_context),
):
    short_url = f"{request.url.scheme}://{request.url.hostname}:{ctx.settings.PORT}/{token}"
    try:
        result = await ctx.shortener.query(short_url)
    except ShortenerError as exc:
        ctx.logger.info(f"Redirect failed for {short_url}: {exc.code}")
        return JSONResponse(
            status_code=NOT_FOUND,
            content=ErrorResponse(status=NOT_FOUND, code=exc.code, message=exc.message).model_dump(),
        )
    return RedirectResponse(url=result.value, status_code=FOUND)
