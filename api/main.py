"""FastAPI service exposing county market statistics and lender rates as JSON."""

from __future__ import annotations

import secrets
from contextlib import asynccontextmanager
from typing import Any

from dotenv import load_dotenv
from fastapi import Depends, FastAPI, HTTPException, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response

from jobs.build_stats import build_lender_rates, build_market_stats, latest_report_update
from jobs.config import MarketConfig, RuntimeSettings, get_market, load_settings
from pipelines.common import Fetcher, fetch_document
from pipelines.fallback import load_fallback
from pipelines.model import MarketStatsResponse, RatesResponse
from storage.cache import TTLCache

STATS_CACHE_KEY = "stats:current"
RATES_CACHE_KEY = "rates:current"
SITEMAP_CACHE_CONTROL = "s-maxage=3600, stale-while-revalidate=300"
load_dotenv()


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = load_settings()
    # Refuse to start with fallback data that cannot pass validation.
    load_fallback()
    app.state.cache = TTLCache(settings.stats_cache_ttl)
    yield
    app.state.cache.clear()


app = FastAPI(title="County Market Stats API", version="0.1.0", lifespan=lifespan)


def _configure_cors() -> None:
    origins = list(load_settings().cors_origins)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins or ["*"],
        allow_methods=["GET", "OPTIONS"],
        allow_headers=["*"],
    )


_configure_cors()


def get_cache(request: Request) -> TTLCache:
    return request.app.state.cache


def get_fetcher() -> Fetcher:
    return fetch_document


def get_runtime_settings() -> RuntimeSettings:
    return load_settings()


def get_market_config() -> MarketConfig:
    return get_market()


async def _current_stats(
    cache: TTLCache,
    fetcher: Fetcher,
    settings: RuntimeSettings,
    market: MarketConfig,
) -> MarketStatsResponse:
    cached = cache.get(STATS_CACHE_KEY)
    if cached is not None:
        return cached
    stats = await build_market_stats(market, fetcher=fetcher, settings=settings)
    # Degraded payloads are served but not cached, so the next request retries upstream.
    if stats.error is None:
        cache.set(STATS_CACHE_KEY, stats, ttl_seconds=settings.stats_cache_ttl)
    return stats


@app.get("/health")
def health() -> dict[str, str]:
    return {"status": "ok"}


@app.get("/stats")
async def get_stats(
    cache: TTLCache = Depends(get_cache),
    fetcher: Fetcher = Depends(get_fetcher),
    settings: RuntimeSettings = Depends(get_runtime_settings),
    market: MarketConfig = Depends(get_market_config),
):
    stats = await _current_stats(cache, fetcher, settings, market)
    return JSONResponse(
        content=stats.to_payload(),
        headers={"Cache-Control": settings.stats_cache_control},
    )


@app.get("/rates")
async def get_rates(
    cache: TTLCache = Depends(get_cache),
    fetcher: Fetcher = Depends(get_fetcher),
    settings: RuntimeSettings = Depends(get_runtime_settings),
):
    rates: RatesResponse | None = cache.get(RATES_CACHE_KEY)
    if rates is None:
        rates = await build_lender_rates(fetcher=fetcher, settings=settings)
        if rates.error is None:
            cache.set(RATES_CACHE_KEY, rates, ttl_seconds=settings.rates_cache_ttl)
    return JSONResponse(
        content=rates.to_payload(),
        headers={"Cache-Control": settings.rates_cache_control},
    )


@app.get("/updated-at")
async def get_updated_at(
    settings: RuntimeSettings = Depends(get_runtime_settings),
    market: MarketConfig = Depends(get_market_config),
) -> dict[str, str]:
    updated = await latest_report_update(market, settings=settings)
    return {"updatedAt": updated.isoformat()}


@app.get("/refresh")
async def refresh(
    secret: str | None = Query(None, description="Shared secret matching CRON_SECRET"),
    cache: TTLCache = Depends(get_cache),
    fetcher: Fetcher = Depends(get_fetcher),
    settings: RuntimeSettings = Depends(get_runtime_settings),
    market: MarketConfig = Depends(get_market_config),
) -> dict[str, Any]:
    expected = settings.cron_secret
    if not expected or not secret or not secrets.compare_digest(secret, expected):
        raise HTTPException(status_code=401, detail="Unauthorized")

    cache.invalidate(STATS_CACHE_KEY)
    stats = await _current_stats(cache, fetcher, settings, market)
    return {
        "refreshed": True,
        "updatedAt": stats.updated_at.isoformat(),
        "months": sorted(stats.months),
        "degraded": stats.error is not None,
    }


def _public_origin(request: Request) -> str:
    host = request.headers.get("host")
    if not host:
        return str(request.base_url).rstrip("/")
    proto = request.headers.get("x-forwarded-proto", request.url.scheme)
    return f"{proto}://{host}"


@app.get("/sitemap.xml")
async def sitemap(
    request: Request,
    cache: TTLCache = Depends(get_cache),
    fetcher: Fetcher = Depends(get_fetcher),
    settings: RuntimeSettings = Depends(get_runtime_settings),
    market: MarketConfig = Depends(get_market_config),
):
    stats = await _current_stats(cache, fetcher, settings, market)
    origin = _public_origin(request)
    xml = (
        '<?xml version="1.0" encoding="UTF-8"?>\n'
        '<urlset xmlns="http://www.sitemaps.org/schemas/sitemap/0.9">\n'
        "  <url>\n"
        f"    <loc>{origin}/</loc>\n"
        f"    <lastmod>{stats.updated_at.isoformat()}T12:00:00Z</lastmod>\n"
        "    <changefreq>daily</changefreq>\n"
        "    <priority>1.0</priority>\n"
        "  </url>\n"
        "</urlset>\n"
    )
    return Response(
        content=xml,
        media_type="application/xml",
        headers={"Cache-Control": SITEMAP_CACHE_CONTROL},
    )
