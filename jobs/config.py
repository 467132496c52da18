"""Static configuration for the tracked market, its report sources and lenders."""

from __future__ import annotations

import logging
import os
import re
from dataclasses import dataclass, field, replace
from datetime import date

from dotenv import load_dotenv

load_dotenv()

logger = logging.getLogger(__name__)

_ISO_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")


@dataclass(frozen=True)
class ReportSource:
    """One market-trends PDF plus alternate URLs tried when the primary fails."""

    key: str
    label: str
    url: str
    alternate_urls: tuple[str, ...] = ()
    referer: str | None = None

    @property
    def urls(self) -> tuple[str, ...]:
        return (self.url, *self.alternate_urls)


@dataclass(frozen=True)
class MarketConfig:
    """Configuration describing the market and where its reports live."""

    key: str
    geo_name: str
    single_family: ReportSource
    condo: ReportSource


@dataclass(frozen=True)
class LenderConfig:
    """A lender page to scrape for its 30-year fixed rate."""

    key: str
    name: str
    product: str
    url: str
    contact_url: str
    fallback_rate: float
    fallback_apr: float
    order: int = 1
    block_pattern: str = r"30\s*(?:-\s*)?(?:year|yr)\s*(?:fixed)?"


@dataclass(frozen=True)
class RuntimeSettings:
    fetch_timeout: float = 10.0
    source_timeout: float = 12.0
    stats_cache_ttl: float = 600.0
    rates_cache_ttl: float = 600.0
    updated_at_override: date | None = None
    cron_secret: str | None = None
    stats_cache_control: str = "s-maxage=300, stale-while-revalidate=3600"
    rates_cache_control: str = "s-maxage=900, stale-while-revalidate=3600"
    cors_origins: tuple[str, ...] = field(default=("*",))


RPR_REFERER = "https://www.narrpr.com/"

WAUKESHA_COUNTY = MarketConfig(
    key="waukesha_county",
    geo_name="Waukesha County, WI",
    single_family=ReportSource(
        key="sf",
        label="Single-family market trends",
        url="https://www.narrpr.com/reports-v2/c296fac6-035d-4e9a-84fd-28455ab0339f/pdf",
        referer=RPR_REFERER,
    ),
    condo=ReportSource(
        key="condo",
        label="Condo/townhome market trends",
        url="https://www.narrpr.com/reports-v2/5a675486-5c7b-4bb0-9946-0cffa3070f05/pdf",
        referer=RPR_REFERER,
    ),
)

LENDERS: tuple[LenderConfig, ...] = (
    LenderConfig(
        key="associated_bank",
        name="Associated Bank",
        product="30 yr fixed",
        url="https://www.associatedbank.com/personal/loans/home-loans/mortgage-rates?redir=A24",
        contact_url="https://www.associatedbank.com/personal/loans/home-loans",
        fallback_rate=6.125,
        fallback_apr=6.25,
        order=1,
    ),
)


def _float_env(name: str, default: float) -> float:
    raw = os.getenv(name)
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        logger.warning("%s=%r is not a number; using %s.", name, raw, default)
        return default


def _date_env(name: str) -> date | None:
    raw = os.getenv(name)
    if not raw:
        return None
    if not _ISO_DATE_RE.match(raw.strip()):
        logger.warning("%s=%r is not YYYY-MM-DD; ignoring it.", name, raw)
        return None
    try:
        return date.fromisoformat(raw.strip())
    except ValueError:
        logger.warning("%s=%r is not a valid date; ignoring it.", name, raw)
        return None


def load_settings() -> RuntimeSettings:
    """Read runtime settings from the environment (and ``.env``)."""

    defaults = RuntimeSettings()
    raw_origins = os.getenv("API_CORS_ORIGINS", "*")
    origins = tuple(origin.strip() for origin in raw_origins.split(",") if origin.strip())
    return RuntimeSettings(
        fetch_timeout=_float_env("FETCH_TIMEOUT_SECONDS", defaults.fetch_timeout),
        source_timeout=_float_env("SOURCE_TIMEOUT_SECONDS", defaults.source_timeout),
        stats_cache_ttl=_float_env("STATS_CACHE_TTL_SECONDS", defaults.stats_cache_ttl),
        rates_cache_ttl=_float_env("RATES_CACHE_TTL_SECONDS", defaults.rates_cache_ttl),
        updated_at_override=_date_env("STATS_UPDATED_AT"),
        cron_secret=os.getenv("CRON_SECRET") or None,
        stats_cache_control=os.getenv("STATS_CACHE_CONTROL", defaults.stats_cache_control),
        rates_cache_control=os.getenv("RATES_CACHE_CONTROL", defaults.rates_cache_control),
        cors_origins=origins or ("*",),
    )


def get_market() -> MarketConfig:
    """The configured market, with report URLs overridable from the environment."""

    market = WAUKESHA_COUNTY
    sf_url = os.getenv("SF_REPORT_URL")
    condo_url = os.getenv("CONDO_REPORT_URL")
    if sf_url:
        market = replace(
            market,
            single_family=replace(
                market.single_family,
                url=sf_url,
                alternate_urls=(market.single_family.url,),
            ),
        )
    if condo_url:
        market = replace(
            market,
            condo=replace(market.condo, url=condo_url, alternate_urls=(market.condo.url,)),
        )
    return market


def iter_lenders(keys: list[str] | None = None) -> tuple[LenderConfig, ...]:
    if not keys:
        return LENDERS
    return tuple(lender for lender in LENDERS if lender.key in keys)


__all__ = [
    "LENDERS",
    "LenderConfig",
    "MarketConfig",
    "ReportSource",
    "RuntimeSettings",
    "WAUKESHA_COUNTY",
    "get_market",
    "iter_lenders",
    "load_settings",
]
