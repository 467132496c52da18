"""Build the market statistics and lender rate payloads from live sources.

Both source reports (or all lender pages) are fetched concurrently. A source that
fails, or whose report lacks the required metrics, is replaced by its fallback sample
and named in the payload's ``error`` field; the other sources are unaffected.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from datetime import date, datetime, timezone
from typing import Iterable, Sequence

from pipelines.common import FetchFailure, Fetcher, fetch_document, fetch_last_modified
from pipelines.extraction.assemble import MetricRecord, is_complete
from pipelines.extraction.periods import month_start
from pipelines.extraction.specs import REQUIRED_METRICS
from pipelines.fallback import FallbackMonth, check_rate_fallback, load_fallback
from pipelines.model import (
    LenderRate,
    MarketMetrics,
    MarketStatsResponse,
    MonthlyStats,
    RatesResponse,
)
from pipelines.sources.lender_rates import fetch_lender_rate
from pipelines.sources.rpr import load_market_report
from jobs.config import (
    LenderConfig,
    MarketConfig,
    ReportSource,
    RuntimeSettings,
    get_market,
    iter_lenders,
    load_settings,
)

logger = logging.getLogger(__name__)

FETCH_FAILED = "fetch failed"
INSUFFICIENT_DATA = "insufficient data"


@dataclass(frozen=True)
class ReportOutcome:
    """What happened to one source report during a build."""

    property_type: str
    url: str
    record: MetricRecord | None = None
    month_key: str | None = None
    last_modified: datetime | None = None
    problem: str | None = None

    @property
    def is_live(self) -> bool:
        return self.record is not None


async def _load_report(
    property_type: str,
    source: ReportSource,
    *,
    fetcher: Fetcher,
    settings: RuntimeSettings,
    today: date | None,
) -> ReportOutcome:
    try:
        report = await asyncio.wait_for(
            load_market_report(
                source.urls,
                fetcher=fetcher,
                referer=source.referer,
                timeout=settings.fetch_timeout,
                today=today,
            ),
            timeout=settings.source_timeout,
        )
    except (FetchFailure, asyncio.TimeoutError) as exc:
        logger.warning("%s report unavailable, using fallback: %s", property_type, str(exc) or "timeout")
        return ReportOutcome(property_type, source.url, problem=FETCH_FAILED)

    if not is_complete(report.record, REQUIRED_METRICS):
        logger.warning(
            "%s report %s is missing %s, using fallback.",
            property_type,
            report.url,
            [key for key in REQUIRED_METRICS if report.record.get(key) is None],
        )
        return ReportOutcome(property_type, report.url, problem=INSUFFICIENT_DATA)

    return ReportOutcome(
        property_type,
        report.url,
        record=report.record,
        month_key=report.month_key,
        last_modified=report.last_modified,
    )


def resolve_updated_at(
    last_modified: Iterable[datetime | None],
    override: date | None,
    month_key: str,
) -> date:
    """Pick the freshness date: newest Last-Modified, then the override, then the month start."""

    stamps = [stamp for stamp in last_modified if stamp is not None]
    if stamps:
        return max(stamps).astimezone(timezone.utc).date()
    if override is not None:
        return override
    return month_start(month_key)


def _pick_month_key(outcomes: Sequence[ReportOutcome], fallback: FallbackMonth) -> str:
    live_keys = [outcome.month_key for outcome in outcomes if outcome.is_live and outcome.month_key]
    if not live_keys:
        return fallback.month_key
    if len(set(live_keys)) > 1:
        logger.warning("Reports disagree on the period %s; using %s.", live_keys, live_keys[0])
    return live_keys[0]


async def build_market_stats(
    market: MarketConfig | None = None,
    *,
    fetcher: Fetcher = fetch_document,
    settings: RuntimeSettings | None = None,
    fallback: FallbackMonth | None = None,
    today: date | None = None,
) -> MarketStatsResponse:
    """Fetch both market reports concurrently and assemble the stats payload."""

    market = market or get_market()
    settings = settings or load_settings()
    fallback = fallback or load_fallback()

    outcomes = await asyncio.gather(
        _load_report("sf", market.single_family, fetcher=fetcher, settings=settings, today=today),
        _load_report("condo", market.condo, fetcher=fetcher, settings=settings, today=today),
    )
    by_type = {outcome.property_type: outcome for outcome in outcomes}

    records = {
        outcome.property_type: outcome.record
        if outcome.record is not None
        else fallback.record_for(outcome.property_type)
        for outcome in outcomes
    }
    month_key = _pick_month_key(outcomes, fallback)
    updated_at = resolve_updated_at(
        (outcome.last_modified for outcome in outcomes if outcome.is_live),
        settings.updated_at_override,
        month_key,
    )
    problems = [f"{o.property_type}: {o.problem}" for o in outcomes if o.problem]

    entry = MonthlyStats(
        sf=MarketMetrics.from_record(records["sf"]),
        condo=MarketMetrics.from_record(records["condo"]),
        sf_report=by_type["sf"].url,
        condo_report=by_type["condo"].url,
    )
    if problems:
        logger.warning("Serving %s stats in degraded mode (%s).", month_key, "; ".join(problems))
    else:
        logger.info("Built %s stats for %s (updatedAt=%s).", month_key, market.geo_name, updated_at)
    return MarketStatsResponse(
        updated_at=updated_at,
        months={month_key: entry},
        error="; ".join(problems) or None,
    )


def _fallback_lender(lender: LenderConfig, now: datetime) -> LenderRate:
    rate, apr = check_rate_fallback(lender.fallback_rate, lender.fallback_apr)
    return LenderRate(
        name=lender.name,
        product=lender.product,
        rate=rate,
        apr=apr,
        url=lender.url,
        contact_url=lender.contact_url,
        updated_at=now,
        order=lender.order,
    )


async def _load_lender(
    lender: LenderConfig,
    *,
    fetcher: Fetcher,
    settings: RuntimeSettings,
    now: datetime,
) -> tuple[LenderRate, str | None]:
    try:
        rate, apr = await asyncio.wait_for(
            fetch_lender_rate(
                lender.url,
                block_pattern=lender.block_pattern,
                fetcher=fetcher,
                timeout=settings.fetch_timeout,
            ),
            timeout=settings.source_timeout,
        )
    except (FetchFailure, asyncio.TimeoutError) as exc:
        logger.warning("%s rates unavailable, using fallback: %s", lender.name, str(exc) or "timeout")
        return _fallback_lender(lender, now), FETCH_FAILED

    if rate is None and apr is None:
        logger.warning("No rate or APR found on %s, using fallback.", lender.url)
        return _fallback_lender(lender, now), INSUFFICIENT_DATA

    return (
        LenderRate(
            name=lender.name,
            product=lender.product,
            rate=rate,
            apr=apr,
            url=lender.url,
            contact_url=lender.contact_url,
            updated_at=now,
            order=lender.order,
        ),
        None,
    )


async def build_lender_rates(
    lenders: Sequence[LenderConfig] | None = None,
    *,
    fetcher: Fetcher = fetch_document,
    settings: RuntimeSettings | None = None,
    now: datetime | None = None,
) -> RatesResponse:
    """Scrape every configured lender concurrently."""

    lenders = tuple(lenders) if lenders is not None else iter_lenders()
    settings = settings or load_settings()
    now = now or datetime.now(timezone.utc)

    results = await asyncio.gather(
        *(_load_lender(lender, fetcher=fetcher, settings=settings, now=now) for lender in lenders)
    )
    problems = [
        f"{lender.key}: {problem}"
        for lender, (_, problem) in zip(lenders, results, strict=True)
        if problem
    ]
    return RatesResponse(
        generated_at=now,
        lenders=sorted((rate for rate, _ in results), key=lambda item: item.order),
        error="; ".join(problems) or None,
    )


async def latest_report_update(
    market: MarketConfig | None = None,
    *,
    settings: RuntimeSettings | None = None,
    today: date | None = None,
) -> date:
    """Newest ``Last-Modified`` date of the market's report PDFs, else today."""

    market = market or get_market()
    settings = settings or load_settings()
    stamps = await asyncio.gather(
        *(
            fetch_last_modified(source.url, timeout=settings.fetch_timeout)
            for source in (market.single_family, market.condo)
        )
    )
    found = [stamp for stamp in stamps if stamp is not None]
    if found:
        return max(found).astimezone(timezone.utc).date()
    return today or datetime.now(timezone.utc).date()
