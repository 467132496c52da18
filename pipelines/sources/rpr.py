"""RPR market-trends PDF ingestor.

Downloads a county "Market Trends" report and turns its text into a metric record
(median sold price, days on market, months of supply, active listings, closed sales)
plus the month the report covers.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime
from typing import Sequence

from pipelines.common import (
    DEFAULT_TIMEOUT_SECONDS,
    DocumentType,
    FetchFailure,
    FetchedDocument,
    Fetcher,
    fetch_document,
)
from pipelines.extraction.assemble import MetricRecord, assemble
from pipelines.extraction.periods import detect_month_key
from pipelines.extraction.specs import RPR_METRICS, MetricSpec
from pipelines.text import to_plain_text

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ReportExtraction:
    url: str
    record: MetricRecord
    month_key: str
    last_modified: datetime | None = None


def extract_report(
    text: str,
    *,
    specs: Sequence[MetricSpec] = RPR_METRICS,
    today: date | None = None,
) -> tuple[MetricRecord, str]:
    """Return the metric record and ``YYYY-MM`` period found in a report's text."""

    return assemble(text, specs), detect_month_key(text, today)


async def fetch_report_text(
    urls: Sequence[str],
    *,
    fetcher: Fetcher = fetch_document,
    referer: str | None = None,
    timeout: float = DEFAULT_TIMEOUT_SECONDS,
) -> tuple[FetchedDocument, str]:
    """Fetch the first URL that yields a readable PDF and return it with its text."""

    headers = {"Referer": referer} if referer else None
    failures: list[str] = []
    for url in urls:
        try:
            document = await fetcher(
                url, expect=DocumentType.PDF, headers=headers, timeout=timeout
            )
            return document, to_plain_text(document)
        except FetchFailure as exc:
            logger.warning("RPR report fetch failed for %s: %s", url, exc)
            failures.append(str(exc))
    raise FetchFailure("; ".join(failures) or "No report URLs configured.")


async def load_market_report(
    urls: Sequence[str],
    *,
    fetcher: Fetcher = fetch_document,
    referer: str | None = None,
    timeout: float = DEFAULT_TIMEOUT_SECONDS,
    today: date | None = None,
) -> ReportExtraction:
    document, text = await fetch_report_text(
        urls, fetcher=fetcher, referer=referer, timeout=timeout
    )
    record, month_key = extract_report(text, today=today)
    found = sorted(key for key, value in record.items() if value is not None)
    logger.info("Parsed %s report for %s (found: %s).", month_key, document.url, ", ".join(found) or "nothing")
    return ReportExtraction(
        url=document.url,
        record=record,
        month_key=month_key,
        last_modified=document.last_modified,
    )


__all__ = ["ReportExtraction", "extract_report", "fetch_report_text", "load_market_report"]
