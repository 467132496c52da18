"""Lender mortgage-rate page ingestor.

Narrows a lender's rate page to its 30-year fixed block and reads the labeled interest
rate and APR from it, falling back to "two percentages next to each other" when the
labels cannot be tied to values.
"""

from __future__ import annotations

import logging
import re

from pipelines.common import (
    DEFAULT_TIMEOUT_SECONDS,
    DocumentType,
    Fetcher,
    fetch_document,
)
from pipelines.extraction.assemble import assemble
from pipelines.extraction.policy import normalize_rate_apr
from pipelines.extraction.specs import RATE_METRICS, spec_by_key
from pipelines.extraction.validate import validate
from pipelines.text import normalize_whitespace, to_plain_text

logger = logging.getLogger(__name__)

BLOCK_SPAN = 1500

_APR = r"(?:APR|A\.?P\.?R\.?)"
_PCT = r"(\d{1,2}\.\d{1,3})\s*%"
_TWO_PERCENTS_RES = (
    re.compile(rf"{_PCT}[^%]{{0,140}}?{_APR}\s*:?\s*{_PCT}", re.IGNORECASE),
    re.compile(rf"{_APR}\s*:?\s*{_PCT}[^%]{{0,140}}?{_PCT}", re.IGNORECASE),
)


def product_block(text: str, block_pattern: str, span: int = BLOCK_SPAN) -> str:
    """Return ``span`` characters of text starting at the product heading.

    Keeps jumbo, ARM and 15-year rows further down the page out of reach. Without a
    heading the top of the page is used.
    """

    normalized = normalize_whitespace(text)
    match = re.search(block_pattern, normalized, re.IGNORECASE)
    if not match:
        return normalized[:2000]
    return normalized[match.start():match.start() + span]


def two_percents_nearby(block: str) -> tuple[float, float] | None:
    """Find a percentage and an APR percentage close together; lower one is the rate."""

    for pattern in _TWO_PERCENTS_RES:
        match = pattern.search(block)
        if match:
            first, second = float(match.group(1)), float(match.group(2))
            return min(first, second), max(first, second)
    return None


def parse_rate_block(block: str) -> tuple[float | None, float | None]:
    record = assemble(block, RATE_METRICS)
    rate, apr = record["rate"], record["apr"]
    if rate is None or apr is None:
        pair = two_percents_nearby(block)
        if pair:
            if rate is None:
                rate = validate(pair[0], spec_by_key(RATE_METRICS, "rate"))
            if apr is None:
                apr = validate(pair[1], spec_by_key(RATE_METRICS, "apr"))
    return normalize_rate_apr(rate, apr)


async def fetch_lender_rate(
    url: str,
    *,
    block_pattern: str,
    fetcher: Fetcher = fetch_document,
    timeout: float = DEFAULT_TIMEOUT_SECONDS,
) -> tuple[float | None, float | None]:
    """Fetch a lender page and return its ``(rate, apr)``; either may be ``None``."""

    document = await fetcher(url, expect=DocumentType.HTML, timeout=timeout)
    block = product_block(to_plain_text(document), block_pattern)
    rate, apr = parse_rate_block(block)
    logger.info("Lender page %s: rate=%s apr=%s", url, rate, apr)
    return rate, apr


__all__ = [
    "fetch_lender_rate",
    "parse_rate_block",
    "product_block",
    "two_percents_nearby",
]
