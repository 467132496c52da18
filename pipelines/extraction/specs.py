"""Static table of the metrics recovered from market reports and lender pages.

Every label synonym, plausible range and search window lives here so the extraction
engine itself stays free of report-specific regular expressions.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Iterable

from pipelines.extraction.labels import compile_labels
from pipelines.extraction.numbers import NumberKind

_MONTH_WORDS = (
    r"jan(?:uary)?|feb(?:ruary)?|mar(?:ch)?|apr(?:il)?|may|june?|july?|aug(?:ust)?"
    r"|sep(?:t(?:ember)?)?|oct(?:ober)?|nov(?:ember)?|dec(?:ember)?"
)

# Segments matching this are never read as a value: month-over-month annotations,
# percentages and the "September 2025" style period headers that sit next to labels.
NOISE_RE = re.compile(
    rf"%|\bMoM\b|\b(?:{_MONTH_WORDS})\b|\b(?:19|20)\d{{2}}\b", re.IGNORECASE
)

PROPERTY_COUNT_RE = re.compile(r"#\s*of\s*Properties\s*[-–—]\s*([\d,]+)", re.IGNORECASE)


@dataclass(frozen=True)
class MetricSpec:
    """How to find, read and sanity-check one metric."""

    key: str
    patterns: tuple[re.Pattern[str], ...]
    kind: NumberKind
    min_value: float
    max_value: float
    window_size: int = 4
    decimals: int = 1
    preferred: tuple[re.Pattern[str], ...] = ()
    distinct_from: tuple[str, ...] = ()
    allow_percent: bool = False
    noise: re.Pattern[str] | None = field(default=NOISE_RE)


def metric(
    key: str,
    labels: Iterable[str],
    *,
    kind: NumberKind,
    min_value: float,
    max_value: float,
    **options,
) -> MetricSpec:
    return MetricSpec(
        key=key,
        patterns=compile_labels(labels),
        kind=kind,
        min_value=min_value,
        max_value=max_value,
        **options,
    )


# Order matters only for disambiguation: ``activeListings`` is settled before
# ``closed`` so a closed-sales candidate can be checked against it.
RPR_METRICS: tuple[MetricSpec, ...] = (
    metric(
        "medianPrice",
        (r"Median\s+(?:Sold|Sale|Sales)\s+Price", r"Median\s+Price"),
        kind=NumberKind.INTEGER,
        min_value=20_000,
        max_value=2_000_000,
        window_size=3,
    ),
    metric(
        "dom",
        (
            r"Median\s+Days\s+in\s+RPR",
            r"Median\s+Days\s+on\s+Market",
            r"Days\s+on\s+Market",
            r"Median\s+DOM",
            r"\bDOM\b",
            r"Median\s+Days\s+to\s+(?:Close|Pending)",
        ),
        kind=NumberKind.INTEGER,
        min_value=0,
        max_value=365,
        window_size=6,
    ),
    metric(
        "monthsSupply",
        (r"Months\s+of\s+(?:Inventory|Supply)", r"Mos\.?\s+Supply"),
        kind=NumberKind.DECIMAL,
        min_value=0,
        max_value=50,
        window_size=3,
    ),
    metric(
        "activeListings",
        (r"Active\s+Listings",),
        kind=NumberKind.INTEGER,
        min_value=0,
        max_value=100_000,
        window_size=40,
        preferred=(PROPERTY_COUNT_RE,),
    ),
    metric(
        "closed",
        (
            r"Closed\s+(?:Sales|Listings)",
            r"Closings",
            r"Closed\s+Transactions",
            r"Properties\s+Sold",
            r"Sold\s+Properties",
            r"Total\s+Closed",
            r"Sold\s+Listings",
            r"Total\s+Sales",
        ),
        kind=NumberKind.INTEGER,
        min_value=0,
        max_value=100_000,
        window_size=8,
        preferred=(PROPERTY_COUNT_RE,),
        distinct_from=("activeListings",),
    ),
)

REQUIRED_METRICS: tuple[str, ...] = ("medianPrice",)

RATE_RANGE = (2.0, 20.0)

PERCENT_VALUE_RE = re.compile(r"(?<![\d.])(\d{1,2}(?:\.\d{1,3})?)\s*%")

# Rates are percentages, so percent exclusion and the noise filter are off and values
# written with a "%" are tried before bare numbers. An APR equal to the rate is a valid
# quote (no-closing-cost loans), so neither metric is checked against the other here.
RATE_METRICS: tuple[MetricSpec, ...] = (
    metric(
        "rate",
        (r"Interest\s*Rate", r"\bRate\b"),
        kind=NumberKind.DECIMAL,
        min_value=RATE_RANGE[0],
        max_value=RATE_RANGE[1],
        window_size=2,
        decimals=3,
        preferred=(PERCENT_VALUE_RE,),
        allow_percent=True,
        noise=None,
    ),
    metric(
        "apr",
        (r"\bAPR\b", r"\bA\.P\.R\.?"),
        kind=NumberKind.DECIMAL,
        min_value=RATE_RANGE[0],
        max_value=RATE_RANGE[1],
        window_size=2,
        decimals=3,
        preferred=(PERCENT_VALUE_RE,),
        allow_percent=True,
        noise=None,
    ),
)


def spec_by_key(specs: Iterable[MetricSpec], key: str) -> MetricSpec:
    for spec in specs:
        if spec.key == key:
            return spec
    raise KeyError(key)


__all__ = [
    "MetricSpec",
    "NOISE_RE",
    "RATE_METRICS",
    "REQUIRED_METRICS",
    "RPR_METRICS",
    "metric",
    "spec_by_key",
]
