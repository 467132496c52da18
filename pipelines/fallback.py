"""Static fallback samples substituted when live extraction fails.

The samples are checked with the same validator as live data whenever they are loaded,
so a typo here fails loudly instead of reaching the front end looking like a parser bug.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from types import MappingProxyType
from typing import Mapping, Sequence

from pipelines.extraction.assemble import MetricRecord, is_complete
from pipelines.extraction.numbers import Number
from pipelines.extraction.periods import MONTH_KEY_RE
from pipelines.extraction.specs import (
    RATE_METRICS,
    REQUIRED_METRICS,
    RPR_METRICS,
    MetricSpec,
)
from pipelines.extraction.validate import validate

logger = logging.getLogger(__name__)

PROPERTY_TYPES = ("sf", "condo")

FALLBACK_SAMPLE: Mapping[str, Mapping[str, Mapping[str, Number | None]]] = {
    "2025-09": {
        "sf": {
            "medianPrice": 520000,
            "closed": None,
            "dom": 48,
            "monthsSupply": 1.5,
            "activeListings": None,
        },
        "condo": {
            "medianPrice": 389500,
            "closed": None,
            "dom": 54,
            "monthsSupply": 2.6,
            "activeListings": None,
        },
    },
    "2025-08": {
        "sf": {
            "medianPrice": 509600,
            "closed": None,
            "dom": 49,
            "monthsSupply": 1.5,
            "activeListings": None,
        },
        "condo": {
            "medianPrice": 381710,
            "closed": None,
            "dom": 55,
            "monthsSupply": 2.7,
            "activeListings": None,
        },
    },
}


class FallbackDataError(ValueError):
    """The bundled fallback data does not pass validation (a deployment bug)."""


@dataclass(frozen=True)
class FallbackMonth:
    month_key: str
    sf: MetricRecord
    condo: MetricRecord

    def record_for(self, property_type: str) -> MetricRecord:
        return self.sf if property_type == "sf" else self.condo


def _checked_record(
    where: str,
    raw: Mapping[str, Number | None],
    specs: Sequence[MetricSpec],
    required: Sequence[str],
) -> MetricRecord:
    record: dict[str, Number | None] = {}
    for spec in specs:
        if spec.key not in raw:
            raise FallbackDataError(f"{where}: missing metric {spec.key!r}")
        value = raw[spec.key]
        if value is not None and validate(value, spec) != value:
            raise FallbackDataError(
                f"{where}: {spec.key}={value!r} fails validation "
                f"(range {spec.min_value}..{spec.max_value})"
            )
        record[spec.key] = value
    if not is_complete(record, required):
        raise FallbackDataError(f"{where}: required metrics {list(required)} missing")
    return MappingProxyType(record)


def load_fallback(
    sample: Mapping[str, Mapping[str, Mapping[str, Number | None]]] = FALLBACK_SAMPLE,
    *,
    specs: Sequence[MetricSpec] = RPR_METRICS,
    required: Sequence[str] = REQUIRED_METRICS,
) -> FallbackMonth:
    """Validate ``sample`` and return its most recent month."""

    try:
        months = []
        for month_key in sorted(sample):
            if not MONTH_KEY_RE.match(month_key):
                raise FallbackDataError(f"Invalid fallback month key {month_key!r}")
            entry = sample[month_key]
            records = {
                kind: _checked_record(f"{month_key}/{kind}", entry.get(kind, {}), specs, required)
                for kind in PROPERTY_TYPES
            }
            months.append(FallbackMonth(month_key=month_key, **records))
        if not months:
            raise FallbackDataError("Fallback sample is empty")
    except FallbackDataError:
        logger.exception("Fallback sample is invalid; cannot degrade gracefully.")
        raise
    return months[-1]


def check_rate_fallback(rate: float, apr: float) -> tuple[float, float]:
    """Validate a lender's fallback rate/APR pair against the live rate ranges."""

    checked = []
    for spec, value in zip(RATE_METRICS, (rate, apr), strict=True):
        if validate(value, spec) != value:
            error = FallbackDataError(f"Fallback {spec.key}={value!r} fails validation")
            logger.error("%s", error)
            raise error
        checked.append(value)
    return checked[0], checked[1]


__all__ = [
    "FALLBACK_SAMPLE",
    "FallbackDataError",
    "FallbackMonth",
    "PROPERTY_TYPES",
    "check_rate_fallback",
    "load_fallback",
]
