"""Metric-aware range checks for recovered values."""

from __future__ import annotations

import math
from decimal import ROUND_HALF_UP, Decimal

from pipelines.extraction.numbers import Number, NumberKind
from pipelines.extraction.specs import MetricSpec


def round_half_away(value: float, decimals: int = 1) -> float:
    """Round half away from zero at ``decimals`` places (``2.25`` -> ``2.3``).

    Goes through the shortest decimal representation of ``value`` so binary float
    artifacts do not decide the tie.
    """

    quantum = Decimal(1).scaleb(-decimals)
    # ROUND_HALF_UP in the decimal module rounds ties away from zero for negatives too.
    return float(Decimal(repr(value)).quantize(quantum, rounding=ROUND_HALF_UP))


def validate(value: Number | None, spec: MetricSpec) -> Number | None:
    if value is None:
        return None
    if isinstance(value, float) and (math.isnan(value) or math.isinf(value)):
        return None
    if not spec.min_value <= value <= spec.max_value:
        return None
    if spec.kind is NumberKind.DECIMAL:
        return round_half_away(float(value), spec.decimals)
    return int(value)


__all__ = ["round_half_away", "validate"]
