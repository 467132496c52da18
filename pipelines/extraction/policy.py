"""Disambiguation rules for metrics that look alike in source documents.

Both rules are heuristics. Closed sales and active listings are bare integers under
similar headers, and rate and APR are neighbouring percentages, so malformed input can
still be misattributed; these functions only encode the cases known to go wrong.
"""

from __future__ import annotations

from typing import Mapping, Sequence

from pipelines.extraction.numbers import Number
from pipelines.extraction.specs import MetricSpec


def reject_shadowed(
    spec: MetricSpec,
    value: Number,
    assigned: Mapping[str, Number | None],
    remaining: Sequence[Number],
) -> bool:
    """Whether ``value`` should be passed over for ``spec``.

    A candidate equal to the value already assigned to one of ``spec.distinct_from``
    usually means the scan ran into the neighbouring metric's number. It is rejected only
    while ``remaining`` still holds a valid alternative; a lone candidate is kept.
    """

    if not remaining:
        return False
    return any(assigned.get(other) == value for other in spec.distinct_from)


def normalize_rate_apr(
    rate: float | None, apr: float | None
) -> tuple[float | None, float | None]:
    """Order a (rate, APR) pair.

    The two stay distinct: an APR-only page yields ``(None, apr)``, never the APR
    promoted to the base rate. When both are present an APR below the rate means the
    labels were read crosswise, so the pair is swapped. An APR equal to the rate is kept.
    """

    if rate is not None and apr is not None and apr < rate:
        return apr, rate
    return rate, apr


__all__ = ["normalize_rate_apr", "reject_shadowed"]
