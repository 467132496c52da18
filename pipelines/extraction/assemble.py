"""Run every metric spec over one document and collect the results."""

from __future__ import annotations

import logging
from types import MappingProxyType
from typing import Callable, Iterable, Mapping, Sequence

from pipelines.extraction.labels import locate_label
from pipelines.extraction.numbers import Number
from pipelines.extraction.policy import reject_shadowed
from pipelines.extraction.specs import MetricSpec
from pipelines.extraction.validate import validate
from pipelines.extraction.window import iter_candidates
from pipelines.text import normalize_whitespace

logger = logging.getLogger(__name__)

MetricRecord = Mapping[str, Number | None]
Policy = Callable[[MetricSpec, Number, Mapping[str, Number | None], Sequence[Number]], bool]


def _extract_metric(
    text: str,
    spec: MetricSpec,
    assigned: Mapping[str, Number | None],
    policy: Policy,
) -> Number | None:
    match = locate_label(text, spec.patterns)
    if match is None:
        logger.debug("No label found for %s.", spec.key)
        return None

    # Preferred patterns and the line scan can report the same number twice; a repeat
    # is not an alternative for the disambiguation policy.
    accepted = list(
        dict.fromkeys(
            value
            for value in (validate(raw, spec) for raw in iter_candidates(text, match, spec))
            if value is not None
        )
    )
    for position, value in enumerate(accepted):
        if policy(spec, value, assigned, accepted[position + 1:]):
            logger.debug("Skipping %s=%s: shadows an already assigned metric.", spec.key, value)
            continue
        return value

    logger.debug(
        "Label %r found for %s but no candidate passed validation.", match.pattern, spec.key
    )
    return None


def assemble(
    text: str,
    specs: Iterable[MetricSpec],
    *,
    policy: Policy = reject_shadowed,
) -> MetricRecord:
    """Extract every metric in ``specs`` from ``text`` into a read-only record.

    A metric whose label never appears, or whose candidates all fail validation, maps to
    ``None``; absence is never reported as zero.
    """

    normalized = normalize_whitespace(text)
    values: dict[str, Number | None] = {}
    for spec in specs:
        values[spec.key] = _extract_metric(normalized, spec, values, policy)
    return MappingProxyType(values)


def is_complete(record: MetricRecord, required: Iterable[str]) -> bool:
    return all(record.get(key) is not None for key in required)


__all__ = ["MetricRecord", "assemble", "is_complete"]
