"""Read a metric's value from the text surrounding its label."""

from __future__ import annotations

import re
from itertools import chain
from typing import Iterator

from pipelines.extraction.labels import LabelMatch
from pipelines.extraction.numbers import Number, iter_numbers, scan_number
from pipelines.extraction.specs import MetricSpec

# A bare 19xx/20xx token, not part of a grouped or fractional number.
_YEAR_TOKEN_RE = re.compile(r"(?<![\w.,])(?:19|20)\d{2}(?![\w]|[.,]\d)")


def forward_segments(text: str, match: LabelMatch, size: int) -> list[str]:
    """The rest of the label's line followed by up to ``size`` following lines."""

    line_end = text.find("\n", match.end)
    if line_end == -1:
        return [text[match.end:]]
    segments = [text[match.end:line_end]]
    segments.extend(text[line_end + 1:].split("\n", size)[:size])
    return segments


def backward_segments(text: str, match: LabelMatch, size: int) -> list[str]:
    """The start of the label's line followed by up to ``size`` preceding lines, nearest first."""

    lines = text[:match.index].split("\n")
    segments = [lines[-1]]
    segments.extend(reversed(lines[max(0, len(lines) - 1 - size):-1]))
    return segments


def is_noise(segment: str, spec: MetricSpec) -> bool:
    return spec.noise is not None and spec.noise.search(segment) is not None


def _preferred_values(segments: list[str], spec: MetricSpec) -> Iterator[Number]:
    joined = "\n".join(segments)
    for pattern in spec.preferred:
        for found in pattern.finditer(joined):
            value = scan_number(found.group(1), spec.kind)
            if value is not None:
                yield value


def _segment_values(segment: str, spec: MetricSpec) -> list[Number]:
    if is_noise(segment, spec):
        return []
    return list(iter_numbers(segment, spec.kind, exclude_percent=not spec.allow_percent))


def _label_line_values(segment: str, spec: MetricSpec) -> list[Number]:
    """Numbers sharing the label's line (``$520,000 +4.2% MoM``, ``September 2025 $520,000``).

    The segment is never skipped as noise; percentages and bare years are dropped token
    by token instead.
    """

    if spec.noise is not None:
        segment = _YEAR_TOKEN_RE.sub(" ", segment)
    return list(iter_numbers(segment, spec.kind, exclude_percent=not spec.allow_percent))


def _window_values(segments: list[str], spec: MetricSpec) -> Iterator[list[Number]]:
    """Per-segment values; the first segment is the label's own line."""

    for position, segment in enumerate(segments):
        if position == 0:
            yield _label_line_values(segment, spec)
        else:
            yield _segment_values(segment, spec)


def iter_candidates(text: str, match: LabelMatch, spec: MetricSpec) -> Iterator[Number]:
    """Yield candidate values for ``spec`` in the order they should be tried.

    Forward first: ``spec.preferred`` patterns over the whole forward window, then every
    number of the label's line and of every following non-noise segment in window order.
    Only when the forward window yields nothing at all is the text before the label
    scanned, nearest line first and right-to-left within a line, so the number closest
    to the label comes first.
    """

    forward = forward_segments(text, match, spec.window_size)
    found = False
    for value in chain(
        _preferred_values(forward, spec),
        chain.from_iterable(_window_values(forward, spec)),
    ):
        found = True
        yield value
    if found:
        return

    for values in _window_values(backward_segments(text, match, spec.window_size), spec):
        yield from reversed(values)


def extract_value(text: str, match: LabelMatch, spec: MetricSpec) -> Number | None:
    return next(iter_candidates(text, match, spec), None)


__all__ = [
    "backward_segments",
    "extract_value",
    "forward_segments",
    "is_noise",
    "iter_candidates",
]
