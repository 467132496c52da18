"""Numeric token scanning over noisy report text."""

from __future__ import annotations

import re
from enum import Enum
from typing import Iterator

Number = int | float


class NumberKind(str, Enum):
    INTEGER = "integer"
    DECIMAL = "decimal"


# Digits glued to a word or to a preceding separator are never a token start, so
# "RPR2" or the "48" inside "1.48" cannot be picked up on their own.
_TOKEN_RE = re.compile(
    r"(?<![\w.,])(?P<sign>[-+]?)(?P<whole>\d{1,3}(?:,\d{3})+|\d+)(?:\.(?P<frac>\d+))?"
)
_PERCENT_AFTER_RE = re.compile(r"\s*%")


def _parse(match: re.Match[str], kind: NumberKind) -> Number:
    sign = "-" if match.group("sign") == "-" else ""
    whole = match.group("whole").replace(",", "")
    if kind is NumberKind.INTEGER:
        # Fractions are dropped rather than rounded: "48.96 days" reads as 48.
        return int(f"{sign}{whole}")
    frac = match.group("frac")
    return float(f"{sign}{whole}.{frac}" if frac else f"{sign}{whole}")


def iter_numbers(
    text: str, kind: NumberKind, *, exclude_percent: bool = False
) -> Iterator[Number]:
    """Yield every numeric token in ``text`` in reading order."""

    for match in _TOKEN_RE.finditer(text):
        if exclude_percent and _PERCENT_AFTER_RE.match(text, match.end()):
            continue
        yield _parse(match, kind)


def scan_number(
    text: str, kind: NumberKind, *, exclude_percent: bool = False
) -> Number | None:
    """Return the first integer/decimal token found in ``text`` or ``None``.

    Thousands separators are stripped and currency symbols ignored. With
    ``exclude_percent`` a token followed by ``%`` (``5.2%``, ``12 %``) is skipped as a
    whole, so neither of its digit runs can leak out as a value.
    """

    return next(iter_numbers(text, kind, exclude_percent=exclude_percent), None)


__all__ = ["Number", "NumberKind", "iter_numbers", "scan_number"]
