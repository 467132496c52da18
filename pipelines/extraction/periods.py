"""Detect which month a market report covers."""

from __future__ import annotations

import re
from datetime import date

_MONTH_NUMBERS = {
    name: number
    for number, names in enumerate(
        (
            ("january", "jan"),
            ("february", "feb"),
            ("march", "mar"),
            ("april", "apr"),
            ("may",),
            ("june", "jun"),
            ("july", "jul"),
            ("august", "aug"),
            ("september", "sep", "sept"),
            ("october", "oct"),
            ("november", "nov"),
            ("december", "dec"),
        ),
        start=1,
    )
    for name in names
}

_PERIOD = r"([A-Za-z]+\.?)\s+(\d{4})"
_HEADLINE_PATTERNS = (
    re.compile(rf"Market\s+Trends.*?for\s+{_PERIOD}", re.IGNORECASE | re.DOTALL),
    re.compile(rf"Updated\s+through\s+{_PERIOD}", re.IGNORECASE),
)
_ANY_PERIOD_RE = re.compile(rf"\b{_PERIOD}\b")
MONTH_KEY_RE = re.compile(r"^\d{4}-(0[1-9]|1[0-2])$")


def _month_key(name: str, year: str) -> str | None:
    number = _MONTH_NUMBERS.get(name.rstrip(".").lower())
    if number is None:
        return None
    return f"{int(year):04d}-{number:02d}"


def detect_month_key(text: str, today: date | None = None) -> str:
    """Return the ``YYYY-MM`` period a report covers.

    Looks for the report headline ("Market Trends ... for September 2025"), then an
    "Updated through" note, then the first "<Month> <Year>" pair anywhere. Falls back to
    the current month when the text names no period at all.
    """

    for pattern in _HEADLINE_PATTERNS:
        match = pattern.search(text)
        if match:
            key = _month_key(match.group(1), match.group(2))
            if key:
                return key

    for match in _ANY_PERIOD_RE.finditer(text):
        key = _month_key(match.group(1), match.group(2))
        if key:
            return key

    today = today or date.today()
    return f"{today.year:04d}-{today.month:02d}"


def month_start(month_key: str) -> date:
    if not MONTH_KEY_RE.match(month_key):
        raise ValueError(f"Not a YYYY-MM month key: {month_key!r}")
    year, month = month_key.split("-")
    return date(int(year), int(month), 1)


__all__ = ["MONTH_KEY_RE", "detect_month_key", "month_start"]
