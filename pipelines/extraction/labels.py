"""Locate metric labels inside normalized report text."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Iterable, Sequence


@dataclass(frozen=True)
class LabelMatch:
    """Where a metric label was found; anchors the value search window."""

    index: int
    length: int
    pattern: str = ""

    @property
    def end(self) -> int:
        return self.index + self.length


def compile_labels(labels: Iterable[str]) -> tuple[re.Pattern[str], ...]:
    return tuple(re.compile(label, re.IGNORECASE) for label in labels)


def locate_label(text: str, patterns: Sequence[re.Pattern[str]]) -> LabelMatch | None:
    """Return the first occurrence of the highest-priority label that matches.

    Patterns are tried in order and the first one matching anywhere wins, even if a
    lower-priority synonym occurs earlier in the text. ``text`` must already be
    normalized with :func:`pipelines.text.normalize_whitespace`.
    """

    for pattern in patterns:
        match = pattern.search(text)
        if match and match.end() > match.start():
            return LabelMatch(
                index=match.start(),
                length=match.end() - match.start(),
                pattern=pattern.pattern,
            )
    return None


__all__ = ["LabelMatch", "compile_labels", "locate_label"]
