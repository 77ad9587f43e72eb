"""Keyword spotting in narration text."""

from __future__ import annotations

import re
from typing import NamedTuple


class KeywordSpan(NamedTuple):
    start: int
    end: int
    keyword: str


def find_keywords(text: str, keywords: list[str]) -> list[KeywordSpan]:
    """Locate whole-word, case-insensitive keyword occurrences.

    Longer keywords win where two would overlap; spans never overlap and are
    returned in text order.
    """
    candidates: list[KeywordSpan] = []
    for kw in sorted({k for k in keywords if k.strip()}, key=len, reverse=True):
        pattern = re.compile(rf"(?<!\w){re.escape(kw)}(?!\w)", re.IGNORECASE)
        for m in pattern.finditer(text):
            candidates.append(KeywordSpan(m.start(), m.end(), kw))

    taken: list[KeywordSpan] = []
    for span in sorted(candidates, key=lambda s: (-(s.end - s.start), s.start)):
        if all(span.end <= t.start or span.start >= t.end for t in taken):
            taken.append(span)
    return sorted(taken)


def keywords_in(text: str, keywords: list[str]) -> list[str]:
    """Distinct keywords that occur in `text`, in order of first appearance."""
    seen: list[str] = []
    for span in find_keywords(text, keywords):
        if span.keyword not in seen:
            seen.append(span.keyword)
    return seen
