"""Lenient parsing of analysis replies.

The model is asked for three blank-line separated paragraphs:

    Joyful(3), Anxious(2), Hopeful(5)

    - Summary: ...
    - Action & goal for next week: ...

    87

Nothing guarantees that shape, so every function here is total: anything
that cannot be read yields an empty list or None instead of an error.
"""

import re

from .models import MoodCount, ParsedAnalysis

PARAGRAPH_SEPARATOR = "\n\n"

_COUNT_RE = re.compile(r"[+-]?[0-9]+")


def split_paragraphs(response: str) -> list[str]:
    """Split trimmed text on blank-line separators."""
    return response.strip().split(PARAGRAPH_SEPARATOR)


def parse_mood_counts(response: str) -> list[MoodCount]:
    """Read the "mood(count), mood(count)" tally from the first paragraph.

    Uses the last parentheses of each item so a mood name may itself contain
    parentheses. Items without a readable count are skipped.
    """
    first_paragraph = split_paragraphs(response)[0]
    items = [item for item in first_paragraph.split(",") if item]

    counts: list[MoodCount] = []
    for index, raw_item in enumerate(items):
        item = raw_item.strip()
        open_at = item.rfind("(")
        close_at = item.rfind(")")
        if open_at == -1 or close_at == -1 or open_at >= close_at:
            continue
        number = item[open_at + 1:close_at]
        if not _COUNT_RE.fullmatch(number):
            continue
        mood = item[:open_at].strip()
        counts.append(MoodCount(order=index, mood=mood, count=int(number)))
    return counts


def parse_wellness_score(response: str) -> int | None:
    """Last two digits found anywhere in the final paragraph.

    This is text scraping, not a structured field: a year or other numeral in
    the closing remark wins over the intended score.
    """
    last_paragraph = split_paragraphs(response)[-1]
    digits = [ch for ch in last_paragraph if ch.isdecimal()]
    if len(digits) < 2:
        return None
    return int("".join(digits[-2:]))


def parse_summary(response: str) -> str | None:
    """Second paragraph, trimmed; None when missing or empty."""
    paragraphs = split_paragraphs(response)
    if len(paragraphs) < 2:
        return None
    summary = paragraphs[1].strip()
    return summary or None


def parse_analysis(response: str | None) -> ParsedAnalysis:
    """Parse every field of a reply. None gives an empty result."""
    if response is None:
        return ParsedAnalysis()
    return ParsedAnalysis(
        mood_counts=tuple(parse_mood_counts(response)),
        wellness_score=parse_wellness_score(response),
        summary=parse_summary(response),
    )
