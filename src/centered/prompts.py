"""Prompts and journal content preparation for analyses."""

from __future__ import annotations

import random
import re
from collections.abc import Sequence

from .models import AnalysisMode, JournalEntry

# System prompt for weekly analyses
WEEKLY_SYSTEM_PROMPT = (
    "You are an AI theological and biblical historian.\n\n"
    "Your job is to analyze the user's journal input and produce:\n\n"
    "1) top three moods (one word each) + count in format: mood(#), mood(#), ...\n\n"
    "2) a summary + actionable faith-based steps + a spiritual goal for the next week\n\n"
    "3) a spiritual wellness \"faith score\" from 60–100\n\n"
    "The tone must be encouraging, supportive, and grounded in Christian faith.\n\n"
    "Do NOT exceed ~200 words in paragraph 2."
)

# System prompt for monthly analyses
MONTHLY_SYSTEM_PROMPT = (
    "You are an AI theological and biblical historian.\n\n"
    "Your job is to analyze the user's journal input and produce:\n\n"
    "1) top four moods (one word each) + count in format: mood(#), mood(#), ...\n\n"
    "2) a summary + actionable faith-based steps + a spiritual goal for the next week\n\n"
    "3) a spiritual wellness \"faith score\" from 60–100\n\n"
    "The tone must be encouraging, supportive, and grounded in Christian faith."
)

PROMPT_TEMPLATE = """Analyze the following journal entry:

"{content}"

Output format (exactly):

1st paragraph:
{mood_slots}

2nd paragraph (two bullets):
- Summary: <summary of user input>
- Action & goal for next week: <action steps + weekly goal>

3rd paragraph:
<score only, number from 60–100>

Important:
- Moods must be one word each.
- Score must be the final line and only the number—no text.
"""

MOOD_SLOTS = {
    AnalysisMode.WEEKLY: 3,
    AnalysisMode.MONTHLY: 4,
}

# Entries at or under this length are kept even without a full sentence
SHORT_ENTRY_CHARS = 100
MIN_CHARS_PER_ENTRY = 30
ENTRY_SEPARATOR = "\n\n"

_SENTENCE_END_RE = re.compile(r"[.!?]+\s+")
_SENTENCE_ENDINGS = (".", "!", "?")
_BOUNDARY_WHITESPACE = (" ", "\n", "\t")


def system_prompt(mode: AnalysisMode) -> str:
    """System message for an analysis of the given mode."""
    if mode is AnalysisMode.MONTHLY:
        return MONTHLY_SYSTEM_PROMPT
    return WEEKLY_SYSTEM_PROMPT


def build_prompt(mode: AnalysisMode, content: str) -> str:
    """User prompt asking for the three-paragraph analysis of ``content``."""
    slots = ", ".join(f"mood{i}(#)" for i in range(1, MOOD_SLOTS[mode] + 1))
    return PROMPT_TEMPLATE.format(content=content, mood_slots=slots)


def select_entries(
    entries: Sequence[JournalEntry],
    limit: int | None,
    rng: random.Random | None = None,
) -> list[JournalEntry]:
    """Pick at most ``limit`` entries, favourites first, both groups sampled at random."""
    if limit is None or len(entries) <= limit:
        return list(entries)
    rng = rng or random.Random()

    favorites = [entry for entry in entries if entry.is_favorite]
    others = [entry for entry in entries if not entry.is_favorite]

    selected = rng.sample(favorites, min(len(favorites), limit))
    room = limit - len(selected)
    if room > 0:
        selected.extend(rng.sample(others, min(len(others), room)))
    return selected


def has_complete_sentence(content: str) -> bool:
    """True when the text holds at least one sentence ending in . ! or ?"""
    trimmed = content.strip()
    if not trimmed:
        return False
    if trimmed.endswith(_SENTENCE_ENDINGS):
        return True
    return _SENTENCE_END_RE.search(trimmed) is not None


def _is_usable(content: str) -> bool:
    return len(content) <= SHORT_ENTRY_CHARS or has_complete_sentence(content)


def truncate_to_sentence(content: str, limit: int) -> str | None:
    """Cut ``content`` to its last complete sentence within ``limit`` chars.

    Only the second half (and at most the last 200 chars) of the cut text is
    searched for a boundary. Returns None when no boundary is found.
    """
    truncated = content[:limit]
    lowest = max(int(len(truncated) * 0.5), len(truncated) - 200)
    for index in range(len(truncated) - 1, lowest - 1, -1):
        if truncated[index] not in _SENTENCE_ENDINGS:
            continue
        following = index + 1
        if following >= len(content) or content[following] in _BOUNDARY_WHITESPACE:
            return truncated[:following].strip(" \t")
    return None


def prepare_content(entries: Sequence[JournalEntry], max_chars: int = 1000) -> str:
    """Join entries chronologically within a character budget.

    Entries that fit are kept whole when short or holding a complete
    sentence. Over budget, each entry gets a share and is cut back to its
    last complete sentence; entries with no usable sentence are dropped.
    """
    if not entries:
        return ""

    ordered = sorted(entries, key=lambda entry: entry.created_at)
    total_chars = sum(len(entry.content) for entry in ordered)
    total_chars += (len(ordered) - 1) * len(ENTRY_SEPARATOR)
    if total_chars <= max_chars and all(_is_usable(entry.content.strip()) for entry in ordered):
        return ENTRY_SEPARATOR.join(entry.content for entry in ordered)

    available = max_chars - (len(ordered) - 1) * len(ENTRY_SEPARATOR)
    per_entry = available // len(ordered)
    min_per_entry = max(MIN_CHARS_PER_ENTRY, per_entry // 3)

    pieces: list[str] = []
    remaining = available
    for index, entry in enumerate(ordered):
        is_last = index == len(ordered) - 1
        allocated = remaining if is_last else max(min_per_entry, min(per_entry, remaining))
        if allocated <= 0:
            break

        content = entry.content.strip()
        if len(content) <= allocated:
            piece = content if _is_usable(content) else None
        else:
            piece = truncate_to_sentence(content, allocated)

        if piece:
            pieces.append(piece)
            remaining -= len(piece)
            if not is_last:
                remaining -= len(ENTRY_SEPARATOR)
        if remaining <= 0:
            break

    return ENTRY_SEPARATOR.join(pieces)[:max_chars]
