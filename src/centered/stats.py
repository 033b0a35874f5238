"""Activity statistics for analysis windows.

Pure computation over journal entries; no LLM, no storage.
"""

from __future__ import annotations

from collections.abc import Iterable
from datetime import date, timedelta

from .models import AnalysisWindow, AnalyzerStats, Eligibility, JournalEntry

# (label, hours) in display order; Late Evening wraps past midnight
LOG_TIME_BUCKETS: list[tuple[str, frozenset[int]]] = [
    ("Early Morning", frozenset(range(2, 7))),
    ("Morning", frozenset(range(7, 10))),
    ("Mid Day", frozenset(range(10, 14))),
    ("Afternoon", frozenset(range(14, 17))),
    ("Evening", frozenset(range(17, 21))),
    ("Late Evening", frozenset({21, 22, 23, 0, 1})),
]

NO_LOG_TIME = "—"


def entries_in_window(entries: Iterable[JournalEntry], window: AnalysisWindow) -> list[JournalEntry]:
    """Entries whose calendar day falls inside the window."""
    return [entry for entry in entries if window.contains(entry.created_at)]


def logged_days(entries: Iterable[JournalEntry]) -> set[date]:
    """Distinct calendar days with at least one entry."""
    return {entry.created_at.date() for entry in entries}


def _log_time_bucket(hour: int) -> str:
    for label, hours in LOG_TIME_BUCKETS:
        if hour in hours:
            return label
    return NO_LOG_TIME


def favorite_log_time(entries: Iterable[JournalEntry]) -> str:
    """Time-of-day bucket with the most entries; ties go to the earlier bucket."""
    counts: dict[str, int] = {}
    for entry in entries:
        label = _log_time_bucket(entry.created_at.hour)
        counts[label] = counts.get(label, 0) + 1
    if not counts:
        return NO_LOG_TIME

    best = max(counts.values())
    for label, _ in LOG_TIME_BUCKETS:
        if counts.get(label) == best:
            return label
    return NO_LOG_TIME


def streak_in_window(days: set[date], window: AnalysisWindow) -> int:
    """Consecutive logged days counting back from the latest one, inside the window."""
    in_window = {day for day in days if window.start <= day <= window.end}
    if not in_window:
        return 0

    streak = 0
    current = max(in_window)
    while current >= window.start and current in in_window:
        streak += 1
        current -= timedelta(days=1)
    return streak


def calculate_stats(entries: Iterable[JournalEntry], window: AnalysisWindow) -> AnalyzerStats:
    """Logged days, streak and favourite log time for a window."""
    selected = entries_in_window(entries, window)
    days = logged_days(selected)
    return AnalyzerStats(
        logs_count=len(days),
        streak_count=streak_in_window(days, window),
        favorite_log_time=favorite_log_time(selected),
    )


def check_eligibility(
    entries: Iterable[JournalEntry],
    window: AnalysisWindow,
    minimum_days: int,
) -> Eligibility:
    """Check that at least ``minimum_days`` distinct days were logged in the window."""
    entry_count = len(logged_days(entries_in_window(entries, window)))
    return Eligibility(
        is_eligible=entry_count >= minimum_days,
        entry_count=entry_count,
        minimum_required=minimum_days,
    )
