"""Calendar windows for weekly and monthly analyses.

Pure computation: no I/O, no state. Every function accepts a ``date`` or a
``datetime`` reference and works on calendar days.
"""

from __future__ import annotations

import calendar
from datetime import date, datetime, timedelta

from .models import AnalysisMode, AnalysisWindow, to_local_naive

# Fixed English abbreviations so display text does not follow the process locale
MONTH_ABBREVIATIONS = (
    "Jan", "Feb", "Mar", "Apr", "May", "Jun",
    "Jul", "Aug", "Sep", "Oct", "Nov", "Dec",
)


def start_of_day(moment: date | datetime) -> date:
    """Reduce a moment to its local calendar day."""
    if isinstance(moment, datetime):
        return to_local_naive(moment).date()
    return moment


def days_since_sunday(day: date) -> int:
    """Offset of ``day`` from the Sunday that starts its week (0 for Sunday)."""
    # date.weekday() is Monday=0 .. Sunday=6
    return (day.weekday() + 1) % 7


def last_day_of_month(day: date) -> date:
    """Last calendar day of the month containing ``day``."""
    _, length = calendar.monthrange(day.year, day.month)
    return day.replace(day=length)


def previous_week_bounds(reference: date | datetime) -> tuple[date, date]:
    """Sunday and Saturday of the week before the reference's own week.

    Raises OverflowError when the arithmetic leaves the supported date range.
    """
    today = start_of_day(reference)
    sunday = today - timedelta(days=days_since_sunday(today) + 7)
    saturday = sunday + timedelta(days=6)
    return sunday, saturday


def weekly_window(reference: date | datetime) -> AnalysisWindow:
    """Most recently completed Sunday-Saturday week before the reference's week."""
    try:
        sunday, saturday = previous_week_bounds(reference)
    except OverflowError:
        today = start_of_day(reference)
        return AnalysisWindow(start=today, end=today, mode=AnalysisMode.WEEKLY)
    return AnalysisWindow(start=sunday, end=saturday, mode=AnalysisMode.WEEKLY)


def monthly_window(reference: date | datetime) -> AnalysisWindow:
    """Whole calendar month containing the previous week's Sunday.

    When the previous week straddles two months, the completed month is the
    one holding its Sunday.
    """
    try:
        sunday, _ = previous_week_bounds(reference)
    except OverflowError:
        fallback = weekly_window(reference)
        return AnalysisWindow(start=fallback.start, end=fallback.end, mode=AnalysisMode.MONTHLY)
    first = sunday.replace(day=1)
    return AnalysisWindow(start=first, end=last_day_of_month(first), mode=AnalysisMode.MONTHLY)


def window_for(reference: date | datetime, mode: AnalysisMode) -> AnalysisWindow:
    """Window of the given mode for a reference moment."""
    if mode is AnalysisMode.MONTHLY:
        return monthly_window(reference)
    return weekly_window(reference)


def _month_abbr(day: date) -> str:
    return MONTH_ABBREVIATIONS[day.month - 1]


def format_weekly(window: AnalysisWindow) -> str:
    """Format as "Jun 1 to Jun 7"."""
    start = f"{_month_abbr(window.start)} {window.start.day}"
    end = f"{_month_abbr(window.end)} {window.end.day}"
    return f"{start} to {end}"


def format_monthly(window: AnalysisWindow) -> str:
    """Format as "Jun Month", or "May - Jun" when the bounds differ in month."""
    start_month = _month_abbr(window.start)
    end_month = _month_abbr(window.end)
    if start_month == end_month:
        return f"{start_month} Month"
    return f"{start_month} - {end_month}"


def format_window(window: AnalysisWindow) -> str:
    """Display text for a window, chosen by its mode."""
    if window.mode is AnalysisMode.MONTHLY:
        return format_monthly(window)
    return format_weekly(window)
