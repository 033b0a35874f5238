"""Weekly/monthly mode resolution."""

from __future__ import annotations

from datetime import date, datetime

from .models import AnalysisMode, AnalysisWindow
from .windows import previous_week_bounds, last_day_of_month, start_of_day, window_for


def _month_key(day: date) -> tuple[int, int]:
    return day.year, day.month


def resolve_mode(reference: date | datetime) -> AnalysisMode:
    """Decide which analysis is due for a reference moment.

    Monthly is due when the previous week straddled a month boundary, the
    reference has moved out of the Sunday's month, and that Sunday sat in the
    final seven days of its month. Every other case is weekly.
    """
    today = start_of_day(reference)
    try:
        sunday, saturday = previous_week_bounds(today)
    except OverflowError:
        return AnalysisMode.WEEKLY

    spans_months = _month_key(sunday) != _month_key(saturday)
    left_sunday_month = _month_key(sunday) != _month_key(today)
    if spans_months and left_sunday_month:
        days_from_end = (last_day_of_month(sunday) - sunday).days
        if days_from_end < 7:
            return AnalysisMode.MONTHLY

    return AnalysisMode.WEEKLY


def current_window(reference: date | datetime) -> AnalysisWindow:
    """Window of the resolved mode, i.e. what an analysis run at ``reference`` covers."""
    return window_for(reference, resolve_mode(reference))
