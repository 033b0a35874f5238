"""Deduplication of analyses against history."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from datetime import date, datetime

from .models import AnalysisRecord, AnalysisWindow
from .modes import current_window

logger = logging.getLogger(__name__)


def record_covers(record: AnalysisRecord, window: AnalysisWindow) -> bool:
    """Check whether a past record already analyzed ``window``.

    The record's window is recomputed from its ``created_at``; records without
    response text never cover anything.
    """
    if not record.has_response:
        return False
    record_window = current_window(record.created_at)
    return (
        record_window.mode is window.mode
        and record_window.start == window.start
        and record_window.end == window.end
    )


def covering_record(
    reference: date | datetime,
    history: Iterable[AnalysisRecord],
) -> AnalysisRecord | None:
    """First record in ``history`` that covers the window due at ``reference``."""
    window = current_window(reference)
    for record in history:
        if record_covers(record, window):
            return record
    return None


def is_analysis_available(
    reference: date | datetime,
    history: Iterable[AnalysisRecord],
) -> bool:
    """True when no record in ``history`` covers the window due at ``reference``."""
    record = covering_record(reference, history)
    if record is not None:
        logger.debug(
            f"Analysis unavailable: window already covered by record created {record.created_at.isoformat()}"
        )
        return False
    return True
