"""Presentation state for the analyzer screen.

``SessionState`` is an immutable value recomputed by pure reducers from the
analysis history; ``AnalyzerSession`` only holds the latest value and tells
listeners when it changes.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass, replace
from datetime import datetime
from typing import TYPE_CHECKING

from .availability import is_analysis_available
from .models import AnalysisMode, AnalysisRecord, AnalyzerStats, JournalEntry, MoodCount, to_local_naive
from .modes import current_window
from .parsing import parse_analysis
from .runner import AnalysisError, AnalysisUnavailableError
from .stats import calculate_stats
from .windows import format_window

if TYPE_CHECKING:
    from .runner import AnalysisRunner

logger = logging.getLogger(__name__)

# Shown in place of a date range before the first analysis
PLACEHOLDER_RANGE_TEXT = "Run analysis"


class AnalysisInProgressError(AnalysisError):
    """An analysis request is already outstanding."""

    def __init__(self) -> None:
        super().__init__("An analysis is already running.")


@dataclass(frozen=True)
class SessionState:
    """Display-ready analyzer fields."""

    mode: AnalysisMode = AnalysisMode.WEEKLY
    latest_record: AnalysisRecord | None = None
    date_range_display: str = PLACEHOLDER_RANGE_TEXT
    mood_counts: tuple[MoodCount, ...] = ()
    wellness_score: int | None = None
    summary_text: str | None = None
    stats: AnalyzerStats = AnalyzerStats()
    is_analysis_available: bool = False
    is_analyzing: bool = False


def latest_record(history: Iterable[AnalysisRecord]) -> AnalysisRecord | None:
    """Most recently created record, whether or not it has a reply."""
    return max(history, key=lambda record: to_local_naive(record.created_at), default=None)


def reduce_session(
    history: Sequence[AnalysisRecord],
    now: datetime,
    journal_entries: Iterable[JournalEntry] = (),
) -> SessionState:
    """Compute the analyzer state for ``history`` as seen at ``now``.

    The date range and statistics describe the window the latest record
    analyzed; availability describes the window due at ``now``.
    """
    available = is_analysis_available(now, history)
    latest = latest_record(history)
    if latest is None:
        return SessionState(is_analysis_available=available)

    parsed = parse_analysis(latest.raw_response_text)
    window = current_window(latest.created_at)
    return SessionState(
        mode=AnalysisMode.from_entry_type(latest.entry_type),
        latest_record=latest,
        date_range_display=format_window(window),
        mood_counts=parsed.mood_counts,
        wellness_score=parsed.wellness_score,
        summary_text=parsed.summary,
        stats=calculate_stats(journal_entries, window),
        is_analysis_available=available,
    )


def with_analyzing(state: SessionState, analyzing: bool) -> SessionState:
    """Copy of ``state`` with the in-flight flag set."""
    return replace(state, is_analyzing=analyzing)


class AnalyzerSession:
    """Holds the current ``SessionState`` and notifies listeners on change."""

    def __init__(self) -> None:
        self._state = SessionState()
        self._history: list[AnalysisRecord] = []
        self._journal_entries: list[JournalEntry] = []
        self._listeners: list[Callable[[SessionState], None]] = []
        self._lock = threading.Lock()

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def history(self) -> list[AnalysisRecord]:
        return list(self._history)

    def add_listener(self, listener: Callable[[SessionState], None]) -> None:
        """Add a listener to be called with each new state."""
        self._listeners.append(listener)

    def remove_listener(self, listener: Callable[[SessionState], None]) -> None:
        """Remove a listener."""
        if listener in self._listeners:
            self._listeners.remove(listener)

    def _publish(self, state: SessionState) -> None:
        with self._lock:
            changed = state != self._state
            self._state = state
        if changed:
            self._notify(state)

    def _notify(self, state: SessionState) -> None:
        for listener in list(self._listeners):
            try:
                listener(state)
            except Exception:
                logger.exception("Session listener failed")

    def refresh(
        self,
        history: Iterable[AnalysisRecord],
        journal_entries: Iterable[JournalEntry] = (),
        now: datetime | None = None,
    ) -> SessionState:
        """Recompute state from new data."""
        self._history = list(history)
        self._journal_entries = list(journal_entries)
        state = reduce_session(self._history, now or datetime.now(), self._journal_entries)
        self._publish(with_analyzing(state, self._state.is_analyzing))
        return self._state

    def analyze(
        self,
        runner: AnalysisRunner,
        journal_entries: Iterable[JournalEntry] | None = None,
        now: datetime | None = None,
    ) -> AnalysisRecord:
        """Run one analysis and fold the new record into the history.

        Raises:
            AnalysisInProgressError: a request is already in flight
            AnalysisUnavailableError: the window due at ``now`` is already covered
            AnalysisError, ModelRequestError: propagated from the runner
        """
        now = to_local_naive(now or datetime.now())
        if journal_entries is not None:
            self._journal_entries = list(journal_entries)

        # Check and claim atomically
        with self._lock:
            if self._state.is_analyzing:
                raise AnalysisInProgressError()
            if not is_analysis_available(now, self._history):
                raise AnalysisUnavailableError(current_window(now))
            self._state = with_analyzing(self._state, True)
            claimed = self._state
        self._notify(claimed)

        try:
            record = runner.run(self._journal_entries, now=now)
        except Exception:
            self._publish(with_analyzing(self._state, False))
            raise

        self._history.append(record)
        self._publish(reduce_session(self._history, now, self._journal_entries))
        return record
