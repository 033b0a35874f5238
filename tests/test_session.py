"""Tests for analyzer presentation state."""

import threading
from datetime import datetime, timezone
from unittest.mock import MagicMock

import pytest

from centered.client import RateLimitedError
from centered.models import AnalysisMode, AnalysisRecord, AnalyzerStats, JournalEntry, MoodCount
from centered.runner import AnalysisUnavailableError
from centered.session import (
    PLACEHOLDER_RANGE_TEXT,
    AnalysisInProgressError,
    AnalyzerSession,
    SessionState,
    latest_record,
    reduce_session,
    with_analyzing,
)

REPLY = "Joyful(3), Calm(2), Hopeful(1), Tired(1)\n\n- Summary: A full month.\n\n91"


def _make_record(
    created_at: datetime,
    response: str | None = REPLY,
    entry_type: str = "monthly",
) -> AnalysisRecord:
    """Helper to create an AnalysisRecord for testing."""
    return AnalysisRecord(created_at=created_at, raw_response_text=response, entry_type=entry_type)


def _make_runner(record: AnalysisRecord) -> MagicMock:
    """Helper to create a mock AnalysisRunner returning ``record``."""
    runner = MagicMock()
    runner.run.return_value = record
    return runner


class TestReduceSession:
    def test_empty_history(self):
        state = reduce_session([], datetime(2024, 4, 10))
        assert state.date_range_display == PLACEHOLDER_RANGE_TEXT
        assert state.mode is AnalysisMode.WEEKLY
        assert state.latest_record is None
        assert state.mood_counts == ()
        assert state.stats == AnalyzerStats()
        assert state.is_analysis_available

    def test_latest_monthly_record(self):
        record = _make_record(datetime(2024, 4, 8, 9, 0))
        state = reduce_session([record], datetime(2024, 4, 12, 9, 0))

        assert state.mode is AnalysisMode.MONTHLY
        assert state.latest_record is record
        assert state.date_range_display == "Mar Month"
        assert state.mood_counts[0] == MoodCount(order=0, mood="Joyful", count=3)
        assert len(state.mood_counts) == 4
        assert state.wellness_score == 91
        assert state.summary_text == "- Summary: A full month."
        assert not state.is_analysis_available

    def test_available_next_week(self):
        record = _make_record(datetime(2024, 4, 8, 9, 0))
        state = reduce_session([record], datetime(2024, 4, 14, 9, 0))
        assert state.is_analysis_available
        assert state.date_range_display == "Mar Month"

    def test_stats_for_latest_window(self):
        record = _make_record(datetime(2024, 4, 15, 9, 0), entry_type="weekly")
        entries = [
            JournalEntry(content="a.", created_at=datetime(2024, 4, 12, 8, 0)),
            JournalEntry(content="b.", created_at=datetime(2024, 4, 13, 8, 0)),
            JournalEntry(content="c.", created_at=datetime(2024, 4, 15, 8, 0)),
        ]
        state = reduce_session([record], datetime(2024, 4, 16, 9, 0), entries)
        assert state.date_range_display == "Apr 7 to Apr 13"
        assert state.stats == AnalyzerStats(logs_count=2, streak_count=2, favorite_log_time="Morning")

    def test_failed_latest_record(self):
        good = _make_record(datetime(2024, 4, 8, 9, 0))
        failed = _make_record(datetime(2024, 4, 15, 9, 0), response=None, entry_type="weekly")
        state = reduce_session([good, failed], datetime(2024, 4, 16, 9, 0))

        assert state.latest_record is failed
        assert state.mood_counts == ()
        assert state.wellness_score is None
        assert state.summary_text is None
        assert state.is_analysis_available

    def test_unknown_entry_type_is_weekly(self):
        record = _make_record(datetime(2024, 4, 8, 9, 0), entry_type="daily")
        assert reduce_session([record], datetime(2024, 4, 8)).mode is AnalysisMode.WEEKLY


class TestHelpers:
    def test_latest_record_by_created_at(self):
        older = _make_record(datetime(2024, 3, 1))
        newer = _make_record(datetime(2024, 4, 1))
        assert latest_record([newer, older]) is newer
        assert latest_record([]) is None

    def test_with_analyzing(self):
        state = with_analyzing(SessionState(), True)
        assert state.is_analyzing
        assert not with_analyzing(state, False).is_analyzing


class TestAnalyzerSession:
    def test_refresh_notifies_on_change_only(self):
        session = AnalyzerSession()
        listener = MagicMock()
        session.add_listener(listener)
        history = [_make_record(datetime(2024, 4, 8, 9, 0))]

        session.refresh(history, now=datetime(2024, 4, 12))
        session.refresh(history, now=datetime(2024, 4, 12))

        assert listener.call_count == 1
        assert session.state.date_range_display == "Mar Month"

    def test_remove_listener(self):
        session = AnalyzerSession()
        listener = MagicMock()
        session.add_listener(listener)
        session.remove_listener(listener)
        session.refresh([_make_record(datetime(2024, 4, 8, 9, 0))], now=datetime(2024, 4, 12))
        listener.assert_not_called()

    def test_listener_errors_do_not_propagate(self):
        session = AnalyzerSession()
        session.add_listener(MagicMock(side_effect=RuntimeError("boom")))
        state = session.refresh([_make_record(datetime(2024, 4, 8, 9, 0))], now=datetime(2024, 4, 12))
        assert state.date_range_display == "Mar Month"

    def test_analyze_success(self):
        session = AnalyzerSession()
        seen: list[SessionState] = []
        session.add_listener(seen.append)
        now = datetime(2024, 4, 10, 9, 0)
        record = _make_record(now)

        result = session.analyze(_make_runner(record), journal_entries=[], now=now)

        assert result is record
        assert session.history == [record]
        assert seen[0].is_analyzing
        assert not seen[-1].is_analyzing
        assert seen[-1].latest_record is record
        assert not session.state.is_analysis_available

    def test_analyze_when_covered(self):
        session = AnalyzerSession()
        session.refresh([_make_record(datetime(2024, 4, 8, 9, 0))], now=datetime(2024, 4, 10))
        runner = _make_runner(_make_record(datetime(2024, 4, 10)))

        with pytest.raises(AnalysisUnavailableError):
            session.analyze(runner, now=datetime(2024, 4, 10, 9, 0))
        runner.run.assert_not_called()

    def test_analyze_failure_clears_flag(self):
        session = AnalyzerSession()
        runner = MagicMock()
        runner.run.side_effect = RateLimitedError()

        with pytest.raises(RateLimitedError):
            session.analyze(runner, now=datetime(2024, 4, 10, 9, 0))

        assert not session.state.is_analyzing
        assert session.history == []

    def test_analyze_while_in_flight(self):
        session = AnalyzerSession()
        now = datetime(2024, 4, 10, 9, 0)
        record = _make_record(now)
        runner = MagicMock()

        def run(entries, now):
            with pytest.raises(AnalysisInProgressError):
                session.analyze(runner, now=now)
            return record

        runner.run.side_effect = run
        assert session.analyze(runner, now=now) is record
        assert runner.run.call_count == 1


class TestStoredHistory:
    def test_analyze_after_refresh_with_utc_rows(self):
        rows = [
            {
                "created_at": "2024-03-20T09:00:00Z",
                "analyzer_ai_response": REPLY,
                "entry_type": "weekly",
            },
            {
                "created_at": "2024-03-27T09:00:00+00:00",
                "analyzer_ai_response": REPLY,
                "entry_type": "weekly",
            },
        ]
        session = AnalyzerSession()
        session.refresh([AnalysisRecord.from_dict(row) for row in rows], now=datetime(2024, 4, 17, 9, 0))
        now = datetime(2024, 4, 17, 9, 0)
        record = _make_record(now, entry_type="weekly")

        session.analyze(_make_runner(record), journal_entries=[], now=now)

        assert session.state.latest_record is record
        assert all(r.created_at.tzinfo is None for r in session.history)

    def test_latest_record_with_mixed_timestamps(self):
        aware = _make_record(datetime(2024, 4, 1, 9, 0, tzinfo=timezone.utc))
        naive = _make_record(datetime(2024, 4, 20, 9, 0))
        assert latest_record([aware, naive]) is naive


class TestConcurrentAnalyze:
    def test_only_one_thread_claims_the_run(self):
        session = AnalyzerSession()
        now = datetime(2024, 4, 10, 9, 0)
        started = threading.Event()
        release = threading.Event()
        errors: list[Exception] = []
        runner = MagicMock()

        def run(entries, now):
            started.set()
            release.wait(timeout=5)
            return _make_record(now)

        runner.run.side_effect = run

        def second_caller():
            started.wait(timeout=5)
            try:
                session.analyze(runner, now=now)
            except AnalysisInProgressError as e:
                errors.append(e)
            finally:
                release.set()

        thread = threading.Thread(target=second_caller)
        thread.start()
        session.analyze(runner, now=now)
        thread.join(timeout=5)

        assert len(errors) == 1
        assert runner.run.call_count == 1
