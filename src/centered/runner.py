"""One user-initiated analysis: window, eligibility, prompt, request, record."""

from __future__ import annotations

import logging
import random
from collections.abc import Sequence
from datetime import datetime
from typing import TYPE_CHECKING

from .availability import covering_record
from .client import MalformedResponseError, build_request
from .config import Config
from .models import AnalysisMode, AnalysisRecord, AnalysisWindow, JournalEntry, to_local_naive
from .modes import resolve_mode
from .prompts import build_prompt, prepare_content, select_entries
from .stats import check_eligibility, entries_in_window
from .windows import format_window, window_for

if TYPE_CHECKING:
    from .client import ModelClient

logger = logging.getLogger(__name__)

_NUMBER_WORDS = {2: "two", 9: "nine"}


class AnalysisError(Exception):
    """Base class for analyses refused before any model request."""


class InsufficientEntriesError(AnalysisError):
    """Too few logged days in the window."""

    def __init__(self, mode: AnalysisMode, entry_count: int, minimum_required: int):
        self.mode = mode
        self.entry_count = entry_count
        self.minimum_required = minimum_required
        days = _NUMBER_WORDS.get(minimum_required)
        day_text = f'"{days} days"' if days else f"{minimum_required} days"
        message = (
            f"Sorry, a minimum of {day_text} of check-in entries is needed "
            f"to run the {mode.value} analysis."
        )
        if mode is AnalysisMode.WEEKLY:
            message += " Try again next week"
        super().__init__(message)


class AnalysisUnavailableError(AnalysisError):
    """The current window has already been analyzed."""

    def __init__(self, window: AnalysisWindow):
        self.window = window
        super().__init__(f"An analysis already exists for {format_window(window)}.")


class AnalysisRunner:
    """Runs a single best-effort analysis and returns the new record.

    Persisting the record is left to the caller.
    """

    def __init__(self, client: ModelClient, config: Config, rng: random.Random | None = None):
        self._client = client
        self._config = config
        self._rng = rng

    def run(
        self,
        journal_entries: Sequence[JournalEntry],
        history: Sequence[AnalysisRecord] | None = None,
        now: datetime | None = None,
    ) -> AnalysisRecord:
        """Analyze the window due at ``now``.

        When ``history`` is given the run is refused if it already covers the
        window.

        Raises:
            AnalysisUnavailableError: the window was already analyzed
            InsufficientEntriesError: too few logged days in the window
            ModelRequestError: the model request failed or returned nothing
        """
        now = to_local_naive(now or datetime.now())
        analyzer = self._config.analyzer
        mode = resolve_mode(now)
        window = window_for(now, mode)
        logger.info(f"Running {mode.value} analysis for {window.start} to {window.end}")

        if history is not None and covering_record(now, history) is not None:
            raise AnalysisUnavailableError(window)

        minimum_days = (
            analyzer.monthly_min_days if mode is AnalysisMode.MONTHLY else analyzer.weekly_min_days
        )
        eligibility = check_eligibility(journal_entries, window, minimum_days)
        if not eligibility.is_eligible:
            logger.info(
                f"Not enough entries: {eligibility.entry_count} days logged, "
                f"{eligibility.minimum_required} required"
            )
            raise InsufficientEntriesError(mode, eligibility.entry_count, eligibility.minimum_required)

        limit = analyzer.monthly_entry_limit if mode is AnalysisMode.MONTHLY else None
        selected = select_entries(entries_in_window(journal_entries, window), limit, rng=self._rng)
        content = prepare_content(selected, max_chars=analyzer.content_char_budget)
        prompt = build_prompt(mode, content)

        request = build_request(prompt, mode, self._config.llm, analyzer)
        timeout = analyzer.monthly_timeout if mode is AnalysisMode.MONTHLY else analyzer.weekly_timeout
        reply = self._client.complete(request, timeout=timeout)

        if not reply.text.strip():
            raise MalformedResponseError("empty response")

        return AnalysisRecord(
            created_at=now,
            raw_response_text=reply.text,
            entry_type=mode.value,
            prompt=prompt,
        )
