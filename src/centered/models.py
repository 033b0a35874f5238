"""Data models for Centered."""

from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum
from typing import Any


class AnalysisMode(Enum):
    """Granularity of a period analysis."""
    WEEKLY = "weekly"
    MONTHLY = "monthly"

    @classmethod
    def from_entry_type(cls, entry_type: str | None) -> "AnalysisMode":
        """Map a stored entry type to a mode. Anything but "monthly" is weekly."""
        if entry_type == cls.MONTHLY.value:
            return cls.MONTHLY
        return cls.WEEKLY


def to_local_naive(moment: datetime) -> datetime:
    """Convert an aware datetime to naive local time; naive values pass through."""
    if moment.tzinfo is None:
        return moment
    return moment.astimezone().replace(tzinfo=None)


def _parse_timestamp(value: Any) -> datetime:
    """Parse an ISO-8601 timestamp (a trailing "Z" is accepted) to naive local time.

    Stored rows carry UTC offsets while new records are stamped with local
    wall-clock time, so everything is kept in the latter.
    """
    if isinstance(value, datetime):
        return to_local_naive(value)
    text = str(value).strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    return to_local_naive(datetime.fromisoformat(text))


@dataclass(frozen=True)
class AnalysisWindow:
    """Closed range of calendar days covered by one analysis."""

    start: date
    end: date
    mode: AnalysisMode

    @property
    def days(self) -> int:
        """Number of calendar days in the window, both bounds included."""
        return (self.end - self.start).days + 1

    def contains(self, moment: date | datetime) -> bool:
        """Check whether a moment falls on one of the window's days."""
        day = to_local_naive(moment).date() if isinstance(moment, datetime) else moment
        return self.start <= day <= self.end


@dataclass(frozen=True)
class AnalysisRecord:
    """A previously produced analysis, owned by the storage collaborator."""

    created_at: datetime
    raw_response_text: str | None
    entry_type: str
    prompt: str | None = None
    record_id: str | None = None

    @property
    def has_response(self) -> bool:
        """False for incomplete or failed analyses (no usable reply text)."""
        return bool(self.raw_response_text and self.raw_response_text.strip())

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "AnalysisRecord":
        """Build a record from a storage row."""
        record_id = data.get("id")
        return cls(
            created_at=_parse_timestamp(data["created_at"]),
            raw_response_text=data.get("analyzer_ai_response"),
            entry_type=data.get("entry_type") or AnalysisMode.WEEKLY.value,
            prompt=data.get("analyzer_ai_prompt"),
            record_id=str(record_id) if record_id is not None else None,
        )

    def to_dict(self) -> dict[str, Any]:
        """Serialize to a storage row."""
        data: dict[str, Any] = {
            "created_at": self.created_at.isoformat(),
            "analyzer_ai_response": self.raw_response_text,
            "entry_type": self.entry_type,
        }
        if self.prompt is not None:
            data["analyzer_ai_prompt"] = self.prompt
        if self.record_id is not None:
            data["id"] = self.record_id
        return data


@dataclass(frozen=True)
class MoodCount:
    """One "mood(count)" item of a mood tally."""

    order: int  # position in the comma-separated tally
    mood: str
    count: int


@dataclass(frozen=True)
class ParsedAnalysis:
    """Structured fields scraped from a model reply."""

    mood_counts: tuple[MoodCount, ...] = ()
    wellness_score: int | None = None
    summary: str | None = None


@dataclass(frozen=True)
class JournalEntry:
    """A journal check-in used as analysis input."""

    content: str
    created_at: datetime
    is_favorite: bool = False

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "JournalEntry":
        return cls(
            content=data.get("content") or "",
            created_at=_parse_timestamp(data["created_at"]),
            is_favorite=bool(data.get("is_favorite", False)),
        )


@dataclass(frozen=True)
class AnalyzerStats:
    """Activity statistics for an analysis window."""

    logs_count: int = 0
    streak_count: int = 0
    favorite_log_time: str = "—"

    @classmethod
    def empty(cls) -> "AnalyzerStats":
        return cls()


@dataclass(frozen=True)
class Eligibility:
    """Whether enough days were logged to run an analysis."""

    is_eligible: bool
    entry_count: int
    minimum_required: int
