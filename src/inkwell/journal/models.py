"""Core data models for journal analytics.

Pure data, no I/O. Dates are timezone-aware UTC datetimes; naive values
handed in are interpreted as UTC. ``to_dict()`` produces the wire shape
(ISO-8601 UTC strings, scores rounded to 3 decimals) that UI and
LLM-facing layers consume.
"""

from __future__ import annotations

import math
import uuid
from dataclasses import dataclass, field, replace
from datetime import UTC, datetime
from typing import Any


def to_utc(value: datetime) -> datetime:
    """Return *value* as an aware UTC datetime."""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def isoformat_utc(value: datetime) -> str:
    """Serialize a datetime as ISO-8601 UTC with a ``Z`` suffix."""
    return to_utc(value).strftime("%Y-%m-%dT%H:%M:%SZ")


def round3(value: float) -> float:
    """Presentation rounding applied to every externally surfaced score.

    Halves round away from zero (``0.0025 -> 0.003``), unlike ``round()``.
    """
    rounded = math.copysign(math.floor(abs(value) * 1000 + 0.5), value) / 1000
    return rounded or 0.0  # no -0.0 on the wire


def _clamp(value: float, lo: float, hi: float) -> float:
    return max(lo, min(hi, value))


@dataclass(frozen=True)
class DateRange:
    """Inclusive date window used to filter chunks and analytics."""

    start: datetime
    end: datetime

    def __post_init__(self):
        object.__setattr__(self, "start", to_utc(self.start))
        object.__setattr__(self, "end", to_utc(self.end))
        if self.end < self.start:
            raise ValueError(f"DateRange end {self.end} precedes start {self.start}")

    def contains(self, moment: datetime) -> bool:
        return self.start <= to_utc(moment) <= self.end


@dataclass
class JournalEntry:
    """A raw journal entry as delivered by an entry source."""

    id: str
    text: str
    date: datetime

    def __post_init__(self):
        self.date = to_utc(self.date)

    def __repr__(self) -> str:
        preview = self.text[:40] + "..." if len(self.text) > 40 else self.text
        return f"JournalEntry(id='{self.id}', date='{isoformat_utc(self.date)}', text='{preview}')"


@dataclass
class Chunk:
    """A token-bounded contiguous span of one entry's text.

    ``[start_char, end_char)`` indexes the entry's source text.
    """

    entry_id: str
    text: str
    start_char: int
    end_char: int
    date: datetime
    token_count: int
    embedding: list[float] | None = None
    id: str = field(default_factory=lambda: str(uuid.uuid4()))

    def __post_init__(self):
        self.date = to_utc(self.date)

    def with_embedding(self, embedding: list[float]) -> Chunk:
        """Return a copy of this chunk with *embedding* attached."""
        return replace(self, embedding=list(embedding))

    def __repr__(self) -> str:
        return (
            f"Chunk(id='{self.id}', entry_id='{self.entry_id}', "
            f"span=[{self.start_char}, {self.end_char}), tokens={self.token_count})"
        )


@dataclass
class EmotionScores:
    """Per-emotion intensities, each 0..1."""

    joy: float = 0.0
    sadness: float = 0.0
    anger: float = 0.0
    anxiety: float = 0.0
    gratitude: float = 0.0

    def to_dict(self) -> dict[str, float]:
        return {
            "joy": round3(self.joy),
            "sadness": round3(self.sadness),
            "anger": round3(self.anger),
            "anxiety": round3(self.anxiety),
            "gratitude": round3(self.gratitude),
        }


@dataclass
class EventExtraction:
    """An event as reported by the scoring oracle for one chunk."""

    title: str
    description: str | None = None
    sentiment: str = "neutral"  # "positive", "negative" or "neutral"


@dataclass
class ChunkAnalytics:
    """Scoring-oracle output for a single chunk. Transient, never persisted."""

    happiness: float
    valence: float
    arousal: float
    joy: float
    sadness: float
    anger: float
    anxiety: float
    gratitude: float
    events: list[EventExtraction] = field(default_factory=list)
    confidence: float = 0.5

    @property
    def emotion_scores(self) -> EmotionScores:
        return EmotionScores(
            joy=self.joy,
            sadness=self.sadness,
            anger=self.anger,
            anxiety=self.anxiety,
            gratitude=self.gratitude,
        )

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ChunkAnalytics:
        """Build from an oracle JSON payload, clamping values into range.

        Raises:
            ValueError: If a required numeric field is missing or non-numeric.
        """
        if not isinstance(data, dict):
            raise ValueError(f"Chunk analytics payload must be an object, got {type(data).__name__}")

        def number(key: str, lo: float, hi: float) -> float:
            value = data.get(key)
            if isinstance(value, bool) or not isinstance(value, int | float):
                raise ValueError(f"Chunk analytics field {key!r} must be a number, got {value!r}")
            return _clamp(float(value), lo, hi)

        events = []
        for raw in data.get("events") or []:
            if not isinstance(raw, dict) or not raw.get("title"):
                continue
            events.append(
                EventExtraction(
                    title=str(raw["title"]),
                    description=raw.get("description") or None,
                    sentiment=str(raw.get("sentiment") or "neutral"),
                )
            )

        return cls(
            happiness=number("happiness", 0.0, 100.0),
            valence=number("valence", -1.0, 1.0),
            arousal=number("arousal", 0.0, 1.0),
            joy=number("joy", 0.0, 1.0),
            sadness=number("sadness", 0.0, 1.0),
            anger=number("anger", 0.0, 1.0),
            anxiety=number("anxiety", 0.0, 1.0),
            gratitude=number("gratitude", 0.0, 1.0),
            events=events,
            confidence=number("confidence", 0.0, 1.0),
        )


@dataclass
class DetectedEvent:
    """An event attached to entry analytics.

    ``sentiment`` is a ternary bucket: -0.5, 0.0 or 0.5.
    """

    title: str
    description: str = ""
    sentiment: float = 0.0
    date: datetime | None = None
    id: str = field(default_factory=lambda: str(uuid.uuid4()))

    def to_dict(self) -> dict[str, Any]:
        return {
            "title": self.title,
            "description": self.description,
            "sentiment": self.sentiment,
            "date": isoformat_utc(self.date) if self.date else None,
        }


@dataclass
class EntryAnalytics:
    """Entry-level analytics, aggregated from all of an entry's chunks.

    Source of truth for every summary; overwritten on reprocessing.
    """

    entry_id: str
    date: datetime
    happiness_score: float
    valence: float
    arousal: float
    emotions: EmotionScores
    events: list[DetectedEvent] = field(default_factory=list)
    confidence: float = 0.0
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    analyzed_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    def __post_init__(self):
        self.date = to_utc(self.date)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "entryId": self.entry_id,
            "date": isoformat_utc(self.date),
            "happinessScore": round3(self.happiness_score),
            "valence": round3(self.valence),
            "arousal": round3(self.arousal),
            "emotions": self.emotions.to_dict(),
            "events": [event.to_dict() for event in self.events],
            "confidence": round3(self.confidence),
            "analyzedAt": isoformat_utc(self.analyzed_at),
        }


@dataclass(frozen=True)
class SourceSpan:
    """Reference to a portion of an entry, linking summaries back to text."""

    entry_id: str
    start_char: int
    end_char: int

    def to_dict(self) -> dict[str, Any]:
        return {"entryId": self.entry_id, "startChar": self.start_char, "endChar": self.end_char}


@dataclass
class MonthSummary:
    """Derived analytics for one calendar month. Recomputable at any time."""

    year: int
    month: int
    narrative_text: str
    happiness_avg: float
    happiness_confidence_interval: tuple[float, float]
    drivers_positive: list[str] = field(default_factory=list)
    drivers_negative: list[str] = field(default_factory=list)
    top_events: list[DetectedEvent] = field(default_factory=list)
    source_spans: list[SourceSpan] = field(default_factory=list)
    entry_count: int = 0
    generated_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    @property
    def period(self) -> str:
        return f"{self.year:04d}-{self.month:02d}"

    def to_dict(self) -> dict[str, Any]:
        lo, hi = self.happiness_confidence_interval
        return {
            "period": self.period,
            "narrativeText": self.narrative_text,
            "happinessAvg": round3(self.happiness_avg),
            "happinessConfidenceInterval": [round3(lo), round3(hi)],
            "driversPositive": list(self.drivers_positive),
            "driversNegative": list(self.drivers_negative),
            "topEvents": [event.to_dict() for event in self.top_events],
            "sourceSpans": [span.to_dict() for span in self.source_spans],
            "entryCount": self.entry_count,
            "generatedAt": isoformat_utc(self.generated_at),
        }


@dataclass
class YearSummary:
    """Derived analytics for one calendar year, built from its months."""

    year: int
    narrative_text: str
    happiness_avg: float
    happiness_confidence_interval: tuple[float, float]
    drivers_positive: list[str] = field(default_factory=list)
    drivers_negative: list[str] = field(default_factory=list)
    top_events: list[DetectedEvent] = field(default_factory=list)
    source_spans: list[SourceSpan] = field(default_factory=list)
    month_count: int = 0
    generated_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    @property
    def period(self) -> str:
        return f"{self.year:04d}"

    def to_dict(self) -> dict[str, Any]:
        lo, hi = self.happiness_confidence_interval
        return {
            "period": self.period,
            "narrativeText": self.narrative_text,
            "happinessAvg": round3(self.happiness_avg),
            "happinessConfidenceInterval": [round3(lo), round3(hi)],
            "driversPositive": list(self.drivers_positive),
            "driversNegative": list(self.drivers_negative),
            "topEvents": [event.to_dict() for event in self.top_events],
            "sourceSpans": [span.to_dict() for span in self.source_spans],
            "monthCount": self.month_count,
            "generatedAt": isoformat_utc(self.generated_at),
        }


@dataclass
class TimeSeriesPoint:
    """A single day's value for one metric."""

    date: datetime
    metric: str  # "happiness", "stress" or "energy"
    value: float
    confidence: float

    def to_dict(self) -> dict[str, Any]:
        return {
            "date": isoformat_utc(self.date),
            "metric": self.metric,
            "value": round3(self.value),
            "confidence": round3(self.confidence),
        }
