"""Typed retrieval queries and results.

``RetrieveQuery.from_dict`` is the parse boundary for untyped input (tool
arguments, CLI JSON). Scope is strict; every other field is parsed
permissively, with malformed optional values treated as absent. After
parsing, everything is typed.

``RetrieveMetadata`` is a pure function of a finished list of
``RankedItem``s. ``to_dict()`` produces the wire shape consumed by UI and
LLM-facing layers: camelCase keys, ISO-8601 UTC dates, scores rounded to
three decimals.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import StrEnum
from typing import Any

from inkwell.core.exceptions import InvalidScopeError

from .models import Chunk, EntryAnalytics, isoformat_utc, round3, to_utc

MAX_LIMIT = 200
DEFAULT_LIMIT = 10
PREVIEW_ITEMS = 2
PREVIEW_CHARS = 150


class Scope(StrEnum):
    ENTRIES = "entries"
    CHUNKS = "chunks"


class Sort(StrEnum):
    DATE_DESC = "date_desc"
    DATE_ASC = "date_asc"
    SIMILARITY_DESC = "similarity_desc"
    MAGNITUDE_DESC = "magnitude_desc"
    HYBRID = "hybrid"

    @property
    def is_recency_based(self) -> bool:
        return self in (Sort.DATE_DESC, Sort.DATE_ASC)


class View(StrEnum):
    RAW = "raw"
    TIMELINE = "timeline"
    STATS = "stats"
    HISTOGRAM = "histogram"


class Sentiment(StrEnum):
    POSITIVE = "positive"
    NEGATIVE = "negative"
    NEUTRAL = "neutral"


class Metric(StrEnum):
    HAPPINESS = "happiness"
    STRESS = "stress"
    ENERGY = "energy"


class TimeGranularity(StrEnum):
    DAY = "day"
    WEEK = "week"
    MONTH = "month"
    YEAR = "year"


# ---------------------------------------------------------------------------
# Permissive field parsers
# ---------------------------------------------------------------------------


def _enum_or_none(enum_cls, value):
    if not isinstance(value, str):
        return None
    try:
        return enum_cls(value)
    except ValueError:
        return None


def _str_or_none(value) -> str | None:
    return value if isinstance(value, str) else None


def _str_list_or_none(value) -> list[str] | None:
    if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
        return None
    return list(value)


def _float_or_none(value) -> float | None:
    if isinstance(value, bool) or not isinstance(value, int | float):
        return None
    return float(value)


def _int_or_none(value) -> int | None:
    if isinstance(value, bool) or not isinstance(value, int):
        return None
    return value


def _date_or_none(value) -> datetime | None:
    if not isinstance(value, str):
        return None
    try:
        return to_utc(datetime.fromisoformat(value))
    except ValueError:
        return None


# ---------------------------------------------------------------------------
# Query
# ---------------------------------------------------------------------------


@dataclass
class RetrieveFilter:
    """Optional restrictions and ranking hints for a retrieve query."""

    date_from: datetime | None = None
    date_to: datetime | None = None
    ids: list[str] | None = None
    entities: list[str] | None = None
    topics: list[str] | None = None
    sentiment: Sentiment | None = None
    metric: Metric | None = None
    similar_to: str | None = None
    keyword: str | None = None
    min_similarity: float | None = None
    time_granularity: TimeGranularity | None = None
    recency_half_life: int | None = None

    def __post_init__(self):
        if self.date_from is not None:
            self.date_from = to_utc(self.date_from)
        if self.date_to is not None:
            self.date_to = to_utc(self.date_to)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> RetrieveFilter:
        """Parse camelCase wire keys, dropping fields of the wrong type."""
        return cls(
            date_from=_date_or_none(data.get("dateFrom")),
            date_to=_date_or_none(data.get("dateTo")),
            ids=_str_list_or_none(data.get("ids")),
            entities=_str_list_or_none(data.get("entities")),
            topics=_str_list_or_none(data.get("topics")),
            sentiment=_enum_or_none(Sentiment, data.get("sentiment")),
            metric=_enum_or_none(Metric, data.get("metric")),
            similar_to=_str_or_none(data.get("similarTo")),
            keyword=_str_or_none(data.get("keyword")),
            min_similarity=_float_or_none(data.get("minSimilarity")),
            time_granularity=_enum_or_none(TimeGranularity, data.get("timeGranularity")),
            recency_half_life=_int_or_none(data.get("recencyHalfLife")),
        )


@dataclass
class RetrieveQuery:
    """A typed retrieve request. ``limit`` is always clamped to ``1..200``."""

    scope: Scope
    filter: RetrieveFilter | None = None
    sort: Sort = Sort.HYBRID
    limit: int = DEFAULT_LIMIT
    view: View = View.RAW

    def __post_init__(self):
        self.scope = Scope(self.scope)
        self.sort = Sort(self.sort)
        self.view = View(self.view)
        self.limit = max(1, min(int(self.limit), MAX_LIMIT))

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> RetrieveQuery:
        """Parse untyped arguments.

        Raises:
            InvalidScopeError: If ``scope`` is missing or not a known scope.
        """
        scope = _enum_or_none(Scope, data.get("scope"))
        if scope is None:
            raise InvalidScopeError(data.get("scope"))

        limit = _int_or_none(data.get("limit"))
        raw_filter = data.get("filter")

        return cls(
            scope=scope,
            filter=RetrieveFilter.from_dict(raw_filter) if isinstance(raw_filter, dict) else None,
            sort=_enum_or_none(Sort, data.get("sort")) or Sort.HYBRID,
            limit=DEFAULT_LIMIT if limit is None else limit,
            view=_enum_or_none(View, data.get("view")) or View.RAW,
        )


# ---------------------------------------------------------------------------
# Ranked items
# ---------------------------------------------------------------------------


@dataclass
class ScoreComponents:
    """The parts a ranked item's score was built from. Absent parts are None."""

    similarity: float | None = None
    recency_decay: float | None = None
    keyword_match: float | None = None
    magnitude: float | None = None

    def to_dict(self) -> dict[str, float]:
        out = {}
        if self.similarity is not None:
            out["similarity"] = round3(self.similarity)
        if self.recency_decay is not None:
            out["recencyDecay"] = round3(self.recency_decay)
        if self.keyword_match is not None:
            out["keywordMatch"] = round3(self.keyword_match)
        if self.magnitude is not None:
            out["magnitude"] = round3(self.magnitude)
        return out


@dataclass
class Provenance:
    """Where a ranked item came from: ``chunks`` or ``analytics`` plus ids."""

    source: str
    entry_id: str | None = None
    chunk_id: str | None = None
    analytics_id: str | None = None

    def to_dict(self) -> dict[str, str]:
        out = {"source": self.source}
        if self.entry_id is not None:
            out["entryId"] = self.entry_id
        if self.chunk_id is not None:
            out["chunkId"] = self.chunk_id
        if self.analytics_id is not None:
            out["analyticsId"] = self.analytics_id
        return out


@dataclass
class RankedItem:
    """One retrieval result. Produced per query, never persisted."""

    id: str
    date: datetime
    score: float
    components: ScoreComponents = field(default_factory=ScoreComponents)
    provenance: Provenance = field(default_factory=lambda: Provenance(source="chunks"))
    text: str | None = None

    def __post_init__(self):
        self.date = to_utc(self.date)

    @classmethod
    def from_chunk(cls, chunk: Chunk, score: float, components: ScoreComponents) -> RankedItem:
        return cls(
            id=chunk.id,
            date=chunk.date,
            text=chunk.text,
            score=score,
            components=components,
            provenance=Provenance(source="chunks", entry_id=chunk.entry_id, chunk_id=chunk.id),
        )

    @classmethod
    def from_analytics(cls, analytics: EntryAnalytics, score: float, components: ScoreComponents) -> RankedItem:
        return cls(
            id=analytics.id,
            date=analytics.date,
            text=None,
            score=score,
            components=components,
            provenance=Provenance(source="analytics", entry_id=analytics.entry_id, analytics_id=analytics.id),
        )

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {
            "id": self.id,
            "date": isoformat_utc(self.date),
            "score": round3(self.score),
        }
        if self.text is not None:
            out["text"] = self.text
        out["scoreComponents"] = self.components.to_dict()
        out["provenance"] = self.provenance.to_dict()
        return out


# ---------------------------------------------------------------------------
# Metadata
# ---------------------------------------------------------------------------


def _span_days(start: datetime, end: datetime) -> int:
    return int((end - start).total_seconds() // 86400)


def _median(values: list[float]) -> float:
    ordered = sorted(values)
    mid = len(ordered) // 2
    if len(ordered) % 2 == 0:
        return (ordered[mid - 1] + ordered[mid]) / 2
    return ordered[mid]


@dataclass
class DateRangeInfo:
    """Min and max item date with the whole-day span between them."""

    start: datetime
    end: datetime
    span_days: int = 0

    def __post_init__(self):
        self.start = to_utc(self.start)
        self.end = to_utc(self.end)
        self.span_days = _span_days(self.start, self.end)

    @classmethod
    def from_dates(cls, dates: list[datetime]) -> DateRangeInfo | None:
        if not dates:
            return None
        return cls(start=min(dates), end=max(dates))

    def to_dict(self) -> dict[str, Any]:
        return {"start": isoformat_utc(self.start), "end": isoformat_utc(self.end), "spanDays": self.span_days}


@dataclass
class SimilarityStats:
    """Median, index-based IQR, min and max of item similarities."""

    median: float
    iqr: tuple[float, float]
    min: float
    max: float

    @classmethod
    def from_values(cls, similarities: list[float]) -> SimilarityStats | None:
        if not similarities:
            return None
        ordered = sorted(similarities)
        if len(ordered) > 3:
            iqr = (ordered[len(ordered) // 4], ordered[(len(ordered) * 3) // 4])
        else:
            iqr = (0.0, 0.0)
        return cls(median=_median(ordered), iqr=iqr, min=ordered[0], max=ordered[-1])

    def to_dict(self) -> dict[str, Any]:
        return {
            "median": round3(self.median),
            "iqr": [round3(self.iqr[0]), round3(self.iqr[1])],
            "min": round3(self.min),
            "max": round3(self.max),
        }


class Confidence(StrEnum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"

    @classmethod
    def compute(cls, count: int, median_similarity: float | None, span_days: int | None) -> Confidence:
        """Tier a result set. High is checked first, then medium, else low."""
        if (
            count >= 50
            and median_similarity is not None
            and median_similarity >= 0.6
            and span_days is not None
            and span_days > 0
        ):
            return cls.HIGH
        if count >= 10 and (median_similarity or 0.0) >= 0.4:
            return cls.MEDIUM
        return cls.LOW


@dataclass
class DataGap:
    """A caller-detected period with no entries."""

    start: datetime
    end: datetime
    reason: str = "No entries in this period"
    span_days: int = 0

    def __post_init__(self):
        self.start = to_utc(self.start)
        self.end = to_utc(self.end)
        self.span_days = _span_days(self.start, self.end)

    def to_dict(self) -> dict[str, Any]:
        return {
            "start": isoformat_utc(self.start),
            "end": isoformat_utc(self.end),
            "reason": self.reason,
            "spanDays": self.span_days,
        }


def find_gaps(dates: list[datetime], min_gap_days: int = 14) -> list[DataGap]:
    """Stretches of at least *min_gap_days* between consecutive dates.

    Metadata never computes gaps itself; callers that want them pass the
    result of this helper to ``RetrieveResult.build``.
    """
    ordered = sorted(to_utc(d) for d in dates)
    threshold = timedelta(days=min_gap_days)
    return [DataGap(start=a, end=b) for a, b in zip(ordered, ordered[1:], strict=False) if b - a >= threshold]


@dataclass
class RetrieveMetadata:
    """Deterministic summary of a finished result list."""

    count: int
    confidence: Confidence
    date_range: DateRangeInfo | None = None
    similarity_stats: SimilarityStats | None = None
    gaps: list[DataGap] = field(default_factory=list)

    @classmethod
    def build(cls, items: list[RankedItem], gaps: list[DataGap] | tuple = ()) -> RetrieveMetadata:
        date_range = DateRangeInfo.from_dates([item.date for item in items])
        stats = SimilarityStats.from_values(
            [item.components.similarity for item in items if item.components.similarity is not None]
        )
        confidence = Confidence.compute(
            count=len(items),
            median_similarity=stats.median if stats else None,
            span_days=date_range.span_days if date_range else None,
        )
        return cls(
            count=len(items),
            confidence=confidence,
            date_range=date_range,
            similarity_stats=stats,
            gaps=list(gaps),
        )

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {"count": self.count, "confidence": self.confidence.value}
        if self.date_range is not None:
            out["dateRange"] = self.date_range.to_dict()
        if self.similarity_stats is not None:
            out["similarityStats"] = self.similarity_stats.to_dict()
        if self.gaps:
            out["gaps"] = [gap.to_dict() for gap in self.gaps]
        return out


# ---------------------------------------------------------------------------
# Result
# ---------------------------------------------------------------------------


@dataclass
class RetrieveResult:
    """Ranked items plus the metadata derived from them."""

    items: list[RankedItem]
    metadata: RetrieveMetadata

    @classmethod
    def build(cls, items: list[RankedItem], gaps: list[DataGap] | tuple = ()) -> RetrieveResult:
        return cls(items=list(items), metadata=RetrieveMetadata.build(items, gaps))

    @classmethod
    def empty(cls) -> RetrieveResult:
        return cls(items=[], metadata=RetrieveMetadata(count=0, confidence=Confidence.LOW))

    def to_dict(self) -> dict[str, Any]:
        return {"items": [item.to_dict() for item in self.items], "metadata": self.metadata.to_dict()}

    def to_summary_dict(self, result_id: str) -> dict[str, Any]:
        """Lightweight preview: counts, metadata and the first two items truncated."""
        summary: dict[str, Any] = {
            "resultId": result_id,
            "count": self.metadata.count,
            "metadata": self.metadata.to_dict(),
        }

        date_range = self.metadata.date_range
        if date_range is not None:
            start = date_range.start.strftime("%b %d, %Y")
            end = date_range.end.strftime("%b %d, %Y")
            summary["summary"] = f"Retrieved {self.metadata.count} items from {start} to {end}"
        else:
            summary["summary"] = f"Retrieved {self.metadata.count} items"

        preview = []
        for item in self.items[:PREVIEW_ITEMS]:
            entry: dict[str, Any] = {"id": item.id, "date": isoformat_utc(item.date), "score": round3(item.score)}
            if item.text is not None:
                suffix = "..." if len(item.text) > PREVIEW_CHARS else ""
                entry["textPreview"] = item.text[:PREVIEW_CHARS] + suffix
            preview.append(entry)
        summary["preview"] = preview
        summary["note"] = f"Full data available via resultId '{result_id}'."
        return summary
