"""Robust aggregation of per-chunk analytics into entry-level analytics.

Each numeric dimension is combined with a 10% trimmed mean so that a single
extreme chunk cannot swing an entry. Events are merged across chunks by
normalized title, first occurrence wins.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime

from loguru import logger

from inkwell.core.exceptions import NoUsableInputError
from inkwell.core.utils.text import normalize_title

from .models import Chunk, ChunkAnalytics, DetectedEvent, EmotionScores, EventExtraction
from .store import ScoringOracle

SENTIMENT_VALUES = {"positive": 0.5, "negative": -0.5}


def trimmed_mean(values: list[float], trim: float = 0.1) -> float:
    """Mean after dropping ``floor(n * trim)`` values from each end.

    With two or fewer values there is nothing to trim, so the plain mean is
    returned. An empty list yields 0.0.
    """
    if not values:
        return 0.0
    if len(values) <= 2:
        return sum(values) / len(values)

    ordered = sorted(values)
    cut = int(len(ordered) * trim)
    kept = ordered[cut : len(ordered) - cut]
    return sum(kept) / len(kept)


def sentiment_value(sentiment: str | None) -> float:
    """Map an oracle sentiment label to -0.5, 0.0 or 0.5."""
    return SENTIMENT_VALUES.get((sentiment or "").strip().lower(), 0.0)


def merge_events(events: list[EventExtraction], date: datetime | None = None) -> list[DetectedEvent]:
    """Deduplicate events by normalized title, keeping the first occurrence."""
    seen: set[str] = set()
    merged: list[DetectedEvent] = []
    for event in events:
        key = normalize_title(event.title)
        if not key or key in seen:
            continue
        seen.add(key)
        merged.append(
            DetectedEvent(
                title=event.title,
                description=event.description or "",
                sentiment=sentiment_value(event.sentiment),
                date=date,
            )
        )
    return merged


@dataclass
class AggregatedAnalytics:
    """Entry-level numbers before a happiness score is attached."""

    valence: float
    arousal: float
    emotions: EmotionScores
    events: list[DetectedEvent] = field(default_factory=list)
    confidence: float = 0.0
    happiness: float = 0.0
    chunk_count: int = 0


def aggregate_chunk_analytics(
    analytics: list[ChunkAnalytics],
    date: datetime | None = None,
) -> AggregatedAnalytics:
    """Combine chunk analytics into one entry-level aggregate.

    Args:
        analytics: Oracle output for the chunks that scored successfully.
        date: Date stamped onto merged events.

    Raises:
        NoUsableInputError: If *analytics* is empty.
    """
    if not analytics:
        raise NoUsableInputError("No valid chunk analytics to aggregate")

    def dimension(name: str) -> float:
        return trimmed_mean([getattr(item, name) for item in analytics])

    all_events = [event for item in analytics for event in item.events]

    return AggregatedAnalytics(
        valence=dimension("valence"),
        arousal=dimension("arousal"),
        emotions=EmotionScores(
            joy=dimension("joy"),
            sadness=dimension("sadness"),
            anger=dimension("anger"),
            anxiety=dimension("anxiety"),
            gratitude=dimension("gratitude"),
        ),
        events=merge_events(all_events, date=date),
        confidence=sum(item.confidence for item in analytics) / len(analytics),
        happiness=dimension("happiness"),
        chunk_count=len(analytics),
    )


class EntryAnalyzer:
    """Scores an entry's chunks through a ``ScoringOracle`` and aggregates them.

    Chunks are scored one at a time, in chunk order. A chunk whose scoring
    fails is logged and left out of the aggregate.
    """

    def __init__(self, oracle: ScoringOracle):
        self.oracle = oracle

    async def score_chunks(self, chunks: list[Chunk]) -> list[ChunkAnalytics]:
        scored: list[ChunkAnalytics] = []
        for chunk in chunks:
            try:
                scored.append(await self.oracle.score(chunk.text))
            except Exception as e:
                logger.warning(f"Failed to score chunk {chunk.id} of entry {chunk.entry_id}: {e}")
        return scored

    async def analyze(self, entry_id: str, date: datetime, chunks: list[Chunk]) -> AggregatedAnalytics:
        """Score *chunks* and aggregate the ones that succeeded.

        Raises:
            NoUsableInputError: If there are no chunks or every chunk failed.
        """
        scored = await self.score_chunks(chunks)
        if not scored:
            raise NoUsableInputError(f"No chunk of entry {entry_id} could be scored ({len(chunks)} attempted)")

        if len(scored) < len(chunks):
            logger.info(f"Entry {entry_id}: aggregated {len(scored)}/{len(chunks)} chunks")
        return aggregate_chunk_analytics(scored, date=date)
