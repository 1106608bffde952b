"""Hybrid ranking and the retrieval service.

``HybridRanker`` scores candidates from up to four signals:

- semantic similarity to ``filter.similar_to`` (cosine over embeddings)
- recency decay, ``exp(-ln2 * age_days / half_life)``
- keyword relevance to ``filter.keyword`` (TF-IDF over the candidates)
- metric magnitude (happiness, stress or energy / 100) for entry analytics

and weighs them with a ``RankingWeights`` preset chosen from the query.
``RetrievalService`` wires the store, embedder and ranker together behind
``retrieve(query)``.
"""

from __future__ import annotations

import math
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any

from loguru import logger

from inkwell.core.exceptions import ExternalCallError, InputError
from inkwell.core.utils.text import contains_ci

from .config import SearchConfig
from .happiness import metric_value
from .models import Chunk, DateRange, EntryAnalytics
from .retrieval import Metric, RankedItem, RetrieveQuery, RetrieveResult, ScoreComponents, Scope, Sentiment, Sort
from .search import TextSearcher, cosine_similarity
from .store import AnalyticsStore, EmbeddingProvider

EPOCH = datetime(1970, 1, 1, tzinfo=UTC)

# Valence beyond this counts as a positive/negative entry for the sentiment filter
SENTIMENT_VALENCE_THRESHOLD = 0.1


@dataclass(frozen=True)
class RankingWeights:
    """Per-signal weights plus the recency half-life in days."""

    similarity: float
    recency: float
    keyword: float
    metric_magnitude: float
    recency_half_life: int

    @classmethod
    def for_query(cls, query: RetrieveQuery) -> RankingWeights:
        """Pick a preset from the query's shape.

        An explicit half-life above 1000 days means lifelong, below 25 days
        means latest. Date sorts mean latest. A similarity target without a
        keyword means semantic. Anything else gets the balanced default.
        """
        flt = query.filter
        if flt is not None and flt.recency_half_life is not None:
            if flt.recency_half_life > 1000:
                return LIFELONG
            if flt.recency_half_life < 25:
                return LATEST

        if query.sort.is_recency_based:
            return LATEST

        if flt is not None and flt.similar_to is not None and flt.keyword is None:
            return SEMANTIC

        return DEFAULT


DEFAULT = RankingWeights(similarity=0.4, recency=0.3, keyword=0.2, metric_magnitude=0.1, recency_half_life=30)
LATEST = RankingWeights(similarity=0.0, recency=0.8, keyword=0.2, metric_magnitude=0.0, recency_half_life=21)
CURRENT_STATE = RankingWeights(similarity=0.2, recency=0.5, keyword=0.1, metric_magnitude=0.2, recency_half_life=30)
LIFELONG = RankingWeights(similarity=0.5, recency=0.0, keyword=0.3, metric_magnitude=0.2, recency_half_life=9999)
SEMANTIC = RankingWeights(similarity=0.6, recency=0.2, keyword=0.1, metric_magnitude=0.1, recency_half_life=60)

PRESETS = {
    "default": DEFAULT,
    "latest": LATEST,
    "current_state": CURRENT_STATE,
    "lifelong": LIFELONG,
    "semantic": SEMANTIC,
}


def recency_decay(date: datetime, now: datetime, half_life_days: float) -> float:
    """Exponential decay: 1.0 now, 0.5 after one half-life."""
    age_days = (now - date).total_seconds() / 86400
    return math.exp(-math.log(2) * age_days / half_life_days)


def _sort_items(items: list[RankedItem], sort: Sort) -> list[RankedItem]:
    """Order ranked items by the requested sort. Missing components sort last."""
    if sort == Sort.DATE_DESC:
        return sorted(items, key=lambda i: i.date, reverse=True)
    if sort == Sort.DATE_ASC:
        return sorted(items, key=lambda i: i.date)
    if sort == Sort.SIMILARITY_DESC:
        return sorted(
            items,
            key=lambda i: (i.components.similarity is not None, i.components.similarity or 0.0, i.score),
            reverse=True,
        )
    if sort == Sort.MAGNITUDE_DESC:
        return sorted(
            items,
            key=lambda i: (i.components.magnitude is not None, i.components.magnitude or 0.0, i.score),
            reverse=True,
        )
    return sorted(items, key=lambda i: i.score, reverse=True)


def filter_by_similarity(items: list[RankedItem], min_similarity: float | None) -> list[RankedItem]:
    """Drop items below *min_similarity*. Items with no similarity are kept."""
    if min_similarity is None:
        return items
    return [i for i in items if i.components.similarity is None or i.components.similarity >= min_similarity]


class HybridRanker:
    """Blend similarity, recency, keyword and magnitude signals into one score."""

    def __init__(
        self,
        embedder: EmbeddingProvider | None = None,
        keyword_searcher: TextSearcher | None = None,
        weights: RankingWeights = DEFAULT,
        clock: Callable[[], datetime] | None = None,
    ):
        self.embedder = embedder
        self.keyword_searcher = keyword_searcher or TextSearcher()
        self.weights = weights
        self.clock = clock or (lambda: datetime.now(UTC))

    def _half_life(self, query: RetrieveQuery) -> float:
        flt = query.filter
        if flt is not None and flt.recency_half_life is not None and flt.recency_half_life > 0:
            return float(flt.recency_half_life)
        return float(self.weights.recency_half_life)

    async def _query_embedding(self, query: RetrieveQuery) -> list[float] | None:
        similar_to = query.filter.similar_to if query.filter else None
        if not similar_to:
            return None
        if self.embedder is None:
            logger.warning("similarTo requested but no embedding provider is configured; ignoring it")
            return None
        try:
            vectors = await self.embedder.embed([similar_to])
        except Exception as e:
            raise ExternalCallError(f"Failed to embed similarity query: {e}") from e
        if len(vectors) != 1:
            raise ExternalCallError(f"Embedding provider returned {len(vectors)} vectors for 1 query")
        return vectors[0]

    async def rank_chunks(self, chunks: list[Chunk], query: RetrieveQuery) -> list[RankedItem]:
        """Score and order *chunks*; the caller applies thresholds and limits."""
        if not chunks:
            return []

        query_embedding = await self._query_embedding(query)

        keyword = query.filter.keyword if query.filter else None
        keyword_scores: dict[str, float] = {}
        if keyword:
            self.keyword_searcher.build_index(chunks)
            keyword_scores = self.keyword_searcher.scores(keyword)

        now = self.clock()
        half_life = self._half_life(query)
        items = []
        for chunk in chunks:
            total = 0.0
            components = ScoreComponents()

            if query_embedding is not None and chunk.embedding is not None:
                similarity = cosine_similarity(query_embedding, chunk.embedding)
                if similarity is not None:
                    components.similarity = similarity
                    total += self.weights.similarity * similarity

            components.recency_decay = recency_decay(chunk.date, now, half_life)
            total += self.weights.recency * components.recency_decay

            if keyword:
                components.keyword_match = keyword_scores.get(chunk.id, 0.0)
                total += self.weights.keyword * components.keyword_match

            items.append(RankedItem.from_chunk(chunk, score=total, components=components))

        return _sort_items(items, query.sort)

    def rank_analytics(self, analytics: list[EntryAnalytics], query: RetrieveQuery) -> list[RankedItem]:
        """Score entry analytics by metric magnitude and recency."""
        metric = (query.filter.metric if query.filter else None) or Metric.HAPPINESS
        now = self.clock()
        half_life = self._half_life(query)

        items = []
        for record in analytics:
            magnitude = metric_value(record, metric.value) / 100.0
            decay = recency_decay(record.date, now, half_life)
            components = ScoreComponents(recency_decay=decay, magnitude=magnitude)
            total = self.weights.metric_magnitude * magnitude + self.weights.recency * decay
            items.append(RankedItem.from_analytics(record, score=total, components=components))

        return _sort_items(items, query.sort)


def _matches_sentiment(record: EntryAnalytics, sentiment: Sentiment) -> bool:
    if sentiment == Sentiment.POSITIVE:
        return record.valence > SENTIMENT_VALENCE_THRESHOLD
    if sentiment == Sentiment.NEGATIVE:
        return record.valence < -SENTIMENT_VALENCE_THRESHOLD
    return abs(record.valence) <= SENTIMENT_VALENCE_THRESHOLD


class RetrievalService:
    """Answer ``RetrieveQuery``s against an ``AnalyticsStore``.

    Example::

        service = RetrievalService(store, embedder=embedder)
        result = await service.retrieve({"scope": "chunks", "filter": {"keyword": "hiking"}})
        payload = result.to_dict()
    """

    def __init__(
        self,
        store: AnalyticsStore,
        embedder: EmbeddingProvider | None = None,
        keyword_searcher: TextSearcher | None = None,
        config: SearchConfig | None = None,
        clock: Callable[[], datetime] | None = None,
    ):
        self.store = store
        self.embedder = embedder
        self.config = config or SearchConfig()
        self.keyword_searcher = keyword_searcher or TextSearcher(self.config)
        self.clock = clock or (lambda: datetime.now(UTC))

    def _ranker(self, query: RetrieveQuery) -> HybridRanker:
        return HybridRanker(
            embedder=self.embedder,
            keyword_searcher=self.keyword_searcher,
            weights=RankingWeights.for_query(query),
            clock=self.clock,
        )

    def _date_range(self, query: RetrieveQuery) -> DateRange | None:
        flt = query.filter
        if flt is None or (flt.date_from is None and flt.date_to is None):
            return None
        start = flt.date_from or EPOCH
        end = flt.date_to or self.clock()
        if end < start:
            raise InputError(f"dateFrom {start.isoformat()} is after dateTo {end.isoformat()}")
        return DateRange(start=start, end=end)

    async def retrieve(self, query: RetrieveQuery | dict[str, Any]) -> RetrieveResult:
        """Run *query*, parsing it first when given as a dict.

        Raises:
            InputError: If the query is malformed (parsing errors propagate).
            ExternalCallError: If embedding the similarity target fails.
        """
        if isinstance(query, dict):
            query = RetrieveQuery.from_dict(query)

        logger.debug(f"Retrieve: scope={query.scope}, sort={query.sort}, limit={query.limit}")

        if query.scope == Scope.CHUNKS:
            result = await self._retrieve_chunks(query)
        else:
            result = await self._retrieve_entries(query)

        logger.debug(f"Retrieve found {result.metadata.count} results (confidence: {result.metadata.confidence})")
        return result

    def _chunk_candidates(self, query: RetrieveQuery) -> list[Chunk]:
        candidates = self.store.get_chunks(self._date_range(query))
        flt = query.filter
        if flt is None:
            return candidates

        if flt.ids:
            wanted = set(flt.ids)
            candidates = [c for c in candidates if c.id in wanted or c.entry_id in wanted]
        if flt.entities:
            candidates = [c for c in candidates if any(contains_ci(c.text, e) for e in flt.entities)]
        if flt.topics:
            candidates = [c for c in candidates if any(contains_ci(c.text, t) for t in flt.topics)]
        return candidates

    async def _ranked_chunks(self, query: RetrieveQuery) -> list[RankedItem]:
        candidates = self._chunk_candidates(query)
        if not candidates:
            return []
        ranked = await self._ranker(query).rank_chunks(candidates, query)
        return filter_by_similarity(ranked, query.filter.min_similarity if query.filter else None)

    async def _retrieve_chunks(self, query: RetrieveQuery) -> RetrieveResult:
        ranked = await self._ranked_chunks(query)
        if not ranked:
            return RetrieveResult.empty()
        return RetrieveResult.build(ranked[: query.limit])

    def _wants_analytics(self, query: RetrieveQuery) -> bool:
        flt = query.filter
        if query.sort == Sort.MAGNITUDE_DESC:
            return True
        return flt is not None and (flt.metric is not None or flt.sentiment is not None)

    async def _retrieve_entries(self, query: RetrieveQuery) -> RetrieveResult:
        if self._wants_analytics(query):
            return self._retrieve_analytics(query)

        # One item per entry: the best-ranked chunk of each
        seen: set[str] = set()
        unique = []
        for item in await self._ranked_chunks(query):
            entry_id = item.provenance.entry_id
            if entry_id is None or entry_id in seen:
                continue
            seen.add(entry_id)
            unique.append(item)

        if not unique:
            return RetrieveResult.empty()
        return RetrieveResult.build(unique[: query.limit])

    def _retrieve_analytics(self, query: RetrieveQuery) -> RetrieveResult:
        records = self.store.get_analytics(self._date_range(query))
        flt = query.filter
        if flt is not None:
            if flt.ids:
                wanted = set(flt.ids)
                records = [r for r in records if r.entry_id in wanted or r.id in wanted]
            if flt.sentiment is not None:
                records = [r for r in records if _matches_sentiment(r, flt.sentiment)]

        if not records:
            return RetrieveResult.empty()

        ranked = self._ranker(query).rank_analytics(records, query)
        return RetrieveResult.build(ranked[: query.limit])
