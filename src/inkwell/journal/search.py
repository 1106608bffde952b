"""Semantic, hybrid and TF-IDF search over stored chunks.

``VectorSearchEngine`` ranks chunk embeddings by cosine similarity against a
query embedding and can re-rank an over-fetched candidate set with a simple
keyword term-frequency score (hybrid search).

``TextSearcher`` is the TF-IDF keyword half used by the retrieval service.
Requires scikit-learn.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

import numpy as np
from loguru import logger

from inkwell.core.utils.text import count_occurrences

from .config import SearchConfig
from .models import Chunk, DateRange

if TYPE_CHECKING:
    from .store import AnalyticsStore


def _require_sklearn():
    """Lazy import with clear error message."""
    try:
        from sklearn.feature_extraction.text import TfidfVectorizer
        from sklearn.metrics.pairwise import cosine_similarity

        return TfidfVectorizer, cosine_similarity
    except ImportError:
        raise ImportError("scikit-learn is required for keyword search. Install with: pip install inkwell") from None


def cosine_similarity(a: list[float], b: list[float]) -> float | None:
    """Cosine of the angle between *a* and *b*.

    Returns None when the vectors differ in dimension or either has zero
    norm; such candidates are excluded from ranking rather than scored 0.
    """
    if len(a) != len(b):
        logger.debug(f"Vector dimension mismatch: {len(a)} vs {len(b)}")
        return None

    va = np.asarray(a, dtype=np.float64)
    vb = np.asarray(b, dtype=np.float64)
    norm_a = float(np.linalg.norm(va))
    norm_b = float(np.linalg.norm(vb))
    if norm_a == 0.0 or norm_b == 0.0:
        logger.debug("Zero-norm vector in cosine similarity")
        return None

    similarity = float(np.dot(va, vb)) / (norm_a * norm_b)
    # float rounding can push parallel vectors a hair past 1
    return max(-1.0, min(1.0, similarity))


def keyword_score(text: str, keywords: list[str]) -> float:
    """Term-frequency keyword score in [0, 1].

    Counts every case-insensitive, non-overlapping occurrence of each keyword
    and normalizes by the number of keywords. A single keyword repeated often
    enough saturates the score on its own.
    """
    if not keywords:
        return 0.0
    matches = sum(count_occurrences(text, keyword) for keyword in keywords)
    return min(matches / len(keywords), 1.0)


@dataclass
class SearchHit:
    """A ranked chunk. ``rank`` is 1-based and dense.

    For hybrid hits ``similarity`` holds the blended score while
    ``semantic_similarity`` and ``keyword_score`` keep its components.
    """

    chunk: Chunk
    similarity: float
    rank: int
    semantic_similarity: float | None = None
    keyword_score: float | None = None

    def __repr__(self) -> str:
        return f"SearchHit(rank={self.rank}, similarity={self.similarity:.3f}, chunk='{self.chunk.id}')"


def _ranked(scored: list[tuple[float, SearchHit]], top_k: int) -> list[SearchHit]:
    scored.sort(key=lambda item: item[0], reverse=True)
    hits = []
    for index, (_, hit) in enumerate(scored[: max(top_k, 0)]):
        hit.rank = index + 1
        hits.append(hit)
    return hits


class VectorSearchEngine:
    """Cosine-similarity search over the embeddings held by an ``AnalyticsStore``.

    Example::

        engine = VectorSearchEngine(store)
        hits = engine.search_similar(query_vector, top_k=5)
    """

    def __init__(self, store: AnalyticsStore, config: SearchConfig | None = None):
        self.store = store
        self.config = config or SearchConfig()

    def search_similar(
        self,
        query_embedding: list[float],
        top_k: int = 10,
        date_range: DateRange | None = None,
        min_similarity: float | None = None,
    ) -> list[SearchHit]:
        """Chunks most similar to *query_embedding*, best first.

        Args:
            query_embedding: Query vector.
            top_k: Maximum hits to return. Fewer are returned if fewer qualify.
            date_range: Restrict candidates to chunks dated inside this range.
            min_similarity: Threshold; defaults to ``config.min_similarity``.
        """
        if min_similarity is None:
            min_similarity = self.config.min_similarity

        scored: list[tuple[float, SearchHit]] = []
        skipped = 0
        for chunk in self.store.get_chunks(date_range):
            if chunk.embedding is None:
                continue
            similarity = cosine_similarity(query_embedding, chunk.embedding)
            if similarity is None:
                skipped += 1
                continue
            if similarity >= min_similarity:
                scored.append((similarity, SearchHit(chunk=chunk, similarity=similarity, rank=0)))

        if skipped:
            logger.debug(f"Excluded {skipped} chunk(s) with incompatible embeddings")
        return _ranked(scored, top_k)

    def hybrid_search(
        self,
        query_embedding: list[float],
        keywords: list[str],
        top_k: int = 10,
        date_range: DateRange | None = None,
        semantic_weight: float | None = None,
    ) -> list[SearchHit]:
        """Semantic search re-ranked with keyword term frequency.

        Over-fetches ``2 * top_k`` candidates at the looser
        ``config.hybrid_min_similarity`` threshold, blends
        ``w * similarity + (1 - w) * keyword_score`` and re-ranks.
        """
        if semantic_weight is None:
            semantic_weight = self.config.semantic_weight

        candidates = self.search_similar(
            query_embedding,
            top_k=top_k * 2,
            date_range=date_range,
            min_similarity=self.config.hybrid_min_similarity,
        )

        keyword_weight = 1.0 - semantic_weight
        scored: list[tuple[float, SearchHit]] = []
        for candidate in candidates:
            kw = keyword_score(candidate.chunk.text, keywords)
            final = semantic_weight * candidate.similarity + keyword_weight * kw
            hit = SearchHit(
                chunk=candidate.chunk,
                similarity=final,
                rank=0,
                semantic_similarity=candidate.similarity,
                keyword_score=kw,
            )
            scored.append((final, hit))

        return _ranked(scored, top_k)


class TextSearcher:
    """TF-IDF keyword search over a chunk corpus.

    Build the index once with ``build_index()``, then ``search()`` or
    ``scores()``. Rebuilding replaces the corpus.

    Example::

        searcher = TextSearcher()
        searcher.build_index(store.get_chunks())
        hits = searcher.search("hiking trip", top_k=10)
    """

    def __init__(self, config: SearchConfig | None = None):
        self.config = config or SearchConfig()
        self._vectorizer = None
        self._tfidf_matrix = None
        self._chunks: list[Chunk] = []

    @property
    def is_built(self) -> bool:
        """Whether the index has been built."""
        return self._tfidf_matrix is not None

    @property
    def document_count(self) -> int:
        """Number of chunks in the index."""
        return len(self._chunks)

    def build_index(self, chunks: list[Chunk]) -> None:
        """Build the TF-IDF index from *chunks*.

        A corpus with no usable vocabulary (empty, or stop words only)
        leaves the searcher unbuilt.
        """
        self._vectorizer = None
        self._tfidf_matrix = None
        self._chunks = []
        if not chunks:
            return

        TfidfVectorizer, _ = _require_sklearn()

        vectorizer = TfidfVectorizer(
            max_features=self.config.tfidf_max_features,
            stop_words="english",
            ngram_range=self.config.tfidf_ngram_range,
            min_df=self.config.tfidf_min_df,
            max_df=self.config.tfidf_max_df,
        )
        try:
            matrix = vectorizer.fit_transform([chunk.text for chunk in chunks])
        except ValueError as e:
            logger.debug(f"TF-IDF index not built: {e}")
            return

        self._vectorizer = vectorizer
        self._tfidf_matrix = matrix
        self._chunks = list(chunks)

    def scores(self, query: str) -> dict[str, float]:
        """TF-IDF relevance of every indexed chunk to *query*, keyed by chunk id.

        Chunks with no overlap score 0.0.
        """
        if not self.is_built or not query:
            return {}

        _, sk_cosine = _require_sklearn()
        query_vec = self._vectorizer.transform([query])
        values = sk_cosine(query_vec, self._tfidf_matrix).flatten()
        return {chunk.id: float(values[i]) for i, chunk in enumerate(self._chunks)}

    def search(self, query: str, top_k: int | None = None) -> list[SearchHit]:
        """Chunks matching *query*, most relevant first; zero scores are dropped."""
        top_k = top_k or self.config.max_limit
        by_id = self.scores(query)
        scored = [
            (by_id[chunk.id], SearchHit(chunk=chunk, similarity=by_id[chunk.id], rank=0, keyword_score=by_id[chunk.id]))
            for chunk in self._chunks
            if by_id.get(chunk.id, 0.0) > 0
        ]
        return _ranked(scored, top_k)
