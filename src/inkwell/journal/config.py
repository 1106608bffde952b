"""Configuration dataclasses for chunking, search and pipeline pacing.

These are pure data containers with sensible defaults.
Override them from YAML config, env vars, or constructor args.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from inkwell.core.config import Config


@dataclass
class ChunkingConfig:
    """Settings for paragraph-based chunking.

    Attributes:
        target_tokens: Flush the buffer eagerly once it reaches this size.
        max_tokens: Never grow a buffer past this by appending a paragraph.
        chars_per_token: Characters per estimated token.
    """

    target_tokens: int = 850
    max_tokens: int = 1000
    chars_per_token: int = 4

    @classmethod
    def from_config(cls, config: Config) -> ChunkingConfig:
        section = config.validated().chunking
        return cls(
            target_tokens=section.target_tokens,
            max_tokens=section.max_tokens,
            chars_per_token=section.chars_per_token,
        )


@dataclass
class SearchConfig:
    """Settings for vector and hybrid search.

    Attributes:
        min_similarity: Default cosine threshold for ``search_similar``.
        hybrid_min_similarity: Looser threshold for hybrid over-fetch.
        semantic_weight: Weight for semantic scores in hybrid search (0-1).
        max_limit: Hard cap on the number of items a retrieve query returns.
        tfidf_max_features: Vocabulary cap for the TF-IDF keyword scorer.
        tfidf_ngram_range: N-gram range (min, max) for TF-IDF.
        tfidf_min_df: Minimum document frequency for TF-IDF terms.
        tfidf_max_df: Maximum document frequency ratio for TF-IDF terms.
    """

    min_similarity: float = 0.3
    hybrid_min_similarity: float = 0.2
    semantic_weight: float = 0.7  # 70% semantic, 30% keyword in hybrid
    max_limit: int = 200
    tfidf_max_features: int = 10000
    tfidf_ngram_range: tuple[int, int] = (1, 2)
    tfidf_min_df: int = 1
    tfidf_max_df: float = 1.0

    @classmethod
    def from_config(cls, config: Config) -> SearchConfig:
        section = config.validated().search
        return cls(
            min_similarity=section.min_similarity,
            hybrid_min_similarity=section.hybrid_min_similarity,
            semantic_weight=section.semantic_weight,
            max_limit=section.max_limit,
        )


@dataclass
class PipelineConfig:
    """Pacing for bulk processing against a rate-limited scoring oracle.

    Attributes:
        entry_delay: Seconds to wait between entries.
        batch_size: Take a longer pause after this many entries.
        batch_pause: Seconds of the longer pause.
        debounce_seconds: Quiet period before auto-processing saved entries.
    """

    entry_delay: float = 0.5
    batch_size: int = 10
    batch_pause: float = 2.0
    debounce_seconds: float = 5.0

    @classmethod
    def from_config(cls, config: Config) -> PipelineConfig:
        section = config.validated().pipeline
        return cls(
            entry_delay=section.entry_delay,
            batch_size=section.batch_size,
            batch_pause=section.batch_pause,
            debounce_seconds=section.debounce_seconds,
        )
