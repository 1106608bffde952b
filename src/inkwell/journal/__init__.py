"""Journal analytics and semantic retrieval.

Chunks entries, embeds and scores them through injected providers,
aggregates per-entry analytics, rolls them up into month and year
summaries, and answers typed retrieval queries.
"""

from .aggregator import EntryAnalyzer, aggregate_chunk_analytics, merge_events, trimmed_mean
from .autoprocess import EntrySaveQueue
from .chunker import Chunker
from .config import ChunkingConfig, PipelineConfig, SearchConfig
from .models import (
    Chunk,
    ChunkAnalytics,
    DateRange,
    DetectedEvent,
    EmotionScores,
    EntryAnalytics,
    EventExtraction,
    JournalEntry,
    MonthSummary,
    SourceSpan,
    TimeSeriesPoint,
    YearSummary,
)
from .pipeline import AnalyticsPipeline, BulkProgress, BulkReport, EntryStage
from .ranking import HybridRanker, RankingWeights, RetrievalService
from .retrieval import RankedItem, RetrieveFilter, RetrieveQuery, RetrieveResult
from .search import SearchHit, TextSearcher, VectorSearchEngine, cosine_similarity
from .store import AnalyticsStore, EmbeddingProvider, EntrySource, InMemoryAnalyticsStore, ScoringOracle
from .summarize import SummarizationService

__all__ = [
    "AnalyticsPipeline",
    "AnalyticsStore",
    "BulkProgress",
    "BulkReport",
    "Chunk",
    "ChunkAnalytics",
    "Chunker",
    "ChunkingConfig",
    "DateRange",
    "DetectedEvent",
    "EmbeddingProvider",
    "EmotionScores",
    "EntryAnalytics",
    "EntryAnalyzer",
    "EntrySaveQueue",
    "EntrySource",
    "EntryStage",
    "EventExtraction",
    "HybridRanker",
    "InMemoryAnalyticsStore",
    "JournalEntry",
    "MonthSummary",
    "PipelineConfig",
    "RankedItem",
    "RankingWeights",
    "RetrievalService",
    "RetrieveFilter",
    "RetrieveQuery",
    "RetrieveResult",
    "ScoringOracle",
    "SearchConfig",
    "SearchHit",
    "SourceSpan",
    "SummarizationService",
    "TextSearcher",
    "TimeSeriesPoint",
    "VectorSearchEngine",
    "YearSummary",
    "aggregate_chunk_analytics",
    "cosine_similarity",
    "merge_events",
    "trimmed_mean",
]
