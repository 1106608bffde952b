"""Entry processing pipeline: chunk, embed, score, aggregate, persist.

Single entries go through ``process_entry``, which raises the specific
error of the stage that failed. Bulk runs go through
``process_all_entries``, which is best-effort: entries are processed one
at a time in listed order, failures are logged and counted, and the run
is paced for rate-limited scoring oracles and cancellable between entries.

Usage::

    pipeline = AnalyticsPipeline(source, store, oracle, embedder)
    async for progress in pipeline.process_all_entries():
        print(f"{progress.current}/{progress.total}")
    print(pipeline.last_report)
"""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator, Awaitable, Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import StrEnum

from loguru import logger

from inkwell.core.events import (
    BULK_COMPLETE,
    BULK_PROGRESS,
    ENTRY_FAILED,
    ENTRY_PROCESSED,
    ENTRY_SKIPPED,
    SUMMARY_GENERATED,
    Event,
    EventBus,
)
from inkwell.core.exceptions import (
    EntryNotFoundError,
    ExternalCallError,
    InkwellError,
    PersistenceError,
    PipelineError,
)

from .aggregator import EntryAnalyzer
from .chunker import Chunker
from .config import PipelineConfig
from .models import Chunk, EntryAnalytics, JournalEntry, MonthSummary, YearSummary
from .store import AnalyticsStore, EmbeddingProvider, EntrySource, ScoringOracle
from .summarize import SummarizationService


class EntryStage(StrEnum):
    LOADED = "loaded"
    CHUNKED = "chunked"
    EMBEDDED = "embedded"
    SCORED = "scored"
    AGGREGATED = "aggregated"
    PERSISTED = "persisted"


@dataclass
class BulkProgress:
    """Progress after one entry of a bulk run. ``current`` is 1-based."""

    current: int
    total: int
    entry_id: str
    succeeded: bool


@dataclass
class BulkReport:
    """Final tally of a bulk run."""

    total: int = 0
    succeeded: int = 0
    failed: int = 0
    skipped: int = 0
    cancelled: bool = False
    failures: list[tuple[str, str]] = field(default_factory=list)

    def __str__(self) -> str:
        status = "cancelled" if self.cancelled else "complete"
        return (
            f"Bulk run {status}: {self.succeeded} succeeded, {self.failed} failed, "
            f"{self.skipped} skipped of {self.total + self.skipped} entries"
        )


class AnalyticsPipeline:
    """Orchestrates chunking, embedding, scoring and persistence of entries.

    All collaborators are injected. ``sleep`` is used for bulk pacing and
    can be replaced in tests.
    """

    def __init__(
        self,
        entry_source: EntrySource,
        store: AnalyticsStore,
        oracle: ScoringOracle,
        embedder: EmbeddingProvider,
        chunker: Chunker | None = None,
        config: PipelineConfig | None = None,
        event_bus: EventBus | None = None,
        summarizer: SummarizationService | None = None,
        sleep: Callable[[float], Awaitable[object]] = asyncio.sleep,
    ):
        self.entry_source = entry_source
        self.store = store
        self.embedder = embedder
        self.chunker = chunker or Chunker()
        self.config = config or PipelineConfig()
        self.event_bus = event_bus
        self.summarizer = summarizer or SummarizationService(store)
        self.analyzer = EntryAnalyzer(oracle)
        self.sleep = sleep
        self.last_report: BulkReport | None = None

    async def _emit(self, name: str, **payload) -> None:
        if self.event_bus is not None:
            await self.event_bus.emit(Event(name=name, payload=payload, source="pipeline"))

    # ------------------------------------------------------------------
    # Single entry
    # ------------------------------------------------------------------

    async def _embed(self, chunks: list[Chunk]) -> list[Chunk]:
        try:
            embeddings = await self.embedder.embed([chunk.text for chunk in chunks])
        except ExternalCallError:
            raise
        except Exception as e:
            raise ExternalCallError(f"Embedding failed: {e}") from e

        if len(embeddings) != len(chunks):
            raise ExternalCallError(f"Embedding provider returned {len(embeddings)} vectors for {len(chunks)} chunks")
        return [chunk.with_embedding(vector) for chunk, vector in zip(chunks, embeddings, strict=True)]

    def _persist(self, action: Callable[[], None], what: str) -> None:
        try:
            action()
        except PersistenceError:
            raise
        except Exception as e:
            raise PersistenceError(f"Failed to save {what}: {e}") from e

    async def process_entry(self, entry: JournalEntry) -> EntryAnalytics:
        """Run one entry through every stage and persist its analytics.

        Raises:
            ExternalCallError: Embedding failed or returned the wrong count.
            NoUsableInputError: No chunk could be scored.
            PersistenceError: Saving chunks or analytics failed.

            The raised error's ``stage`` names the stage that failed.
        """
        stage = EntryStage.CHUNKED
        try:
            chunks = self.chunker.chunk(entry.text, entry.date, entry_id=entry.id)
            logger.debug(f"Entry {entry.id}: created {len(chunks)} chunks")

            stage = EntryStage.EMBEDDED
            if chunks:
                chunks = await self._embed(chunks)
                stage = EntryStage.PERSISTED
                self._persist(lambda: self.store.save_chunks(chunks), f"chunks of entry {entry.id}")

            stage = EntryStage.SCORED
            aggregated = await self.analyzer.analyze(entry.id, entry.date, chunks)

            stage = EntryStage.AGGREGATED
            analytics = EntryAnalytics(
                entry_id=entry.id,
                date=entry.date,
                happiness_score=aggregated.happiness,
                valence=aggregated.valence,
                arousal=aggregated.arousal,
                emotions=aggregated.emotions,
                events=aggregated.events,
                confidence=aggregated.confidence,
                analyzed_at=datetime.now(UTC),
            )

            stage = EntryStage.PERSISTED
            self._persist(lambda: self.store.save_analytics(analytics), f"analytics of entry {entry.id}")
        except InkwellError as e:
            if e.stage is None:
                e.stage = stage.value
            raise

        logger.info(f"Processed entry {entry.id}: happiness {analytics.happiness_score:.1f}")
        await self._emit(ENTRY_PROCESSED, entry_id=entry.id, happiness=analytics.happiness_score)
        return analytics

    def load_entry(self, entry_id: str) -> JournalEntry:
        """Load an entry from the source.

        Raises:
            EntryNotFoundError: If the source has no such entry.
        """
        try:
            entry = self.entry_source.load_entry(entry_id)
        except Exception as e:
            raise PipelineError(f"Failed to load entry: {entry_id} ({e})", stage=EntryStage.LOADED.value) from e
        if entry is None:
            raise EntryNotFoundError(entry_id)
        return entry

    async def process_entry_by_id(self, entry_id: str) -> EntryAnalytics:
        """Load an entry from the source and process it."""
        return await self.process_entry(self.load_entry(entry_id))

    async def process_new_entry(self, entry: JournalEntry) -> EntryAnalytics:
        """Process a freshly saved entry and refresh its month's summary.

        A failing summary refresh is logged; the entry's analytics stand.
        """
        analytics = await self.process_entry(entry)
        try:
            summary = await self.summarizer.summarize_month(entry.date.year, entry.date.month)
        except Exception as e:
            logger.warning(f"Failed to refresh summary for {entry.date:%Y-%m}: {e}")
        else:
            await self._emit(SUMMARY_GENERATED, period=summary.period)
        return analytics

    # ------------------------------------------------------------------
    # Bulk
    # ------------------------------------------------------------------

    def _should_process(self, entry: JournalEntry) -> bool:
        try:
            return not self.store.has_analytics(entry.id)
        except Exception as e:
            logger.warning(f"Could not check existing analytics for {entry.id}, reprocessing: {e}")
            return True

    async def _pace(self, current: int, total: int) -> None:
        if current >= total:
            return
        await self.sleep(self.config.entry_delay)
        if self.config.batch_size > 0 and current % self.config.batch_size == 0:
            logger.debug(f"Processed {current} entries, pausing {self.config.batch_pause}s")
            await self.sleep(self.config.batch_pause)

    async def process_all_entries(
        self,
        skip_existing: bool = True,
        cancel_event: asyncio.Event | None = None,
    ) -> AsyncIterator[BulkProgress]:
        """Process every entry from the source, yielding progress per entry.

        Args:
            skip_existing: Skip entries that already have analytics. If the
                check itself fails, the entry is processed.
            cancel_event: Checked between entries; once set, the rest of the
                backlog is abandoned. Entries already persisted stay.

        ``last_report`` holds the final ``BulkReport`` once iteration ends.
        """
        try:
            entries = self.entry_source.load_all_entries()
        except Exception as e:
            raise PipelineError(f"Failed to list entries: {e}", stage=EntryStage.LOADED.value) from e

        report = BulkReport()
        pending = []
        for entry in entries:
            if skip_existing and not self._should_process(entry):
                report.skipped += 1
                await self._emit(ENTRY_SKIPPED, entry_id=entry.id)
                continue
            pending.append(entry)

        report.total = len(pending)
        self.last_report = report
        logger.info(f"Bulk processing {report.total} entries ({report.skipped} skipped)")

        for index, entry in enumerate(pending):
            if cancel_event is not None and cancel_event.is_set():
                report.cancelled = True
                logger.info(f"Bulk processing cancelled after {index} of {report.total} entries")
                break

            current = index + 1
            try:
                await self.process_entry(entry)
            except Exception as e:
                report.failed += 1
                report.failures.append((entry.id, str(e)))
                stage = getattr(e, "stage", None)
                logger.warning(f"Failed to process entry {entry.id} (stage: {stage}): {e}")
                await self._emit(ENTRY_FAILED, entry_id=entry.id, stage=stage, error=str(e))
                succeeded = False
            else:
                report.succeeded += 1
                succeeded = True

            progress = BulkProgress(current=current, total=report.total, entry_id=entry.id, succeeded=succeeded)
            await self._emit(BULK_PROGRESS, current=current, total=report.total, entry_id=entry.id)
            yield progress

            await self._pace(current, report.total)

        logger.info(str(report))
        await self._emit(
            BULK_COMPLETE,
            succeeded=report.succeeded,
            failed=report.failed,
            skipped=report.skipped,
            cancelled=report.cancelled,
        )

    async def run_bulk(
        self,
        skip_existing: bool = True,
        cancel_event: asyncio.Event | None = None,
        on_progress: Callable[[BulkProgress], object] | None = None,
    ) -> BulkReport:
        """Drain ``process_all_entries`` and return its report."""
        async for progress in self.process_all_entries(skip_existing=skip_existing, cancel_event=cancel_event):
            if on_progress is not None:
                on_progress(progress)
        assert self.last_report is not None
        return self.last_report

    # ------------------------------------------------------------------
    # Summaries
    # ------------------------------------------------------------------

    async def update_summaries(self) -> tuple[list[MonthSummary], list[YearSummary]]:
        """Regenerate every month summary, then every year summary.

        A period that fails is logged and skipped.
        """
        try:
            all_analytics = self.store.get_analytics()
        except Exception as e:
            raise PersistenceError(f"Failed to load analytics: {e}") from e

        if not all_analytics:
            logger.info("No analytics data found; nothing to summarize")
            return [], []

        periods = sorted({(a.date.year, a.date.month) for a in all_analytics})
        logger.info(f"Summarizing {len(periods)} month(s)")

        months: list[MonthSummary] = []
        for year, month in periods:
            try:
                summary = await self.summarizer.summarize_month(year, month)
            except Exception as e:
                logger.warning(f"Failed to summarize {year:04d}-{month:02d}: {e}")
                continue
            months.append(summary)
            await self._emit(SUMMARY_GENERATED, period=summary.period)

        years: list[YearSummary] = []
        for year in sorted({y for y, _ in periods}):
            try:
                summary = await self.summarizer.summarize_year(year)
            except Exception as e:
                logger.warning(f"Failed to summarize year {year:04d}: {e}")
                continue
            years.append(summary)
            await self._emit(SUMMARY_GENERATED, period=summary.period)

        return months, years
