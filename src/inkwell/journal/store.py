"""Protocols for the engine's external collaborators, plus reference backends.

The engine never reaches for a process-wide singleton: the pipeline, the
search engine and the retrieval service take these collaborators as
constructor arguments.

- ``ScoringOracle``: turns chunk text into structured emotion/event scores.
- ``EmbeddingProvider``: turns a batch of texts into vectors.
- ``AnalyticsStore``: persists chunks and entry analytics, keyed by entry.
- ``EntrySource``: lists and loads raw journal entries.

``InMemoryAnalyticsStore`` and ``MarkdownEntrySource`` are small working
implementations used by the CLI and the tests.
"""

from __future__ import annotations

import os
from datetime import UTC, datetime
from pathlib import Path
from typing import Protocol, runtime_checkable

from loguru import logger

from inkwell.core.utils.file_io import coerce_datetime, parse_entry_datetime, parse_frontmatter

from .models import Chunk, ChunkAnalytics, DateRange, EntryAnalytics, JournalEntry


@runtime_checkable
class ScoringOracle(Protocol):
    """External capability that scores one chunk of text.

    May fail per call; the pipeline treats a failure as a skipped chunk.
    """

    async def score(self, chunk_text: str) -> ChunkAnalytics: ...


@runtime_checkable
class EmbeddingProvider(Protocol):
    """External capability that embeds a batch of texts, order-preserving."""

    async def embed(self, texts: list[str]) -> list[list[float]]: ...


@runtime_checkable
class AnalyticsStore(Protocol):
    """Chunk and analytics persistence, overwrite-by-entry-id.

    Concurrent writers to the same entry are not supported. Readers may
    observe a store that is being written (no read isolation).
    """

    def save_chunks(self, chunks: list[Chunk]) -> None:
        """Persist chunks, replacing any earlier chunks of the same entries."""
        ...

    def get_chunks(self, date_range: DateRange | None = None) -> list[Chunk]:
        """Return chunks, optionally restricted to an inclusive date range."""
        ...

    def get_chunks_for_entry(self, entry_id: str) -> list[Chunk]:
        """Return one entry's chunks in source order."""
        ...

    def save_analytics(self, analytics: EntryAnalytics) -> None:
        """Persist analytics, overwriting any earlier record for the entry."""
        ...

    def get_analytics(self, date_range: DateRange | None = None) -> list[EntryAnalytics]:
        """Return entry analytics, optionally restricted to a date range."""
        ...

    def has_analytics(self, entry_id: str) -> bool:
        """Whether analytics already exist for *entry_id*. May raise on I/O errors."""
        ...

    def delete_entry(self, entry_id: str) -> None:
        """Delete an entry's analytics and, by cascade, its chunks."""
        ...


@runtime_checkable
class EntrySource(Protocol):
    """Read-only access to raw journal entries."""

    def load_all_entries(self) -> list[JournalEntry]:
        """Return every entry, in processing order."""
        ...

    def load_entry(self, entry_id: str) -> JournalEntry | None:
        """Return one entry, or None if it does not exist."""
        ...


class InMemoryAnalyticsStore:
    """Dictionary-backed ``AnalyticsStore``.

    Chunks are grouped per entry so that reprocessing an entry replaces its
    chunks wholesale and deleting an entry cascades to its chunks.
    """

    def __init__(self) -> None:
        self._chunks: dict[str, list[Chunk]] = {}
        self._analytics: dict[str, EntryAnalytics] = {}

    def save_chunks(self, chunks: list[Chunk]) -> None:
        grouped: dict[str, list[Chunk]] = {}
        for chunk in chunks:
            grouped.setdefault(chunk.entry_id, []).append(chunk)
        for entry_id, entry_chunks in grouped.items():
            self._chunks[entry_id] = sorted(entry_chunks, key=lambda c: c.start_char)

    def get_chunks(self, date_range: DateRange | None = None) -> list[Chunk]:
        chunks = [chunk for entry_chunks in self._chunks.values() for chunk in entry_chunks]
        if date_range is not None:
            chunks = [chunk for chunk in chunks if date_range.contains(chunk.date)]
        return sorted(chunks, key=lambda c: (c.date, c.entry_id, c.start_char))

    def get_chunks_for_entry(self, entry_id: str) -> list[Chunk]:
        return list(self._chunks.get(entry_id, []))

    def save_analytics(self, analytics: EntryAnalytics) -> None:
        self._analytics[analytics.entry_id] = analytics

    def get_analytics(self, date_range: DateRange | None = None) -> list[EntryAnalytics]:
        records = list(self._analytics.values())
        if date_range is not None:
            records = [record for record in records if date_range.contains(record.date)]
        return sorted(records, key=lambda a: (a.date, a.entry_id))

    def has_analytics(self, entry_id: str) -> bool:
        return entry_id in self._analytics

    def delete_entry(self, entry_id: str) -> None:
        self._analytics.pop(entry_id, None)
        self._chunks.pop(entry_id, None)

    @property
    def entry_count(self) -> int:
        return len(self._analytics)


class MarkdownEntrySource:
    """``EntrySource`` over a directory of dated markdown/text files.

    The entry id is the file stem. The entry date comes from a ``date``
    frontmatter key, then from the filename (``2025-01-31.md``,
    ``2025-01-31-08-30-15.md``), then from the file's modification time.
    Frontmatter is stripped from the text handed to the pipeline.
    """

    def __init__(self, directory: str | Path, extensions: tuple[str, ...] = (".md", ".txt")):
        self.directory = Path(directory).expanduser()
        self.extensions = extensions

    def _paths(self) -> list[Path]:
        if not self.directory.is_dir():
            logger.warning(f"Entry directory does not exist: {self.directory}")
            return []
        return sorted(
            path for path in self.directory.iterdir() if path.is_file() and path.suffix.lower() in self.extensions
        )

    def _read(self, path: Path) -> JournalEntry:
        raw = path.read_text(encoding="utf-8")
        frontmatter, body = parse_frontmatter(raw)

        date = coerce_datetime(frontmatter.get("date")) if frontmatter else None
        if date is None:
            date = parse_entry_datetime(path.name)
        if date is None:
            date = datetime.fromtimestamp(os.path.getmtime(path), tz=UTC)

        return JournalEntry(id=path.stem, text=body, date=date)

    def load_all_entries(self) -> list[JournalEntry]:
        entries = [self._read(path) for path in self._paths()]
        return sorted(entries, key=lambda e: (e.date, e.id))

    def load_entry(self, entry_id: str) -> JournalEntry | None:
        for extension in self.extensions:
            path = self.directory / f"{entry_id}{extension}"
            if path.is_file():
                return self._read(path)
        return None
