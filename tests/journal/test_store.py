"""Tests for inkwell.journal.store."""

import os
from datetime import UTC, datetime

from inkwell.journal.models import Chunk, DateRange, EmotionScores, EntryAnalytics
from inkwell.journal.store import AnalyticsStore, EntrySource, InMemoryAnalyticsStore, MarkdownEntrySource


def chunk(entry_id, start, day=1, text="text"):
    return Chunk(
        entry_id=entry_id,
        text=text,
        start_char=start,
        end_char=start + len(text),
        date=datetime(2025, 1, day, tzinfo=UTC),
        token_count=1,
    )


def analytics(entry_id, day=1, happiness=50.0):
    return EntryAnalytics(
        entry_id=entry_id,
        date=datetime(2025, 1, day, tzinfo=UTC),
        happiness_score=happiness,
        valence=0.0,
        arousal=0.0,
        emotions=EmotionScores(),
    )


class TestInMemoryAnalyticsStore:
    def test_satisfies_protocol(self, store):
        assert isinstance(store, AnalyticsStore)

    def test_chunks_per_entry_in_source_order(self, store):
        store.save_chunks([chunk("a", 50), chunk("a", 0)])
        assert [c.start_char for c in store.get_chunks_for_entry("a")] == [0, 50]
        assert store.get_chunks_for_entry("missing") == []

    def test_save_chunks_replaces_entry(self, store):
        store.save_chunks([chunk("a", 0), chunk("a", 10)])
        store.save_chunks([chunk("a", 0, text="rewritten")])
        assert [c.text for c in store.get_chunks_for_entry("a")] == ["rewritten"]

    def test_get_chunks_ordered_by_date(self, store):
        store.save_chunks([chunk("late", 0, day=9)])
        store.save_chunks([chunk("early", 0, day=2)])
        assert [c.entry_id for c in store.get_chunks()] == ["early", "late"]

    def test_get_chunks_date_range_inclusive(self, store):
        for day in (1, 2, 3):
            store.save_chunks([chunk(f"e{day}", 0, day=day)])
        window = DateRange(start=datetime(2025, 1, 2, tzinfo=UTC), end=datetime(2025, 1, 3, tzinfo=UTC))
        assert [c.entry_id for c in store.get_chunks(window)] == ["e2", "e3"]

    def test_analytics_overwrite(self, store):
        store.save_analytics(analytics("a", happiness=40.0))
        store.save_analytics(analytics("a", happiness=80.0))
        records = store.get_analytics()
        assert len(records) == 1
        assert records[0].happiness_score == 80.0
        assert store.has_analytics("a")
        assert store.entry_count == 1

    def test_analytics_date_range(self, store):
        store.save_analytics(analytics("a", day=1))
        store.save_analytics(analytics("b", day=15))
        window = DateRange(start=datetime(2025, 1, 10, tzinfo=UTC), end=datetime(2025, 1, 31, tzinfo=UTC))
        assert [r.entry_id for r in store.get_analytics(window)] == ["b"]

    def test_delete_cascades(self, store):
        store.save_chunks([chunk("a", 0)])
        store.save_analytics(analytics("a"))
        store.delete_entry("a")
        assert not store.has_analytics("a")
        assert store.get_chunks_for_entry("a") == []
        store.delete_entry("a")


class TestMarkdownEntrySource:
    def write(self, directory, name, content):
        with open(os.path.join(directory, name), "w") as f:
            f.write(content)

    def test_satisfies_protocol(self, tmp_dir):
        assert isinstance(MarkdownEntrySource(tmp_dir), EntrySource)

    def test_missing_directory(self, tmp_dir):
        assert MarkdownEntrySource(os.path.join(tmp_dir, "nope")).load_all_entries() == []

    def test_date_from_filename(self, tmp_dir):
        self.write(tmp_dir, "2025-01-31-08-30.md", "Body")
        (entry,) = MarkdownEntrySource(tmp_dir).load_all_entries()
        assert entry.id == "2025-01-31-08-30"
        assert entry.date == datetime(2025, 1, 31, 8, 30, tzinfo=UTC)
        assert entry.text == "Body"

    def test_frontmatter_date_wins_and_is_stripped(self, tmp_dir):
        self.write(tmp_dir, "2025-01-31.md", "---\ndate: 2024-12-25\nmood: calm\n---\nChristmas notes")
        (entry,) = MarkdownEntrySource(tmp_dir).load_all_entries()
        assert entry.date == datetime(2024, 12, 25, tzinfo=UTC)
        assert entry.text == "Christmas notes"

    def test_mtime_fallback(self, tmp_dir):
        self.write(tmp_dir, "undated.txt", "No date anywhere")
        os.utime(os.path.join(tmp_dir, "undated.txt"), (1735689600, 1735689600))
        (entry,) = MarkdownEntrySource(tmp_dir).load_all_entries()
        assert entry.date == datetime(2025, 1, 1, tzinfo=UTC)

    def test_sorted_by_date_and_filtered_by_extension(self, tmp_dir):
        self.write(tmp_dir, "2025-02-01.md", "later")
        self.write(tmp_dir, "2025-01-01.txt", "earlier")
        self.write(tmp_dir, "2025-01-15.json", "{}")
        entries = MarkdownEntrySource(tmp_dir).load_all_entries()
        assert [e.id for e in entries] == ["2025-01-01", "2025-02-01"]

    def test_load_entry(self, tmp_dir):
        self.write(tmp_dir, "2025-01-01.txt", "hello")
        source = MarkdownEntrySource(tmp_dir)
        assert source.load_entry("2025-01-01").text == "hello"
        assert source.load_entry("missing") is None
