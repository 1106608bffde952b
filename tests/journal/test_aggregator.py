"""Tests for inkwell.journal.aggregator."""

from datetime import UTC, datetime

import pytest

from inkwell.core.exceptions import NoUsableInputError
from inkwell.journal.aggregator import (
    EntryAnalyzer,
    aggregate_chunk_analytics,
    merge_events,
    sentiment_value,
    trimmed_mean,
)
from inkwell.journal.chunker import Chunker
from inkwell.journal.models import ChunkAnalytics, EventExtraction
from tests.fakes import FakeOracle

DATE = datetime(2025, 1, 5, tzinfo=UTC)


def analytics(happiness=50.0, valence=0.0, events=None, confidence=0.5):
    return ChunkAnalytics(
        happiness=happiness,
        valence=valence,
        arousal=0.5,
        joy=0.5,
        sadness=0.2,
        anger=0.0,
        anxiety=0.1,
        gratitude=0.3,
        events=events or [],
        confidence=confidence,
    )


class TestTrimmedMean:
    def test_empty(self):
        assert trimmed_mean([]) == 0.0

    def test_one_and_two_values(self):
        assert trimmed_mean([4.0]) == 4.0
        assert trimmed_mean([2.0, 4.0]) == 3.0

    def test_small_lists_trim_nothing(self):
        # floor(5 * 0.1) == 0
        assert trimmed_mean([1.0, 2.0, 3.0, 4.0, 100.0]) == 22.0

    def test_trims_both_ends(self):
        values = [0.0] + [5.0] * 8 + [1000.0]
        assert trimmed_mean(values) == 5.0

    @pytest.mark.parametrize("n", [3, 7, 25])
    def test_identical_values(self, n):
        assert trimmed_mean([42.5] * n) == pytest.approx(42.5)


class TestSentimentValue:
    @pytest.mark.parametrize(
        ("label", "expected"),
        [("positive", 0.5), ("NEGATIVE", -0.5), (" neutral ", 0.0), ("mixed", 0.0), (None, 0.0)],
    )
    def test_mapping(self, label, expected):
        assert sentiment_value(label) == expected


class TestMergeEvents:
    def test_first_occurrence_wins(self):
        events = [
            EventExtraction(title="Dinner with Sam", sentiment="positive"),
            EventExtraction(title="  dinner with sam ", sentiment="negative", description="later"),
            EventExtraction(title="Flat tire", sentiment="negative"),
        ]
        merged = merge_events(events, date=DATE)
        assert [e.title for e in merged] == ["Dinner with Sam", "Flat tire"]
        assert merged[0].sentiment == 0.5
        assert merged[1].sentiment == -0.5
        assert all(e.date == DATE for e in merged)

    def test_blank_titles_dropped(self):
        assert merge_events([EventExtraction(title="   ")]) == []


class TestAggregateChunkAnalytics:
    def test_empty_raises(self):
        with pytest.raises(NoUsableInputError):
            aggregate_chunk_analytics([])

    def test_single_chunk(self):
        result = aggregate_chunk_analytics([analytics(happiness=70.0, valence=0.4)], date=DATE)
        assert result.happiness == 70.0
        assert result.valence == 0.4
        assert result.emotions.joy == 0.5
        assert result.chunk_count == 1

    def test_confidence_is_plain_mean(self):
        result = aggregate_chunk_analytics([analytics(confidence=0.2), analytics(confidence=0.8)])
        assert result.confidence == pytest.approx(0.5)

    def test_events_merged_across_chunks(self):
        first = analytics(events=[EventExtraction(title="Hike", sentiment="positive")])
        second = analytics(events=[EventExtraction(title="hike"), EventExtraction(title="Rain")])
        result = aggregate_chunk_analytics([first, second], date=DATE)
        assert [e.title for e in result.events] == ["Hike", "Rain"]


class TestEntryAnalyzer:
    async def test_analyze_all_chunks(self):
        chunks = Chunker().chunk("Went on a hike.", DATE, entry_id="e1")
        result = await EntryAnalyzer(FakeOracle()).analyze("e1", DATE, chunks)
        assert result.happiness == 70.0
        assert [e.title for e in result.events] == ["Went on a hike"]

    async def test_partial_failure_is_tolerated(self):
        text = "A" * 3600 + "\n\nbroken " + "B" * 3600
        chunks = Chunker().chunk(text, DATE, entry_id="e1")
        assert len(chunks) == 2
        oracle = FakeOracle(fail_marker="broken")
        result = await EntryAnalyzer(oracle).analyze("e1", DATE, chunks)
        assert result.chunk_count == 1
        assert len(oracle.calls) == 2

    async def test_all_chunks_failing_raises(self):
        chunks = Chunker().chunk("broken entry", DATE, entry_id="e1")
        with pytest.raises(NoUsableInputError):
            await EntryAnalyzer(FakeOracle(fail_marker="broken")).analyze("e1", DATE, chunks)

    async def test_no_chunks_raises(self):
        with pytest.raises(NoUsableInputError):
            await EntryAnalyzer(FakeOracle()).analyze("e1", DATE, [])
