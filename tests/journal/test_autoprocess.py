"""Tests for inkwell.journal.autoprocess."""

import asyncio

import pytest

from inkwell.journal.autoprocess import EntrySaveQueue
from inkwell.journal.config import PipelineConfig
from inkwell.journal.pipeline import AnalyticsPipeline
from tests.fakes import RecordingSleep


@pytest.fixture
def pipeline(entry_source, store, oracle, embedder):
    config = PipelineConfig(debounce_seconds=0.05, entry_delay=0.25)
    return AnalyticsPipeline(entry_source, store, oracle, embedder, config=config, sleep=RecordingSleep())


class TestEntrySaveQueue:
    async def test_debounce_from_pipeline_config(self, pipeline):
        assert EntrySaveQueue(pipeline).debounce_seconds == 0.05
        assert EntrySaveQueue(pipeline, debounce_seconds=1.0).debounce_seconds == 1.0

    async def test_submit_requires_start(self, pipeline):
        queue = EntrySaveQueue(pipeline)
        with pytest.raises(RuntimeError, match="not started"):
            queue.submit("2025-01-05")

    async def test_burst_is_coalesced(self, pipeline, store, oracle):
        queue = EntrySaveQueue(pipeline)
        await queue.start()
        try:
            for _ in range(5):
                queue.submit("2025-01-05")
            queue.submit("2025-02-02")
            assert queue.pending == ["2025-01-05", "2025-02-02"]

            await asyncio.sleep(0.2)
            await queue.join()

            assert list(queue.processed) == ["2025-01-05", "2025-02-02"]
            assert queue.pending == []
            assert store.entry_count == 2
            assert len(oracle.calls) == 2
        finally:
            await queue.stop()

    async def test_timer_rearmed_by_each_submit(self, pipeline):
        queue = EntrySaveQueue(pipeline, debounce_seconds=0.1)
        await queue.start()
        try:
            queue.submit("2025-01-05")
            await asyncio.sleep(0.06)
            queue.submit("2025-01-20")
            await asyncio.sleep(0.06)
            # 0.12s after the first save, but only 0.06s after the last one
            assert list(queue.processed) == []
            assert queue.pending == ["2025-01-05", "2025-01-20"]
        finally:
            await queue.stop()
        assert list(queue.processed) == ["2025-01-05", "2025-01-20"]

    async def test_flush_skips_the_timer(self, pipeline):
        queue = EntrySaveQueue(pipeline, debounce_seconds=60)
        await queue.start()
        try:
            queue.submit("2025-01-20")
            await queue.flush()
            await queue.join()
            assert list(queue.processed) == ["2025-01-20"]
        finally:
            await queue.stop()

    async def test_failures_recorded(self, pipeline):
        queue = EntrySaveQueue(pipeline)
        await queue.start()
        try:
            queue.submit("missing-entry")
            await queue.flush()
            await queue.join()
        finally:
            await queue.stop()
        assert queue.failed[0][0] == "missing-entry"
        assert "Failed to load entry" in queue.failed[0][1]
        assert list(queue.processed) == []

    async def test_stop_without_drain_drops_pending(self, pipeline):
        queue = EntrySaveQueue(pipeline, debounce_seconds=60)
        await queue.start()
        queue.submit("2025-01-05")
        await queue.stop(drain=False)
        assert not queue.is_running
        assert list(queue.processed) == []

    async def test_start_is_idempotent(self, pipeline):
        queue = EntrySaveQueue(pipeline)
        await queue.start()
        worker = queue._worker
        await queue.start()
        assert queue._worker is worker
        await queue.stop()

    async def test_saved_entry_refreshes_its_month(self, pipeline):
        queue = EntrySaveQueue(pipeline, debounce_seconds=60)
        await queue.start()
        try:
            queue.submit("2025-02-02")
            await queue.flush()
            await queue.join()
        finally:
            await queue.stop()
        assert list(queue.processed) == ["2025-02-02"]
        summary = pipeline.summarizer.month_summaries[(2025, 2)]
        assert summary.entry_count == 1
        assert (2025, 1) not in pipeline.summarizer.month_summaries

    async def test_paced_between_entries(self, pipeline):
        queue = EntrySaveQueue(pipeline, debounce_seconds=60)
        await queue.start()
        try:
            for entry_id in ("2025-01-05", "2025-01-20", "2025-02-02"):
                queue.submit(entry_id)
            await queue.flush()
            await queue.join()
        finally:
            await queue.stop()
        assert len(queue.processed) == 3
        # no wait after the last entry
        assert pipeline.sleep.calls == [0.25, 0.25]

    async def test_history_is_capped(self, pipeline):
        queue = EntrySaveQueue(pipeline, debounce_seconds=60, history=2)
        await queue.start()
        try:
            for entry_id in ("2025-01-05", "2025-01-20", "2025-02-02", "gone-1", "gone-2", "gone-3"):
                queue.submit(entry_id)
            await queue.flush()
            await queue.join()
        finally:
            await queue.stop()
        assert list(queue.processed) == ["2025-01-20", "2025-02-02"]
        assert [entry_id for entry_id, _ in queue.failed] == ["gone-2", "gone-3"]
