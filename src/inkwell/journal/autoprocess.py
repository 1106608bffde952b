"""Debounced background processing of saved entries.

Editors save often. ``EntrySaveQueue`` coalesces bursts of saves: each
``submit()`` re-arms a debounce timer, and only when the timer expires are
the pending entry ids moved into a bounded work queue. A single worker task
drains the queue through ``AnalyticsPipeline.process_new_entry``, so each
saved entry also refreshes its month summary, and waits
``pipeline.config.entry_delay`` between entries.

Usage::

    queue = EntrySaveQueue(pipeline)  # debounce from pipeline.config
    await queue.start()
    queue.submit("2025-01-31")
    ...
    await queue.stop()
"""

from __future__ import annotations

import asyncio
import contextlib
from collections import deque
from typing import TYPE_CHECKING

from loguru import logger

if TYPE_CHECKING:
    from .pipeline import AnalyticsPipeline


class EntrySaveQueue:
    """Debounce stage feeding a bounded queue with one worker."""

    def __init__(
        self,
        pipeline: AnalyticsPipeline,
        debounce_seconds: float | None = None,
        maxsize: int = 100,
        history: int = 100,
    ):
        self.pipeline = pipeline
        if debounce_seconds is None:
            debounce_seconds = pipeline.config.debounce_seconds
        self.debounce_seconds = debounce_seconds
        self.maxsize = maxsize
        self._pending: dict[str, None] = {}  # insertion-ordered set
        self._queue: asyncio.Queue[str] | None = None
        self._timer: asyncio.Task | None = None
        self._worker: asyncio.Task | None = None
        # most recent outcomes only
        self.processed: deque[str] = deque(maxlen=history)
        self.failed: deque[tuple[str, str]] = deque(maxlen=history)

    @property
    def is_running(self) -> bool:
        return self._worker is not None and not self._worker.done()

    @property
    def pending(self) -> list[str]:
        """Entry ids waiting for the debounce timer, in submission order."""
        return list(self._pending)

    async def start(self) -> None:
        if self.is_running:
            return
        self._queue = asyncio.Queue(maxsize=self.maxsize)
        self._worker = asyncio.create_task(self._run())
        logger.debug("Entry save queue started")

    def submit(self, entry_id: str) -> None:
        """Record a saved entry and restart the debounce timer."""
        if not self.is_running:
            raise RuntimeError("EntrySaveQueue is not started")
        self._pending.setdefault(entry_id, None)
        self._cancel_timer()
        self._timer = asyncio.create_task(self._debounce())

    async def flush(self) -> None:
        """Move every pending id into the work queue now."""
        self._cancel_timer()
        await self._enqueue_pending()

    async def join(self) -> None:
        """Wait until the worker has drained everything already enqueued."""
        if self._queue is not None:
            await self._queue.join()

    async def stop(self, drain: bool = True) -> None:
        """Stop the worker, first flushing and draining when *drain* is set."""
        if drain and self.is_running:
            await self.flush()
            await self.join()
        self._cancel_timer()
        if self._worker is not None:
            self._worker.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._worker
            self._worker = None
        logger.debug("Entry save queue stopped")

    def _cancel_timer(self) -> None:
        if self._timer is not None and not self._timer.done():
            self._timer.cancel()
        self._timer = None

    async def _debounce(self) -> None:
        await asyncio.sleep(self.debounce_seconds)
        self._timer = None
        await self._enqueue_pending()

    async def _enqueue_pending(self) -> None:
        if not self._pending or self._queue is None:
            return
        batch = list(self._pending)
        self._pending.clear()
        logger.debug(f"Queueing {len(batch)} saved entr{'y' if len(batch) == 1 else 'ies'} for processing")
        for entry_id in batch:
            await self._queue.put(entry_id)

    async def _run(self) -> None:
        assert self._queue is not None
        while True:
            entry_id = await self._queue.get()
            try:
                entry = self.pipeline.load_entry(entry_id)
                await self.pipeline.process_new_entry(entry)
                self.processed.append(entry_id)
            except Exception as e:
                logger.warning(f"Auto-processing failed for entry {entry_id}: {e}")
                self.failed.append((entry_id, str(e)))
            finally:
                self._queue.task_done()
            if not self._queue.empty():
                await self.pipeline.sleep(self.pipeline.config.entry_delay)
