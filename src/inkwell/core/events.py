"""Event bus for loose-coupled extensibility.

Lets the analytics pipeline report progress without knowing who is
listening. Hooks can be plain functions or coroutines.

Usage::

    from inkwell.core.events import ENTRY_PROCESSED, Event, EventBus

    bus = EventBus()

    async def on_processed(event: Event) -> None:
        print(f"Processed: {event.payload['entry_id']}")

    bus.on(ENTRY_PROCESSED, on_processed)
    await bus.emit(Event(name=ENTRY_PROCESSED, payload={"entry_id": "e1"}, source="pipeline"))
"""

from __future__ import annotations

import inspect
from collections import defaultdict
from dataclasses import dataclass, field
from time import time
from typing import Any

from loguru import logger

# ---------------------------------------------------------------------------
# Well-known event names
# ---------------------------------------------------------------------------

ENTRY_PROCESSED = "entry.processed"
ENTRY_FAILED = "entry.failed"
ENTRY_SKIPPED = "entry.skipped"
BULK_PROGRESS = "bulk.progress"
BULK_COMPLETE = "bulk.complete"
SUMMARY_GENERATED = "summary.generated"

# Type alias for hook callables (sync or async)
Hook = Any  # Callable[[Event], None] | Callable[[Event], Awaitable[None]]


# ---------------------------------------------------------------------------
# Event model
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Event:
    """An immutable event that flows through the bus."""

    name: str
    payload: dict[str, Any] = field(default_factory=dict)
    timestamp: float = field(default_factory=time)
    source: str = ""


# ---------------------------------------------------------------------------
# EventBus
# ---------------------------------------------------------------------------


class EventBus:
    """Simple pub/sub event bus supporting sync and async hooks."""

    def __init__(self) -> None:
        self._hooks: dict[str, list[Hook]] = defaultdict(list)
        self._wildcard_hooks: list[Hook] = []

    def on(self, event_name: str, hook: Hook) -> None:
        """Register *hook* for a specific event name."""
        self._hooks[event_name].append(hook)

    def on_all(self, hook: Hook) -> None:
        """Register *hook* for all events (wildcard)."""
        self._wildcard_hooks.append(hook)

    def off(self, event_name: str, hook: Hook) -> None:
        """Unregister *hook* from a specific event name."""
        try:
            self._hooks[event_name].remove(hook)
        except ValueError:
            pass

    async def emit(self, event: Event) -> None:
        """Emit an event, running all matching hooks (async).

        A failing hook is logged and never interrupts the emitter.
        """
        hooks = list(self._hooks.get(event.name, []))
        hooks.extend(self._wildcard_hooks)
        for hook in hooks:
            try:
                if inspect.iscoroutinefunction(hook):
                    await hook(event)
                else:
                    hook(event)
            except Exception as exc:
                logger.warning(f"Event hook failed for {event.name}: {exc}")

