"""Month and year summaries derived from entry analytics.

Summaries are recomputable at any time; entry analytics stay the source of
truth. Narrative text and drivers come from an injected ``Narrator``. The
default ``StatisticalNarrator`` writes a deterministic description of the
numbers, and ``providers.LLMNarrator`` asks a chat model instead.
"""

from __future__ import annotations

import calendar
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from typing import Protocol, runtime_checkable

from loguru import logger

from inkwell.core.exceptions import NoDataForPeriodError

from .happiness import compute_monthly_aggregates, confidence_interval
from .models import DateRange, DetectedEvent, EmotionScores, EntryAnalytics, MonthSummary, SourceSpan, YearSummary
from .store import AnalyticsStore

MONTH_TOP_EVENTS = 10
YEAR_TOP_EVENTS = 15
MAX_DRIVERS = 5


def month_name(month: int) -> str:
    return calendar.month_name[month]


def month_range(year: int, month: int) -> DateRange:
    """The whole of a calendar month in UTC."""
    start = datetime(year, month, 1, tzinfo=UTC)
    if month == 12:
        next_start = datetime(year + 1, 1, 1, tzinfo=UTC)
    else:
        next_start = datetime(year, month + 1, 1, tzinfo=UTC)
    return DateRange(start=start, end=next_start - timedelta(microseconds=1))


def select_top_events(events: list[DetectedEvent], limit: int) -> list[DetectedEvent]:
    """First *limit* events unique by lowercased title, in input order."""
    seen: set[str] = set()
    unique = []
    for event in events:
        key = event.title.lower()
        if key in seen:
            continue
        seen.add(key)
        unique.append(event)
        if len(unique) >= limit:
            break
    return unique


def mean_emotions(analytics: list[EntryAnalytics]) -> EmotionScores:
    if not analytics:
        return EmotionScores()
    n = len(analytics)
    return EmotionScores(
        joy=sum(a.emotions.joy for a in analytics) / n,
        sadness=sum(a.emotions.sadness for a in analytics) / n,
        anger=sum(a.emotions.anger for a in analytics) / n,
        anxiety=sum(a.emotions.anxiety for a in analytics) / n,
        gratitude=sum(a.emotions.gratitude for a in analytics) / n,
    )


@dataclass
class MonthNarrative:
    text: str
    drivers_positive: list[str] = field(default_factory=list)
    drivers_negative: list[str] = field(default_factory=list)


@runtime_checkable
class Narrator(Protocol):
    """Writes the prose parts of month and year summaries."""

    async def narrate_month(
        self,
        year: int,
        month: int,
        analytics: list[EntryAnalytics],
        top_events: list[DetectedEvent],
    ) -> MonthNarrative: ...

    async def narrate_year(self, year: int, months: list[MonthSummary], top_events: list[DetectedEvent]) -> str: ...


class StatisticalNarrator:
    """Deterministic narrator built from the numbers alone, no external calls."""

    async def narrate_month(
        self,
        year: int,
        month: int,
        analytics: list[EntryAnalytics],
        top_events: list[DetectedEvent],
    ) -> MonthNarrative:
        emotions = mean_emotions(analytics)
        happiness = sum(a.happiness_score for a in analytics) / len(analytics)
        strongest = max(emotions.to_dict().items(), key=lambda kv: kv[1])[0]

        text = (
            f"{month_name(month)} {year}: {len(analytics)} "
            f"{'entry' if len(analytics) == 1 else 'entries'} with an average happiness of "
            f"{happiness:.1f}/100. The strongest emotion was {strongest}."
        )
        return MonthNarrative(
            text=text,
            drivers_positive=[e.title for e in top_events if e.sentiment > 0][:MAX_DRIVERS],
            drivers_negative=[e.title for e in top_events if e.sentiment < 0][:MAX_DRIVERS],
        )

    async def narrate_year(self, year: int, months: list[MonthSummary], top_events: list[DetectedEvent]) -> str:
        best = max(months, key=lambda m: m.happiness_avg)
        worst = min(months, key=lambda m: m.happiness_avg)
        average = sum(m.happiness_avg for m in months) / len(months)
        return (
            f"{year}: {len(months)} month(s) with journal entries and an average happiness of "
            f"{average:.1f}/100. Happiest month: {month_name(best.month)} ({best.happiness_avg:.1f}); "
            f"hardest month: {month_name(worst.month)} ({worst.happiness_avg:.1f})."
        )


class SummarizationService:
    """Build ``MonthSummary`` and ``YearSummary`` records from stored analytics.

    Month summaries are cached per ``(year, month)`` so a year summary can
    reuse them; ``summarize_month`` always recomputes and refreshes the cache.
    """

    def __init__(self, store: AnalyticsStore, narrator: Narrator | None = None):
        self.store = store
        self.narrator = narrator or StatisticalNarrator()
        self.month_summaries: dict[tuple[int, int], MonthSummary] = {}
        self.year_summaries: dict[int, YearSummary] = {}

    def _source_spans(self, analytics: list[EntryAnalytics]) -> list[SourceSpan]:
        spans = []
        for record in analytics:
            chunks = self.store.get_chunks_for_entry(record.entry_id)
            if not chunks:
                spans.append(SourceSpan(entry_id=record.entry_id, start_char=0, end_char=0))
                continue
            spans.extend(SourceSpan(entry_id=c.entry_id, start_char=c.start_char, end_char=c.end_char) for c in chunks)
        return spans

    async def summarize_month(self, year: int, month: int) -> MonthSummary:
        """Summarize one calendar month (UTC).

        Raises:
            NoDataForPeriodError: If the month has no entry analytics.
        """
        period = f"{year:04d}-{month:02d}"
        analytics = self.store.get_analytics(month_range(year, month))
        if not analytics:
            raise NoDataForPeriodError(period)

        happiness_avg, happiness_ci = compute_monthly_aggregates(analytics)
        top_events = select_top_events([e for a in analytics for e in a.events], MONTH_TOP_EVENTS)
        narrative = await self.narrator.narrate_month(year, month, analytics, top_events)

        summary = MonthSummary(
            year=year,
            month=month,
            narrative_text=narrative.text,
            happiness_avg=happiness_avg,
            happiness_confidence_interval=happiness_ci,
            drivers_positive=narrative.drivers_positive,
            drivers_negative=narrative.drivers_negative,
            top_events=top_events,
            source_spans=self._source_spans(analytics),
            entry_count=len(analytics),
        )
        self.month_summaries[(year, month)] = summary
        logger.debug(f"Summarized {period}: {len(analytics)} entries, happiness {happiness_avg:.1f}")
        return summary

    async def _months_of_year(self, year: int) -> list[MonthSummary]:
        months = []
        for month in range(1, 13):
            cached = self.month_summaries.get((year, month))
            if cached is not None:
                months.append(cached)
                continue
            try:
                months.append(await self.summarize_month(year, month))
            except NoDataForPeriodError:
                continue
        return months

    async def summarize_year(self, year: int) -> YearSummary:
        """Summarize a year from its month summaries.

        The yearly average is the mean of the monthly averages, with the
        interval computed over those monthly averages.

        Raises:
            NoDataForPeriodError: If no month of the year has analytics.
        """
        months = await self._months_of_year(year)
        if not months:
            raise NoDataForPeriodError(f"{year:04d}")

        averages = [m.happiness_avg for m in months]
        top_events = select_top_events([e for m in months for e in m.top_events], YEAR_TOP_EVENTS)
        narrative = await self.narrator.narrate_year(year, months, top_events)

        summary = YearSummary(
            year=year,
            narrative_text=narrative,
            happiness_avg=sum(averages) / len(averages),
            happiness_confidence_interval=confidence_interval(averages),
            drivers_positive=_unique([d for m in months for d in m.drivers_positive])[:MAX_DRIVERS],
            drivers_negative=_unique([d for m in months for d in m.drivers_negative])[:MAX_DRIVERS],
            top_events=top_events,
            source_spans=[span for m in months for span in m.source_spans],
            month_count=len(months),
        )
        self.year_summaries[year] = summary
        return summary


def _unique(items: list[str]) -> list[str]:
    """Drop case-insensitive repeats, keeping the first spelling."""
    seen: set[str] = set()
    unique = []
    for item in items:
        key = item.lower()
        if key not in seen:
            seen.add(key)
            unique.append(item)
    return unique
