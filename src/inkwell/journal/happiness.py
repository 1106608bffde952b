"""Happiness, stress and energy scoring plus period aggregation.

The weights below are fixed; scores computed by earlier versions must stay
comparable with new ones.

Period aggregation drops outliers with an index-based IQR fence and reports
the mean of the remainder with a t-based 95% confidence interval.
"""

from __future__ import annotations

import math
from collections import defaultdict
from datetime import datetime

from .models import DetectedEvent, EmotionScores, EntryAnalytics, TimeSeriesPoint, to_utc

METRICS = ("happiness", "stress", "energy")


def _clamp_score(value: float) -> float:
    return max(0.0, min(100.0, value))


def compute_happiness_score(
    valence: float,
    emotions: EmotionScores,
    positive_event_density: float = 0.0,
) -> float:
    """Happiness on a 0-100 scale from valence, emotions and event density.

    ``h = 50 + 30*valence + 10*gratitude + 8*positive_event_density
    - 12*anxiety - 10*sadness - 8*anger``, clamped to [0, 100].
    """
    happiness = 50.0
    happiness += 30.0 * valence
    happiness += 10.0 * emotions.gratitude
    happiness += 8.0 * positive_event_density

    happiness -= 12.0 * emotions.anxiety
    happiness -= 10.0 * emotions.sadness
    happiness -= 8.0 * emotions.anger

    return _clamp_score(happiness)


def compute_stress_score(analytics: EntryAnalytics) -> float:
    """Stress on a 0-100 scale.

    The weighted sum is already 0-100 and is scaled by a further x100 before
    clamping, so any non-trivial anxiety, anger or sadness saturates at 100.
    Stored scores depend on this, keep it.
    """
    emotions = analytics.emotions
    stress = 50.0 * emotions.anxiety + 30.0 * emotions.anger + 20.0 * emotions.sadness
    return _clamp_score(stress * 100.0)


def compute_energy_score(analytics: EntryAnalytics) -> float:
    """Energy on a 0-100 scale from arousal and joy (same x100 convention as stress)."""
    energy = 60.0 * analytics.arousal + 40.0 * analytics.emotions.joy
    return _clamp_score(energy * 100.0)


def metric_value(analytics: EntryAnalytics, metric: str) -> float:
    """Value of *metric* (``happiness``, ``stress`` or ``energy``) for one entry."""
    if metric == "happiness":
        return analytics.happiness_score
    if metric == "stress":
        return compute_stress_score(analytics)
    if metric == "energy":
        return compute_energy_score(analytics)
    raise ValueError(f"Unknown metric {metric!r}. Must be one of: {', '.join(METRICS)}")


def positive_event_density(events: list[DetectedEvent]) -> float:
    """Fraction of events with positive sentiment, 0.0 when there are none."""
    if not events:
        return 0.0
    return sum(1 for event in events if event.sentiment > 0) / len(events)


def filter_outliers(values: list[float]) -> list[float]:
    """Drop values outside ``[Q1 - 1.5*IQR, Q3 + 1.5*IQR]``.

    Quartiles are taken by index (``sorted[n // 4]``, ``sorted[3n // 4]``),
    not interpolated. Lists of three or fewer values are returned unchanged.
    The result is sorted.
    """
    if len(values) <= 3:
        return list(values)

    ordered = sorted(values)
    q1 = ordered[len(ordered) // 4]
    q3 = ordered[(len(ordered) * 3) // 4]
    iqr = q3 - q1

    lower = q1 - 1.5 * iqr
    upper = q3 + 1.5 * iqr
    return [v for v in ordered if lower <= v <= upper]


def confidence_interval(values: list[float]) -> tuple[float, float]:
    """95%-style interval ``mean ± t * sd / sqrt(n)``.

    Uses the sample standard deviation and ``t = 1.96`` for n > 30, else 2.0.
    One value collapses to ``(v, v)``; no values gives ``(0.0, 0.0)``.
    """
    if len(values) <= 1:
        value = values[0] if values else 0.0
        return (value, value)

    n = len(values)
    mean = sum(values) / n
    variance = sum((v - mean) ** 2 for v in values) / (n - 1)
    standard_error = math.sqrt(variance) / math.sqrt(n)

    t_value = 1.96 if n > 30 else 2.0
    margin = t_value * standard_error
    return (mean - margin, mean + margin)


def compute_period_aggregates(scores: list[float]) -> tuple[float, tuple[float, float]]:
    """Outlier-filtered mean and confidence interval of *scores*.

    Returns ``(0.0, (0.0, 0.0))`` for an empty list, a "no data" sentinel
    rather than a reading of zero.
    """
    if not scores:
        return (0.0, (0.0, 0.0))

    filtered = filter_outliers(scores)
    mean = sum(filtered) / max(len(filtered), 1)
    return (mean, confidence_interval(filtered))


def compute_monthly_aggregates(entries: list[EntryAnalytics]) -> tuple[float, tuple[float, float]]:
    """Happiness average and interval over a month's entry analytics."""
    return compute_period_aggregates([entry.happiness_score for entry in entries])


def compute_time_series(analytics: list[EntryAnalytics], metric: str = "happiness") -> list[TimeSeriesPoint]:
    """Per-UTC-day averages of *metric*, oldest first.

    Each point's confidence is the mean confidence of that day's entries.
    """
    groups: dict[datetime, list[EntryAnalytics]] = defaultdict(list)
    for record in analytics:
        day = to_utc(record.date).replace(hour=0, minute=0, second=0, microsecond=0)
        groups[day].append(record)

    points = []
    for day in sorted(groups):
        entries = groups[day]
        values = [metric_value(entry, metric) for entry in entries]
        points.append(
            TimeSeriesPoint(
                date=day,
                metric=metric,
                value=sum(values) / len(values),
                confidence=sum(entry.confidence for entry in entries) / len(entries),
            )
        )
    return points
