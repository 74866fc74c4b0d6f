"""Activity effect discovery from check-in metrics."""

from __future__ import annotations

from collections import Counter, defaultdict
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional

import numpy as np

from activity_engine.config import (
    INVERTED_METRICS,
    MAX_PATTERN_GAP_HOURS,
    SIGNIFICANT_CHANGE,
    TRACKED_METRICS,
)
from activity_engine.schema import Impact


@dataclass
class MetricReference:
    timestamp: datetime
    previous_value: float
    current_value: float
    change: float


@dataclass
class MetricEffect:
    metric: str
    change: int
    references: list[MetricReference]


@dataclass
class ActivityPattern:
    activity: str
    positive_effects: list[MetricEffect]
    negative_effects: list[MetricEffect]
    total_logs: int

    @property
    def score(self) -> int:
        return len(self.positive_effects) * 10 + self.total_logs


def _metric_value(impact: Impact, metric: str) -> Optional[float]:
    raw = impact.metrics.get(metric)
    try:
        value = float(raw)
    except (TypeError, ValueError):
        return None
    return None if np.isnan(value) else value


def analyze_activity_patterns(impacts: Sequence[Impact]) -> list[ActivityPattern]:
    """Which activities tend to move which metrics.

    Each check-in is compared with the one before it (if it came within a
    day) and the metric deltas are credited to the later activity.
    """

    if len(impacts) < 2:
        return []

    ordered = sorted(impacts, key=lambda impact: impact.timestamp)
    max_gap = timedelta(hours=MAX_PATTERN_GAP_HOURS)
    references: dict[str, dict[str, list[MetricReference]]] = defaultdict(lambda: defaultdict(list))
    log_counts: Counter = Counter()

    for previous, current in zip(ordered, ordered[1:]):
        if current.timestamp - previous.timestamp > max_gap or not current.activity_name:
            continue

        log_counts[current.activity_name] += 1
        for metric in TRACKED_METRICS:
            before = _metric_value(previous, metric)
            after = _metric_value(current, metric)
            if before is None or after is None:
                continue
            references[current.activity_name][metric].append(
                MetricReference(current.timestamp, before, after, after - before)
            )

    patterns = []
    for activity, total_logs in log_counts.items():
        positive: list[MetricEffect] = []
        negative: list[MetricEffect] = []
        for metric in TRACKED_METRICS:
            refs = references[activity].get(metric)
            if not refs:
                continue
            average = float(np.mean([ref.change for ref in refs]))
            if abs(average) <= SIGNIFICANT_CHANGE:
                continue
            improving = average < 0 if metric in INVERTED_METRICS else average > 0
            effect = MetricEffect(metric, int(np.floor(average + 0.5)), refs)
            (positive if improving else negative).append(effect)

        if positive or negative:
            positive.sort(key=lambda effect: abs(effect.change), reverse=True)
            negative.sort(key=lambda effect: abs(effect.change), reverse=True)
            patterns.append(ActivityPattern(activity, positive, negative, total_logs))

    return sorted(patterns, key=lambda pattern: pattern.score, reverse=True)


def suggestions_for_metrics(
    patterns: Iterable[ActivityPattern],
    low_metrics: Iterable[str],
    limit: int = 5,
) -> list[ActivityPattern]:
    """Activities known to improve any of the given metrics."""

    wanted = set(low_metrics)
    matches = [p for p in patterns if any(effect.metric in wanted for effect in p.positive_effects)]
    return matches[:limit]
