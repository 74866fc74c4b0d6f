"""Passive event normalization: filtering, naming, coloring and dedup."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, replace
from datetime import datetime, timedelta, timezone

from activity_engine.config import (
    ACTIVITY_COLORS,
    AFK_COLOR,
    DEDUP_GAP_TOLERANCE_SECONDS,
    DEFAULT_DAYS_BACK,
    DEFAULT_GROUP_GAP_MINUTES,
    DEFAULT_MIN_DURATION_SECONDS,
)
from activity_engine.payloads import AfkData, parse_payload
from activity_engine.schema import (
    BucketExport,
    BucketMetadata,
    BucketType,
    EventGroup,
    ImportPreview,
    NormalizedEvent,
    RawEvent,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class NormalizeOptions:
    days_back: float = DEFAULT_DAYS_BACK
    min_duration_seconds: float = DEFAULT_MIN_DURATION_SECONDS


def display_name(event: RawEvent) -> str:
    """Human readable activity name for a raw event."""

    return parse_payload(event.bucket_type, event.data).display_name(event.type_name)


def color_for(name: str, bucket_type: BucketType) -> str:
    """Deterministic palette color for an activity name."""

    if bucket_type is BucketType.AFK_STATUS:
        return AFK_COLOR

    # 32-bit signed string hash, stable across processes
    value = 0
    for char in name:
        value = (value * 31 + ord(char)) & 0xFFFFFFFF
    if value >= 0x80000000:
        value -= 0x100000000
    return ACTIVITY_COLORS[abs(value) % len(ACTIVITY_COLORS)]


def _raw_events(bucket) -> Sequence[RawEvent]:
    if isinstance(bucket, BucketExport):
        return bucket.events
    return list(bucket)


def filter_events(
    events: Iterable[RawEvent],
    options: NormalizeOptions,
    now: datetime,
) -> list[RawEvent]:
    """Drop events older than ``days_back`` or shorter than the minimum duration."""

    cutoff = now - timedelta(days=options.days_back)
    return [event for event in events if _is_kept(event, options, cutoff)]


def _is_kept(event: RawEvent, options: NormalizeOptions, cutoff: datetime) -> bool:
    return event.timestamp >= cutoff and event.duration_seconds >= options.min_duration_seconds


def _to_normalized(event: RawEvent, sequence: int) -> NormalizedEvent:
    payload = parse_payload(event.bucket_type, event.data)
    name = payload.display_name(event.type_name)
    epoch_ms = int(event.timestamp.timestamp() * 1000)
    return NormalizedEvent(
        id=f"{event.bucket_id}-{epoch_ms}-{sequence}",
        bucket_id=event.bucket_id,
        bucket_type=event.bucket_type,
        timestamp=event.timestamp,
        duration_seconds=event.duration_seconds,
        display_name=name,
        color=color_for(name, event.bucket_type),
        afk_status=payload.status if isinstance(payload, AfkData) else None,
    )


def deduplicate(events: Iterable[NormalizedEvent]) -> list[NormalizedEvent]:
    """Merge adjacent or overlapping captures of the same activity.

    Two events merge when they share a bucket and display name and the later
    one starts no more than one second after the earlier one ends. The merged
    event keeps the first event's id and start and runs to the furthest end.
    Applying this to its own output returns it unchanged.
    """

    ordered = sorted(events, key=lambda e: e.timestamp)
    merged: list[NormalizedEvent] = []
    open_by_bucket: dict[str, int] = {}

    for event in ordered:
        index = open_by_bucket.get(event.bucket_id)
        if index is not None:
            current = merged[index]
            gap = (event.timestamp - current.end).total_seconds()
            if current.display_name == event.display_name and gap <= DEDUP_GAP_TOLERANCE_SECONDS:
                end = max(current.end, event.end)
                merged[index] = replace(
                    current,
                    duration_seconds=(end - current.timestamp).total_seconds(),
                )
                continue

        open_by_bucket[event.bucket_id] = len(merged)
        merged.append(event)

    if len(merged) != len(ordered):
        logger.debug("Merged %d duplicate captures", len(ordered) - len(merged))
    return merged


def normalize(
    raw_events_by_bucket: Mapping[str, BucketExport | Sequence[RawEvent]],
    options: NormalizeOptions | None = None,
    now: datetime | None = None,
) -> list[NormalizedEvent]:
    """Turn an export into a sorted, deduplicated event list."""

    options = options or NormalizeOptions()
    now = now or datetime.now(timezone.utc)

    cutoff = now - timedelta(days=options.days_back)

    # Ingestion order (bucket, then position) breaks timestamp ties
    events: list[NormalizedEvent] = []
    for bucket in raw_events_by_bucket.values():
        for sequence, event in enumerate(_raw_events(bucket)):
            if _is_kept(event, options, cutoff):
                events.append(_to_normalized(event, sequence))

    return deduplicate(events)


def merge_imports(
    existing: Iterable[NormalizedEvent],
    incoming: Iterable[NormalizedEvent],
) -> list[NormalizedEvent]:
    """Combine a stored import with a new one without double counting."""

    return deduplicate([*existing, *incoming])


def bucket_metadata(
    buckets: Mapping[str, BucketExport],
    options: NormalizeOptions | None = None,
    now: datetime | None = None,
) -> list[BucketMetadata]:
    """Per-bucket summary of the events that survive filtering."""

    options = options or NormalizeOptions()
    now = now or datetime.now(timezone.utc)

    metadata = []
    for bucket in buckets.values():
        kept = filter_events(bucket.events, options, now)
        if not kept:
            continue
        timestamps = [event.timestamp for event in kept]
        metadata.append(
            BucketMetadata(
                id=bucket.id,
                type=bucket.type_name,
                event_count=len(kept),
                start=min(timestamps),
                end=max(timestamps),
            )
        )
    return metadata


def merge_bucket_metadata(
    existing: list[BucketMetadata],
    incoming: list[BucketMetadata],
) -> list[BucketMetadata]:
    merged = {item.id: replace(item) for item in existing}
    for item in incoming:
        current = merged.get(item.id)
        if current is None:
            merged[item.id] = replace(item)
            continue
        current.event_count += item.event_count
        current.start = min(current.start, item.start)
        current.end = max(current.end, item.end)
    return list(merged.values())


def apply_visibility(
    events: Iterable[NormalizedEvent],
    buckets: Iterable[BucketMetadata],
) -> list[NormalizedEvent]:
    hidden_buckets = {bucket.id for bucket in buckets if not bucket.is_visible}
    return [replace(event, hidden=event.bucket_id in hidden_buckets) for event in events]


def import_preview(
    buckets: Mapping[str, BucketExport],
    options: NormalizeOptions | None = None,
    now: datetime | None = None,
) -> ImportPreview:
    """Counts shown before an import is applied."""

    options = options or NormalizeOptions()
    now = now or datetime.now(timezone.utc)

    total = 0
    timestamps: list[datetime] = []
    for bucket in buckets.values():
        total += len(bucket.events)
        timestamps.extend(event.timestamp for event in filter_events(bucket.events, options, now))

    bucket_types = list(dict.fromkeys(bucket.type_name for bucket in buckets.values()))
    return ImportPreview(
        bucket_count=len(buckets),
        total_event_count=total,
        filtered_event_count=len(timestamps),
        start=min(timestamps, default=None),
        end=max(timestamps, default=None),
        bucket_types=bucket_types,
    )


def group_adjacent_events(
    events: Sequence[NormalizedEvent],
    max_gap_minutes: float = DEFAULT_GROUP_GAP_MINUTES,
) -> list[EventGroup]:
    """Collapse rapid switching between the same activity into groups."""

    max_gap = timedelta(minutes=max_gap_minutes)
    groups: list[EventGroup] = []

    for event in events:
        current = groups[-1] if groups else None
        if (
            current is None
            or current.display_name != event.display_name
            or event.timestamp - current.end > max_gap
        ):
            groups.append(
                EventGroup(
                    display_name=event.display_name,
                    color=event.color,
                    occurrences=[event],
                    total_duration_seconds=event.duration_seconds,
                    start=event.timestamp,
                    end=event.end,
                )
            )
            continue

        current.occurrences.append(event)
        current.total_duration_seconds += event.duration_seconds
        current.end = max(current.end, event.end)

    return groups
