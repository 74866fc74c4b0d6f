"""Fixed-size time blocks over the passive event stream."""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass, replace
from datetime import date, datetime, timedelta, tzinfo

from activity_engine.config import (
    DEFAULT_BLOCK_SIZE_MINUTES,
    INACTIVE_ACTIVITY_NAME,
    LOCAL_TIMEZONE,
)
from activity_engine.payloads import NOT_AFK_STATUS
from activity_engine.schema import BucketType, NormalizedEvent, TimeBlock
from activity_engine.timeutils import iter_days, start_of_day


@dataclass
class BlockShare:
    event: NormalizedEvent
    overlap_seconds: float
    percentage: float


def _is_afk(event: NormalizedEvent) -> bool:
    return event.bucket_type is BucketType.AFK_STATUS


def _is_inactive(event: NormalizedEvent) -> bool:
    return event.display_name.lower() == INACTIVE_ACTIVITY_NAME


def overlap_seconds(event: NormalizedEvent, start: datetime, end: datetime) -> float:
    """Seconds of ``event`` inside the half-open window [start, end)."""

    overlap = min(event.end, end) - max(event.timestamp, start)
    return max(overlap.total_seconds(), 0.0)


def floor_to_block(moment: datetime, block_size: timedelta, tz: tzinfo = LOCAL_TIMEZONE) -> datetime:
    """Round down to a block boundary counted from the moment's local midnight."""

    midnight = start_of_day(moment, tz)
    return midnight + ((moment - midnight) // block_size) * block_size


def block_windows(
    day_start: datetime,
    day_end: datetime,
    block_size_minutes: float = DEFAULT_BLOCK_SIZE_MINUTES,
) -> list[tuple[datetime, datetime]]:
    """Half-open windows tiling [day_start, day_end) with no gaps or overlaps.

    The final window is clipped to ``day_end`` when the range is not a
    whole number of blocks.
    """

    block_size = timedelta(minutes=block_size_minutes)
    windows = []
    start = day_start
    while start < day_end:
        end = min(start + block_size, day_end)
        windows.append((start, end))
        start = end
    return windows


def select_dominant(
    events: Sequence[NormalizedEvent],
    start: datetime,
    end: datetime,
) -> tuple[NormalizedEvent, bool]:
    """Pick the block's dominant event.

    AFK events never compete. The inactive sentinel competes only when
    nothing else does. Largest overlap wins, earliest start breaks ties.
    Returns the event and whether the block held AFK events only.
    """

    candidates = [event for event in events if not _is_afk(event)]
    if not candidates:
        return events[0], True

    meaningful = [event for event in candidates if not _is_inactive(event)]
    pool = meaningful or candidates

    def rank(item):
        index, event = item
        return (-overlap_seconds(event, start, end), max(event.timestamp, start), event.timestamp, index)

    return min(enumerate(pool), key=rank)[1], False


def chunk(
    events: Sequence[NormalizedEvent],
    block_size_minutes: float = DEFAULT_BLOCK_SIZE_MINUTES,
    day_start: datetime | None = None,
    day_end: datetime | None = None,
    tz: tzinfo = LOCAL_TIMEZONE,
    include_empty: bool = False,
) -> list[TimeBlock]:
    """Split events into fixed-size blocks and find each block's dominant activity.

    Blocks without any overlapping event are omitted unless
    ``include_empty`` is set, in which case the output tiles the whole
    range and empty blocks carry no dominant event.
    """

    if not events and (day_start is None or day_end is None):
        return []

    block_size = timedelta(minutes=block_size_minutes)
    range_start = day_start if day_start is not None else min(e.timestamp for e in events)
    range_end = day_end if day_end is not None else max(e.end for e in events)
    if day_start is None:
        range_start = floor_to_block(range_start, block_size, tz)

    ordered = sorted(events, key=lambda e: e.timestamp)
    blocks: list[TimeBlock] = []

    for start, end in block_windows(range_start, range_end, block_size_minutes):
        members = [event for event in ordered if event.timestamp < end and event.end > start]
        if not members:
            if include_empty:
                blocks.append(TimeBlock(start, end, None, [], 0.0))
            continue

        dominant, afk_only = select_dominant(members, start, end)
        blocks.append(
            TimeBlock(
                start_time=start,
                end_time=end,
                dominant_event=dominant,
                member_events=members,
                total_covered_seconds=sum(overlap_seconds(e, start, end) for e in members),
                afk_only=afk_only,
            )
        )

    return blocks


def is_inactive_block(block: TimeBlock) -> bool:
    """True when every non-AFK event in the block is the inactive sentinel."""

    active = [event for event in block.member_events if not _is_afk(event)]
    return bool(active) and all(_is_inactive(event) for event in active)


def _same_activity(left: TimeBlock, right: TimeBlock) -> bool:
    if left.dominant_event is None or right.dominant_event is None:
        return False
    return left.dominant_event.display_name == right.dominant_event.display_name


def merge(blocks: Iterable[TimeBlock]) -> list[TimeBlock]:
    """Join touching blocks that share a dominant activity or are both inactive."""

    merged: list[TimeBlock] = []
    for block in blocks:
        current = merged[-1] if merged else None
        if (
            current is not None
            and current.end_time == block.start_time
            and (_same_activity(current, block) or (is_inactive_block(current) and is_inactive_block(block)))
        ):
            merged[-1] = replace(
                current,
                end_time=block.end_time,
                member_events=[*current.member_events, *block.member_events],
                total_covered_seconds=current.total_covered_seconds + block.total_covered_seconds,
                afk_only=current.afk_only and block.afk_only,
            )
        else:
            merged.append(replace(block, member_events=list(block.member_events)))
    return merged


def block_breakdown(block: TimeBlock) -> list[BlockShare]:
    """Share of the block taken by each event, earliest first."""

    block_seconds = (block.end_time - block.start_time).total_seconds()
    has_meaningful = any(not _is_afk(e) and not _is_inactive(e) for e in block.member_events)

    shares = []
    for event in block.member_events:
        if _is_afk(event) and event.afk_status == NOT_AFK_STATUS:
            continue
        if has_meaningful and _is_inactive(event):
            continue
        seconds = overlap_seconds(event, block.start_time, block.end_time)
        if seconds > 0:
            shares.append(BlockShare(event, seconds, seconds / block_seconds * 100))

    shares.sort(key=lambda share: share.event.timestamp)
    return shares


def chunk_days(
    events: Sequence[NormalizedEvent],
    first_day: date,
    last_day: date,
    block_size_minutes: float = DEFAULT_BLOCK_SIZE_MINUTES,
    tz: tzinfo = LOCAL_TIMEZONE,
) -> dict[date, list[TimeBlock]]:
    """Merged blocks for each calendar day in [first_day, last_day]."""

    visible = [event for event in events if not event.hidden]
    days = {}
    for day in iter_days(first_day, last_day):
        day_start = start_of_day(day, tz)
        day_end = start_of_day(day + timedelta(days=1), tz)
        day_events = [e for e in visible if e.timestamp < day_end and e.end > day_start]
        days[day] = merge(chunk(day_events, block_size_minutes, day_start, day_end, tz))
    return days
