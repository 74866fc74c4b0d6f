from dataclasses import replace
from datetime import date, datetime, timedelta
from zoneinfo import ZoneInfo

import pytest

from activity_engine.schema import BucketType, NormalizedEvent
from activity_engine.time_blocks import (
    block_breakdown,
    block_windows,
    chunk,
    chunk_days,
    floor_to_block,
    merge,
    select_dominant,
)

UTC = ZoneInfo("UTC")
DAY = datetime(2025, 3, 12, tzinfo=UTC)


def at(hour, minute=0, second=0):
    return DAY.replace(hour=hour, minute=minute, second=second)


def event(name, start, minutes, bucket_type=BucketType.WINDOW, bucket="window"):
    return NormalizedEvent(
        id=f"{bucket}-{name}-{start:%H%M}",
        bucket_id=bucket,
        bucket_type=bucket_type,
        timestamp=start,
        duration_seconds=minutes * 60,
        display_name=name,
        color="blue",
    )


def afk(start, minutes, away=True):
    name, status = ("Away", "afk") if away else ("Active", "not-afk")
    return replace(event(name, start, minutes, BucketType.AFK_STATUS, "afk"), afk_status=status)


def test_block_windows_tile_the_day():
    windows = block_windows(DAY, DAY + timedelta(days=1), 15)
    assert len(windows) == 96
    assert windows[0][0] == DAY
    assert windows[-1][1] == DAY + timedelta(days=1)
    assert all(left[1] == right[0] for left, right in zip(windows, windows[1:]))


def test_block_windows_clip_last_window():
    windows = block_windows(at(9), at(9, 40), 15)
    assert windows[-1] == (at(9, 30), at(9, 40))


def test_chunk_include_empty_covers_whole_day():
    blocks = chunk([event("Code", at(9), 30)], 15, DAY, DAY + timedelta(days=1), UTC, include_empty=True)
    assert len(blocks) == 96
    assert sum(1 for block in blocks if block.dominant_event is not None) == 2
    assert blocks[0].dominant_event is None
    assert blocks[0].total_covered_seconds == 0


def test_chunk_omits_empty_blocks_by_default():
    blocks = chunk([event("Code", at(9), 30)], 15, DAY, DAY + timedelta(days=1), UTC)
    assert [(b.start_time, b.end_time) for b in blocks] == [(at(9), at(9, 15)), (at(9, 15), at(9, 30))]
    assert chunk([], 15) == []


def test_chunk_floors_to_block_boundary_without_range():
    blocks = chunk([event("Code", at(9, 7), 10)], 15, tz=UTC)
    assert blocks[0].start_time == at(9)
    assert blocks[-1].end_time == at(9, 17)


def test_dominant_is_largest_overlap():
    events = [event("Mail", at(9), 5), event("Code", at(9, 5), 10)]
    dominant, afk_only = select_dominant(events, at(9), at(9, 15))
    assert dominant.display_name == "Code"
    assert afk_only is False


def test_dominant_tie_goes_to_earlier_start():
    events = [event("Code", at(9, 5), 5), event("Mail", at(9), 5)]
    dominant, _ = select_dominant(events, at(9), at(9, 15))
    assert dominant.display_name == "Mail"


def test_afk_never_dominates():
    events = [afk(at(9), 15), event("Code", at(9), 1)]
    dominant, afk_only = select_dominant(events, at(9), at(9, 15))
    assert dominant.display_name == "Code"
    assert afk_only is False


def test_afk_only_block_is_flagged():
    blocks = chunk([afk(at(9), 15)], 15, at(9), at(9, 15), UTC)
    assert blocks[0].afk_only is True


def test_inactive_sentinel_loses_to_anything():
    events = [event("loginwindow", at(9), 14), event("Code", at(9, 14), 1)]
    dominant, _ = select_dominant(events, at(9), at(9, 15))
    assert dominant.display_name == "Code"

    dominant, _ = select_dominant([event("loginwindow", at(9), 14)], at(9), at(9, 15))
    assert dominant.display_name == "loginwindow"


def test_inactive_blocks_merge_across_case():
    blocks = chunk(
        [event("loginwindow", at(9), 15), event("LoginWindow", at(9, 15), 15)],
        15,
        at(9),
        at(9, 30),
        UTC,
    )
    merged = merge(blocks)
    assert len(merged) == 1
    assert merged[0].start_time == at(9)
    assert merged[0].end_time == at(9, 30)


def test_merge_joins_same_activity_and_conserves_coverage():
    blocks = chunk([event("Code", at(9), 40), event("Mail", at(9, 40), 20)], 15, at(9), at(10), UTC)
    merged = merge(blocks)

    assert [(b.dominant_event.display_name, b.start_time, b.end_time) for b in merged] == [
        ("Code", at(9), at(9, 45)),
        ("Mail", at(9, 45), at(10)),
    ]
    assert sum(b.total_covered_seconds for b in merged) == pytest.approx(sum(b.total_covered_seconds for b in blocks))
    assert merged[0].end_time - merged[0].start_time == (blocks[0].end_time - blocks[0].start_time) * 3


def test_merge_keeps_gaps():
    blocks = chunk([event("Code", at(9), 15), event("Code", at(10), 15)], 15, at(9), at(10, 15), UTC)
    assert len(merge(blocks)) == 2


def test_merge_does_not_mutate_input():
    blocks = chunk([event("Code", at(9), 30)], 15, at(9), at(9, 30), UTC)
    original_members = list(blocks[0].member_events)
    merge(blocks)
    assert blocks[0].member_events == original_members
    assert blocks[0].end_time == at(9, 15)


def test_floor_to_block_uses_local_midnight():
    tz = ZoneInfo("Asia/Kolkata")
    moment = datetime(2025, 3, 12, 9, 52, tzinfo=tz)
    assert floor_to_block(moment, timedelta(minutes=15), tz) == datetime(2025, 3, 12, 9, 45, tzinfo=tz)


def test_block_breakdown_skips_active_status_and_sentinel():
    events = [
        afk(at(9), 15, away=False),
        event("loginwindow", at(9), 3),
        event("Mail", at(9, 10), 5),
        event("Code", at(9, 3), 6),
    ]
    blocks = chunk(events, 15, at(9), at(9, 15), UTC)
    shares = block_breakdown(blocks[0])
    assert [share.event.display_name for share in shares] == ["Code", "Mail"]
    assert shares[0].overlap_seconds == 360
    assert shares[0].percentage == pytest.approx(40.0)


def test_chunk_days_skips_hidden_events():
    visible = event("Code", at(9), 15)
    hidden = replace(event("Secret", at(10), 15), hidden=True)
    days = chunk_days([visible, hidden], date(2025, 3, 12), date(2025, 3, 13), 15, UTC)
    assert [b.dominant_event.display_name for b in days[date(2025, 3, 12)]] == ["Code"]
    assert days[date(2025, 3, 13)] == []


def test_chunk_days_splits_events_at_midnight():
    late = event("Code", at(23, 30), 60)
    days = chunk_days([late], date(2025, 3, 12), date(2025, 3, 13), 15, UTC)
    first, second = days[date(2025, 3, 12)], days[date(2025, 3, 13)]
    assert first[-1].end_time == DAY + timedelta(days=1)
    assert second[0].start_time == DAY + timedelta(days=1)
    assert sum(b.total_covered_seconds for b in first + second) == 3600


def test_block_breakdown_keeps_afk_rows_without_known_status():
    unknown = replace(afk(at(9), 5, away=False), afk_status=None)
    blocks = chunk([unknown, event("Code", at(9, 5), 10)], 15, at(9), at(9, 15), UTC)
    shares = block_breakdown(blocks[0])
    assert [(share.event.display_name, share.event.afk_status) for share in shares] == [
        ("Active", None),
        ("Code", None),
    ]
