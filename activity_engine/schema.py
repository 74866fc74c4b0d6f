"""Core data schema for activity events, check-ins and routines."""

from dataclasses import dataclass, field
from datetime import date, datetime, timedelta, timezone, tzinfo
from enum import Enum
from typing import Optional


class BucketType(str, Enum):
    """Kind of passive tracking source an event was captured from."""

    WINDOW = "window"
    EDITOR = "editor"
    BROWSER = "browser"
    AFK_STATUS = "afkstatus"
    OTHER = "other"

    @classmethod
    def from_raw(cls, type_name: str) -> "BucketType":
        return _RAW_BUCKET_TYPES.get((type_name or "").strip().lower(), cls.OTHER)


_RAW_BUCKET_TYPES = {
    "window": BucketType.WINDOW,
    "currentwindow": BucketType.WINDOW,
    "editor": BucketType.EDITOR,
    "app.editor.activity": BucketType.EDITOR,
    "browser": BucketType.BROWSER,
    "web": BucketType.BROWSER,
    "web.tab.current": BucketType.BROWSER,
    "afkstatus": BucketType.AFK_STATUS,
}


@dataclass(frozen=True)
class RawEvent:
    """Event exactly as captured by the tracker export."""

    timestamp: datetime
    duration_seconds: float
    bucket_id: str
    bucket_type: BucketType
    type_name: str
    data: dict = field(default_factory=dict)


@dataclass
class BucketExport:
    """One bucket of an import document with its parsed events."""

    id: str
    type_name: str
    bucket_type: BucketType
    events: list[RawEvent] = field(default_factory=list)


@dataclass(frozen=True)
class NormalizedEvent:
    """Normalized passive event record used by the timeline modules."""

    id: str
    bucket_id: str
    bucket_type: BucketType
    timestamp: datetime
    duration_seconds: float
    display_name: str
    color: str
    hidden: bool = False
    afk_status: Optional[str] = None

    @property
    def end(self) -> datetime:
        return self.timestamp + timedelta(seconds=self.duration_seconds)


@dataclass
class BucketMetadata:
    id: str
    type: str
    event_count: int
    start: datetime
    end: datetime
    is_visible: bool = True


@dataclass
class ImportPreview:
    bucket_count: int
    total_event_count: int
    filtered_event_count: int
    start: Optional[datetime]
    end: Optional[datetime]
    bucket_types: list[str]


@dataclass
class EventGroup:
    """Run of consecutive events sharing a display name."""

    display_name: str
    color: str
    occurrences: list[NormalizedEvent]
    total_duration_seconds: float
    start: datetime
    end: datetime


@dataclass
class TimeBlock:
    """Half-open window [start_time, end_time) of the passive timeline."""

    start_time: datetime
    end_time: datetime
    dominant_event: Optional[NormalizedEvent]
    member_events: list[NormalizedEvent]
    total_covered_seconds: float
    afk_only: bool = False


@dataclass
class Impact:
    """Manual check-in. Its duration is always derived from its successor."""

    activity_name: str
    timestamp: datetime
    goal_id: Optional[str] = None
    metrics: dict[str, float] = field(default_factory=dict)


@dataclass(frozen=True)
class DurationSegment:
    """Part of one impact attributed to a single calendar day."""

    day: date
    activity_name: str
    start: datetime
    end: datetime
    goal_id: Optional[str] = None
    running: bool = False

    @property
    def duration(self) -> timedelta:
        # same-zone subtraction ignores DST offsets
        return self.end.astimezone(timezone.utc) - self.start.astimezone(timezone.utc)

    @property
    def duration_minutes(self) -> int:
        return int(self.duration.total_seconds() // 60)


@dataclass
class TaskTemplate:
    id: str
    name: str
    description: Optional[str] = None


@dataclass
class Routine:
    """Recurring set of tasks. Without a cron expression it is manual only."""

    id: str
    name: str
    cron_expression: Optional[str] = None
    tasks: list[TaskTemplate] = field(default_factory=list)
    goal_ids: list[str] = field(default_factory=list)
    goal_id: Optional[str] = None  # legacy single-goal link


@dataclass
class Task:
    id: str
    name: str
    status: str
    created_at: datetime
    routine_id: Optional[str] = None
    routine_instance_id: Optional[str] = None
    goal_id: Optional[str] = None
    description: Optional[str] = None
    completed_at: Optional[datetime] = None


@dataclass(frozen=True)
class RoutineCompletion:
    """All tasks of one triggered routine instance were finished."""

    routine_id: str
    routine_instance_id: str
    completed_at: datetime
    task_count: int
    routine_name: str = ""


@dataclass(frozen=True)
class SchedulerWatermark:
    """Epoch seconds up to which routine triggers were evaluated; 0 means never."""

    last_checked: float = 0.0

    @property
    def is_initial(self) -> bool:
        return self.last_checked == 0

    def as_datetime(self, tz: tzinfo) -> datetime:
        return datetime.fromtimestamp(self.last_checked, tz)

    @classmethod
    def at(cls, moment: datetime) -> "SchedulerWatermark":
        return cls(last_checked=moment.timestamp())


@dataclass
class StreakInfo:
    current: int
    longest: int
    last_completion_date: Optional[date]
    longest_start: Optional[date] = None
