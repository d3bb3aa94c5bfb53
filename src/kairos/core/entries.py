"""Planner entry domain model - no I/O dependencies."""

import uuid
from dataclasses import dataclass, field
from datetime import date, datetime, time
from enum import Enum, IntEnum


class Color(Enum):
    """Display palette for entries."""

    BLUE = "blue"
    GREEN = "green"
    RED = "red"
    ORANGE = "orange"
    PURPLE = "purple"
    PINK = "pink"

    @classmethod
    def parse(cls, value: "str | Color | None") -> "Color":
        """Map a color name to the palette, falling back to blue."""
        if isinstance(value, Color):
            return value
        try:
            return cls((value or "").strip().lower())
        except ValueError:
            return cls.BLUE


class Status(Enum):
    """Task workflow status."""

    TODO = "To Do"
    IN_PROGRESS = "In Progress"
    DONE = "Done"

    @classmethod
    def parse(cls, value: "str | Status | None") -> "Status":
        if isinstance(value, Status):
            return value
        wanted = (value or "").strip().lower().replace("_", " ")
        for status in cls:
            if status.value.lower() == wanted or status.name.lower().replace("_", " ") == wanted:
                return status
        return cls.TODO


class Frequency(Enum):
    NONE = "none"
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"


class Weekday(IntEnum):
    """Weekday numbering matches date.weekday()."""

    MONDAY = 0
    TUESDAY = 1
    WEDNESDAY = 2
    THURSDAY = 3
    FRIDAY = 4
    SATURDAY = 5
    SUNDAY = 6

    @classmethod
    def parse(cls, value: "str | int") -> "Weekday":
        """Accept 0-6, full names or three-letter abbreviations."""
        if isinstance(value, int):
            return cls(value)
        text = value.strip().lower()
        if text.isdigit():
            return cls(int(text))
        for day in cls:
            if day.name.lower() == text or day.name.lower()[:3] == text[:3]:
                return day
        raise ValueError(f"Unknown weekday: {value!r}")


@dataclass(frozen=True)
class RecurrenceRule:
    """How an entry repeats. A NONE rule is the same as no rule."""

    frequency: Frequency = Frequency.NONE
    interval: int = 1
    weekdays: frozenset[Weekday] = frozenset()
    until: date | None = None

    def __post_init__(self):
        if self.interval < 1:
            raise ValueError(f"Recurrence interval must be >= 1, got {self.interval}")
        # Accept any iterable of weekday-likes
        object.__setattr__(self, "weekdays", frozenset(Weekday(d) for d in self.weekdays))
        if isinstance(self.until, datetime):
            object.__setattr__(self, "until", self.until.date())

    @property
    def is_enabled(self) -> bool:
        return self.frequency is not Frequency.NONE

    def to_dict(self) -> dict:
        return {
            "frequency": self.frequency.value,
            "interval": self.interval,
            "weekdays": sorted(int(d) for d in self.weekdays),
            "until": self.until.isoformat() if self.until else None,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "RecurrenceRule":
        until = data.get("until")
        return cls(
            frequency=Frequency(data.get("frequency") or "none"),
            interval=int(data.get("interval") or 1),
            weekdays=frozenset(Weekday(int(d)) for d in data.get("weekdays", [])),
            until=date.fromisoformat(until[:10]) if until else None,
        )


def _new_id() -> str:
    return str(uuid.uuid4())


@dataclass
class PlannerEntry:
    """
    A planner entry: either a task or a timed event.

    An entry whose start equals its end is a task (no time-of-day
    significance); anything else is a timed event.
    """

    title: str
    start: datetime
    end: datetime
    color: Color = Color.BLUE
    notes: str = ""
    tag: str = ""
    project: str = ""
    status: Status = Status.TODO
    assignee: str | None = None
    parent_id: str | None = None
    recurrence: RecurrenceRule | None = None
    id: str = field(default_factory=_new_id)

    def __post_init__(self):
        self.color = Color.parse(self.color)
        self.status = Status.parse(self.status)
        if self.recurrence is not None and not self.recurrence.is_enabled:
            self.recurrence = None

    @property
    def is_task(self) -> bool:
        return self.start == self.end

    @property
    def is_timed(self) -> bool:
        return not self.is_task

    @property
    def kind(self) -> str:
        return "task" if self.is_task else "event"

    @property
    def is_recurring(self) -> bool:
        return self.recurrence is not None

    @property
    def summary(self) -> str:
        """Tag, project and status joined for compact display."""
        parts = [self.tag, self.project, self.status.value]
        return " • ".join(p for p in parts if p)

    def duration_minutes(self) -> int:
        return int((local_time(self.end) - local_time(self.start)).total_seconds() / 60)

    def format_time(self) -> str:
        """Format the entry time for display."""
        if self.is_task:
            return "Task"
        return f"{self.start.strftime('%H:%M')}-{self.end.strftime('%H:%M')}"

    @classmethod
    def task_on(cls, day: date, title: str, **kwargs) -> "PlannerEntry":
        """Build a task pinned to the start of a day."""
        midnight = datetime.combine(day, time(0, 0))
        return cls(title=title, start=midnight, end=midnight, **kwargs)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "title": self.title,
            "start": self.start.isoformat(),
            "end": self.end.isoformat(),
            "color": self.color.value,
            "notes": self.notes,
            "tag": self.tag,
            "project": self.project,
            "status": self.status.value,
            "assignee": self.assignee,
            "parent_id": self.parent_id,
            "recurrence": self.recurrence.to_dict() if self.recurrence else None,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "PlannerEntry":
        recurrence = data.get("recurrence")
        return cls(
            id=data["id"],
            title=data.get("title", ""),
            start=datetime.fromisoformat(data["start"]),
            end=datetime.fromisoformat(data["end"]),
            color=data.get("color", "blue"),
            notes=data.get("notes", ""),
            tag=data.get("tag", ""),
            project=data.get("project", ""),
            status=data.get("status", Status.TODO.value),
            assignee=data.get("assignee"),
            parent_id=data.get("parent_id"),
            recurrence=RecurrenceRule.from_dict(recurrence) if recurrence else None,
        )


def local_time(dt: datetime) -> datetime:
    """Naive local wall time, so stored naive and aware timestamps compare."""
    if dt.tzinfo is not None:
        return dt.astimezone().replace(tzinfo=None)
    return dt


def local_day(dt: datetime) -> date:
    """Calendar day of a timestamp in the local timezone."""
    return local_time(dt).date()
