"""Pomodoro focus timer and its session ledger."""

import logging
import threading
import uuid
from dataclasses import dataclass, field, replace
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import TYPE_CHECKING, Callable, Iterable

from .errors import PersistenceError

if TYPE_CHECKING:
    from kairos.ports.planner_repo import PlannerRepository

logger = logging.getLogger(__name__)

DEFAULT_FOCUS_SECONDS = 25 * 60
DEFAULT_BREAK_SECONDS = 5 * 60

# Mode names written by the old history format
_LEGACY_MODES = {"odak": "focus", "mola": "break", "breaktime": "break"}

# Numeric timestamps in old history records count seconds from this instant
_LEGACY_EPOCH = datetime(2001, 1, 1, tzinfo=timezone.utc)


def _parse_timestamp(value: str | float | int) -> datetime:
    if isinstance(value, (int, float)):
        return (_LEGACY_EPOCH + timedelta(seconds=value)).astimezone().replace(tzinfo=None)
    return datetime.fromisoformat(value)


class PomodoroMode(Enum):
    FOCUS = "focus"
    BREAK = "break"

    @classmethod
    def parse(cls, value: str | None) -> "PomodoroMode":
        text = (value or "focus").strip().lower()
        return cls(_LEGACY_MODES.get(text, text))


@dataclass
class PomodoroSession:
    """A recorded focus or break interval."""

    start: datetime
    duration_seconds: int
    mode: PomodoroMode = PomodoroMode.FOCUS
    end: datetime | None = None
    entry_id: str | None = None
    notes: str = ""
    was_completed: bool = False
    id: str = field(default_factory=lambda: str(uuid.uuid4()))

    def __post_init__(self):
        if self.duration_seconds < 0:
            raise ValueError(f"Session duration must be >= 0, got {self.duration_seconds}")

    @property
    def duration_minutes(self) -> int:
        return self.duration_seconds // 60

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "start": self.start.isoformat(),
            "end": self.end.isoformat() if self.end else None,
            "mode": self.mode.value,
            "duration_seconds": self.duration_seconds,
            "entry_id": self.entry_id,
            "notes": self.notes,
            "was_completed": self.was_completed,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "PomodoroSession":
        """Build a session from a stored record; legacy camelCase keys are accepted."""
        end = data.get("end")
        kwargs = {}
        if data.get("id"):
            kwargs["id"] = str(data["id"])
        return cls(
            start=_parse_timestamp(data["start"]),
            end=_parse_timestamp(end) if end else None,
            mode=PomodoroMode.parse(data.get("mode")),
            duration_seconds=int(data.get("duration_seconds", data.get("durationSeconds", 0))),
            entry_id=data.get("entry_id", data.get("eventID")),
            notes=data.get("notes", ""),
            was_completed=bool(data.get("was_completed", data.get("wasCompleted", False))),
            **kwargs,
        )


class SessionLedger:
    """
    Log of recorded sessions.

    Sessions arrive fully formed; editing one is a plain field update.
    """

    def __init__(
        self,
        repository: "PlannerRepository | None" = None,
        sessions: Iterable[PomodoroSession] = (),
    ):
        self.repository = repository
        self._lock = threading.RLock()
        self._sessions: dict[str, PomodoroSession] = {s.id: replace(s) for s in sessions}

    def __len__(self) -> int:
        return len(self._sessions)

    def append(self, session: PomodoroSession) -> str:
        with self._lock:
            stored = replace(session)
            self._sessions[stored.id] = stored
            logger.info(
                f"Recorded {stored.mode.value} session of {stored.duration_seconds}s"
                f" (completed={stored.was_completed})"
            )
            self._persist(stored)
            return stored.id

    def restore(self, sessions: Iterable[PomodoroSession]) -> int:
        """
        Add sessions recovered from another source. Returns how many were added.

        Each session is saved before it is kept. Unlike append, a
        PersistenceError propagates so the caller can keep its own copy.
        """
        count = 0
        with self._lock:
            for session in sessions:
                stored = replace(session)
                if self.repository is not None:
                    self.repository.save_session(stored)
                self._sessions[stored.id] = stored
                count += 1
        return count

    def update(self, session: PomodoroSession) -> bool:
        with self._lock:
            if session.id not in self._sessions:
                logger.debug(f"Update ignored, unknown session {session.id}")
                return False
            stored = replace(session)
            self._sessions[stored.id] = stored
            self._persist(stored)
            return True

    def delete(self, session_id: str) -> bool:
        with self._lock:
            if self._sessions.pop(session_id, None) is None:
                logger.debug(f"Delete ignored, unknown session {session_id}")
                return False
            if self.repository is not None:
                try:
                    self.repository.delete_session(session_id)
                except PersistenceError as e:
                    logger.error(f"Failed to delete session {session_id}: {e}")
            return True

    def get(self, session_id: str) -> PomodoroSession | None:
        with self._lock:
            session = self._sessions.get(session_id)
            return replace(session) if session else None

    def find(self, id_prefix: str) -> PomodoroSession | None:
        matches = [s for s in self.all() if s.id.startswith(id_prefix)]
        return matches[0] if len(matches) == 1 else None

    def all(self) -> list[PomodoroSession]:
        """All sessions, newest first."""
        with self._lock:
            sessions = [replace(s) for s in self._sessions.values()]
        return sorted(sessions, key=lambda s: s.start, reverse=True)

    def sessions_for(self, entry_id: str) -> list[PomodoroSession]:
        return [s for s in self.all() if s.entry_id == entry_id]

    def count_for(self, entry_id: str) -> int:
        return len(self.sessions_for(entry_id))

    def total_focus_seconds(self, entry_id: str | None = None) -> int:
        sessions = self.sessions_for(entry_id) if entry_id else self.all()
        return sum(s.duration_seconds for s in sessions if s.mode is PomodoroMode.FOCUS)

    def _persist(self, session: PomodoroSession) -> None:
        if self.repository is None:
            return
        try:
            self.repository.save_session(session)
        except PersistenceError as e:
            logger.error(f"Failed to save session {session.id}: {e}")


class TimerState(Enum):
    IDLE = "idle"
    RUNNING = "running"
    PAUSED = "paused"
    EDITING = "editing"
    COMPLETED = "completed"


class PomodoroTimer:
    """
    Countdown timer advanced by explicit one-second ticks.

    Nothing reaches the ledger until the session is completed, either by
    ticking through the planned duration or by calling complete(). Pausing
    and resetting never record anything.
    """

    def __init__(
        self,
        ledger: SessionLedger,
        mode: PomodoroMode = PomodoroMode.FOCUS,
        focus_seconds: int = DEFAULT_FOCUS_SECONDS,
        break_seconds: int = DEFAULT_BREAK_SECONDS,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.ledger = ledger
        self.mode = mode
        self.focus_seconds = focus_seconds
        self.break_seconds = break_seconds
        self.clock = clock
        self.state = TimerState.IDLE
        self.elapsed = 0
        self.custom_seconds: int | None = None
        self.entry_id: str | None = None
        self.note = ""

    @property
    def planned_seconds(self) -> int:
        if self.custom_seconds is not None:
            return self.custom_seconds
        return self.focus_seconds if self.mode is PomodoroMode.FOCUS else self.break_seconds

    @property
    def remaining(self) -> int:
        return max(self.planned_seconds - self.elapsed, 0)

    @property
    def progress(self) -> float:
        planned = self.planned_seconds
        return 0.0 if planned == 0 else min(self.elapsed / planned, 1.0)

    @property
    def is_running(self) -> bool:
        return self.state is TimerState.RUNNING

    def start(self) -> None:
        """Start or resume. A timer already at its planned total restarts from zero."""
        if self.state is TimerState.EDITING:
            raise RuntimeError("Finish editing the duration before starting")
        if self.elapsed >= self.planned_seconds:
            self.elapsed = 0
        self.state = TimerState.RUNNING

    def pause(self) -> None:
        if self.state is TimerState.RUNNING:
            self.state = TimerState.PAUSED

    def tick(self, seconds: int = 1) -> PomodoroSession | None:
        """
        Advance a running timer.

        Returns the recorded session when this tick reaches the planned
        duration, otherwise None.
        """
        if self.state is not TimerState.RUNNING:
            return None
        self.elapsed = min(self.elapsed + seconds, self.planned_seconds)
        if self.elapsed >= self.planned_seconds:
            return self.complete()
        return None

    def complete(self) -> PomodoroSession:
        """Stop and record exactly one session for the time spent so far."""
        if self.state is TimerState.EDITING:
            raise RuntimeError("Cannot complete while editing the duration")
        planned = self.planned_seconds
        seconds = min(self.elapsed, planned)
        end = self.clock()
        session = PomodoroSession(
            start=end - timedelta(seconds=seconds),
            end=end,
            mode=self.mode,
            duration_seconds=seconds,
            entry_id=self.entry_id,
            notes=self.note.strip(),
            was_completed=self.elapsed >= planned,
        )
        self.ledger.append(session)
        self.note = ""
        self.elapsed = 0
        self.state = TimerState.COMPLETED
        return session

    def reset(self) -> None:
        """Discard the current run without recording it."""
        self.state = TimerState.IDLE
        self.elapsed = 0
        self.custom_seconds = None
        self.entry_id = None

    def switch_mode(self, mode: PomodoroMode) -> None:
        self.pause()
        self.mode = mode
        self.elapsed = 0
        self.state = TimerState.IDLE

    def link(self, entry_id: str | None) -> None:
        self.entry_id = entry_id

    def begin_edit(self) -> None:
        self.state = TimerState.EDITING

    def commit_edit(self, minutes: int, seconds: int = 0) -> None:
        """Set a custom duration (at least one second) and rewind."""
        seconds = min(59, max(0, seconds))
        self.custom_seconds = max(1, minutes * 60 + seconds)
        self.elapsed = 0
        self.state = TimerState.IDLE
