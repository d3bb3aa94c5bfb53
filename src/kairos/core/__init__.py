"""Functional core - planner domain logic with no I/O."""

from .entries import Color, Frequency, PlannerEntry, RecurrenceRule, Status, Weekday
from .errors import CorruptStoreError, PersistenceError
from .notes import Note, Notebook
from .pomodoro import PomodoroMode, PomodoroSession, PomodoroTimer, SessionLedger, TimerState
from .queries import Occurrence, entries_in_range, entries_on_day, expand_range, filter_entries
from .recurrence import occurrences
from .store import EntryStore
from .taxonomy import TaxonomyRegistry, normalize
from .validation import (
    InvalidDateRangeError,
    InvalidParentError,
    InvalidTitleError,
    ValidationError,
    conflicts,
    find_conflicts,
    validate,
)

__all__ = [
    # Entries
    "Color",
    "Frequency",
    "PlannerEntry",
    "RecurrenceRule",
    "Status",
    "Weekday",
    # Store and taxonomy
    "EntryStore",
    "TaxonomyRegistry",
    "normalize",
    # Validation
    "ValidationError",
    "InvalidTitleError",
    "InvalidDateRangeError",
    "InvalidParentError",
    "validate",
    "conflicts",
    "find_conflicts",
    # Recurrence and queries
    "occurrences",
    "Occurrence",
    "entries_on_day",
    "entries_in_range",
    "expand_range",
    "filter_entries",
    # Pomodoro
    "PomodoroMode",
    "PomodoroSession",
    "PomodoroTimer",
    "SessionLedger",
    "TimerState",
    # Notes
    "Note",
    "Notebook",
    # Errors
    "PersistenceError",
    "CorruptStoreError",
]
