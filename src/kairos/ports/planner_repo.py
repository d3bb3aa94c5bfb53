"""Planner persistence interface."""

from dataclasses import dataclass, field
from typing import Protocol

from kairos.core.entries import PlannerEntry
from kairos.core.notes import Note
from kairos.core.pomodoro import PomodoroSession


@dataclass
class Snapshot:
    """Everything a repository holds, as loaded at startup."""

    entries: list[PlannerEntry] = field(default_factory=list)
    sessions: list[PomodoroSession] = field(default_factory=list)
    notes: list[Note] = field(default_factory=list)
    tags: list[str] = field(default_factory=list)
    projects: list[str] = field(default_factory=list)
    project_tags: dict[str, str] = field(default_factory=dict)


class PlannerRepository(Protocol):
    """
    Interface for storing planner state.

    Save/delete methods raise PersistenceError on failure; load_all raises
    CorruptStoreError when the storage cannot be read at all.
    """

    def load_all(self) -> Snapshot:
        """Load every stored record."""
        ...

    def save_entry(self, entry: PlannerEntry) -> None:
        """Insert or replace an entry."""
        ...

    def delete_entry(self, entry_id: str) -> None:
        ...

    def save_session(self, session: PomodoroSession) -> None:
        """Insert or replace a pomodoro session."""
        ...

    def delete_session(self, session_id: str) -> None:
        ...

    def save_note(self, note: Note) -> None:
        ...

    def delete_note(self, note_id: str) -> None:
        ...

    def save_taxonomy(
        self, tags: list[str], projects: list[str], project_tags: dict[str, str]
    ) -> None:
        """Replace the registered tags, projects and project-to-tag hints."""
        ...

    def reset(self) -> None:
        """Wipe the backing storage so it can be recreated from scratch."""
        ...
