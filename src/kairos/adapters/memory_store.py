"""In-memory storage adapter."""

from kairos.core.entries import PlannerEntry
from kairos.core.notes import Note
from kairos.core.pomodoro import PomodoroSession
from kairos.ports.planner_repo import Snapshot


class MemoryPlannerStore:
    """
    Non-persistent storage.

    Implements PlannerRepository protocol. Used when the file store cannot be
    opened, and in tests.
    """

    def __init__(self, snapshot: Snapshot | None = None):
        snapshot = snapshot or Snapshot()
        self.entries = {e.id: e for e in snapshot.entries}
        self.sessions = {s.id: s for s in snapshot.sessions}
        self.notes = {n.id: n for n in snapshot.notes}
        self.tags = list(snapshot.tags)
        self.projects = list(snapshot.projects)
        self.project_tags = dict(snapshot.project_tags)

    def load_all(self) -> Snapshot:
        return Snapshot(
            entries=list(self.entries.values()),
            sessions=list(self.sessions.values()),
            notes=list(self.notes.values()),
            tags=list(self.tags),
            projects=list(self.projects),
            project_tags=dict(self.project_tags),
        )

    def save_entry(self, entry: PlannerEntry) -> None:
        self.entries[entry.id] = entry

    def delete_entry(self, entry_id: str) -> None:
        self.entries.pop(entry_id, None)

    def save_session(self, session: PomodoroSession) -> None:
        self.sessions[session.id] = session

    def delete_session(self, session_id: str) -> None:
        self.sessions.pop(session_id, None)

    def save_note(self, note: Note) -> None:
        self.notes[note.id] = note

    def delete_note(self, note_id: str) -> None:
        self.notes.pop(note_id, None)

    def save_taxonomy(
        self, tags: list[str], projects: list[str], project_tags: dict[str, str]
    ) -> None:
        self.tags = list(tags)
        self.projects = list(projects)
        self.project_tags = dict(project_tags)

    def reset(self) -> None:
        self.entries.clear()
        self.sessions.clear()
        self.notes.clear()
        self.tags = []
        self.projects = []
        self.project_tags = {}
