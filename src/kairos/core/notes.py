"""Free-form notes sharing the planner's tag/project vocabulary."""

import logging
import threading
import uuid
from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import TYPE_CHECKING, Iterable

from .errors import PersistenceError
from .taxonomy import normalize

if TYPE_CHECKING:
    from kairos.ports.planner_repo import PlannerRepository

logger = logging.getLogger(__name__)


@dataclass
class Note:
    """A dated note."""

    title: str
    content: str = ""
    tags: set[str] = field(default_factory=set)
    project: str = ""
    date: datetime = field(default_factory=datetime.now)
    id: str = field(default_factory=lambda: str(uuid.uuid4()))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "date": self.date.isoformat(),
            "title": self.title,
            "content": self.content,
            "tags": sorted(self.tags),
            "project": self.project,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Note":
        return cls(
            id=data["id"],
            date=datetime.fromisoformat(data["date"]),
            title=data.get("title", ""),
            content=data.get("content", ""),
            tags=set(data.get("tags", [])),
            project=data.get("project", ""),
        )


class Notebook:
    """Note collection with simple CRUD, newest first."""

    def __init__(self, repository: "PlannerRepository | None" = None, notes: Iterable[Note] = ()):
        self.repository = repository
        self._lock = threading.RLock()
        self._notes: dict[str, Note] = {n.id: replace(n, tags=set(n.tags)) for n in notes}

    def add(self, note: Note) -> str:
        if not note.title.strip():
            raise ValueError("Note title must not be empty")
        with self._lock:
            stored = replace(note, title=note.title.strip(), tags=set(note.tags))
            self._notes[stored.id] = stored
            self._persist(stored)
            return stored.id

    def update(self, note: Note) -> bool:
        with self._lock:
            if note.id not in self._notes:
                return False
            stored = replace(note, tags=set(note.tags))
            self._notes[stored.id] = stored
            self._persist(stored)
            return True

    def delete(self, note_id: str) -> bool:
        with self._lock:
            if self._notes.pop(note_id, None) is None:
                return False
            if self.repository is not None:
                try:
                    self.repository.delete_note(note_id)
                except PersistenceError as e:
                    logger.error(f"Failed to delete note {note_id}: {e}")
            return True

    def get(self, note_id: str) -> Note | None:
        with self._lock:
            note = self._notes.get(note_id)
            return replace(note, tags=set(note.tags)) if note else None

    def all(self) -> list[Note]:
        with self._lock:
            notes = [replace(n, tags=set(n.tags)) for n in self._notes.values()]
        return sorted(notes, key=lambda n: n.date, reverse=True)

    def find(self, id_prefix: str) -> Note | None:
        matches = [n for n in self.all() if n.id.startswith(id_prefix)]
        return matches[0] if len(matches) == 1 else None

    def filter(
        self,
        tag: str | None = None,
        project: str | None = None,
        locale: str | None = None,
    ) -> list[Note]:
        """Notes matching a tag and/or project (normalized comparison)."""
        wanted_tag = normalize(tag, locale) if tag else ""
        wanted_project = normalize(project, locale) if project else ""
        return [
            n
            for n in self.all()
            if (not wanted_tag or any(normalize(t, locale) == wanted_tag for t in n.tags))
            and (not wanted_project or normalize(n.project, locale) == wanted_project)
        ]

    def rewrite(self, changes: dict[str, dict]) -> None:
        """Apply field changes to several notes at once."""
        with self._lock:
            updated = [replace(self._notes[i], **fields) for i, fields in changes.items()]
            for note in updated:
                self._notes[note.id] = note
            for note in updated:
                self._persist(note)

    def _persist(self, note: Note) -> None:
        if self.repository is None:
            return
        try:
            self.repository.save_note(note)
        except PersistenceError as e:
            logger.error(f"Failed to save note {note.id}: {e}")
