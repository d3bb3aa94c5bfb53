"""JSON file storage adapter."""

import json
import logging
import os
from pathlib import Path

from kairos.core.entries import PlannerEntry
from kairos.core.errors import CorruptStoreError, PersistenceError
from kairos.core.notes import Note
from kairos.core.pomodoro import PomodoroSession
from kairos.ports.planner_repo import Snapshot

logger = logging.getLogger(__name__)

STORE_FILENAME = "planner.json"
FORMAT_VERSION = 1


def _empty_document() -> dict:
    return {
        "version": FORMAT_VERSION,
        "entries": {},
        "sessions": {},
        "notes": {},
        "tags": [],
        "projects": [],
        "project_tags": {},
    }


class JsonPlannerStore:
    """
    Single-document JSON storage.

    Implements PlannerRepository protocol. The whole document is kept in
    memory and rewritten atomically (temp file + rename) after each change.
    """

    def __init__(self, data_dir: Path | str):
        self.data_dir = Path(data_dir).expanduser()
        self.path = self.data_dir / STORE_FILENAME
        self._doc = _empty_document()

    def load_all(self) -> Snapshot:
        """Read the store file. A missing file is an empty store."""
        try:
            self.data_dir.mkdir(parents=True, exist_ok=True)
            if not self.path.exists():
                self._doc = _empty_document()
                return Snapshot()

            doc = json.loads(self.path.read_text())
            if not isinstance(doc, dict):
                raise ValueError("top-level value is not an object")
            merged = _empty_document()
            merged.update(doc)

            snapshot = Snapshot(
                entries=[PlannerEntry.from_dict(d) for d in merged["entries"].values()],
                sessions=[PomodoroSession.from_dict(d) for d in merged["sessions"].values()],
                notes=[Note.from_dict(d) for d in merged["notes"].values()],
                tags=list(merged["tags"]),
                projects=list(merged["projects"]),
                project_tags=dict(merged["project_tags"]),
            )
        except (OSError, json.JSONDecodeError, KeyError, ValueError, TypeError, AttributeError) as e:
            raise CorruptStoreError(f"Cannot read {self.path}: {e}") from e

        self._doc = merged
        logger.debug(
            f"Loaded {len(snapshot.entries)} entries, {len(snapshot.sessions)} sessions,"
            f" {len(snapshot.notes)} notes from {self.path}"
        )
        return snapshot

    def save_entry(self, entry: PlannerEntry) -> None:
        self._doc["entries"][entry.id] = entry.to_dict()
        self._flush()

    def delete_entry(self, entry_id: str) -> None:
        if self._doc["entries"].pop(entry_id, None) is not None:
            self._flush()

    def save_session(self, session: PomodoroSession) -> None:
        self._doc["sessions"][session.id] = session.to_dict()
        self._flush()

    def delete_session(self, session_id: str) -> None:
        if self._doc["sessions"].pop(session_id, None) is not None:
            self._flush()

    def save_note(self, note: Note) -> None:
        self._doc["notes"][note.id] = note.to_dict()
        self._flush()

    def delete_note(self, note_id: str) -> None:
        if self._doc["notes"].pop(note_id, None) is not None:
            self._flush()

    def save_taxonomy(
        self, tags: list[str], projects: list[str], project_tags: dict[str, str]
    ) -> None:
        self._doc["tags"] = list(tags)
        self._doc["projects"] = list(projects)
        self._doc["project_tags"] = dict(project_tags)
        self._flush()

    def reset(self) -> None:
        """Delete the store file and start over empty."""
        logger.warning(f"Removing planner store {self.path}")
        try:
            self.path.unlink(missing_ok=True)
        except OSError as e:
            raise PersistenceError(f"Cannot remove {self.path}: {e}") from e
        self._doc = _empty_document()

    def _flush(self) -> None:
        tmp_path = self.path.with_suffix(".json.tmp")
        try:
            self.data_dir.mkdir(parents=True, exist_ok=True)
            tmp_path.write_text(json.dumps(self._doc, indent=2, ensure_ascii=False))
            os.replace(tmp_path, self.path)
        except OSError as e:
            raise PersistenceError(f"Cannot write {self.path}: {e}") from e
