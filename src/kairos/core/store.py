"""Authoritative in-memory collection of planner entries."""

import logging
import threading
from dataclasses import replace
from typing import TYPE_CHECKING, Iterable

from .entries import PlannerEntry, local_time
from .errors import PersistenceError
from .validation import check_parent, validate

if TYPE_CHECKING:
    from kairos.ports.planner_repo import PlannerRepository

logger = logging.getLogger(__name__)


class DuplicateEntryError(Exception):
    """Raised when creating an entry whose id is already stored."""

    pass


class AmbiguousIdError(Exception):
    """Raised when an id prefix matches more than one entry."""

    pass


class EntryStore:
    """
    The canonical collection of tasks and timed events.

    Every create/update is validated before it is applied; a rejected write
    leaves the store unchanged. Reads hand out copies. Accepted mutations are
    forwarded to the repository, whose failures are logged but never undo the
    in-memory change.
    """

    def __init__(
        self,
        repository: "PlannerRepository | None" = None,
        entries: Iterable[PlannerEntry] = (),
    ):
        self.repository = repository
        self.lock = threading.RLock()
        self._entries: dict[str, PlannerEntry] = {e.id: replace(e) for e in entries}

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, entry_id: str) -> bool:
        return entry_id in self._entries

    def create(self, entry: PlannerEntry) -> str:
        """Validate and add a new entry. Returns its id."""
        with self.lock:
            if entry.id in self._entries:
                raise DuplicateEntryError(f"Entry already exists: {entry.id}")
            validate(entry)
            check_parent(entry, self._entries)
            stored = replace(entry)
            self._entries[stored.id] = stored
            logger.debug(f"Created entry {stored.id} ({stored.kind}): {stored.title!r}")
            self._persist(stored)
            return stored.id

    def update(self, entry: PlannerEntry) -> bool:
        """
        Replace the stored entry with the same id.

        Returns False, changing nothing, when the id is unknown.
        """
        with self.lock:
            if entry.id not in self._entries:
                logger.debug(f"Update ignored, unknown entry {entry.id}")
                return False
            validate(entry)
            check_parent(entry, {**self._entries, entry.id: entry})
            stored = replace(entry)
            self._entries[stored.id] = stored
            self._persist(stored)
            return True

    def delete(self, entry_id: str) -> bool:
        """
        Remove an entry and detach its children.

        Returns False when the id is unknown.
        """
        with self.lock:
            removed = self._entries.pop(entry_id, None)
            if removed is None:
                logger.debug(f"Delete ignored, unknown entry {entry_id}")
                return False

            orphans = [e for e in self._entries.values() if e.parent_id == entry_id]
            for child in orphans:
                child.parent_id = None

            if self.repository is not None:
                try:
                    self.repository.delete_entry(entry_id)
                except PersistenceError as e:
                    logger.error(f"Failed to delete entry {entry_id} from storage: {e}")
            for child in orphans:
                self._persist(child)
            return True

    def get(self, entry_id: str) -> PlannerEntry | None:
        with self.lock:
            entry = self._entries.get(entry_id)
            return replace(entry) if entry else None

    def all(self) -> list[PlannerEntry]:
        """All entries, sorted by start."""
        with self.lock:
            return sorted((replace(e) for e in self._entries.values()), key=lambda e: local_time(e.start))

    def find(self, id_prefix: str) -> PlannerEntry | None:
        """Look up an entry by full id or unique id prefix."""
        with self.lock:
            if id_prefix in self._entries:
                return replace(self._entries[id_prefix])
            matches = [e for e in self._entries.values() if e.id.startswith(id_prefix)]
            if len(matches) > 1:
                raise AmbiguousIdError(f"Id prefix {id_prefix!r} matches {len(matches)} entries")
            return replace(matches[0]) if matches else None

    def children(self, parent_id: str) -> list[PlannerEntry]:
        with self.lock:
            kids = [replace(e) for e in self._entries.values() if e.parent_id == parent_id]
        return sorted(kids, key=lambda e: e.title)

    def parent(self, entry: PlannerEntry) -> PlannerEntry | None:
        """Resolve an entry's parent; dangling links resolve to None."""
        if entry.parent_id is None:
            return None
        return self.get(entry.parent_id)

    def rewrite(self, changes: dict[str, dict]) -> None:
        """
        Apply field changes to several entries as one step.

        `changes` maps entry id to a dict of field values. Used by taxonomy
        renames and deletes; callers hold `lock` while computing the changes.
        """
        with self.lock:
            updated = [replace(self._entries[i], **fields) for i, fields in changes.items()]
            for entry in updated:
                self._entries[entry.id] = entry
            for entry in updated:
                self._persist(entry)

    def _persist(self, entry: PlannerEntry) -> None:
        if self.repository is None:
            return
        try:
            self.repository.save_entry(entry)
        except PersistenceError as e:
            logger.error(f"Failed to save entry {entry.id}: {e}")
