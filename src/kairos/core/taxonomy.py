"""Tag and project vocabulary shared by entries and notes."""

import logging
from typing import TYPE_CHECKING, Iterable

from .errors import PersistenceError

if TYPE_CHECKING:
    from kairos.ports.planner_repo import PlannerRepository

    from .notes import Notebook
    from .store import EntryStore

logger = logging.getLogger(__name__)

# Languages whose dotted/dotless I pair lowercases differently
_TURKIC_LANGUAGES = {"tr", "az"}


def normalize(text: str | None, locale: str | None = None) -> str:
    """
    Normalize a tag or project name for comparison.

    Trims surrounding whitespace and lowercases. Turkic locales map I to
    dotless ı and İ to i before lowercasing.
    """
    text = (text or "").strip()
    if locale and locale.replace("-", "_").split("_")[0].lower() in _TURKIC_LANGUAGES:
        text = text.replace("I", "ı").replace("İ", "i")
    return text.casefold()


class NameIndex:
    """Ordered set of display names keyed by their normalized form."""

    def __init__(self, names: Iterable[str] = (), locale: str | None = None):
        self.locale = locale
        self._names: dict[str, str] = {}
        for name in names:
            self.add(name)

    def __contains__(self, name: str) -> bool:
        return normalize(name, self.locale) in self._names

    def __iter__(self):
        return iter(self._names.values())

    def __len__(self) -> int:
        return len(self._names)

    def add(self, name: str) -> bool:
        """Add a name unless an equivalent one is present. Returns True if added."""
        name = name.strip()
        key = normalize(name, self.locale)
        if not key or key in self._names:
            return False
        self._names[key] = name
        return True

    def remove(self, name: str) -> bool:
        return self._names.pop(normalize(name, self.locale), None) is not None

    def replace(self, old: str, new: str) -> bool:
        """Swap `old` for `new` in place. Returns False if `old` was absent."""
        old_key = normalize(old, self.locale)
        if old_key not in self._names:
            return False
        new = new.strip()
        new_key = normalize(new, self.locale)
        self._names = {
            (new_key if k == old_key else k): (new if k == old_key else v)
            for k, v in self._names.items()
            if k != new_key or k == old_key
        }
        return True

    def sorted(self) -> list[str]:
        return sorted(self._names.values(), key=lambda n: (n.casefold(), n))


class TaxonomyRegistry:
    """
    Known tags and projects, plus the project-to-tag hint map.

    Names observed on entries (and notes, when a notebook is attached) are
    merged with names registered ahead of use. All matching is by normalized
    equality. Renames and deletes rewrite every affected record under the
    entry store's lock.
    """

    def __init__(
        self,
        store: "EntryStore",
        notebook: "Notebook | None" = None,
        tags: Iterable[str] = (),
        projects: Iterable[str] = (),
        project_tags: dict[str, str] | None = None,
        locale: str | None = None,
        repository: "PlannerRepository | None" = None,
    ):
        self.store = store
        self.notebook = notebook
        self.locale = locale
        self.repository = repository
        self._tags = NameIndex(tags, locale)
        self._projects = NameIndex(projects, locale)
        self._project_tags: dict[str, str] = dict(project_tags or {})

    def _norm(self, text: str | None) -> str:
        return normalize(text, self.locale)

    # ---- Reads ----

    def registered_tags(self) -> list[str]:
        return self._tags.sorted()

    def registered_projects(self) -> list[str]:
        return self._projects.sorted()

    @property
    def project_tags(self) -> dict[str, str]:
        return dict(self._project_tags)

    def all_tags(self) -> list[str]:
        """Tags seen on entries or notes, plus registered ones."""
        index = NameIndex(self._tags, self.locale)
        for entry in self.store.all():
            index.add(entry.tag)
        if self.notebook is not None:
            for note in self.notebook.all():
                for tag in note.tags:
                    index.add(tag)
        return index.sorted()

    def all_projects(self) -> list[str]:
        """Projects seen on entries or notes, plus registered ones."""
        index = NameIndex(self._projects, self.locale)
        for entry in self.store.all():
            index.add(entry.project)
        if self.notebook is not None:
            for note in self.notebook.all():
                index.add(note.project)
        return index.sorted()

    def projects_for_tag(self, tag: str | None) -> list[str]:
        """
        Projects associated with a tag.

        Union of projects used on entries carrying the tag and projects whose
        hint points at it. An empty tag returns every known project.
        """
        if not tag or not self._norm(tag):
            return self.all_projects()
        wanted = self._norm(tag)

        index = NameIndex(locale=self.locale)
        for entry in self.store.all():
            if self._norm(entry.tag) == wanted:
                index.add(entry.project)
        if self.notebook is not None:
            for note in self.notebook.all():
                if any(self._norm(t) == wanted for t in note.tags):
                    index.add(note.project)
        for project, hinted in self._project_tags.items():
            if self._norm(hinted) == wanted:
                index.add(project)
        return index.sorted()

    def tag_for_project(self, project: str) -> str | None:
        """The hinted tag for a project, if any."""
        key = self._norm(project)
        for name, tag in self._project_tags.items():
            if self._norm(name) == key:
                return tag
        return None

    # ---- Registration ----

    def register_tag(self, name: str) -> str:
        """Register a tag before it is used. Returns the trimmed name."""
        name = name.strip()
        if not name:
            raise ValueError("Tag name must not be empty")
        if self._tags.add(name):
            self._save()
        return name

    def register_project(self, name: str, tag: str | None = None) -> str:
        """Register a project, optionally hinting which tag it belongs to."""
        name = name.strip()
        if not name:
            raise ValueError("Project name must not be empty")
        self._projects.add(name)
        if tag and tag.strip():
            self._set_hint(name, tag.strip())
        self._save()
        return name

    # ---- Rename / delete ----

    def rename_tag(self, old: str, new: str) -> int:
        """
        Rename a tag everywhere. Returns the number of entries rewritten.

        Renaming onto another existing tag merges the two.
        """
        new = new.strip()
        if not new:
            raise ValueError("New tag name must not be empty")
        old_key = self._norm(old)

        with self.store.lock:
            changes = {
                e.id: {"tag": new} for e in self.store.all() if e.tag and self._norm(e.tag) == old_key
            }
            note_changes = self._note_tag_changes(old_key, new)

            self.store.rewrite(changes)
            self._apply_note_changes(note_changes)
            self._tags.replace(old, new)
            self._project_tags = {
                p: (new if self._norm(t) == old_key else t) for p, t in self._project_tags.items()
            }
            self._save()

        logger.info(f"Renamed tag {old!r} to {new!r} on {len(changes)} entries")
        return len(changes)

    def delete_tag(self, name: str) -> int:
        """Clear a tag from every entry and drop it. Entries are kept."""
        key = self._norm(name)
        with self.store.lock:
            changes = {e.id: {"tag": ""} for e in self.store.all() if e.tag and self._norm(e.tag) == key}
            note_changes = self._note_tag_changes(key, None)

            self.store.rewrite(changes)
            self._apply_note_changes(note_changes)
            self._tags.remove(name)
            self._project_tags = {
                p: t for p, t in self._project_tags.items() if self._norm(t) != key
            }
            self._save()

        logger.info(f"Deleted tag {name!r} from {len(changes)} entries")
        return len(changes)

    def rename_project(self, old: str, new: str) -> int:
        """Rename a project everywhere, carrying its tag hint across."""
        new = new.strip()
        if not new:
            raise ValueError("New project name must not be empty")
        old_key = self._norm(old)

        with self.store.lock:
            changes = {
                e.id: {"project": new}
                for e in self.store.all()
                if e.project and self._norm(e.project) == old_key
            }
            note_changes = self._note_project_changes(old_key, new)

            self.store.rewrite(changes)
            self._apply_note_changes(note_changes)
            self._projects.replace(old, new)
            hint = self.tag_for_project(old)
            self._drop_hint(old)
            if hint:
                self._set_hint(new, hint)
            self._save()

        logger.info(f"Renamed project {old!r} to {new!r} on {len(changes)} entries")
        return len(changes)

    def delete_project(self, name: str) -> int:
        """Clear a project from every entry and drop it with its hint."""
        key = self._norm(name)
        with self.store.lock:
            changes = {
                e.id: {"project": ""}
                for e in self.store.all()
                if e.project and self._norm(e.project) == key
            }
            note_changes = self._note_project_changes(key, "")

            self.store.rewrite(changes)
            self._apply_note_changes(note_changes)
            self._projects.remove(name)
            self._drop_hint(name)
            self._save()

        logger.info(f"Deleted project {name!r} from {len(changes)} entries")
        return len(changes)

    # ---- Internals ----

    def _set_hint(self, project: str, tag: str) -> None:
        self._drop_hint(project)
        self._project_tags[project] = tag

    def _drop_hint(self, project: str) -> None:
        key = self._norm(project)
        self._project_tags = {p: t for p, t in self._project_tags.items() if self._norm(p) != key}

    def _note_tag_changes(self, old_key: str, new: str | None) -> dict:
        if self.notebook is None:
            return {}
        changes = {}
        for note in self.notebook.all():
            if any(self._norm(t) == old_key for t in note.tags):
                kept = {t for t in note.tags if self._norm(t) != old_key}
                if new:
                    kept.add(new)
                changes[note.id] = {"tags": kept}
        return changes

    def _note_project_changes(self, old_key: str, new: str) -> dict:
        if self.notebook is None:
            return {}
        return {
            note.id: {"project": new}
            for note in self.notebook.all()
            if note.project and self._norm(note.project) == old_key
        }

    def _apply_note_changes(self, changes: dict) -> None:
        if self.notebook is not None and changes:
            self.notebook.rewrite(changes)

    def _save(self) -> None:
        if self.repository is None:
            return
        try:
            self.repository.save_taxonomy(
                self._tags.sorted(), self._projects.sorted(), dict(self._project_tags)
            )
        except PersistenceError as e:
            logger.error(f"Failed to save tags and projects: {e}")
