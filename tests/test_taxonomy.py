"""Tests for tag and project vocabulary."""

from datetime import date

import pytest

from kairos.adapters.memory_store import MemoryPlannerStore
from kairos.core.entries import PlannerEntry
from kairos.core.notes import Note, Notebook
from kairos.core.store import EntryStore
from kairos.core.taxonomy import NameIndex, TaxonomyRegistry, normalize


@pytest.fixture
def repo():
    return MemoryPlannerStore()


@pytest.fixture
def store(repo):
    return EntryStore(repo)


@pytest.fixture
def notebook(repo):
    return Notebook(repo)


@pytest.fixture
def registry(store, notebook, repo):
    return TaxonomyRegistry(store, notebook=notebook, repository=repo)


def _task(title: str, **kwargs) -> PlannerEntry:
    return PlannerEntry.task_on(date(2024, 3, 1), title, **kwargs)


class TestNormalize:
    def test_trims_and_lowercases(self):
        assert normalize("  Work ") == "work"

    def test_none_is_empty(self):
        assert normalize(None) == ""

    def test_turkish_dotted_and_dotless_i(self):
        assert normalize("İstanbul", "tr_TR") == "istanbul"
        assert normalize("IŞIK", "tr") == "ışık"

    def test_default_locale_leaves_i_alone(self):
        assert normalize("IŞIK") == "işik"


class TestNameIndex:
    def test_keeps_first_display_form(self):
        index = NameIndex(["Work", "work ", "WORK"])
        assert list(index) == ["Work"]
        assert "wOrK" in index

    def test_ignores_blank(self):
        assert len(NameIndex(["", "  "])) == 0

    def test_replace_merges(self):
        index = NameIndex(["Work", "Personal"])
        index.replace("work", "Personal")
        assert index.sorted() == ["Personal"]


class TestVocabulary:
    def test_registered_names_visible_without_entries(self, registry, store):
        registry.register_tag("Work")
        registry.register_project("Launch", tag="Work")
        store.create(_task("Untagged"))

        assert "Work" in registry.all_tags()
        assert "Launch" in registry.all_projects()
        assert "Launch" in registry.projects_for_tag("work")

    def test_all_tags_merges_entries_and_notes(self, registry, store, notebook):
        store.create(_task("A", tag="Work"))
        store.create(_task("B", tag=" work"))
        notebook.add(Note(title="Idea", tags={"Reading"}))

        assert registry.all_tags() == ["Reading", "Work"]

    def test_projects_for_tag_from_entries(self, registry, store):
        store.create(_task("A", tag="Work", project="Launch"))
        store.create(_task("B", tag="Home", project="Garden"))

        assert registry.projects_for_tag("WORK") == ["Launch"]
        assert registry.projects_for_tag("") == ["Garden", "Launch"]

    def test_tag_for_project(self, registry):
        registry.register_project("Launch", tag="Work")
        assert registry.tag_for_project("launch") == "Work"
        assert registry.tag_for_project("Other") is None

    def test_register_blank_rejected(self, registry):
        with pytest.raises(ValueError):
            registry.register_tag("  ")

    def test_registration_is_persisted(self, registry, repo):
        registry.register_tag("Work")
        registry.register_project("Launch", tag="Work")
        assert repo.tags == ["Work"]
        assert repo.projects == ["Launch"]
        assert repo.project_tags == {"Launch": "Work"}


class TestRenameTag:
    def test_rename_matches_any_case_and_spacing(self, registry, store):
        a = _task("A", tag="Work")
        b = _task("B", tag="work ")
        c = _task("C", tag="Home")
        for entry in (a, b, c):
            store.create(entry)

        count = registry.rename_tag("Work ", "Personal")

        assert count == 2
        assert store.get(a.id).tag == "Personal"
        assert store.get(b.id).tag == "Personal"
        assert store.get(c.id).tag == "Home"
        assert not any(normalize(t) == "work" for t in registry.all_tags())

    def test_rename_onto_existing_tag_merges(self, registry, store):
        registry.register_tag("Work")
        registry.register_tag("Job")
        store.create(_task("A", tag="Job"))

        registry.rename_tag("job", "Work")

        assert registry.all_tags() == ["Work"]

    def test_rename_updates_notes_and_hints(self, registry, notebook):
        registry.register_project("Launch", tag="Work")
        note_id = notebook.add(Note(title="Idea", tags={"work", "Reading"}))

        registry.rename_tag("Work", "Job")

        assert notebook.get(note_id).tags == {"Job", "Reading"}
        assert registry.tag_for_project("Launch") == "Job"

    def test_rename_to_blank_rejected(self, registry):
        with pytest.raises(ValueError):
            registry.rename_tag("Work", " ")

    def test_rename_is_persisted(self, registry, store, repo):
        entry = _task("A", tag="Work")
        store.create(entry)
        registry.rename_tag("Work", "Job")
        assert repo.entries[entry.id].tag == "Job"


class TestDeleteTag:
    def test_clears_tag_but_keeps_entries(self, registry, store, notebook):
        entry = _task("A", tag="Work")
        store.create(entry)
        registry.register_project("Launch", tag="work")
        note_id = notebook.add(Note(title="Idea", tags={"Work"}))

        assert registry.delete_tag("WORK") == 1

        assert store.get(entry.id).tag == ""
        assert len(store) == 1
        assert notebook.get(note_id).tags == set()
        assert registry.tag_for_project("Launch") is None
        assert registry.all_tags() == []


class TestProjects:
    def test_rename_project_carries_hint(self, registry, store):
        registry.register_project("Launch", tag="Work")
        entry = _task("A", project="launch")
        store.create(entry)

        assert registry.rename_project("Launch", "Release") == 1

        assert store.get(entry.id).project == "Release"
        assert registry.tag_for_project("Release") == "Work"
        assert registry.tag_for_project("Launch") is None
        assert registry.registered_projects() == ["Release"]

    def test_delete_project(self, registry, store, notebook):
        registry.register_project("Launch", tag="Work")
        entry = _task("A", project="Launch")
        store.create(entry)
        note_id = notebook.add(Note(title="Idea", project="launch"))

        assert registry.delete_project("Launch") == 1

        assert store.get(entry.id).project == ""
        assert notebook.get(note_id).project == ""
        assert registry.all_projects() == []
        assert registry.project_tags == {}

    def test_renaming_unknown_names_registers_nothing(self, registry):
        assert registry.rename_tag("Ghost", "Phantom") == 0
        assert registry.rename_project("Ghost", "Phantom") == 0

        assert registry.all_tags() == []
        assert registry.all_projects() == []
