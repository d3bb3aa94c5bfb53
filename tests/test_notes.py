"""Tests for the notebook."""

from datetime import datetime

import pytest

from kairos.adapters.memory_store import MemoryPlannerStore
from kairos.core.notes import Note, Notebook


@pytest.fixture
def repo():
    return MemoryPlannerStore()


@pytest.fixture
def notebook(repo):
    return Notebook(repo)


class TestNotebook:
    def test_add_trims_title_and_persists(self, notebook, repo):
        note_id = notebook.add(Note(title="  Idea ", content="body"))
        assert notebook.get(note_id).title == "Idea"
        assert note_id in repo.notes

    def test_blank_title_rejected(self, notebook):
        with pytest.raises(ValueError):
            notebook.add(Note(title=" "))

    def test_all_newest_first(self, notebook):
        notebook.add(Note(title="Old", date=datetime(2024, 1, 1)))
        notebook.add(Note(title="New", date=datetime(2024, 3, 1)))
        assert [n.title for n in notebook.all()] == ["New", "Old"]

    def test_update_and_delete(self, notebook, repo):
        note_id = notebook.add(Note(title="Idea"))
        note = notebook.get(note_id)
        note.content = "more"

        assert notebook.update(note) is True
        assert notebook.get(note_id).content == "more"

        assert notebook.delete(note_id) is True
        assert notebook.get(note_id) is None
        assert note_id not in repo.notes

    def test_unknown_ids(self, notebook):
        assert notebook.update(Note(title="Ghost")) is False
        assert notebook.delete("missing") is False

    def test_returned_tags_are_copies(self, notebook):
        note_id = notebook.add(Note(title="Idea", tags={"Work"}))
        notebook.get(note_id).tags.add("Leak")
        assert notebook.get(note_id).tags == {"Work"}

    def test_find_by_prefix(self, notebook):
        note_id = notebook.add(Note(title="Idea"))
        assert notebook.find(note_id[:6]).id == note_id


class TestFilter:
    def test_filter_by_tag_and_project(self, notebook):
        notebook.add(Note(title="A", tags={"Work"}, project="Launch"))
        notebook.add(Note(title="B", tags={"work "}))
        notebook.add(Note(title="C", tags={"Home"}, project="launch"))

        assert {n.title for n in notebook.filter(tag="WORK")} == {"A", "B"}
        assert {n.title for n in notebook.filter(project="Launch")} == {"A", "C"}
        assert [n.title for n in notebook.filter(tag="work", project="launch")] == ["A"]


class TestNoteSerialization:
    def test_round_trip(self):
        note = Note(title="Idea", content="body", tags={"b", "a"}, project="P", date=datetime(2024, 3, 1))
        data = note.to_dict()
        assert data["tags"] == ["a", "b"]
        assert Note.from_dict(data) == note
