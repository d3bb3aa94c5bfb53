"""Tests for the file-backed adapters."""

import json
from datetime import date, datetime
from unittest.mock import patch

import pytest

from kairos.adapters.json_store import STORE_FILENAME, JsonPlannerStore
from kairos.adapters.legacy_history import FileLegacySessionLog
from kairos.core.entries import Frequency, PlannerEntry, RecurrenceRule
from kairos.core.errors import CorruptStoreError, PersistenceError
from kairos.core.notes import Note
from kairos.core.pomodoro import PomodoroSession


@pytest.fixture
def repo(tmp_path):
    store = JsonPlannerStore(tmp_path / "data")
    store.load_all()
    return store


class TestJsonPlannerStore:
    def test_missing_file_is_empty_store(self, tmp_path):
        store = JsonPlannerStore(tmp_path / "data")
        snapshot = store.load_all()

        assert snapshot.entries == []
        assert snapshot.sessions == []
        assert (tmp_path / "data").is_dir()

    def test_saved_records_survive_reload(self, repo, tmp_path):
        entry = PlannerEntry.task_on(
            date(2024, 3, 1), "Report", tag="Work", recurrence=RecurrenceRule(Frequency.DAILY)
        )
        session = PomodoroSession(start=datetime(2024, 3, 1, 9, 0), duration_seconds=1500, entry_id=entry.id)
        note = Note(title="Idea", tags={"Work"}, date=datetime(2024, 3, 1))
        repo.save_entry(entry)
        repo.save_session(session)
        repo.save_note(note)
        repo.save_taxonomy(["Work"], ["Launch"], {"Launch": "Work"})

        snapshot = JsonPlannerStore(tmp_path / "data").load_all()

        assert snapshot.entries == [entry]
        assert snapshot.sessions == [session]
        assert snapshot.notes == [note]
        assert snapshot.tags == ["Work"]
        assert snapshot.projects == ["Launch"]
        assert snapshot.project_tags == {"Launch": "Work"}

    def test_delete_records(self, repo, tmp_path):
        entry = PlannerEntry.task_on(date(2024, 3, 1), "Report")
        repo.save_entry(entry)
        repo.delete_entry(entry.id)

        assert JsonPlannerStore(tmp_path / "data").load_all().entries == []

    def test_write_leaves_no_temp_file(self, repo, tmp_path):
        repo.save_entry(PlannerEntry.task_on(date(2024, 3, 1), "Report"))
        files = sorted(p.name for p in (tmp_path / "data").iterdir())
        assert files == [STORE_FILENAME]

    def test_invalid_json_is_corrupt(self, tmp_path):
        data_dir = tmp_path / "data"
        data_dir.mkdir()
        (data_dir / STORE_FILENAME).write_text("{not json")

        with pytest.raises(CorruptStoreError):
            JsonPlannerStore(data_dir).load_all()

    def test_wrong_shape_is_corrupt(self, tmp_path):
        data_dir = tmp_path / "data"
        data_dir.mkdir()
        (data_dir / STORE_FILENAME).write_text(json.dumps({"entries": ["oops"]}))

        with pytest.raises(CorruptStoreError):
            JsonPlannerStore(data_dir).load_all()

    def test_reset_removes_file(self, repo):
        repo.save_entry(PlannerEntry.task_on(date(2024, 3, 1), "Report"))
        repo.reset()
        assert not repo.path.exists()
        assert repo.load_all().entries == []

    def test_write_failure_raises_persistence_error(self, repo):
        with patch("kairos.adapters.json_store.os.replace", side_effect=OSError("read-only")):
            with pytest.raises(PersistenceError):
                repo.save_entry(PlannerEntry.task_on(date(2024, 3, 1), "Report"))


class TestFileLegacySessionLog:
    def test_missing(self, tmp_path):
        assert not FileLegacySessionLog(tmp_path / "history.json").exists()

    def test_read_skips_non_records(self, tmp_path):
        path = tmp_path / "history.json"
        path.write_text(json.dumps([{"start": "2024-03-01T09:00:00"}, 42]))

        assert FileLegacySessionLog(path).read() == [{"start": "2024-03-01T09:00:00"}]

    def test_non_list_rejected(self, tmp_path):
        path = tmp_path / "history.json"
        path.write_text(json.dumps({"start": "x"}))

        with pytest.raises(ValueError):
            FileLegacySessionLog(path).read()

    def test_clear(self, tmp_path):
        path = tmp_path / "history.json"
        path.write_text("[]")
        log = FileLegacySessionLog(path)
        log.clear()
        assert not log.exists()
