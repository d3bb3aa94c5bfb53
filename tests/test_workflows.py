"""Tests for the shared workflow layer."""

import json
from datetime import date, datetime
from unittest.mock import MagicMock, patch

import pytest

from kairos.adapters.json_store import STORE_FILENAME, JsonPlannerStore
from kairos.adapters.legacy_history import FileLegacySessionLog
from kairos.adapters.memory_store import MemoryPlannerStore
from kairos.config import Config
from kairos.core.entries import PlannerEntry
from kairos.core.errors import CorruptStoreError, PersistenceError
from kairos.core.pomodoro import PomodoroMode, SessionLedger
from kairos.workflows import (
    export_json,
    migrate_legacy_sessions,
    open_planner,
    open_repository,
    run_timer,
)


@pytest.fixture
def config(tmp_path):
    return Config(
        data_dir=str(tmp_path / "data"),
        legacy_history_file=str(tmp_path / "history.json"),
    )


class FakeScheduler:
    """Runs the scheduled job back to back instead of once a second."""

    def __init__(self, interrupt_after: int | None = None):
        self.jobs = []
        self.running = False
        self.interrupt_after = interrupt_after

    def add_job(self, func, trigger, **kwargs):
        self.jobs.append((func, trigger, kwargs))

    def start(self):
        self.running = True
        func = self.jobs[0][0]
        ticks = 0
        while self.running:
            if self.interrupt_after is not None and ticks >= self.interrupt_after:
                raise KeyboardInterrupt
            func()
            ticks += 1

    def shutdown(self, wait=True):
        self.running = False


class TestOpenRepository:
    def test_fresh_directory(self, config):
        repository, snapshot, persistent = open_repository(config)
        assert isinstance(repository, JsonPlannerStore)
        assert snapshot.entries == []
        assert persistent is True

    def test_corrupt_store_is_reset(self, config):
        config.data_path.mkdir(parents=True)
        (config.data_path / STORE_FILENAME).write_text("garbage")

        repository, snapshot, persistent = open_repository(config)

        assert isinstance(repository, JsonPlannerStore)
        assert persistent is True
        assert snapshot.entries == []
        assert not (config.data_path / STORE_FILENAME).exists()

    def test_falls_back_to_memory(self, config):
        with patch.object(JsonPlannerStore, "load_all", side_effect=CorruptStoreError("bad disk")):
            repository, snapshot, persistent = open_repository(config)

        assert isinstance(repository, MemoryPlannerStore)
        assert persistent is False
        assert snapshot.entries == []


class TestMigrateLegacySessions:
    def test_imports_and_clears(self, tmp_path):
        path = tmp_path / "history.json"
        path.write_text(
            json.dumps(
                [
                    {"start": "2024-03-01T09:00:00", "durationSeconds": 1500, "mode": "odak", "wasCompleted": True},
                    {"start": "2024-03-01T10:00:00", "durationSeconds": 300, "mode": "mola"},
                    {"durationSeconds": 60},
                ]
            )
        )
        ledger = SessionLedger()

        imported = migrate_legacy_sessions(ledger, FileLegacySessionLog(path))

        assert imported == 2
        assert len(ledger) == 2
        assert {s.mode for s in ledger.all()} == {PomodoroMode.FOCUS, PomodoroMode.BREAK}
        assert not path.exists()

    def test_absent_source(self, tmp_path):
        ledger = SessionLedger()
        assert migrate_legacy_sessions(ledger, FileLegacySessionLog(tmp_path / "none.json")) == 0

    def test_unreadable_source_is_left_alone(self, tmp_path):
        path = tmp_path / "history.json"
        path.write_text("not json")
        ledger = SessionLedger()

        assert migrate_legacy_sessions(ledger, FileLegacySessionLog(path)) == 0
        assert path.exists()

    def test_failed_save_keeps_source(self, tmp_path):
        path = tmp_path / "history.json"
        path.write_text(json.dumps([{"start": "2024-03-01T09:00:00", "durationSeconds": 1500}]))
        repository = MagicMock()
        repository.save_session.side_effect = PersistenceError("disk full")
        ledger = SessionLedger(repository)

        assert migrate_legacy_sessions(ledger, FileLegacySessionLog(path)) == 0
        assert path.exists()

    def test_records_without_id_get_stable_ids(self, tmp_path):
        records = [{"start": "2024-03-01T09:00:00", "durationSeconds": 1500}]
        first, second = SessionLedger(), SessionLedger()
        for ledger in (first, second):
            path = tmp_path / "history.json"
            path.write_text(json.dumps(records))
            migrate_legacy_sessions(ledger, FileLegacySessionLog(path))

        assert [s.id for s in first.all()] == [s.id for s in second.all()]


class TestOpenPlanner:
    def test_changes_persist_between_runs(self, config):
        planner = open_planner(config)
        entry_id = planner.store.create(PlannerEntry.task_on(date(2024, 3, 1), "Report", tag="Work"))
        planner.taxonomy.register_project("Launch", tag="Work")

        reopened = open_planner(config)

        assert reopened.store.get(entry_id).title == "Report"
        assert reopened.taxonomy.tag_for_project("Launch") == "Work"

    def test_runs_migration_once(self, config):
        config.legacy_history_path.write_text(
            json.dumps([{"start": "2024-03-01T09:00:00", "durationSeconds": 1500}])
        )

        assert len(open_planner(config).ledger) == 1
        assert len(open_planner(config).ledger) == 1
        assert not config.legacy_history_path.exists()

    def test_migration_skipped_without_storage(self, config):
        config.legacy_history_path.write_text(
            json.dumps([{"start": "2024-03-01T09:00:00", "durationSeconds": 1500}])
        )

        with patch.object(JsonPlannerStore, "load_all", side_effect=CorruptStoreError("bad disk")):
            planner = open_planner(config)

        assert planner.persistent is False
        assert len(planner.ledger) == 0
        assert config.legacy_history_path.exists()

    def test_migration_retried_after_failed_save(self, config):
        config.legacy_history_path.write_text(
            json.dumps([{"start": "2024-03-01T09:00:00", "durationSeconds": 1500}])
        )

        with patch.object(JsonPlannerStore, "save_session", side_effect=PersistenceError("disk full")):
            open_planner(config)
        assert config.legacy_history_path.exists()

        assert len(open_planner(config).ledger) == 1
        assert not config.legacy_history_path.exists()

    def test_timer_uses_configured_lengths(self, config):
        config.focus_minutes = 50
        config.break_minutes = 10
        planner = open_planner(config)

        assert planner.new_timer().planned_seconds == 3000
        assert planner.new_timer(PomodoroMode.BREAK).planned_seconds == 600

    def test_conflicts_for(self, config):
        planner = open_planner(config)
        a = PlannerEntry(title="A", start=datetime(2024, 3, 1, 9), end=datetime(2024, 3, 1, 10))
        b = PlannerEntry(title="B", start=datetime(2024, 3, 1, 9, 30), end=datetime(2024, 3, 1, 11))
        planner.store.create(a)
        planner.store.create(b)

        assert [e.title for e in planner.conflicts_for(a)] == ["B"]

    def test_export_json(self, config):
        planner = open_planner(config)
        planner.store.create(PlannerEntry.task_on(date(2024, 3, 1), "Report"))
        planner.taxonomy.register_tag("Work")

        data = json.loads(export_json(planner))

        assert [e["title"] for e in data["entries"]] == ["Report"]
        assert data["tags"] == ["Work"]
        assert data["sessions"] == []


class TestRunTimer:
    def test_runs_to_completion(self, config):
        planner = open_planner(config)
        timer = planner.new_timer()
        timer.begin_edit()
        timer.commit_edit(0, 5)
        ticks = []

        session = run_timer(timer, on_tick=lambda t: ticks.append(t.remaining), scheduler=FakeScheduler())

        assert session is not None
        assert session.duration_seconds == 5
        assert session.was_completed
        assert ticks[:4] == [4, 3, 2, 1]
        assert len(ticks) == 5
        assert len(planner.ledger) == 1

    def test_interrupt_pauses_without_recording(self, config):
        planner = open_planner(config)
        timer = planner.new_timer()

        session = run_timer(timer, scheduler=FakeScheduler(interrupt_after=3))

        assert session is None
        assert timer.elapsed == 3
        assert not timer.is_running
        assert len(planner.ledger) == 0
