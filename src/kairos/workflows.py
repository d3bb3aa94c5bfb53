"""Wiring layer between storage and the CLI.

Opens the repository, builds the planner services around one shared
snapshot, and runs the one-time legacy migration.
"""

import json
import logging
import uuid
from dataclasses import dataclass
from typing import Callable

from apscheduler.schedulers.blocking import BlockingScheduler
from apscheduler.triggers.interval import IntervalTrigger

from .adapters.json_store import JsonPlannerStore
from .adapters.legacy_history import FileLegacySessionLog
from .adapters.memory_store import MemoryPlannerStore
from .config import Config, load_config
from .core.entries import PlannerEntry
from .core.errors import CorruptStoreError, PersistenceError
from .core.notes import Notebook
from .core.pomodoro import PomodoroMode, PomodoroSession, PomodoroTimer, SessionLedger
from .core.store import EntryStore
from .core.taxonomy import TaxonomyRegistry
from .core.validation import find_conflicts
from .ports.legacy_sessions import LegacySessionSource
from .ports.planner_repo import PlannerRepository, Snapshot

logger = logging.getLogger(__name__)

_LEGACY_NAMESPACE = uuid.UUID("6f1c2b4e-8d3a-4f5e-9a7b-2c1d0e9f8a6b")


@dataclass
class Planner:
    """The service objects for one running session, sharing one repository."""

    config: Config
    repository: PlannerRepository
    store: EntryStore
    taxonomy: TaxonomyRegistry
    ledger: SessionLedger
    notebook: Notebook
    persistent: bool = True

    def new_timer(self, mode: PomodoroMode = PomodoroMode.FOCUS) -> PomodoroTimer:
        return PomodoroTimer(
            self.ledger,
            mode=mode,
            focus_seconds=self.config.focus_minutes * 60,
            break_seconds=self.config.break_minutes * 60,
        )

    def conflicts_for(self, entry: PlannerEntry) -> list[PlannerEntry]:
        """Timed entries overlapping `entry` on its day."""
        return find_conflicts(entry, self.store.all())

    def sessions_for(self, entry_id: str) -> list[PomodoroSession]:
        return self.ledger.sessions_for(entry_id)


def open_repository(config: Config) -> tuple[PlannerRepository, Snapshot, bool]:
    """
    Open file storage, recovering from corruption.

    On a corrupt store the file is reset once and loading retried; if that
    still fails, a memory-only repository is returned and the third element
    of the result is False.
    """
    repository = JsonPlannerStore(config.data_path)
    try:
        return repository, repository.load_all(), True
    except CorruptStoreError as e:
        logger.warning(f"Planner store unreadable, resetting: {e}")

    try:
        repository.reset()
        return repository, repository.load_all(), True
    except PersistenceError as e:
        logger.warning(f"Planner store still unusable, changes will not be saved: {e}")

    memory = MemoryPlannerStore()
    return memory, memory.load_all(), False


def _legacy_session_id(record: dict) -> str:
    # Stable per record, so a retried import overwrites instead of duplicating
    return str(uuid.uuid5(_LEGACY_NAMESPACE, json.dumps(record, sort_keys=True, default=str)))


def migrate_legacy_sessions(ledger: SessionLedger, source: LegacySessionSource) -> int:
    """
    Import a legacy session history into the ledger, then clear it.

    Does nothing when the source is absent. Records that cannot be parsed are
    skipped. The source is cleared only after every imported session has been
    saved; if saving fails it is left in place for the next run. Returns the
    number of sessions imported.
    """
    if not source.exists():
        return 0

    try:
        records = source.read()
    except (OSError, ValueError) as e:
        logger.warning(f"Could not read legacy session history: {e}")
        return 0

    sessions = []
    for record in records:
        if not record.get("id"):
            record = {**record, "id": _legacy_session_id(record)}
        try:
            sessions.append(PomodoroSession.from_dict(record))
        except (KeyError, ValueError, TypeError) as e:
            logger.warning(f"Skipping malformed legacy session {record!r}: {e}")

    try:
        imported = ledger.restore(sessions)
    except PersistenceError as e:
        logger.error(f"Could not save legacy sessions, keeping the old history: {e}")
        return 0

    source.clear()
    logger.info(f"Migrated {imported} pomodoro sessions from legacy history")
    return imported


def build_planner(
    config: Config,
    repository: PlannerRepository,
    snapshot: Snapshot,
    persistent: bool = True,
) -> Planner:
    """Construct the services around an already-loaded snapshot."""
    locale = config.locale or None
    store = EntryStore(repository, snapshot.entries)
    notebook = Notebook(repository, snapshot.notes)
    taxonomy = TaxonomyRegistry(
        store,
        notebook=notebook,
        tags=snapshot.tags,
        projects=snapshot.projects,
        project_tags=snapshot.project_tags,
        locale=locale,
        repository=repository,
    )
    ledger = SessionLedger(repository, snapshot.sessions)
    return Planner(
        config=config,
        repository=repository,
        store=store,
        taxonomy=taxonomy,
        ledger=ledger,
        notebook=notebook,
        persistent=persistent,
    )


def open_planner(config: Config | None = None) -> Planner:
    """Open storage and build the planner services. Never raises on bad storage."""
    config = config or load_config()
    repository, snapshot, persistent = open_repository(config)
    planner = build_planner(config, repository, snapshot, persistent)
    if persistent:
        migrate_legacy_sessions(planner.ledger, FileLegacySessionLog(config.legacy_history_path))
    else:
        logger.warning("Storage unavailable, legacy session history left for a later run")
    return planner


def export_json(planner: Planner) -> str:
    """Dump the planner's current state as a JSON document."""
    return json.dumps(
        {
            "entries": [e.to_dict() for e in planner.store.all()],
            "sessions": [s.to_dict() for s in planner.ledger.all()],
            "notes": [n.to_dict() for n in planner.notebook.all()],
            "tags": planner.taxonomy.registered_tags(),
            "projects": planner.taxonomy.registered_projects(),
            "project_tags": planner.taxonomy.project_tags,
        },
        indent=2,
        ensure_ascii=False,
    )


def run_timer(
    timer: PomodoroTimer,
    on_tick: Callable[[PomodoroTimer], None] | None = None,
    scheduler: BlockingScheduler | None = None,
) -> PomodoroSession | None:
    """
    Drive a timer with one tick per second until it completes.

    Blocks the caller. Returns the recorded session, or None when the run was
    interrupted (Ctrl+C); an interrupted timer is left paused and nothing is
    recorded.
    """
    scheduler = scheduler or BlockingScheduler()
    recorded: list[PomodoroSession] = []

    def tick():
        session = timer.tick()
        if on_tick:
            on_tick(timer)
        if session is not None:
            recorded.append(session)
        if not timer.is_running:
            scheduler.shutdown(wait=False)

    scheduler.add_job(
        tick,
        IntervalTrigger(seconds=1),
        id="pomodoro_tick",
        max_instances=1,
        coalesce=True,
    )
    timer.start()
    logger.info(f"Timer started: {timer.mode.value}, {timer.planned_seconds}s planned")

    try:
        scheduler.start()
    except (KeyboardInterrupt, SystemExit):
        timer.pause()
        logger.info(f"Timer paused after {timer.elapsed}s")
        if scheduler.running:
            scheduler.shutdown(wait=False)

    return recorded[0] if recorded else None
