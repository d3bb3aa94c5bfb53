"""Kairos CLI - planner, focus timer and notes."""

import json
import logging
import sys
from datetime import date, datetime, timedelta

import click

from .config import load_config
from .core.entries import Color, Frequency, PlannerEntry, RecurrenceRule, Status, Weekday
from .core.notes import Note
from .core.pomodoro import PomodoroMode, PomodoroSession
from .core.queries import Occurrence, expand_range, filter_entries, tasks_by_status
from .core.store import AmbiguousIdError, DuplicateEntryError
from .core.validation import ValidationError
from .workflows import Planner, export_json, open_planner, run_timer

WHEN = click.DateTime(formats=["%Y-%m-%d", "%Y-%m-%dT%H:%M", "%Y-%m-%d %H:%M"])
DAY = click.DateTime(formats=["%Y-%m-%d"])


@click.group()
@click.version_option()
@click.option("--debug", is_flag=True, help="Enable debug logging")
def main(debug: bool):
    """Kairos - planner, focus timer and notes."""
    level = logging.DEBUG if debug else getattr(logging, load_config().log_level, logging.WARNING)
    logging.basicConfig(
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        level=level,
    )


def _fail(message: str) -> None:
    click.echo(f"Error: {message}", err=True)
    sys.exit(1)


def _open() -> Planner:
    planner = open_planner(load_config())
    if not planner.persistent:
        click.echo("Warning: storage unavailable, changes will not be saved.", err=True)
    return planner


def _resolve_entry(planner: Planner, ref: str) -> PlannerEntry:
    try:
        entry = planner.store.find(ref)
    except AmbiguousIdError as e:
        _fail(str(e))
    if entry is None:
        _fail(f"No entry matching {ref!r}")
    return entry


def _short(entry_id: str | None) -> str:
    return entry_id[:8] if entry_id else "-"


def _clock(seconds: int) -> str:
    return f"{seconds // 60:02d}:{seconds % 60:02d}"


def _build_recurrence(
    repeat: str | None,
    every: int,
    on: str | None,
    until: datetime | None,
) -> RecurrenceRule | None:
    if not repeat or repeat == "none":
        return None
    weekdays = frozenset()
    if on:
        try:
            weekdays = frozenset(Weekday.parse(d) for d in on.split(",") if d.strip())
        except ValueError as e:
            _fail(str(e))
    try:
        return RecurrenceRule(
            frequency=Frequency(repeat),
            interval=every,
            weekdays=weekdays if repeat == "weekly" else frozenset(),
            until=until.date() if until else None,
        )
    except ValueError as e:
        _fail(str(e))


def _entry_dict(entry: PlannerEntry, planner: Planner) -> dict:
    data = entry.to_dict()
    data["kind"] = entry.kind
    data["sessions"] = planner.ledger.count_for(entry.id)
    return data


def _show_occurrences(occs: list[Occurrence], planner: Planner, as_json: bool, empty_msg: str) -> None:
    """Shared occurrence display logic."""
    if as_json:
        click.echo(
            json.dumps(
                [
                    {
                        **_entry_dict(o.entry, planner),
                        "date": o.date.isoformat(),
                        "start": o.start.isoformat(),
                        "end": o.end.isoformat(),
                    }
                    for o in occs
                ],
                indent=2,
                ensure_ascii=False,
            )
        )
        return

    if not occs:
        click.echo(empty_msg)
        return

    current_date = None
    for occ in occs:
        if occ.date != current_date:
            if current_date is not None:
                click.echo()
            click.echo(f"### {occ.date.strftime('%A, %B %d')}")
            current_date = occ.date

        entry = occ.entry
        when = "task" if entry.is_task else f"{occ.start:%H:%M}-{occ.end:%H:%M}"
        repeat = " ↻" if entry.is_recurring else ""
        summary = f"  [{entry.summary}]" if entry.summary else ""
        click.echo(f"  {_short(entry.id)}  {when:11} {entry.title}{repeat}{summary}")


# ============== Entries ==============


@main.command()
@click.argument("title")
@click.option("--start", "start", type=WHEN, required=True, help="Start (YYYY-MM-DD[ HH:MM])")
@click.option("--end", "end", type=WHEN, default=None, help="End; omit for a task")
@click.option("--tag", default="", help="Tag")
@click.option("--project", default="", help="Project")
@click.option("--color", type=click.Choice([c.value for c in Color]), default="blue")
@click.option("--notes", default="", help="Free-text notes")
@click.option("--status", type=click.Choice([s.value for s in Status]), default=Status.TODO.value)
@click.option("--assignee", default=None)
@click.option("--parent", "parent_ref", default=None, help="Parent task id or prefix")
@click.option("--repeat", type=click.Choice([f.value for f in Frequency]), default=None)
@click.option("--every", type=click.IntRange(min=1), default=1, help="Repeat interval")
@click.option("--on", default=None, help="Weekdays for weekly repeats, e.g. mon,wed")
@click.option("--until", type=DAY, default=None, help="Last repeat date")
def add(title, start, end, tag, project, color, notes, status, assignee, parent_ref, repeat, every, on, until):
    """Add a task (no --end) or a timed event."""
    planner = _open()
    parent_id = _resolve_entry(planner, parent_ref).id if parent_ref else None

    entry = PlannerEntry(
        title=title,
        start=start,
        end=end if end is not None else start,
        color=color,
        notes=notes,
        tag=tag,
        project=project,
        status=status,
        assignee=assignee,
        parent_id=parent_id,
        recurrence=_build_recurrence(repeat, every, on, until),
    )
    try:
        entry_id = planner.store.create(entry)
    except (ValidationError, DuplicateEntryError) as e:
        _fail(str(e))

    click.echo(f"Added {entry.kind} {_short(entry_id)}: {entry.title}")
    for other in planner.conflicts_for(entry):
        click.echo(f"  ! overlaps {_short(other.id)} {other.title} ({other.format_time()})")


@main.command("list")
@click.option("--date", "-d", "on_date", type=DAY, default=None, help="Day to list (default today)")
@click.option("--from", "from_date", type=DAY, default=None, help="Range start")
@click.option("--to", "to_date", type=DAY, default=None, help="Range end")
@click.option("--tag", default=None)
@click.option("--project", default=None)
@click.option("--tasks", "tasks_only", is_flag=True, help="Only tasks")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def list_entries(on_date, from_date, to_date, tag, project, tasks_only, as_json):
    """List entries for a day or date range, repeats expanded."""
    planner = _open()

    if from_date or to_date:
        start = (from_date or to_date).date()
        end = (to_date or from_date + timedelta(days=6)).date()
    else:
        start = end = on_date.date() if on_date else date.today()
    if start > end:
        _fail("--from must not be after --to")

    entries = filter_entries(
        planner.store.all(), tag=tag, project=project, tasks_only=tasks_only, locale=planner.taxonomy.locale
    )
    occs = expand_range(entries, start, end)
    _show_occurrences(occs, planner, as_json, "No entries.")


@main.command()
@click.argument("ref")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def show(ref: str, as_json: bool):
    """Show one entry with its links and sessions."""
    planner = _open()
    entry = _resolve_entry(planner, ref)
    parent = planner.store.parent(entry)
    children = planner.store.children(entry.id)
    sessions = planner.ledger.sessions_for(entry.id)

    if as_json:
        data = _entry_dict(entry, planner)
        data["children"] = [c.id for c in children]
        click.echo(json.dumps(data, indent=2, ensure_ascii=False))
        return

    click.echo(f"{entry.title}  ({entry.kind}, {_short(entry.id)})")
    if entry.is_task:
        click.echo(f"  Date:     {entry.start:%Y-%m-%d}")
    else:
        click.echo(f"  When:     {entry.start:%Y-%m-%d %H:%M} - {entry.end:%Y-%m-%d %H:%M}")
    click.echo(f"  Status:   {entry.status.value}")
    if entry.tag or entry.project:
        click.echo(f"  Tag:      {entry.tag or '-'}    Project: {entry.project or '-'}")
    if entry.assignee:
        click.echo(f"  Assignee: {entry.assignee}")
    if entry.recurrence:
        rule = entry.recurrence
        days = ",".join(d.name[:3].lower() for d in sorted(rule.weekdays))
        until = f" until {rule.until}" if rule.until else ""
        click.echo(f"  Repeats:  {rule.frequency.value} every {rule.interval}{' on ' + days if days else ''}{until}")
    if parent:
        click.echo(f"  Parent:   {_short(parent.id)} {parent.title}")
    for child in children:
        click.echo(f"  Child:    {_short(child.id)} {child.title} [{child.status.value}]")
    if entry.notes:
        click.echo(f"\n{entry.notes}")
    if sessions:
        minutes = sum(s.duration_seconds for s in sessions) // 60
        click.echo(f"\n  Pomodoro: {len(sessions)} sessions, {minutes} min")


@main.command()
@click.argument("ref")
@click.option("--title", default=None)
@click.option("--start", "start", type=WHEN, default=None)
@click.option("--end", "end", type=WHEN, default=None)
@click.option("--tag", default=None)
@click.option("--project", default=None)
@click.option("--color", type=click.Choice([c.value for c in Color]), default=None)
@click.option("--notes", default=None)
@click.option("--status", type=click.Choice([s.value for s in Status]), default=None)
@click.option("--assignee", default=None)
@click.option("--parent", "parent_ref", default=None, help="Parent id, or 'none' to detach")
@click.option("--repeat", type=click.Choice([f.value for f in Frequency]), default=None)
@click.option("--every", type=click.IntRange(min=1), default=1)
@click.option("--on", default=None)
@click.option("--until", type=DAY, default=None)
def edit(ref, title, start, end, tag, project, color, notes, status, assignee, parent_ref, repeat, every, on, until):
    """Change fields of an entry."""
    planner = _open()
    entry = _resolve_entry(planner, ref)

    if title is not None:
        entry.title = title
    if start is not None:
        was_task = entry.is_task
        entry.start = start
        if was_task and end is None:
            entry.end = start
    if end is not None:
        entry.end = end
    if tag is not None:
        entry.tag = tag
    if project is not None:
        entry.project = project
    if color is not None:
        entry.color = Color.parse(color)
    if notes is not None:
        entry.notes = notes
    if status is not None:
        entry.status = Status.parse(status)
    if assignee is not None:
        entry.assignee = assignee or None
    if parent_ref is not None:
        entry.parent_id = None if parent_ref == "none" else _resolve_entry(planner, parent_ref).id
    if repeat is not None:
        entry.recurrence = _build_recurrence(repeat, every, on, until)

    try:
        planner.store.update(entry)
    except ValidationError as e:
        _fail(str(e))
    click.echo(f"Updated {_short(entry.id)}: {entry.title}")


@main.command()
@click.argument("ref")
def rm(ref: str):
    """Delete an entry. Its subtasks are detached, not deleted."""
    planner = _open()
    entry = _resolve_entry(planner, ref)
    children = planner.store.children(entry.id)
    planner.store.delete(entry.id)
    click.echo(f"Deleted {_short(entry.id)}: {entry.title}")
    if children:
        click.echo(f"  Detached {len(children)} subtask(s)")


@main.command()
@click.argument("ref")
def conflicts(ref: str):
    """List timed entries overlapping an entry."""
    planner = _open()
    entry = _resolve_entry(planner, ref)
    found = planner.conflicts_for(entry)
    if not found:
        click.echo("No conflicts.")
        return
    for other in found:
        click.echo(f"  {_short(other.id)}  {other.format_time():11} {other.title}")


@main.command()
@click.option("--tag", default=None)
@click.option("--project", default=None)
def board(tag: str | None, project: str | None):
    """Show tasks grouped by status."""
    planner = _open()
    entries = planner.store.all()
    for status in Status:
        column = tasks_by_status(entries, status, tag=tag, project=project, locale=planner.taxonomy.locale)
        click.echo(f"## {status.value} ({len(column)})")
        for task in column:
            sessions = planner.ledger.count_for(task.id)
            pomodoros = f"  ({sessions} 🍅)" if sessions else ""
            click.echo(f"  {_short(task.id)}  {task.end:%Y-%m-%d}  {task.title}{pomodoros}")
        click.echo()


# ============== Tags & projects ==============


@main.group()
def tags():
    """Manage tags."""
    pass


@tags.command("list")
def tags_list():
    planner = _open()
    names = planner.taxonomy.all_tags()
    if not names:
        click.echo("No tags.")
        return
    for name in names:
        click.echo(name)


@tags.command("add")
@click.argument("name")
def tags_add(name: str):
    planner = _open()
    try:
        planner.taxonomy.register_tag(name)
    except ValueError as e:
        _fail(str(e))
    click.echo(f"Added tag {name.strip()}")


@tags.command("rename")
@click.argument("old")
@click.argument("new")
def tags_rename(old: str, new: str):
    planner = _open()
    try:
        count = planner.taxonomy.rename_tag(old, new)
    except ValueError as e:
        _fail(str(e))
    click.echo(f"Renamed tag {old!r} to {new.strip()!r} ({count} entries)")


@tags.command("rm")
@click.argument("name")
def tags_rm(name: str):
    planner = _open()
    count = planner.taxonomy.delete_tag(name)
    click.echo(f"Deleted tag {name!r} ({count} entries cleared)")


@main.group()
def projects():
    """Manage projects."""
    pass


@projects.command("list")
@click.option("--tag", default=None, help="Only projects associated with this tag")
def projects_list(tag: str | None):
    planner = _open()
    names = planner.taxonomy.projects_for_tag(tag)
    if not names:
        click.echo("No projects.")
        return
    for name in names:
        hint = planner.taxonomy.tag_for_project(name)
        click.echo(f"{name}  ({hint})" if hint else name)


@projects.command("add")
@click.argument("name")
@click.option("--tag", default=None, help="Tag this project belongs to")
def projects_add(name: str, tag: str | None):
    planner = _open()
    try:
        planner.taxonomy.register_project(name, tag)
    except ValueError as e:
        _fail(str(e))
    click.echo(f"Added project {name.strip()}")


@projects.command("rename")
@click.argument("old")
@click.argument("new")
def projects_rename(old: str, new: str):
    planner = _open()
    try:
        count = planner.taxonomy.rename_project(old, new)
    except ValueError as e:
        _fail(str(e))
    click.echo(f"Renamed project {old!r} to {new.strip()!r} ({count} entries)")


@projects.command("rm")
@click.argument("name")
def projects_rm(name: str):
    planner = _open()
    count = planner.taxonomy.delete_project(name)
    click.echo(f"Deleted project {name!r} ({count} entries cleared)")


# ============== Pomodoro ==============


@main.command()
@click.option("--entry", "entry_ref", default=None, help="Task to credit the session to")
@click.option("--minutes", type=click.IntRange(min=1), default=None, help="Override the planned length")
@click.option("--break", "is_break", is_flag=True, help="Run a break instead of a focus session")
@click.option("--note", default="", help="Note to attach to the session")
def focus(entry_ref: str | None, minutes: int | None, is_break: bool, note: str):
    """Run a pomodoro timer. Ctrl+C pauses."""
    planner = _open()
    timer = planner.new_timer(PomodoroMode.BREAK if is_break else PomodoroMode.FOCUS)
    if entry_ref:
        entry = _resolve_entry(planner, entry_ref)
        timer.link(entry.id)
        click.echo(f"Focusing on: {entry.title}")
    if minutes:
        timer.begin_edit()
        timer.commit_edit(minutes)
    timer.note = note

    click.echo(f"{timer.mode.value.title()} for {_clock(timer.planned_seconds)}. Press Ctrl+C to pause.")
    session = run_timer(
        timer,
        on_tick=lambda t: click.echo(f"\r  {_clock(t.remaining)} remaining ", nl=False),
    )
    click.echo()

    if session is not None:
        click.echo(f"✓ Session complete ({_clock(session.duration_seconds)})")
        return

    click.echo(f"Paused at {_clock(timer.elapsed)}.")
    if timer.elapsed and click.confirm("Record the partial session?", default=False):
        session = timer.complete()
        click.echo(f"Recorded {_clock(session.duration_seconds)} (not completed)")
    else:
        click.echo("Nothing recorded.")


def _session_line(session: PomodoroSession, planner: Planner) -> str:
    entry = planner.store.get(session.entry_id) if session.entry_id else None
    label = entry.title if entry else session.mode.value
    mark = "✓" if session.was_completed else "·"
    note = f"  ({session.notes})" if session.notes else ""
    return f"  {_short(session.id)}  {session.start:%Y-%m-%d %H:%M}  {mark} {_clock(session.duration_seconds)}  {label}{note}"


@main.group()
def sessions():
    """Review recorded pomodoro sessions."""
    pass


@sessions.command("list")
@click.option("--entry", "entry_ref", default=None, help="Only sessions for this entry")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def sessions_list(entry_ref: str | None, as_json: bool):
    planner = _open()
    if entry_ref:
        found = planner.ledger.sessions_for(_resolve_entry(planner, entry_ref).id)
    else:
        found = planner.ledger.all()

    if as_json:
        click.echo(json.dumps([s.to_dict() for s in found], indent=2, ensure_ascii=False))
        return
    if not found:
        click.echo("No sessions.")
        return
    for session in found:
        click.echo(_session_line(session, planner))


def _resolve_session(planner: Planner, ref: str) -> PomodoroSession:
    session = planner.ledger.find(ref)
    if session is None:
        _fail(f"No session matching {ref!r}")
    return session


@sessions.command("note")
@click.argument("ref")
@click.argument("text")
def sessions_note(ref: str, text: str):
    """Replace a session's note."""
    planner = _open()
    session = _resolve_session(planner, ref)
    session.notes = text.strip()
    planner.ledger.update(session)
    click.echo(f"Updated session {_short(session.id)}")


@sessions.command("link")
@click.argument("ref")
@click.argument("entry_ref")
def sessions_link(ref: str, entry_ref: str):
    """Credit a session to a different entry ('none' to unlink)."""
    planner = _open()
    session = _resolve_session(planner, ref)
    session.entry_id = None if entry_ref == "none" else _resolve_entry(planner, entry_ref).id
    planner.ledger.update(session)
    click.echo(f"Updated session {_short(session.id)}")


@sessions.command("rm")
@click.argument("ref")
def sessions_rm(ref: str):
    planner = _open()
    session = _resolve_session(planner, ref)
    planner.ledger.delete(session.id)
    click.echo(f"Deleted session {_short(session.id)}")


# ============== Notes ==============


@main.group()
def notes():
    """Manage notes."""
    pass


@notes.command("list")
@click.option("--tag", default=None)
@click.option("--project", default=None)
def notes_list(tag: str | None, project: str | None):
    planner = _open()
    found = planner.notebook.filter(tag=tag, project=project, locale=planner.taxonomy.locale)
    if not found:
        click.echo("No notes.")
        return
    for note in found:
        labels = ", ".join(sorted(note.tags) + ([note.project] if note.project else []))
        suffix = f"  [{labels}]" if labels else ""
        click.echo(f"  {_short(note.id)}  {note.date:%Y-%m-%d}  {note.title}{suffix}")


@notes.command("add")
@click.argument("title")
@click.option("--content", default="", help="Note body")
@click.option("--tag", "tag_names", multiple=True, help="Tag (repeatable)")
@click.option("--project", default="")
def notes_add(title: str, content: str, tag_names: tuple[str, ...], project: str):
    planner = _open()
    note = Note(title=title, content=content, tags={t.strip() for t in tag_names if t.strip()}, project=project)
    try:
        note_id = planner.notebook.add(note)
    except ValueError as e:
        _fail(str(e))
    click.echo(f"Added note {_short(note_id)}: {title.strip()}")


@notes.command("rm")
@click.argument("ref")
def notes_rm(ref: str):
    planner = _open()
    note = planner.notebook.find(ref)
    if note is None:
        _fail(f"No note matching {ref!r}")
    planner.notebook.delete(note.id)
    click.echo(f"Deleted note {_short(note.id)}")


@main.command()
def export():
    """Dump all planner data as JSON."""
    planner = _open()
    click.echo(export_json(planner))


if __name__ == "__main__":
    main()
