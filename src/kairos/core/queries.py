"""Entry queries and filters - pure functions used by every view."""

from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Iterable

from .entries import PlannerEntry, Status, local_day, local_time
from .recurrence import occurrences
from .taxonomy import normalize


@dataclass
class Occurrence:
    """One virtual occurrence of an entry on a specific day."""

    entry: PlannerEntry
    date: date
    start: datetime
    end: datetime

    @property
    def is_original(self) -> bool:
        """True for the occurrence that falls on the entry's own start day."""
        return self.date == local_day(self.entry.start)


def sort_by_start(entries: Iterable[PlannerEntry]) -> list[PlannerEntry]:
    """Sort entries by start time."""
    return sorted(entries, key=lambda e: local_time(e.start))


def _occurrence_on(entry: PlannerEntry, day: date) -> Occurrence:
    shift = timedelta(days=(day - local_day(entry.start)).days)
    return Occurrence(entry=entry, date=day, start=entry.start + shift, end=entry.end + shift)


def expand_range(
    entries: Iterable[PlannerEntry],
    start: date,
    end: date,
) -> list[Occurrence]:
    """
    Expand every entry into its occurrences within an inclusive date range.

    Non-recurring entries contribute at most one occurrence. Start and end
    times are shifted onto the occurrence day.
    """
    expanded = []
    for entry in entries:
        for day in occurrences(entry.recurrence, local_day(entry.start), start, end):
            expanded.append(_occurrence_on(entry, day))
    return sorted(expanded, key=lambda o: (local_time(o.start), o.entry.title))


def entries_on_day(entries: Iterable[PlannerEntry], day: date) -> list[PlannerEntry]:
    """Entries that occur on a day, recurring ones included, sorted by time of day."""
    found = []
    for entry in entries:
        if entry.recurrence is None:
            if local_day(entry.start) == day:
                found.append(entry)
        elif next(occurrences(entry.recurrence, local_day(entry.start), day, day), None) is not None:
            found.append(entry)
    return sorted(found, key=lambda e: (local_time(e.start).time(), e.title))


def entries_in_range(
    entries: Iterable[PlannerEntry],
    start: date | datetime,
    end: date | datetime,
) -> list[PlannerEntry]:
    """
    Entries whose stored start falls within an inclusive range.

    Dates are widened to whole days. Recurrences are not expanded; use
    expand_range for that.
    """
    if not isinstance(start, datetime):
        start = datetime.combine(start, datetime.min.time())
    if not isinstance(end, datetime):
        end = datetime.combine(end, datetime.max.time())
    start, end = local_time(start), local_time(end)
    return sort_by_start(e for e in entries if start <= local_time(e.start) <= end)


def filter_entries(
    entries: Iterable[PlannerEntry],
    tag: str | None = None,
    project: str | None = None,
    tasks_only: bool = False,
    locale: str | None = None,
) -> list[PlannerEntry]:
    """
    Filter entries by tag and project using normalized matching.

    An empty or missing tag/project means "any".
    """
    wanted_tag = normalize(tag, locale) if tag else ""
    wanted_project = normalize(project, locale) if project else ""

    result = []
    for entry in entries:
        if tasks_only and not entry.is_task:
            continue
        if wanted_tag and normalize(entry.tag, locale) != wanted_tag:
            continue
        if wanted_project and normalize(entry.project, locale) != wanted_project:
            continue
        result.append(entry)
    return result


def tasks_by_status(
    entries: Iterable[PlannerEntry],
    status: Status,
    tag: str | None = None,
    project: str | None = None,
    locale: str | None = None,
) -> list[PlannerEntry]:
    """Tasks in one board column, earliest due first."""
    tasks = filter_entries(entries, tag=tag, project=project, tasks_only=True, locale=locale)
    return sorted((t for t in tasks if t.status is status), key=lambda t: local_time(t.end))


def children_of(entries: Iterable[PlannerEntry], parent_id: str) -> list[PlannerEntry]:
    """Direct children of an entry, sorted by title."""
    return sorted((e for e in entries if e.parent_id == parent_id), key=lambda e: e.title)


def parent_of(entries: Iterable[PlannerEntry], entry: PlannerEntry) -> PlannerEntry | None:
    """Resolve an entry's parent. A parent id that does not resolve means no parent."""
    if entry.parent_id is None:
        return None
    return next((e for e in entries if e.id == entry.parent_id), None)


def linkable_parents(entries: Iterable[PlannerEntry], entry: PlannerEntry) -> list[PlannerEntry]:
    """Tasks that could be chosen as parent: same tag and project, not the entry itself."""
    candidates = [
        e
        for e in entries
        if e.is_task and e.tag == entry.tag and e.project == entry.project and e.id != entry.id
    ]
    return sorted(candidates, key=lambda e: e.title)
