"""Entry validation and schedule conflict detection - no I/O dependencies."""

from collections.abc import Iterable, Mapping

from .entries import PlannerEntry, local_day, local_time


class ValidationError(Exception):
    """Raised when an entry violates a write-time invariant."""

    pass


class InvalidTitleError(ValidationError):
    """Raised when an entry's title is blank."""

    pass


class InvalidDateRangeError(ValidationError):
    """Raised when an entry starts after it ends."""

    pass


class InvalidParentError(ValidationError):
    """Raised when a parent link is unknown, self-referential or cyclic."""

    pass


def validate(entry: PlannerEntry) -> None:
    """
    Check the per-entry invariants.

    Raises InvalidDateRangeError if start > end, then InvalidTitleError if the
    stripped title is empty. Returns None when the entry is valid.
    """
    if local_time(entry.start) > local_time(entry.end):
        raise InvalidDateRangeError(
            f"Entry starts after it ends ({entry.start.isoformat()} > {entry.end.isoformat()})"
        )
    if not entry.title.strip():
        raise InvalidTitleError("Entry title must not be empty")


def is_valid(entry: PlannerEntry) -> bool:
    try:
        validate(entry)
    except ValidationError:
        return False
    return True


def check_parent(entry: PlannerEntry, lookup: Mapping[str, PlannerEntry]) -> None:
    """
    Check the parent link of an entry about to be written.

    `lookup` is the current collection keyed by id. The parent must exist and
    following parent links upward must never lead back to the entry.
    """
    if entry.parent_id is None:
        return
    if entry.parent_id == entry.id:
        raise InvalidParentError("An entry cannot be its own parent")
    if entry.parent_id not in lookup:
        raise InvalidParentError(f"Parent entry not found: {entry.parent_id}")

    seen = {entry.id}
    current = lookup.get(entry.parent_id)
    while current is not None:
        if current.id in seen:
            raise InvalidParentError(f"Parent link would create a cycle through {current.id}")
        seen.add(current.id)
        if current.parent_id is None:
            break
        current = lookup.get(current.parent_id)


def conflicts(a: PlannerEntry, b: PlannerEntry) -> bool:
    """
    Check whether two entries overlap in time on the same calendar day.

    Touching intervals (one ends exactly when the other starts) do not
    conflict.
    """
    if local_day(a.start) != local_day(b.start):
        return False
    a_start, a_end = local_time(a.start), local_time(a.end)
    b_start, b_end = local_time(b.start), local_time(b.end)
    return a_start < b_end and b_start < a_end


def find_conflicts(entry: PlannerEntry, others: Iterable[PlannerEntry]) -> list[PlannerEntry]:
    """Find timed entries that overlap `entry`, sorted by start."""
    if entry.is_task:
        return []
    found = [
        other
        for other in others
        if other.id != entry.id and other.is_timed and conflicts(entry, other)
    ]
    return sorted(found, key=lambda e: local_time(e.start))
