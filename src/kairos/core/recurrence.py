"""Recurrence expansion - pure functions over a date window."""

from datetime import date, datetime, timedelta
from typing import Iterator

from dateutil.relativedelta import relativedelta

from .entries import Frequency, RecurrenceRule

DEFAULT_HORIZON_DAYS = 366 * 5


def _as_date(value: date | datetime) -> date:
    if isinstance(value, datetime):
        return value.date()
    return value


def occurrences(
    rule: RecurrenceRule | None,
    entry_start: date | datetime,
    window_start: date | datetime,
    window_end: date | datetime,
) -> Iterator[date]:
    """
    Yield the dates on which a recurring entry occurs inside a window.

    The window is inclusive on both ends. Occurrences never precede the
    entry's own start date and never follow `rule.until`. Calling again with
    the same arguments yields the same dates.
    """
    anchor = _as_date(entry_start)
    lo = _as_date(window_start)
    hi = _as_date(window_end)

    if rule is None or not rule.is_enabled:
        if lo <= anchor <= hi:
            yield anchor
        return

    lo = max(lo, anchor)
    if rule.until is not None:
        hi = min(hi, rule.until)
    if lo > hi:
        return

    if rule.frequency is Frequency.DAILY:
        yield from _daily(anchor, rule.interval, lo, hi)
    elif rule.frequency is Frequency.WEEKLY:
        weekdays = rule.weekdays or frozenset([anchor.weekday()])
        yield from _weekly(anchor, rule.interval, weekdays, lo, hi)
    elif rule.frequency is Frequency.MONTHLY:
        yield from _monthly(anchor, rule.interval, lo, hi)


def _daily(anchor: date, interval: int, lo: date, hi: date) -> Iterator[date]:
    # First k with anchor + k*interval >= lo
    k = -(-(lo - anchor).days // interval)
    current = anchor + timedelta(days=k * interval)
    step = timedelta(days=interval)
    while current <= hi:
        yield current
        current += step


def _weekly(anchor: date, interval: int, weekdays, lo: date, hi: date) -> Iterator[date]:
    anchor_monday = anchor - timedelta(days=anchor.weekday())
    week = (lo - anchor_monday).days // 7
    if week % interval:
        week += interval - week % interval

    offsets = sorted(int(d) for d in weekdays)
    while True:
        monday = anchor_monday + timedelta(weeks=week)
        if monday > hi:
            return
        for offset in offsets:
            day = monday + timedelta(days=offset)
            if lo <= day <= hi:
                yield day
        week += interval


def _monthly(anchor: date, interval: int, lo: date, hi: date) -> Iterator[date]:
    months_to_window = (lo.year - anchor.year) * 12 + (lo.month - anchor.month)
    k = max(0, months_to_window // interval)
    while True:
        # Always offset from the anchor so a short month does not shift later ones
        current = anchor + relativedelta(months=k * interval)
        if current > hi:
            return
        if current >= lo:
            yield current
        k += 1


def next_occurrence(
    rule: RecurrenceRule | None,
    entry_start: date | datetime,
    after: date | datetime,
    horizon_days: int = DEFAULT_HORIZON_DAYS,
) -> date | None:
    """First occurrence on or after `after`, or None within the horizon."""
    start = _as_date(after)
    return next(occurrences(rule, entry_start, start, start + timedelta(days=horizon_days)), None)
