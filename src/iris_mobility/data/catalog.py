"""
Daily File Catalog and Range Resolution

Maps a logical range selector to the ordered list of per-day source files.
Pure functions over a static calendar - no I/O, no side effects.

Package Location: src/iris_mobility/data/catalog.py

Selectors:
    ``"daily"``    most recent 1 day
    ``"weekly"``   most recent 7 days
    ``"monthly"``  most recent 30 days
    ``"all"``      the whole catalog
    ``"YYYY-MM-DD"`` / ``datetime.date``  that single day

Results are always oldest first.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Optional, Sequence, Tuple, Union

from ..errors import RangeNotFound

# Default historical window covered by the sensor feed (61 days).
CATALOG_START: date = date(2017, 9, 1)
CATALOG_END: date = date(2017, 10, 31)

RANGE_DAYS = {
    "daily": 1,
    "weekly": 7,
    "monthly": 30,
}

RANGE_SELECTORS: Tuple[str, ...] = ("daily", "weekly", "monthly", "all")

_MONTH_LABELS = (
    "", "Jan", "Feb", "Mar", "Apr", "May", "Jun",
    "Jul", "Aug", "Sep", "Oct", "Nov", "Dec",
)


@dataclass(frozen=True)
class DayDescriptor:
    """One calendar day of the catalog and the file that holds it."""

    date: str
    label: str
    file_id: str


def day_descriptor(day: date) -> DayDescriptor:
    """Build the descriptor for *day* (label ``"Sep 5"``, file ``2017-09-05.csv``)."""
    iso = day.strftime("%Y-%m-%d")
    return DayDescriptor(
        date=iso,
        label=f"{_MONTH_LABELS[day.month]} {day.day}",
        file_id=f"{iso}.csv",
    )


def build_catalog(
    start: date = CATALOG_START,
    end: date = CATALOG_END,
) -> Tuple[DayDescriptor, ...]:
    """
    Return one descriptor per calendar day in ``[start, end]``, oldest first.

    Raises:
        ValueError: If *end* precedes *start*.
    """
    if end < start:
        raise ValueError(f"Catalog end {end} precedes start {start}")
    days = []
    current = start
    while current <= end:
        days.append(day_descriptor(current))
        current += timedelta(days=1)
    return tuple(days)


DEFAULT_CATALOG: Tuple[DayDescriptor, ...] = build_catalog()


def resolve_range(
    selector: Union[str, date],
    catalog: Optional[Sequence[DayDescriptor]] = None,
) -> Tuple[DayDescriptor, ...]:
    """
    Resolve a range selector against the catalog.

    Args:
        selector: ``"daily"``, ``"weekly"``, ``"monthly"``, ``"all"``, an
            ISO date string or a ``date``.
        catalog: Day catalog, oldest first.  Defaults to ``DEFAULT_CATALOG``.

    Returns:
        Tuple of ``DayDescriptor`` to load, oldest first.

    Raises:
        RangeNotFound: If an explicit date is not in the catalog.
        ValueError: If *selector* is neither a known selector nor a date.
    """
    days = tuple(DEFAULT_CATALOG if catalog is None else catalog)

    if isinstance(selector, datetime):
        selector = selector.date()
    if isinstance(selector, date):
        return _single_day(days, selector.strftime("%Y-%m-%d"))

    key = str(selector).strip().lower()
    if key == "all":
        return days
    if key in RANGE_DAYS:
        return days[-RANGE_DAYS[key]:] if days else ()

    try:
        iso = datetime.strptime(key, "%Y-%m-%d").strftime("%Y-%m-%d")
    except ValueError:
        raise ValueError(
            f"Unknown range selector '{selector}'. Use one of "
            f"{', '.join(RANGE_SELECTORS)} or a 'YYYY-MM-DD' date."
        )
    return _single_day(days, iso)


def _single_day(days: Sequence[DayDescriptor], iso: str) -> Tuple[DayDescriptor, ...]:
    for day in days:
        if day.date == iso:
            return (day,)
    raise RangeNotFound(f"No source file for date {iso}")
