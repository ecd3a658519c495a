from datetime import date
from typing import Iterable, List, Sequence, Tuple

import pytest

from iris_mobility.data.catalog import DayDescriptor, build_catalog

HEADER = "timestamp,vehicleClass,entryDirection,exitDirection,distanceMeters,speedKmh"


def csv_text(rows: Iterable[Tuple[str, str, str, float]], day: str = "01-09-2017") -> str:
    """Build one source file from ``(HH:MM, class, entry, speed)`` tuples."""
    lines = [HEADER]
    for time, cls, entry, speed in rows:
        lines.append(f"{day} {time},{cls},{entry},SOUTH,12.5,{speed}")
    return "\n".join(lines) + "\n"


def make_days(n: int, start: date = date(2017, 9, 1)) -> List[DayDescriptor]:
    days = build_catalog(start, date.fromordinal(start.toordinal() + n - 1))
    return list(days)


@pytest.fixture
def scenario_a_text() -> str:
    return csv_text([
        ("08:15", "car", "NORTH", 70),
        ("08:40", "car", "NORTH", 90),
        ("17:05", "truck", "SOUTH", 60),
    ])


@pytest.fixture
def one_day() -> Sequence[DayDescriptor]:
    return make_days(1)
