"""
Daily Sensor CSV Parser (Functional Core)

Turns the text of one per-day CSV into ``VehicleCrossing`` records.
Pure transformation - accepts text, returns records.  No I/O.

Package Location: src/iris_mobility/analysis/parser.py

Row format (header line is skipped)::

    timestamp,vehicleClass,entryDirection,exitDirection,distanceMeters,speedKmh
    05-09-2017 08:14,Car,north,south,412.0,63.7

Only fields 1, 2, 3 and 6 are consumed.

Skip Rule:
    A row with fewer than six fields, or whose sixth field is not a finite
    number, is dropped silently.  A malformed row never aborts the file.
"""

from __future__ import annotations

import logging
import math
import re
from typing import List, Optional, Sequence

import pandas as pd

from .models import VEHICLE_CLASSES, VehicleCrossing

log = logging.getLogger(__name__)

_MIN_FIELDS: int = 6
_LINE_SPLIT = re.compile(r"\r?\n")
_LEADING_INT = re.compile(r"^\s*([+-]?\d+)")
_LEADING_NUMBER = re.compile(r"^\s*[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?")

FRAME_COLUMNS: List[str] = [
    "timestamp_raw",
    "hour",
    "vehicle_class",
    "entry_direction",
    "speed_kmh",
    "day_index",
]


def parse_rows(text: str, day_index: int) -> List[VehicleCrossing]:
    """
    Parse one file's text into crossing records tagged with *day_index*.

    Args:
        text: Full CSV text including the header line.
        day_index: Position of this file within the loaded day list.

    Returns:
        Records in file order.  Dropped rows are only reported as a debug
        log count.
    """
    lines = _LINE_SPLIT.split(text.strip())
    records: List[VehicleCrossing] = []
    skipped = 0

    for line in lines[1:]:
        record = parse_row(line.split(","), day_index)
        if record is None:
            skipped += 1
            continue
        records.append(record)

    if skipped:
        log.debug(
            "Dropped %d malformed rows",
            skipped,
            extra={"day_index": day_index, "skipped": skipped},
        )
    return records


def parse_row(parts: Sequence[str], day_index: int) -> Optional[VehicleCrossing]:
    """
    Build a record from the comma-split fields of one line.

    Returns:
        ``VehicleCrossing`` or ``None`` when the row must be skipped.
    """
    if len(parts) < _MIN_FIELDS:
        return None

    speed = _parse_speed(parts[5])
    if speed is None:
        return None

    timestamp = parts[0].strip()
    cls = parts[1].strip().lower()

    return VehicleCrossing(
        timestamp_raw=timestamp,
        hour=parse_hour(timestamp),
        vehicle_class=cls if cls in VEHICLE_CLASSES else "car",
        entry_direction=parts[2].strip().upper(),
        speed_kmh=speed,
        day_index=day_index,
    )


def parse_hour(timestamp: str) -> int:
    """
    Extract the hour from ``"DD-MM-YYYY HH:MM"``.

    The hour is the leading integer of the second whitespace token.
    Missing or unparseable values give 0; out-of-range values clamp to
    ``[0, 23]``.
    """
    if not timestamp or not isinstance(timestamp, str):
        return 0
    tokens = timestamp.split()
    if len(tokens) < 2:
        return 0
    match = _LEADING_INT.match(tokens[1].split(":")[0])
    if match is None:
        return 0
    return min(23, max(0, int(match.group(1))))


def records_to_frame(records: Sequence[VehicleCrossing]) -> pd.DataFrame:
    """
    Convert records to a DataFrame with ``FRAME_COLUMNS``.

    Returns an empty DataFrame with the correct schema when *records* is
    empty.
    """
    if not records:
        return pd.DataFrame(columns=FRAME_COLUMNS)

    df = pd.DataFrame(
        [
            (r.timestamp_raw, r.hour, r.vehicle_class, r.entry_direction,
             r.speed_kmh, r.day_index)
            for r in records
        ],
        columns=FRAME_COLUMNS,
    )
    df["hour"] = df["hour"].astype(int)
    df["speed_kmh"] = df["speed_kmh"].astype(float)
    df["day_index"] = df["day_index"].astype(int)
    return df


def _parse_speed(raw: str) -> Optional[float]:
    """Leading numeric prefix of *raw* (``"72km"`` is 72); None if there is none."""
    match = _LEADING_NUMBER.match(raw or "")
    if match is None:
        return None
    value = float(match.group(0))
    if not math.isfinite(value):
        return None
    return value
