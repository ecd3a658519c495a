"""
Traffic Aggregation (Functional Core)

Pure functions only. No I/O, no side effects.
Input is a flat list of ``VehicleCrossing`` records plus the resolved day
list; output is one ``AggregatedDataset``.

Package Location: src/iris_mobility/analysis/aggregate.py

Two-Pass Rule:
    The accumulation pass fills hour, day, class and direction buckets and
    collects over-limit events.  Every derived field (averages, shares,
    risk levels, rankings, labels) is computed afterwards from the completed
    buckets only, so totals never depend on record order.  Speed sums use
    ``math.fsum`` for the same reason.

Rounding Rule:
    All rounding is to one decimal, half away from zero on ``value * 10``.
    The km/h → mph divisor (1.609) is applied to summed or averaged values,
    never per row.  ``avg_speed_mph`` is derived from the already rounded
    ``avg_speed_kmh``.
"""

from __future__ import annotations

import math
from typing import Any, Dict, List, Optional, Sequence

import numpy as np
import pandas as pd

from .models import (
    DIRECTIONS,
    AggregatedDataset,
    ClassShare,
    DayBucket,
    DaySpeeding,
    DirectionBucket,
    DirectionFlow,
    HighSpeedEvent,
    HourBucket,
    HourClassCounts,
    HourValue,
    LabelValue,
    VehicleCrossing,
)
from .parser import records_to_frame

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

DEFAULT_SPEED_LIMIT_KMH: float = 80.0
KMH_PER_MPH: float = 1.609
PEDESTRIAN_RATIO: float = 0.036
MAX_HIGH_SPEED_EVENTS: int = 100

# Lower bounds (inclusive) of risk levels 1..4, in vehicles per hour bucket.
# Absolute counts, so daily/weekly/monthly views colour differently.
_RISK_THRESHOLDS = (50, 150, 350, 700)

_CLASS_LABELS = (("car", "Car"), ("truck", "Truck"), ("bus", "Bus"))


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def aggregate(
    records: Sequence[VehicleCrossing],
    days: Sequence[Any],
    speed_limit_kmh: float = DEFAULT_SPEED_LIMIT_KMH,
    range_label: Optional[str] = None,
) -> AggregatedDataset:
    """
    Reduce crossing records into an ``AggregatedDataset``.

    Args:
        records: Parsed records from every loaded file, each tagged with its
            ``day_index``.
        days: Resolved day list (objects with ``date`` and ``label``
            attributes, oldest first).  ``len(days)`` fixes the number of
            day buckets.
        speed_limit_kmh: Over-limit threshold (inclusive).
        range_label: Selector that produced *days*; defaults to the first
            date for a single day and ``"custom"`` otherwise.

    Returns:
        A new, immutable ``AggregatedDataset``.

    Raises:
        ValueError: If a record's ``day_index`` falls outside *days* or its
            ``hour`` outside 0-23.
    """
    num_days = len(days)
    df = records_to_frame(records)

    if not df.empty:
        bad = (df["day_index"] < 0) | (df["day_index"] >= num_days)
        if bad.any():
            raise ValueError(
                f"Record day_index out of range for {num_days} loaded days"
            )
        if ((df["hour"] < 0) | (df["hour"] > 23)).any():
            raise ValueError("Record hour outside 0-23")

    buckets = _accumulate(df, num_days, speed_limit_kmh)
    return _derive(buckets, days, speed_limit_kmh, range_label)


def aggregate_frame(
    df: pd.DataFrame,
    days: Sequence[Any],
    speed_limit_kmh: float = DEFAULT_SPEED_LIMIT_KMH,
    range_label: Optional[str] = None,
) -> AggregatedDataset:
    """
    Same as ``aggregate`` but for a records DataFrame with the parser's
    ``FRAME_COLUMNS``.
    """
    records = [
        VehicleCrossing(
            timestamp_raw=row.timestamp_raw,
            hour=int(row.hour),
            vehicle_class=row.vehicle_class,
            entry_direction=row.entry_direction,
            speed_kmh=float(row.speed_kmh),
            day_index=int(row.day_index),
        )
        for row in df.itertuples(index=False)
    ]
    return aggregate(records, days, speed_limit_kmh, range_label)


def risk_level(count: int) -> int:
    """Map an hourly vehicle count to a risk level 0-4."""
    level = 0
    for threshold in _RISK_THRESHOLDS:
        if count >= threshold:
            level += 1
    return level


def round_half_away(value: float, digits: int = 1) -> float:
    """
    Round half away from zero on ``value * 10**digits``.

    Python's ``round`` uses banker's rounding; report values must match the
    dashboard, which rounds halves up.
    """
    factor = 10 ** digits
    scaled = abs(value) * factor
    rounded = math.floor(scaled + 0.5) / factor
    return math.copysign(rounded, value) if value else 0.0


def hour_label(hour: int) -> str:
    """12-hour clock label: ``12 AM``, ``1 AM`` ... ``12 PM``, ``11 PM``."""
    if hour == 0:
        return "12 AM"
    if hour == 12:
        return "12 PM"
    if hour < 12:
        return f"{hour} AM"
    return f"{hour - 12} PM"


def direction_label(entry: str) -> str:
    """``"NORTH"`` → ``"Northbound"``."""
    return entry[:1] + entry[1:].lower() + "bound"


# ---------------------------------------------------------------------------
# Pass 1: accumulation
# ---------------------------------------------------------------------------

def _accumulate(
    df: pd.DataFrame,
    num_days: int,
    speed_limit_kmh: float,
) -> Dict[str, Any]:
    """
    Fill every bucket from the records frame.

    Returns:
        Dict of raw counts and sums; nothing in it is rounded or ranked.
    """
    hours = pd.RangeIndex(24)
    day_range = pd.RangeIndex(num_days)

    if df.empty:
        zeros_h = np.zeros(24, dtype=int)
        return {
            "total": 0,
            "speed_sum": 0.0,
            "hour_count": zeros_h,
            "hour_over": zeros_h,
            "day_count": np.zeros(num_days, dtype=int),
            "day_over": np.zeros(num_days, dtype=int),
            "class_count": {cls: 0 for cls, _ in _CLASS_LABELS},
            "hour_class": pd.DataFrame(0, index=hours, columns=[c for c, _ in _CLASS_LABELS]),
            "direction": {d: DirectionBucket() for d in DIRECTIONS},
            "events": df,
        }

    over = df["speed_kmh"] >= speed_limit_kmh

    hour_count = df.groupby("hour").size().reindex(hours, fill_value=0)
    hour_over = df.loc[over].groupby("hour").size().reindex(hours, fill_value=0)
    day_count = df.groupby("day_index").size().reindex(day_range, fill_value=0)
    day_over = df.loc[over].groupby("day_index").size().reindex(day_range, fill_value=0)

    class_sizes = df.groupby("vehicle_class").size()
    class_count = {cls: int(class_sizes.get(cls, 0)) for cls, _ in _CLASS_LABELS}

    hour_class = (
        df.groupby(["hour", "vehicle_class"])
        .size()
        .unstack(fill_value=0)
        .reindex(index=hours, columns=[c for c, _ in _CLASS_LABELS], fill_value=0)
    )

    # Unrecognized directions drop out here but stay in every other bucket.
    known = df.loc[df["entry_direction"].isin(DIRECTIONS)]
    direction: Dict[str, DirectionBucket] = {}
    for entry in DIRECTIONS:
        rows = known.loc[known["entry_direction"] == entry]
        per_cls = rows.groupby("vehicle_class").size()
        direction[entry] = DirectionBucket(
            count=len(rows),
            speed_sum=math.fsum(rows["speed_kmh"]),
            car=int(per_cls.get("car", 0)),
            truck=int(per_cls.get("truck", 0)),
            bus=int(per_cls.get("bus", 0)),
        )

    return {
        "total": len(df),
        "speed_sum": math.fsum(df["speed_kmh"]),
        "hour_count": hour_count.to_numpy(dtype=int),
        "hour_over": hour_over.to_numpy(dtype=int),
        "day_count": day_count.to_numpy(dtype=int),
        "day_over": day_over.to_numpy(dtype=int),
        "class_count": class_count,
        "hour_class": hour_class,
        "direction": direction,
        "events": df.loc[over],
    }


# ---------------------------------------------------------------------------
# Pass 2: derived fields
# ---------------------------------------------------------------------------

def _derive(
    b: Dict[str, Any],
    days: Sequence[Any],
    speed_limit_kmh: float,
    range_label: Optional[str],
) -> AggregatedDataset:
    day_names = tuple(str(d.label) for d in days)
    all_dates = tuple(str(d.date) for d in days)
    num_days = len(days)

    total = int(b["total"])
    avg_kmh = round_half_away(b["speed_sum"] / total) if total > 0 else 0.0
    avg_mph = round_half_away(avg_kmh / KMH_PER_MPH) if total > 0 else 0.0

    per_hour = tuple(
        HourBucket(count=int(c), over_limit=int(o))
        for c, o in zip(b["hour_count"], b["hour_over"])
    )
    per_day = tuple(
        DayBucket(day=day_names[i], date=all_dates[i],
                  count=int(b["day_count"][i]), over_limit=int(b["day_over"][i]))
        for i in range(num_days)
    )

    if num_days == 0:
        date_range_label = ""
    elif num_days == 1:
        date_range_label = day_names[0]
    else:
        date_range_label = f"{day_names[0]}–{day_names[-1]}"

    if range_label is None:
        range_label = all_dates[0] if num_days == 1 else "custom"

    events = _build_events(b["events"], all_dates, speed_limit_kmh)

    return AggregatedDataset(
        range_label=range_label,
        day_names=day_names,
        all_dates=all_dates,
        date_range_label=date_range_label,
        speed_limit_kmh=float(speed_limit_kmh),
        total_vehicles=total,
        estimated_pedestrians=int(round_half_away(total * PEDESTRIAN_RATIO, 0)),
        avg_speed_kmh=avg_kmh,
        avg_speed_mph=avg_mph,
        over_limit_count=int(sum(b["hour_over"])),
        per_hour=per_hour,
        per_day=per_day,
        per_direction=b["direction"],
        per_class=_class_shares(b["class_count"]),
        risk_by_hour=tuple(risk_level(h.count) for h in per_hour),
        top_flows_by_direction=_rank_flows(b["direction"]),
        high_speed_events=events,
        vehicle_frequency_by_hour=tuple(
            HourValue(label=hour_label(h), value=per_hour[h].count) for h in range(24)
        ),
        vehicle_trend_by_hour=tuple(
            HourClassCounts(
                time=hour_label(h),
                cars=int(b["hour_class"].at[h, "car"]),
                trucks=int(b["hour_class"].at[h, "truck"]),
                buses=int(b["hour_class"].at[h, "bus"]),
            )
            for h in range(24)
        ),
        direction_class_bars=_direction_class_bars(b["direction"]),
        speeding_by_day=tuple(
            DaySpeeding(day=d.day, count=d.over_limit) for d in per_day
        ),
    )


def _class_shares(class_count: Dict[str, int]) -> tuple:
    """Percent share per class; zero-count classes are omitted, not zeroed."""
    present = [(label, class_count[cls]) for cls, label in _CLASS_LABELS if class_count[cls] > 0]
    total = sum(v for _, v in present)
    return tuple(
        ClassShare(
            name=label,
            value=value,
            percent=round_half_away(value / total * 100) if total > 0 else 0.0,
        )
        for label, value in present
    )


def _rank_flows(direction: Dict[str, DirectionBucket]) -> tuple:
    """
    Rank the four directions by volume, highest first.

    ``sorted`` is stable, so ties keep NORTH, SOUTH, EAST, WEST order.
    """
    flows = []
    for entry in DIRECTIONS:
        d = direction[entry]
        avg_kmh = d.speed_sum / d.count if d.count > 0 else 0.0
        avg_mph = int(round_half_away(avg_kmh / KMH_PER_MPH, 0))
        stats = (
            f"{d.count:,} vehicles • avg {avg_mph} mph • "
            f"{d.car} car, {d.truck} truck, {d.bus} bus"
        )
        flows.append((direction_label(entry), stats, d.count))

    ranked = sorted(flows, key=lambda f: f[2], reverse=True)
    return tuple(
        DirectionFlow(rank=i + 1, name=name, stats=stats, volume=volume)
        for i, (name, stats, volume) in enumerate(ranked)
    )


def _direction_class_bars(direction: Dict[str, DirectionBucket]) -> tuple:
    bars: List[LabelValue] = []
    for entry in DIRECTIONS:
        d = direction[entry]
        label = entry[:1] + entry[1:].lower()
        for cls, cls_label in _CLASS_LABELS:
            value = getattr(d, cls)
            if value:
                bars.append(LabelValue(label=f"{label} {cls_label}", value=value))
    return tuple(bars)


def _build_events(
    over_df: pd.DataFrame,
    all_dates: Sequence[str],
    speed_limit_kmh: float,
) -> tuple:
    """Materialize the first ``MAX_HIGH_SPEED_EVENTS`` over-limit rows, in row order."""
    events: List[HighSpeedEvent] = []
    for row in over_df.head(MAX_HIGH_SPEED_EVENTS).itertuples(index=False):
        speed = float(row.speed_kmh)
        confidence = min(99, int(round_half_away(70 + (speed - speed_limit_kmh) / 2, 0)))
        events.append(
            HighSpeedEvent(
                ts=f"{all_dates[int(row.day_index)]} {int(row.hour):02d}:00",
                type="Speeding",
                direction=direction_label(row.entry_direction),
                speed_kmh=round_half_away(speed),
                speed_mph=round_half_away(speed / KMH_PER_MPH),
                confidence=f"{confidence}%",
            )
        )
    return tuple(events)
