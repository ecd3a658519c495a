"""
IRIS Mobility Data Model (Functional Core)

Plain value objects passed between the parser, the aggregator and the report
layer.  Everything here is immutable once constructed; an
``AggregatedDataset`` may be shared by the live charts and the report
assembler without copying.

Package Location: src/iris_mobility/analysis/models.py
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional, Tuple

# Known entry directions, in tie-break order for the flow ranking.
DIRECTIONS: Tuple[str, ...] = ("NORTH", "SOUTH", "EAST", "WEST")

# Accepted vehicle classes; anything else is normalized to "car".
VEHICLE_CLASSES: Tuple[str, ...] = ("car", "truck", "bus")


@dataclass(frozen=True)
class VehicleCrossing:
    """One parsed vehicle-detection row from a daily CSV."""

    timestamp_raw: str
    hour: int
    vehicle_class: str
    entry_direction: str
    speed_kmh: float
    day_index: int


@dataclass(frozen=True)
class HourBucket:
    count: int = 0
    over_limit: int = 0


@dataclass(frozen=True)
class DayBucket:
    day: str
    date: str
    count: int = 0
    over_limit: int = 0


@dataclass(frozen=True)
class DirectionBucket:
    count: int = 0
    speed_sum: float = 0.0
    car: int = 0
    truck: int = 0
    bus: int = 0


@dataclass(frozen=True)
class ClassShare:
    name: str
    value: int
    percent: float


@dataclass(frozen=True)
class DirectionFlow:
    """
    One row of the direction ranking.

    ``stats`` is the pre-formatted summary shown on screen, e.g.
    ``"1,204 vehicles • avg 38 mph • 1100 car, 90 truck, 14 bus"``.
    """

    rank: int
    name: str
    stats: str
    volume: int


@dataclass(frozen=True)
class HighSpeedEvent:
    ts: str
    type: str
    direction: str
    speed_kmh: float
    speed_mph: float
    confidence: str


@dataclass(frozen=True)
class HourValue:
    label: str
    value: int


@dataclass(frozen=True)
class HourClassCounts:
    time: str
    cars: int
    trucks: int
    buses: int


@dataclass(frozen=True)
class LabelValue:
    label: str
    value: int


@dataclass(frozen=True)
class DaySpeeding:
    day: str
    count: int


@dataclass(frozen=True)
class AggregatedDataset:
    """
    Immutable aggregate over one resolved day list.

    Bucket sums are consistent by construction:
    ``sum(per_hour) == sum(per_day) == sum(per_class) == total_vehicles``.
    Direction volumes may sum to less than ``total_vehicles`` because rows
    with an unrecognized entry direction are only excluded from the direction
    buckets.
    """

    range_label: str
    day_names: Tuple[str, ...]
    all_dates: Tuple[str, ...]
    date_range_label: str
    speed_limit_kmh: float
    total_vehicles: int
    estimated_pedestrians: int
    avg_speed_kmh: float
    avg_speed_mph: float
    over_limit_count: int
    per_hour: Tuple[HourBucket, ...]
    per_day: Tuple[DayBucket, ...]
    per_direction: Mapping[str, DirectionBucket]
    per_class: Tuple[ClassShare, ...]
    risk_by_hour: Tuple[int, ...]
    top_flows_by_direction: Tuple[DirectionFlow, ...]
    high_speed_events: Tuple[HighSpeedEvent, ...]
    vehicle_frequency_by_hour: Tuple[HourValue, ...]
    vehicle_trend_by_hour: Tuple[HourClassCounts, ...]
    direction_class_bars: Tuple[LabelValue, ...]
    speeding_by_day: Tuple[DaySpeeding, ...]

    def __post_init__(self) -> None:
        # Freeze the one mutable container so consumers cannot alter buckets.
        if not isinstance(self.per_direction, MappingProxyType):
            object.__setattr__(
                self, "per_direction", MappingProxyType(dict(self.per_direction))
            )

    @property
    def num_days(self) -> int:
        return len(self.all_dates)

    def class_share(self, name: str) -> Optional[ClassShare]:
        """Return the share for ``"Car"``, ``"Truck"`` or ``"Bus"`` (None if zero)."""
        for share in self.per_class:
            if share.name.lower() == name.lower():
                return share
        return None

    def to_dict(self) -> Dict[str, Any]:
        """
        Return a JSON-serialisable dict.

        Keys match the attribute names; the report assembler accepts this
        shape as well as the dataclass itself.
        """
        return {
            "range_label": self.range_label,
            "day_names": list(self.day_names),
            "all_dates": list(self.all_dates),
            "date_range_label": self.date_range_label,
            "speed_limit_kmh": self.speed_limit_kmh,
            "total_vehicles": self.total_vehicles,
            "estimated_pedestrians": self.estimated_pedestrians,
            "avg_speed_kmh": self.avg_speed_kmh,
            "avg_speed_mph": self.avg_speed_mph,
            "over_limit_count": self.over_limit_count,
            "per_hour": [asdict(b) for b in self.per_hour],
            "per_day": [asdict(b) for b in self.per_day],
            "per_direction": {k: asdict(v) for k, v in self.per_direction.items()},
            "per_class": [asdict(c) for c in self.per_class],
            "risk_by_hour": list(self.risk_by_hour),
            "top_flows_by_direction": [asdict(f) for f in self.top_flows_by_direction],
            "high_speed_events": [asdict(e) for e in self.high_speed_events],
            "vehicle_frequency_by_hour": [asdict(h) for h in self.vehicle_frequency_by_hour],
            "vehicle_trend_by_hour": [asdict(h) for h in self.vehicle_trend_by_hour],
            "direction_class_bars": [asdict(b) for b in self.direction_class_bars],
            "speeding_by_day": [asdict(d) for d in self.speeding_by_day],
        }
