"""
IRIS Mobility Analysis Package (Functional Core)

Pure transformations - no file I/O, no shared state.

Modules:
- models:    Frozen dataclasses for crossings and the aggregated dataset
- parser:    CSV text → ``VehicleCrossing`` records
- aggregate: Records → ``AggregatedDataset`` (hour/day/direction/class)
"""

from .models import (
    DIRECTIONS,
    VEHICLE_CLASSES,
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
from .parser import parse_hour, parse_row, parse_rows, records_to_frame
from .aggregate import (
    DEFAULT_SPEED_LIMIT_KMH,
    aggregate,
    aggregate_frame,
    risk_level,
    round_half_away,
)

__all__ = [
    # Models
    'DIRECTIONS',
    'VEHICLE_CLASSES',
    'AggregatedDataset',
    'ClassShare',
    'DayBucket',
    'DaySpeeding',
    'DirectionBucket',
    'DirectionFlow',
    'HighSpeedEvent',
    'HourBucket',
    'HourClassCounts',
    'HourValue',
    'LabelValue',
    'VehicleCrossing',
    # Parser
    'parse_hour',
    'parse_row',
    'parse_rows',
    'records_to_frame',
    # Aggregation
    'DEFAULT_SPEED_LIMIT_KMH',
    'aggregate',
    'aggregate_frame',
    'risk_level',
    'round_half_away',
]
