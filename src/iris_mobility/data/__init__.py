"""
IRIS Mobility Data Package (Imperative Shell)

Handles the day catalog, source file loading and the request session.

Modules:
- catalog: Day catalog and range selector resolution
- loader:  Per-day CSV fetching + aggregation
- session: Last-request-wins dataset state and report guard
"""

from .catalog import (
    DEFAULT_CATALOG,
    DayDescriptor,
    build_catalog,
    day_descriptor,
    resolve_range,
)
from .loader import DatasetLoader, load_and_aggregate
from .session import TrafficSession

__all__ = [
    # Catalog
    'DEFAULT_CATALOG',
    'DayDescriptor',
    'build_catalog',
    'day_descriptor',
    'resolve_range',
    # Loader
    'DatasetLoader',
    'load_and_aggregate',
    # Session
    'TrafficSession',
]
