"""
Source Loader (Imperative Shell)

Fetches the per-day CSV files of a resolved range, parses them with the
Functional Core and runs the aggregation.

Package Location: src/iris_mobility/data/loader.py

Fetch order:
    ``load`` reads files one after another.  ``load_async`` fetches them
    concurrently in worker threads.  Either way the records are assembled
    in day-list order and aggregated in a single pass, so both produce the
    same dataset.

Failure rule:
    Any file that cannot be read aborts the whole request with
    ``SourceUnavailable``.  No partial dataset is ever returned.
"""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Callable, List, Optional, Sequence, Union

from ..analysis.aggregate import DEFAULT_SPEED_LIMIT_KMH, aggregate
from ..analysis.models import AggregatedDataset, VehicleCrossing
from ..analysis.parser import parse_rows
from ..errors import EmptyRange, SourceUnavailable
from .catalog import DayDescriptor

log = logging.getLogger(__name__)

FetchFn = Callable[[DayDescriptor], str]


class DatasetLoader:
    """
    Loads and aggregates the source files for a day list.

    Args:
        data_dir: Directory holding the ``YYYY-MM-DD.csv`` files.
        fetch: Optional replacement for the file reader.  Receives a
            ``DayDescriptor`` and returns the file text; any exception it
            raises is reported as ``SourceUnavailable``.
    """

    def __init__(
        self,
        data_dir: Union[str, Path],
        fetch: Optional[FetchFn] = None,
    ) -> None:
        self.data_dir = Path(data_dir)
        self._fetch = fetch or self._read_file

    # ------------------------------------------------------------------
    # Public interface
    # ------------------------------------------------------------------

    def load(
        self,
        days: Sequence[DayDescriptor],
        speed_limit_kmh: float = DEFAULT_SPEED_LIMIT_KMH,
        range_label: Optional[str] = None,
    ) -> AggregatedDataset:
        """
        Fetch every file in *days* sequentially and aggregate.

        Raises:
            EmptyRange: If *days* is empty.
            SourceUnavailable: If any file cannot be read.
        """
        days = _require_days(days)
        texts = [self.fetch_text(day) for day in days]
        return self._aggregate(days, texts, speed_limit_kmh, range_label)

    async def load_async(
        self,
        days: Sequence[DayDescriptor],
        speed_limit_kmh: float = DEFAULT_SPEED_LIMIT_KMH,
        range_label: Optional[str] = None,
    ) -> AggregatedDataset:
        """
        Fetch every file in *days* concurrently and aggregate.

        Raises:
            EmptyRange: If *days* is empty.
            SourceUnavailable: If any file cannot be read.
        """
        days = _require_days(days)
        texts = await asyncio.gather(
            *(asyncio.to_thread(self.fetch_text, day) for day in days)
        )
        return self._aggregate(days, list(texts), speed_limit_kmh, range_label)

    def fetch_text(self, day: DayDescriptor) -> str:
        """
        Return the raw text of one day's file.

        Raises:
            SourceUnavailable: If the fetch fails for any reason.
        """
        try:
            return self._fetch(day)
        except SourceUnavailable:
            raise
        except Exception as exc:
            log.error(
                f"Failed to load {day.file_id}: {exc}",
                extra={"file_id": day.file_id},
            )
            raise SourceUnavailable(f"Failed to load {day.file_id}: {exc}") from exc

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _read_file(self, day: DayDescriptor) -> str:
        # Undecodable bytes become U+FFFD; the parser then judges the row.
        return (self.data_dir / day.file_id).read_text(encoding="utf-8", errors="replace")

    def _aggregate(
        self,
        days: Sequence[DayDescriptor],
        texts: List[str],
        speed_limit_kmh: float,
        range_label: Optional[str],
    ) -> AggregatedDataset:
        records: List[VehicleCrossing] = []
        for day_index, text in enumerate(texts):
            records.extend(parse_rows(text, day_index))

        dataset = aggregate(records, days, speed_limit_kmh, range_label)
        log.info(
            f"Aggregated {dataset.total_vehicles} vehicles over {len(days)} day(s)",
            extra={
                "range": dataset.range_label,
                "days": len(days),
                "total_vehicles": dataset.total_vehicles,
            },
        )
        return dataset


# ---------------------------------------------------------------------------
# Convenience entry-point
# ---------------------------------------------------------------------------

def load_and_aggregate(
    days: Sequence[DayDescriptor],
    speed_limit_kmh: float = DEFAULT_SPEED_LIMIT_KMH,
    data_dir: Union[str, Path] = ".",
    range_label: Optional[str] = None,
) -> AggregatedDataset:
    """
    Convenience function: create a ``DatasetLoader`` and load one day list.

    Example::

        from iris_mobility.data import resolve_range, load_and_aggregate

        days = resolve_range("weekly")
        dataset = load_and_aggregate(days, 80, data_dir="feeds/miraflores")
    """
    return DatasetLoader(data_dir).load(days, speed_limit_kmh, range_label)


def _require_days(days: Sequence[DayDescriptor]) -> List[DayDescriptor]:
    days = list(days)
    if not days:
        raise EmptyRange("No days to load")
    return days
