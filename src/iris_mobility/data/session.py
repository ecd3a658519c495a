"""
Request Session (Imperative Shell)

Holds the one piece of mutable state in the system: which dataset is
current.  Callers pass a range selector and get a dataset (or a typed
failure) back; nothing reads the selection from ambient state.

Package Location: src/iris_mobility/data/session.py

Last-request-wins:
    Every ``request`` takes a new generation number before it starts
    loading.  When its load completes, the result is only published if no
    newer request has started in the meantime; otherwise the superseded
    caller gets ``StaleRequest`` and ``current`` is left untouched.

Report guard:
    Overlapping report generations are rejected with ``ReportNotReady``
    rather than queued.
"""

from __future__ import annotations

import logging
from datetime import date
from typing import TYPE_CHECKING, Any, Optional, Sequence, Union

from ..analysis.aggregate import DEFAULT_SPEED_LIMIT_KMH
from ..analysis.models import AggregatedDataset
from ..errors import ReportNotReady, StaleRequest
from .catalog import DayDescriptor, resolve_range
from .loader import DatasetLoader

if TYPE_CHECKING:
    from pathlib import Path
    from ..reports.generators import ReportGenerator

log = logging.getLogger(__name__)


class TrafficSession:
    """
    Serializes range requests and report generation for one operator.

    Args:
        loader: Loader used to fetch and aggregate source files.
        catalog: Day catalog; ``None`` uses the default catalog.
        speed_limit_kmh: Over-limit threshold passed to the aggregator.
    """

    def __init__(
        self,
        loader: DatasetLoader,
        catalog: Optional[Sequence[DayDescriptor]] = None,
        speed_limit_kmh: float = DEFAULT_SPEED_LIMIT_KMH,
    ) -> None:
        self.loader = loader
        self.catalog = catalog
        self.speed_limit_kmh = speed_limit_kmh
        self._generation: int = 0
        self._current: Optional[AggregatedDataset] = None
        self._reporting: bool = False

    @property
    def current(self) -> Optional[AggregatedDataset]:
        """Most recent dataset from a request that was not superseded."""
        return self._current

    @property
    def is_generating(self) -> bool:
        return self._reporting

    async def request(self, selector: Union[str, date]) -> AggregatedDataset:
        """
        Resolve *selector*, load its files and publish the dataset.

        Raises:
            RangeNotFound: Explicit date not in the catalog.
            SourceUnavailable: A source file could not be read.
            StaleRequest: A newer request started before this one finished.
        """
        self._generation += 1
        generation = self._generation

        days = resolve_range(selector, self.catalog)
        label = selector.strftime("%Y-%m-%d") if isinstance(selector, date) else str(selector)
        dataset = await self.loader.load_async(days, self.speed_limit_kmh, range_label=label)

        if generation != self._generation:
            log.info(
                f"Discarding superseded request for '{label}'",
                extra={"generation": generation, "latest": self._generation},
            )
            raise StaleRequest(f"Request for '{label}' was superseded")

        self._current = dataset
        return dataset

    async def generate_report(
        self,
        generator: "ReportGenerator",
        **kwargs: Any,
    ) -> "Path":
        """
        Build a report for the current dataset with *generator*.

        Keyword arguments are forwarded to ``ReportGenerator.generate_async``.

        Raises:
            ReportNotReady: No dataset loaded yet, or a report is already
                being generated.
        """
        if self._current is None:
            raise ReportNotReady("No dataset loaded")
        if self._reporting:
            raise ReportNotReady("A report is already being generated")

        self._reporting = True
        try:
            return await generator.generate_async(self._current, **kwargs)
        finally:
            self._reporting = False
