"""
Traffic Report Generator (Imperative Shell)

Thin orchestration layer: builds the chart figures for an aggregated
dataset, rasterizes them, lays out the report document and writes the PDF.

No aggregation logic lives here.  Datasets come from
src/iris_mobility/data/loader.py (directly or through ``TrafficSession``).

Package Location: src/iris_mobility/reports/generators.py

Usage::

    from pathlib import Path
    from iris_mobility.data import resolve_range, load_and_aggregate
    from iris_mobility.reports.generators import ReportGenerator

    dataset = load_and_aggregate(resolve_range("weekly"), data_dir="feeds/lima")
    gen = ReportGenerator(output_dir=Path("feeds/lima/outputs"))
    gen.generate(dataset, report_type="weekly")
    # Writes:
    #   feeds/lima/outputs/traffic-report-weekly-Oct25-Oct31.pdf
"""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Tuple, Union

from ..analysis.models import AggregatedDataset
from ..plotting.charts import build_report_figures
from .capture import ChartRaster, PlotlyRasterizer, Rasterizer, capture_charts, wait_for_render
from .layout import ReportOptions, build_report
from .pdf import write_report

log = logging.getLogger(__name__)


class ReportGenerator:
    """
    Generates the PDF traffic report for one site.

    Responsibilities
    ----------------
    - Build the standard chart figures from the functional core.
    - Rasterize them through a ``Rasterizer``; failed charts are dropped.
    - Lay out the document and write it atomically to ``output_dir``.
    - Optionally write each chart as a standalone HTML file.

    Args:
        output_dir: Directory that receives the PDF (and HTML charts).
        rasterizer: Chart rasterizer; ``None`` uses ``PlotlyRasterizer``
            on first use.
        metadata: Site metadata (``city_name``, ``intersection_name``) used
            in chart titles and on the cover.
        product_name: Product name shown on the cover and in footers.
        capture_timeout: Seconds ``generate_async`` waits for the
            render-complete signal before capturing anyway.
    """

    def __init__(
        self,
        output_dir: Union[str, Path],
        rasterizer: Optional[Rasterizer] = None,
        metadata: Optional[Dict[str, Any]] = None,
        product_name: str = 'IRIS Mobility',
        capture_timeout: float = 4.5,
    ) -> None:
        self.output_dir = Path(output_dir)
        self.metadata = dict(metadata or {})
        self.product_name = product_name
        self.capture_timeout = capture_timeout
        self._rasterizer = rasterizer

    # ------------------------------------------------------------------
    # Public interface
    # ------------------------------------------------------------------

    def generate(
        self,
        dataset: AggregatedDataset,
        report_type: str = 'weekly',
        selected_date: Optional[str] = None,
        selected_intersection: Optional[str] = None,
        include_charts: bool = True,
        write_html: bool = False,
    ) -> Path:
        """
        Build and write the report for *dataset*.

        Args:
            dataset: Aggregated dataset to report on.
            report_type: ``'daily'``, ``'weekly'``, ``'monthly'`` or any
                other range name (used in the title and filename).
            selected_date: Shown as the period when the dataset has no
                date range label.
            selected_intersection: Cover line; defaults to the metadata
                ``intersection_name``.
            include_charts: When ``False`` the report holds only the cover
                and the data tables.
            write_html: Also write ``{name}.html`` for every chart.

        Returns:
            Path of the written PDF.

        Raises:
            InvalidDataset: If the dataset's summary numbers are unusable.
        """
        figures: List[Tuple[str, Any]] = []
        if include_charts or write_html:
            figures = build_report_figures(dataset, self.metadata)

        if write_html:
            self._write_html(figures)

        rasters: Sequence[ChartRaster] = []
        if include_charts:
            rasters = capture_charts(figures, self.rasterizer)
            log.info(
                f"Captured {len(rasters)}/{len(figures)} charts",
                extra={"captured": len(rasters), "charts": len(figures)},
            )

        options = ReportOptions(
            report_type=report_type,
            selected_date=selected_date,
            selected_intersection=(
                selected_intersection or self.metadata.get('intersection_name')
            ),
            product_name=self.product_name,
        )
        document = build_report(dataset, rasters, options)
        return write_report(document, rasters, self.output_dir)

    async def generate_async(
        self,
        dataset: AggregatedDataset,
        render_complete: Optional[asyncio.Event] = None,
        **kwargs: Any,
    ) -> Path:
        """
        Wait for *render_complete* (bounded by ``capture_timeout``), then
        run ``generate`` in a worker thread.

        A timeout is logged and capture proceeds; it never fails the report.
        """
        await wait_for_render(render_complete, self.capture_timeout)
        return await asyncio.to_thread(self.generate, dataset, **kwargs)

    @property
    def rasterizer(self) -> Rasterizer:
        if self._rasterizer is None:
            self._rasterizer = PlotlyRasterizer()
        return self._rasterizer

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _write_html(self, figures: Sequence[Tuple[str, Any]]) -> None:
        self.output_dir.mkdir(parents=True, exist_ok=True)
        for name, fig in figures:
            out_path = self.output_dir / f'{name}.html'
            fig.write_html(str(out_path))
            log.info(f"Chart saved → {out_path}", extra={"chart": name})


# ---------------------------------------------------------------------------
# Convenience entry-point
# ---------------------------------------------------------------------------

def generate_report(
    dataset: AggregatedDataset,
    output_dir: Union[str, Path],
    report_type: str = 'weekly',
    **kwargs: Any,
) -> Path:
    """
    Convenience function: create a ``ReportGenerator`` and write one report.

    Extra keyword arguments go to ``ReportGenerator.generate``.

    Example::

        from iris_mobility.reports.generators import generate_report

        generate_report(dataset, "outputs", report_type="daily",
                        include_charts=False)
    """
    return ReportGenerator(output_dir=output_dir).generate(
        dataset, report_type=report_type, **kwargs
    )
