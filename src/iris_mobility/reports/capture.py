"""
Chart Capture (Shell Adapter)

Turns plotly figures into PNG rasters for the report's chart pages.

Package Location: src/iris_mobility/reports/capture.py

The layout code never sees a figure, only ``ChartRaster`` values, so the
rasterization technology can be swapped (or faked in tests) behind the
``Rasterizer`` protocol.

Degradation rule:
    A chart whose capture fails is logged and left out.  Capture problems
    never abort a report; with no rasters at all the report still contains
    the cover page and the data tables.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, List, Optional, Protocol, Sequence, Tuple

from ..errors import CaptureFailure

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class ChartRaster:
    """A rendered chart: pixel size plus encoded PNG bytes."""

    name: str
    width: int
    height: int
    data: bytes = b""


class Rasterizer(Protocol):
    def render(self, name: str, figure: Any) -> ChartRaster:
        """Render *figure*; raise ``CaptureFailure`` when it cannot."""
        ...


class PlotlyRasterizer:
    """
    Rasterizes plotly figures through ``Figure.to_image`` (kaleido).

    Args:
        width: Layout width in CSS pixels.
        height: Layout height in CSS pixels; ``None`` keeps each figure's
            own height (plotly default 500).
        scale: Device pixel ratio applied on export.
    """

    def __init__(self, width: int = 900, height: Optional[int] = 500, scale: float = 2) -> None:
        self.width = width
        self.height = height
        self.scale = scale

    def render(self, name: str, figure: Any) -> ChartRaster:
        height = self.height or figure.layout.height or 500
        try:
            data = figure.to_image(
                format='png',
                width=self.width,
                height=height,
                scale=self.scale,
            )
        except Exception as exc:
            raise CaptureFailure(f"Could not rasterize '{name}': {exc}") from exc
        return ChartRaster(
            name=name,
            width=int(round(self.width * self.scale)),
            height=int(round(height * self.scale)),
            data=data,
        )


def capture_charts(
    figures: Sequence[Tuple[str, Any]],
    rasterizer: Rasterizer,
) -> List[ChartRaster]:
    """
    Rasterize each ``(name, figure)`` pair, skipping failures.

    Returns:
        Rasters in the order of *figures*, minus the ones that failed.
    """
    rasters: List[ChartRaster] = []
    for name, figure in figures:
        try:
            rasters.append(rasterizer.render(name, figure))
        except CaptureFailure as exc:
            log.warning(
                f"Chart capture failed, omitting '{name}': {exc}",
                extra={"chart": name},
            )
    return rasters


async def wait_for_render(
    signal: Optional[asyncio.Event],
    timeout: float = 4.5,
) -> bool:
    """
    Wait until the visualization reports that it has finished painting.

    The timeout is only a safety net for a collaborator that never fires
    its signal.

    Returns:
        ``True`` if the signal fired (or there is none), ``False`` when the
        timeout elapsed first.
    """
    if signal is None:
        return True
    try:
        await asyncio.wait_for(signal.wait(), timeout=timeout)
    except asyncio.TimeoutError:
        log.warning(
            f"Render-complete signal not received after {timeout}s; capturing anyway",
            extra={"timeout": timeout},
        )
        return False
    return True
