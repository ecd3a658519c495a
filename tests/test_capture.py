import asyncio

from iris_mobility.errors import CaptureFailure
from iris_mobility.reports.capture import (
    ChartRaster,
    PlotlyRasterizer,
    capture_charts,
    wait_for_render,
)


class FlakyRasterizer:
    def __init__(self, failing):
        self.failing = set(failing)

    def render(self, name, figure):
        if name in self.failing:
            raise CaptureFailure(f"{name} did not paint")
        return ChartRaster(name=name, width=1800, height=1000, data=b"png")


class BrokenFigure:
    class layout:
        height = None

    def to_image(self, **kwargs):
        raise RuntimeError("kaleido missing")


def test_failed_captures_are_omitted():
    figures = [("a", object()), ("b", object()), ("c", object())]
    rasters = capture_charts(figures, FlakyRasterizer({"b"}))
    assert [r.name for r in rasters] == ["a", "c"]


def test_all_captures_failing_gives_no_rasters():
    figures = [("a", object()), ("b", object())]
    assert capture_charts(figures, FlakyRasterizer({"a", "b"})) == []


def test_plotly_rasterizer_wraps_errors():
    rasters = capture_charts([("broken", BrokenFigure())], PlotlyRasterizer())
    assert rasters == []


def test_wait_for_render_returns_when_signalled():
    async def scenario():
        signal = asyncio.Event()
        asyncio.get_running_loop().call_later(0.01, signal.set)
        return await wait_for_render(signal, timeout=5)

    assert asyncio.run(scenario()) is True


def test_wait_for_render_times_out_without_failing():
    async def scenario():
        return await wait_for_render(asyncio.Event(), timeout=0.01)

    assert asyncio.run(scenario()) is False


def test_wait_for_render_without_signal():
    assert asyncio.run(wait_for_render(None)) is True
