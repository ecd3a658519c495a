import asyncio
import io
from pathlib import Path

from PIL import Image

from iris_mobility.analysis.aggregate import aggregate
from iris_mobility.analysis.parser import parse_rows
from iris_mobility.errors import CaptureFailure
from iris_mobility.reports.capture import ChartRaster
from iris_mobility.reports.generators import ReportGenerator, generate_report


class PngRasterizer:
    """Paints a flat PNG per chart instead of calling kaleido."""

    def __init__(self, fail=()):
        self.fail = set(fail)
        self.rendered = []

    def render(self, name, figure):
        if name in self.fail:
            raise CaptureFailure(name)
        self.rendered.append(name)
        buf = io.BytesIO()
        Image.new("RGB", (300, 250), "white").save(buf, format="PNG")
        return ChartRaster(name, 300, 250, buf.getvalue())


def dataset(text, days):
    return aggregate(parse_rows(text, 0), days)


def test_generate_writes_pdf(tmp_path: Path, scenario_a_text, one_day):
    rasterizer = PngRasterizer()
    gen = ReportGenerator(tmp_path, rasterizer=rasterizer, metadata={"city_name": "Lima"})
    path = gen.generate(dataset(scenario_a_text, one_day), report_type="daily")

    assert path == tmp_path / "traffic-report-daily-Sep1.pdf"
    assert path.read_bytes().startswith(b"%PDF")
    assert len(rasterizer.rendered) == 5


def test_failed_captures_do_not_fail_report(tmp_path: Path, scenario_a_text, one_day):
    rasterizer = PngRasterizer(fail={"hourly_frequency", "risk_heatmap"})
    path = ReportGenerator(tmp_path, rasterizer=rasterizer).generate(
        dataset(scenario_a_text, one_day)
    )
    assert path.exists()
    assert rasterizer.rendered == ["hourly_trend", "class_distribution", "direction_classes"]


def test_without_charts_rasterizer_is_not_used(tmp_path: Path, scenario_a_text, one_day):
    rasterizer = PngRasterizer()
    ReportGenerator(tmp_path, rasterizer=rasterizer).generate(
        dataset(scenario_a_text, one_day), include_charts=False
    )
    assert rasterizer.rendered == []


def test_write_html(tmp_path: Path, scenario_a_text, one_day):
    ReportGenerator(tmp_path, rasterizer=PngRasterizer()).generate(
        dataset(scenario_a_text, one_day), include_charts=False, write_html=True
    )
    assert (tmp_path / "hourly_frequency.html").exists()
    assert (tmp_path / "direction_classes.html").exists()


def test_generate_async_waits_for_signal_then_falls_back(tmp_path: Path, scenario_a_text, one_day):
    gen = ReportGenerator(tmp_path, rasterizer=PngRasterizer(), capture_timeout=0.01)
    ds = dataset(scenario_a_text, one_day)

    async def scenario():
        never = asyncio.Event()
        return await gen.generate_async(ds, render_complete=never, report_type="daily")

    path = asyncio.run(scenario())
    assert path.exists()


def test_generate_report_helper(tmp_path: Path, scenario_a_text, one_day):
    path = generate_report(dataset(scenario_a_text, one_day), tmp_path,
                           report_type="daily", include_charts=False)
    assert path.name == "traffic-report-daily-Sep1.pdf"
