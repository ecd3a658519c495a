import io
from pathlib import Path

import pytest
from PIL import Image

from iris_mobility.reports import pdf as pdf_module
from iris_mobility.reports.capture import ChartRaster
from iris_mobility.reports.layout import ReportOptions, build_report
from iris_mobility.reports.pdf import render_pdf, write_report


def png_raster(name: str, width: int, height: int) -> ChartRaster:
    buf = io.BytesIO()
    Image.new("RGB", (width, height), (10, 49, 97)).save(buf, format="PNG")
    return ChartRaster(name=name, width=width, height=height, data=buf.getvalue())


def dataset(**extra):
    data = {
        "total_vehicles": 3,
        "over_limit_count": 1,
        "avg_speed_mph": 45.6,
        "date_range_label": "Sep 1",
        "top_flows_by_direction": [
            {"rank": 1, "name": "Northbound", "volume": 2,
             "stats": "2 vehicles • avg 50 mph • 2 car, 0 truck, 0 bus"},
        ],
        "speeding_by_day": [{"day": "Sep 1", "count": 1}],
    }
    data.update(extra)
    return data


def test_render_pdf_with_sliced_and_whole_charts():
    rasters = [png_raster("tall", 400, 1400), png_raster("wide", 600, 300)]
    doc = build_report(dataset(), rasters, ReportOptions(report_type="daily"))
    data = render_pdf(doc, rasters)

    assert data.startswith(b"%PDF")
    # cover, three bands of the tall chart, the wide chart, one table page
    assert doc.page_count == 6


def test_render_pdf_without_rasters():
    doc = build_report(dataset())
    assert render_pdf(doc).startswith(b"%PDF")


def test_write_report_uses_document_filename(tmp_path: Path):
    doc = build_report(dataset(), options=ReportOptions(report_type="daily"))
    path = write_report(doc, [], tmp_path / "outputs")

    assert path == tmp_path / "outputs" / "traffic-report-daily-Sep1.pdf"
    assert path.read_bytes().startswith(b"%PDF")
    assert sorted(p.name for p in path.parent.iterdir()) == [path.name]


def test_failed_render_leaves_no_file(tmp_path: Path, monkeypatch):
    def boom(document, rasters=()):
        raise RuntimeError("renderer crashed")

    monkeypatch.setattr(pdf_module, "render_pdf", boom)
    doc = build_report(dataset())

    with pytest.raises(RuntimeError):
        write_report(doc, [], tmp_path)
    assert list(tmp_path.iterdir()) == []


def test_failed_write_removes_temp_file(tmp_path: Path, monkeypatch):
    def fail_replace(src, dst):
        raise OSError("disk full")

    monkeypatch.setattr(pdf_module.os, "replace", fail_replace)
    doc = build_report(dataset())

    with pytest.raises(OSError):
        write_report(doc, [], tmp_path)
    assert list(tmp_path.iterdir()) == []


def test_existing_report_is_replaced(tmp_path: Path):
    doc = build_report(dataset(), options=ReportOptions(report_type="daily"))
    target = tmp_path / f"{doc.filename}.pdf"
    target.write_bytes(b"old")

    write_report(doc, [], tmp_path)
    assert target.read_bytes().startswith(b"%PDF")
