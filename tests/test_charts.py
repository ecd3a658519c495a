import plotly.graph_objects as go

from iris_mobility.analysis.aggregate import aggregate
from iris_mobility.analysis.parser import parse_rows
from iris_mobility.plotting.charts import (
    build_report_figures,
    plot_class_distribution,
    plot_hourly_trend,
    plot_risk_heatmap,
)

from conftest import csv_text, make_days


def test_report_figures_single_day(scenario_a_text, one_day):
    ds = aggregate(parse_rows(scenario_a_text, 0), one_day)
    figures = build_report_figures(ds, {"city_name": "Lima"})
    names = [name for name, _ in figures]
    assert names == [
        "hourly_frequency", "hourly_trend", "class_distribution",
        "risk_heatmap", "direction_classes",
    ]
    assert all(isinstance(fig, go.Figure) for _, fig in figures)
    assert figures[0][1].layout.title.text == "Lima – Vehicle Frequency by Hour (Sep 1)"


def test_multi_day_adds_speeding_chart():
    days = make_days(3)
    records = []
    for i in range(3):
        records += parse_rows(csv_text([("08:00", "car", "EAST", 95)]), i)
    figures = build_report_figures(aggregate(records, days))
    assert figures[-1][0] == "speeding_by_day"
    assert list(figures[-1][1].data[0].y) == [1, 1, 1]


def test_trend_is_stacked_by_class(scenario_a_text, one_day):
    fig = plot_hourly_trend(aggregate(parse_rows(scenario_a_text, 0), one_day))
    assert fig.layout.barmode == "stack"
    assert [t.name for t in fig.data] == ["Car", "Truck", "Bus"]
    assert fig.data[0].y[8] == 2


def test_pie_skips_absent_classes(scenario_a_text, one_day):
    fig = plot_class_distribution(aggregate(parse_rows(scenario_a_text, 0), one_day))
    assert list(fig.data[0].labels) == ["Car", "Truck"]


def test_heatmap_range_is_pinned(scenario_a_text, one_day):
    fig = plot_risk_heatmap(aggregate(parse_rows(scenario_a_text, 0), one_day))
    assert fig.data[0].zmin == 0
    assert fig.data[0].zmax == 4
    assert len(fig.data[0].z[0]) == 24
