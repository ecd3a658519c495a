"""
Traffic Dashboard Charts (Functional Core)

Pure plotting functions - no file I/O, no side effects.
Input: ``AggregatedDataset`` (+ optional metadata dict).
Output: ``plotly.graph_objects.Figure``.

Package Location: src/iris_mobility/plotting/charts.py

The same figures back the on-screen dashboard and, once rasterized, the
chart pages of the PDF report.  ``build_report_figures`` fixes which charts
go into the report and in what order.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Tuple

import plotly.graph_objects as go

from ..analysis.models import AggregatedDataset

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

_CLASS_COLORS: Dict[str, str] = {
    'Car':   '#3b82f6',
    'Truck': '#f59e0b',
    'Bus':   '#10b981',
}

# Heatmap colour stops for risk levels 0 (low) .. 4 (high)
_RISK_SCALE: List[Tuple[float, str]] = [
    (0.00, '#dcfce7'),
    (0.25, '#fef9c3'),
    (0.50, '#fde68a'),
    (0.75, '#fb923c'),
    (1.00, '#b31942'),
]

_NAVY = '#0a3161'
_RED = '#b31942'


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def plot_hourly_frequency(
    dataset: AggregatedDataset,
    metadata: Optional[Dict[str, Any]] = None,
) -> go.Figure:
    """Bar chart of vehicle counts per hour of day."""
    labels = [h.label for h in dataset.vehicle_frequency_by_hour]
    values = [h.value for h in dataset.vehicle_frequency_by_hour]

    fig = go.Figure(go.Bar(
        x=labels,
        y=values,
        marker_color=_NAVY,
        name='Vehicles',
        hovertemplate='%{x}: %{y:,} vehicles<extra></extra>',
    ))
    _apply_layout(fig, _build_title(dataset, metadata, 'Vehicle Frequency by Hour'),
                  x_title='Hour', y_title='Vehicles')
    return fig


def plot_hourly_trend(
    dataset: AggregatedDataset,
    metadata: Optional[Dict[str, Any]] = None,
) -> go.Figure:
    """Stacked bars of cars / trucks / buses per hour of day."""
    times = [h.time for h in dataset.vehicle_trend_by_hour]
    series = (
        ('Car', [h.cars for h in dataset.vehicle_trend_by_hour]),
        ('Truck', [h.trucks for h in dataset.vehicle_trend_by_hour]),
        ('Bus', [h.buses for h in dataset.vehicle_trend_by_hour]),
    )

    fig = go.Figure()
    for name, values in series:
        fig.add_trace(go.Bar(
            x=times,
            y=values,
            name=name,
            marker_color=_CLASS_COLORS[name],
        ))
    _apply_layout(fig, _build_title(dataset, metadata, 'Vehicle Trend by Hour'),
                  x_title='Hour', y_title='Vehicles')
    fig.update_layout(barmode='stack')
    return fig


def plot_class_distribution(
    dataset: AggregatedDataset,
    metadata: Optional[Dict[str, Any]] = None,
) -> go.Figure:
    """Pie chart of vehicle class shares (only classes that occur)."""
    names = [c.name for c in dataset.per_class]
    fig = go.Figure(go.Pie(
        labels=names,
        values=[c.value for c in dataset.per_class],
        marker=dict(colors=[_CLASS_COLORS.get(n, '#94a3b8') for n in names]),
        customdata=[c.percent for c in dataset.per_class],
        hovertemplate='%{label}: %{value:,} (%{customdata}%)<extra></extra>',
        sort=False,
    ))
    fig.update_layout(
        title=_build_title(dataset, metadata, 'Vehicle Class Distribution'),
        template='plotly_white',
    )
    return fig


def plot_risk_heatmap(
    dataset: AggregatedDataset,
    metadata: Optional[Dict[str, Any]] = None,
) -> go.Figure:
    """
    One-row heatmap of hourly risk levels.

    The colour range is pinned to 0-4 so the same level always gets the
    same colour regardless of which levels occur in the data.
    """
    labels = [h.label for h in dataset.vehicle_frequency_by_hour]
    counts = [h.count for h in dataset.per_hour]

    fig = go.Figure(go.Heatmap(
        z=[list(dataset.risk_by_hour)],
        x=labels,
        y=['Risk'],
        zmin=0,
        zmax=4,
        colorscale=_RISK_SCALE,
        customdata=[counts],
        hovertemplate='%{x}: level %{z} (%{customdata:,} vehicles)<extra></extra>',
        colorbar=dict(title='Level', tickvals=[0, 1, 2, 3, 4]),
    ))
    _apply_layout(fig, _build_title(dataset, metadata, 'Risk by Hour'), x_title='Hour')
    fig.update_yaxes(showticklabels=False, fixedrange=True)
    return fig


def plot_speeding_by_day(
    dataset: AggregatedDataset,
    metadata: Optional[Dict[str, Any]] = None,
) -> go.Figure:
    """Bar chart of over-limit crossings per loaded day."""
    fig = go.Figure(go.Bar(
        x=[d.day for d in dataset.speeding_by_day],
        y=[d.count for d in dataset.speeding_by_day],
        marker_color=_RED,
        name='Violations',
    ))
    limit = f'{dataset.speed_limit_kmh:g} km/h'
    _apply_layout(fig, _build_title(dataset, metadata, f'Speeding by Day (≥{limit})'),
                  x_title='Day', y_title='Violations')
    return fig


def plot_direction_classes(
    dataset: AggregatedDataset,
    metadata: Optional[Dict[str, Any]] = None,
) -> go.Figure:
    """Horizontal bars of vehicle counts per direction and class."""
    bars = list(dataset.direction_class_bars)
    colors = [_CLASS_COLORS.get(b.label.rsplit(' ', 1)[-1], _NAVY) for b in bars]

    fig = go.Figure(go.Bar(
        x=[b.value for b in bars],
        y=[b.label for b in bars],
        orientation='h',
        marker_color=colors,
        name='Vehicles',
    ))
    _apply_layout(fig, _build_title(dataset, metadata, 'Direction by Class'),
                  x_title='Vehicles')
    fig.update_yaxes(autorange='reversed')
    return fig


def build_report_figures(
    dataset: AggregatedDataset,
    metadata: Optional[Dict[str, Any]] = None,
) -> List[Tuple[str, go.Figure]]:
    """
    Return the ``(name, figure)`` pairs rendered into the PDF, in page order.

    Speeding by day is only included for multi-day ranges, where it has
    more than one bar to compare.
    """
    figures = [
        ('hourly_frequency', plot_hourly_frequency(dataset, metadata)),
        ('hourly_trend', plot_hourly_trend(dataset, metadata)),
        ('class_distribution', plot_class_distribution(dataset, metadata)),
        ('risk_heatmap', plot_risk_heatmap(dataset, metadata)),
        ('direction_classes', plot_direction_classes(dataset, metadata)),
    ]
    if dataset.num_days > 1:
        figures.append(('speeding_by_day', plot_speeding_by_day(dataset, metadata)))
    return figures


# ---------------------------------------------------------------------------
# Private helpers
# ---------------------------------------------------------------------------

def _build_title(
    dataset: AggregatedDataset,
    metadata: Optional[Dict[str, Any]],
    suffix: str,
) -> str:
    """
    ``"{location} – {suffix} ({period})"``; location falls back to the city
    name, then to no prefix at all.
    """
    metadata = metadata or {}
    location = str(
        metadata.get('intersection_name') or metadata.get('city_name') or ''
    ).strip()
    title = f'{location} – {suffix}' if location else suffix
    if dataset.date_range_label:
        title = f'{title} ({dataset.date_range_label})'
    return title


def _apply_layout(
    fig: go.Figure,
    title: str,
    x_title: Optional[str] = None,
    y_title: Optional[str] = None,
) -> None:
    fig.update_layout(
        title=title,
        xaxis=dict(title=x_title),
        yaxis=dict(title=y_title),
        template='plotly_white',
        legend=dict(
            orientation='h',
            yanchor='bottom',
            y=1.02,
            xanchor='right',
            x=1,
        ),
        hovermode='closest',
    )
