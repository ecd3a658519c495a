"""
IRIS Mobility Plotting Package

Pure plotly figure builders over an ``AggregatedDataset``.
"""

from .charts import (
    build_report_figures,
    plot_class_distribution,
    plot_direction_classes,
    plot_hourly_frequency,
    plot_hourly_trend,
    plot_risk_heatmap,
    plot_speeding_by_day,
)

__all__ = [
    'build_report_figures',
    'plot_class_distribution',
    'plot_direction_classes',
    'plot_hourly_frequency',
    'plot_hourly_trend',
    'plot_risk_heatmap',
    'plot_speeding_by_day',
]
