"""
IRIS Mobility Reports Package (Imperative Shell)

Turns an aggregated dataset into a PDF report.  Layout is pure
(``layout``); capture and PDF writing are the only side effects.

Modules:
    capture:    Chart rasterization behind the ``Rasterizer`` protocol.
    layout:     ``build_report`` - cover, chart bands and tables as pages
                of drawing instructions.
    pdf:        reportlab rendering and atomic file output.
    generators: ReportGenerator class and generate_report() convenience
                function.
"""

from .capture import ChartRaster, PlotlyRasterizer, Rasterizer, capture_charts, wait_for_render
from .layout import ReportDocument, ReportOptions, build_report
from .pdf import render_pdf, write_report
from .generators import ReportGenerator, generate_report

__all__ = [
    'ChartRaster',
    'PlotlyRasterizer',
    'Rasterizer',
    'capture_charts',
    'wait_for_render',
    'ReportDocument',
    'ReportOptions',
    'build_report',
    'render_pdf',
    'write_report',
    'ReportGenerator',
    'generate_report',
]
