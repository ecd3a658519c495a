"""
IRIS Mobility error taxonomy.

Row-level problems never raise (malformed rows are dropped by the parser).
Everything that does raise derives from ``IrisError`` so callers can catch
the whole family in one place.

Package Location: src/iris_mobility/errors.py
"""


class IrisError(Exception):
    """Base exception for all IRIS Mobility errors."""
    pass


class RangeNotFound(IrisError):
    """Raised when an explicit date has no file in the day catalog."""
    pass


class SourceUnavailable(IrisError):
    """
    Raised when a source CSV cannot be fetched.

    Aborts the whole aggregation request; no partial dataset is returned.
    """
    pass


class EmptyRange(IrisError):
    """Raised when aggregation is requested for an empty day list."""
    pass


class InvalidDataset(IrisError):
    """
    Raised by the report assembler when the dataset lacks a required
    numeric field (total vehicles, violations, average speed).
    """
    pass


class CaptureFailure(IrisError):
    """
    Raised by a rasterizer when a chart cannot be rendered to an image.

    The report layer absorbs it and omits the chart.
    """
    pass


class ReportNotReady(IrisError):
    """Raised when a report is requested while another one is still running."""
    pass


class StaleRequest(IrisError):
    """Raised to the caller whose range request was superseded by a newer one."""
    pass
