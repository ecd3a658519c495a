"""
IRIS Mobility - Traffic Sensor Report Pipeline

Aggregates daily traffic-sensor CSV files and assembles paginated PDF
reports, using the Functional Core, Imperative Shell architecture.

Structure:
- analysis/ : Functional Core (row parsing, aggregation, dataset model)
- data/     : Imperative Shell (day catalog, file loading, request session)
- plotting/ : Plotly chart builders
- reports/  : Chart capture, report layout, PDF output
"""

__version__ = "0.1.0"
