"""KPI Board: time-bucketed aggregation and analytics for business dashboards."""

__version__ = "0.1.0"
