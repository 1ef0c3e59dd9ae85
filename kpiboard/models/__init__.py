"""
Pydantic v2 data models for the KPI Board analytics engine.

Model Organization:
    - enums: Granularity, roll-up policies, conversion modes, trends, range presets
    - periods: TimePeriod
    - samples: MetricSample, AggregatedBucket, DerivedMetricDefinition
    - presentation: ColorAssignment, RunRateProjection, KpiCard
    - results: AggregationResult

Usage:
    >>> from kpiboard.models import MetricSample
    >>> sample = MetricSample(
    ...     timestamp=date(2024, 6, 10),
    ...     dimension_key="Ana",
    ...     measures={"calls": 1, "talk_seconds": 182},
    ... )
"""

from .enums import ConversionMode, Granularity, RangePreset, RollUpPolicy, Trend
from .periods import TimePeriod
from .presentation import ColorAssignment, KpiCard, RunRateProjection
from .results import AggregationResult
from .samples import (
    IMPLICIT_DIMENSION,
    UNSPECIFIED_DIMENSION,
    AggregatedBucket,
    DerivedMetricDefinition,
    MetricSample,
)

__all__ = [
    # Enumerations
    "ConversionMode",
    "Granularity",
    "RangePreset",
    "RollUpPolicy",
    "Trend",
    # Periods
    "TimePeriod",
    # Samples and buckets
    "AggregatedBucket",
    "DerivedMetricDefinition",
    "MetricSample",
    "IMPLICIT_DIMENSION",
    "UNSPECIFIED_DIMENSION",
    # Presentation
    "ColorAssignment",
    "KpiCard",
    "RunRateProjection",
    # Results
    "AggregationResult",
]
