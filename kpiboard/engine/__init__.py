"""
KPI Board analytics engine.

One consolidated engine behind every dashboard panel:

- Period generation: day / week / fortnight / month partitions of a range
- Bucketing: samples folded per period x dimension, zero buckets included
- Derived metrics: averages, on-time ratios, funnel conversion rates
- Roll-up: "Total" rows with explicit sum / average-of-ratios / ratio-of-sums policy
- Heat map: three-stop gradient normalization of a series
- Run rate: projection of the current partial period
- KPI cards: variation, trend and target attainment over a preset range

All components are pure and synchronous: no I/O, no clock reads, no caches.
"""

__version__ = "1.0.0"

__all__ = [
    "AnalyticsEngine",
    "HeatMapNormalizer",
    "RollUpAggregator",
    "attainment",
    "bucketize",
    "build_kpi_card",
    "calculate_trend",
    "calculate_variation",
    "generate_periods",
    "points_in_range",
    "preset_range",
    "target_for_date",
]

from kpiboard.engine.bucketizer import bucketize
from kpiboard.engine.comparison import (
    build_kpi_card,
    calculate_trend,
    calculate_variation,
    points_in_range,
)
from kpiboard.engine.heatmap import HeatMapNormalizer
from kpiboard.engine.periods import generate_periods, preset_range
from kpiboard.engine.pipeline import AnalyticsEngine
from kpiboard.engine.rollup import RollUpAggregator
from kpiboard.engine.targets import attainment, target_for_date
