"""
Analytics pipeline: the single entry point dashboard panels call.

Runs period generation, bucketing, metric derivation and the Total roll-up
in one pass, then offers heat-map and run-rate helpers over the result for
presentation. Panels act as thin adapters: they supply samples and a
granularity, and receive buckets; no behaviour depends on which panel calls.

Every call recomputes from its inputs. There is no cache and no shared
state between calls, so concurrent requests for different panels are
independent.
"""

from collections.abc import Iterable, Mapping, Sequence
from datetime import date
from typing import Optional, Union

import structlog

from kpiboard.engine.bucketizer import bucketize, series_for_dimension, series_for_period
from kpiboard.engine.derived import DEFAULT_GRACE_DAYS, derive_metrics, with_on_time_measures
from kpiboard.engine.heatmap import HeatMapNormalizer
from kpiboard.engine.periods import generate_periods, parse_granularity
from kpiboard.engine.rollup import TOTAL_DIMENSION, RollUpAggregator
from kpiboard.engine.run_rate import project_current_bucket
from kpiboard.models.enums import Granularity, RollUpPolicy
from kpiboard.models.periods import TimePeriod
from kpiboard.models.presentation import ColorAssignment, RunRateProjection
from kpiboard.models.results import AggregationResult
from kpiboard.models.samples import DerivedMetricDefinition, MetricSample

logger = structlog.get_logger()


class AnalyticsEngine:
    """
    Time-bucketed aggregation over in-memory samples.

    Attributes:
        rollup: Aggregator producing the Total row
        heatmap: Normalizer used for heat-map colors
        grace_days: Grace period applied by on-time measures

    Example:
        >>> engine = AnalyticsEngine()
        >>> result = engine.aggregate(
        ...     date(2024, 6, 1), date(2024, 6, 30), "fortnight", samples
        ... )
        >>> [b.count for b in result.buckets]
        [5, 3]
    """

    def __init__(
        self,
        total_key: str = TOTAL_DIMENSION,
        heatmap: Optional[HeatMapNormalizer] = None,
        grace_days: int = DEFAULT_GRACE_DAYS,
    ):
        self.rollup = RollUpAggregator(total_key=total_key)
        self.heatmap = heatmap or HeatMapNormalizer()
        self.grace_days = grace_days
        self.logger = structlog.get_logger()

    @classmethod
    def from_settings(cls, settings) -> "AnalyticsEngine":
        """Build an engine from application Settings."""
        return cls(
            total_key=settings.total_dimension_label,
            heatmap=HeatMapNormalizer(alpha=settings.heatmap_alpha),
            grace_days=settings.on_time_grace_days,
        )

    @property
    def total_key(self) -> str:
        return self.rollup.total_key

    def aggregate(
        self,
        range_start: date,
        range_end: date,
        granularity: Union[Granularity, str],
        samples: Iterable[MetricSample],
        dimension_keys: Optional[Sequence[str]] = None,
        definitions: Sequence[DerivedMetricDefinition] = (),
        policies: Optional[Mapping[str, Union[RollUpPolicy, str]]] = None,
        include_total: bool = True,
        track_on_time: bool = False,
    ) -> AggregationResult:
        """
        Run one full aggregation pass.

        Args:
            range_start: First day of the range (inclusive)
            range_end: Last day of the range (inclusive)
            granularity: Period granularity or token
            samples: Samples already filtered by the data layer
            dimension_keys: Dimension allow-list; None aggregates under "*"
            definitions: Derived metrics to compute on every bucket
            policies: Roll-up policy overrides per field
            include_total: Whether to build the Total roll-up row
            track_on_time: Add with_due_date / on_time measures before bucketing

        Returns:
            AggregationResult with periods, buckets and totals

        Raises:
            InvalidRange: If range_start is after range_end
            UnsupportedGranularity: If the granularity is unknown
            MissingRollUpPolicy: If a derived metric lacks a roll-up policy
        """
        resolved = parse_granularity(granularity)
        materialized = list(samples)
        if track_on_time:
            materialized = with_on_time_measures(materialized, self.grace_days)

        periods = generate_periods(range_start, range_end, resolved)
        buckets = bucketize(materialized, periods, dimension_keys)
        if definitions:
            buckets = derive_metrics(buckets, definitions)

        totals = []
        if include_total:
            totals = self.rollup.roll_up(
                buckets, definitions=definitions, policies=policies, periods=periods
            )

        slots = list(dict.fromkeys(b.dimension_key for b in buckets))

        self.logger.info(
            "aggregation_computed",
            granularity=resolved.value,
            range_start=periods[0].start.isoformat(),
            range_end=periods[-1].end.isoformat(),
            periods=len(periods),
            dimensions=len(slots),
            samples=len(materialized),
            derived_metrics=len(definitions),
        )

        return AggregationResult(
            granularity=resolved,
            range_start=periods[0].start,
            range_end=periods[-1].end,
            periods=periods,
            dimension_keys=slots,
            buckets=buckets,
            totals=totals,
            samples_received=len(materialized),
        )

    def heat_map_for_dimension(
        self, result: AggregationResult, dimension_key: str, field: str
    ) -> list[ColorAssignment]:
        """Colors for one dimension's values across all periods."""
        buckets = result.buckets_for(dimension_key)
        return self.heatmap.colorize(series_for_dimension(buckets, dimension_key, field))

    def heat_map_for_period(
        self, result: AggregationResult, period: TimePeriod, field: str
    ) -> list[ColorAssignment]:
        """Colors across dimensions for one period; the Total row is not colored."""
        values = series_for_period(result.buckets, period, field, exclude=(self.total_key,))
        return self.heatmap.colorize(values)

    def run_rate(
        self,
        result: AggregationResult,
        field: str,
        today: date,
        dimension_key: Optional[str] = None,
    ) -> Optional[RunRateProjection]:
        """
        Projection for the period containing ``today``.

        Defaults to the Total row when totals exist, else to the first
        dimension.
        """
        if dimension_key is None:
            dimension_key = self.total_key if result.totals else result.dimension_keys[0]
        return project_current_bucket(result.buckets_for(dimension_key), field, today)
