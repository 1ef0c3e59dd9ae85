"""
Roll-up Aggregator.

Folds the per-dimension buckets of each period into a synthetic "Total"
bucket. Accumulators (counts, durations) are summed; derived metrics are
combined with the policy the caller chose for them:

- SUM: add the per-dimension values
- AVERAGE_OF_RATIOS: simple mean over dimensions that had activity in the
  period; a dimension with no bucket, or an empty one, is left out of the
  denominator
- RATIO_OF_SUMS: re-apply the metric definition to the summed Total bucket

The two percentage policies disagree whenever dimensions have unequal
volume, which is why the choice is never made implicitly.
"""

from collections.abc import Iterable, Mapping, Sequence
from typing import Optional, Union

import structlog

from kpiboard.engine.bucketizer import group_by_period
from kpiboard.engine.derived import roll_up_average_of_ratios, roll_up_sum
from kpiboard.engine.errors import MissingRollUpPolicy
from kpiboard.models.enums import RollUpPolicy
from kpiboard.models.periods import TimePeriod
from kpiboard.models.samples import AggregatedBucket, DerivedMetricDefinition

logger = structlog.get_logger()

TOTAL_DIMENSION = "Total"


class RollUpAggregator:
    """
    Builds "Total" rows from per-dimension buckets.

    Attributes:
        total_key: Dimension key given to the synthetic roll-up buckets

    Example:
        >>> aggregator = RollUpAggregator()
        >>> totals = aggregator.roll_up(buckets, definitions=[on_time_pct])
        >>> totals[0].dimension_key
        'Total'
    """

    def __init__(self, total_key: str = TOTAL_DIMENSION):
        self.total_key = total_key
        self.logger = structlog.get_logger()

    def roll_up(
        self,
        buckets: Iterable[AggregatedBucket],
        definitions: Sequence[DerivedMetricDefinition] = (),
        policies: Optional[Mapping[str, Union[RollUpPolicy, str]]] = None,
        periods: Optional[Sequence[TimePeriod]] = None,
    ) -> list[AggregatedBucket]:
        """
        One Total bucket per period.

        Args:
            buckets: Per-dimension buckets (existing Total buckets are ignored)
            definitions: Derived metric definitions; their roll_up policy
                applies unless ``policies`` overrides it
            policies: Per-field policy overrides, for accumulators or derived
                metrics
            periods: Periods to emit, even if no bucket covers them; defaults
                to the periods present in ``buckets``

        Returns:
            Total buckets ordered by period start

        Raises:
            MissingRollUpPolicy: If a derived metric has neither a definition
                nor an explicit policy
            ValueError: If RATIO_OF_SUMS is requested without a definition
        """
        overrides = {name: RollUpPolicy(p) for name, p in (policies or {}).items()}
        by_name = {d.name: d for d in definitions}

        members_by_period = group_by_period(
            b for b in buckets if b.dimension_key != self.total_key
        )
        if periods is None:
            periods = list(members_by_period)
        ordered = sorted(periods, key=lambda p: p.start)

        measure_names: dict[str, None] = {}
        derived_names: dict[str, None] = dict.fromkeys(by_name)
        for members in members_by_period.values():
            for bucket in members:
                measure_names.update(dict.fromkeys(bucket.sums))
                derived_names.update(dict.fromkeys(bucket.derived))

        for name in derived_names:
            if name not in overrides and name not in by_name:
                raise MissingRollUpPolicy(name)

        totals = []
        for period in ordered:
            members = members_by_period.get(period, [])
            totals.append(
                self._total_for_period(
                    period, members, measure_names, derived_names, by_name, overrides
                )
            )

        self.logger.debug(
            "roll_up_computed",
            periods=len(totals),
            measures=len(measure_names),
            derived=len(derived_names),
        )
        return totals

    def _total_for_period(
        self,
        period: TimePeriod,
        members: list[AggregatedBucket],
        measure_names: Mapping[str, None],
        derived_names: Mapping[str, None],
        by_name: Mapping[str, DerivedMetricDefinition],
        overrides: Mapping[str, RollUpPolicy],
    ) -> AggregatedBucket:
        active = [b for b in members if b.count > 0]

        sums = {}
        for name in measure_names:
            policy = overrides.get(name, RollUpPolicy.SUM)
            if policy is RollUpPolicy.AVERAGE_OF_RATIOS:
                sums[name] = roll_up_average_of_ratios(b.sums.get(name, 0.0) for b in active)
            elif policy is RollUpPolicy.SUM:
                sums[name] = roll_up_sum(b.sums.get(name, 0.0) for b in members)
            else:
                raise ValueError(f"Accumulator {name!r} cannot roll up as {policy.value}")

        total = AggregatedBucket(
            period=period,
            dimension_key=self.total_key,
            sums=sums,
            count=sum(b.count for b in members),
        )
        # filled in place so RATIO_OF_SUMS definitions can read earlier results
        derived = total.derived

        for name in derived_names:
            definition = by_name.get(name)
            policy = overrides.get(name) or definition.roll_up

            if policy is RollUpPolicy.RATIO_OF_SUMS:
                if definition is None:
                    raise ValueError(f"ratio_of_sums roll-up of {name!r} needs its definition")
                derived[name] = definition.compute(total)
                continue

            values = [self._member_value(b, name, definition) for b in members]
            if policy is RollUpPolicy.SUM:
                derived[name] = roll_up_sum(values)
            else:
                derived[name] = roll_up_average_of_ratios(
                    v for b, v in zip(members, values) if b.count > 0
                )

        return total

    @staticmethod
    def _member_value(
        bucket: AggregatedBucket, name: str, definition: Optional[DerivedMetricDefinition]
    ) -> float:
        if name in bucket.derived:
            return bucket.derived[name]
        if definition is not None:
            return definition.compute(bucket)
        return 0.0
