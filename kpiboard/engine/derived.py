"""
Derived Metric Calculator.

Pure functions turning aggregated sums and counts into display metrics:
averages, on-time delivery ratios, funnel conversion rates and the two
roll-up combinations for "Total" rows. Every function is total over its
domain: empty inputs and zero denominators resolve to 0, never to an error.
"""

from collections.abc import Iterable, Mapping, Sequence
from datetime import date, timedelta
from typing import Union

from kpiboard.engine.errors import UnsupportedConversionMode
from kpiboard.models.enums import ConversionMode, RollUpPolicy
from kpiboard.models.samples import AggregatedBucket, DerivedMetricDefinition, MetricSample
from kpiboard.utils.numbers import safe_divide


DEFAULT_GRACE_DAYS = 1

# Accumulator names written by with_on_time_measures()
WITH_DUE_DATE = "with_due_date"
ON_TIME = "on_time"


# ============================================================================
# Averages
# ============================================================================


def average_of(buckets: Iterable[AggregatedBucket], field: str) -> float:
    """
    Arithmetic mean of ``field`` across buckets that hold at least one sample.

    Empty buckets are excluded so that idle periods do not drag the mean
    toward zero. Returns 0.0 when no bucket qualifies.
    """
    values = [b.value(field) for b in buckets if b.count > 0]
    if not values:
        return 0.0
    return sum(values) / len(values)


def per_event_average(bucket: AggregatedBucket, field: str) -> float:
    """Mean of ``field`` per sample in one bucket (e.g. average design score)."""
    return safe_divide(bucket.sums.get(field, 0.0), bucket.count)


# ============================================================================
# On-time delivery
# ============================================================================


def is_on_time(created: date, due: date, grace_days: int = DEFAULT_GRACE_DAYS) -> bool:
    """True if ``created`` is no later than ``due`` plus the grace period."""
    return created <= due + timedelta(days=grace_days)


def on_time_ratio(
    samples: Iterable[MetricSample], grace_days: int = DEFAULT_GRACE_DAYS
) -> float:
    """
    Fraction of samples delivered on time, in [0, 1].

    Only samples carrying a due date count, in both numerator and
    denominator. A sample created on due_date + grace_days is still on time.
    Returns 0.0 when no sample has a due date.
    """
    with_due = 0
    on_time = 0
    for sample in samples:
        if sample.due_date is None:
            continue
        with_due += 1
        if is_on_time(sample.timestamp, sample.due_date, grace_days):
            on_time += 1
    return safe_divide(on_time, with_due)


def with_on_time_measures(
    samples: Iterable[MetricSample], grace_days: int = DEFAULT_GRACE_DAYS
) -> list[MetricSample]:
    """
    Copy samples adding ``with_due_date`` and ``on_time`` 0/1 measures.

    Lets on-time percentages be derived per bucket from summed accumulators,
    see on_time_percentage_metric().
    """
    enriched = []
    for sample in samples:
        has_due = sample.due_date is not None
        punctual = has_due and is_on_time(sample.timestamp, sample.due_date, grace_days)
        measures = dict(sample.measures)
        measures[WITH_DUE_DATE] = 1.0 if has_due else 0.0
        measures[ON_TIME] = 1.0 if punctual else 0.0
        enriched.append(sample.model_copy(update={"measures": measures}))
    return enriched


# ============================================================================
# Funnel conversion
# ============================================================================


def conversion_rate(count_at_stage: float, count_at_reference: float) -> float:
    """Percentage of the reference stage that reached this stage; 0 if the reference is 0."""
    return safe_divide(count_at_stage, count_at_reference) * 100


def parse_conversion_mode(mode: Union[ConversionMode, str]) -> ConversionMode:
    """
    Resolve a conversion mode token.

    Raises:
        UnsupportedConversionMode: If the token is not a known mode
    """
    if isinstance(mode, ConversionMode):
        return mode
    if isinstance(mode, str):
        normalized = mode.strip().lower().replace("-", "_")
        try:
            return ConversionMode(normalized)
        except ValueError:
            pass
    raise UnsupportedConversionMode(mode)


def funnel_conversion_rates(
    stage_counts: Mapping[str, float],
    mode: Union[ConversionMode, str],
) -> dict[str, float]:
    """
    Conversion percentage of every stage after the first.

    The same raw counts give different series per mode, so the caller must
    always name one: PHASE_TO_PHASE references the immediately preceding
    stage, FUNNEL references the first stage.

    Args:
        stage_counts: Stage name -> count, in funnel order (leads first)
        mode: Reference mode, required

    Returns:
        Stage name -> conversion percentage, first stage omitted

    Example:
        >>> funnel_conversion_rates({"leads": 200, "mqls": 50, "sqls": 10}, "funnel")
        {'mqls': 25.0, 'sqls': 5.0}
    """
    resolved = parse_conversion_mode(mode)
    stages = list(stage_counts.items())
    if not stages:
        return {}

    first_count = stages[0][1]
    rates: dict[str, float] = {}
    for i in range(1, len(stages)):
        name, count = stages[i]
        if resolved is ConversionMode.PHASE_TO_PHASE:
            reference = stages[i - 1][1]
        else:
            reference = first_count
        rates[name] = conversion_rate(count, reference)
    return rates


def funnel_table(
    buckets: Iterable[AggregatedBucket],
    stages: Sequence[str],
    mode: Union[ConversionMode, str],
) -> list[dict]:
    """
    Per-bucket funnel counts and conversion rates.

    Each stage is read from the bucket by name (accumulator or derived
    metric), so stage counts must already be summed into the buckets.

    Returns:
        [{"period", "dimension_key", "counts": {...}, "rates": {...}}, ...]
        in bucket order
    """
    resolved = parse_conversion_mode(mode)
    rows = []
    for bucket in buckets:
        counts = {stage: bucket.value(stage) for stage in stages}
        rows.append(
            {
                "period": bucket.period,
                "dimension_key": bucket.dimension_key,
                "counts": counts,
                "rates": funnel_conversion_rates(counts, resolved),
            }
        )
    return rows


# ============================================================================
# Roll-up combinations
# ============================================================================


def roll_up_average_of_ratios(per_dimension_ratios: Iterable[float]) -> float:
    """
    Simple mean of per-dimension ratios; 0.0 for no dimensions.

    A "Total" percentage is the average of each operator's percentage, not
    the percentage of pooled totals, so a high-traffic operator does not
    dominate the row.
    """
    ratios = list(per_dimension_ratios)
    if not ratios:
        return 0.0
    return sum(ratios) / len(ratios)


def roll_up_sum(values: Iterable[float]) -> float:
    """Sum for count- and duration-type measures."""
    return float(sum(values))


# ============================================================================
# Derivation pass
# ============================================================================


def ratio_metric(
    name: str,
    numerator: str,
    denominator: str,
    roll_up: RollUpPolicy,
    scale: float = 100.0,
) -> DerivedMetricDefinition:
    """Definition for ``numerator / denominator * scale`` read from bucket values."""

    def compute(bucket: AggregatedBucket) -> float:
        return safe_divide(bucket.value(numerator), bucket.value(denominator)) * scale

    return DerivedMetricDefinition(
        name=name, compute=compute, roll_up=roll_up, unit="%" if scale == 100.0 else ""
    )


def mean_metric(
    name: str, field: str, roll_up: RollUpPolicy, unit: str = ""
) -> DerivedMetricDefinition:
    """Definition for the per-sample mean of an accumulator."""

    def compute(bucket: AggregatedBucket) -> float:
        return per_event_average(bucket, field)

    return DerivedMetricDefinition(name=name, compute=compute, roll_up=roll_up, unit=unit)


def on_time_percentage_metric(
    name: str = "on_time_pct",
    roll_up: RollUpPolicy = RollUpPolicy.AVERAGE_OF_RATIOS,
) -> DerivedMetricDefinition:
    """On-time percentage over buckets built from with_on_time_measures() samples."""
    return ratio_metric(name, ON_TIME, WITH_DUE_DATE, roll_up)


def derive_metrics(
    buckets: Iterable[AggregatedBucket],
    definitions: Sequence[DerivedMetricDefinition],
) -> list[AggregatedBucket]:
    """
    Return copies of ``buckets`` with every definition computed into ``derived``.

    Definitions run in order, so a later definition may read an earlier
    one through bucket.value().
    """
    derived_buckets = []
    for bucket in buckets:
        values = dict(bucket.derived)
        # the copy shares ``values``, so each result is visible to the next definition
        working = bucket.model_copy(update={"derived": values})
        for definition in definitions:
            values[definition.name] = definition.compute(working)
        derived_buckets.append(working)
    return derived_buckets
