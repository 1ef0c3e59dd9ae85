"""
Record Bucketizer.

Folds raw MetricSamples into one AggregatedBucket per (period x dimension).
Assignment is inclusive at both period bounds; because generated periods
never overlap, each in-range sample lands in exactly one bucket.

Totals always reconcile: a sample whose dimension is not in the requested
allow-list is accumulated into the "unspecified" slot rather than dropped,
so the sum over all dimension buckets equals the undimensioned aggregate of
the same samples.
"""

from bisect import bisect_right
from collections.abc import Iterable, Sequence
from datetime import date
from typing import Optional

import structlog

from kpiboard.models.periods import TimePeriod
from kpiboard.models.samples import (
    IMPLICIT_DIMENSION,
    UNSPECIFIED_DIMENSION,
    AggregatedBucket,
    MetricSample,
)

logger = structlog.get_logger()


class _PeriodIndex:
    """Binary-search lookup from a calendar date to its period."""

    def __init__(self, periods: Sequence[TimePeriod]):
        self.periods = sorted(periods, key=lambda p: p.start)
        self._starts = [p.start for p in self.periods]

    def locate(self, day: date) -> Optional[int]:
        i = bisect_right(self._starts, day) - 1
        if i >= 0 and day <= self.periods[i].end:
            return i
        return None


def bucketize(
    samples: Iterable[MetricSample],
    periods: Sequence[TimePeriod],
    dimension_keys: Optional[Sequence[str]] = None,
) -> list[AggregatedBucket]:
    """
    Aggregate samples into period x dimension buckets.

    Every (period, dimension) pair yields a bucket, including pairs with no
    matching samples. Every measure name seen in any sample appears in every
    bucket's sums, zero-filled where absent.

    Args:
        samples: Raw samples, already filtered by the data layer
        periods: Non-overlapping periods, typically from generate_periods()
        dimension_keys: Dimension allow-list; None or empty aggregates all
            samples under the implicit "*" dimension

    Returns:
        Buckets ordered by period start, then by dimension_keys order, with
        the "unspecified" slot last when any sample needed it
    """
    index = _PeriodIndex(periods)
    keys = list(dict.fromkeys(dimension_keys)) if dimension_keys else []
    key_set = set(keys)

    measure_names: dict[str, None] = {}
    sums: dict[tuple[int, str], dict[str, float]] = {}
    counts: dict[tuple[int, str], int] = {}
    uses_unspecified = False
    out_of_range = 0
    total = 0

    for sample in samples:
        total += 1
        position = index.locate(sample.timestamp)
        if position is None:
            out_of_range += 1
            continue

        if not keys:
            slot = IMPLICIT_DIMENSION
        elif sample.dimension_key in key_set:
            slot = sample.dimension_key
        else:
            slot = UNSPECIFIED_DIMENSION
            uses_unspecified = True

        cell = sums.setdefault((position, slot), {})
        for name, amount in sample.measures.items():
            measure_names.setdefault(name, None)
            cell[name] = cell.get(name, 0.0) + amount
        counts[(position, slot)] = counts.get((position, slot), 0) + 1

    slots = keys or [IMPLICIT_DIMENSION]
    if uses_unspecified:
        slots = slots + [UNSPECIFIED_DIMENSION]

    buckets: list[AggregatedBucket] = []
    for position, period in enumerate(index.periods):
        for slot in slots:
            cell = sums.get((position, slot), {})
            buckets.append(
                AggregatedBucket(
                    period=period,
                    dimension_key=slot,
                    sums={name: cell.get(name, 0.0) for name in measure_names},
                    count=counts.get((position, slot), 0),
                )
            )

    if out_of_range:
        logger.debug("samples_outside_periods", skipped=out_of_range, received=total)

    logger.debug(
        "buckets_aggregated",
        samples=total,
        periods=len(index.periods),
        dimensions=len(slots),
        buckets=len(buckets),
    )
    return buckets


def group_by_period(
    buckets: Iterable[AggregatedBucket],
) -> dict[TimePeriod, list[AggregatedBucket]]:
    """Group buckets by period, preserving first-seen period order."""
    grouped: dict[TimePeriod, list[AggregatedBucket]] = {}
    for bucket in buckets:
        grouped.setdefault(bucket.period, []).append(bucket)
    return grouped


def series_for_dimension(
    buckets: Iterable[AggregatedBucket], dimension_key: str, field: str
) -> list[float]:
    """Values of ``field`` for one dimension across its periods, in period order."""
    selected = [b for b in buckets if b.dimension_key == dimension_key]
    selected.sort(key=lambda b: b.period.start)
    return [b.value(field) for b in selected]


def series_for_period(
    buckets: Iterable[AggregatedBucket],
    period: TimePeriod,
    field: str,
    exclude: Sequence[str] = (),
) -> list[float]:
    """Values of ``field`` across dimensions for one period, skipping ``exclude`` keys."""
    return [
        b.value(field)
        for b in buckets
        if b.period == period and b.dimension_key not in exclude
    ]
