"""
Run-Rate Projector.

Projects the value accumulated so far in the period containing "today" to a
full-period estimate. The result is the projected *extension*, the amount
still expected between today and the period end, because charts stack it on
top of the actual-so-far bar.

"Today" is always passed in by the caller; nothing in this module reads the
system clock.
"""

from collections.abc import Iterable
from datetime import date
from typing import Optional

import structlog

from kpiboard.models.periods import TimePeriod
from kpiboard.models.presentation import RunRateProjection
from kpiboard.models.samples import AggregatedBucket
from kpiboard.utils.numbers import round_half_up

logger = structlog.get_logger()


def projected_extension(
    value_so_far: float, days_elapsed: int, days_in_period: int
) -> Optional[float]:
    """
    Additional value expected by period end at the current daily pace.

    Both day counts include the first day and today, so on the first day of a
    30-day month days_elapsed is 1 and days_in_period is 30.

    Args:
        value_so_far: Value accumulated in the period up to and including today
        days_elapsed: Days elapsed in the period, today included (>= 1)
        days_in_period: Total days in the period (>= days_elapsed)

    Returns:
        round(value_so_far / days_elapsed * days_in_period) - value_so_far,
        or None when value_so_far is not positive (no projection)

    Raises:
        ValueError: If the day counts are inconsistent
    """
    if days_elapsed < 1:
        raise ValueError(f"days_elapsed must be >= 1, got {days_elapsed}")
    if days_in_period < days_elapsed:
        raise ValueError(
            f"days_in_period ({days_in_period}) must be >= days_elapsed ({days_elapsed})"
        )
    if value_so_far <= 0:
        return None

    projected_total = round_half_up(value_so_far / days_elapsed * days_in_period)
    return projected_total - value_so_far


def project_period(
    period: TimePeriod, value_so_far: float, today: date
) -> Optional[RunRateProjection]:
    """
    Run-rate projection for ``period`` if it is the one containing ``today``.

    Days are counted over the whole calendar unit (unit_start .. unit_end),
    not the clipped period: a monthly range ending today still projects to
    the end of the month.

    Returns None (absence, not zero) for past or future periods and for
    periods with nothing accumulated yet.
    """
    if not period.contains(today):
        return None

    days_elapsed = (today - period.unit_start).days + 1
    extension = projected_extension(value_so_far, days_elapsed, period.unit_days)
    if extension is None:
        return None

    return RunRateProjection(
        period=period,
        actual=value_so_far,
        projected_extension=extension,
        projected_total=value_so_far + extension,
        days_elapsed=days_elapsed,
        days_in_period=period.unit_days,
    )


def project_current_bucket(
    buckets: Iterable[AggregatedBucket], field: str, today: date
) -> Optional[RunRateProjection]:
    """
    Project ``field`` for whichever bucket's period contains ``today``.

    ``buckets`` should belong to a single dimension; the first bucket whose
    period contains today is used.
    """
    for bucket in buckets:
        if bucket.period.contains(today):
            projection = project_period(bucket.period, bucket.value(field), today)
            logger.debug(
                "run_rate_projected",
                field=field,
                dimension_key=bucket.dimension_key,
                projected=projection is not None,
            )
            return projection
    return None
