"""
Calendar Period Generator.

Partitions an inclusive date range into ordered, contiguous, non-overlapping
periods at day, week, fortnight or month granularity. The first and last
periods are clipped to the range boundaries, so the union of the returned
periods is exactly [range_start, range_end].

Periods are built by walking forward: each period starts on the day after the
previous one ended and ends at the natural end of its unit (Saturday, the
15th, the last day of the month) or at range_end, whichever comes first. This
keeps the list contiguous without fixed-size date arithmetic, since months
have variable length.
"""

import calendar
from datetime import date, timedelta
from typing import Optional, Union

import structlog

from kpiboard.engine.errors import InvalidRange, UnsupportedGranularity, UnsupportedRangePreset
from kpiboard.models.enums import Granularity, RangePreset
from kpiboard.models.periods import TimePeriod, coerce_calendar_date

logger = structlog.get_logger()

# date.weekday(): Monday == 0 ... Saturday == 5, Sunday == 6
WEEK_LAST_DAY = 5

FORTNIGHT_SPLIT_DAY = 15

# Legacy dashboard tokens still sent by older panels
GRANULARITY_ALIASES = {
    "15days": Granularity.FORTNIGHT,
    "biweekly": Granularity.FORTNIGHT,
}


def parse_granularity(token: Union[Granularity, str]) -> Granularity:
    """
    Resolve a granularity token to a Granularity.

    Raises:
        UnsupportedGranularity: If the token is not a known granularity or alias
    """
    if isinstance(token, Granularity):
        return token
    if isinstance(token, str):
        normalized = token.strip().lower()
        if normalized in GRANULARITY_ALIASES:
            return GRANULARITY_ALIASES[normalized]
        try:
            return Granularity(normalized)
        except ValueError:
            pass
    raise UnsupportedGranularity(token)


def month_end(day: date) -> date:
    """Last calendar day of the month containing ``day``."""
    return day.replace(day=calendar.monthrange(day.year, day.month)[1])


def _natural_start(day: date, granularity: Granularity) -> date:
    if granularity is Granularity.DAY:
        return day
    if granularity is Granularity.WEEK:
        # days back to the preceding Sunday (weekday 6)
        return day - timedelta(days=(day.weekday() + 1) % 7)
    if granularity is Granularity.FORTNIGHT and day.day > FORTNIGHT_SPLIT_DAY:
        return day.replace(day=FORTNIGHT_SPLIT_DAY + 1)
    return day.replace(day=1)


def _natural_end(day: date, granularity: Granularity) -> date:
    if granularity is Granularity.DAY:
        return day
    if granularity is Granularity.WEEK:
        return day + timedelta(days=(WEEK_LAST_DAY - day.weekday()) % 7)
    if granularity is Granularity.FORTNIGHT:
        if day.day <= FORTNIGHT_SPLIT_DAY:
            return day.replace(day=FORTNIGHT_SPLIT_DAY)
        return month_end(day)
    return month_end(day)


def _label(start: date, granularity: Granularity, index: int) -> str:
    if granularity is Granularity.DAY:
        return start.strftime("%d/%m")
    if granularity is Granularity.WEEK:
        return f"Week {index}"
    if granularity is Granularity.FORTNIGHT:
        half = "1st" if start.day <= FORTNIGHT_SPLIT_DAY else "2nd"
        return f"{half} half {start.strftime('%b/%y')}"
    return start.strftime("%b/%y")


def generate_periods(
    range_start: date,
    range_end: date,
    granularity: Union[Granularity, str],
) -> list[TimePeriod]:
    """
    Partition [range_start, range_end] into periods of the given granularity.

    Week periods follow Sunday-to-Saturday weeks starting from the week that
    contains range_start; fortnights split each month into days 1-15 and
    16-end. When both bounds fall in the same unit exactly one period is
    returned, never zero. Each period also records the unclipped bounds of
    its unit in natural_start / natural_end.

    Args:
        range_start: First day of the range (inclusive)
        range_end: Last day of the range (inclusive)
        granularity: Granularity or token ("day", "week", "fortnight", "month")

    Returns:
        Ordered, non-empty list of TimePeriod tiling the range

    Raises:
        InvalidRange: If range_start is after range_end
        UnsupportedGranularity: If the granularity token is unknown

    Example:
        >>> [p.label for p in generate_periods(date(2024, 6, 1), date(2024, 6, 30), "fortnight")]
        ['1st half Jun/24', '2nd half Jun/24']
    """
    resolved = parse_granularity(granularity)
    range_start = coerce_calendar_date(range_start)
    range_end = coerce_calendar_date(range_end)
    if range_start > range_end:
        raise InvalidRange(range_start, range_end)

    periods: list[TimePeriod] = []
    cursor = range_start
    while cursor <= range_end:
        natural_end = _natural_end(cursor, resolved)
        end = min(natural_end, range_end)
        periods.append(
            TimePeriod(
                start=cursor,
                end=end,
                label=_label(cursor, resolved, len(periods) + 1),
                natural_start=_natural_start(cursor, resolved),
                natural_end=natural_end,
            )
        )
        cursor = end + timedelta(days=1)

    logger.debug(
        "periods_generated",
        granularity=resolved.value,
        range_start=range_start.isoformat(),
        range_end=range_end.isoformat(),
        period_count=len(periods),
    )
    return periods


def parse_range_preset(token: Union[RangePreset, str]) -> RangePreset:
    if isinstance(token, RangePreset):
        return token
    if isinstance(token, str):
        try:
            return RangePreset(token.strip().lower())
        except ValueError:
            pass
    raise UnsupportedRangePreset(token)


def preset_range(
    preset: Union[RangePreset, str],
    today: date,
    custom_start: Optional[date] = None,
    custom_end: Optional[date] = None,
) -> tuple[date, date]:
    """
    Resolve a KPI card filter preset to an inclusive (start, end) range.

    ``today`` is supplied by the caller. WEEK covers the seven days before
    today plus today itself.

    Raises:
        UnsupportedRangePreset: If the preset is unknown, or CUSTOM lacks a bound
        InvalidRange: If a CUSTOM range starts after it ends
    """
    resolved = parse_range_preset(preset)
    today = coerce_calendar_date(today)

    if resolved is RangePreset.TODAY:
        return today, today
    if resolved is RangePreset.WEEK:
        return today - timedelta(days=7), today
    if resolved is RangePreset.MONTH:
        return today.replace(day=1), month_end(today)
    if resolved is RangePreset.QUARTER:
        first_month = 3 * ((today.month - 1) // 3) + 1
        start = today.replace(month=first_month, day=1)
        return start, month_end(start.replace(month=first_month + 2))
    if resolved is RangePreset.YEAR:
        return today.replace(month=1, day=1), today.replace(month=12, day=31)

    if custom_start is None or custom_end is None:
        raise UnsupportedRangePreset(resolved.value, "custom needs both start and end")
    custom_start = coerce_calendar_date(custom_start)
    custom_end = coerce_calendar_date(custom_end)
    if custom_start > custom_end:
        raise InvalidRange(custom_start, custom_end)
    return custom_start, custom_end
