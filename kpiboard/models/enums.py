"""
Enumeration types for the KPI Board analytics engine.

All enums inherit from str to ensure JSON serialization compatibility and to
let callers pass the raw token ("week", "sum", ...) wherever an enum is
expected.
"""

from enum import Enum


class Granularity(str, Enum):
    """
    Time granularity used to partition a date range into periods.

    FORTNIGHT splits every calendar month at the 15th day.
    """

    DAY = "day"
    WEEK = "week"
    FORTNIGHT = "fortnight"
    MONTH = "month"


class RollUpPolicy(str, Enum):
    """
    How a measure is combined across dimensions into a "Total" row.

    SUM suits counts and durations. AVERAGE_OF_RATIOS averages the
    per-dimension percentages, so every operator weighs the same regardless
    of traffic. RATIO_OF_SUMS re-derives the ratio from pooled accumulators.
    """

    SUM = "sum"
    AVERAGE_OF_RATIOS = "average_of_ratios"
    RATIO_OF_SUMS = "ratio_of_sums"


class ConversionMode(str, Enum):
    """
    Reference stage used by funnel conversion rates.

    PHASE_TO_PHASE divides each stage by the one immediately before it;
    FUNNEL divides every stage by the first stage (leads).
    """

    PHASE_TO_PHASE = "phase_to_phase"
    FUNNEL = "funnel"


class Trend(str, Enum):
    """Direction of a short metric history."""

    UP = "up"
    DOWN = "down"
    STABLE = "stable"


class RangePreset(str, Enum):
    """
    Named date ranges offered by KPI card filters, resolved against "today".

    WEEK is the trailing seven days; MONTH, QUARTER and YEAR are the full
    calendar units containing today.
    """

    TODAY = "today"
    WEEK = "week"
    MONTH = "month"
    QUARTER = "quarter"
    YEAR = "year"
    CUSTOM = "custom"
