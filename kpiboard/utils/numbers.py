"""Numeric helpers shared by the analytics engine."""

import math


def round_half_up(value: float) -> int:
    """
    Round to the nearest integer, ties away from zero for positives.

    Python's built-in round() uses banker's rounding (round(0.5) == 0), which
    would shift heat-map channels and run-rate projections by one unit on
    exact halves. Dashboards display these numbers, so ties go up.
    """
    return int(math.floor(value + 0.5))


def safe_divide(numerator: float, denominator: float) -> float:
    """Divide, resolving a zero denominator to 0.0."""
    if denominator == 0:
        return 0.0
    return numerator / denominator
