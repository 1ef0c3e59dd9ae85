"""KPI target lookup and attainment."""

from collections.abc import Mapping
from datetime import date
from typing import Optional

from kpiboard.utils.numbers import safe_divide


def month_key(day: date) -> str:
    """``YYYY-MM`` key used by monthly target overrides."""
    return day.strftime("%Y-%m")


def target_for_date(
    default_target: float,
    monthly_targets: Optional[Mapping[str, float]],
    day: date,
) -> float:
    """Monthly override for the month of ``day``, else the KPI's default target."""
    if monthly_targets:
        override = monthly_targets.get(month_key(day))
        if override is not None:
            return override
    return default_target


def attainment(value: float, target: float) -> float:
    """Percentage of ``target`` reached by ``value``; 0 when the target is 0."""
    return safe_divide(value, target) * 100
