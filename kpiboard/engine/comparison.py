"""
Period-over-period comparison helpers for KPI cards.

Variation and trend read the values a KPI card already shows: the latest
value, the one before it and a short history. A missing previous value is an
ordinary dashboard state and resolves to 0 change, not an error.

History points are (date, value) pairs in any order; every helper sorts by
date itself.
"""

from collections.abc import Iterable, Mapping
from datetime import date
from typing import Optional

from kpiboard.engine.targets import attainment, target_for_date
from kpiboard.models.enums import Trend
from kpiboard.models.presentation import KpiCard

TREND_WINDOW = 5

DatedValue = tuple[date, float]


def calculate_variation(current: float, previous: Optional[float]) -> float:
    """
    Percent change from ``previous`` to ``current``.

    Returns:
        0.0 when there is no previous value; 100.0 when the previous value is
        zero and the current one positive; otherwise (current - previous) /
        previous * 100
    """
    if previous is None:
        return 0.0
    if previous == 0:
        return 100.0 if current > 0 else 0.0
    return (current - previous) / previous * 100


def calculate_trend(points: Iterable[DatedValue], window: int = TREND_WINDOW) -> Trend:
    """
    Classify the ``window`` most recent points by counting rises against falls.

    Points are ordered by date first. Fewer than two points carry no
    direction and give STABLE.
    """
    ordered = sorted(points, key=lambda p: p[0])
    if len(ordered) < 2:
        return Trend.STABLE

    recent = [value for _, value in ordered[-window:]]
    increases = 0
    decreases = 0
    for before, after in zip(recent, recent[1:]):
        if after > before:
            increases += 1
        elif after < before:
            decreases += 1

    if increases > decreases:
        return Trend.UP
    if decreases > increases:
        return Trend.DOWN
    return Trend.STABLE


def latest_values(
    points: Iterable[DatedValue],
) -> tuple[Optional[DatedValue], Optional[DatedValue]]:
    """Most recent and second most recent (date, value) points; None where absent."""
    ordered = sorted(points, key=lambda p: p[0], reverse=True)
    latest = ordered[0] if ordered else None
    previous = ordered[1] if len(ordered) > 1 else None
    return latest, previous


def points_in_range(points: Iterable[DatedValue], start: date, end: date) -> list[DatedValue]:
    """Points dated within [start, end], both bounds inclusive."""
    return [p for p in points if start <= p[0] <= end]


def build_kpi_card(
    points: Iterable[DatedValue],
    default_target: float,
    monthly_targets: Optional[Mapping[str, float]] = None,
    window: int = TREND_WINDOW,
) -> KpiCard:
    """
    Latest value, variation, trend and target attainment for one KPI.

    The target is the one in force for the month of the latest point. An
    empty history yields a card with zero values and the default target.
    """
    history = list(points)
    latest, previous = latest_values(history)
    if latest is None:
        return KpiCard(target=default_target)

    latest_date, latest_value = latest
    previous_value = previous[1] if previous else None
    target = target_for_date(default_target, monthly_targets, latest_date)

    return KpiCard(
        latest_date=latest_date,
        latest_value=latest_value,
        previous_value=previous_value,
        variation=calculate_variation(latest_value, previous_value),
        trend=calculate_trend(history, window),
        target=target,
        attainment=attainment(latest_value, target),
    )
