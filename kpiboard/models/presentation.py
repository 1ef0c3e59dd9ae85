"""
Presentation-side outputs: heat-map colors, run-rate projections and KPI cards.

None of these models feeds back into aggregation; each is recomputed whenever the
series or period they describe changes.
"""

from datetime import date
from typing import Optional

from pydantic import BaseModel, Field

from .enums import Trend
from .periods import TimePeriod


class ColorAssignment(BaseModel):
    """
    Heat-map background for one value of a series.

    Attributes:
        value: The value that was colored
        color: CSS rgba() string, or "" meaning "no highlight"
    """

    value: float
    color: str = Field(default="", description="CSS rgba() color or empty for no highlight")


class RunRateProjection(BaseModel):
    """
    Projection of the period containing "today" to its full length.

    ``projected_extension`` is the additional amount expected between today
    and the period end; charts stack it on top of ``actual``.
    """

    period: Optional[TimePeriod] = None
    actual: float = Field(description="Value accumulated so far in the period")
    projected_extension: float = Field(description="Additional value expected by period end")
    projected_total: float = Field(description="actual + projected_extension")
    days_elapsed: int = Field(ge=1, description="Days elapsed including today")
    days_in_period: int = Field(ge=1, description="Total days in the period")


class KpiCard(BaseModel):
    """
    Headline numbers of one KPI card: the latest value against the previous
    one, a short trend and attainment of the month's target.

    Attributes:
        latest_date: Date of the most recent value, None for an empty history
        latest_value: Most recent value (0 for an empty history)
        previous_value: The value before it, None when there is only one
        variation: Percent change from previous to latest
        trend: Direction of the last few values
        target: Target in force for the latest value's month
        attainment: latest_value as a percentage of target
    """

    latest_date: Optional[date] = None
    latest_value: float = 0.0
    previous_value: Optional[float] = None
    variation: float = Field(default=0.0, description="Percent change from the previous value")
    trend: Trend = Trend.STABLE
    target: float = Field(default=0.0, description="Monthly override or default target")
    attainment: float = Field(default=0.0, description="Latest value as percent of target")
