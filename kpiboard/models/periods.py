"""
Time period model.

Periods are calendar-date ranges, inclusive at both ends. A ``datetime``
handed to any date field is reduced to its own calendar date without timezone
conversion: the local date a record carries is the date that buckets it.
"""

from datetime import date, datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


def coerce_calendar_date(value: Any) -> Any:
    """Reduce datetimes to their calendar date; leave other inputs to pydantic."""
    if isinstance(value, datetime):
        return value.date()
    return value


class TimePeriod(BaseModel):
    """
    One contiguous, inclusive calendar-date range produced by the period generator.

    ``start`` and ``end`` are clipped to the requested range. ``natural_start``
    and ``natural_end`` keep the bounds of the whole calendar unit (week,
    fortnight, month) the period belongs to; run-rate projections measure
    elapsed and total days against them.

    Attributes:
        start: First calendar day of the period (inclusive)
        end: Last calendar day of the period (inclusive)
        label: Short human-readable label for tables and charts
        natural_start: First day of the unclipped unit, if different from start
        natural_end: Last day of the unclipped unit, if different from end
    """

    model_config = ConfigDict(frozen=True)

    start: date = Field(description="First calendar day of the period (inclusive)")
    end: date = Field(description="Last calendar day of the period (inclusive)")
    label: str = Field(description="Short display label, e.g. 'Week 2' or 'Jun/24'")
    natural_start: Optional[date] = Field(
        default=None, description="First day of the full calendar unit before clipping"
    )
    natural_end: Optional[date] = Field(
        default=None, description="Last day of the full calendar unit before clipping"
    )

    @field_validator("start", "end", "natural_start", "natural_end", mode="before")
    @classmethod
    def reduce_to_calendar_date(cls, v: Any) -> Any:
        return coerce_calendar_date(v)

    @model_validator(mode="after")
    def validate_bounds(self) -> "TimePeriod":
        """Reject periods whose start falls after their end or outside their unit."""
        if self.start > self.end:
            raise ValueError(f"Period start {self.start} is after end {self.end}")
        if self.natural_start is not None and self.natural_start > self.start:
            raise ValueError(f"Unit start {self.natural_start} is after period start {self.start}")
        if self.natural_end is not None and self.natural_end < self.end:
            raise ValueError(f"Unit end {self.natural_end} is before period end {self.end}")
        return self

    def contains(self, day: date) -> bool:
        """Return True if ``day`` falls inside the period, both bounds inclusive."""
        return self.start <= day <= self.end

    @property
    def days(self) -> int:
        """Number of calendar days covered by the period."""
        return (self.end - self.start).days + 1

    @property
    def unit_start(self) -> date:
        return self.natural_start or self.start

    @property
    def unit_end(self) -> date:
        return self.natural_end or self.end

    @property
    def unit_days(self) -> int:
        """Number of calendar days in the whole, unclipped unit."""
        return (self.unit_end - self.unit_start).days + 1
