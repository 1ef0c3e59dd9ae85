"""
Raw sample and aggregated bucket models.

A MetricSample is one raw event (a call, a scored design task, a funnel
conversion) pulled into memory by the data layer. Buckets are what the
engine produces from them: one per (period x dimension) pair.
"""

from datetime import date
from typing import Any, Callable, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .enums import RollUpPolicy
from .periods import TimePeriod, coerce_calendar_date

IMPLICIT_DIMENSION = "*"
UNSPECIFIED_DIMENSION = "unspecified"


class MetricSample(BaseModel):
    """
    One raw timestamped event.

    Attributes:
        timestamp: Calendar date of the event (also its creation date)
        dimension_key: Secondary grouping value such as operator or channel
        measures: Named numeric fields summed during aggregation
        due_date: Optional deadline used by on-time delivery ratios
    """

    timestamp: date = Field(description="Calendar date the event happened on")
    dimension_key: Optional[str] = Field(
        default=None, description="Operator, channel or campaign the event belongs to"
    )
    measures: dict[str, float] = Field(
        default_factory=dict,
        description="Numeric fields accumulated per bucket (e.g. {'duration': 94})",
    )
    due_date: Optional[date] = Field(
        default=None, description="Deadline used for on-time ratios, if any"
    )

    @field_validator("timestamp", "due_date", mode="before")
    @classmethod
    def reduce_to_calendar_date(cls, v: Any) -> Any:
        return coerce_calendar_date(v)

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "timestamp": "2024-06-10",
                "dimension_key": "Ana",
                "measures": {"calls": 1, "talk_seconds": 182, "positive_outcomes": 1},
                "due_date": None,
            }
        }
    )


class AggregatedBucket(BaseModel):
    """
    Aggregate of every sample in one period for one dimension.

    Buckets exist even when no sample matched (sums are zero, count is 0) so
    that every period can be labelled and rendered.

    Attributes:
        period: Period this bucket covers
        dimension_key: Dimension slot ("*" when aggregation is undimensioned)
        sums: Accumulated total per named measure
        count: Number of samples folded into the bucket
        derived: Derived metrics attached by a derivation pass
    """

    period: TimePeriod
    dimension_key: str = Field(description="Dimension slot of this bucket")
    sums: dict[str, float] = Field(default_factory=dict, description="Per-measure totals")
    count: int = Field(default=0, ge=0, description="Number of samples in the bucket")
    derived: dict[str, float] = Field(
        default_factory=dict, description="Derived metrics computed from sums and count"
    )

    def value(self, name: str) -> float:
        """Read a derived metric, an accumulator or the event count by name."""
        if name in self.derived:
            return self.derived[name]
        if name == "count":
            return float(self.count)
        return self.sums.get(name, 0.0)

    @property
    def is_empty(self) -> bool:
        return self.count == 0


class DerivedMetricDefinition(BaseModel):
    """
    A named metric computed from a single bucket, with its roll-up policy.

    Attributes:
        name: Key under which the metric is stored in ``bucket.derived``
        compute: Total function from bucket to value (never raises on empty buckets)
        roll_up: How the metric combines into a "Total" row
        unit: Display unit hint ("%", "s", "") for presentation
    """

    name: str
    compute: Callable[[AggregatedBucket], float]
    roll_up: RollUpPolicy
    unit: str = ""
