"""
Aggregation result model returned by the analytics pipeline.
"""

from datetime import date
from typing import Optional

from pydantic import BaseModel, Field

from .enums import Granularity
from .periods import TimePeriod
from .samples import AggregatedBucket


class AggregationResult(BaseModel):
    """
    Full, unfiltered output of one aggregation pass.

    Presentation toggles (hide weekends, hide zero-activity periods, heat map
    on/off) are applied by the caller to this result, never inside the pass.

    Attributes:
        granularity: Granularity the range was partitioned at
        range_start: First day of the requested range
        range_end: Last day of the requested range
        periods: Generated periods, ascending
        dimension_keys: Dimension slots present in ``buckets``, in order
        buckets: One bucket per period x dimension
        totals: One roll-up bucket per period (empty when roll-up was skipped)
        samples_received: Number of samples handed to the pass
    """

    granularity: Granularity
    range_start: date
    range_end: date
    periods: list[TimePeriod] = Field(default_factory=list)
    dimension_keys: list[str] = Field(default_factory=list)
    buckets: list[AggregatedBucket] = Field(default_factory=list)
    totals: list[AggregatedBucket] = Field(default_factory=list)
    samples_received: int = Field(default=0, ge=0)

    def buckets_for(self, dimension_key: str) -> list[AggregatedBucket]:
        """Buckets of one dimension (or the totals), in period order."""
        if self.totals and dimension_key == self.totals[0].dimension_key:
            return list(self.totals)
        return [b for b in self.buckets if b.dimension_key == dimension_key]

    def bucket(self, period: TimePeriod, dimension_key: str) -> Optional[AggregatedBucket]:
        for candidate in self.buckets_for(dimension_key):
            if candidate.period == period:
                return candidate
        return None
