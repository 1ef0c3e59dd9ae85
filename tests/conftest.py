"""
Pytest configuration and shared fixtures for the KPI Board test suite.

Provides data factories for samples, periods and buckets plus fixtures with
fixed operator, design and funnel datasets. All dates are fixed so that no
test depends on the system clock.
"""

import os
from datetime import date, timedelta
from typing import Optional

import pytest

# Set testing environment BEFORE importing the app
os.environ["TESTING"] = "true"
os.environ.setdefault("LOG_LEVEL", "warning")

from kpiboard.engine.pipeline import AnalyticsEngine
from kpiboard.models.periods import TimePeriod
from kpiboard.models.samples import AggregatedBucket, MetricSample


# ---------------------------------------------------------------------------
# Model factories, reusable across all test suites
# ---------------------------------------------------------------------------


def make_sample(
    timestamp: date = date(2024, 6, 10),
    dimension_key: Optional[str] = None,
    due_date: Optional[date] = None,
    **measures: float,
) -> MetricSample:
    """Factory function for creating test MetricSample objects."""
    return MetricSample(
        timestamp=timestamp,
        dimension_key=dimension_key,
        measures=measures,
        due_date=due_date,
    )


def make_samples(count: int, timestamp: date, dimension_key: Optional[str] = None, **measures) -> list[MetricSample]:
    """``count`` identical samples on one day."""
    return [make_sample(timestamp, dimension_key, **measures) for _ in range(count)]


def make_period(start: date, end: date, label: str = "test") -> TimePeriod:
    """Factory function for creating test TimePeriod objects."""
    return TimePeriod(start=start, end=end, label=label)


def make_bucket(
    period: Optional[TimePeriod] = None,
    dimension_key: str = "Ana",
    count: int = 0,
    derived: Optional[dict] = None,
    **sums: float,
) -> AggregatedBucket:
    """Factory function for creating test AggregatedBucket objects."""
    return AggregatedBucket(
        period=period or make_period(date(2024, 6, 1), date(2024, 6, 15)),
        dimension_key=dimension_key,
        sums=sums,
        count=count,
        derived=derived or {},
    )


# ---------------------------------------------------------------------------
# Pytest fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def engine():
    """Fresh AnalyticsEngine with default settings."""
    return AnalyticsEngine()


@pytest.fixture
def june_fortnight_samples():
    """5 samples on 2024-06-10 and 3 on 2024-06-20."""
    return make_samples(5, date(2024, 6, 10), calls=1) + make_samples(3, date(2024, 6, 20), calls=1)


@pytest.fixture
def operator_call_samples():
    """
    Call-center samples for two operators over the first half of June 2024.

    Ana makes 2 calls a day on even days, Bruno 1 call a day every day;
    one call is logged by an operator outside the panel's allow-list.
    """
    samples = []
    for offset in range(15):
        day = date(2024, 6, 1) + timedelta(days=offset)
        if day.day % 2 == 0:
            samples += make_samples(2, day, "Ana", calls=1, talk_seconds=120, positive=1)
        samples.append(make_sample(day, "Bruno", calls=1, talk_seconds=60, positive=0))
    samples.append(make_sample(date(2024, 6, 3), "Carla", calls=1, talk_seconds=30, positive=0))
    return samples


@pytest.fixture
def design_samples():
    """
    Scored design tasks with due dates.

    Ana: 5 tasks, 4 on time. Bruno: 20 tasks, 8 on time.
    """
    samples = []
    due = date(2024, 6, 10)
    for i in range(5):
        created = due + timedelta(days=1) if i < 4 else due + timedelta(days=2)
        samples.append(make_sample(created, "Ana", due_date=due, score=8))
    for i in range(20):
        created = due if i < 8 else due + timedelta(days=5)
        samples.append(make_sample(created, "Bruno", due_date=due, score=6))
    return samples
