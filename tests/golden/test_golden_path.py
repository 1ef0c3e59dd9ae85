"""
Golden path tests for the KPI aggregation engine.

Each test runs a full panel scenario through AnalyticsEngine.aggregate() with
fixed data and a fixed "today", and checks the exact numbers the dashboard
would render: bucket counts, Total rows, heat-map colors and run rates.
"""

from datetime import date

import pytest

from kpiboard.engine.bucketizer import bucketize
from kpiboard.engine.derived import funnel_table, mean_metric, on_time_percentage_metric, ratio_metric
from kpiboard.engine.errors import MissingRollUpPolicy
from kpiboard.engine.pipeline import AnalyticsEngine
from kpiboard.models.enums import Granularity, RollUpPolicy
from kpiboard.models.samples import IMPLICIT_DIMENSION, UNSPECIFIED_DIMENSION
from tests.conftest import make_sample, make_samples

JUNE_START = date(2024, 6, 1)
JUNE_END = date(2024, 6, 30)


class TestGranularitySwitching:
    """The same samples regrouped at different granularities."""

    def test_fortnight_counts(self, engine, june_fortnight_samples):
        result = engine.aggregate(JUNE_START, JUNE_END, "fortnight", june_fortnight_samples)
        assert [p.label for p in result.periods] == ["1st half Jun/24", "2nd half Jun/24"]
        assert [b.count for b in result.buckets] == [5, 3]
        assert result.dimension_keys == [IMPLICIT_DIMENSION]
        assert result.samples_received == 8

    def test_month_counts(self, engine, june_fortnight_samples):
        result = engine.aggregate(JUNE_START, JUNE_END, Granularity.MONTH, june_fortnight_samples)
        assert [b.count for b in result.buckets] == [8]
        assert result.granularity is Granularity.MONTH

    def test_week_counts(self, engine, june_fortnight_samples):
        result = engine.aggregate(JUNE_START, JUNE_END, "week", june_fortnight_samples)
        # 06-10 falls in Week 3 (Jun 9-15), 06-20 in Week 4 (Jun 16-22)
        assert [b.count for b in result.buckets] == [0, 0, 5, 3, 0, 0]

    def test_fortnight_boundary(self, engine):
        samples = [make_sample(date(2024, 6, 15), calls=1), make_sample(date(2024, 6, 16), calls=1)]
        result = engine.aggregate(JUNE_START, JUNE_END, "fortnight", samples)
        assert [b.count for b in result.buckets] == [1, 1]

    def test_totals_match_buckets_without_dimensions(self, engine, june_fortnight_samples):
        result = engine.aggregate(JUNE_START, JUNE_END, "fortnight", june_fortnight_samples)
        assert [t.count for t in result.totals] == [5, 3]
        assert [t.sums["calls"] for t in result.totals] == [5.0, 3.0]


class TestOperatorPanel:
    """Call-center panel: per-operator rows, a Total row, heat map and run rate."""

    DEFINITIONS = [
        ratio_metric("positive_pct", "positive", "calls", RollUpPolicy.AVERAGE_OF_RATIOS),
        mean_metric("avg_talk", "talk_seconds", RollUpPolicy.AVERAGE_OF_RATIOS, unit="s"),
    ]

    @pytest.fixture
    def result(self, engine, operator_call_samples):
        return engine.aggregate(
            JUNE_START,
            JUNE_END,
            "fortnight",
            operator_call_samples,
            dimension_keys=["Ana", "Bruno"],
            definitions=self.DEFINITIONS,
        )

    def test_rows_per_operator(self, result):
        assert result.dimension_keys == ["Ana", "Bruno", UNSPECIFIED_DIMENSION]
        first_half = result.periods[0]
        ana = result.bucket(first_half, "Ana")
        bruno = result.bucket(first_half, "Bruno")
        assert (ana.count, ana.sums["talk_seconds"]) == (14, 1680.0)
        assert (bruno.count, bruno.sums["talk_seconds"]) == (15, 900.0)
        assert ana.derived == {"positive_pct": 100.0, "avg_talk": 120.0}
        assert bruno.derived == {"positive_pct": 0.0, "avg_talk": 60.0}

    def test_total_row(self, result):
        first, second = result.totals
        assert first.count == 30
        assert first.sums["calls"] == 30.0
        # mean of Ana 100%, Bruno 0%, unspecified 0%
        assert first.derived["positive_pct"] == pytest.approx(100 / 3)
        assert first.derived["avg_talk"] == pytest.approx(70.0)
        assert second.count == 0
        assert second.derived == {"positive_pct": 0.0, "avg_talk": 0.0}

    def test_unspecified_reconciles_total(self, result):
        first_half = result.periods[0]
        members = [result.bucket(first_half, key) for key in result.dimension_keys]
        assert sum(b.count for b in members) == result.totals[0].count

    def test_heat_map_across_operators(self, engine, result):
        colors = engine.heat_map_for_period(result, result.periods[0], "calls")
        assert [c.value for c in colors] == [14.0, 15.0, 1.0]
        assert colors[1].color == "rgba(0, 255, 0, 0.3)"
        assert colors[2].color == "rgba(255, 0, 0, 0.3)"

    def test_heat_map_for_operator_across_periods(self, engine, result):
        colors = engine.heat_map_for_dimension(result, "Ana", "positive_pct")
        # 100% in the first half, 0% in the (empty) second half
        assert [c.color for c in colors] == ["rgba(0, 255, 0, 0.3)", "rgba(255, 0, 0, 0.3)"]

    def test_run_rate_on_total(self, engine, result):
        projection = engine.run_rate(result, "calls", today=date(2024, 6, 10))
        # 30 calls after 10 of 15 days -> 45 expected
        assert projection.projected_extension == 15
        assert projection.projected_total == 45
        assert projection.period == result.periods[0]

    def test_run_rate_for_operator(self, engine, result):
        projection = engine.run_rate(result, "calls", today=date(2024, 6, 5), dimension_key="Bruno")
        # 15 calls after 5 of 15 days -> 45 expected
        assert projection.projected_extension == 30

    def test_run_rate_absent_for_empty_current_period(self, engine, result):
        assert engine.run_rate(result, "calls", today=date(2024, 6, 20)) is None

    def test_run_rate_absent_outside_range(self, engine, result):
        assert engine.run_rate(result, "calls", today=date(2024, 8, 1)) is None


class TestMonthToDateRunRate:
    """A monthly chart whose range ends today projects to the calendar month end."""

    def test_range_ending_today(self, engine):
        samples = make_samples(10, date(2024, 6, 5), calls=1)
        result = engine.aggregate(date(2024, 5, 1), date(2024, 6, 10), "month", samples)
        projection = engine.run_rate(result, "calls", today=date(2024, 6, 10))
        # 10 calls after 10 of 30 days -> 30 expected
        assert projection.period.end == date(2024, 6, 10)
        assert projection.days_in_period == 30
        assert projection.projected_extension == 20

    def test_week_clipped_at_range_start(self, engine):
        samples = make_samples(6, date(2024, 6, 4), calls=1)
        result = engine.aggregate(date(2024, 6, 4), date(2024, 6, 30), "week", samples)
        projection = engine.run_rate(result, "calls", today=date(2024, 6, 5))
        # week of Sun 06-02 .. Sat 06-08: 6 calls after 4 of 7 days -> 10.5 -> 11
        assert projection.days_elapsed == 4
        assert projection.projected_extension == 5


class TestDesignPanel:
    """On-time delivery and average score per designer."""

    def _aggregate(self, engine, samples, policies=None):
        return engine.aggregate(
            JUNE_START,
            JUNE_END,
            "month",
            samples,
            dimension_keys=["Ana", "Bruno"],
            definitions=[
                on_time_percentage_metric(),
                mean_metric("avg_score", "score", RollUpPolicy.AVERAGE_OF_RATIOS),
            ],
            policies=policies,
            track_on_time=True,
        )

    def test_on_time_per_designer(self, engine, design_samples):
        result = self._aggregate(engine, design_samples)
        period = result.periods[0]
        assert result.bucket(period, "Ana").derived["on_time_pct"] == pytest.approx(80.0)
        assert result.bucket(period, "Bruno").derived["on_time_pct"] == pytest.approx(40.0)

    def test_total_averages_designers(self, engine, design_samples):
        (total,) = self._aggregate(engine, design_samples).totals
        assert total.derived["on_time_pct"] == pytest.approx(60.0)
        assert total.derived["avg_score"] == pytest.approx(7.0)

    def test_total_pools_designers_when_asked(self, engine, design_samples):
        (total,) = self._aggregate(
            engine, design_samples, policies={"on_time_pct": "ratio_of_sums"}
        ).totals
        assert total.derived["on_time_pct"] == pytest.approx(48.0)

    def test_grace_period_from_engine(self, design_samples):
        strict = AnalyticsEngine(grace_days=0)
        result = self._aggregate(strict, design_samples)
        period = result.periods[0]
        # Ana delivered every task after the due date
        assert result.bucket(period, "Ana").derived["on_time_pct"] == 0.0
        assert result.bucket(period, "Bruno").derived["on_time_pct"] == pytest.approx(40.0)


class TestMarketingFunnel:
    def test_funnel_rows_per_channel(self, engine):
        samples = (
            make_samples(4, date(2024, 6, 3), "google", leads=50, mqls=10, sqls=2)
            + make_samples(2, date(2024, 6, 20), "meta", leads=30, mqls=15, sqls=0)
        )
        result = engine.aggregate(
            JUNE_START, JUNE_END, "month", samples, dimension_keys=["google", "meta"]
        )
        rows = funnel_table(result.buckets + result.totals, ["leads", "mqls", "sqls"], "funnel")
        by_key = {row["dimension_key"]: row for row in rows}

        assert by_key["google"]["counts"] == {"leads": 200.0, "mqls": 40.0, "sqls": 8.0}
        assert by_key["google"]["rates"] == {"mqls": 20.0, "sqls": 4.0}
        assert by_key["meta"]["rates"] == {"mqls": 50.0, "sqls": 0.0}
        assert by_key["Total"]["counts"] == {"leads": 260.0, "mqls": 70.0, "sqls": 8.0}

    def test_phase_to_phase_on_same_result(self, engine):
        samples = make_samples(1, date(2024, 6, 3), leads=200, mqls=50, sqls=10)
        result = engine.aggregate(JUNE_START, JUNE_END, "month", samples)
        (row,) = funnel_table(result.buckets, ["leads", "mqls", "sqls"], "phase_to_phase")
        assert row["rates"] == {"mqls": 25.0, "sqls": 20.0}


class TestContractViolations:
    def test_bucket_derived_metric_needs_policy(self, engine):
        def seeded(bucket):
            return bucket.model_copy(update={"derived": {"legacy_score": 1.0}})

        periods = engine.aggregate(JUNE_START, JUNE_END, "month", []).periods
        buckets = [seeded(b) for b in bucketize([], periods, ["Ana"])]
        with pytest.raises(MissingRollUpPolicy):
            engine.rollup.roll_up(buckets)

    def test_without_total(self, engine, june_fortnight_samples):
        result = engine.aggregate(
            JUNE_START, JUNE_END, "month", june_fortnight_samples, include_total=False
        )
        assert result.totals == []
        # falls back to the first dimension
        projection = engine.run_rate(result, "calls", today=date(2024, 6, 24))
        assert projection.projected_extension == 2
