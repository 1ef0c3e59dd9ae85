"""Unit tests for KPI targets."""

from datetime import date

from kpiboard.engine.targets import attainment, month_key, target_for_date


class TestTargets:
    def test_month_key(self):
        assert month_key(date(2024, 6, 9)) == "2024-06"

    def test_monthly_override_applies_to_its_month(self):
        overrides = {"2024-06": 120.0}
        assert target_for_date(100.0, overrides, date(2024, 6, 30)) == 120.0
        assert target_for_date(100.0, overrides, date(2024, 7, 1)) == 100.0

    def test_no_overrides_uses_default(self):
        assert target_for_date(100.0, None, date(2024, 6, 1)) == 100.0
        assert target_for_date(100.0, {}, date(2024, 6, 1)) == 100.0

    def test_zero_override_is_respected(self):
        assert target_for_date(100.0, {"2024-06": 0.0}, date(2024, 6, 1)) == 0.0

    def test_attainment(self):
        assert attainment(90, 120) == 75.0
        assert attainment(10, 0) == 0.0
