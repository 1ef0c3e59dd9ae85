"""
Unit tests for the heat-map normalizer.
"""

import pytest

from kpiboard.engine.errors import EmptySeries
from kpiboard.engine.heatmap import NO_HIGHLIGHT, HeatMapNormalizer, heat_map_colors

RED = "rgba(255, 0, 0, 0.3)"
YELLOW = "rgba(255, 255, 0, 0.3)"
GREEN = "rgba(0, 255, 0, 0.3)"


@pytest.fixture
def normalizer():
    return HeatMapNormalizer()


class TestColors:
    def test_min_mid_max_map_to_gradient_stops(self, normalizer):
        assert normalizer.colors([0, 50, 100]) == [RED, YELLOW, GREEN]

    def test_quarter_points_round_half_up(self, normalizer):
        colors = normalizer.colors([0, 25, 75, 100])
        assert colors[1] == "rgba(255, 128, 0, 0.3)"
        assert colors[2] == "rgba(128, 255, 0, 0.3)"

    def test_colors_are_relative_to_series(self, normalizer):
        assert normalizer.colors([10, 20]) == [RED, GREEN]
        assert normalizer.colors([1000, 2000]) == [RED, GREEN]

    def test_negative_values(self, normalizer):
        assert normalizer.colors([-10, 0, 10]) == [RED, YELLOW, GREEN]

    def test_flat_series_has_no_highlight(self, normalizer):
        assert normalizer.colors([7, 7, 7]) == [NO_HIGHLIGHT] * 3

    def test_single_value_has_no_highlight(self, normalizer):
        assert normalizer.colors([42]) == [""]

    def test_empty_series_raises(self, normalizer):
        with pytest.raises(EmptySeries):
            normalizer.colors([])

    def test_custom_alpha(self):
        assert HeatMapNormalizer(alpha=1.0).colors([0, 1]) == [
            "rgba(255, 0, 0, 1.0)",
            "rgba(0, 255, 0, 1.0)",
        ]


class TestConfiguration:
    def test_invalid_alpha_rejected(self):
        with pytest.raises(ValueError, match="alpha"):
            HeatMapNormalizer(alpha=1.5)

    def test_gradient_needs_three_stops(self):
        with pytest.raises(ValueError, match="3 stops"):
            HeatMapNormalizer(gradient=((0, 0, 0), (255, 255, 255)))

    def test_custom_gradient(self):
        blue_scale = ((0, 0, 0), (0, 0, 128), (0, 0, 255))
        assert HeatMapNormalizer(gradient=blue_scale).color_for(0.5) == "rgba(0, 0, 128, 0.3)"


class TestColorize:
    def test_colorize_pairs_values_with_colors(self, normalizer):
        assignments = normalizer.colorize([3, 9])
        assert [(a.value, a.color) for a in assignments] == [(3, RED), (9, GREEN)]

    def test_heat_map_colors_helper(self):
        assignments = heat_map_colors([1, 1])
        assert [a.color for a in assignments] == ["", ""]
