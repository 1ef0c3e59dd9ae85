"""
Heat-map Normalizer.

Maps a numeric series onto a three-stop color gradient (red -> yellow ->
green by default) for table cell backgrounds. The color of a value depends
on the min and max of the whole series, so colors are always recomputed from
the full series and never cached per value.
"""

from collections.abc import Sequence

from kpiboard.engine.errors import EmptySeries
from kpiboard.models.presentation import ColorAssignment
from kpiboard.utils.numbers import round_half_up


RGB = tuple[int, int, int]

RED: RGB = (255, 0, 0)
YELLOW: RGB = (255, 255, 0)
GREEN: RGB = (0, 255, 0)

DEFAULT_GRADIENT: tuple[RGB, RGB, RGB] = (RED, YELLOW, GREEN)

# Translucent so row/column zebra striping stays visible underneath
DEFAULT_ALPHA = 0.3

NO_HIGHLIGHT = ""


class HeatMapNormalizer:
    """
    Colors values of one series relative to the series' own range.

    Attributes:
        gradient: Low, middle and high color stops
        alpha: Opacity of the emitted rgba() colors

    Example:
        >>> HeatMapNormalizer().colors([0, 50, 100])
        ['rgba(255, 0, 0, 0.3)', 'rgba(255, 255, 0, 0.3)', 'rgba(0, 255, 0, 0.3)']
    """

    def __init__(
        self,
        gradient: tuple[RGB, RGB, RGB] = DEFAULT_GRADIENT,
        alpha: float = DEFAULT_ALPHA,
    ):
        if len(gradient) != 3:
            raise ValueError(f"Heat-map gradient needs exactly 3 stops, got {len(gradient)}")
        if not 0.0 <= alpha <= 1.0:
            raise ValueError(f"Heat-map alpha must be in [0, 1], got {alpha}")
        self.gradient = gradient
        self.alpha = alpha

    def color_for(self, t: float) -> str:
        """Color for a normalized position ``t`` in [0, 1]."""
        low, mid, high = self.gradient
        if t < 0.5:
            start, stop, factor = low, mid, t * 2
        else:
            start, stop, factor = mid, high, (t - 0.5) * 2
        r, g, b = (
            round_half_up(a + (z - a) * factor) for a, z in zip(start, stop)
        )
        return f"rgba({r}, {g}, {b}, {self.alpha})"

    def colors(self, values: Sequence[float]) -> list[str]:
        """
        One color per value; "" for every value when the series is flat.

        Raises:
            EmptySeries: If ``values`` is empty
        """
        if not values:
            raise EmptySeries()

        lowest = min(values)
        highest = max(values)
        if lowest == highest:
            return [NO_HIGHLIGHT] * len(values)

        span = highest - lowest
        return [self.color_for((v - lowest) / span) for v in values]

    def colorize(self, values: Sequence[float]) -> list[ColorAssignment]:
        """Pair each value with its color."""
        return [
            ColorAssignment(value=value, color=color)
            for value, color in zip(values, self.colors(values))
        ]


def heat_map_colors(values: Sequence[float], alpha: float = DEFAULT_ALPHA) -> list[ColorAssignment]:
    """Color a series with the default red/yellow/green gradient."""
    return HeatMapNormalizer(alpha=alpha).colorize(values)
