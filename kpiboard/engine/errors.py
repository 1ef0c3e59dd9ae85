"""
Contract-violation errors raised by the analytics engine.

Every error here signals a caller bug, not a data condition. Empty periods,
zero denominators and missing previous periods resolve to 0 or None instead.
All errors subclass ValueError so call sites that already guard engine calls
with ``except ValueError`` keep working.
"""

from datetime import date


class AnalyticsError(ValueError):
    """Base class for analytics engine contract violations."""


class InvalidRange(AnalyticsError):
    """Raised when a date range starts after it ends."""

    def __init__(self, range_start: date, range_end: date):
        self.range_start = range_start
        self.range_end = range_end
        super().__init__(f"Invalid range: start {range_start} is after end {range_end}")


class UnsupportedGranularity(AnalyticsError):
    """Raised for an unrecognized granularity token."""

    def __init__(self, token: object):
        self.token = token
        super().__init__(f"Unsupported granularity: {token!r}")


class EmptySeries(AnalyticsError):
    """Raised when a heat map is requested for a series with no values."""

    def __init__(self) -> None:
        super().__init__("Heat-map normalization requires at least one value")


class MissingRollUpPolicy(AnalyticsError):
    """Raised when a derived metric reaches the roll-up without a combination policy."""

    def __init__(self, metric_name: str):
        self.metric_name = metric_name
        super().__init__(f"No roll-up policy given for derived metric {metric_name!r}")


class UnsupportedConversionMode(AnalyticsError):
    """Raised for an unrecognized funnel conversion mode."""

    def __init__(self, mode: object):
        self.mode = mode
        super().__init__(f"Unsupported conversion mode: {mode!r}")


class UnsupportedRangePreset(AnalyticsError):
    """Raised for an unknown range preset or a custom preset without bounds."""

    def __init__(self, preset: object, detail: str = ""):
        self.preset = preset
        message = f"Unsupported range preset: {preset!r}"
        super().__init__(f"{message} ({detail})" if detail else message)
