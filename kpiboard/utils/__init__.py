"""Utility modules for logging, request tracing, and numeric helpers."""

from kpiboard.utils.logging import configure_logging, get_logger, log_event
from kpiboard.utils.numbers import round_half_up, safe_divide

__all__ = ["configure_logging", "get_logger", "log_event", "round_half_up", "safe_divide"]
