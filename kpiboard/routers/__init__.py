"""API routers for all endpoints."""

from kpiboard.routers import analytics

__all__ = ["analytics"]
