"""API routers for all endpoints."""

from metric_connectors.routers import connectors

__all__ = ["connectors"]
