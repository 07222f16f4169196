"""
Metric backend layer.

Connectors fetch raw samples through the MetricBackend contract. The HTTP
implementation is built from settings and cached for the process lifetime;
it holds no per-invocation state.
"""

from functools import lru_cache

from metric_connectors.config import get_settings

from .base import MetricBackend
from .http_client import HttpMetricBackend


@lru_cache
def get_backend() -> MetricBackend:
    """
    Get cached backend instance (singleton).

    Returns:
        MetricBackend implementation configured from settings
    """
    settings = get_settings()
    return HttpMetricBackend(
        url_template=settings.metric_backend_url,
        timeout=settings.metric_backend_timeout_seconds,
        api_key=settings.metric_backend_api_key,
    )


__all__ = [
    "HttpMetricBackend",
    "MetricBackend",
    "get_backend",
]
