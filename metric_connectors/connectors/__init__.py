"""
Metric connectors.

Each connector validates its positional arguments, fetches raw samples from
the metric backend and applies one transform from the engine:

    hello-world     constant echo series, no backend call
    moving-average  trailing N-datapoint average
    timeshift       current series plus N shifted copies
    histogram       logarithmic histogram of sample counts
    filter          series of an expression matching a threshold
    multi-region    one metric loaded from several regions in parallel

Example:
    >>> result = await invoke("moving-average", event, backend=backend)
    >>> result.to_wire()
"""

from typing import Any, Optional

from metric_connectors.backends.base import MetricBackend
from metric_connectors.models.enums import ErrorCategory
from metric_connectors.models.invocation import ErrorResponse, InvocationResult

from .base import BaseConnector
from .filter import FilterConnector
from .hello_world import HelloWorldConnector
from .histogram import HistogramConnector
from .moving_average import MovingAverageConnector
from .multi_region import MultiRegionConnector
from .timeshift import TimeShiftConnector

CONNECTORS: dict[str, type[BaseConnector]] = {
    connector.name: connector
    for connector in (
        HelloWorldConnector,
        MovingAverageConnector,
        TimeShiftConnector,
        HistogramConnector,
        FilterConnector,
        MultiRegionConnector,
    )
}


def get_connector(
    name: str,
    backend: Optional[MetricBackend] = None,
    region: Optional[str] = None,
) -> Optional[BaseConnector]:
    """Instantiate a connector by name, or None if no such connector exists."""
    connector_class = CONNECTORS.get(name)
    if connector_class is None:
        return None
    return connector_class(backend=backend, region=region)


async def invoke(
    name: str,
    event: dict[str, Any],
    backend: Optional[MetricBackend] = None,
    region: Optional[str] = None,
) -> InvocationResult:
    """Run one invocation event against the named connector."""
    connector = get_connector(name, backend=backend, region=region)
    if connector is None:
        return ErrorResponse.build(ErrorCategory.VALIDATION, f"Unknown connector: {name}")
    return await connector.invoke(event)


__all__ = [
    "BaseConnector",
    "CONNECTORS",
    "FilterConnector",
    "HelloWorldConnector",
    "HistogramConnector",
    "MovingAverageConnector",
    "MultiRegionConnector",
    "TimeShiftConnector",
    "get_connector",
    "invoke",
]
