"""
Pydantic models for the metric connectors.

Time series and backend query shapes live in ``timeseries``; the invocation
envelope (describe, compute, error) lives in ``invocation``.
"""

from .enums import (
    ArgumentKind,
    ErrorCategory,
    EventType,
    FilterCondition,
    FilterStat,
    SeriesStatus,
)
from .invocation import (
    ArgumentDefault,
    ArgumentValue,
    ConnectorEvent,
    DescribeResponse,
    ErrorDetail,
    ErrorResponse,
    GetMetricDataRequest,
    InvocationResult,
    MetricDataResponse,
)
from .timeseries import (
    Bucket,
    Dimension,
    FilterPredicate,
    Metric,
    MetricDataQuery,
    MetricDataRequest,
    MetricDataResult,
    MetricStat,
    QueryWindow,
    Timeseries,
    to_epoch_seconds,
)

__all__ = [
    "ArgumentDefault",
    "ArgumentKind",
    "ArgumentValue",
    "Bucket",
    "ConnectorEvent",
    "DescribeResponse",
    "Dimension",
    "ErrorCategory",
    "ErrorDetail",
    "ErrorResponse",
    "EventType",
    "FilterCondition",
    "FilterPredicate",
    "FilterStat",
    "GetMetricDataRequest",
    "InvocationResult",
    "Metric",
    "MetricDataQuery",
    "MetricDataRequest",
    "MetricDataResponse",
    "MetricDataResult",
    "MetricStat",
    "QueryWindow",
    "SeriesStatus",
    "Timeseries",
    "to_epoch_seconds",
]
