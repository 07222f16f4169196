"""
Enumeration types for the metric connectors.

All enums inherit from str so that they serialize to their wire values in
JSON responses without custom encoders.
"""

from enum import Enum


class EventType(str, Enum):
    """Operation tag carried by every invocation."""

    GET_METRIC_DATA = "GetMetricData"
    DESCRIBE_GET_METRIC_DATA = "DescribeGetMetricData"


class ErrorCategory(str, Enum):
    """
    Failure categories reported in the Error envelope.

    VALIDATION means the caller supplied bad arguments and should not retry.
    INTERNAL covers everything else, including backend failures, and may be
    retried by the console.
    """

    VALIDATION = "Validation"
    INTERNAL = "InternalError"


class SeriesStatus(str, Enum):
    """Completion indicator of a returned series."""

    COMPLETE = "Complete"


class ArgumentKind(str, Enum):
    """Kinds of positional connector arguments."""

    STRING = "string"
    NUMBER = "number"


class FilterStat(str, Enum):
    """Aggregate statistic a threshold filter is evaluated on."""

    MIN = "MIN"
    MAX = "MAX"
    AVG = "AVG"
    SUM = "SUM"


class FilterCondition(str, Enum):
    """Comparison operator of a threshold filter."""

    GT = ">"
    GTE = ">="
    LT = "<"
    LTE = "<="
    EQ = "=="
    NE = "!="
