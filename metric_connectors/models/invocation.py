"""
Invocation envelope models.

The console invokes a connector with an event tagged either
DescribeGetMetricData or GetMetricData and expects exactly one of three
response shapes back: describe metadata, a list of series, or an error.
"""

from typing import Any, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, StrictFloat, StrictInt, StrictStr

from .enums import ErrorCategory
from .timeseries import QueryWindow, Timeseries

ArgumentValue = Union[StrictInt, StrictFloat, StrictStr]


class GetMetricDataRequest(BaseModel):
    """Compute request: the query window plus positional arguments."""

    model_config = ConfigDict(populate_by_name=True)

    start_time: int = Field(alias="StartTime")
    end_time: int = Field(alias="EndTime")
    period: int = Field(alias="Period")
    arguments: list[ArgumentValue] = Field(default_factory=list, alias="Arguments")

    def window(self) -> QueryWindow:
        return QueryWindow(
            start_time=self.start_time, end_time=self.end_time, period=self.period
        )


class ConnectorEvent(BaseModel):
    """
    An invocation event. ``event_type`` is kept as a raw string so that an
    unknown tag can be reported as a validation failure instead of a parse error.
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    event_type: str = Field(alias="EventType")
    request: Optional[GetMetricDataRequest] = Field(default=None, alias="GetMetricDataRequest")
    region: Optional[str] = Field(default=None)


class ArgumentDefault(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    value: ArgumentValue = Field(alias="Value")


class DescribeResponse(BaseModel):
    """Static connector metadata."""

    model_config = ConfigDict(populate_by_name=True)

    connector_name: str = Field(alias="DataSourceConnectorName")
    argument_defaults: list[ArgumentDefault] = Field(alias="ArgumentDefaults")
    description: str = Field(alias="Description")

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


class MetricDataResponse(BaseModel):
    """Successful compute response."""

    model_config = ConfigDict(populate_by_name=True)

    results: list[Timeseries] = Field(default_factory=list, alias="MetricDataResults")

    def to_wire(self) -> dict[str, Any]:
        return {"MetricDataResults": [series.to_wire() for series in self.results]}


class ErrorDetail(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    code: ErrorCategory = Field(alias="Code")
    value: str = Field(alias="Value")


class ErrorResponse(BaseModel):
    """Failure response. Never accompanied by partial results."""

    model_config = ConfigDict(populate_by_name=True)

    error: ErrorDetail = Field(alias="Error")

    @classmethod
    def build(cls, category: ErrorCategory, message: str) -> "ErrorResponse":
        return cls(error=ErrorDetail(code=category, value=message))

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


InvocationResult = Union[DescribeResponse, MetricDataResponse, ErrorResponse]
