"""Echo connector: a constant series across the query window, no backend call."""

from typing import Optional

from pydantic import BaseModel

from metric_connectors.models.enums import ArgumentKind
from metric_connectors.models.invocation import ArgumentValue
from metric_connectors.models.timeseries import QueryWindow, Timeseries

from .arguments import ArgumentSpec
from .base import BaseConnector


class HelloWorldParams(BaseModel):
    label: str
    value: float


class HelloWorldConnector(BaseConnector):
    """Generates a series with the same value at every grid point."""

    name = "hello-world"
    schema = [
        ArgumentSpec(name="label", kind=ArgumentKind.STRING),
        ArgumentSpec(name="value", kind=ArgumentKind.NUMBER),
    ]
    argument_defaults = ["metricLabel", 10]
    description = """
## Sample hello world data source connector

Generates a sample time series at a given value across a time range

### Query arguments

\\# | Type | Description
---|---|---
1 | String | The name of the time series
2 | Number | The value returned for all data points in the time series

### Example Expression

```
LAMBDA('{connector_name}', {default_arguments})
```
"""

    def parse_arguments(self, arguments: list[Optional[ArgumentValue]]) -> HelloWorldParams:
        label, value = arguments
        return HelloWorldParams(label=label, value=float(value))

    async def compute(
        self,
        params: HelloWorldParams,
        window: QueryWindow,
        region: str,
    ) -> list[Timeseries]:
        timestamps = list(window.grid())
        return [
            Timeseries(
                label=params.label,
                timestamps=timestamps,
                values=[params.value] * len(timestamps),
            )
        ]
