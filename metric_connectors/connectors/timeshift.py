"""
Time-shift connector.

Shows how a metric behaves now compared to periodic times in the past, e.g.
day over day for the past week. Since the shifted copies are returned as
ordinary series, expressions can alarm on data from months ago.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict

from metric_connectors.engine.timeshift import TimeShiftAligner, parse_iso8601_duration
from metric_connectors.errors import ValidationError
from metric_connectors.models.enums import ArgumentKind
from metric_connectors.models.invocation import ArgumentValue
from metric_connectors.models.timeseries import (
    Metric,
    MetricDataQuery,
    MetricDataRequest,
    MetricStat,
    QueryWindow,
    Timeseries,
)

from .arguments import ArgumentSpec, as_integer, parse_full_metric
from .base import BaseConnector

METRIC_QUERY_ID = "m1"


class TimeShiftParams(BaseModel):
    model_config = ConfigDict(arbitrary_types_allowed=True)

    metric: Metric
    stat: str
    aligner: TimeShiftAligner


class TimeShiftConnector(BaseConnector):
    """Current series plus 1 to 10 copies shifted back by a duration."""

    name = "timeshift"
    schema = [
        ArgumentSpec(name="metric", kind=ArgumentKind.STRING),
        ArgumentSpec(name="stat", kind=ArgumentKind.STRING),
        ArgumentSpec(name="interval", kind=ArgumentKind.STRING),
        ArgumentSpec(name="shifts", kind=ArgumentKind.NUMBER),
    ]
    argument_defaults = [
        "AWS/Usage, CallCount, Type, API, Resource, GetMetricData, Service, CloudWatch, Class, None",
        "Sum",
        "P1D",
        7,
    ]
    description = """
## Metric timeshift data source connector

"Time shifts" a metric, to show how a metric behaves now compared to periodic
times in the past. It also enables alarming on data from long ago.

### Query arguments

\\# | Type | Description
---|---|---
1 | String | The full name of the metric, in format <Namespace>, <MetricName>, <Dim Name 1>, <Dim Value 1>,... etc. URL encode the strings between commas
2 | String | The statistic to retrieve for the metric
3 | String | The shift interval, in ISO 8601 duration format, e.g. P7D for 1 week, PT3H for 3 hours
4 | Number | The number of shifts to perform, between 1 and 10

### Example Expression
Plot number of calls day over day for past 8 days (current, plus 7 timeshifts of 1 day)

```
LAMBDA('{connector_name}', {default_arguments})
```

Compare today versus a week ago as a percent change, which can be alarmed on:

```
timeshift = LAMBDA('{connector_name}', 'AWS/Usage, CallCount, Type, API, Resource, GetMetricData, Service, CloudWatch, Class, None', 'Sum', 'P7D', 1)
current = FIRST(timeshift)
previous = LAST(timeshift)
percentChange = IF(previous != 0, current / previous * 100)
```
"""

    def parse_arguments(self, arguments: list[Optional[ArgumentValue]]) -> TimeShiftParams:
        full_metric, stat, interval_text, shifts = arguments
        shift_interval = parse_iso8601_duration(interval_text)
        if shift_interval <= 0:
            raise ValidationError(
                f"Illegal shift interval '{interval_text}' specified, must be > 0 seconds"
            )
        aligner = TimeShiftAligner(shift_interval, as_integer(shifts, "Number of shifts"))
        return TimeShiftParams(
            metric=parse_full_metric(full_metric),
            stat=stat,
            aligner=aligner,
        )

    async def compute(
        self,
        params: TimeShiftParams,
        window: QueryWindow,
        region: str,
    ) -> list[Timeseries]:
        request = MetricDataRequest(
            queries=[
                MetricDataQuery(
                    id=METRIC_QUERY_ID,
                    metric_stat=MetricStat(
                        metric=params.metric, stat=params.stat, period=window.period
                    ),
                )
            ],
            start_time=params.aligner.fetch_start(window),
            end_time=window.end_time,
        )
        results = await self.fetch_by_id(request, region)
        return params.aligner.apply(results[METRIC_QUERY_ID].to_timeseries(), window)
