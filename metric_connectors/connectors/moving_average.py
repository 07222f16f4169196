"""
Moving-average connector.

Fetches the metric from ``N - 1`` periods before StartTime together with a
dense TIME_SERIES probe. The probe's earliest timestamp tells how far back the
backend actually has data, which becomes the anchor of the windowing walk.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict

from metric_connectors.engine.moving_average import MovingAverageWindower
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
PROBE_QUERY_ID = "timer"
PROBE_EXPRESSION = "TIME_SERIES(10)"


class MovingAverageParams(BaseModel):
    model_config = ConfigDict(arbitrary_types_allowed=True)

    metric: Metric
    stat: str
    windower: MovingAverageWindower


class MovingAverageConnector(BaseConnector):
    """Trailing N-datapoint moving average of a metric; missing data is ignored."""

    name = "moving-average"
    schema = [
        ArgumentSpec(name="metric", kind=ArgumentKind.STRING),
        ArgumentSpec(name="stat", kind=ArgumentKind.STRING),
        ArgumentSpec(name="datapoints", kind=ArgumentKind.NUMBER),
    ]
    argument_defaults = ["AWS/Lambda,Duration", "Average", 10]
    description = """
## Metric moving average data source connector

Returns the moving average for a metric. Each datapoint is the average of the
original datapoint and the trailing N - 1 datapoints. Missing data is ignored.

### Query arguments

\\# | Type | Description
---|---|---
1 | String | The full name of the metric, in format <Namespace>,<MetricName>,<Dim Name 1>,<Dim Value 1>,... etc. URL encode the strings between commas
2 | String | The statistic to retrieve for the metric
3 | Number | The number of datapoints to average, a whole number from 2 to 10000

### Example Expression
Plot 10-datapoint moving average of duration of all Lambda functions:

```
LAMBDA('{connector_name}', {default_arguments})
```
"""

    def parse_arguments(self, arguments: list[Optional[ArgumentValue]]) -> MovingAverageParams:
        full_metric, stat, datapoints = arguments
        windower = MovingAverageWindower(as_integer(datapoints, "Number of datapoints"))
        return MovingAverageParams(
            metric=parse_full_metric(full_metric),
            stat=stat,
            windower=windower,
        )

    async def compute(
        self,
        params: MovingAverageParams,
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
                ),
                MetricDataQuery(
                    id=PROBE_QUERY_ID, expression=PROBE_EXPRESSION, period=window.period
                ),
            ],
            start_time=params.windower.lookback_start(window),
            end_time=window.end_time,
        )
        results = await self.fetch_by_id(request, region)

        probe = results[PROBE_QUERY_ID]
        earliest = min(probe.timestamps) if probe.timestamps else None

        return [
            params.windower.apply(
                results[METRIC_QUERY_ID].to_timeseries(), window, earliest=earliest
            )
        ]
