"""
Filter connector.

Runs an arbitrary multi-series expression and keeps only the series whose
aggregate statistic satisfies the filter, e.g. only the instances whose CPU
went over 70%. A blank filter keeps everything, which makes the connector
usable to alarm on the aggregate of a search expression.
"""

from typing import Optional

from pydantic import BaseModel

from metric_connectors.engine.threshold_filter import ThresholdFilter, parse_filter
from metric_connectors.models.enums import ArgumentKind
from metric_connectors.models.invocation import ArgumentValue
from metric_connectors.models.timeseries import (
    FilterPredicate,
    MetricDataQuery,
    MetricDataRequest,
    QueryWindow,
    Timeseries,
)

from .arguments import ArgumentSpec
from .base import BaseConnector

EXPRESSION_QUERY_ID = "e1"


class FilterParams(BaseModel):
    expression: str
    predicate: FilterPredicate


class FilterConnector(BaseConnector):
    """Keeps the series of an expression that match '<stat> <condition> <value>'."""

    name = "filter"
    schema = [
        ArgumentSpec(name="expression", kind=ArgumentKind.STRING),
        ArgumentSpec(name="filter", kind=ArgumentKind.STRING),
    ]
    argument_defaults = [
        'SEARCH("{AWS/EC2,InstanceId} MetricName=CPUUtilization", "Average")',
        "MAX > 70",
    ]
    description = """
## Metric filterer

Filters metrics whose values match a condition, such as show only metrics where
average of all values > 70. Leave the filter expression blank to match all metrics.

### Query arguments

\\# | Type | Description
---|---|---
1 | String | Expression, e.g. CPU for EC2 instances: `SEARCH('{AWS/EC2,InstanceId} MetricName=CPUUtilization', 'Average')`
2 | String | Filter, in form '<stat> <condition> <value>', where <stat> can be MIN, MAX, AVG, SUM and <condition> can be >, >=, <, <=, ==, !=

### Example Expression
Display only EC2 Instances where CPU went over 70%:

```
LAMBDA('{connector_name}', {default_arguments})
```
"""

    def parse_arguments(self, arguments: list[Optional[ArgumentValue]]) -> FilterParams:
        expression, filter_string = arguments
        return FilterParams(expression=expression, predicate=parse_filter(filter_string))

    async def compute(
        self,
        params: FilterParams,
        window: QueryWindow,
        region: str,
    ) -> list[Timeseries]:
        request = MetricDataRequest(
            queries=[
                MetricDataQuery(
                    id=EXPRESSION_QUERY_ID,
                    expression=params.expression,
                    period=window.period,
                )
            ],
            start_time=window.start_time,
            end_time=window.end_time,
        )
        candidates = [result.to_timeseries() for result in await self.fetch(request, region)]
        return ThresholdFilter(params.predicate).apply(candidates)
