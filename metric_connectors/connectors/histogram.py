"""
Histogram connector.

Plots the logarithmic distribution of a metric's samples over the whole
window. Two backend round trips are made: the basic statistics first, to
learn the value range and sample count, then one percentile-range query per
bucket. Percentages are converted to counts since the console renders the
result as a bar chart.
"""

from typing import Optional

import structlog
from pydantic import BaseModel, ConfigDict

from metric_connectors.engine.histogram import (
    BASIC_STATS,
    DEFAULT_BUCKET_COUNT,
    MAX_BUCKET_COUNT,
    MIN_BUCKET_COUNT,
    HistogramQuantizer,
    range_period,
)
from metric_connectors.models.enums import ArgumentKind
from metric_connectors.models.invocation import ArgumentValue
from metric_connectors.models.timeseries import (
    Metric,
    MetricDataQuery,
    MetricDataRequest,
    MetricDataResult,
    MetricStat,
    QueryWindow,
    Timeseries,
)

from .arguments import ArgumentSpec, as_integer, parse_full_metric
from .base import BaseConnector

logger = structlog.get_logger()


class BasicStats(BaseModel):
    """Aggregates over the whole window. Missing statistics read as zero."""

    minimum: float = 0.0
    maximum: float = 0.0
    sample_count: float = 0.0
    total: float = 0.0
    unit: Optional[str] = None


class HistogramParams(BaseModel):
    model_config = ConfigDict(arbitrary_types_allowed=True)

    metric: Metric
    quantizer: HistogramQuantizer


def _first_value(result: MetricDataResult) -> float:
    series = result.to_timeseries()
    return series.values[0] if series.values else 0.0


class HistogramConnector(BaseConnector):
    """Logarithmic histogram of a metric that supports percentile-range statistics."""

    name = "histogram"
    schema = [
        ArgumentSpec(name="metric", kind=ArgumentKind.STRING),
        ArgumentSpec(
            name="bucket_count",
            kind=ArgumentKind.NUMBER,
            required=False,
            numeric_string=True,
        ),
    ]
    argument_defaults = ["AWS/Lambda, Duration", DEFAULT_BUCKET_COUNT]
    description = f"""
## Metric histogram plotter

Plots a logarithmic distribution of measurements for any metric that supports
percentile-range statistics.

* To be able to see the graph, select *Bar* chart visualization in *Graph options*
* Height of each bar is the number of samples in each bucket
* Label of each bar is "center" value of bucket

### Query arguments

\\# | Type | Description
---|---|---
1 | String | The full name of the metric, in format <Namespace>, <MetricName>, <Dim Name 1>, <Dim Value 1>,... etc. URL encode the strings between commas.
2 | Number | (optional) max number of buckets, a whole number from {MIN_BUCKET_COUNT} to {MAX_BUCKET_COUNT} (defaults to {DEFAULT_BUCKET_COUNT}); fractional values such as 5.5 are rejected rather than truncated

### Example Expression

Plot the histogram of all Lambda function calls:

```
LAMBDA('{{connector_name}}', {{default_arguments}})
```
"""

    def parse_arguments(self, arguments: list[Optional[ArgumentValue]]) -> HistogramParams:
        full_metric, bucket_count = arguments
        metric = parse_full_metric(full_metric)
        if bucket_count is None:
            count = DEFAULT_BUCKET_COUNT
        else:
            count = as_integer(bucket_count, "Bucket count")
        return HistogramParams(metric=metric, quantizer=HistogramQuantizer(count))

    async def basic_stats(
        self,
        metric: Metric,
        window: QueryWindow,
        period: int,
        region: str,
    ) -> BasicStats:
        """Fetch Minimum, Maximum, SampleCount and Sum over the whole window."""
        request = MetricDataRequest(
            queries=[
                MetricDataQuery(
                    id=f"m{stat}",
                    metric_stat=MetricStat(metric=metric, stat=stat, period=period),
                )
                for stat in BASIC_STATS
            ],
            start_time=window.start_time,
            end_time=window.end_time,
        )
        results = await self.fetch_by_id(request, region)
        stats = BasicStats(
            minimum=_first_value(results["mMinimum"]),
            maximum=_first_value(results["mMaximum"]),
            sample_count=_first_value(results["mSampleCount"]),
            total=_first_value(results["mSum"]),
            unit=results["mMinimum"].unit or results["mMaximum"].unit,
        )
        self.logger.debug("histogram_basic_stats", **stats.model_dump())
        return stats

    async def compute(
        self,
        params: HistogramParams,
        window: QueryWindow,
        region: str,
    ) -> list[Timeseries]:
        period = range_period(window)
        stats = await self.basic_stats(params.metric, window, period, region)

        buckets = params.quantizer.build_buckets(stats.minimum, stats.maximum, unit=stats.unit)
        request = MetricDataRequest(
            queries=params.quantizer.bucket_queries(buckets, params.metric, period),
            start_time=window.start_time,
            end_time=window.end_time,
        )
        results = await self.fetch(request, region)
        return params.quantizer.to_histogram(buckets, results, stats.sample_count)
