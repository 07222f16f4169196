"""
Multi-region connector.

Loads one metric from several regions concurrently. All fetches are awaited
before output is assembled; if any region fails the whole invocation fails,
with no partial results. Output order follows the requested region list,
not completion order.
"""

import asyncio
from typing import Optional

from pydantic import BaseModel

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

from .arguments import ArgumentSpec, parse_full_metric
from .base import BaseConnector


class MultiRegionParams(BaseModel):
    metric: Metric
    stat: str
    regions: list[str]


def parse_regions(regions: str) -> list[str]:
    """Split a comma-separated region list, dropping blanks."""
    parsed = [region.strip() for region in regions.split(",") if region.strip()]
    if not parsed:
        raise ValidationError("Expected at least one region")
    return parsed


def region_query_id(region: str) -> str:
    return region.replace("-", "_")


class MultiRegionConnector(BaseConnector):
    """One series per requested region, labelled with the region."""

    name = "multi-region"
    schema = [
        ArgumentSpec(name="metric", kind=ArgumentKind.STRING),
        ArgumentSpec(name="stat", kind=ArgumentKind.STRING),
        ArgumentSpec(name="regions", kind=ArgumentKind.STRING),
    ]
    argument_defaults = [
        "AWS/Usage, CallCount, Type, API, Resource, GetMetricData, Service, CloudWatch, Class, None",
        "Sum",
        "us-east-1, eu-west-1",
    ]
    description = """
## Metric multi-region data source connector

Loads a metric from one or more regions. This enables:
* Alarming on a metric in a different region
* Alarming on combination of metrics from multiple regions

### Query arguments

\\# | Type | Description
---|---|---
1 | String | The full name of the metric, in format <Namespace>, <MetricName>, <Dim Name 1>, <Dim Value 1>,... etc. URL encode the strings between commas.
2 | String | The statistic to retrieve for the metric
3 | String | Comma-separated lists of regions to load metric from, e.g. `us-east-1, eu-west-1`

### Example Expression

```
LAMBDA('{connector_name}', {default_arguments})
```
"""

    def parse_arguments(self, arguments: list[Optional[ArgumentValue]]) -> MultiRegionParams:
        full_metric, stat, regions = arguments
        return MultiRegionParams(
            metric=parse_full_metric(full_metric),
            stat=stat,
            regions=parse_regions(regions),
        )

    async def _fetch_region(
        self,
        params: MultiRegionParams,
        window: QueryWindow,
        region: str,
    ) -> Timeseries:
        query_id = region_query_id(region)
        request = MetricDataRequest(
            queries=[
                MetricDataQuery(
                    id=query_id,
                    metric_stat=MetricStat(
                        metric=params.metric, stat=params.stat, period=window.period
                    ),
                )
            ],
            start_time=window.start_time,
            end_time=window.end_time,
        )
        results = await self.fetch_by_id(request, region)
        return results[query_id].to_timeseries(label=region)

    async def compute(
        self,
        params: MultiRegionParams,
        window: QueryWindow,
        region: str,
    ) -> list[Timeseries]:
        outcomes = await asyncio.gather(
            *(self._fetch_region(params, window, target) for target in params.regions),
            return_exceptions=True,
        )
        failures = [
            (target, outcome)
            for target, outcome in zip(params.regions, outcomes)
            if isinstance(outcome, BaseException)
        ]
        if failures:
            self.logger.error(
                "multi_region_fetch_failed",
                failed_regions=[target for target, _ in failures],
                requested_regions=params.regions,
            )
            raise failures[0][1]
        return list(outcomes)
