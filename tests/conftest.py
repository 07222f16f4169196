"""
Pytest configuration and shared fixtures for the metric connectors test suite.

Provides series/result/event factories and a FakeBackend that stands in for
the metric backend, recording every request it receives.
"""

import asyncio
import os
from typing import Callable, Optional, Sequence

import pytest

# Set testing environment BEFORE importing app modules
os.environ["TESTING"] = "true"
os.environ["CONNECTOR_NAME_PREFIX"] = "test"
os.environ["DEFAULT_REGION"] = "us-east-1"

from metric_connectors.backends.base import MetricBackend
from metric_connectors.errors import BackendError
from metric_connectors.models.timeseries import (
    MetricDataRequest,
    MetricDataResult,
    QueryWindow,
    Timeseries,
)


# ---------------------------------------------------------------------------
# Model factories
# ---------------------------------------------------------------------------


def make_series(
    start: int,
    period: int,
    values: Sequence[Optional[float]],
    label: str = "raw",
) -> Timeseries:
    """Series on a regular grid; None entries become gaps."""
    timestamps = []
    kept = []
    for index, value in enumerate(values):
        if value is not None:
            timestamps.append(start + index * period)
            kept.append(float(value))
    return Timeseries(label=label, timestamps=timestamps, values=kept)


def make_result(
    query_id: str,
    timestamps: Sequence = (),
    values: Sequence[float] = (),
    label: str = "",
    unit: Optional[str] = None,
) -> MetricDataResult:
    return MetricDataResult(
        id=query_id,
        label=label or query_id,
        timestamps=list(timestamps),
        values=list(values),
        unit=unit,
    )


def result_from_series(query_id: str, series: Timeseries) -> MetricDataResult:
    return make_result(query_id, series.timestamps, series.values, label=series.label)


def make_event(
    arguments: list,
    start_time: int = 1000,
    end_time: int = 1600,
    period: int = 60,
    region: Optional[str] = None,
    event_type: str = "GetMetricData",
) -> dict:
    """Invocation event in wire format."""
    event = {
        "EventType": event_type,
        "GetMetricDataRequest": {
            "StartTime": start_time,
            "EndTime": end_time,
            "Period": period,
            "Arguments": arguments,
        },
    }
    if region is not None:
        event["region"] = region
    return event


def run(coroutine):
    """Drive a coroutine from a synchronous test."""
    return asyncio.run(coroutine)


# ---------------------------------------------------------------------------
# Fake backend
# ---------------------------------------------------------------------------


Responder = Callable[[MetricDataRequest, str], list[MetricDataResult]]


class FakeBackend(MetricBackend):
    """
    In-memory MetricBackend.

    Answers through a responder callable, records (request, region) pairs,
    and can fail or delay specific regions.
    """

    def __init__(
        self,
        responder: Optional[Responder] = None,
        fail_regions: Sequence[str] = (),
        delays: Optional[dict[str, float]] = None,
    ):
        self.responder = responder or (lambda request, region: [])
        self.fail_regions = set(fail_regions)
        self.delays = delays or {}
        self.calls: list[tuple[MetricDataRequest, str]] = []
        self.completed: list[str] = []

    async def get_metric_data(
        self,
        request: MetricDataRequest,
        region: str,
    ) -> list[MetricDataResult]:
        self.calls.append((request, region))
        await asyncio.sleep(self.delays.get(region, 0))
        if region in self.fail_regions:
            raise BackendError(f"Metric backend in {region} unreachable")
        self.completed.append(region)
        return self.responder(request, region)


@pytest.fixture
def window() -> QueryWindow:
    return QueryWindow(start_time=1000, end_time=1600, period=60)


@pytest.fixture
def fake_backend() -> FakeBackend:
    return FakeBackend()


@pytest.fixture
def client(fake_backend: FakeBackend):
    """FastAPI test client wired to the fake backend."""
    from fastapi.testclient import TestClient

    from metric_connectors.backends import get_backend
    from metric_connectors.main import app

    app.dependency_overrides[get_backend] = lambda: fake_backend
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()
