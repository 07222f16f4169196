"""
Unit tests for the HTTP metric backend.

Requests are answered by an httpx.MockTransport, so no network is involved.
"""

import json

import httpx
import pytest

from metric_connectors.backends import HttpMetricBackend, get_backend
from metric_connectors.errors import BackendError
from metric_connectors.models.enums import ErrorCategory
from metric_connectors.models.timeseries import (
    Metric,
    MetricDataQuery,
    MetricDataRequest,
    MetricStat,
)
from tests.conftest import run


@pytest.fixture
def request_batch() -> MetricDataRequest:
    return MetricDataRequest(
        queries=[
            MetricDataQuery(
                id="m1",
                metric_stat=MetricStat(
                    metric=Metric(namespace="AWS/Lambda", metric_name="Duration"),
                    stat="Average",
                    period=60,
                ),
            ),
            MetricDataQuery(id="timer", expression="TIME_SERIES(10)", period=60),
        ],
        start_time=1000,
        end_time=1600,
    )


def backend_with(handler, api_key: str = "") -> HttpMetricBackend:
    return HttpMetricBackend(
        "http://metrics.test/{region}/",
        api_key=api_key,
        transport=httpx.MockTransport(handler),
    )


class TestHttpMetricBackend:
    """Test HttpMetricBackend request building and error mapping."""

    def test_posts_batch_and_parses_results(self, request_batch):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["url"] = str(request.url)
            seen["body"] = json.loads(request.content)
            seen["authorization"] = request.headers.get("Authorization")
            return httpx.Response(
                200,
                json={
                    "MetricDataResults": [
                        {
                            "Id": "m1",
                            "Label": "Duration",
                            "Timestamps": ["1970-01-01T00:17:40Z", 1000],
                            "Values": [2.0, 1.0],
                        },
                        {"Id": "timer", "Timestamps": [], "Values": []},
                    ]
                },
            )

        results = run(backend_with(handler, api_key="secret").get_metric_data(request_batch, "eu-west-1"))

        assert seen["url"] == "http://metrics.test/eu-west-1/metric-data"
        assert seen["authorization"] == "Bearer secret"
        assert seen["body"]["StartTime"] == "1970-01-01T00:16:40+00:00"
        assert seen["body"]["EndTime"] == "1970-01-01T00:26:40+00:00"
        assert [query["Id"] for query in seen["body"]["MetricDataQueries"]] == ["m1", "timer"]
        assert seen["body"]["MetricDataQueries"][0]["MetricStat"]["Metric"]["MetricName"] == "Duration"
        assert seen["body"]["MetricDataQueries"][1]["Expression"] == "TIME_SERIES(10)"

        assert [result.id for result in results] == ["m1", "timer"]
        series = results[0].to_timeseries()
        assert series.timestamps == [1000, 1060]
        assert series.values == [1.0, 2.0]

    def test_no_authorization_header_without_key(self, request_batch):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["authorization"] = request.headers.get("Authorization")
            return httpx.Response(200, json={"MetricDataResults": []})

        assert run(backend_with(handler).get_metric_data(request_batch, "us-east-1")) == []
        assert seen["authorization"] is None

    def test_error_status_raises_backend_error(self, request_batch):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(500, text="throttled")

        with pytest.raises(BackendError, match="answered 500") as exc_info:
            run(backend_with(handler).get_metric_data(request_batch, "us-east-1"))
        assert exc_info.value.category == ErrorCategory.INTERNAL

    def test_transport_error_raises_backend_error(self, request_batch):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        with pytest.raises(BackendError, match="unreachable"):
            run(backend_with(handler).get_metric_data(request_batch, "us-east-1"))

    def test_invalid_json_raises_backend_error(self, request_batch):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, content=b"<html>")

        with pytest.raises(BackendError):
            run(backend_with(handler).get_metric_data(request_batch, "us-east-1"))

    @pytest.mark.parametrize(
        "payload",
        [
            {"Results": []},
            {"MetricDataResults": [{"Id": "m1", "Timestamps": [1, 2], "Values": [1.0]}]},
        ],
    )
    def test_malformed_body_raises_backend_error(self, request_batch, payload):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json=payload)

        with pytest.raises(BackendError, match="Malformed"):
            run(backend_with(handler).get_metric_data(request_batch, "us-east-1"))

    def test_base_url_substitutes_region(self):
        backend = HttpMetricBackend("https://metrics.{region}.example.com/")
        assert backend.base_url("ap-south-1") == "https://metrics.ap-south-1.example.com"


def test_get_backend_is_cached_http_backend():
    backend = get_backend()
    assert isinstance(backend, HttpMetricBackend)
    assert get_backend() is backend
