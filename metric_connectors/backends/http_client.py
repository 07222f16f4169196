"""
HTTP metric backend client.

Talks JSON to a metric backend over httpx. A request is a single POST of the
query batch to ``<base_url>/metric-data``; the base URL is resolved per
region from the configured URL template. Timestamps in the response may be
ISO-8601 strings or epoch numbers and are normalized on parse.

No retries are attempted: a failed call fails the invocation and the console
decides whether to retry.
"""

from typing import Any, Optional

import httpx
import structlog
from pydantic import ValidationError as PydanticValidationError

from metric_connectors.backends.base import MetricBackend
from metric_connectors.errors import BackendError
from metric_connectors.models.timeseries import MetricDataRequest, MetricDataResult

logger = structlog.get_logger()

METRIC_DATA_PATH = "/metric-data"


class HttpMetricBackend(MetricBackend):
    """
    httpx-based metric backend.

    Attributes:
        url_template: Base URL, '{region}' is substituted per call
        timeout: Per-request timeout in seconds
        api_key: Optional bearer token

    Example:
        >>> backend = HttpMetricBackend("https://metrics.{region}.example.com")
        >>> results = await backend.get_metric_data(request, region="eu-west-1")
    """

    def __init__(
        self,
        url_template: str,
        timeout: float = 30.0,
        api_key: str = "",
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize the client.

        Args:
            url_template: Base URL template
            timeout: Request timeout in seconds
            api_key: Bearer token sent with every call when non-empty
            transport: Optional httpx transport (used to inject a MockTransport)
        """
        self.url_template = url_template
        self.timeout = timeout
        self.api_key = api_key
        self._transport = transport

        logger.info(
            "http_metric_backend_initialized",
            url_template=url_template,
            timeout=timeout,
            has_api_key=bool(api_key),
        )

    def base_url(self, region: str) -> str:
        return self.url_template.replace("{region}", region).rstrip("/")

    def _headers(self) -> dict[str, str]:
        headers = {"Accept": "application/json", "Content-Type": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        return headers

    async def get_metric_data(
        self,
        request: MetricDataRequest,
        region: str,
    ) -> list[MetricDataResult]:
        """
        POST the query batch and parse the results.

        Raises:
            BackendError: On transport errors, non-2xx answers or malformed bodies
        """
        url = f"{self.base_url(region)}{METRIC_DATA_PATH}"
        query_ids = [query.id for query in request.queries]

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.post(url, json=request.to_wire(), headers=self._headers())
                response.raise_for_status()
                payload = response.json()
        except httpx.HTTPStatusError as e:
            logger.error(
                "metric_backend_request_failed",
                region=region,
                status_code=e.response.status_code,
                error=e.response.text,
            )
            raise BackendError(
                f"Metric backend in {region} answered {e.response.status_code}: {e.response.text}"
            )
        except (httpx.HTTPError, ValueError) as e:
            logger.error("metric_backend_request_error", region=region, error=str(e))
            raise BackendError(f"Metric backend in {region} unreachable: {e}")

        results = self._parse_results(payload, region)

        logger.debug(
            "metric_backend_request_success",
            region=region,
            query_ids=query_ids,
            result_count=len(results),
        )
        return results

    @staticmethod
    def _parse_results(payload: Any, region: str) -> list[MetricDataResult]:
        if not isinstance(payload, dict) or not isinstance(payload.get("MetricDataResults"), list):
            raise BackendError(f"Malformed metric backend response from {region}")
        try:
            return [MetricDataResult.model_validate(item) for item in payload["MetricDataResults"]]
        except PydanticValidationError as e:
            raise BackendError(f"Malformed metric data result from {region}: {e}")
