"""
Base connector class.

Every connector answers the same two operations: describe (static metadata)
and compute (derived series for a query window). The base class owns the
invocation boundary: it parses the event, validates arguments against the
connector's schema before any backend call, and converts every failure into
the single ErrorResponse shape so that no exception escapes ``invoke``.
"""

from abc import ABC, abstractmethod
from typing import Any, Optional

import structlog
from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from metric_connectors.backends.base import MetricBackend
from metric_connectors.config import get_settings
from metric_connectors.errors import BackendError, ConnectorError, ValidationError
from metric_connectors.models.enums import ErrorCategory, EventType
from metric_connectors.models.invocation import (
    ArgumentDefault,
    ArgumentValue,
    ConnectorEvent,
    DescribeResponse,
    ErrorResponse,
    InvocationResult,
    MetricDataResponse,
)
from metric_connectors.models.timeseries import (
    MetricDataRequest,
    MetricDataResult,
    QueryWindow,
    Timeseries,
)

from .arguments import ArgumentSpec, validate_arguments

logger = structlog.get_logger()


def _first_error(exc: PydanticValidationError) -> str:
    error = exc.errors()[0]
    location = ".".join(str(part) for part in error.get("loc", ()))
    return f"{location}: {error.get('msg')}" if location else str(error.get("msg"))


class BaseConnector(ABC):
    """
    Abstract base class for all metric connectors.

    Subclasses declare ``name``, ``schema``, ``argument_defaults`` and
    ``description``, and implement ``parse_arguments`` and ``compute``.

    Attributes:
        backend: Metric backend used by compute (None for connectors that
            never fetch)
        region: Region used when the event does not name one
    """

    name: str = ""
    schema: list[ArgumentSpec] = []
    argument_defaults: list[ArgumentValue] = []
    description: str = ""

    def __init__(self, backend: Optional[MetricBackend] = None, region: Optional[str] = None):
        settings = get_settings()
        self.backend = backend
        self.region = region or settings.default_region
        self.connector_name = f"{settings.connector_name_prefix}-{self.name}"
        self.logger = logger.bind(connector=self.name)

    # =========================================================================
    # Operations
    # =========================================================================

    def describe(self) -> DescribeResponse:
        """Static metadata: display name, default arguments and documentation."""
        return DescribeResponse(
            connector_name=self.connector_name,
            argument_defaults=[ArgumentDefault(value=value) for value in self.argument_defaults],
            description=self.description.replace(
                "{connector_name}", self.connector_name
            ).replace("{default_arguments}", self.example_arguments()),
        )

    def example_arguments(self) -> str:
        """Default arguments rendered as they appear in an expression."""
        return ", ".join(
            f"'{value}'" if isinstance(value, str) else str(value)
            for value in self.argument_defaults
        )

    async def invoke(self, event: dict[str, Any]) -> InvocationResult:
        """
        Handle one invocation event.

        Returns:
            DescribeResponse, MetricDataResponse or ErrorResponse; never raises
        """
        try:
            return await self._dispatch(event)
        except ConnectorError as e:
            if e.category == ErrorCategory.VALIDATION:
                self.logger.warning("invocation_rejected", error=e.message)
            else:
                self.logger.error("invocation_failed", error=e.message)
            return ErrorResponse.build(e.category, e.message)
        except Exception as e:
            self.logger.error("invocation_crashed", error=str(e), exc_info=True)
            return ErrorResponse.build(ErrorCategory.INTERNAL, str(e) or e.__class__.__name__)

    async def _dispatch(self, event: dict[str, Any]) -> InvocationResult:
        try:
            parsed = ConnectorEvent.model_validate(event)
        except PydanticValidationError as e:
            raise ValidationError(f"Malformed event, {_first_error(e)}")

        if parsed.event_type == EventType.DESCRIBE_GET_METRIC_DATA.value:
            return self.describe()
        if parsed.event_type != EventType.GET_METRIC_DATA.value:
            raise ValidationError(f"Unknown EventType: {parsed.event_type}")
        if parsed.request is None:
            raise ValidationError("Missing GetMetricDataRequest")

        try:
            window = parsed.request.window()
        except PydanticValidationError as e:
            raise ValidationError(f"Invalid query window, {_first_error(e)}")

        params = self.parse_arguments(
            validate_arguments(parsed.request.arguments, self.schema)
        )
        region = parsed.region or self.region

        self.logger.info(
            "compute_started",
            start_time=window.start_time,
            end_time=window.end_time,
            period=window.period,
            region=region,
        )
        results = await self.compute(params, window, region)
        self.logger.info("compute_completed", series_count=len(results))
        return MetricDataResponse(results=results)

    # =========================================================================
    # Connector-specific behaviour
    # =========================================================================

    @abstractmethod
    def parse_arguments(self, arguments: list[Optional[ArgumentValue]]) -> BaseModel:
        """
        Turn schema-checked arguments into typed parameters.

        Must perform all remaining validation, since it runs before any fetch.

        Raises:
            ValidationError: On out-of-range or unparsable arguments
        """

    @abstractmethod
    async def compute(
        self,
        params: BaseModel,
        window: QueryWindow,
        region: str,
    ) -> list[Timeseries]:
        """Fetch raw data and apply the connector's transform."""

    # =========================================================================
    # Backend helpers
    # =========================================================================

    async def fetch(self, request: MetricDataRequest, region: str) -> list[MetricDataResult]:
        """Run a backend request; raises BackendError when no backend is configured."""
        if self.backend is None:
            raise BackendError(f"Connector {self.name} has no metric backend configured")
        return await self.backend.get_metric_data(request, region)

    async def fetch_by_id(
        self,
        request: MetricDataRequest,
        region: str,
    ) -> dict[str, MetricDataResult]:
        """
        Run a backend request and index results by query id.

        Raises:
            BackendError: If any requested id is missing from the answer
        """
        results = {result.id: result for result in await self.fetch(request, region)}
        for query in request.queries:
            if query.id not in results:
                raise BackendError(f"Metric backend returned no result for query '{query.id}'")
        return results
