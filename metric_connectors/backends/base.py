"""
Abstract metric backend interface.

Connectors depend only on this contract so that the HTTP client can be
swapped for another backend, or for a fake in tests, without touching the
transform code.
"""

from abc import ABC, abstractmethod

from metric_connectors.models.timeseries import MetricDataRequest, MetricDataResult


class MetricBackend(ABC):
    """
    Source of raw metric samples.

    Implementations must:
    - Return one result per query, carrying the query's id
    - Convert absolute timestamps to epoch seconds
    - Raise BackendError for any transport or backend failure
    - Not retry; the console owns retry policy
    """

    @abstractmethod
    async def get_metric_data(
        self,
        request: MetricDataRequest,
        region: str,
    ) -> list[MetricDataResult]:
        """
        Run a batch of queries against one region.

        Args:
            request: Queries and absolute time range
            region: Region identifier the data is read from

        Returns:
            One result per query, in any order

        Raises:
            BackendError: If the backend cannot answer
        """
