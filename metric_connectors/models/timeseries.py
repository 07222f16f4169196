"""
Time series data models shared by all connectors.

This module defines the canonical series representation returned to the
console, the query window every invocation carries, and the request/result
shapes exchanged with the metric backend. Field aliases follow the PascalCase
wire format of the invocation protocol; Python code uses the snake_case names.
"""

from datetime import datetime, timezone
from typing import Any, Iterator, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from .enums import FilterCondition, FilterStat, SeriesStatus


def to_epoch_seconds(value: Any) -> int:
    """
    Convert an absolute time value to integer epoch seconds.

    Accepts datetimes, ISO-8601 strings (a trailing 'Z' is allowed) and
    numbers. Naive datetimes are taken as UTC. Fractional seconds are rounded
    so that map keys never suffer from float precision.
    """
    if isinstance(value, datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return int(round(value.timestamp()))
    if isinstance(value, str):
        text = value.strip()
        try:
            return int(round(float(text)))
        except ValueError:
            pass
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        return to_epoch_seconds(datetime.fromisoformat(text))
    if isinstance(value, bool):
        raise ValueError(f"Unsupported timestamp value: {value!r}")
    if isinstance(value, (int, float)):
        return int(round(value))
    raise ValueError(f"Unsupported timestamp value: {value!r}")


class Timeseries(BaseModel):
    """
    A discretely sampled series on an implicit fixed step.

    Gaps in ``timestamps`` mean "no sample", never zero. The engine always
    reports the series as complete for the portion it computed.

    Attributes:
        label: Display label
        timestamps: Strictly increasing epoch seconds
        values: Sample values, index-aligned with timestamps
        status: Completion indicator
        unit: Optional unit string (e.g. "Count")
    """

    model_config = ConfigDict(populate_by_name=True)

    label: str = Field(default="", alias="Label")
    timestamps: list[int] = Field(default_factory=list, alias="Timestamps")
    values: list[float] = Field(default_factory=list, alias="Values")
    status: SeriesStatus = Field(default=SeriesStatus.COMPLETE, alias="StatusCode")
    unit: Optional[str] = Field(default=None, alias="Unit")

    @model_validator(mode="after")
    def validate_alignment(self) -> "Timeseries":
        """Ensure timestamps and values are parallel and timestamps ascend."""
        if len(self.timestamps) != len(self.values):
            raise ValueError(
                f"timestamps ({len(self.timestamps)}) and values ({len(self.values)}) "
                "must have the same length"
            )
        for previous, current in zip(self.timestamps, self.timestamps[1:]):
            if current <= previous:
                raise ValueError("timestamps must be strictly increasing")
        return self

    def __len__(self) -> int:
        return len(self.timestamps)

    def value_map(self) -> dict[int, float]:
        """Build a timestamp -> value mapping. Later duplicates win."""
        return {int(ts): value for ts, value in zip(self.timestamps, self.values)}

    def value_at(self, timestamp: int) -> Optional[float]:
        """Return the value recorded at exactly ``timestamp`` or None for a gap."""
        return self.value_map().get(int(timestamp))

    def to_wire(self) -> dict[str, Any]:
        """Serialize using protocol field names, omitting an unset unit."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class QueryWindow(BaseModel):
    """
    Half-open query window ``[start_time, end_time)`` sampled every ``period`` seconds.
    """

    start_time: int = Field(description="Inclusive start, epoch seconds")
    end_time: int = Field(description="Exclusive end, epoch seconds")
    period: int = Field(gt=0, description="Sampling period in seconds")

    @model_validator(mode="after")
    def validate_order(self) -> "QueryWindow":
        """Ensure the window is not empty."""
        if self.end_time <= self.start_time:
            raise ValueError("end_time must be greater than start_time")
        return self

    def grid(self, start: Optional[int] = None) -> Iterator[int]:
        """Yield grid timestamps from ``start`` (default start_time) up to end_time."""
        first = self.start_time if start is None else start
        return iter(range(first, self.end_time, self.period))

    def contains(self, timestamp: int) -> bool:
        """True when ``timestamp`` falls inside the half-open window."""
        return self.start_time <= timestamp < self.end_time


class Dimension(BaseModel):
    """A name/value dimension pair identifying a metric."""

    model_config = ConfigDict(populate_by_name=True)

    name: str = Field(alias="Name")
    value: str = Field(alias="Value")


class Metric(BaseModel):
    """A fully-qualified backend metric."""

    model_config = ConfigDict(populate_by_name=True)

    namespace: str = Field(alias="Namespace")
    metric_name: str = Field(alias="MetricName")
    dimensions: list[Dimension] = Field(default_factory=list, alias="Dimensions")


class MetricStat(BaseModel):
    """A metric plus the statistic and period to retrieve it with."""

    model_config = ConfigDict(populate_by_name=True)

    metric: Metric = Field(alias="Metric")
    stat: str = Field(alias="Stat")
    period: int = Field(gt=0, alias="Period")


class MetricDataQuery(BaseModel):
    """
    One query in a backend request: either a metric stat or an expression.
    """

    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(alias="Id")
    metric_stat: Optional[MetricStat] = Field(default=None, alias="MetricStat")
    expression: Optional[str] = Field(default=None, alias="Expression")
    period: Optional[int] = Field(default=None, alias="Period")
    label: Optional[str] = Field(default=None, alias="Label")

    @model_validator(mode="after")
    def validate_exactly_one_source(self) -> "MetricDataQuery":
        """A query is either a MetricStat or an Expression."""
        if (self.metric_stat is None) == (self.expression is None):
            raise ValueError("exactly one of metric_stat or expression must be set")
        return self


class MetricDataRequest(BaseModel):
    """A batch of queries over one absolute time range."""

    queries: list[MetricDataQuery]
    start_time: int
    end_time: int

    def to_wire(self) -> dict[str, Any]:
        """Serialize with ISO-8601 times, the format the backend expects."""
        return {
            "StartTime": datetime.fromtimestamp(self.start_time, tz=timezone.utc).isoformat(),
            "EndTime": datetime.fromtimestamp(self.end_time, tz=timezone.utc).isoformat(),
            "MetricDataQueries": [
                q.model_dump(mode="json", by_alias=True, exclude_none=True) for q in self.queries
            ],
        }


class MetricDataResult(BaseModel):
    """
    One backend result, matched back to its query by ``id``.

    Timestamps may arrive in any order and as absolute time values; they are
    normalized to epoch seconds on parse.
    """

    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(alias="Id")
    label: str = Field(default="", alias="Label")
    timestamps: list[int] = Field(default_factory=list, alias="Timestamps")
    values: list[float] = Field(default_factory=list, alias="Values")
    unit: Optional[str] = Field(default=None, alias="Unit")

    @field_validator("timestamps", mode="before")
    @classmethod
    def convert_timestamps(cls, v: Any) -> list[int]:
        """Normalize absolute time values to epoch seconds."""
        return [to_epoch_seconds(ts) for ts in (v or [])]

    @model_validator(mode="after")
    def validate_alignment(self) -> "MetricDataResult":
        """Timestamps and values must be parallel."""
        if len(self.timestamps) != len(self.values):
            raise ValueError("timestamps and values must have the same length")
        return self

    def to_timeseries(self, label: Optional[str] = None) -> Timeseries:
        """Convert to an ascending Timeseries, keeping the last value per timestamp."""
        points = dict(zip(self.timestamps, self.values))
        ordered = sorted(points)
        return Timeseries(
            label=self.label if label is None else label,
            timestamps=ordered,
            values=[points[ts] for ts in ordered],
            unit=self.unit,
        )


class Bucket(BaseModel):
    """A histogram bucket covering ``[bottom, top)``."""

    bin_number: int
    bottom: float
    top: float
    label: str

    @property
    def middle(self) -> float:
        return (self.bottom + self.top) / 2


class FilterPredicate(BaseModel):
    """
    Threshold filter predicate. ``stat`` of None is the empty predicate,
    which matches every series.
    """

    stat: Optional[FilterStat] = None
    condition: Optional[FilterCondition] = None
    threshold: Optional[float] = None

    @model_validator(mode="after")
    def validate_complete(self) -> "FilterPredicate":
        """A non-empty predicate needs all three parts."""
        if self.stat is not None and (self.condition is None or self.threshold is None):
            raise ValueError("condition and threshold are required when stat is set")
        return self

    @property
    def is_empty(self) -> bool:
        return self.stat is None
