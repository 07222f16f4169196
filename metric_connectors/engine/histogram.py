"""
Histogram Quantizer.

Maps a value range onto logarithmically sized buckets and converts the
backend's percentile-range statistics into per-bucket sample counts.

Binning scheme:
    - Bin width is ln(1 + EPSILON), so adjacent bins have a constant ratio of
      1.1 (about 10% relative width). Rendered on a log axis, every bar has
      the same visual width.
    - bin(v) = clamp(floor(ln|v| / BIN_SIZE), -MAX_BIN_RANGE, MAX_BIN_RANGE)
      for positive v. Negative values are mirrored into a disjoint range
      below the zero bin (NEGATIVE_ONE_BIN_OFFSET - bin), and zero has its
      own sentinel bin, so ln(0) is never evaluated.
    - The inverse maps a bin back to its edges with the sign restored.

The bucket range comes from the window's Minimum and Maximum. Minimums below
MIN_VALUE_FOR_HIST are binned as if they were at that floor, since ln of tiny
magnitudes would otherwise stretch the range across thousands of empty bins.
The bin span is then divided evenly into ``bucket_count`` steps, each rounded
to the nearest integer bin.
"""

import math
import re
from typing import Optional

import structlog

from metric_connectors.errors import ValidationError
from metric_connectors.models.timeseries import (
    Bucket,
    Metric,
    MetricDataQuery,
    MetricDataResult,
    MetricStat,
    QueryWindow,
    Timeseries,
)

logger = structlog.get_logger()

DEFAULT_BUCKET_COUNT = 100
MIN_BUCKET_COUNT = 1
MAX_BUCKET_COUNT = 500

BASIC_STATS = ("Minimum", "Maximum", "SampleCount", "Sum")
COUNT_UNIT = "Count"

ZERO_VALUE = 0.0
EPSILON = 0.1
BIN_SIZE = math.log(1 + EPSILON)
MAX_BIN_RANGE = 7000
MIN_BIN_RANGE = -MAX_BIN_RANGE
ZERO_VALUE_BIN = MIN_BIN_RANGE - 1
NEGATIVE_ONE_BIN_OFFSET = -2 * MAX_BIN_RANGE - 2
SMALLEST_BIN = NEGATIVE_ONE_BIN_OFFSET + MAX_BIN_RANGE
MIN_VALUE_FOR_HIST = 0.0001

_MILLIS_UNIT = re.compile(r"millis", re.IGNORECASE)
_SECONDS_UNIT = re.compile(r"^sec", re.IGNORECASE)


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves away from negative infinity."""
    return int(math.floor(value + 0.5))


def constrain_bin(bin_number: int) -> int:
    """Saturate a bin number to the representable range."""
    return max(MIN_BIN_RANGE, min(MAX_BIN_RANGE, bin_number))


def get_bin_number(value: float) -> int:
    """Map a value to its logarithmic bin."""
    if value == ZERO_VALUE:
        return ZERO_VALUE_BIN
    bin_number = constrain_bin(math.floor(math.log(abs(value)) / BIN_SIZE))
    return bin_number if value > ZERO_VALUE else NEGATIVE_ONE_BIN_OFFSET - bin_number


def get_value_within_bin(bin_number: int, offset: float) -> float:
    """
    Inverse of get_bin_number: the value ``offset`` of the way into a bin.

    ``offset`` is a fraction of the bin width, 0 for the lower edge of a
    positive bin.
    """
    if bin_number == ZERO_VALUE_BIN:
        return ZERO_VALUE
    sign = 1.0
    if bin_number <= SMALLEST_BIN:
        bin_number = NEGATIVE_ONE_BIN_OFFSET - bin_number
        sign = -1.0
    bin_number = constrain_bin(bin_number)
    return sign * math.exp((bin_number + offset) * BIN_SIZE)


def get_bin_top(bin_number: int) -> float:
    """Upper edge of a bin."""
    return get_value_within_bin(bin_number + 1, 0)


def to_precision(value: float, digits: int) -> str:
    """
    Format ``value`` with ``digits`` significant digits, keeping trailing zeros.

    Switches to exponent notation (``1.23e+7``) when the exponent is below -6
    or at least ``digits``.
    """
    if not math.isfinite(value):
        return str(value)
    if value == 0:
        return f"{0:.{digits - 1}f}"
    mantissa, exponent_text = f"{value:.{digits - 1}e}".split("e")
    exponent = int(exponent_text)
    if exponent < -6 or exponent >= digits:
        sign = "+" if exponent >= 0 else "-"
        return f"{mantissa}e{sign}{abs(exponent)}"
    return f"{value:.{max(digits - 1 - exponent, 0)}f}"


def label_for_value(value: float, unit: Optional[str] = None) -> str:
    """
    Human-friendly bucket label, auto-scaled for time units.

    Three significant digits are used below 1e6 (of the base unit) and six
    above, so that large values keep their precision.
    """
    unit = unit or ""
    if _MILLIS_UNIT.search(unit):
        if value < 1000:
            return f"{to_precision(value, 3)}ms"
        if value < 1_000_000:
            return f"{to_precision(value / 1000, 3)}s"
        return f"{to_precision(value / 1000, 6)}s"
    if _SECONDS_UNIT.search(unit):
        if value < 1:
            return f"{to_precision(value * 1000, 3)}ms"
        if value < 1000:
            return f"{to_precision(value, 3)}s"
        return f"{to_precision(value, 6)}s"
    return to_precision(value, 6)


def percentile_range_stat(bottom: float, top: float) -> str:
    """Backend statistic for the percentage of samples in ``[bottom, top)``."""
    return f"PR({to_precision(bottom, 6)}:{to_precision(top, 6)})"


def bucket_query_id(bin_number: int) -> str:
    """Query id for a bucket; ids may not contain '-'."""
    return f"m{bin_number}" if bin_number >= 0 else f"n{-bin_number}"


def percent_to_count(percent: float, sample_count: float) -> int:
    """Convert a 0-100 share of ``sample_count`` samples into a sample count."""
    return round_half_up(percent * sample_count / 100)


def range_period(window: QueryWindow) -> int:
    """A single period covering the whole window, rounded up to a multiple of Period."""
    time_range = window.end_time - window.start_time
    return time_range - time_range % window.period + window.period


class HistogramQuantizer:
    """
    Builds logarithmic buckets for a value range and turns percentile-range
    results into per-bucket counts.

    Attributes:
        bucket_count: Maximum number of buckets (1 to 500)

    Example:
        >>> quantizer = HistogramQuantizer(bucket_count=20)
        >>> buckets = quantizer.build_buckets(1.5, 3200.0, unit="Milliseconds")
        >>> queries = quantizer.bucket_queries(buckets, metric, period=3600)
    """

    def __init__(self, bucket_count: int = DEFAULT_BUCKET_COUNT):
        if not MIN_BUCKET_COUNT <= bucket_count <= MAX_BUCKET_COUNT:
            raise ValidationError(
                f"Bucket count ({bucket_count}) outside of valid range "
                f"({MIN_BUCKET_COUNT} to {MAX_BUCKET_COUNT})"
            )
        self.bucket_count = bucket_count
        self.logger = structlog.get_logger()

    def bin_range(self, minimum: float, maximum: float) -> tuple[int, int]:
        """Bin numbers of the range ends, with the floor applied to the minimum."""
        if minimum < MIN_VALUE_FOR_HIST:
            min_bin = get_bin_number(MIN_VALUE_FOR_HIST)
        else:
            min_bin = get_bin_number(minimum)
        max_bin = max(get_bin_number(maximum), min_bin)
        return min_bin, max_bin

    def build_buckets(
        self,
        minimum: float,
        maximum: float,
        unit: Optional[str] = None,
    ) -> list[Bucket]:
        """
        Divide ``[minimum, maximum]`` into at most ``bucket_count`` buckets.

        The first bucket starts at the raw minimum so that samples below the
        floor are still counted; each following bucket starts at the previous
        top. Steps that round onto an already used bin are skipped, so a
        narrow range yields fewer buckets rather than empty duplicates.

        Args:
            minimum: Smallest sample value in the window
            maximum: Largest sample value in the window
            unit: Unit of the metric, used for labels only

        Returns:
            Buckets ordered from lowest to highest
        """
        min_bin, max_bin = self.bin_range(minimum, maximum)
        step = (max_bin - min_bin) / self.bucket_count

        buckets: list[Bucket] = []
        bottom = minimum
        previous_bin: Optional[int] = None
        for index in range(1, self.bucket_count + 1):
            bin_number = round_half_up(min_bin + index * step)
            if bin_number == previous_bin:
                continue
            top = get_bin_top(bin_number)
            buckets.append(
                Bucket(
                    bin_number=bin_number,
                    bottom=bottom,
                    top=top,
                    label=label_for_value((bottom + top) / 2, unit),
                )
            )
            bottom = top
            previous_bin = bin_number

        self.logger.debug(
            "histogram_buckets_built",
            minimum=minimum,
            maximum=maximum,
            min_bin=min_bin,
            max_bin=max_bin,
            bucket_count=len(buckets),
        )
        return buckets

    def bucket_queries(
        self,
        buckets: list[Bucket],
        metric: Metric,
        period: int,
    ) -> list[MetricDataQuery]:
        """One percentile-range query per bucket."""
        return [
            MetricDataQuery(
                id=bucket_query_id(bucket.bin_number),
                label=bucket.label,
                metric_stat=MetricStat(
                    metric=metric,
                    stat=percentile_range_stat(bucket.bottom, bucket.top),
                    period=period,
                ),
            )
            for bucket in buckets
        ]

    def to_histogram(
        self,
        buckets: list[Bucket],
        results: list[MetricDataResult],
        sample_count: float,
    ) -> list[Timeseries]:
        """
        Convert percentile-range results to count series in bucket order.

        Results are matched to buckets by query id, not by position.
        """
        by_id = {result.id: result for result in results}
        histogram: list[Timeseries] = []
        for bucket in buckets:
            result = by_id.get(bucket_query_id(bucket.bin_number))
            if result is None:
                self.logger.warning(
                    "histogram_bucket_missing",
                    bin_number=bucket.bin_number,
                    label=bucket.label,
                )
                continue
            counted = result.model_copy(
                update={
                    "values": [
                        float(percent_to_count(percent, sample_count))
                        for percent in result.values
                    ],
                    "unit": COUNT_UNIT,
                }
            )
            histogram.append(counted.to_timeseries(label=bucket.label))
        return histogram
