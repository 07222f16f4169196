"""
Moving-Average Windower.

Produces a trailing-window average series from a raw, possibly sparse series.
Each output point is the mean of the samples present in the last N grid slots
ending at that point; missing slots are ignored rather than counted as zero.

Algorithm:
    1. Walk the grid from the earliest usable anchor up to EndTime
    2. Push each slot (value or gap) into a deque, update count and sum
    3. Once the deque holds more than N slots, evict the oldest slot
    4. From StartTime on, emit sum / count whenever count > 0

The anchor is the earliest timestamp the backend actually returned for the
lookback range. Starting the walk from the theoretical
``StartTime - (N - 1) * Period`` would treat history the backend never had as
real gaps.
"""

from collections import deque
from typing import Optional

import structlog

from metric_connectors.errors import ValidationError
from metric_connectors.models.timeseries import QueryWindow, Timeseries

logger = structlog.get_logger()

MIN_DATAPOINTS = 2
MAX_DATAPOINTS = 10_000


class MovingAverageWindower:
    """
    Trailing N-slot moving average with gap tolerance.

    Attributes:
        datapoints: Window length N in grid slots, 2 to 10000

    Example:
        >>> windower = MovingAverageWindower(datapoints=10)
        >>> window = QueryWindow(start_time=1000, end_time=1600, period=60)
        >>> averaged = windower.apply(raw, window, earliest=window.start_time - 540)
    """

    def __init__(self, datapoints: int):
        if datapoints < MIN_DATAPOINTS:
            raise ValidationError(
                f"Number of datapoints, {datapoints}, must be greater than {MIN_DATAPOINTS - 1}"
            )
        if datapoints > MAX_DATAPOINTS:
            raise ValidationError(
                f"Number of datapoints, {datapoints}, must not exceed {MAX_DATAPOINTS}"
            )
        self.datapoints = datapoints
        self.logger = structlog.get_logger()

    def lookback_start(self, window: QueryWindow) -> int:
        """Theoretical first slot needed to fill the window at StartTime."""
        return window.start_time - (self.datapoints - 1) * window.period

    def resolve_anchor(self, window: QueryWindow, earliest: Optional[int]) -> int:
        """
        Snap the backend's earliest timestamp onto the StartTime grid.

        Never earlier than the theoretical lookback start; None falls back to it.
        """
        theoretical = self.lookback_start(window)
        if earliest is None or earliest <= theoretical:
            return theoretical
        slots = -(-(earliest - theoretical) // window.period)
        return theoretical + slots * window.period

    def apply(
        self,
        raw: Timeseries,
        window: QueryWindow,
        earliest: Optional[int] = None,
    ) -> Timeseries:
        """
        Compute the moving average of ``raw`` over ``window``.

        Args:
            raw: Raw series covering the lookback range and the window
            window: Query window; only points inside it are emitted
            earliest: Earliest timestamp the backend returned (see resolve_anchor)

        Returns:
            Averaged series; timestamps whose window holds no sample are omitted
        """
        start = self.resolve_anchor(window, earliest)
        samples = raw.value_map()

        slots: deque[Optional[float]] = deque()
        sample_count = 0
        sample_sum = 0.0
        timestamps: list[int] = []
        values: list[float] = []

        for time in window.grid(start):
            value = samples.get(time)
            slots.append(value)
            if value is not None:
                sample_count += 1
                sample_sum += value

            if len(slots) > self.datapoints:
                evicted = slots.popleft()
                if evicted is not None:
                    sample_count -= 1
                    sample_sum -= evicted
                    if sample_count == 0:
                        sample_sum = 0.0

            if time >= window.start_time and sample_count > 0:
                timestamps.append(time)
                values.append(sample_sum / sample_count)

        self.logger.debug(
            "moving_average_computed",
            datapoints=self.datapoints,
            anchor=start,
            raw_points=len(raw),
            output_points=len(timestamps),
        )

        return Timeseries(label=raw.label, timestamps=timestamps, values=values, unit=raw.unit)
