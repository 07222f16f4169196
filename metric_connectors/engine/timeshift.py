"""
Time-Shift Aligner.

Produces N + 1 series from one raw series: the current series plus the same
metric shifted back by 1..N multiples of a calendar duration, each realigned
onto the forward query grid so that they can be plotted against each other.

Lookups are made by absolute instant rather than by index offset. A backend
that skips samples in the past therefore cannot desynchronize a shifted series
from the un-shifted grid: a missing historical sample only drops that one
point from the shifted series.
"""

import math
import re

import structlog

from metric_connectors.errors import ValidationError
from metric_connectors.models.timeseries import QueryWindow, Timeseries

logger = structlog.get_logger()

MIN_SHIFTS = 1
MAX_SHIFTS = 10
CURRENT_LABEL = "current"

# P[n]D[T][n]H[n]M[n[.fff]]S
_DURATION_PATTERN = re.compile(
    r"^P(?:(\d+)D)?T*(?:(\d+)H)?(?:(\d+)M)?(?:(\d+(?:\.\d{1,3})?)S)?$"
)


def parse_iso8601_duration(duration: str) -> float:
    """
    Parse a restricted ISO-8601 duration into seconds.

    Supports days, hours, minutes and seconds with up to millisecond
    precision, e.g. ``P7D``, ``PT3H``, ``P1DT3H``, ``PT1.5S``.

    Raises:
        ValidationError: If the string does not match the grammar
    """
    match = _DURATION_PATTERN.match(duration.strip())
    if match is None:
        raise ValidationError(f"Unrecognized ISO duration {duration}")
    days, hours, minutes, seconds = match.groups()
    total = ((int(days or 0) * 24 + int(hours or 0)) * 60 + int(minutes or 0)) * 60
    return total + (float(seconds) if seconds else 0.0)


def humanize_seconds(seconds: float) -> str:
    """Render elapsed seconds as e.g. ``7d``, ``1d 3h``, ``2m 30s``."""
    whole = int(math.floor(seconds))
    days, remainder = divmod(whole, 24 * 3600)
    hours, remainder = divmod(remainder, 3600)
    minutes, secs = divmod(remainder, 60)
    parts = [
        f"{amount}{suffix}"
        for amount, suffix in ((days, "d"), (hours, "h"), (minutes, "m"), (secs, "s"))
        if amount > 0
    ]
    return " ".join(parts)


class TimeShiftAligner:
    """
    Builds the current series and N historical copies of it.

    Attributes:
        shift_interval: Shift interval in seconds (> 0)
        number_of_shifts: Number of historical copies, 1 to 10

    Example:
        >>> aligner = TimeShiftAligner(parse_iso8601_duration("P1D"), 7)
        >>> series = aligner.apply(raw, window)
        >>> [s.label for s in series][:2]
        ['current', '- 1d']
    """

    def __init__(self, shift_interval: float, number_of_shifts: int):
        if shift_interval <= 0:
            raise ValidationError(
                f"Illegal shift interval of {shift_interval} seconds specified, must be > 0 seconds"
            )
        if self.offset_seconds(shift_interval) < 1:
            raise ValidationError(
                f"Illegal shift interval of {shift_interval} seconds specified, "
                "must be at least 1 second"
            )
        if not MIN_SHIFTS <= number_of_shifts <= MAX_SHIFTS:
            raise ValidationError(
                f"Number of shifts, {number_of_shifts}, must be between "
                f"{MIN_SHIFTS} and {MAX_SHIFTS} inclusive"
            )
        self.shift_interval = shift_interval
        self.number_of_shifts = number_of_shifts
        self.logger = structlog.get_logger()

    def offset(self, shift_index: int) -> int:
        """Offset in whole seconds of the ``shift_index``-th copy."""
        return self.offset_seconds(shift_index * self.shift_interval)

    @staticmethod
    def offset_seconds(seconds: float) -> int:
        return int(round(seconds))

    def fetch_start(self, window: QueryWindow) -> int:
        """Earliest instant the raw series must cover."""
        return window.start_time - self.offset(self.number_of_shifts)

    def label_for(self, shift_index: int) -> str:
        if shift_index == 0:
            return CURRENT_LABEL
        return f"- {humanize_seconds(self.offset(shift_index))}"

    def apply(self, raw: Timeseries, window: QueryWindow) -> list[Timeseries]:
        """
        Produce ``number_of_shifts + 1`` aligned series.

        Args:
            raw: Series spanning fetch_start(window) to EndTime
            window: Query window; output timestamps stay inside it

        Returns:
            Series ordered current first, then increasingly older copies
        """
        samples = raw.value_map()
        shifted: list[Timeseries] = []

        for shift_index in range(self.number_of_shifts + 1):
            offset = self.offset(shift_index)
            timestamps: list[int] = []
            values: list[float] = []
            for time in window.grid():
                value = samples.get(time - offset)
                if value is not None:
                    timestamps.append(time)
                    values.append(value)
            shifted.append(
                Timeseries(
                    label=self.label_for(shift_index),
                    timestamps=timestamps,
                    values=values,
                    unit=raw.unit,
                )
            )

        self.logger.debug(
            "timeshift_computed",
            shift_interval=self.shift_interval,
            number_of_shifts=self.number_of_shifts,
            points_per_series=[len(series) for series in shifted],
        )
        return shifted
