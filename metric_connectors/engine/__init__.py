"""
Time-series transform engine.

Each transform is independent and pure over the shared Timeseries model:

- MovingAverageWindower: trailing N-slot average tolerating missing samples
- TimeShiftAligner: current series plus N copies shifted by a calendar duration
- HistogramQuantizer: logarithmic buckets and percentile-to-count conversion
- ThresholdFilter: keeps series whose min/max/avg/sum satisfies a predicate
"""

from metric_connectors.engine.histogram import HistogramQuantizer
from metric_connectors.engine.moving_average import MovingAverageWindower
from metric_connectors.engine.threshold_filter import ThresholdFilter, parse_filter
from metric_connectors.engine.timeshift import TimeShiftAligner, parse_iso8601_duration

__all__ = [
    "HistogramQuantizer",
    "MovingAverageWindower",
    "ThresholdFilter",
    "TimeShiftAligner",
    "parse_filter",
    "parse_iso8601_duration",
]
