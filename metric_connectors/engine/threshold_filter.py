"""
Threshold Filter.

Keeps the series of a multi-series expression whose aggregate statistic
satisfies a predicate such as ``MAX > 70``.

Two rules govern series without data and must not be conflated:
    - The empty predicate (an empty or blank filter string) keeps every
      series, including zero-length ones.
    - A non-empty predicate never keeps a zero-length series, because no
      statistic can be computed for it.
"""

import operator
from typing import Callable, Optional

import structlog

from metric_connectors.errors import ValidationError
from metric_connectors.models.enums import FilterCondition, FilterStat
from metric_connectors.models.timeseries import FilterPredicate, Timeseries

logger = structlog.get_logger()

_COMPARATORS: dict[FilterCondition, Callable[[float, float], bool]] = {
    FilterCondition.GT: operator.gt,
    FilterCondition.GTE: operator.ge,
    FilterCondition.LT: operator.lt,
    FilterCondition.LTE: operator.le,
    FilterCondition.EQ: operator.eq,
    FilterCondition.NE: operator.ne,
}


def parse_filter(filter_string: str) -> FilterPredicate:
    """
    Parse ``'<stat> <condition> <value>'`` or an empty string.

    Raises:
        ValidationError: On any other shape, an unknown stat or condition,
            or a non-numeric value
    """
    parts = filter_string.split()
    if not parts:
        return FilterPredicate()
    if len(parts) != 3:
        raise ValidationError(
            f"Filter syntax error, '{filter_string}' does not follow format "
            "'<stat> <condition> <value>' or empty, ''"
        )

    stat_text, condition_text, value_text = parts
    try:
        stat = FilterStat(stat_text)
    except ValueError:
        raise ValidationError(f"Unrecognised stat, '{stat_text}' in filter") from None
    try:
        condition = FilterCondition(condition_text)
    except ValueError:
        raise ValidationError(f"Unrecognised condition, '{condition_text}' in filter") from None
    try:
        threshold = float(value_text)
    except ValueError:
        raise ValidationError(f"Unrecognised value, '{value_text}' in filter") from None

    return FilterPredicate(stat=stat, condition=condition, threshold=threshold)


def compute_stats(values: list[float]) -> Optional[dict[FilterStat, float]]:
    """Min, max, sum and average in one pass; None for an empty series."""
    if not values:
        return None
    minimum = maximum = total = values[0]
    for value in values[1:]:
        total += value
        if value < minimum:
            minimum = value
        if value > maximum:
            maximum = value
    return {
        FilterStat.MIN: minimum,
        FilterStat.MAX: maximum,
        FilterStat.SUM: total,
        FilterStat.AVG: total / len(values),
    }


class ThresholdFilter:
    """
    Applies a FilterPredicate to a list of series.

    Example:
        >>> kept = ThresholdFilter(parse_filter("MAX > 70")).apply(series)
    """

    def __init__(self, predicate: FilterPredicate):
        self.predicate = predicate
        self.logger = structlog.get_logger()

    def matches(self, values: list[float]) -> bool:
        """True when a series with these values should be kept."""
        if self.predicate.is_empty:
            return True
        stats = compute_stats(values)
        if stats is None:
            return False
        compare = _COMPARATORS[self.predicate.condition]
        return compare(stats[self.predicate.stat], self.predicate.threshold)

    def apply(self, series: list[Timeseries]) -> list[Timeseries]:
        """Keep matching series, preserving their order."""
        kept = [candidate for candidate in series if self.matches(candidate.values)]
        self.logger.debug(
            "threshold_filter_applied",
            predicate_empty=self.predicate.is_empty,
            candidates=len(series),
            kept=len(kept),
        )
        return kept
