"""
Property-based tests using Hypothesis for the transform engine.

These tests check the invariants of each transform over generated inputs:
window containment, brute-force equivalence of the moving average, bucket
contiguity of the histogram and the bounds of the filter statistics.
"""

import hypothesis.strategies as st
from hypothesis import given, settings

from metric_connectors.engine.histogram import (
    HistogramQuantizer,
    bucket_query_id,
    percent_to_count,
)
from metric_connectors.engine.moving_average import MovingAverageWindower
from metric_connectors.engine.threshold_filter import ThresholdFilter, compute_stats
from metric_connectors.engine.timeshift import TimeShiftAligner, parse_iso8601_duration
from metric_connectors.models.enums import FilterStat
from metric_connectors.models.timeseries import FilterPredicate, QueryWindow
from tests.conftest import make_series

PERIOD = 60
WINDOW = QueryWindow(start_time=6000, end_time=9000, period=PERIOD)

# Whole numbers keep sums exact, so averages can be compared with ==.
sample = st.one_of(st.none(), st.integers(min_value=-1000, max_value=1000).map(float))


# =============================================================================
# Moving-average properties
# =============================================================================


@given(
    datapoints=st.integers(min_value=2, max_value=12),
    values=st.lists(sample, min_size=0, max_size=80),
)
@settings(max_examples=100)
def test_prop_moving_average_matches_brute_force(datapoints: int, values: list):
    """
    Invariant: every emitted point is the mean of the samples present in the
    N slots ending at it, and a point is emitted iff at least one is present.
    """
    windower = MovingAverageWindower(datapoints)
    start = windower.lookback_start(WINDOW)
    raw = make_series(start, PERIOD, values)
    samples = raw.value_map()

    averaged = windower.apply(raw, WINDOW)

    expected = {}
    for time in WINDOW.grid():
        present = [
            samples[time - slot * PERIOD]
            for slot in range(datapoints)
            if time - slot * PERIOD in samples
        ]
        if present:
            expected[time] = sum(present) / len(present)

    assert averaged.timestamps == sorted(expected)
    for time, value in zip(averaged.timestamps, averaged.values):
        assert value == expected[time]


# =============================================================================
# Time-shift properties
# =============================================================================


@given(
    shift_slots=st.integers(min_value=1, max_value=40),
    number_of_shifts=st.integers(min_value=1, max_value=10),
    values=st.lists(sample, min_size=0, max_size=200),
)
@settings(max_examples=100)
def test_prop_timeshift_stays_in_window(shift_slots: int, number_of_shifts: int, values: list):
    """
    Invariant: N + 1 series, each inside the window, each point equal to the
    raw sample exactly one offset earlier.
    """
    aligner = TimeShiftAligner(shift_slots * PERIOD, number_of_shifts)
    raw = make_series(aligner.fetch_start(WINDOW), PERIOD, values)
    samples = raw.value_map()

    shifted = aligner.apply(raw, WINDOW)

    assert len(shifted) == number_of_shifts + 1
    for index, series in enumerate(shifted):
        offset = aligner.offset(index)
        for time, value in zip(series.timestamps, series.values):
            assert WINDOW.contains(time)
            assert samples[time - offset] == value


@given(
    days=st.integers(min_value=0, max_value=400),
    hours=st.integers(min_value=0, max_value=48),
    minutes=st.integers(min_value=0, max_value=120),
    seconds=st.integers(min_value=0, max_value=120),
)
@settings(max_examples=100)
def test_prop_duration_components_add_up(days: int, hours: int, minutes: int, seconds: int):
    """Invariant: a full duration equals the sum of its parts in seconds."""
    text = f"P{days}DT{hours}H{minutes}M{seconds}S"
    assert parse_iso8601_duration(text) == ((days * 24 + hours) * 60 + minutes) * 60 + seconds


# =============================================================================
# Histogram properties
# =============================================================================


@given(
    bounds=st.tuples(
        st.floats(min_value=0.0, max_value=1e6, allow_nan=False, allow_infinity=False),
        st.floats(min_value=0.0, max_value=1e6, allow_nan=False, allow_infinity=False),
    ),
    bucket_count=st.integers(min_value=1, max_value=500),
)
@settings(max_examples=100)
def test_prop_histogram_buckets_cover_range(bounds: tuple, bucket_count: int):
    """
    Invariant: 1..bucket_count contiguous buckets with strictly increasing
    bins and unique query ids, starting at the minimum and reaching the maximum.
    """
    minimum, maximum = sorted(bounds)
    buckets = HistogramQuantizer(bucket_count).build_buckets(minimum, maximum)

    assert 1 <= len(buckets) <= bucket_count
    assert buckets[0].bottom == minimum
    assert buckets[-1].top >= maximum * (1 - 1e-12)
    for lower, upper in zip(buckets, buckets[1:]):
        assert lower.top == upper.bottom
        assert lower.bin_number < upper.bin_number
    assert len({bucket_query_id(bucket.bin_number) for bucket in buckets}) == len(buckets)


@given(
    percent=st.floats(min_value=0.0, max_value=100.0, allow_nan=False),
    sample_count=st.integers(min_value=0, max_value=10**9),
)
@settings(max_examples=100)
def test_prop_percent_to_count_bounds(percent: float, sample_count: int):
    """Invariant: a share of N samples converts to a count in [0, N]."""
    assert 0 <= percent_to_count(percent, sample_count) <= sample_count


# =============================================================================
# Threshold filter properties
# =============================================================================


@given(values=st.lists(st.integers(min_value=-10**6, max_value=10**6).map(float), min_size=1))
@settings(max_examples=100)
def test_prop_filter_stats_ordered(values: list):
    """Invariant: MIN <= AVG <= MAX and SUM equals the plain sum."""
    stats = compute_stats(values)
    assert stats[FilterStat.MIN] <= stats[FilterStat.AVG] <= stats[FilterStat.MAX]
    assert stats[FilterStat.SUM] == sum(values)


@given(
    series_values=st.lists(
        st.lists(st.integers(min_value=-100, max_value=100).map(float), max_size=5),
        max_size=8,
    )
)
@settings(max_examples=100)
def test_prop_empty_predicate_keeps_every_series(series_values: list):
    """Invariant: the empty predicate is the identity filter."""
    series = [make_series(0, PERIOD, values, label=str(i)) for i, values in enumerate(series_values)]
    kept = ThresholdFilter(FilterPredicate()).apply(series)
    assert [s.label for s in kept] == [s.label for s in series]
