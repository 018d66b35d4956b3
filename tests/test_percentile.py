import pytest

from flow_app.analytics.metrics.percentile import (
    exceedance_index,
    exceedance_percentile,
    level_label,
    nearest_rank_index,
    percentile,
    percentile_summary,
)


def test_nearest_rank_known_values():
    values = list(range(1, 11))
    assert percentile(values, 0.50) == 5
    assert percentile(values, 0.85) == 9
    assert percentile(values, 0.95) == 10
    assert percentile(values, 1.0) == 10


def test_percentile_single_element():
    assert percentile([7.5], 0.5) == 7.5
    assert percentile([7.5], 0.95) == 7.5


def test_percentile_empty_returns_zero():
    assert percentile([], 0.85) == 0.0


def test_percentile_rejects_out_of_range_probability():
    with pytest.raises(ValueError):
        percentile([1, 2, 3], 0)
    with pytest.raises(ValueError):
        percentile([1, 2, 3], 1.5)


def test_percentile_is_monotonic_in_p():
    values = sorted([3, 9, 1, 4, 4, 12, 8, 2, 7, 5, 6, 11])
    readings = [percentile(values, p) for p in (0.1, 0.25, 0.5, 0.75, 0.85, 0.95)]
    assert readings == sorted(readings)


def test_result_is_member_of_sample():
    values = [0.5, 1.25, 3.0, 8.75]
    for p in (0.01, 0.3, 0.5, 0.99):
        assert percentile(values, p) in values


def test_exceedance_reads_opposite_end():
    n = 1000
    assert nearest_rank_index(n, 0.85) == 849
    assert exceedance_index(n, 0.85) == 150
    assert exceedance_index(n, 0.95) < exceedance_index(n, 0.50)
    values = list(range(n))
    assert exceedance_percentile(values, 0.95) <= exceedance_percentile(values, 0.50)


def test_level_label():
    assert level_label(0.5) == "p50"
    assert level_label(0.85) == "p85"


def test_percentile_summary_flags_empty_sample():
    empty = percentile_summary([])
    assert empty.insufficient_data
    assert empty.get("p85") == 0.0

    summary = percentile_summary([4, 1, 3, 2])
    assert not summary.insufficient_data
    assert summary.sample_size == 4
    assert summary.get("p50") == 2
