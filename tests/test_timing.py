"""Tests for overlaycue.timing."""

import math

import pytest

from overlaycue.timing import (
    UNBOUNDED,
    OffsetBound,
    OffsetKind,
    clamp_range,
    compute_window,
    duration,
    is_valid_time_range,
    is_within,
    overlaps,
    parse_offset,
    parse_offset_bound,
    progress,
    snap_to_frame,
    union,
    validate_time_range,
)


class TestIsWithin:
    def test_inclusive_bounds(self):
        assert is_within(2, (2, 5))
        assert is_within(5, (2, 5))
        assert not is_within(5.01, (2, 5))

    def test_unbounded_range(self):
        assert is_within(1e9, UNBOUNDED)

    def test_nan_never_matches(self):
        assert not is_within(math.nan, (0, 10))
        assert not is_within(1, (math.nan, 10))

    def test_malformed_range(self):
        assert not is_within(1, [0])
        assert not is_within(1, "0-10")


class TestProgress:
    def test_midpoint(self):
        assert progress(3.5, (2, 5)) == pytest.approx(0.5)

    def test_clamped(self):
        assert progress(0, (2, 5)) == 0.0
        assert progress(10, (2, 5)) == 1.0

    def test_zero_length_range(self):
        assert progress(2, (2, 2)) == 0.0

    def test_unbounded_range(self):
        assert progress(3, UNBOUNDED) == 0.0

    def test_malformed_range(self):
        assert progress(3, None) == 0.0

    @pytest.mark.parametrize("t", [-100, 0, 1.5, 2.5, 3, 99])
    def test_always_in_unit_interval(self, t):
        assert 0.0 <= progress(t, (1, 3)) <= 1.0

    @pytest.mark.parametrize("start, end", [(0, 1), (2, 5), (-3, 0.5), (1.1, 1.3), (100, 10000)])
    def test_endpoints(self, start, end):
        assert progress(start, (start, end)) == 0.0
        assert progress(end, (start, end)) == 1.0

    def test_non_decreasing_over_sorted_times(self):
        times = sorted([-5, 0.99, 1, 1.25, 1.5, 1.5, 2, 2.75, 3, 3.01, 50])
        values = [progress(t, (1, 3)) for t in times]
        assert values == sorted(values)
        assert values[0] == 0.0
        assert values[-1] == 1.0


class TestRangeHelpers:
    def test_duration(self):
        assert duration((2, 5)) == 3
        assert duration((5, 2)) == 0.0

    def test_overlaps(self):
        assert overlaps((0, 2), (2, 4))
        assert not overlaps((0, 1), (2, 4))

    def test_union_skips_unbounded(self):
        assert union([(1, 2), UNBOUNDED, (4, 6)]) == (1, 6)

    def test_union_of_nothing(self):
        assert union([]) is None

    def test_clamp_range(self):
        assert clamp_range((-1, 12), 0, 10) == (0, 10)


class TestValidateTimeRange:
    def test_valid(self):
        validate_time_range([0, 1])
        validate_time_range((0, math.inf))

    def test_start_after_end(self):
        with pytest.raises(ValueError, match="must not be greater than end"):
            validate_time_range([5, 2])

    def test_wrong_length(self):
        with pytest.raises(ValueError, match="exactly 2 elements"):
            validate_time_range([1, 2, 3])

    def test_non_numeric(self):
        with pytest.raises(ValueError, match="start must be a number"):
            validate_time_range(["a", 2])

    def test_bool_is_not_a_number(self):
        assert not is_valid_time_range([True, 2])


class TestParseOffset:
    def test_percent_string(self):
        bound = parse_offset_bound("50%")
        assert bound == OffsetBound(kind=OffsetKind.FRACTION, value=0.5)

    def test_bare_number_is_fraction(self):
        assert parse_offset_bound(0.25).kind == OffsetKind.FRACTION

    def test_tagged_seconds(self):
        bound = parse_offset_bound({"seconds": 1.5})
        assert bound.kind == OffsetKind.SECONDS
        assert bound.value == 1.5

    def test_bad_percent_string(self):
        with pytest.raises(ValueError, match="percentage string"):
            parse_offset_bound("half")

    @pytest.mark.parametrize("raw", [" 50%", "50% ", "50%\n", "5 0%"])
    def test_whitespace_in_percent_string(self, raw):
        with pytest.raises(ValueError, match="percentage string"):
            parse_offset_bound(raw)

    def test_none_is_whole_parent(self):
        first, second = parse_offset(None)
        assert (first.value, second.value) == (0.0, 1.0)

    def test_wrong_length(self):
        with pytest.raises(ValueError, match=r"\[start, end\] pair"):
            parse_offset(["0%"])


class TestComputeWindow:
    def test_default_is_parent(self):
        assert compute_window((2, 6)) == (2, 6)

    def test_percent_offsets(self):
        assert compute_window((2, 6), ["0%", "50%"]) == (2, 4)

    def test_seconds_from_parent_start(self):
        assert compute_window((2, 6), [{"seconds": 1}, {"seconds": 3}]) == (3, 5)

    def test_overshoot_without_clamp(self):
        assert compute_window((0, 10), ["-10%", "120%"]) == pytest.approx((-1, 12))

    def test_overshoot_with_clamp(self):
        assert compute_window((0, 10), ["-10%", "120%"], clamp=True) == (0, 10)

    def test_unbounded_parent(self):
        assert compute_window(UNBOUNDED) == UNBOUNDED

    def test_fps_snapping(self):
        start, end = compute_window((0, 1), ["0%", "33%"], fps=10)
        assert (start, end) == (0, pytest.approx(0.3))

    def test_malformed_parent(self):
        with pytest.raises(ValueError, match="parent range"):
            compute_window([1])


class TestSnapToFrame:
    def test_rounds_to_nearest_frame(self):
        assert snap_to_frame(1.01, 30) == pytest.approx(1.0)

    def test_no_fps_is_noop(self):
        assert snap_to_frame(1.01, None) == 1.01

    def test_infinity_untouched(self):
        assert snap_to_frame(math.inf, 30) == math.inf

    def test_infinite_fps_is_noop(self):
        assert snap_to_frame(1.01, math.inf) == 1.01
