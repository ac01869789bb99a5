"""
Property-based tests for the almanac stage and pipeline using Hypothesis.

Checks the interval mapping against plain per-value evaluation on small
domains, where enumerating every value is still cheap.
"""

import pytest
from hypothesis import given, strategies as st, settings, assume
from hypothesis.strategies import integers

from software_reference.almanac import (
    AlmanacError,
    EmptyIntervalError,
    EmptySeedSetError,
    Interval,
    Mapping,
    OverlappingMappingsError,
    Pipeline,
    Stage,
    merge_intervals,
    seed_intervals,
)


MAX_VALUE = 1000


# Strategy for generating a stage with disjoint source ranges
@st.composite
def stage_strategy(draw, max_mappings=6):
    """Cut sorted unique boundaries into disjoint source ranges, shuffled."""
    points = draw(st.lists(integers(min_value=0, max_value=MAX_VALUE),
                           max_size=2 * max_mappings, unique=True))
    points.sort()
    mappings = []
    for source_start, source_end in zip(points[::2], points[1::2]):
        destination_start = draw(integers(min_value=0, max_value=MAX_VALUE))
        mappings.append(Mapping(source_start, destination_start, source_end - source_start))
    return Stage(draw(st.permutations(mappings)))


@st.composite
def interval_strategy(draw, max_length=200):
    start = draw(integers(min_value=0, max_value=MAX_VALUE + 100))
    length = draw(integers(min_value=1, max_value=max_length))
    return Interval(start, length)


pipeline_strategy = st.lists(stage_strategy(), min_size=1, max_size=4).map(Pipeline)


def covered_by_any(stage, value):
    return any(m.source_start <= value < m.source_start + m.length for m in stage.mappings)


# Property 1: Splitting never gains or loses values
@given(stage_strategy(), interval_strategy())
def test_partition_lossless(stage, interval):
    """
    Property: The output lengths of map_interval add up to the input length.
    """
    pieces = stage.map_interval(interval)

    assert all(piece.length > 0 for piece in pieces), f"Empty piece in {pieces}"
    assert sum(piece.length for piece in pieces) == interval.length, \
        f"Length mismatch: input={interval}, output={pieces}"


# Property 2: Interval mapping agrees with scalar mapping
@given(stage_strategy(), interval_strategy())
def test_scalar_interval_equivalence(stage, interval):
    """
    Property: Pieces come out in source order, so the k-th value of the input
    lands at the matching offset of its piece.
    """
    pieces = stage.map_interval(interval)

    value = interval.start
    for piece in pieces:
        for offset in range(piece.length):
            assert stage.map_scalar(value) == piece.start + offset, \
                f"Value {value} maps to {stage.map_scalar(value)}, piece {piece} says otherwise"
            value += 1

    assert value == interval.end


# Property 3: Unmapped values pass through
@given(stage_strategy(), integers(min_value=0, max_value=2 * MAX_VALUE))
def test_identity_fallback(stage, value):
    """
    Property: A value outside every source range maps to itself.
    """
    assume(not covered_by_any(stage, value))
    assert stage.map_scalar(value) == value


# Property 4: No reordering inside a piece
@given(stage_strategy(), interval_strategy())
def test_monotonic_shift(stage, interval):
    """
    Property: Consecutive source values of one piece map to consecutive values.
    """
    value = interval.start
    for piece in stage.map_interval(interval):
        mapped = [stage.map_scalar(v) for v in range(value, value + piece.length)]
        assert mapped == list(range(piece.start, piece.start + piece.length))
        value += piece.length


# Property 5: Pipeline interval minimum matches brute force
@given(pipeline_strategy, st.lists(interval_strategy(max_length=50), min_size=1, max_size=4))
@settings(max_examples=200)
def test_minimum_matches_enumeration(pipeline, intervals):
    """
    Property: The interval minimum equals the minimum over every single seed.
    """
    every_seed = [v for iv in intervals for v in range(iv.start, iv.end)]

    expected = pipeline.minimum_location(every_seed)
    assert pipeline.minimum_location(intervals) == expected
    assert pipeline.minimum_location(intervals, coalesce=True) == expected


# Property 6: Located intervals hold exactly the located seeds
@given(pipeline_strategy, st.lists(interval_strategy(max_length=50), min_size=1, max_size=4))
def test_locate_intervals_matches_locate_scalar(pipeline, intervals):
    """
    Property: Without coalescing the output is the multiset of scalar
    locations; with coalescing it is the same set.
    """
    expected = sorted(pipeline.locate_scalar(v) for iv in intervals for v in range(iv.start, iv.end))

    located = pipeline.locate_intervals(intervals)
    actual = sorted(v for iv in located for v in range(iv.start, iv.end))
    assert actual == expected

    coalesced = pipeline.locate_intervals(intervals, coalesce=True)
    assert sorted(v for iv in coalesced for v in range(iv.start, iv.end)) == sorted(set(expected))


# Property 7: Merging leaves disjoint, sorted, non-touching intervals
@given(st.lists(interval_strategy(), max_size=30))
def test_merge_intervals_disjoint(intervals):
    merged = merge_intervals(intervals)

    for previous, current in zip(merged, merged[1:]):
        assert previous.end < current.start, f"Touching or overlapping: {previous}, {current}"

    original = {v for iv in intervals for v in range(iv.start, iv.end)}
    assert {v for iv in merged for v in range(iv.start, iv.end)} == original


# Property 8: Stages reject overlapping source ranges
@given(integers(min_value=0, max_value=MAX_VALUE), integers(min_value=1, max_value=50),
       integers(min_value=0, max_value=49))
def test_overlapping_mappings_rejected(start, length, inset):
    assume(inset < length)
    with pytest.raises(OverlappingMappingsError):
        Stage([Mapping(start, 0, length), Mapping(start + inset, 500, length)])


# Concrete test cases for edge cases
def example_stage():
    return Stage([Mapping(98, 50, 2), Mapping(50, 52, 48)], source="seed", destination="soil")


@pytest.mark.parametrize("seed, soil", [(79, 81), (14, 14), (55, 57), (13, 13)])
def test_single_stage_example(seed, soil):
    assert example_stage().map_scalar(seed) == soil


def test_interval_inside_one_mapping():
    """An interval inside one source range shifts as a single piece."""
    assert example_stage().map_interval(Interval(79, 14)) == [Interval(81, 14)]


def test_interval_spanning_gaps():
    """Gaps around and between mappings pass through unchanged."""
    stage = Stage([Mapping(10, 100, 5), Mapping(20, 200, 5)])
    assert stage.map_interval(Interval(5, 25)) == [
        Interval(5, 5),      # 5..9 unmapped
        Interval(100, 5),    # 10..14
        Interval(15, 5),     # 15..19 unmapped
        Interval(200, 5),    # 20..24
        Interval(25, 5),     # 25..29 unmapped
    ]


def test_interval_starting_inside_mapping():
    stage = Stage([Mapping(10, 100, 5), Mapping(20, 200, 5)])
    assert stage.map_interval(Interval(12, 10)) == [
        Interval(102, 3),
        Interval(15, 5),
        Interval(200, 2),
    ]


def test_empty_stage_is_identity():
    assert Stage([]).map_interval(Interval(7, 3)) == [Interval(7, 3)]
    assert Stage([]).map_scalar(7) == 7


def test_zero_length_interval_rejected():
    with pytest.raises(EmptyIntervalError):
        example_stage().map_interval(Interval(79, 0))


def test_empty_seed_set_rejected():
    pipeline = Pipeline([example_stage()])
    with pytest.raises(EmptySeedSetError):
        pipeline.minimum_location([])


def test_mixed_seed_set_rejected():
    pipeline = Pipeline([example_stage()])
    with pytest.raises(TypeError):
        pipeline.minimum_location([79, Interval(55, 13)])


def test_plain_tuples_are_intervals():
    pipeline = Pipeline([example_stage()])
    assert pipeline.minimum_location([(79, 14), (55, 13)]) == 57


def test_list_pairs_are_intervals():
    pipeline = Pipeline([example_stage()])
    assert pipeline.minimum_location([[79, 14], [55, 13]]) == 57


def test_non_integer_scalar_seeds_rejected():
    pipeline = Pipeline([example_stage()])
    with pytest.raises(TypeError):
        pipeline.minimum_location([79, "14"])


@pytest.mark.parametrize("mapping", [
    Mapping(-10, 5, 3),
    Mapping(5, -10, 3),
    Mapping((1 << 64) - 2, 0, 3),
    Mapping(0, (1 << 64) - 2, 3),
])
def test_mapping_outside_64_bits_rejected(mapping):
    with pytest.raises(AlmanacError):
        Stage([mapping])


@pytest.mark.parametrize("value", [-9, -1, 1 << 64])
def test_scalar_outside_64_bits_rejected(value):
    with pytest.raises(AlmanacError):
        example_stage().map_scalar(value)


@pytest.mark.parametrize("interval", [Interval(-20, 5), Interval((1 << 64) - 2, 3)])
def test_interval_outside_64_bits_rejected(interval):
    with pytest.raises(AlmanacError):
        example_stage().map_interval(interval)


def test_seed_intervals_pairs_values():
    assert seed_intervals([79, 14, 55, 13]) == [Interval(79, 14), Interval(55, 13)]


def test_values_near_64_bit_limit():
    top = (1 << 64) - 10
    stage = Stage([Mapping(top, 0, 10)])
    assert stage.map_scalar(top + 9) == 9
    assert stage.map_interval(Interval(top - 5, 15)) == [Interval(top - 5, 5), Interval(0, 10)]


if __name__ == "__main__":
    # Run pytest
    pytest.main([__file__, "-v", "--tb=short"])
