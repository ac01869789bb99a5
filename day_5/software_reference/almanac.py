"""
Seed Almanac - Staged Range Remapping

Translates seed numbers through the almanac's category chain
(seed -> soil -> fertilizer -> water -> light -> temperature -> humidity
-> location). Every stage is a table of disjoint half-open source intervals,
each shifted by its own offset; values outside every interval map to
themselves.

Two evaluation modes:
    1. Scalar: thread one value through every stage (part one)
    2. Interval: thread whole [start, start+length) ranges through every
       stage by splitting them at mapping boundaries (part two). The work is
       bounded by the number of boundaries crossed, never by range length.
"""

from bisect import bisect_right
from typing import Iterable, Iterator, List, NamedTuple, Optional, Sequence, Tuple


# Values are unsigned 64-bit integers
VALUE_LIMIT = 1 << 64

CATEGORIES = (
    "seed",
    "soil",
    "fertilizer",
    "water",
    "light",
    "temperature",
    "humidity",
    "location",
)


class AlmanacError(ValueError):
    """Base class for almanac errors."""


class AlmanacParseError(AlmanacError):
    """Almanac text could not be parsed."""


class EmptySeedSetError(AlmanacError):
    """A minimum was requested over no seeds at all."""


class EmptyIntervalError(AlmanacError):
    """An interval with no values was handed to a stage."""


class OverlappingMappingsError(AlmanacError):
    """Two mappings of one stage claim the same source values."""


class Interval(NamedTuple):
    """Half-open range [start, start + length)."""

    start: int
    length: int

    @property
    def end(self) -> int:
        return self.start + self.length


class Mapping(NamedTuple):
    """Shift [source_start, source_start + length) onto destination_start."""

    source_start: int
    destination_start: int
    length: int

    @property
    def source_end(self) -> int:
        return self.source_start + self.length

    @property
    def shift(self) -> int:
        return self.destination_start - self.source_start

    def contains(self, value: int) -> bool:
        return self.source_start <= value < self.source_end


def merge_intervals(intervals: Iterable[Interval]) -> List[Interval]:
    """
    Merge all overlapping or touching intervals in a single pass.

    Args:
        intervals: Iterable of Interval tuples (any order)

    Returns:
        list: Disjoint intervals sorted by start, covering exactly the same values

    Algorithm:
        1. Sort intervals by start position
        2. Extend the last merged interval while the next one starts at or
           before its end (half-open, so touching intervals merge too)
        3. Otherwise start a new merged interval
    """
    ordered = sorted(intervals)
    if not ordered:
        return []

    merged = [ordered[0]]
    for current in ordered[1:]:
        last = merged[-1]
        if current.start <= last.end:
            end = max(last.end, current.end)
            merged[-1] = Interval(last.start, end - last.start)
        else:
            merged.append(current)

    return merged


class Stage:
    """
    One category transition of the almanac, e.g. seed-to-soil.

    Mappings are kept sorted by source start so that both lookups can bisect
    into the table instead of scanning it. Overlapping sources are rejected
    up front, so at most one mapping ever applies to a value.
    """

    def __init__(self, mappings: Iterable[Mapping], source: Optional[str] = None,
                 destination: Optional[str] = None):
        self.source = source
        self.destination = destination
        self.mappings: Tuple[Mapping, ...] = tuple(sorted(Mapping(*m) for m in mappings))
        self._starts = [m.source_start for m in self.mappings]

        for mapping in self.mappings:
            if mapping.length <= 0:
                raise AlmanacError(f"{self.name}: mapping {tuple(mapping)} has no values")
            if (mapping.source_start < 0 or mapping.destination_start < 0
                    or mapping.source_end > VALUE_LIMIT
                    or mapping.destination_start + mapping.length > VALUE_LIMIT):
                raise AlmanacError(f"{self.name}: mapping {tuple(mapping)} leaves the 64-bit range")

        for previous, current in zip(self.mappings, self.mappings[1:]):
            if current.source_start < previous.source_end:
                raise OverlappingMappingsError(
                    f"{self.name}: source ranges of {tuple(previous)} and "
                    f"{tuple(current)} overlap"
                )

    @property
    def name(self) -> str:
        if self.source and self.destination:
            return f"{self.source}-to-{self.destination}"
        return "stage"

    def __repr__(self):
        return f"Stage({self.name!r}, {len(self.mappings)} mappings)"

    def _find(self, value: int) -> int:
        """Index of the last mapping starting at or before value, or -1."""
        return bisect_right(self._starts, value) - 1

    def map_scalar(self, value: int) -> int:
        if not 0 <= value < VALUE_LIMIT:
            raise AlmanacError(f"{self.name}: value {value} is not a 64-bit unsigned integer")

        index = self._find(value)
        if index >= 0:
            mapping = self.mappings[index]
            if mapping.contains(value):
                return value + mapping.shift
        return value

    def map_interval(self, interval: Interval) -> List[Interval]:
        """
        Split an interval at mapping boundaries and shift each piece.

        Args:
            interval: Interval to map, length must be positive

        Returns:
            list: Output intervals ordered by the source position they came
                  from. Together they cover exactly interval.length values.

        Raises:
            EmptyIntervalError: if the interval holds no values
            AlmanacError: if the interval leaves the 64-bit unsigned range
        """
        start, length = interval
        if length <= 0:
            raise EmptyIntervalError(f"{self.name}: interval {tuple(interval)} is empty")

        end = start + length
        if start < 0 or end > VALUE_LIMIT:
            raise AlmanacError(f"{self.name}: interval {tuple(interval)} leaves the 64-bit range")

        cursor = start
        pieces = []

        # A mapping that starts before the interval may still cover its head
        index = self._find(cursor)
        if index < 0 or self.mappings[index].source_end <= cursor:
            index += 1

        while cursor < end and index < len(self.mappings):
            mapping = self.mappings[index]
            if mapping.source_start >= end:
                break

            # Gap before this mapping passes through unchanged
            if mapping.source_start > cursor:
                pieces.append(Interval(cursor, mapping.source_start - cursor))
                cursor = mapping.source_start

            overlap_end = min(end, mapping.source_end)
            pieces.append(Interval(cursor + mapping.shift, overlap_end - cursor))
            cursor = overlap_end
            index += 1

        if cursor < end:
            pieces.append(Interval(cursor, end - cursor))

        return pieces


class Pipeline:
    """
    Ordered chain of stages from seed to location.

    Args:
        stages: Stages in evaluation order
        expected_stages: If given, the exact number of stages required
    """

    def __init__(self, stages: Sequence[Stage], expected_stages: Optional[int] = None):
        self.stages: Tuple[Stage, ...] = tuple(stages)

        if expected_stages is not None and len(self.stages) != expected_stages:
            raise AlmanacError(
                f"expected {expected_stages} stages, got {len(self.stages)}"
            )

        for previous, current in zip(self.stages, self.stages[1:]):
            if previous.destination and current.source and previous.destination != current.source:
                raise AlmanacError(
                    f"{previous.name} cannot feed {current.name}"
                )

    def __len__(self):
        return len(self.stages)

    def locate_scalar(self, seed: int) -> int:
        value = seed
        for stage in self.stages:
            value = stage.map_scalar(value)
        return value

    def trace_intervals(self, intervals: Iterable[Interval],
                        coalesce: bool = False) -> Iterator[Tuple[Stage, List[Interval]]]:
        """Yield (stage, intervals) after each stage has been applied."""
        current = [Interval(*iv) for iv in intervals]
        for stage in self.stages:
            current = [piece for iv in current for piece in stage.map_interval(iv)]
            if coalesce:
                current = merge_intervals(current)
            yield stage, current

    def locate_intervals(self, intervals: Iterable[Interval],
                         coalesce: bool = False) -> List[Interval]:
        """
        Map whole intervals through every stage.

        With coalesce=True, overlapping or touching intervals are merged
        after each stage. The covered values stay the same; only the number
        of intervals carried to the next stage shrinks.
        """
        current = [Interval(*iv) for iv in intervals]
        for _, current in self.trace_intervals(current, coalesce=coalesce):
            pass
        return current

    def minimum_location(self, seed_set: Sequence, coalesce: bool = False) -> int:
        """
        Lowest location reachable from a seed set.

        Args:
            seed_set: Either scalar seeds, or (start, length) seed ranges
            coalesce: Merge intervals between stages (interval form only)

        Returns:
            int: Minimum location value

        Raises:
            EmptySeedSetError: if seed_set is empty
            TypeError: if scalars and intervals are mixed, or a scalar is not an int
        """
        seeds = list(seed_set)
        if not seeds:
            raise EmptySeedSetError("no seeds to locate")

        if all(isinstance(seed, (tuple, list)) for seed in seeds):
            # A shifted interval's smallest value is its shifted start
            located = self.locate_intervals(seeds, coalesce=coalesce)
            return min(iv.start for iv in located)

        if any(isinstance(seed, (tuple, list)) for seed in seeds):
            raise TypeError("seed set mixes scalar seeds and seed intervals")

        if not all(isinstance(seed, int) for seed in seeds):
            raise TypeError("scalar seeds must be integers")

        return min(self.locate_scalar(seed) for seed in seeds)


def seed_intervals(values: Sequence[int]) -> List[Interval]:
    """Pair a flat 'start length start length ...' seed list into intervals."""
    if len(values) % 2:
        raise AlmanacParseError(
            f"seed ranges need start/length pairs, got {len(values)} numbers"
        )
    return [Interval(start, length) for start, length in zip(values[::2], values[1::2])]
