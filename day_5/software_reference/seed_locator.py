"""
Seed Locator - Lowest Location for the Almanac Seeds

Part one treats every number on the seeds line as a seed.
Part two reads them as (start, length) pairs and maps the whole ranges
through the stages as intervals.
"""

import sys

from software_reference.almanac import (
    CATEGORIES,
    AlmanacError,
    AlmanacParseError,
    Mapping,
    Pipeline,
    Stage,
    seed_intervals,
)


def parse_almanac(text):
    """
    Parse almanac text into seeds and stages.

    Args:
        text: Almanac contents

    Returns:
        tuple: (seeds, stages) where seeds is a list of integers and stages
               is a list of Stage objects in file order

    Raises:
        AlmanacParseError: on any malformed line
    """
    seeds = None
    stages = []
    header = None
    mappings = []
    state = 0

    def close_stage():
        if header is not None:
            stages.append(Stage(mappings, source=header[0], destination=header[1]))

    for lineno, line in enumerate(text.splitlines(), start=1):
        line = line.strip()

        if state == 0:
            # Seeds line
            if not line:
                continue
            if not line.startswith("seeds:"):
                raise AlmanacParseError(f"line {lineno}: expected 'seeds:' line")
            seeds = _parse_numbers(line[len("seeds:"):], lineno)
            state = 1

        elif state == 1:
            # Waiting for a map header
            if not line:
                continue
            if not line.endswith(" map:"):
                raise AlmanacParseError(f"line {lineno}: expected '<a>-to-<b> map:' header")
            names = line[:-len(" map:")].split("-to-")
            if len(names) != 2 or not all(names):
                raise AlmanacParseError(f"line {lineno}: bad map header {line!r}")
            close_stage()
            header = (names[0], names[1])
            mappings = []
            state = 2

        elif state == 2:
            # Mapping rows until a blank line
            if not line:
                state = 1
                continue
            numbers = _parse_numbers(line, lineno)
            if len(numbers) != 3:
                raise AlmanacParseError(f"line {lineno}: mapping needs 3 numbers, got {len(numbers)}")
            destination_start, source_start, length = numbers
            mappings.append(Mapping(source_start, destination_start, length))

    if seeds is None:
        raise AlmanacParseError("missing 'seeds:' line")

    close_stage()
    return seeds, stages


def _parse_numbers(text, lineno):
    try:
        numbers = [int(part) for part in text.split()]
    except ValueError:
        raise AlmanacParseError(f"line {lineno}: not a list of numbers: {text.strip()!r}") from None
    if any(n < 0 for n in numbers):
        raise AlmanacParseError(f"line {lineno}: negative numbers are not allowed")
    return numbers


def read_input(filename):
    """Read and parse an almanac file, returns (seeds, stages)."""
    with open(filename) as f:
        return parse_almanac(f.read())


def build_pipeline(stages):
    """Build the seed-to-location pipeline, checking the category chain."""
    pipeline = Pipeline(stages, expected_stages=len(CATEGORIES) - 1)
    first, last = pipeline.stages[0], pipeline.stages[-1]
    if (first.source, last.destination) != (CATEGORIES[0], CATEGORIES[-1]):
        raise AlmanacParseError(
            f"maps must lead from {CATEGORIES[0]} to {CATEGORIES[-1]}, "
            f"got {first.source} to {last.destination}"
        )
    return pipeline


def lowest_location(seeds, pipeline, part=1, coalesce=False):
    """
    Lowest location for the seeds line.

    Args:
        seeds: Numbers from the seeds line
        pipeline: Seed-to-location Pipeline
        part: 1 for individual seeds, 2 for (start, length) seed ranges
        coalesce: Merge intervals between stages (part 2)

    Returns:
        int: Minimum location
    """
    if part == 1:
        return pipeline.minimum_location(seeds)
    return pipeline.minimum_location(seed_intervals(seeds), coalesce=coalesce)


def main():
    """Command-line interface for the seed locator."""
    import argparse

    parser = argparse.ArgumentParser(
        description='Find the lowest location number for the almanac seeds'
    )
    parser.add_argument('input_file', nargs='?', type=argparse.FileType('r'),
                        default=sys.stdin,
                        help='Almanac input file (default: stdin)')
    parser.add_argument('--part', type=int, choices=(1, 2), default=1,
                        help='1: seeds are values, 2: seeds are (start, length) ranges')
    parser.add_argument('--coalesce', action='store_true',
                        help='Merge overlapping intervals after each stage (part 2)')
    parser.add_argument('--verbose', '-v', action='store_true',
                        help='Print per-stage statistics')
    args = parser.parse_args()

    with args.input_file as f:
        text = f.read()

    try:
        seeds, stages = parse_almanac(text)
        pipeline = build_pipeline(stages)

        if args.verbose:
            print(f"Seeds: {len(seeds)}", file=sys.stderr)
            for stage in pipeline.stages:
                print(f"  {stage.name}: {len(stage.mappings)} mappings", file=sys.stderr)

        if args.verbose and args.part == 2:
            print("\nIntervals after each stage:", file=sys.stderr)
            intervals = seed_intervals(seeds)
            for stage, current in pipeline.trace_intervals(intervals, coalesce=args.coalesce):
                print(f"  {stage.destination:<12} {len(current)}", file=sys.stderr)

        location = lowest_location(seeds, pipeline, part=args.part, coalesce=args.coalesce)

    except AlmanacError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    print(location)
    return 0


if __name__ == '__main__':
    sys.exit(main())
