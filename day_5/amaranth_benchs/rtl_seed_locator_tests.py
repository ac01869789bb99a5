"""
SeedLocator RTL testbench.

Loads the almanac tables into the hardware, streams the part one seeds and
compares the minimum location with the software reference.

Usage:
    python3 -m amaranth_benchs.rtl_seed_locator_tests [test_file]

Default test file: testcases/example_input.txt
"""

import os
import sys
from amaranth.sim import Simulator
from rtl.stage_lookup import StageLookup
from rtl.seed_locator import SeedLocatorSystem
from software_reference.seed_locator import read_input, build_pipeline


DEFAULT_INPUT = os.path.join(os.path.dirname(__file__), "..", "testcases", "example_input.txt")


def simulate_stage_lookup(stage, values, max_mappings=8, vcd_path=None):
    """Load one stage table and return (value_out, hit_out) for every value."""
    dut = StageLookup(max_mappings=max_mappings, width=64)
    results = []

    async def testbench(ctx):
        for idx, mapping in enumerate(stage.mappings):
            ctx.set(dut.load_idx_in, idx)
            ctx.set(dut.dest_in, mapping.destination_start)
            ctx.set(dut.source_in, mapping.source_start)
            ctx.set(dut.length_in, mapping.length)
            ctx.set(dut.load_valid_in, 1)
            await ctx.tick()
        ctx.set(dut.load_valid_in, 0)

        # Lookup is combinational, no clock needed per value
        for value in values:
            ctx.set(dut.value_in, value)
            results.append((ctx.get(dut.value_out), ctx.get(dut.hit_out)))

    sim = Simulator(dut)
    sim.add_clock(1e-6)
    sim.add_testbench(testbench)

    if vcd_path:
        with sim.write_vcd(vcd_path):
            sim.run()
    else:
        sim.run()

    return results


async def load_tables(ctx, dut, stages):
    """Write every stage table through the load port, one entry per clock."""
    for stage_idx, stage in enumerate(stages):
        for idx, mapping in enumerate(stage.mappings):
            ctx.set(dut.load_stage_in, stage_idx)
            ctx.set(dut.load_idx_in, idx)
            ctx.set(dut.dest_in, mapping.destination_start)
            ctx.set(dut.source_in, mapping.source_start)
            ctx.set(dut.length_in, mapping.length)
            ctx.set(dut.load_valid_in, 1)
            await ctx.tick()
    ctx.set(dut.load_valid_in, 0)


def simulate_seed_batches(stages, batches, max_mappings=8, max_cycles=10000):
    """
    Run (seed_count, seeds) batches back to back on one set of loaded tables.

    Every seed of a batch is streamed, even past seed_count.

    Returns:
        list: min_location per batch, None for a batch that timed out
    """
    max_seeds = max([count for count, _ in batches] + [1])
    dut = SeedLocatorSystem(num_stages=len(stages), max_mappings=max_mappings,
                            max_seeds=max_seeds, width=64)
    minimums = []

    async def testbench(ctx):
        await load_tables(ctx, dut, stages)

        for seed_count, seeds in batches:
            # IDLE -> RUN
            ctx.set(dut.seed_count_in, seed_count)
            ctx.set(dut.start, 1)
            await ctx.tick()
            ctx.set(dut.start, 0)

            for seed in seeds:
                ctx.set(dut.seed_in, seed)
                ctx.set(dut.seed_valid_in, 1)
                await ctx.tick()
            ctx.set(dut.seed_valid_in, 0)

            for _ in range(max_cycles):
                if ctx.get(dut.done):
                    break
                await ctx.tick()
            else:
                minimums.append(None)
                return
            minimums.append(ctx.get(dut.min_location_out))

            # Flush seeds streamed past seed_count, then DONE -> IDLE
            for _ in range(len(stages)):
                await ctx.tick()
            ctx.set(dut.start, 1)
            await ctx.tick()
            ctx.set(dut.start, 0)

    sim = Simulator(dut)
    sim.add_clock(1e-6)
    sim.add_testbench(testbench)
    sim.run()

    return minimums


def simulate_seed_locator(stages, seeds, max_mappings=8, max_cycles=10000, vcd_path=None):
    """
    Run SeedLocatorSystem over the given stages and seeds.

    Returns:
        dict: min_location, empty, done, cycles
    """
    dut = SeedLocatorSystem(num_stages=len(stages), max_mappings=max_mappings,
                            max_seeds=max(len(seeds), 1), width=64)
    result = {"min_location": None, "empty": None, "done": False, "cycles": 0}

    async def testbench(ctx):
        await load_tables(ctx, dut, stages)

        # Start
        ctx.set(dut.seed_count_in, len(seeds))
        ctx.set(dut.start, 1)
        await ctx.tick()
        ctx.set(dut.start, 0)

        # One seed per clock
        for seed in seeds:
            ctx.set(dut.seed_in, seed)
            ctx.set(dut.seed_valid_in, 1)
            await ctx.tick()
        ctx.set(dut.seed_valid_in, 0)

        for cycle in range(max_cycles):
            if ctx.get(dut.done):
                result["done"] = True
                result["cycles"] = cycle
                result["min_location"] = ctx.get(dut.min_location_out)
                result["empty"] = ctx.get(dut.empty_out)
                return
            await ctx.tick()

    sim = Simulator(dut)
    sim.add_clock(1e-6)
    sim.add_testbench(testbench)

    if vcd_path:
        with sim.write_vcd(vcd_path):
            sim.run()
    else:
        sim.run()

    return result


def test_stage_lookup_example():
    """Single stage from the puzzle text: 98..99 -> 50.., 50..97 -> 52.."""
    seeds, stages = read_input(DEFAULT_INPUT)
    stage = stages[0]

    values = seeds + [0, 49, 50, 97, 98, 99, 100]
    results = simulate_stage_lookup(stage, values)

    for value, (hw_value, hw_hit) in zip(values, results):
        assert hw_value == stage.map_scalar(value), f"Value {value}: HW={hw_value}"
        assert hw_hit == (50 <= value < 100)


def test_seed_locator_example():
    seeds, stages = read_input(DEFAULT_INPUT)
    pipeline = build_pipeline(stages)

    expected = pipeline.minimum_location(seeds)
    result = simulate_seed_locator(pipeline.stages, seeds)

    assert result["done"], "Timeout - did not finish!"
    assert not result["empty"]
    assert result["min_location"] == expected == 35


def test_seed_locator_second_batch():
    """Seeds past seed_count_in are ignored, and a second batch reuses the tables."""
    _, stages = read_input(DEFAULT_INPUT)
    pipeline = build_pipeline(stages)

    # 13 would be the lowest (35) but lies past the first seed count
    batches = [(2, [79, 14, 13]), (2, [55, 13])]
    minimums = simulate_seed_batches(pipeline.stages, batches)

    expected = [pipeline.minimum_location(seeds[:count]) for count, seeds in batches]
    assert expected == [43, 35]
    assert minimums == expected


def test_seed_locator_empty_seed_set():
    _, stages = read_input(DEFAULT_INPUT)
    result = simulate_seed_locator(stages, [])

    assert result["done"]
    assert result["empty"]


def run_bench(test_file):
    """Verbose comparison used when the bench runs as a script."""

    print("=" * 80)
    print("SeedLocatorSystem RTL Test - Part One Pipeline")
    print("=" * 80)

    seeds, stages = read_input(test_file)
    pipeline = build_pipeline(stages)
    max_mappings = max(len(stage.mappings) for stage in pipeline.stages)

    print(f"    Using {len(seeds)} seeds, up to {max_mappings} mappings per stage")

    sw_location = pipeline.minimum_location(seeds)
    print(f"    Software: lowest location {sw_location}")

    os.makedirs("generated", exist_ok=True)
    result = simulate_seed_locator(pipeline.stages, seeds, max_mappings=max_mappings,
                                   vcd_path="generated/seed_locator_system.vcd")

    if not result["done"]:
        print("    [BAD] Timeout - did not finish!")
        return False

    print(f"    Done {result['cycles']} cycles after the last seed")
    print(f"    Hardware: lowest location {result['min_location']}")

    if result["min_location"] == sw_location:
        print("\n    [OK] PERFECT MATCH! Hardware and software agree!")
        return True

    print(f"\n    [BAD] Mismatch! HW={result['min_location']}, SW={sw_location}")
    return False


if __name__ == "__main__":
    test_file = DEFAULT_INPUT
    if len(sys.argv) > 1:
        test_file = sys.argv[1]

    passed = run_bench(test_file)

    print("\n" + "=" * 80)
    print(f"  SeedLocatorSystem: {'[OK] PASS' if passed else '[BAD] FAIL'}")
    sys.exit(0 if passed else 1)
