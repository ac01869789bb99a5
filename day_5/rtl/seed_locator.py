"""
Seed Locator System - Part One in Hardware RTL

Streams seeds through the seven almanac stages and keeps the lowest location.

System Architecture:
    seed -> [StageLookup] -> reg -> [StageLookup] -> reg -> ... -> location
                                                                     |
                                                                  min tracker

Components:
    1. StageLookup (x num_stages): combinational table lookup per stage
    2. LocationPipeline: registers between stages, one seed per clock,
       num_stages cycles of latency
    3. SeedLocatorSystem: loads the tables, feeds seed_count_in seeds,
       tracks the minimum location

Part two (seed ranges) stays in the software reference: splitting intervals
needs variable length output lists, while part one maps to a fixed
pipeline cleanly.
"""

from amaranth import *
from rtl.stage_lookup import StageLookup


class LocationPipeline(Elaboratable):
    """
    Chain of stage lookups with a register after every stage.

    Ports:
        Input (table loading):
            - load_valid_in, load_stage_in, load_idx_in: Entry write select
            - dest_in, source_in, length_in: Entry contents
            - clear: Drop every entry of every stage

        Input (seed stream):
            - seed_in: Seed value (64-bit)
            - valid_in: seed_in is valid this cycle

        Output:
            - location_out: Location for the seed accepted num_stages cycles ago
            - valid_out: location_out is valid
    """

    def __init__(self, num_stages=7, max_mappings=64, width=64):
        self.num_stages = num_stages
        self.max_mappings = max_mappings
        self.width = width

        # Load interface
        self.load_valid_in = Signal()
        self.load_stage_in = Signal(range(num_stages))
        self.load_idx_in = Signal(range(max_mappings))
        self.dest_in = Signal(width)
        self.source_in = Signal(width)
        self.length_in = Signal(width)
        self.clear = Signal()

        # Seed stream
        self.seed_in = Signal(width)
        self.valid_in = Signal()

        # Location stream
        self.location_out = Signal(width)
        self.valid_out = Signal()

        self.stages = [
            StageLookup(max_mappings=max_mappings, width=width)
            for _ in range(num_stages)
        ]

    def elaborate(self, platform):
        m = Module()

        values = [Signal(self.width, name=f"value_{k}") for k in range(self.num_stages + 1)]
        valids = [Signal(name=f"valid_{k}") for k in range(self.num_stages + 1)]

        m.d.comb += [
            values[0].eq(self.seed_in),
            valids[0].eq(self.valid_in),
        ]

        for k, stage in enumerate(self.stages):
            m.submodules[f"stage_{k}"] = stage

            # Broadcast the load bus, only the selected stage writes
            m.d.comb += [
                stage.load_valid_in.eq(self.load_valid_in & (self.load_stage_in == k)),
                stage.load_idx_in.eq(self.load_idx_in),
                stage.dest_in.eq(self.dest_in),
                stage.source_in.eq(self.source_in),
                stage.length_in.eq(self.length_in),
                stage.clear.eq(self.clear),
                stage.value_in.eq(values[k]),
            ]

            m.d.sync += [
                values[k + 1].eq(stage.value_out),
                valids[k + 1].eq(valids[k]),
            ]

        m.d.comb += [
            self.location_out.eq(values[self.num_stages]),
            self.valid_out.eq(valids[self.num_stages]),
        ]

        return m


class SeedLocatorSystem(Elaboratable):
    """
    Complete system: table loading -> seed stream -> minimum location.

    Ports:
        Input (table loading, IDLE only):
            - load_valid_in, load_stage_in, load_idx_in
            - dest_in, source_in, length_in
            - clear

        Input (seeds):
            - seed_count_in: Number of seeds that will be streamed
            - seed_in, seed_valid_in: Seed stream, accepted in RUN

        Output:
            - min_location_out: Lowest location seen
            - done: All seed_count_in locations have been compared
            - empty_out: Started with seed_count_in == 0, no minimum exists

        Control:
            - start: Latch seed_count_in and begin accepting seeds
            - ready: Idle, tables may be loaded
    """

    def __init__(self, num_stages=7, max_mappings=64, max_seeds=1024, width=64):
        self.num_stages = num_stages
        self.max_mappings = max_mappings
        self.max_seeds = max_seeds
        self.width = width

        # Load interface
        self.load_valid_in = Signal()
        self.load_stage_in = Signal(range(num_stages))
        self.load_idx_in = Signal(range(max_mappings))
        self.dest_in = Signal(width)
        self.source_in = Signal(width)
        self.length_in = Signal(width)
        self.clear = Signal()

        # Seed interface
        self.seed_count_in = Signal(range(max_seeds + 1))
        self.seed_in = Signal(width)
        self.seed_valid_in = Signal()

        # Output interface
        self.min_location_out = Signal(width)
        self.done = Signal()
        self.empty_out = Signal()

        # Control
        self.start = Signal()
        self.ready = Signal()

        self.pipeline = LocationPipeline(
            num_stages=num_stages, max_mappings=max_mappings, width=width
        )

    def elaborate(self, platform):
        m = Module()
        m.submodules.pipeline = pipeline = self.pipeline

        seed_count = Signal(range(self.max_seeds + 1))
        located = Signal(range(self.max_seeds + 1))
        min_location = Signal(self.width)
        empty = Signal()
        running = Signal()

        m.d.comb += [
            pipeline.load_valid_in.eq(self.load_valid_in & self.ready),
            pipeline.load_stage_in.eq(self.load_stage_in),
            pipeline.load_idx_in.eq(self.load_idx_in),
            pipeline.dest_in.eq(self.dest_in),
            pipeline.source_in.eq(self.source_in),
            pipeline.length_in.eq(self.length_in),
            pipeline.clear.eq(self.clear & self.ready),

            pipeline.seed_in.eq(self.seed_in),
            pipeline.valid_in.eq(self.seed_valid_in & running),

            self.min_location_out.eq(min_location),
            self.empty_out.eq(empty),
        ]

        with m.FSM():

            with m.State("IDLE"):
                m.d.comb += self.ready.eq(1)

                with m.If(self.start):
                    m.d.sync += [
                        seed_count.eq(self.seed_count_in),
                        located.eq(0),
                        min_location.eq(Const((1 << self.width) - 1, self.width)),
                        empty.eq(self.seed_count_in == 0),
                    ]
                    with m.If(self.seed_count_in == 0):
                        m.next = "DONE"
                    with m.Else():
                        m.next = "RUN"

            with m.State("RUN"):
                m.d.comb += running.eq(1)

                with m.If(pipeline.valid_out):
                    m.d.sync += located.eq(located + 1)

                    with m.If(pipeline.location_out < min_location):
                        m.d.sync += min_location.eq(pipeline.location_out)

                    with m.If(located + 1 == seed_count):
                        m.next = "DONE"

            with m.State("DONE"):
                m.d.comb += self.done.eq(1)

                # Back to IDLE for another seed batch
                with m.If(self.start):
                    m.next = "IDLE"

        return m


if __name__ == "__main__":
    import sys
    from amaranth.back import verilog

    output_path = sys.argv[1] if len(sys.argv) > 1 else "seed_locator_system.v"

    top = SeedLocatorSystem(num_stages=7, max_mappings=64, max_seeds=1024, width=64)
    v = verilog.convert(top, name="top", ports=[
        # Load interface
        top.load_valid_in, top.load_stage_in, top.load_idx_in,
        top.dest_in, top.source_in, top.length_in, top.clear,
        # Seed interface
        top.seed_count_in, top.seed_in, top.seed_valid_in,
        # Output interface
        top.min_location_out, top.done, top.empty_out,
        # Control
        top.start, top.ready,
    ])

    with open(output_path, "w") as f:
        f.write(v)
    print(f"Generated {output_path}")
