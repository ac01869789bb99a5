"""
Stage Lookup - Hardware RTL Implementation

Maps one value through a single almanac stage in one combinational step.

Architecture:
    - Register file of up to max_mappings (destination, source, length) entries
    - One comparator pair per entry: source <= value < source + length
    - Priority mux chain, lowest entry index wins
    - No hit: value passes through unchanged

The table is written one entry per cycle through the load interface, so the
same bitstream serves any almanac.
"""

from amaranth import *


class StageLookup(Elaboratable):
    """
    Hardware module mapping a value through one stage table.

    Ports:
        Input (table loading):
            - load_valid_in: Write entry load_idx_in this cycle
            - load_idx_in: Table entry to write
            - dest_in: Destination range start (64-bit)
            - source_in: Source range start (64-bit)
            - length_in: Range length (64-bit)
            - clear: Drop every entry

        Input (lookup):
            - value_in: Value to map (64-bit)

        Output:
            - value_out: Mapped value (64-bit)
            - hit_out: Some entry covered value_in
            - entry_count_out: Number of entries written since the last clear
    """

    def __init__(self, max_mappings=64, width=64):
        self.max_mappings = max_mappings
        self.width = width

        # Load interface
        self.load_valid_in = Signal()
        self.load_idx_in = Signal(range(max_mappings))
        self.dest_in = Signal(width)
        self.source_in = Signal(width)
        self.length_in = Signal(width)
        self.clear = Signal()

        # Lookup interface
        self.value_in = Signal(width)
        self.value_out = Signal(width)
        self.hit_out = Signal()
        self.entry_count_out = Signal(range(max_mappings + 1))

        # Table registers, exposed for the formal wrapper
        self.dests = [Signal(width, name=f"dest_{i}") for i in range(max_mappings)]
        self.sources = [Signal(width, name=f"source_{i}") for i in range(max_mappings)]
        self.lengths = [Signal(width, name=f"length_{i}") for i in range(max_mappings)]
        self.used = [Signal(name=f"used_{i}") for i in range(max_mappings)]
        self.matches = [Signal(name=f"match_{i}") for i in range(max_mappings)]

    def elaborate(self, platform):
        m = Module()

        dests, sources, lengths, used = self.dests, self.sources, self.lengths, self.used

        entry_count = Signal(range(self.max_mappings + 1))
        m.d.comb += self.entry_count_out.eq(entry_count)

        # =============================================================
        # TABLE LOADING
        # =============================================================

        with m.If(self.clear):
            m.d.sync += [u.eq(0) for u in used]
            m.d.sync += entry_count.eq(0)

        with m.Elif(self.load_valid_in):
            with m.Switch(self.load_idx_in):
                for i in range(self.max_mappings):
                    with m.Case(i):
                        m.d.sync += [
                            dests[i].eq(self.dest_in),
                            sources[i].eq(self.source_in),
                            lengths[i].eq(self.length_in),
                            used[i].eq(1),
                        ]
                        with m.If(~used[i]):
                            m.d.sync += entry_count.eq(entry_count + 1)

        # =============================================================
        # LOOKUP
        # =============================================================

        # Built from the last entry backwards so entry 0 ends up outermost
        value = self.value_in
        hit = Const(0, 1)
        for i in reversed(range(self.max_mappings)):
            # source + length is one bit wider, so the end never wraps
            match = self.matches[i]
            m.d.comb += match.eq(
                used[i]
                & (self.value_in >= sources[i])
                & (self.value_in < sources[i] + lengths[i])
            )
            value = Mux(match, self.value_in - sources[i] + dests[i], value)
            hit = hit | match

        m.d.comb += [
            self.value_out.eq(value),
            self.hit_out.eq(hit),
        ]

        return m
