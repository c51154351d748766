# =============================================================================
# frame_clock.py - Frame Clock Generator
# =============================================================================
#
# Divides the reference tick into the bit clock (sck) and the channel select
# (ws).  Both are decode taps on ONE counter:
#
#   count  : 0 .. TICKS_PER_FRAME-1, +1 per reference tick
#   sck    : (count % divider) >= divider/2      low half first, 50% duty
#   ws     : (count // (divider*slot_bits)) & 1  0 = Left, 1 = Right
#
# With divider=8, slot_bits=16:
#
#   count   0   4   8  12  ...  124 128 132 ...  252 256=0
#   sck     0   1   0   1  ...   1   0   1  ...   1   0
#   ws      0   0   0   0  ...   0   1   1  ...   1   0
#                                    ^ ws moves with a trailing sck edge
#
# ws only changes when count crosses a multiple of divider*slot_bits, and
# every such count is also a multiple of divider, where sck falls.  The two
# outputs cannot disagree about phase.

from __future__ import annotations
from typing import NamedTuple

from SCPE.SMM.constants import BCLK_DIVIDER, SLOT_BITS


class ClockOutputs(NamedTuple):
    sck:   int    # bit clock level
    ws:    int    # channel select level
    count: int    # raw counter value (debug / tests)


class FrameClockGenerator:
    """
    Reference-tick divider producing sck and ws from a single counter.

    Usage:
        clk = FrameClockGenerator()
        for _ in range(256):
            out = clk.outputs      # committed values for this tick
            clk.step()
    """

    def __init__(self, divider: int = BCLK_DIVIDER, slot_bits: int = SLOT_BITS) -> None:
        if divider < 2 or divider % 2:
            raise ValueError(f"divider must be an even integer >= 2, got {divider!r}")
        if slot_bits < 1:
            raise ValueError(f"slot_bits must be >= 1, got {slot_bits!r}")

        self.divider         = divider
        self.slot_bits       = slot_bits
        self.ticks_per_slot  = divider * slot_bits
        self.ticks_per_frame = 2 * self.ticks_per_slot
        self._count = 0

    def reset(self) -> None:
        self._count = 0

    # ── Decode taps ──────────────────────────────────────────────────────────

    @property
    def sck(self) -> int:
        return 1 if (self._count % self.divider) >= self.divider // 2 else 0

    @property
    def ws(self) -> int:
        return (self._count // self.ticks_per_slot) & 1

    @property
    def outputs(self) -> ClockOutputs:
        return ClockOutputs(self.sck, self.ws, self._count)

    # ── Sequential update ────────────────────────────────────────────────────

    def step(self) -> ClockOutputs:
        """Advance one reference tick and return the new committed outputs."""
        self._count = (self._count + 1) % self.ticks_per_frame
        return self.outputs

    def run(self, ticks: int) -> list[ClockOutputs]:
        """Return the outputs for `ticks` consecutive ticks, starting now."""
        out = []
        for _ in range(ticks):
            out.append(self.outputs)
            self.step()
        return out
