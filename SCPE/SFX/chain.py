# =============================================================================
# chain.py - Fixed Effects Chain
# =============================================================================
#
#   received frame ─► quantize(depth) ─► decimate(factor) ─► held frame
#
# One quantizer, one decimator per channel, always in this order.  The two
# channel decimators see the same strobes and the same factor, so they stay
# in lockstep and the output frame is always a coherent pair.
#
# Parameters are read from the ParameterCell once per valid frame.

from __future__ import annotations
import logging
from typing import NamedTuple, Optional

from SCPE.SMM.types import StereoFrame
from SCPE.SFX.params import EffectParameters, ParameterCell
from SCPE.SFX.quantizer import quantize
from SCPE.SFX.decimator import SampleDecimator

log = logging.getLogger(__name__)


class ChainOutputs(NamedTuple):
    frame: StereoFrame   # held output frame
    ready: bool          # True once at least one frame went through


class EffectsChain:
    """
    Usage:
        cell  = ParameterCell(EffectParameters(8, 4))
        chain = EffectsChain(cell)
        out   = chain.process(StereoFrame(0x1234, -5))
    """

    def __init__(self, params: Optional[ParameterCell] = None) -> None:
        self.params = params if params is not None else ParameterCell()
        self._left  = SampleDecimator()
        self._right = SampleDecimator()
        self.reset()

    def reset(self) -> None:
        self._left.reset()
        self._right.reset()
        self._frame = StereoFrame.silent()
        self._ready = False
        self.frames_processed = 0
        self._last_params: Optional[EffectParameters] = None

    @property
    def outputs(self) -> ChainOutputs:
        return ChainOutputs(self._frame, self._ready)

    # ── Frame-level processing ───────────────────────────────────────────────

    def process(self, frame: StereoFrame) -> StereoFrame:
        """Run one frame through the chain and return the held output."""
        p = self.params.get()
        if p != self._last_params:
            log.debug("effect parameters now depth=%d factor=%d",
                      p.bit_depth, p.decimation_factor)
            self._last_params = p

        left  = self._left.update(quantize(frame.left, p.bit_depth), True, p.decimation_factor)
        right = self._right.update(quantize(frame.right, p.bit_depth), True, p.decimation_factor)

        self._frame = StereoFrame(left, right, True)
        self._ready = True
        self.frames_processed += 1
        return self._frame

    # ── Tick-level update ────────────────────────────────────────────────────

    def step(self, frame: StereoFrame, valid: bool) -> ChainOutputs:
        """Advance one reference tick.  Only a valid strobe does any work."""
        if valid:
            self.process(frame)
        return self.outputs
