# =============================================================================
# serial_tx.py - Serial Audio Transmitter
# =============================================================================
#
# Drives the serial data line (sd) from a latched StereoFrame.
#
# TIMING CONTRACT (shared with SVM/serial_rx.py):
#   - sd only changes on a TRAILING (falling) sck edge.
#   - The receiver samples on the LEADING (rising) edge, half a period later.
#   - After every ws transition there is one lead-in bit period.  During that
#     period the line carries the final bit (LSB) of the outgoing word.  The
#     incoming word's MSB follows on the next trailing edge.
#
#   bit period :  0     1     2    ...   15  | 0 (next phase)
#   sd         :  LSB'  b15   b14  ...   b1  | b0
#                 ^ previous word
#
# SAMPLE HANDSHAKE:
#   On the trailing edge that starts a Left phase the transmitter raises
#   `request` for one tick.  If the producer answers on the next tick with
#   frame_valid, that frame is latched.  Otherwise the previous latch is sent
#   again.  Audio never stops.

from __future__ import annotations
import logging
from typing import NamedTuple, Optional

from SCPE.SMM.constants import WORD_BITS
from SCPE.SMM.types import ChannelPhase, StereoFrame

log = logging.getLogger(__name__)


class TxOutputs(NamedTuple):
    sd:      int     # serial data line level
    request: bool    # one-tick pulse: please supply the next frame


class SerialTransmitter:
    """
    Stateful serial transmitter.  Call step() once per reference tick with the
    previous tick's committed sck / ws and the producer's answer.
    """

    def __init__(self, word_bits: int = WORD_BITS) -> None:
        self.word_bits = word_bits
        self._mask     = (1 << word_bits) - 1
        self.reset()

    def reset(self) -> None:
        """Return to the power-on state.  The first latch is silence."""
        self._last_sck: int = 0
        self._last_ws: Optional[int] = None
        self._latched = StereoFrame.silent()
        self._shift   = 0
        self._pending: Optional[ChannelPhase] = None   # word to load after lead-in
        self._phase   = ChannelPhase.LEFT
        self._sd      = 0
        self._request = False
        self._awaiting = False

        self.frames_latched = 0
        self.stale_repeats  = 0

    # ── Committed outputs ────────────────────────────────────────────────────

    @property
    def outputs(self) -> TxOutputs:
        return TxOutputs(self._sd, self._request)

    @property
    def latched(self) -> StereoFrame:
        return self._latched

    @property
    def phase(self) -> ChannelPhase:
        return self._phase

    # ── Sequential update ────────────────────────────────────────────────────

    def step(
        self,
        sck:         int,
        ws:          int,
        frame_in:    Optional[StereoFrame] = None,
        frame_valid: bool = False,
    ) -> TxOutputs:
        """
        Advance one reference tick.

        Args:
            sck, ws:     line levels committed on the previous tick.
            frame_in:    producer's frame, only looked at on the tick after a
                         request pulse.
            frame_valid: producer's handshake answer for frame_in.

        Returns:
            The newly committed TxOutputs.
        """
        # Handshake window: exactly one tick after the request pulse.
        if self._awaiting:
            if frame_valid and frame_in is not None:
                self._latched = StereoFrame(frame_in.left, frame_in.right, True)
                self.frames_latched += 1
            else:
                self.stale_repeats += 1
                log.debug("no fresh frame on request; repeating %r", self._latched)
            self._awaiting = False

        self._request = False

        falling = self._last_sck == 1 and not sck
        self._last_sck = 1 if sck else 0
        if not falling:
            return self.outputs

        ws = 1 if ws else 0

        if self._last_ws is None:
            # First edge ever: join the link at the next real ws boundary.
            self._last_ws = ws
            self._phase   = ChannelPhase.from_level(ws)
            return self.outputs

        # Lead-in period is over: load the word for the current phase.
        if self._pending is not None:
            self._shift   = self._latched.word_for(self._pending) & self._mask
            self._pending = None

        # Drive MSB, then shift.  On a ws transition this is the outgoing
        # word's final bit.
        self._sd    = (self._shift >> (self.word_bits - 1)) & 1
        self._shift = (self._shift << 1) & self._mask

        if ws != self._last_ws:
            self._phase   = ChannelPhase.from_level(ws)
            self._pending = self._phase
            if self._phase == ChannelPhase.LEFT:
                self._request  = True
                self._awaiting = True
        self._last_ws = ws

        return self.outputs
