# =============================================================================
# serial_rx.py - Serial Audio Receiver
# =============================================================================
#
# Inverse of SerialTransmitter.  Samples sd on every LEADING (rising) sck
# edge and assembles 16-bit words per ws phase.
#
# State:  phase (Left/Right), position (completed transfers), accumulator.
#
# Per leading edge:
#   ws unchanged  -> shift sd into the accumulator MSB-first, position += 1
#   ws changed    -> lead-in strobe.  The bit on the line is the outgoing
#                    word's final bit: accept it, close the outgoing word,
#                    then reset position/accumulator and switch phase.
#
# Closing a word:
#   position == WORD_BITS  -> complete.  Left is held; Right plus a held Left
#                             is emitted as a valid StereoFrame.
#   anything else          -> framing desync.  Word and frame are dropped,
#                             reception continues with the new phase.
#
# Nothing here raises and nothing waits: a word that will never complete is
# simply abandoned at the next ws transition.

from __future__ import annotations
import logging
from typing import NamedTuple, Optional

from SCPE.SMM.constants import WORD_BITS
from SCPE.SMM.types import ChannelPhase, StereoFrame, to_signed16

log = logging.getLogger(__name__)


class RxOutputs(NamedTuple):
    frame: StereoFrame   # last emitted frame (silent until the first one)
    valid: bool          # one-tick pulse when `frame` was just emitted


class SerialReceiver:
    """
    Stateful serial receiver.  Call step() once per reference tick with the
    previous tick's committed sck / ws / sd.
    """

    def __init__(self, word_bits: int = WORD_BITS) -> None:
        self.word_bits = word_bits
        self._mask     = (1 << word_bits) - 1
        self.reset()

    def reset(self) -> None:
        self._last_sck: int = 0
        self._last_ws: Optional[int] = None
        self._synced   = False
        self._phase    = ChannelPhase.LEFT
        self._position = 0
        self._shift    = 0
        self._left: Optional[int] = None
        self._frame    = StereoFrame.silent()
        self._valid    = False

        self.frames_received = 0
        self.dropped_words   = 0

    # ── Committed outputs ────────────────────────────────────────────────────

    @property
    def outputs(self) -> RxOutputs:
        return RxOutputs(self._frame, self._valid)

    @property
    def phase(self) -> ChannelPhase:
        return self._phase

    @property
    def position(self) -> int:
        return self._position

    @property
    def synced(self) -> bool:
        return self._synced

    # ── Sequential update ────────────────────────────────────────────────────

    def step(self, sck: int, ws: int, sd: int) -> RxOutputs:
        """Advance one reference tick and return the committed outputs."""
        self._valid = False

        rising = self._last_sck == 0 and bool(sck)
        self._last_sck = 1 if sck else 0
        if not rising:
            return self.outputs

        ws = 1 if ws else 0
        bit = 1 if sd else 0

        if self._last_ws is None:
            # First edge ever: nothing to close, wait for a real boundary.
            self._last_ws = ws
            self._phase   = ChannelPhase.from_level(ws)
            return self.outputs

        if ws != self._last_ws:
            self._accept(bit)
            self._close_word()
            self._phase    = ChannelPhase.from_level(ws)
            self._position = 0
            self._shift    = 0
            self._synced   = True
            self._last_ws  = ws
            return self.outputs

        self._accept(bit)
        return self.outputs

    # ── Internal helpers ─────────────────────────────────────────────────────

    def _accept(self, bit: int) -> None:
        # Position keeps counting past WORD_BITS so an overlong phase can
        # never compare equal at close time.
        self._shift = ((self._shift << 1) | bit) & self._mask
        self._position += 1

    def _close_word(self) -> None:
        if not self._synced:
            return

        if self._position != self.word_bits:
            self.dropped_words += 1
            log.debug(
                "%s word closed after %d transfers (want %d); frame dropped",
                self._phase.name, self._position, self.word_bits,
            )
            self._left = None
            return

        sample = to_signed16(self._shift)
        if self._phase == ChannelPhase.LEFT:
            self._left = sample
            return

        if self._left is not None:
            self._frame = StereoFrame(self._left, sample, True)
            self._valid = True
            self.frames_received += 1
        self._left = None
