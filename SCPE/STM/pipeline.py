# =============================================================================
# pipeline.py - Top-Level Composition
# =============================================================================
#
#                 ┌──────────────────── FrameClockGenerator ──────────┐
#                 │ sck, ws                                  sck, ws  │
#   sd_in ──► SerialReceiver ──► EffectsChain ──► SerialTransmitter ──► sd_out
#                                     ▲   (request / frame_valid handshake)
#                               ParameterCell
#                                     ▲
#   midi line ──► MidiUartReceiver ──► ControlMessageParser
#
# tick() implements register semantics: it snapshots every component's
# committed outputs FIRST, then steps each component with those snapshots.
# The order of the step calls below therefore does not matter.
#
# The MIDI UART is stepped once every `ticks_per_midi_bit` reference ticks.
# That is its own timing domain; it shares only the ParameterCell with the
# audio side.

from __future__ import annotations
import logging
from typing import Iterable, NamedTuple, Optional

from SCPE.SMM.constants import BCLK_DIVIDER, SLOT_BITS, TICKS_PER_MIDI_BIT
from SCPE.SMM.types import StereoFrame
from SCPE.SGM.frame_clock import FrameClockGenerator
from SCPE.SGM.serial_tx import SerialTransmitter
from SCPE.SVM.serial_rx import SerialReceiver
from SCPE.SFX.params import EffectParameters, ParameterCell
from SCPE.SFX.chain import EffectsChain
from SCPE.SCM.midi_parser import ControlMessageParser
from SCPE.SCM.uart import MidiUartReceiver

log = logging.getLogger(__name__)


class PipelineOutputs(NamedTuple):
    sck:         int
    ws:          int
    sd_out:      int
    frame:       StereoFrame   # effects chain held output
    frame_valid: bool          # receiver emitted a frame this tick
    request:     bool          # transmitter asked for a frame this tick


class AudioPipeline:
    """
    Cycle-accurate model of the whole device.

    Usage:
        pipe = AudioPipeline(EffectParameters(bit_depth=8))
        for level in codec_sd_levels:
            out = pipe.tick(level)
            dac.write(out.sd_out)
    """

    def __init__(
        self,
        params:             Optional[EffectParameters] = None,
        divider:            int = BCLK_DIVIDER,
        slot_bits:          int = SLOT_BITS,
        ticks_per_midi_bit: int = TICKS_PER_MIDI_BIT,
        midi_channel:       Optional[int] = None,
    ) -> None:
        if ticks_per_midi_bit < 1:
            raise ValueError(f"ticks_per_midi_bit must be >= 1, got {ticks_per_midi_bit!r}")

        self.clock       = FrameClockGenerator(divider, slot_bits)
        self.receiver    = SerialReceiver()
        self.params      = ParameterCell(params)
        self.chain       = EffectsChain(self.params)
        self.transmitter = SerialTransmitter()
        self.parser      = ControlMessageParser(self.params, channel=midi_channel)
        self.uart        = MidiUartReceiver()

        self.ticks_per_midi_bit = ticks_per_midi_bit
        self._midi_count = 0
        self.ticks = 0

    def reset(self) -> None:
        """Device reset.  Parameters are kept; the parser state is not."""
        self.clock.reset()
        self.receiver.reset()
        self.chain.reset()
        self.transmitter.reset()
        self.parser.reset()
        self.uart.reset()
        self._midi_count = 0
        self.ticks = 0

    # ── Committed outputs ────────────────────────────────────────────────────

    @property
    def outputs(self) -> PipelineOutputs:
        clk = self.clock.outputs
        rx  = self.receiver.outputs
        tx  = self.transmitter.outputs
        return PipelineOutputs(
            sck=clk.sck,
            ws=clk.ws,
            sd_out=tx.sd,
            frame=self.chain.outputs.frame,
            frame_valid=rx.valid,
            request=tx.request,
        )

    # ── Sequential update ────────────────────────────────────────────────────

    def tick(self, sd_in: int, midi_level: int = 1) -> PipelineOutputs:
        """
        Advance one reference tick.

        Args:
            sd_in:      codec serial data, as committed on the previous tick.
            midi_level: MIDI line level (idle high).
        """
        clk = self.clock.outputs
        rx  = self.receiver.outputs
        fx  = self.chain.outputs
        tx  = self.transmitter.outputs

        # The chain answers the transmitter's request on the following tick.
        supply = tx.request and fx.ready

        self.clock.step()
        self.receiver.step(clk.sck, clk.ws, sd_in)
        self.chain.step(rx.frame, rx.valid)
        self.transmitter.step(clk.sck, clk.ws, fx.frame, supply)
        self._step_midi(midi_level)

        self.ticks += 1
        return self.outputs

    def run(self, sd_levels: Iterable[int]) -> list[PipelineOutputs]:
        return [self.tick(level) for level in sd_levels]

    # ── Control input ────────────────────────────────────────────────────────

    def feed_midi(self, data: Iterable[int]) -> None:
        """Inject MIDI bytes straight into the parser, skipping the UART."""
        for msg in self.parser.feed_bytes(data):
            log.debug("midi %02X %s", msg.status, (msg.data1, msg.data2))

    def _step_midi(self, level: int) -> None:
        self._midi_count += 1
        if self._midi_count < self.ticks_per_midi_bit:
            return
        self._midi_count = 0
        byte = self.uart.step(level)
        if byte is not None:
            self.parser.feed(byte)
