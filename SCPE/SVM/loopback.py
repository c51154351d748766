# =============================================================================
# loopback.py - Cycle-Accurate Loopback Harness
# =============================================================================
#
# Two harnesses, both on one shared FrameClockGenerator:
#
#   loopback_frames()      SerialTransmitter ──sd──► SerialReceiver
#       Checks the link contract on its own: what goes in comes out, once
#       the receiver has seen its first ws boundary.
#
#   run_codec_loopback()   codec ADC ──► AudioPipeline ──► codec DAC
#       The ADC is modelled as a SerialTransmitter fed from a sample buffer,
#       the DAC as a SerialReceiver.  Result is the full device response
#       including its start-up latency, which find_latency() removes.
#
# Everything is stepped with register semantics: outputs are captured before
# any component steps.

from __future__ import annotations
import logging
from typing import Iterable, NamedTuple, Optional, Sequence

import numpy as np

from SCPE.SMM.constants import BCLK_DIVIDER, SLOT_BITS
from SCPE.SMM.types import StereoFrame
from SCPE.SGM.frame_clock import FrameClockGenerator
from SCPE.SGM.serial_tx import SerialTransmitter
from SCPE.SVM.serial_rx import SerialReceiver
from SCPE.SCM.uart import encode_uart

log = logging.getLogger(__name__)

LOOPBACK_SLACK_FRAMES = 2    # tx -> rx: lead-in frame + one-frame word straddle
DEVICE_SLACK_FRAMES   = 4    # ADC -> pipeline -> DAC: two links in series
MAX_LATENCY_FRAMES    = 8


class LoopbackResult(NamedTuple):
    output:        np.ndarray   # (N, 2) int16, latency removed, N <= frames_in
    latency:       Optional[int]  # leading DAC frames dropped; None = no lock
    frames_in:     int
    frames_out:    int          # raw DAC frames before trimming
    dropped_words: int          # pipeline receiver + DAC receiver
    stale_repeats: int          # pipeline transmitter
    ticks:         int


def loopback_frames(
    frames: Sequence[StereoFrame],
    extra_frames: int = LOOPBACK_SLACK_FRAMES,
    divider: int = BCLK_DIVIDER,
    slot_bits: int = SLOT_BITS,
) -> tuple[list[StereoFrame], SerialTransmitter, SerialReceiver]:
    """
    Push `frames` through TX -> RX.  The transmitter pulls one frame per
    request; the receiver's valid frames are returned in order.
    """
    clock = FrameClockGenerator(divider, slot_bits)
    tx = SerialTransmitter()
    rx = SerialReceiver()
    source = iter(frames)

    received: list[StereoFrame] = []
    ticks = (len(frames) + extra_frames) * clock.ticks_per_frame

    for _ in range(ticks):
        clk    = clock.outputs
        tx_out = tx.outputs

        supply = next(source, None) if tx_out.request else None

        clock.step()
        tx.step(clk.sck, clk.ws, supply, supply is not None)
        rx_out = rx.step(clk.sck, clk.ws, tx_out.sd)
        if rx_out.valid:
            received.append(rx_out.frame)

    return received, tx, rx


def find_latency(
    received: np.ndarray,
    expected: np.ndarray,
    max_latency: int = MAX_LATENCY_FRAMES,
) -> Optional[int]:
    """Smallest leading-frame offset at which `received` matches `expected`."""
    for k in range(min(max_latency, received.shape[0]) + 1):
        n = min(received.shape[0] - k, expected.shape[0])
        if n <= 0:
            break
        if np.array_equal(received[k:k + n], expected[:n]):
            return k
    return None


def run_codec_loopback(
    samples: np.ndarray,
    pipeline,
    expected: Optional[np.ndarray] = None,
    midi_bytes: Iterable[int] = (),
) -> LoopbackResult:
    """
    Drive `pipeline` (an STM AudioPipeline) from a codec ADC model and
    collect what a codec DAC model receives.

    Args:
        samples:    (N, 2) int16 input frames.
        pipeline:   freshly reset AudioPipeline.
        expected:   frame-level reference used to measure the latency; when
                    omitted the raw DAC frames are returned with latency None.
        midi_bytes: bytes sent on the MIDI line from tick 0 (8N1 via the
                    pipeline's UART, at its own bit rate).
    """
    clock = pipeline.clock
    adc = SerialTransmitter()
    dac = SerialReceiver()
    source = (StereoFrame(int(l), int(r)) for l, r in samples)

    midi_line = encode_uart(midi_bytes, ticks_per_bit=pipeline.ticks_per_midi_bit)

    received: list[tuple[int, int]] = []
    ticks = (samples.shape[0] + DEVICE_SLACK_FRAMES) * clock.ticks_per_frame

    for t in range(ticks):
        clk      = clock.outputs
        adc_out  = adc.outputs
        pipe_out = pipeline.outputs

        supply = next(source, None) if adc_out.request else None
        midi_level = midi_line[t] if t < len(midi_line) else 1

        adc.step(clk.sck, clk.ws, supply, supply is not None)
        dac_out = dac.step(clk.sck, clk.ws, pipe_out.sd_out)
        pipeline.tick(adc_out.sd, midi_level)     # steps the shared clock

        if dac_out.valid:
            received.append((dac_out.frame.left, dac_out.frame.right))

    raw = np.array(received, dtype=np.int16).reshape(-1, 2)

    latency = None
    output = raw
    if expected is not None:
        latency = find_latency(raw, expected)
        if latency is None:
            log.warning("codec loopback output never matched the reference")
        else:
            output = raw[latency:latency + expected.shape[0]]

    return LoopbackResult(
        output=output,
        latency=latency,
        frames_in=samples.shape[0],
        frames_out=raw.shape[0],
        dropped_words=pipeline.receiver.dropped_words + dac.dropped_words,
        stale_repeats=pipeline.transmitter.stale_repeats,
        ticks=ticks,
    )
