#!/usr/bin/env python3
# =============================================================================
# validate.py - SCPE Self-Validation Suite
# =============================================================================
#
# Run directly:  python -m SCPE.SVM.validate
#
# Tests:
#   1. Constants integrity  - clock ratios, ranges, preset table
#   2. Frame clock          - sck / ws share one counter, no glitches
#   3. Effects              - quantizer and decimator reference points
#   4. MIDI control         - CC mapping, running status, presets, UART
#   5. Serial link          - TX -> RX loopback, desync recovery
#   6. Device loopback      - ADC -> pipeline -> DAC matches the renderer
#
# run_all() returns the number of failed checks, so the suite can also be
# driven from pytest.
# =============================================================================

import sys

import numpy as np

from SCPE.SMM.constants import (
    SAMPLE_RATE, WORD_BITS, SLOT_BITS, BCLK_DIVIDER, TICKS_PER_FRAME,
    REF_CLOCK_HZ, MIDI_BAUD, TICKS_PER_MIDI_BIT,
    BIT_DEPTH_MIN, BIT_DEPTH_MAX, DECIMATION_MIN, DECIMATION_MAX,
    PRESETS, PRESET_BY_NAME,
)
from SCPE.SMM.types import StereoFrame
from SCPE.SGM.frame_clock import FrameClockGenerator
from SCPE.SGM.line_builder import expand_periods, serialize_segments
from SCPE.SVM.serial_rx import SerialReceiver
from SCPE.SFX.params import EffectParameters
from SCPE.SFX.quantizer import quantize
from SCPE.SFX.decimator import SampleDecimator
from SCPE.SCM.midi_parser import ControlMessageParser
from SCPE.SCM.uart import MidiUartReceiver, encode_uart
from SCPE.STM.pipeline import AudioPipeline
from SCPE.STM.render import render_frames
from SCPE.SVM.loopback import loopback_frames, run_codec_loopback

PASS = "[PASS]"
FAIL = "[FAIL]"
INFO = "[INFO]"

failures = 0

def check(label: str, condition: bool, detail: str = "") -> bool:
    global failures
    if condition:
        print(f"  {PASS} {label}")
    else:
        print(f"  {FAIL} {label}{(' -- ' + detail) if detail else ''}")
        failures += 1
    return condition


def _header(title: str) -> None:
    print("\n" + "="*60)
    print(title)
    print("="*60)


# =============================================================================
# TEST 1 - Constants Integrity
# =============================================================================
def test_constants() -> None:
    _header("TEST 1 - Constants Integrity")

    check("WORD_BITS = 16",                  WORD_BITS == 16)
    check("SLOT_BITS >= WORD_BITS",          SLOT_BITS >= WORD_BITS)
    check("BCLK_DIVIDER even",               BCLK_DIVIDER % 2 == 0)
    check("TICKS_PER_FRAME = 2*slot*divider",
          TICKS_PER_FRAME == 2 * SLOT_BITS * BCLK_DIVIDER, f"got {TICKS_PER_FRAME}")
    check("REF_CLOCK_HZ = rate * ticks/frame",
          REF_CLOCK_HZ == SAMPLE_RATE * TICKS_PER_FRAME)
    check("TICKS_PER_MIDI_BIT ~ REF_CLOCK / baud",
          abs(TICKS_PER_MIDI_BIT - REF_CLOCK_HZ / MIDI_BAUD) < 1,
          f"{TICKS_PER_MIDI_BIT} vs {REF_CLOCK_HZ / MIDI_BAUD:.2f}")

    check("Presets inside parameter ranges",
          all(BIT_DEPTH_MIN <= d <= BIT_DEPTH_MAX and DECIMATION_MIN <= f <= DECIMATION_MAX
              for _, d, f in PRESETS.values()))
    check("Preset names unique", len(PRESET_BY_NAME) == len(PRESETS))
    check("Program 0 is bypass", EffectParameters.from_preset(0).is_bypass)


# =============================================================================
# TEST 2 - Frame Clock
# =============================================================================
def test_frame_clock() -> None:
    _header("TEST 2 - Frame Clock")

    clk = FrameClockGenerator()
    trace = clk.run(TICKS_PER_FRAME * 2)

    rises = sum(1 for a, b in zip(trace, trace[1:]) if a.sck == 0 and b.sck == 1)
    check("Bit periods per frame = 2 * SLOT_BITS",
          rises == 2 * (2 * SLOT_BITS),
          f"got {rises} rising edges in two frames")

    ws_changes = [i for i, (a, b) in enumerate(zip(trace, trace[1:]), 1) if a.ws != b.ws]
    check("ws only changes while sck is low",
          all(trace[i].sck == 0 for i in ws_changes))
    check("ws changes once per slot",
          all(i % (SLOT_BITS * BCLK_DIVIDER) == 0 for i in ws_changes))

    check("Bad divider rejected", _raises(lambda: FrameClockGenerator(divider=3)))


def _raises(fn) -> bool:
    try:
        fn()
    except ValueError:
        return True
    return False


# =============================================================================
# TEST 3 - Effects
# =============================================================================
def test_effects() -> None:
    _header("TEST 3 - Effects")

    check("quantize(0x1234, 8) = 0x1200", quantize(0x1234, 8) == 0x1200,
          f"got {quantize(0x1234, 8):#x}")
    check("quantize(-1, 8) = -256",       quantize(-1, 8) == -256)
    check("quantize(x, 16) = x",          quantize(-12345, 16) == -12345)
    check("quantize low bits zero for every depth",
          all(quantize(s, d) & ((1 << (16 - d)) - 1) == 0
              for d in range(1, 17) for s in (-32768, -1, 0, 1, 0x5A5A, 32767)))

    dec = SampleDecimator()
    held = [dec.update(x, True, 4) for x in range(8)]
    check("decimate factor 4: 0,0,0,0,4,4,4,4",
          held == [0, 0, 0, 0, 4, 4, 4, 4], f"got {held}")
    check("Invalid strobes ignored",
          dec.update(99, False, 4) == 4)


# =============================================================================
# TEST 4 - MIDI Control
# =============================================================================
def test_midi() -> None:
    _header("TEST 4 - MIDI Control")

    p = ControlMessageParser()
    p.feed_bytes([0xB0, 20, 64])
    check("CC20 = 64 -> depth 9", p.params.get().bit_depth == 9,
          f"got {p.params.get().bit_depth}")
    p.feed_bytes([21, 127])
    check("Running status CC21 = 127 -> factor 64",
          p.params.get().decimation_factor == 64)
    p.feed_bytes([0xC0, 2])
    check("Program 2 -> preset (8, 4)",
          (p.params.get().bit_depth, p.params.get().decimation_factor) == (8, 4))
    p.feed_bytes([0xC0, 99])
    check("Unknown program leaves parameters",
          p.params.get().bit_depth == 8 and p.unknown_programs == 1)

    line = encode_uart([0xB0, 20, 0])
    check("UART round trip", MidiUartReceiver().decode(line) == bytes([0xB0, 20, 0]))


# =============================================================================
# TEST 5 - Serial Link
# =============================================================================
def test_serial_link() -> None:
    _header("TEST 5 - Serial Link")

    frames = [StereoFrame(0x1234 * (i + 1) % 65536 - 32768, -i) for i in range(12)]
    received, tx, rx = loopback_frames(frames)
    check("Loopback frame count", len(received) >= len(frames) - 1,
          f"{len(received)} of {len(frames)}")
    check("Loopback exact", received == frames[:len(received)])
    check("No dropped words", rx.dropped_words == 0, f"got {rx.dropped_words}")

    # One 11-period Left phase in the middle of a clean stream.
    segments = []
    for i in range(6):
        segments.append((0, 0x1111 * (i + 1), 11 if i == 2 else SLOT_BITS))
        segments.append((1, 0x0F0F + i, SLOT_BITS))
    rx = SerialReceiver()
    for s in expand_periods(serialize_segments(segments)):
        rx.step(s.sck, s.ws, s.sd)
    check("Short phase dropped and counted", rx.dropped_words == 1,
          f"got {rx.dropped_words}")
    check("Reception resumes after short phase", rx.frames_received >= 2,
          f"got {rx.frames_received}")


# =============================================================================
# TEST 6 - Device Loopback
# =============================================================================
def test_device_loopback() -> None:
    _header("TEST 6 - Device Loopback")

    rng = np.random.default_rng(7)
    samples = rng.integers(-32768, 32768, size=(24, 2)).astype(np.int16)
    params = EffectParameters(bit_depth=6, decimation_factor=3)

    expected, _ = render_frames(samples, params)
    res = run_codec_loopback(samples, AudioPipeline(params), expected=expected)
    print(f"  {INFO} latency={res.latency}  out={res.frames_out}  stale={res.stale_repeats}")
    check("Latency found", res.latency is not None)
    check("Bit-exact against renderer",
          res.output.shape[0] >= samples.shape[0] - 1
          and np.array_equal(res.output, expected[:res.output.shape[0]]))
    check("No dropped words", res.dropped_words == 0)


def run_all() -> int:
    global failures
    failures = 0

    test_constants()
    test_frame_clock()
    test_effects()
    test_midi()
    test_serial_link()
    test_device_loopback()

    print("\n" + "="*60)
    if failures == 0:
        print(f"  ALL TESTS PASSED")
    else:
        print(f"  {failures} TEST(S) FAILED")
    print("="*60 + "\n")
    return failures


if __name__ == "__main__":
    sys.exit(0 if run_all() == 0 else 1)
