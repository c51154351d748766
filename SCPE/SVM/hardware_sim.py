#!/usr/bin/env python3
# =============================================================================
# hardware_sim.py - Bit-Crusher Hardware Emulator
# =============================================================================
#
# Feeds a WAV file through the device model and reports what the hardware
# would do with it.
#
# Usage:
#   python -m SCPE.SVM.hardware_sim <path_to_wav>
#   python -m SCPE.SVM.hardware_sim <path_to_wav> --depth 8 --factor 4
#   python -m SCPE.SVM.hardware_sim <path_to_wav> --midi 0:C002 --midi 22050:B01440
#   python -m SCPE.SVM.hardware_sim <path_to_wav> --cycle-accurate --max-frames 500
#   python -m SCPE.SVM.hardware_sim <path_to_wav> --out crushed.wav
#
# Output sections:
#   [1] File info          - sample rate, channels, duration
#   [2] Link configuration - clock ratios, starting effect parameters
#   [3] Render report      - levels in / out, effective resolution, hold ratio
#   [4] Serial loopback    - (--cycle-accurate) ADC -> device -> DAC check
#   [5] Control messages   - MIDI events applied, final parameters
#   [6] VERDICT            - PASS / FAIL with reason
#
# =============================================================================

from __future__ import annotations
import argparse
import logging
import os
import sys

import numpy as np
import soundfile as sf

from SCPE.logging_setup import configure_logging
from SCPE.SMM.constants import (
    BCLK_DIVIDER, SLOT_BITS, WORD_BITS, TICKS_PER_FRAME, REF_CLOCK_HZ,
    TICKS_PER_MIDI_BIT, PRESET_BY_NAME,
)
from SCPE.SFX.params import EffectParameters
from SCPE.STM.pipeline import AudioPipeline
from SCPE.STM.render import as_stereo, parse_midi_event, render_frames
from SCPE.SVM.loopback import run_codec_loopback

log = logging.getLogger(__name__)

DEFAULT_MAX_FRAMES = 2_000    # cycle-accurate runs cost ~1500 steps per frame

DIVIDER = "=" * 68


def effective_bits(channel: np.ndarray) -> int:
    """Number of significant bits actually used (16 - trailing zero bits)."""
    nz = channel[channel != 0].astype(np.int32)
    if nz.size == 0:
        return 0
    low = np.bitwise_or.reduce(nz & 0xFFFF)
    trailing = (int(low) & -int(low)).bit_length() - 1
    return WORD_BITS - trailing


def hold_ratio(channel: np.ndarray) -> float:
    """Fraction of samples equal to their predecessor."""
    if channel.shape[0] < 2:
        return 0.0
    return float(np.mean(channel[1:] == channel[:-1]))


def _levels(label: str, data: np.ndarray) -> None:
    wide = data.astype(np.float64)
    peak = np.max(np.abs(wide)) if wide.size else 0.0
    rms  = np.sqrt(np.mean(wide ** 2)) if wide.size else 0.0
    print(f"  {label:<8}: peak={peak:8.0f}  rms={rms:9.1f}")


def run_sim(
    wav_path:       str,
    params:         EffectParameters,
    midi_events:    list[tuple[int, bytes]],
    cycle_accurate: bool = False,
    max_frames:     int = DEFAULT_MAX_FRAMES,
    out_path:       str | None = None,
    midi_channel:   int | None = None,
) -> bool:
    """
    Run the full emulation on one WAV file.
    Returns True if the device behaved as specified, False otherwise.
    """
    verdict_pass = True
    reasons: list[str] = []

    # -----------------------------------------------------------------------
    # [1] File info
    # -----------------------------------------------------------------------
    print(f"\n{DIVIDER}")
    print(f"  Bit-Crusher Hardware Emulator")
    print(DIVIDER)

    if not os.path.exists(wav_path):
        print(f"  [!!] File not found: {wav_path}")
        return False

    info = sf.info(wav_path)
    print(f"  File     : {os.path.basename(wav_path)}")
    print(f"  Rate     : {info.samplerate} Hz")
    print(f"  Channels : {info.channels}")
    print(f"  Duration : {info.frames / info.samplerate:.2f} s  ({info.frames:,} frames)")
    print(f"  Format   : {info.subtype}")

    data, sr = sf.read(wav_path, dtype="int16", always_2d=True)
    try:
        stereo = as_stereo(data)
    except ValueError as exc:
        print(f"  [!!] {exc}")
        return False
    if data.shape[1] == 1:
        print(f"  Layout   : mono, duplicated to L/R")
    elif data.shape[1] > 2:
        print(f"  Layout   : {data.shape[1]}-channel, using Ch1/Ch2 only")

    # -----------------------------------------------------------------------
    # [2] Link configuration
    # -----------------------------------------------------------------------
    print(f"\n  -- Link Configuration --")
    print(f"  Reference clock   : {REF_CLOCK_HZ:,} Hz  ({TICKS_PER_FRAME} ticks/frame)")
    print(f"  Bit clock divider : {BCLK_DIVIDER}  ({SLOT_BITS} bit periods per channel)")
    print(f"  MIDI bit period   : {TICKS_PER_MIDI_BIT} ticks")
    print(f"  Start parameters  : depth={params.bit_depth}  factor={params.decimation_factor}"
          f"{'  (bypass)' if params.is_bypass else ''}")

    # -----------------------------------------------------------------------
    # [3] Render
    # -----------------------------------------------------------------------
    print(f"\n  -- Render Report --")
    rendered, final_params = render_frames(stereo, params, midi_events, midi_channel)
    _levels("Input", stereo)
    _levels("Output", rendered)
    for ch, name in ((0, "L"), (1, "R")):
        print(f"  {name}: effective bits in={effective_bits(stereo[:, ch]):2d}  "
              f"out={effective_bits(rendered[:, ch]):2d}  "
              f"hold ratio={hold_ratio(rendered[:, ch]) * 100:5.1f}%")

    if rendered.shape != stereo.shape:
        verdict_pass = False
        reasons.append(f"render produced {rendered.shape[0]} frames for {stereo.shape[0]} in")

    if out_path:
        sf.write(out_path, rendered, sr, subtype="PCM_16")
        print(f"  Written  : {out_path}")

    # -----------------------------------------------------------------------
    # [4] Cycle-accurate serial loopback
    # -----------------------------------------------------------------------
    if cycle_accurate:
        print(f"\n  -- Serial Loopback (cycle-accurate) --")
        n = min(max_frames, stereo.shape[0])
        segment = stereo[:n]
        at_zero = [payload for frame, payload in midi_events if frame == 0]
        later = [e for e in midi_events if e[0] != 0]

        # The serial run only carries frame-0 MIDI events, sent on the line.
        reference, _ = render_frames(segment, params, None, midi_channel)
        pipe = AudioPipeline(params, midi_channel=midi_channel)
        res = run_codec_loopback(
            segment, pipe,
            expected=None if at_zero else reference,
            midi_bytes=b"".join(at_zero),
        )
        print(f"  Frames in / out   : {res.frames_in:,} / {res.frames_out:,}")
        print(f"  Reference ticks   : {res.ticks:,}")
        print(f"  Dropped words     : {res.dropped_words}")
        print(f"  Stale repeats     : {res.stale_repeats}  (start-up)")
        if later:
            print(f"  [INFO] {len(later)} later MIDI event(s) not replayed on the serial run")

        if res.dropped_words:
            verdict_pass = False
            reasons.append(f"serial link dropped {res.dropped_words} word(s)")
            print(f"  [FAIL] Framing errors on a clean link")
        else:
            print(f"  [PASS] No framing errors")

        if at_zero:
            print(f"  [INFO] Frame-0 MIDI sent on the line; bit-exact check skipped")
        elif res.latency is None:
            verdict_pass = False
            reasons.append("serial output never matched the frame-level render")
            print(f"  [FAIL] Output does not match the frame-level render")
        else:
            print(f"  Latency           : {res.latency} frames")
            print(f"  [PASS] Bit-exact against the frame-level render ({res.output.shape[0]:,} frames)")

    # -----------------------------------------------------------------------
    # [5] Control messages
    # -----------------------------------------------------------------------
    print(f"\n  -- Control Messages --")
    if not midi_events:
        print(f"  (no MIDI events)")
    for frame, payload in sorted(midi_events, key=lambda e: e[0]):
        t = frame / sr
        print(f"  frame {frame:>9,}  t={t:8.3f}s  {payload.hex(' ').upper()}")
    print(f"  Final parameters  : depth={final_params.bit_depth}  "
          f"factor={final_params.decimation_factor}")

    # -----------------------------------------------------------------------
    # [6] Verdict
    # -----------------------------------------------------------------------
    print(f"\n{DIVIDER}")
    if verdict_pass:
        print(f"  VERDICT: PASS - device model behaved as specified")
    else:
        print(f"  VERDICT: FAIL")
        for r in reasons:
            print(f"    - {r}")
    print(f"{DIVIDER}\n")

    return verdict_pass


# ---------------------------------------------------------------------------
# CLI entry point
# ---------------------------------------------------------------------------
def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Bit-Crusher Serial Codec Emulator",
    )
    parser.add_argument("wav", help="Path to a 16-bit WAV file (mono or stereo)")
    parser.add_argument("--depth", type=int, default=None,
                        help="Starting bit depth 1-16 (default 16)")
    parser.add_argument("--factor", type=int, default=None,
                        help="Starting decimation factor 1-64 (default 1)")
    parser.add_argument("--preset", choices=sorted(PRESET_BY_NAME), default=None,
                        help="Start from a Program Change preset")
    parser.add_argument("--midi", action="append", default=[], metavar="FRAME:HEX",
                        help="MIDI bytes to apply at a frame index, e.g. 0:B01440")
    parser.add_argument("--cycle-accurate", action="store_true",
                        help="Also run the bit-level ADC -> device -> DAC loopback")
    parser.add_argument("--max-frames", type=int, default=DEFAULT_MAX_FRAMES,
                        help=f"Frames to run cycle-accurately, default {DEFAULT_MAX_FRAMES}")
    parser.add_argument("--midi-channel", type=int, default=None, choices=range(16),
                        metavar="0-15", help="Only obey MIDI on this channel (default omni)")
    parser.add_argument("--out", default=None, help="Write the rendered WAV here")
    return parser


def params_from_args(args: argparse.Namespace) -> EffectParameters:
    params = EffectParameters()
    if args.preset:
        params = EffectParameters.from_preset(PRESET_BY_NAME[args.preset])
    if args.depth is not None:
        params = params.with_bit_depth(args.depth)
    if args.factor is not None:
        params = params.with_decimation(args.factor)
    return params


def main(argv: list[str] | None = None) -> None:
    configure_logging()
    args = build_parser().parse_args(argv)

    try:
        midi_events = [parse_midi_event(m) for m in args.midi]
    except ValueError as exc:
        print(f"[!!] {exc}")
        sys.exit(2)

    ok = run_sim(
        wav_path=args.wav,
        params=params_from_args(args),
        midi_events=midi_events,
        cycle_accurate=args.cycle_accurate,
        max_frames=args.max_frames,
        out_path=args.out,
        midi_channel=args.midi_channel,
    )
    sys.exit(0 if ok else 1)


if __name__ == "__main__":
    main()
