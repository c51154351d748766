# =============================================================================
# render.py - Frame-Level Renderer
# =============================================================================
#
# Runs whole sample buffers through the effects chain one StereoFrame at a
# time, without the serial link.  This is what the cycle-accurate pipeline
# produces once its latency is removed, at a fraction of the cost.
#
# MIDI events are (frame_index, bytes) pairs; an event is parsed just before
# the frame with that index is processed.
#
# With no MIDI events the parameters are constant and the numpy fast path is
# used (quantize_array + decimate_array).

from __future__ import annotations
from typing import Iterable, Optional, Sequence

import numpy as np

from SCPE.SMM.types import StereoFrame
from SCPE.SFX.params import EffectParameters, ParameterCell
from SCPE.SFX.chain import EffectsChain
from SCPE.SFX.quantizer import quantize_array
from SCPE.SFX.decimator import decimate_array
from SCPE.SCM.midi_parser import ControlMessageParser

MidiEvent = tuple[int, bytes]


def as_stereo(samples) -> np.ndarray:
    """
    Coerce to an (N, 2) int16 array.  Mono input is duplicated to both
    channels; more than two channels keeps the first two.
    """
    arr = np.asarray(samples)
    if arr.ndim == 2 and arr.shape[1] == 1:
        arr = arr[:, 0]
    if arr.ndim == 1:
        arr = np.column_stack([arr, arr])
    if arr.ndim != 2 or arr.shape[1] < 2:
        raise ValueError(f"expected (N,) or (N, >=2) samples, got shape {arr.shape}")
    arr = arr[:, :2]
    if arr.dtype != np.int16:
        if np.issubdtype(arr.dtype, np.floating):
            raise ValueError("samples must be integer PCM (read WAVs with dtype='int16')")
        arr = np.clip(arr, -32768, 32767).astype(np.int16)
    return arr


def parse_midi_event(text: str) -> MidiEvent:
    """
    Parse "FRAME:HEX", e.g. "4410:B01440" or "0:C0 02".  A bare hex string
    is an event at frame 0.
    """
    frame_part, sep, hex_part = text.partition(":")
    if not sep:
        frame_part, hex_part = "0", text
    try:
        frame = int(frame_part)
        data = bytes.fromhex(hex_part.replace(" ", ""))
    except ValueError as exc:
        raise ValueError(f"bad MIDI event {text!r}: {exc}") from None
    if frame < 0:
        raise ValueError(f"bad MIDI event {text!r}: negative frame index")
    return frame, data


def render_frames(
    samples,
    params: Optional[EffectParameters] = None,
    midi_events: Optional[Iterable[MidiEvent]] = None,
    midi_channel: Optional[int] = None,
) -> tuple[np.ndarray, EffectParameters]:
    """
    Render a buffer through the effects chain.

    Args:
        samples:      (N,) or (N, 2) integer PCM.
        params:       starting parameters (bypass when omitted).
        midi_events:  optional (frame_index, bytes) control events.
        midi_channel: MIDI channel filter, None = omni.

    Returns:
        (output (N, 2) int16 array, parameters in force after the last frame)
    """
    stereo = as_stereo(samples)
    params = params if params is not None else EffectParameters()
    events: Sequence[MidiEvent] = sorted(midi_events or (), key=lambda e: e[0])

    if not events:
        out = quantize_array(stereo, params.bit_depth)
        return decimate_array(out, params.decimation_factor), params

    cell   = ParameterCell(params)
    chain  = EffectsChain(cell)
    parser = ControlMessageParser(cell, channel=midi_channel)

    out = np.empty_like(stereo)
    ei = 0
    for i in range(stereo.shape[0]):
        while ei < len(events) and events[ei][0] <= i:
            parser.feed_bytes(events[ei][1])
            ei += 1
        f = chain.process(StereoFrame(int(stereo[i, 0]), int(stereo[i, 1])))
        out[i, 0] = f.left
        out[i, 1] = f.right

    # Events past the end still update the parameters.
    while ei < len(events):
        parser.feed_bytes(events[ei][1])
        ei += 1

    return out, cell.get()
