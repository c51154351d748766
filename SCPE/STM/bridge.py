# =============================================================================
# SCPE/STM/bridge.py - JSON / base64 PCM Bridge
# =============================================================================
#
# Entry points for callers that cannot hand over numpy arrays (a browser
# front end, a subprocess, the Flask server).  PCM travels as base64-encoded
# raw Int16 little-endian samples, channel-interleaved.
#
#   process_pcm(pcm_bytes, channels, depth, factor, midi) -> dict
#   process_pcm_json(request_json) -> str
#       request_json : JSON string {pcm_b64, channels, depth, factor, midi}
#                      midi is a list of "FRAME:HEX" strings (optional)
#       returns      : JSON string {pcm_b64, channels, n_frames,
#                                   bit_depth, decimation_factor}
#                      or {error, traceback} on failure
#
# Output is always stereo.
# =============================================================================

from __future__ import annotations
import base64
import json
import logging
import traceback
from typing import Iterable, Optional

import numpy as np

from SCPE.SFX.params import EffectParameters
from SCPE.STM.render import MidiEvent, parse_midi_event, render_frames

log = logging.getLogger(__name__)


def decode_pcm(pcm: bytes, channels: int) -> np.ndarray:
    """Raw Int16 LE bytes -> (N, channels) int16 array."""
    if channels < 1:
        raise ValueError(f"channels must be >= 1, got {channels!r}")
    frame_bytes = 2 * channels
    if len(pcm) % frame_bytes:
        raise ValueError(
            f"{len(pcm)} PCM bytes is not a whole number of {channels}-channel frames")
    return np.frombuffer(pcm, dtype="<i2").astype(np.int16).reshape(-1, channels)


def encode_pcm(samples: np.ndarray) -> bytes:
    return np.ascontiguousarray(samples, dtype="<i2").tobytes()


def process_pcm(
    pcm:      bytes,
    channels: int = 2,
    depth:    Optional[int] = None,
    factor:   Optional[int] = None,
    midi:     Optional[Iterable[MidiEvent]] = None,
) -> dict:
    """
    Render a raw PCM buffer through the bit-crusher.

    Parameters
    ----------
    pcm : bytes
        Interleaved Int16 LE samples.
    channels : int
        Channels in `pcm`; mono is duplicated, extra channels are dropped.
    depth, factor : int, optional
        Starting parameters (clamped into range).  Defaults to bypass.
    midi : list[(frame_index, bytes)], optional
        Control events applied while rendering.

    Returns
    -------
    dict  {pcm_b64, channels, n_frames, bit_depth, decimation_factor}
    """
    params = EffectParameters()
    if depth is not None:
        params = params.with_bit_depth(depth)
    if factor is not None:
        params = params.with_decimation(factor)

    samples = decode_pcm(pcm, channels)
    out, final = render_frames(samples, params, midi)
    log.info("bridge rendered %d frames, depth=%d factor=%d",
             out.shape[0], final.bit_depth, final.decimation_factor)

    return {
        "pcm_b64":           base64.b64encode(encode_pcm(out)).decode("ascii"),
        "channels":          2,
        "n_frames":          int(out.shape[0]),
        "bit_depth":         final.bit_depth,
        "decimation_factor": final.decimation_factor,
    }


def process_pcm_json(request_json: str) -> str:
    """
    Safe entry point.  Always returns a JSON string.
    On error returns {error, traceback}.
    """
    try:
        req = json.loads(request_json)
        pcm = base64.b64decode(req["pcm_b64"], validate=True)
        midi = [parse_midi_event(m) for m in req.get("midi") or ()]
        result = process_pcm(
            pcm,
            channels=int(req.get("channels", 2)),
            depth=req.get("depth"),
            factor=req.get("factor"),
            midi=midi,
        )
        return json.dumps(result)
    except Exception as exc:
        log.warning("bridge request failed: %s", exc)
        return json.dumps({
            "error":     str(exc),
            "traceback": traceback.format_exc(),
        })
