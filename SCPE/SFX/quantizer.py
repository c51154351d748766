# =============================================================================
# quantizer.py - Bit-Depth Quantizer
# =============================================================================
#
# Zeroes the (16 - depth) least-significant bits of a sample with an
# arithmetic right shift followed by a left shift.  Python's >> on negative
# ints is arithmetic, so the sign and relative magnitude survive:
#
#   quantize( 0x1234, 8) ==  0x1200
#   quantize(-1,      8) == -256      (0xFF00)
#   quantize( x,      1) in {0, -32768}   sign-only output
#
# No state, no failure modes.

from __future__ import annotations

import numpy as np

from SCPE.SMM.constants import WORD_BITS, BIT_DEPTH_MIN, BIT_DEPTH_MAX
from SCPE.SFX.params import clamp


def quantize(sample: int, depth: int) -> int:
    """Reduce a signed 16-bit sample to `depth` significant bits."""
    depth = clamp(depth, BIT_DEPTH_MIN, BIT_DEPTH_MAX)
    if depth >= WORD_BITS:
        return sample
    shift = WORD_BITS - depth
    return (sample >> shift) << shift


def quantize_array(samples: np.ndarray, depth: int) -> np.ndarray:
    """Vectorised quantize() over an int16 array.  Returns a new array."""
    samples = np.asarray(samples, dtype=np.int16)
    depth = clamp(depth, BIT_DEPTH_MIN, BIT_DEPTH_MAX)
    if depth >= WORD_BITS:
        return samples.copy()
    shift = WORD_BITS - depth
    # Shift in int32 so the left shift cannot overflow before the cast back.
    wide = samples.astype(np.int32)
    return ((wide >> shift) << shift).astype(np.int16)
