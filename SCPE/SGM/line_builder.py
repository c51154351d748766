# =============================================================================
# line_builder.py - Serial Line Builder
# =============================================================================
#
# Builds tick-by-tick (sck, ws, sd) line levels directly from words, without
# running a transmitter.  Used to drive a receiver with hand-made streams,
# including malformed ones (short phases, noise on ws).
#
# A "segment" is one ws phase:  (ws_level, word, slot_len)
#   ws_level : 0 = Left, 1 = Right
#   word     : 16-bit word to carry (signed samples are masked)
#   slot_len : bit periods the phase lasts (SLOT_BITS for a clean stream)
#
# Bit placement follows the link convention: the first period of a segment is
# the lead-in and carries the previous word's final bit; the word's MSB goes
# out in the second period.  A word whose segment is too short loses its
# trailing bits, exactly as it would on a real line.

from __future__ import annotations
from typing import Iterable, NamedTuple, Sequence

from SCPE.SMM.constants import (
    BCLK_DIVIDER, SLOT_BITS, WORD_BITS, LEAD_IN_BITS, WS_LEFT, WS_RIGHT,
)
from SCPE.SMM.types import StereoFrame, to_unsigned16


class LineSample(NamedTuple):
    sck: int
    ws:  int
    sd:  int


def frames_to_segments(
    frames: Iterable[StereoFrame],
    slot_bits: int = SLOT_BITS,
) -> list[tuple[int, int, int]]:
    """Left then Right segment for every frame, full slot length."""
    segments = []
    for f in frames:
        segments.append((WS_LEFT,  to_unsigned16(f.left),  slot_bits))
        segments.append((WS_RIGHT, to_unsigned16(f.right), slot_bits))
    return segments


def serialize_segments(
    segments: Sequence[tuple[int, int, int]],
    word_bits: int = WORD_BITS,
) -> list[tuple[int, int]]:
    """
    Lay segments out on the bit-period grid.

    Returns:
        One (ws, sd) pair per bit period.
    """
    total = sum(length for _, _, length in segments)
    ws_line = [0] * total
    sd_line = [0] * total

    start = 0
    for level, word, length in segments:
        for p in range(start, start + length):
            ws_line[p] = 1 if level else 0

        # Word bits may run into the next segment's lead-in, no further.
        limit = min(start + length + LEAD_IN_BITS, total)
        word &= (1 << word_bits) - 1
        for k in range(word_bits):
            p = start + LEAD_IN_BITS + k
            if p >= limit:
                break
            sd_line[p] = (word >> (word_bits - 1 - k)) & 1
        start += length

    return list(zip(ws_line, sd_line))


def expand_periods(
    periods: Sequence[tuple[int, int]],
    divider: int = BCLK_DIVIDER,
) -> list[LineSample]:
    """
    Expand bit periods to reference ticks.  Each period starts with sck low
    (the trailing edge where ws and sd change) and ends with sck high.
    """
    half = divider // 2
    ticks = []
    for ws, sd in periods:
        for t in range(divider):
            ticks.append(LineSample(1 if t >= half else 0, ws, sd))
    return ticks


def build_line(
    frames: Iterable[StereoFrame],
    divider: int = BCLK_DIVIDER,
    slot_bits: int = SLOT_BITS,
) -> list[LineSample]:
    """Clean stream carrying `frames`, ready to feed a receiver tick by tick."""
    return expand_periods(serialize_segments(frames_to_segments(frames, slot_bits)), divider)
