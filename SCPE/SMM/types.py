# =============================================================================
# types.py - Samples, Stereo Frames and Channel Phases
# =============================================================================
#
# A Sample is a plain Python int in [SAMPLE_MIN, SAMPLE_MAX].  On the wire it
# travels as an unsigned 16-bit word; to_unsigned16() / to_signed16() are the
# only conversions between the two views.

from __future__ import annotations
from enum import IntEnum
from typing import NamedTuple

from SCPE.SMM.constants import WORD_MASK, SIGN_BIT, WS_LEFT, WS_RIGHT


def to_signed16(word: int) -> int:
    """Interpret the low 16 bits of `word` as a two's-complement sample."""
    word &= WORD_MASK
    return word - (1 << 16) if word & SIGN_BIT else word


def to_unsigned16(sample: int) -> int:
    """Return the 16-bit wire word for a signed sample."""
    return sample & WORD_MASK


class ChannelPhase(IntEnum):
    """Which channel the link is currently carrying.  Value = ws level."""

    LEFT  = WS_LEFT
    RIGHT = WS_RIGHT

    @classmethod
    def from_level(cls, level: int) -> "ChannelPhase":
        return cls.RIGHT if level else cls.LEFT


class StereoFrame(NamedTuple):
    left:  int           # signed 16-bit sample
    right: int           # signed 16-bit sample
    valid: bool = True   # False = placeholder, never received or produced

    @classmethod
    def silent(cls) -> "StereoFrame":
        """All-zero placeholder frame used after reset."""
        return cls(0, 0, False)

    def word_for(self, phase: ChannelPhase) -> int:
        """Wire word (unsigned 16-bit) carried during `phase`."""
        sample = self.left if phase == ChannelPhase.LEFT else self.right
        return to_unsigned16(sample)

    def map(self, fn) -> "StereoFrame":
        """Apply `fn` to both channels, keeping the valid flag."""
        return StereoFrame(fn(self.left), fn(self.right), self.valid)
