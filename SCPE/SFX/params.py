# =============================================================================
# params.py - Effect Parameters and the Parameter Cell
# =============================================================================
#
# The MIDI side writes parameters, the audio side reads them.  The two run in
# different timing domains and share nothing else.
#
# EffectParameters is immutable.  ParameterCell holds one reference to it and
# only offers whole-value get() / set(): rebinding an attribute is atomic, so
# the reader sees either the old pair or the new pair, never a mix.  A read
# that lands one sample before a write simply uses the old pair for that
# sample.

from __future__ import annotations
from dataclasses import dataclass

from SCPE.SMM.constants import (
    BIT_DEPTH_MIN, BIT_DEPTH_MAX,
    DECIMATION_MIN, DECIMATION_MAX,
    DEFAULT_BIT_DEPTH, DEFAULT_DECIMATION,
    PRESETS,
)


def clamp(value: int, lo: int, hi: int) -> int:
    return lo if value < lo else hi if value > hi else value


@dataclass(frozen=True)
class EffectParameters:
    bit_depth:         int = DEFAULT_BIT_DEPTH
    decimation_factor: int = DEFAULT_DECIMATION

    def __post_init__(self) -> None:
        # Out-of-range values are clamped, never rejected.
        object.__setattr__(
            self, "bit_depth", clamp(int(self.bit_depth), BIT_DEPTH_MIN, BIT_DEPTH_MAX))
        object.__setattr__(
            self, "decimation_factor",
            clamp(int(self.decimation_factor), DECIMATION_MIN, DECIMATION_MAX))

    @property
    def is_bypass(self) -> bool:
        return self.bit_depth == BIT_DEPTH_MAX and self.decimation_factor == DECIMATION_MIN

    def with_bit_depth(self, depth: int) -> "EffectParameters":
        return EffectParameters(depth, self.decimation_factor)

    def with_decimation(self, factor: int) -> "EffectParameters":
        return EffectParameters(self.bit_depth, factor)

    @classmethod
    def from_preset(cls, program: int) -> "EffectParameters":
        """Raises KeyError for programs without a preset."""
        _, depth, factor = PRESETS[program]
        return cls(depth, factor)


class ParameterCell:
    """Single-writer / single-reader holder for the current EffectParameters."""

    def __init__(self, initial: EffectParameters | None = None) -> None:
        self._value = initial if initial is not None else EffectParameters()
        self.writes = 0

    def get(self) -> EffectParameters:
        return self._value

    def set(self, value: EffectParameters) -> None:
        self._value = value
        self.writes += 1

    def __repr__(self) -> str:
        return f"ParameterCell({self._value!r})"
