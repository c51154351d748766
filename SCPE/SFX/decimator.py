# =============================================================================
# decimator.py - Sample-and-Hold Decimator
# =============================================================================
#
# Keeps one input out of every `factor` valid strobes and holds it in
# between.  With factor=4 and a ramp 0,1,2,...,7:
#
#   strobe    :  0  1  2  3  4  5  6  7
#   countdown :  3  2  1  0  3  2  1  0     (after the event)
#   held      :  0  0  0  0  4  4  4  4
#
# The held value changes exactly once per `factor` consecutive strobes.

from __future__ import annotations

import numpy as np

from SCPE.SMM.constants import DECIMATION_MIN, DECIMATION_MAX
from SCPE.SFX.params import clamp


class SampleDecimator:
    """Stateful hold-and-skip filter for one channel."""

    def __init__(self) -> None:
        self.reset()

    def reset(self) -> None:
        self._held      = 0
        self._countdown = 0
        self._primed    = False    # False until the first strobe after reset

    @property
    def held(self) -> int:
        return self._held

    def update(self, sample: int, valid_strobe: bool, factor: int) -> int:
        """
        Feed one input.  Only calls with valid_strobe=True count.

        Returns:
            The current held value, whether or not it changed.
        """
        if not valid_strobe:
            return self._held

        factor = clamp(factor, DECIMATION_MIN, DECIMATION_MAX)

        if factor == 1:
            self._held      = sample
            self._countdown = 0
            self._primed    = True
            return self._held

        # Factor lowered mid-window: apply the new rate within one window.
        if self._countdown > factor - 1:
            self._countdown = factor - 1

        if not self._primed or self._countdown == 0:
            self._held      = sample
            self._countdown = factor - 1
            self._primed    = True
        else:
            self._countdown -= 1
        return self._held


def decimate_array(samples: np.ndarray, factor: int) -> np.ndarray:
    """
    Whole-buffer sample-and-hold from reset.  Same result as feeding every
    element to a fresh SampleDecimator with valid_strobe=True.
    """
    samples = np.asarray(samples)
    factor = clamp(factor, DECIMATION_MIN, DECIMATION_MAX)
    if factor == 1 or samples.shape[0] == 0:
        return samples.copy()
    idx = (np.arange(samples.shape[0]) // factor) * factor
    return samples[idx]
