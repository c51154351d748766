# =============================================================================
# uart.py - MIDI UART Line Decoder / Encoder
# =============================================================================
#
# MIDI travels as 8N1 serial at 31 250 baud: idle high, one start bit (0),
# eight data bits LSB first, one stop bit (1).
#
#   line  : 1 1 | 0 | d0 d1 d2 d3 d4 d5 d6 d7 | 1 | 1 ...
#           idle start        data             stop
#
# MidiUartReceiver.step() is called once per MIDI bit interval.  It runs in
# its own timing domain, independent of the audio reference tick.

from __future__ import annotations
import logging
from enum import Enum
from typing import Iterable, Optional

from SCPE.SMM.constants import UART_DATA_BITS

log = logging.getLogger(__name__)


class _UartState(Enum):
    IDLE      = 0
    DATA      = 1
    STOP      = 2
    WAIT_IDLE = 3   # after a framing error, until the line is high again


class MidiUartReceiver:
    """8N1 receiver, one call per bit interval."""

    def __init__(self) -> None:
        self.reset()

    def reset(self) -> None:
        self._state = _UartState.IDLE
        self._shift = 0
        self._bit   = 0
        self.bytes_received = 0
        self.framing_errors = 0

    def step(self, level: int) -> Optional[int]:
        """Sample the line for one bit interval.  Returns a byte when complete."""
        level = 1 if level else 0

        if self._state == _UartState.IDLE:
            if level == 0:
                self._state = _UartState.DATA
                self._shift = 0
                self._bit   = 0
            return None

        if self._state == _UartState.DATA:
            self._shift |= level << self._bit
            self._bit += 1
            if self._bit == UART_DATA_BITS:
                self._state = _UartState.STOP
            return None

        if self._state == _UartState.STOP:
            if level:
                self._state = _UartState.IDLE
                self.bytes_received += 1
                return self._shift
            self.framing_errors += 1
            log.debug("UART framing error, byte 0x%02X dropped", self._shift)
            self._state = _UartState.WAIT_IDLE
            return None

        # WAIT_IDLE
        if level:
            self._state = _UartState.IDLE
        return None

    def decode(self, levels: Iterable[int]) -> bytes:
        """Run a whole level list through the receiver."""
        out = bytearray()
        for level in levels:
            b = self.step(level)
            if b is not None:
                out.append(b)
        return bytes(out)


def encode_uart(
    data: Iterable[int],
    idle_bits: int = 1,
    ticks_per_bit: int = 1,
) -> list[int]:
    """
    Encode bytes into line levels.

    Args:
        data:          byte values 0-255.
        idle_bits:     idle (high) intervals before each byte.
        ticks_per_bit: repeat every level this many times, to drive a line
                       sampled on a faster clock (AudioPipeline.tick()).
    """
    levels: list[int] = []
    for byte in data:
        levels.extend([1] * idle_bits)
        levels.append(0)
        levels.extend((byte >> i) & 1 for i in range(UART_DATA_BITS))
        levels.append(1)
    if ticks_per_bit > 1:
        levels = [level for level in levels for _ in range(ticks_per_bit)]
    return levels
