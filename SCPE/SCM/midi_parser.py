# =============================================================================
# midi_parser.py - MIDI Control-Message Parser
# =============================================================================
#
# Byte-stream decoder with MIDI running status.  Only two message classes
# change anything:
#
#   Control Change  0xBn cc vv   cc=20 -> bit_depth         = vv // 8 + 1
#                                cc=21 -> decimation_factor = vv // 2 + 1
#   Program Change  0xCn pp      pp in PRESETS -> (bit_depth, factor)
#
# Every other channel message is still framed (so its data bytes are not
# mistaken for ours) and then dropped.
#
# STATE MACHINE:
#
#   AWAITING_STATUS ──status──► AWAITING_DATA1 ──data──► AWAITING_DATA2
#          ▲                      ▲    │ (1-byte msg)          │
#          │ 0xF0-0xF7            │    └──── complete ◄────────┘
#          │                      └──────── running status ────┘
#
#   - 0xF8-0xFF (realtime) is ignored anywhere and touches no state.
#   - Any other status byte abandons the message in progress.
#   - A data byte with no running status is ignored.
#
# Nothing here raises on bad input.

from __future__ import annotations
import logging
from enum import Enum
from typing import Iterable, NamedTuple, Optional

from SCPE.SMM.constants import (
    REALTIME_MIN, SYSTEM_MIN, CHANNEL_DATA_LENGTH,
    STATUS_CONTROL_CHANGE, STATUS_PROGRAM_CHANGE,
    CC_BIT_DEPTH, CC_DECIMATION, PRESETS,
)
from SCPE.SFX.params import EffectParameters, ParameterCell

log = logging.getLogger(__name__)


class MidiParserState(Enum):
    AWAITING_STATUS = "awaiting_status"
    AWAITING_DATA1  = "awaiting_data1"
    AWAITING_DATA2  = "awaiting_data2"


class MidiMessage(NamedTuple):
    status: int              # full status byte, e.g. 0xB3
    data1:  int
    data2:  Optional[int]    # None for one-data-byte messages

    @property
    def kind(self) -> int:
        return self.status >> 4

    @property
    def channel(self) -> int:
        return self.status & 0x0F


def depth_from_cc(value: int) -> int:
    return value // 8 + 1


def factor_from_cc(value: int) -> int:
    return value // 2 + 1


class ControlMessageParser:
    """
    Feeds parameter updates into a ParameterCell.

    Args:
        params:  cell to write; a private one is created when omitted.
        channel: 0-15 to listen on one MIDI channel, None for omni.
    """

    def __init__(
        self,
        params: Optional[ParameterCell] = None,
        channel: Optional[int] = None,
    ) -> None:
        if channel is not None and not 0 <= channel <= 15:
            raise ValueError(f"channel must be 0-15 or None, got {channel!r}")
        self.params  = params if params is not None else ParameterCell()
        self.channel = channel
        self.reset()

    def reset(self) -> None:
        self._state = MidiParserState.AWAITING_STATUS
        self._running_status: Optional[int] = None
        self._data1: Optional[int] = None

        self.messages         = 0
        self.ignored_bytes    = 0
        self.unknown_programs = 0

    @property
    def state(self) -> MidiParserState:
        return self._state

    @property
    def running_status(self) -> Optional[int]:
        return self._running_status

    # ── Byte input ───────────────────────────────────────────────────────────

    def feed(self, byte: int) -> Optional[MidiMessage]:
        """Consume one byte.  Returns the message it completed, if any."""
        byte &= 0xFF

        if byte >= REALTIME_MIN:
            return None

        if byte & 0x80:
            self._data1 = None
            if byte >= SYSTEM_MIN:
                # System common / SysEx: cancels running status.
                self._running_status = None
                self._state = MidiParserState.AWAITING_STATUS
            else:
                self._running_status = byte
                self._state = MidiParserState.AWAITING_DATA1
            return None

        if self._state == MidiParserState.AWAITING_STATUS or self._running_status is None:
            self.ignored_bytes += 1
            return None

        if self._state == MidiParserState.AWAITING_DATA1:
            if CHANNEL_DATA_LENGTH[self._running_status >> 4] == 1:
                return self._complete(MidiMessage(self._running_status, byte, None))
            self._data1 = byte
            self._state = MidiParserState.AWAITING_DATA2
            return None

        # AWAITING_DATA2
        return self._complete(MidiMessage(self._running_status, self._data1, byte))

    def feed_bytes(self, data: Iterable[int]) -> list[MidiMessage]:
        """Consume a byte string; return every completed message in order."""
        out = []
        for b in data:
            msg = self.feed(b)
            if msg is not None:
                out.append(msg)
        return out

    # ── Message dispatch ─────────────────────────────────────────────────────

    def _complete(self, msg: MidiMessage) -> MidiMessage:
        # Running status: further data bytes reuse the same status.
        self._state = MidiParserState.AWAITING_DATA1
        self._data1 = None
        self.messages += 1

        if self.channel is not None and msg.channel != self.channel:
            return msg

        if msg.kind == STATUS_CONTROL_CHANGE:
            self._apply_control_change(msg.data1, msg.data2)
        elif msg.kind == STATUS_PROGRAM_CHANGE:
            self._apply_program_change(msg.data1)
        return msg

    def _apply_control_change(self, controller: int, value: int) -> None:
        current = self.params.get()
        if controller == CC_BIT_DEPTH:
            self.params.set(current.with_bit_depth(depth_from_cc(value)))
        elif controller == CC_DECIMATION:
            self.params.set(current.with_decimation(factor_from_cc(value)))

    def _apply_program_change(self, program: int) -> None:
        if program not in PRESETS:
            self.unknown_programs += 1
            log.debug("program %d has no preset; parameters unchanged", program)
            return
        self.params.set(EffectParameters.from_preset(program))
        log.debug("program %d -> preset %r", program, PRESETS[program][0])
