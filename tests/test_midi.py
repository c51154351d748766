import pytest

from SCPE.SFX.params import EffectParameters, ParameterCell
from SCPE.SCM.midi_parser import (
    ControlMessageParser, MidiMessage, MidiParserState,
    depth_from_cc, factor_from_cc,
)
from SCPE.SCM.uart import MidiUartReceiver, encode_uart


def params_after(data, **kwargs) -> EffectParameters:
    parser = ControlMessageParser(**kwargs)
    parser.feed_bytes(data)
    return parser.params.get()


class TestControlChangeMapping:
    """Tests for CC value scaling."""

    def test_depth_cc_extremes(self) -> None:
        assert params_after([0xB0, 20, 0]).bit_depth == 1
        assert params_after([0xB0, 20, 127]).bit_depth == 16

    def test_factor_cc_extremes(self) -> None:
        assert params_after([0xB0, 21, 0]).decimation_factor == 1
        assert params_after([0xB0, 21, 127]).decimation_factor == 64

    def test_scaling_is_monotonic_and_in_range(self) -> None:
        depths = [depth_from_cc(v) for v in range(128)]
        factors = [factor_from_cc(v) for v in range(128)]
        assert depths == sorted(depths) and 1 <= min(depths) and max(depths) == 16
        assert factors == sorted(factors) and 1 <= min(factors) and max(factors) == 64

    def test_other_controllers_are_ignored(self) -> None:
        assert params_after([0xB0, 7, 0]) == EffectParameters()

    def test_cc_only_touches_its_parameter(self) -> None:
        p = params_after([0xB0, 21, 6, 0xB0, 20, 56])
        assert (p.bit_depth, p.decimation_factor) == (8, 4)


class TestProgramChange:
    """Tests for preset recall."""

    def test_medium_crush(self) -> None:
        p = params_after([0xC0, 2])
        assert (p.bit_depth, p.decimation_factor) == (8, 4)

    def test_unknown_program_is_ignored(self) -> None:
        parser = ControlMessageParser(ParameterCell(EffectParameters(5, 5)))
        parser.feed_bytes([0xC0, 100])
        assert parser.params.get() == EffectParameters(5, 5)
        assert parser.unknown_programs == 1

    def test_program_zero_restores_bypass(self) -> None:
        assert params_after([0xC0, 4, 0xC0, 0]).is_bypass


class TestRunningStatus:
    """Tests for the parser state machine."""

    def test_data_bytes_reuse_status(self) -> None:
        parser = ControlMessageParser()
        msgs = parser.feed_bytes([0xB0, 20, 0, 21, 10, 20, 127])
        assert len(msgs) == 3
        assert all(m.status == 0xB0 for m in msgs)
        p = parser.params.get()
        assert (p.bit_depth, p.decimation_factor) == (16, 6)

    def test_program_change_running_status(self) -> None:
        parser = ControlMessageParser()
        msgs = parser.feed_bytes([0xC0, 1, 3])
        assert [m.data1 for m in msgs] == [1, 3]
        assert parser.params.get() == EffectParameters.from_preset(3)

    def test_state_sequence(self) -> None:
        parser = ControlMessageParser()
        assert parser.state == MidiParserState.AWAITING_STATUS
        parser.feed(0xB0)
        assert parser.state == MidiParserState.AWAITING_DATA1
        parser.feed(20)
        assert parser.state == MidiParserState.AWAITING_DATA2
        msg = parser.feed(64)
        assert msg == MidiMessage(0xB0, 20, 64)
        assert parser.state == MidiParserState.AWAITING_DATA1
        assert parser.running_status == 0xB0

    def test_orphan_data_bytes_are_ignored(self) -> None:
        parser = ControlMessageParser()
        assert parser.feed_bytes([20, 0, 5]) == []
        assert parser.ignored_bytes == 3
        assert parser.params.get() == EffectParameters()

    def test_realtime_bytes_do_not_break_messages(self) -> None:
        p = params_after([0xB0, 0xF8, 20, 0xFE, 0])
        assert p.bit_depth == 1

    def test_sysex_cancels_running_status(self) -> None:
        parser = ControlMessageParser()
        parser.feed_bytes([0xB0, 20, 0, 0xF0, 0x7D, 0x01, 0xF7, 20, 127])
        assert parser.running_status is None
        assert parser.params.get().bit_depth == 1

    def test_new_status_abandons_partial_message(self) -> None:
        p = params_after([0xB0, 20, 0xC0, 2])
        assert (p.bit_depth, p.decimation_factor) == (8, 4)

    def test_other_channel_messages_are_framed(self) -> None:
        # Note-on data bytes must not be read as a CC.
        msgs = ControlMessageParser().feed_bytes([0x90, 20, 0, 0xD0, 21])
        assert [m.kind for m in msgs] == [0x9, 0xD]

    def test_reset_clears_running_status(self) -> None:
        parser = ControlMessageParser()
        parser.feed_bytes([0xB0, 20])
        parser.reset()
        assert parser.state == MidiParserState.AWAITING_STATUS
        assert parser.feed_bytes([0]) == []


class TestChannelFilter:
    """Tests for single-channel listening."""

    def test_other_channel_is_ignored(self) -> None:
        assert params_after([0xB3, 20, 0], channel=2) == EffectParameters()

    def test_own_channel_applies(self) -> None:
        assert params_after([0xB2, 20, 0], channel=2).bit_depth == 1

    def test_bad_channel_rejected(self) -> None:
        with pytest.raises(ValueError):
            ControlMessageParser(channel=16)


class TestMidiUart:
    """Tests for the 8N1 line decoder."""

    def test_encode_layout(self) -> None:
        assert encode_uart([0x01], idle_bits=1) == [1, 0, 1, 0, 0, 0, 0, 0, 0, 0, 1]

    def test_decode_message(self) -> None:
        data = bytes([0xB0, 20, 127, 0xC0, 4])
        rx = MidiUartReceiver()
        assert rx.decode(encode_uart(data) + [1]) == data
        assert rx.bytes_received == 5

    def test_back_to_back_bytes(self) -> None:
        data = bytes([0xFF, 0x00, 0x55])
        assert MidiUartReceiver().decode(encode_uart(data, idle_bits=0)) == data

    def test_framing_error_drops_byte(self) -> None:
        line = encode_uart([0x42])
        line[-1] = 0                       # broken stop bit
        line += [1, 1] + encode_uart([0x43])
        rx = MidiUartReceiver()
        assert rx.decode(line) == bytes([0x43])
        assert rx.framing_errors == 1

    def test_expanded_line_repeats_levels(self) -> None:
        line = encode_uart([0xA5], ticks_per_bit=3)
        assert len(line) == 3 * 11
        assert line[3:6] == [0, 0, 0]
