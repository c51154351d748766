import numpy as np
import pytest

from SCPE.SMM.constants import PRESETS
from SCPE.SMM.types import StereoFrame, to_signed16, to_unsigned16
from SCPE.SFX.params import EffectParameters, ParameterCell
from SCPE.SFX.quantizer import quantize, quantize_array
from SCPE.SFX.decimator import SampleDecimator, decimate_array
from SCPE.SFX.chain import EffectsChain


# Helpers


EDGE_SAMPLES: list[int] = [-32768, -32767, -256, -1, 0, 1, 255, 0x1234, 0x5A5A, 32767]


def feed(dec: SampleDecimator, samples, factor: int) -> list[int]:
    """Feed every sample as a valid strobe and collect the held values."""
    return [dec.update(s, True, factor) for s in samples]


class TestSampleConversions:
    """Tests for the signed / wire-word helpers."""

    def test_negative_round_trip(self) -> None:
        assert to_unsigned16(-1) == 0xFFFF
        assert to_signed16(0xFFFF) == -1

    def test_extremes(self) -> None:
        assert to_signed16(0x8000) == -32768
        assert to_signed16(0x7FFF) == 32767

    def test_word_for_uses_phase(self) -> None:
        from SCPE.SMM.types import ChannelPhase
        f = StereoFrame(-2, 3)
        assert f.word_for(ChannelPhase.LEFT) == 0xFFFE
        assert f.word_for(ChannelPhase.RIGHT) == 3


class TestEffectParameters:
    """Tests for parameter clamping and presets."""

    def test_defaults_are_bypass(self) -> None:
        assert EffectParameters().is_bypass

    def test_out_of_range_values_are_clamped(self) -> None:
        p = EffectParameters(bit_depth=0, decimation_factor=500)
        assert p.bit_depth == 1
        assert p.decimation_factor == 64

    def test_with_helpers_clamp(self) -> None:
        p = EffectParameters().with_bit_depth(40).with_decimation(-3)
        assert (p.bit_depth, p.decimation_factor) == (16, 1)

    @pytest.mark.parametrize("program", sorted(PRESETS))
    def test_from_preset_matches_table(self, program: int) -> None:
        _, depth, factor = PRESETS[program]
        p = EffectParameters.from_preset(program)
        assert (p.bit_depth, p.decimation_factor) == (depth, factor)

    def test_from_preset_unknown_raises(self) -> None:
        with pytest.raises(KeyError):
            EffectParameters.from_preset(77)

    def test_parameters_are_immutable(self) -> None:
        p = EffectParameters()
        with pytest.raises(AttributeError):
            p.bit_depth = 3  # type: ignore[misc]

    def test_cell_swaps_whole_value(self) -> None:
        cell = ParameterCell()
        new = EffectParameters(4, 8)
        cell.set(new)
        assert cell.get() is new
        assert cell.writes == 1


class TestQuantizer:
    """Tests for bit-depth reduction."""

    def test_bypass_passes_sample_unchanged(self) -> None:
        assert quantize(0x1234, 16) == 0x1234

    def test_depth_8_zeroes_low_byte(self) -> None:
        assert quantize(0x1234, 8) == 0x1200

    def test_negative_keeps_sign(self) -> None:
        assert quantize(-1, 8) == -256
        assert quantize(-32768, 4) == -32768

    def test_depth_1_is_sign_only(self) -> None:
        assert {quantize(s, 1) for s in EDGE_SAMPLES} == {0, -32768}

    @pytest.mark.parametrize("depth", range(1, 17))
    def test_low_bits_are_zero(self, depth: int) -> None:
        low = (1 << (16 - depth)) - 1
        for s in EDGE_SAMPLES:
            assert quantize(s, depth) & low == 0

    def test_out_of_range_depth_is_clamped(self) -> None:
        assert quantize(0x1234, 0) == quantize(0x1234, 1)
        assert quantize(0x1234, 99) == 0x1234

    @pytest.mark.parametrize("depth", [1, 5, 8, 12, 16])
    def test_array_matches_scalar(self, depth: int) -> None:
        samples = np.array(EDGE_SAMPLES, dtype=np.int16)
        expected = np.array([quantize(int(s), depth) for s in samples], dtype=np.int16)
        np.testing.assert_array_equal(quantize_array(samples, depth), expected)

    def test_array_returns_new_array(self) -> None:
        samples = np.array([1, 2, 3], dtype=np.int16)
        out = quantize_array(samples, 16)
        out[0] = 99
        assert samples[0] == 1


class TestSampleDecimator:
    """Tests for sample-and-hold decimation."""

    def test_factor_4_ramp(self) -> None:
        assert feed(SampleDecimator(), range(8), 4) == [0, 0, 0, 0, 4, 4, 4, 4]

    def test_factor_1_tracks_input(self) -> None:
        assert feed(SampleDecimator(), [5, -3, 7], 1) == [5, -3, 7]

    def test_invalid_strobe_holds(self) -> None:
        dec = SampleDecimator()
        dec.update(10, True, 2)
        assert dec.update(99, False, 2) == 10
        assert dec.update(99, False, 1) == 10

    @pytest.mark.parametrize("factor", [2, 3, 7, 64])
    def test_held_value_changes_once_per_window(self, factor: int) -> None:
        held = feed(SampleDecimator(), range(1, 200), factor)
        changes = [i for i in range(1, len(held)) if held[i] != held[i - 1]]
        assert all(i % factor == 0 for i in changes)
        assert len(changes) == (len(held) - 1) // factor

    def test_factor_lowered_mid_window(self) -> None:
        dec = SampleDecimator()
        held = feed(dec, range(3), 8) + feed(dec, [3, 4], 2)
        assert held == [0, 0, 0, 0, 4]

    def test_factor_is_clamped(self) -> None:
        assert feed(SampleDecimator(), range(3), 0) == [0, 1, 2]

    def test_reset_restarts_window(self) -> None:
        dec = SampleDecimator()
        feed(dec, range(3), 4)
        dec.reset()
        assert dec.update(42, True, 4) == 42

    @pytest.mark.parametrize("factor", [1, 3, 4, 64])
    def test_array_matches_scalar(self, factor: int) -> None:
        samples = np.arange(-50, 150, dtype=np.int16)
        expected = feed(SampleDecimator(), samples.tolist(), factor)
        np.testing.assert_array_equal(decimate_array(samples, factor), expected)

    def test_array_stereo_keeps_frames_together(self) -> None:
        samples = np.column_stack([np.arange(6), -np.arange(6)]).astype(np.int16)
        out = decimate_array(samples, 3)
        np.testing.assert_array_equal(out[:, 0], [0, 0, 0, 3, 3, 3])
        np.testing.assert_array_equal(out[:, 1], [0, 0, 0, -3, -3, -3])


class TestEffectsChain:
    """Tests for the quantize -> decimate chain."""

    def test_bypass(self) -> None:
        chain = EffectsChain()
        assert chain.process(StereoFrame(0x1234, -7)) == StereoFrame(0x1234, -7)

    def test_quantize_then_decimate(self) -> None:
        chain = EffectsChain(ParameterCell(EffectParameters(8, 2)))
        out = [chain.process(StereoFrame(0x1234 + i, -0x1234 - i)) for i in range(3)]
        assert out[0] == StereoFrame(0x1200, -0x1300)
        assert out[1] == out[0]
        assert out[2] == StereoFrame(0x1200, -0x1300)

    @pytest.mark.parametrize("depth,factor", [(1, 1), (3, 5), (8, 4), (16, 64)])
    def test_silence_stays_silent(self, depth: int, factor: int) -> None:
        chain = EffectsChain(ParameterCell(EffectParameters(depth, factor)))
        for _ in range(20):
            assert chain.process(StereoFrame(0, 0)) == StereoFrame(0, 0)

    def test_parameter_change_applies_on_next_frame(self) -> None:
        cell = ParameterCell()
        chain = EffectsChain(cell)
        assert chain.process(StereoFrame(0x1234, 0)).left == 0x1234
        cell.set(EffectParameters(8, 1))
        assert chain.process(StereoFrame(0x1234, 0)).left == 0x1200

    def test_step_only_works_on_valid(self) -> None:
        chain = EffectsChain()
        out = chain.step(StereoFrame(5, 5), False)
        assert not out.ready
        out = chain.step(StereoFrame(5, 5), True)
        assert out.ready
        assert out.frame == StereoFrame(5, 5)
        assert chain.frames_processed == 1

    def test_reset_clears_held_frame(self) -> None:
        chain = EffectsChain()
        chain.process(StereoFrame(9, 9))
        chain.reset()
        assert chain.outputs.frame == StereoFrame.silent()
        assert not chain.outputs.ready
