import pytest

from SCPE.SMM.constants import BCLK_DIVIDER, SLOT_BITS, TICKS_PER_FRAME, WS_LEFT, WS_RIGHT
from SCPE.SMM.types import ChannelPhase, StereoFrame
from SCPE.SGM.frame_clock import FrameClockGenerator
from SCPE.SGM.serial_tx import SerialTransmitter
from SCPE.SGM.line_builder import (
    build_line, expand_periods, frames_to_segments, serialize_segments,
)
from SCPE.SVM.serial_rx import SerialReceiver
from SCPE.SVM.loopback import loopback_frames


# Helpers


def make_frames(n: int) -> list[StereoFrame]:
    """Distinct frames that exercise sign bits and both byte halves."""
    return [StereoFrame((0x1357 * (i + 1)) % 65536 - 32768, 0x0F0F - 257 * i) for i in range(n)]


def receive(line) -> tuple[list[StereoFrame], SerialReceiver]:
    rx = SerialReceiver()
    got = []
    for s in line:
        out = rx.step(s.sck, s.ws, s.sd)
        if out.valid:
            got.append(out.frame)
    return got, rx


class TestFrameClock:
    """Tests for the shared-counter clock."""

    def test_frame_length(self) -> None:
        clk = FrameClockGenerator()
        assert clk.ticks_per_frame == TICKS_PER_FRAME
        trace = clk.run(TICKS_PER_FRAME)
        assert clk.outputs == trace[0]

    def test_sck_is_square_wave(self) -> None:
        trace = FrameClockGenerator().run(BCLK_DIVIDER * 3)
        levels = [o.sck for o in trace]
        half = BCLK_DIVIDER // 2
        assert levels == ([0] * half + [1] * half) * 3

    def test_ws_changes_on_bit_boundary_only(self) -> None:
        trace = FrameClockGenerator().run(TICKS_PER_FRAME * 3)
        for prev, cur in zip(trace, trace[1:]):
            if prev.ws != cur.ws:
                assert cur.count % BCLK_DIVIDER == 0
                assert prev.sck == 1 and cur.sck == 0

    def test_slot_holds_slot_bits_periods(self) -> None:
        trace = FrameClockGenerator().run(TICKS_PER_FRAME)
        left = [o for o in trace if o.ws == WS_LEFT]
        right = [o for o in trace if o.ws == WS_RIGHT]
        assert len(left) == len(right) == SLOT_BITS * BCLK_DIVIDER

    @pytest.mark.parametrize("divider,slot_bits", [(3, 16), (0, 16), (8, 0)])
    def test_bad_configuration_rejected(self, divider: int, slot_bits: int) -> None:
        with pytest.raises(ValueError):
            FrameClockGenerator(divider, slot_bits)

    def test_reset(self) -> None:
        clk = FrameClockGenerator()
        clk.run(77)
        clk.reset()
        assert clk.outputs.count == 0


class TestSerialTransmitter:
    """Tests for the request handshake and starvation policy."""

    def run_unanswered(self, ticks: int) -> tuple[SerialTransmitter, int]:
        clk = FrameClockGenerator()
        tx = SerialTransmitter()
        requests = 0
        for _ in range(ticks):
            c = clk.outputs
            clk.step()
            if tx.step(c.sck, c.ws).request:
                requests += 1
        return tx, requests

    def test_one_request_per_frame(self) -> None:
        _, requests = self.run_unanswered(TICKS_PER_FRAME * 4 + 10)
        assert requests == 4

    def test_starvation_repeats_last_frame(self) -> None:
        tx, _ = self.run_unanswered(TICKS_PER_FRAME * 4 + 10)
        assert tx.stale_repeats == 4
        assert tx.frames_latched == 0
        assert tx.latched == StereoFrame.silent()

    def test_answer_is_latched(self) -> None:
        clk = FrameClockGenerator()
        tx = SerialTransmitter()
        frame = StereoFrame(100, -100)
        for _ in range(TICKS_PER_FRAME * 2):
            c = clk.outputs
            answer = tx.outputs.request
            clk.step()
            tx.step(c.sck, c.ws, frame if answer else None, answer)
        assert tx.latched == frame
        assert tx.frames_latched == 1

    def test_sd_only_changes_on_falling_edge(self) -> None:
        clk = FrameClockGenerator()
        tx = SerialTransmitter()
        prev_sd = tx.outputs.sd
        for _ in range(TICKS_PER_FRAME * 3):
            c = clk.outputs
            answer = tx.outputs.request
            clk.step()
            out = tx.step(c.sck, c.ws, StereoFrame(-1, 0x5555), answer)
            if out.sd != prev_sd:
                # Committed sck of the step input was low after being high.
                assert c.sck == 0
            prev_sd = out.sd


class TestSerialReceiver:
    """Tests for word assembly, framing and resync."""

    def test_clean_line(self) -> None:
        frames = make_frames(6)
        got, rx = receive(build_line(frames))
        # First Left precedes sync; last Right never sees a closing edge.
        assert got == frames[1:-1]
        assert rx.dropped_words == 0

    def test_short_phase_is_dropped_without_drift(self) -> None:
        frames = make_frames(5)
        segments = frames_to_segments(frames)
        level, word, _ = segments[4]                  # frame 2, Left
        segments[4] = (level, word, 11)
        segments.append((WS_LEFT, 0, SLOT_BITS))      # closes frame 4
        got, rx = receive(expand_periods(serialize_segments(segments)))
        assert got == [frames[1], frames[3], frames[4]]
        assert rx.dropped_words == 1

    def test_long_phase_is_dropped(self) -> None:
        frames = make_frames(4)
        segments = frames_to_segments(frames)
        level, word, _ = segments[3]                  # frame 1, Right
        segments[3] = (level, word, SLOT_BITS + 3)
        segments.append((WS_LEFT, 0, SLOT_BITS))
        got, rx = receive(expand_periods(serialize_segments(segments)))
        assert got == [frames[2], frames[3]]
        assert rx.dropped_words == 1

    def test_right_without_left_is_not_emitted(self) -> None:
        segments = [(WS_LEFT, 1, SLOT_BITS), (WS_RIGHT, 2, SLOT_BITS),
                    (WS_LEFT, 3, 5), (WS_RIGHT, 4, SLOT_BITS), (WS_LEFT, 0, SLOT_BITS)]
        got, rx = receive(expand_periods(serialize_segments(segments)))
        assert got == []
        assert rx.frames_received == 0

    def test_state_after_sync(self) -> None:
        rx = SerialReceiver()
        for s in build_line(make_frames(1))[: TICKS_PER_FRAME // 2 + BCLK_DIVIDER]:
            rx.step(s.sck, s.ws, s.sd)
        assert rx.synced
        assert rx.phase == ChannelPhase.RIGHT
        assert rx.position == 0

    def test_valid_is_one_tick_pulse(self) -> None:
        rx = SerialReceiver()
        pulses = [rx.step(s.sck, s.ws, s.sd).valid for s in build_line(make_frames(4))]
        assert sum(pulses) == 2
        for a, b in zip(pulses, pulses[1:]):
            assert not (a and b)


class TestLoopback:
    """Transmitter and receiver on one clock."""

    @pytest.mark.parametrize("n", [1, 5, 17])
    def test_frames_survive_the_link(self, n: int) -> None:
        frames = make_frames(n)
        received, tx, rx = loopback_frames(frames)
        assert len(received) >= n - 1
        assert received == frames[: len(received)]
        assert rx.dropped_words == 0
        assert tx.frames_latched == n

    def test_extremes(self) -> None:
        frames = [StereoFrame(-32768, 32767), StereoFrame(32767, -32768),
                  StereoFrame(0, -1), StereoFrame(1, 0)]
        received, _, _ = loopback_frames(frames)
        assert received == frames[: len(received)]
        assert len(received) >= 3

    def test_silence_stays_silent(self) -> None:
        frames = [StereoFrame(0, 0)] * 8
        received, _, _ = loopback_frames(frames)
        assert received and all(f == StereoFrame(0, 0) for f in received)

    def test_slower_bit_clock(self) -> None:
        frames = make_frames(4)
        received, _, rx = loopback_frames(frames, divider=16)
        assert received == frames[: len(received)]
        assert rx.dropped_words == 0
