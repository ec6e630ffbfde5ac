"""Tests for the cinematic transition sequencer."""

import random

import pytest

from worldlines.config import TransitionConfig
from worldlines.interaction.transition import (
    PHASE_ORDER,
    Phase,
    TransitionSequencer,
    converge_value,
    ease_out_cubic,
)

# Phase boundaries with the default durations (ms from the jump).
REVEAL_AT = 500
SCRAMBLE_AT = 3500
CONVERGE_AT = 4500
SHRINK_AT = 5500
FADE_AT = 7500
DONE_AT = 9500


@pytest.fixture()
def sequencer(clock, rng):
    return TransitionSequencer(clock, TransitionConfig(), rng=rng)


class TestEasing:
    def test_ease_out_cubic_endpoints(self):
        assert ease_out_cubic(0.0) == 0.0
        assert ease_out_cubic(1.0) == 1.0
        assert ease_out_cubic(0.5) == pytest.approx(0.875)

    def test_ease_out_cubic_clamps(self):
        assert ease_out_cubic(-1.0) == 0.0
        assert ease_out_cubic(2.0) == 1.0

    def test_converge_value_exact_at_end(self):
        assert converge_value(0.0, 1.130205, 1.0) == 1.130205
        assert converge_value(0.0, 1.130205, 1.5) == 1.130205
        assert 0.0 < converge_value(0.0, 1.130205, 0.5) < 1.130205


class TestPhaseSequence:
    def test_phases_in_order(self, sequencer, clock):
        seen = []
        sequencer.subscribe(seen.append)
        sequencer.jump(1.130205)
        clock.advance(DONE_AT)
        assert seen == list(PHASE_ORDER) + [Phase.IDLE]

    def test_phase_boundaries(self, sequencer, clock):
        sequencer.jump(1.0)
        assert sequencer.phase is Phase.FLASH
        clock.advance(REVEAL_AT - 1)
        assert sequencer.phase is Phase.FLASH
        clock.advance(1)
        assert sequencer.phase is Phase.REVEAL
        clock.advance(SCRAMBLE_AT - REVEAL_AT)
        assert sequencer.phase is Phase.SCRAMBLE
        clock.advance(CONVERGE_AT - SCRAMBLE_AT)
        assert sequencer.phase is Phase.CONVERGE
        clock.advance(SHRINK_AT - CONVERGE_AT)
        assert sequencer.phase is Phase.SHRINK
        clock.advance(FADE_AT - SHRINK_AT)
        assert sequencer.phase is Phase.FADE_OUT
        clock.advance(DONE_AT - FADE_AT)
        assert sequencer.phase is Phase.IDLE
        assert sequencer.transition_complete

    def test_total_duration(self, sequencer):
        assert sequencer.total_duration == DONE_AT

    def test_active_flags(self, sequencer, clock):
        assert sequencer.transition_complete
        sequencer.jump(1.0)
        assert sequencer.active
        assert not sequencer.transition_complete
        assert sequencer.target == 1.0
        clock.advance(DONE_AT)
        assert not sequencer.active
        assert sequencer.target is None


class TestDisplay:
    def test_flash_hides_reading(self, sequencer, clock):
        sequencer.jump(1.0)
        assert sequencer.display.reading == ""
        clock.advance(100)
        assert sequencer.display.visible is False

    def test_reveal_shows_start_value_large(self, sequencer, clock):
        sequencer.set_value(0.5)
        sequencer.jump(1.0)
        clock.advance(REVEAL_AT)
        assert sequencer.display.reading == "0.500000"
        assert sequencer.display.scale == 4.0

    def test_converges_to_exact_target(self, sequencer, clock):
        sequencer.jump(1.130205)
        clock.advance(SHRINK_AT)
        assert sequencer.display.reading == "1.130205"
        assert sequencer.settled_value == 1.130205
        clock.advance(DONE_AT - SHRINK_AT)
        assert sequencer.display.reading == "1.130205"
        assert sequencer.display.opacity == 1.0
        assert sequencer.display.scale == 1.0

    def test_converge_moves_monotonically(self, sequencer, clock):
        sequencer.jump(2.0)
        clock.advance(CONVERGE_AT)
        values = []
        for _ in range(60):
            clock.advance(16)
            values.append(sequencer.display.shown)
        assert values == sorted(values)
        assert 0.0 < values[0] < 2.0

    def test_fade_out_lowers_opacity(self, sequencer, clock):
        sequencer.jump(1.0)
        clock.advance(FADE_AT + 1000)
        assert 0.0 < sequencer.display.opacity < 1.0
        assert sequencer.display.reading == "1.000000"


class TestScramble:
    def test_values_in_range_and_varied(self, sequencer, clock):
        sequencer.jump(1.0)
        clock.advance(SCRAMBLE_AT)
        samples = [sequencer.display.shown]
        for _ in range(19):
            clock.advance(50)
            samples.append(sequencer.display.shown)
        assert sequencer.phase is Phase.SCRAMBLE
        assert all(0.0 <= v <= 9.999999 for v in samples)
        assert len(set(samples)) > 10

    def test_consecutive_values_differ(self, sequencer, clock):
        sequencer.jump(1.0)
        clock.advance(SCRAMBLE_AT)
        previous = sequencer.display.shown
        for _ in range(19):
            clock.advance(50)
            assert sequencer.display.shown != previous
            previous = sequencer.display.shown

    def test_scramble_stops_at_converge(self, sequencer, clock):
        sequencer.jump(1.0)
        clock.advance(CONVERGE_AT)
        assert sequencer.display.shown == 0.0


class TestExclusivity:
    def test_new_jump_overrides_mid_scramble(self, sequencer, clock):
        phases = []
        sequencer.subscribe(phases.append)
        first = sequencer.jump(1.0)
        clock.advance(SCRAMBLE_AT + 300)
        second = sequencer.jump(3.0)
        assert second != first
        assert sequencer.phase is Phase.FLASH

        clock.advance(DONE_AT)
        assert sequencer.display.reading == "3.000000"
        assert sequencer.settled_value == 3.0
        assert phases.count(Phase.IDLE) == 1

    def test_first_target_never_shown(self, sequencer, clock):
        sequencer.jump(1.0)
        clock.advance(SCRAMBLE_AT + 300)
        sequencer.jump(3.0)
        for _ in range(DONE_AT // 16 + 2):
            clock.advance(16)
            assert sequencer.display.reading != "1.000000"
        assert sequencer.display.reading == "3.000000"

    def test_override_starts_from_settled_value(self, sequencer, clock):
        sequencer.jump(1.0)
        clock.advance(DONE_AT)
        sequencer.jump(2.0)
        clock.advance(1000)
        sequencer.jump(3.0)
        clock.advance(REVEAL_AT)
        assert sequencer.display.reading == "1.000000"


class TestCancel:
    def test_cancel_rests_on_settled_value(self, sequencer, clock):
        sequencer.set_value(0.5)
        sequencer.jump(1.0)
        clock.advance(SCRAMBLE_AT + 100)
        sequencer.cancel()
        assert not sequencer.active
        assert sequencer.display.reading == "0.500000"
        assert clock.idle

    def test_cancelled_run_never_resumes(self, sequencer, clock):
        phases = []
        sequencer.subscribe(phases.append)
        sequencer.jump(1.0)
        clock.advance(100)
        sequencer.cancel()
        clock.advance(DONE_AT)
        assert phases == [Phase.FLASH]
        assert sequencer.display.reading == "0.000000"

    def test_cancel_without_run_is_noop(self, sequencer):
        sequencer.cancel()
        assert sequencer.phase is Phase.IDLE


class TestConfigurable:
    def test_short_durations(self, clock):
        config = TransitionConfig(
            flash_ms=10, reveal_ms=10, scramble_ms=10, converge_ms=10, shrink_ms=10, fade_ms=10,
        )
        sequencer = TransitionSequencer(clock, config, rng=random.Random(0))
        sequencer.jump(4.091842)
        clock.advance(60)
        assert sequencer.transition_complete
        assert sequencer.display.reading == "4.091842"
