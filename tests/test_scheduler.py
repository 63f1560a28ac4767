from __future__ import annotations

import random

import pytest

from term_metronome.config import MAX_BEATS, MAX_TEMPO, MIN_BEATS, MIN_TEMPO
from term_metronome.scheduler import (
    Accent,
    Action,
    Quit,
    ScheduleTick,
    SessionState,
    Tick,
    TickScheduler,
    TriggerSound,
    beat_interval,
)


def _start(scheduler, state):
    state, effects = scheduler.update(state, Action.TOGGLE_PLAY)
    return state, effects


def test_tempo_stays_in_bounds_for_random_actions():
    scheduler = TickScheduler()
    state = scheduler.initial_state()
    rng = random.Random(7)
    actions = [Action.BPM_UP, Action.BPM_DOWN, Action.BPM_UP_FIVE, Action.BPM_DOWN_FIVE]
    for _ in range(2000):
        # long runs in one direction so both bounds get hit
        action = rng.choice(actions)
        for _ in range(rng.randint(1, 60)):
            state, effects = scheduler.update(state, action)
            assert effects == []
            assert MIN_TEMPO <= state.tempo <= MAX_TEMPO


def test_beats_stay_in_bounds_for_random_actions():
    scheduler = TickScheduler()
    state, _ = _start(scheduler, scheduler.initial_state())
    rng = random.Random(11)
    for _ in range(500):
        action = rng.choice([Action.BEATS_UP, Action.BEATS_DOWN, Tick(state.generation)])
        if isinstance(action, Tick):
            action = Tick(state.generation)
        state, _ = scheduler.update(state, action)
        assert MIN_BEATS <= state.beats_per_measure <= MAX_BEATS
        assert 0 <= state.current_beat <= state.beats_per_measure


def test_start_schedules_immediate_tick_with_new_generation():
    scheduler = TickScheduler()
    state = SessionState(tempo=60, beats_per_measure=4)
    state, effects = scheduler.update(state, Action.TOGGLE_PLAY)
    assert state.playing
    assert state.current_beat == 0
    assert state.generation == 1
    assert effects == [ScheduleTick(0.0, 1)]


def test_first_tick_plays_strong_accent_and_reschedules():
    scheduler = TickScheduler()
    state, _ = _start(scheduler, SessionState(tempo=60, beats_per_measure=4))
    state, effects = scheduler.update(state, Tick(1))
    assert state.current_beat == 1
    assert effects == [TriggerSound(Accent.STRONG), ScheduleTick(1.0, 1)]


def test_beats_cycle_through_measure():
    scheduler = TickScheduler()
    state, _ = _start(scheduler, SessionState(tempo=120, beats_per_measure=3))
    seen = []
    accents = []
    for _ in range(7):
        state, effects = scheduler.update(state, Tick(state.generation))
        seen.append(state.current_beat)
        accents.append(effects[0].accent)
    assert seen == [1, 2, 3, 1, 2, 3, 1]
    assert accents == [
        Accent.STRONG,
        Accent.WEAK,
        Accent.WEAK,
        Accent.STRONG,
        Accent.WEAK,
        Accent.WEAK,
        Accent.STRONG,
    ]


def test_last_beat_wraps_to_one():
    scheduler = TickScheduler()
    state = SessionState(tempo=60, beats_per_measure=4, current_beat=4, playing=True, generation=3)
    state, effects = scheduler.update(state, Tick(3))
    assert state.current_beat == 1
    assert TriggerSound(Accent.STRONG) in effects


def test_uniform_sound_without_accent():
    scheduler = TickScheduler(accent=False)
    state, _ = _start(scheduler, SessionState(beats_per_measure=2))
    for _ in range(4):
        state, effects = scheduler.update(state, Tick(state.generation))
        assert effects[0] == TriggerSound(Accent.WEAK)


def test_stale_tick_is_a_no_op():
    scheduler = TickScheduler()
    state = SessionState(tempo=90, beats_per_measure=4, current_beat=2, playing=True, generation=5)
    new_state, effects = scheduler.update(state, Tick(4))
    assert new_state == state
    assert effects == []


def test_tick_while_stopped_is_ignored():
    scheduler = TickScheduler()
    state = SessionState(generation=2)
    new_state, effects = scheduler.update(state, Tick(2))
    assert new_state == state
    assert effects == []


def test_double_toggle_discards_in_flight_tick():
    scheduler = TickScheduler()
    state = scheduler.initial_state()
    state, effects = scheduler.update(state, Action.TOGGLE_PLAY)
    in_flight = effects[0]
    state, effects = scheduler.update(state, Action.TOGGLE_PLAY)
    assert effects == []
    assert not state.playing
    assert state.current_beat == 0

    after, effects = scheduler.update(state, Tick(in_flight.generation))
    assert after == state
    assert effects == []


def test_pause_resume_only_honors_newest_stream():
    scheduler = TickScheduler()
    state, effects = _start(scheduler, scheduler.initial_state())
    old = effects[0].generation
    state, _ = scheduler.update(state, Action.TOGGLE_PLAY)
    state, effects = scheduler.update(state, Action.TOGGLE_PLAY)
    new = effects[0].generation
    assert new == old + 1

    state, effects = scheduler.update(state, Tick(old))
    assert effects == []
    state, effects = scheduler.update(state, Tick(new))
    assert state.current_beat == 1
    assert effects[-1] == ScheduleTick(1.0, new)


def test_tempo_change_applies_to_next_scheduled_tick():
    scheduler = TickScheduler()
    state, _ = _start(scheduler, SessionState(tempo=60, beats_per_measure=4))
    state, effects = scheduler.update(state, Tick(1))
    pending = effects[-1]
    assert pending.delay == pytest.approx(1.0)

    for _ in range(5):
        state, effects = scheduler.update(state, Action.BPM_UP)
        assert effects == []
    assert state.tempo == 65
    assert state.generation == pending.generation

    state, effects = scheduler.update(state, Tick(pending.generation))
    assert effects[-1].delay == pytest.approx(60 / 65)


def test_tempo_clamps_to_maximum():
    scheduler = TickScheduler()
    state = scheduler.initial_state(tempo=300)
    assert state.tempo == MAX_TEMPO
    state, _ = scheduler.update(state, Action.BPM_UP_FIVE)
    assert state.tempo == MAX_TEMPO


def test_fewer_beats_pulls_current_beat_down():
    scheduler = TickScheduler()
    state = SessionState(beats_per_measure=4, current_beat=4, playing=True, generation=1)
    state, effects = scheduler.update(state, Action.BEATS_DOWN)
    assert effects == []
    assert state.beats_per_measure == 3
    assert state.current_beat == 3
    assert state.generation == 1

    state, _ = scheduler.update(state, Tick(1))
    assert state.current_beat == 1


def test_quit_emits_quit_effect():
    scheduler = TickScheduler()
    state = scheduler.initial_state()
    new_state, effects = scheduler.update(state, Action.QUIT)
    assert new_state == state
    assert effects == [Quit()]


def test_unknown_message_raises():
    with pytest.raises(TypeError):
        TickScheduler().update(SessionState(), "tick")


def test_beat_interval():
    assert beat_interval(60) == pytest.approx(1.0)
    assert beat_interval(120) == pytest.approx(0.5)
    assert beat_interval(240) == pytest.approx(0.25)
