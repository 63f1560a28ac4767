"""Tick scheduling and session state for the metronome.

The scheduler never touches a timer or the audio device itself. Every
message (a key action or a fired tick) goes through
:meth:`TickScheduler.update`, which returns the new session state together
with the effects the caller has to carry out: schedule another tick, play a
sound, or quit.

Ticks carry the generation they were scheduled under. Starting playback bumps
the generation, so ticks left in flight by an earlier run are recognised and
dropped instead of doubling the beat.
"""
from __future__ import annotations

import enum
import logging
from dataclasses import dataclass, replace
from typing import List, Tuple, Union

from .config import (
    DEFAULT_BEATS,
    DEFAULT_TEMPO,
    MAX_BEATS,
    MAX_TEMPO,
    MIN_BEATS,
    MIN_TEMPO,
    clamp,
)

logger = logging.getLogger(__name__)


class Action(enum.Enum):
    BPM_UP = "bpm-up"
    BPM_DOWN = "bpm-down"
    BPM_UP_FIVE = "bpm-up-5"
    BPM_DOWN_FIVE = "bpm-down-5"
    BEATS_UP = "beats-up"
    BEATS_DOWN = "beats-down"
    TOGGLE_PLAY = "toggle-play"
    QUIT = "quit"


class Accent(enum.Enum):
    STRONG = "strong"
    WEAK = "weak"


TEMPO_STEPS = {
    Action.BPM_UP: 1,
    Action.BPM_DOWN: -1,
    Action.BPM_UP_FIVE: 5,
    Action.BPM_DOWN_FIVE: -5,
}

BEAT_STEPS = {
    Action.BEATS_UP: 1,
    Action.BEATS_DOWN: -1,
}


@dataclass(frozen=True)
class SessionState:
    tempo: int = DEFAULT_TEMPO
    beats_per_measure: int = DEFAULT_BEATS
    current_beat: int = 0
    playing: bool = False
    generation: int = 0


@dataclass(frozen=True)
class Tick:
    """A beat interval has elapsed for the run tagged ``generation``."""

    generation: int


@dataclass(frozen=True)
class ScheduleTick:
    delay: float
    generation: int


@dataclass(frozen=True)
class TriggerSound:
    accent: Accent


@dataclass(frozen=True)
class Quit:
    pass


Message = Union[Action, Tick]
Effect = Union[ScheduleTick, TriggerSound, Quit]


def beat_interval(tempo: int) -> float:
    """Seconds between two beats at ``tempo`` bpm."""
    return 60.0 / tempo


class TickScheduler:
    """Drives the beat cycle.

    ``accent`` selects between a strong sound on the first beat of each
    measure and a single uniform sound on every beat.
    """

    def __init__(
        self,
        accent: bool = True,
        tempo_range: Tuple[int, int] = (MIN_TEMPO, MAX_TEMPO),
        beats_range: Tuple[int, int] = (MIN_BEATS, MAX_BEATS),
    ) -> None:
        self.accent = accent
        self.tempo_range = tempo_range
        self.beats_range = beats_range

    def initial_state(self, tempo: int = DEFAULT_TEMPO, beats: int = DEFAULT_BEATS) -> SessionState:
        return SessionState(
            tempo=clamp(tempo, *self.tempo_range),
            beats_per_measure=clamp(beats, *self.beats_range),
        )

    def update(self, state: SessionState, message: Message) -> Tuple[SessionState, List[Effect]]:
        if isinstance(message, Tick):
            return self._on_tick(state, message)
        if isinstance(message, Action):
            return self._on_action(state, message)
        raise TypeError(f"Unsupported message: {message!r}")

    # Ticks -------------------------------------------------------------
    def _on_tick(self, state: SessionState, tick: Tick) -> Tuple[SessionState, List[Effect]]:
        if not state.playing or tick.generation != state.generation:
            logger.debug("Dropping stale tick %d (current %d)", tick.generation, state.generation)
            return state, []
        if state.current_beat >= state.beats_per_measure:
            beat = 1
        else:
            beat = state.current_beat + 1
        state = replace(state, current_beat=beat)
        if self.accent and beat == 1:
            accent = Accent.STRONG
        else:
            accent = Accent.WEAK
        delay = beat_interval(state.tempo)
        return state, [TriggerSound(accent), ScheduleTick(delay, state.generation)]

    # Actions -----------------------------------------------------------
    def _on_action(self, state: SessionState, action: Action) -> Tuple[SessionState, List[Effect]]:
        if action is Action.QUIT:
            return state, [Quit()]
        if action is Action.TOGGLE_PLAY:
            return self._toggle_play(state)
        if action in TEMPO_STEPS:
            tempo = clamp(state.tempo + TEMPO_STEPS[action], *self.tempo_range)
            return replace(state, tempo=tempo), []
        if action in BEAT_STEPS:
            beats = clamp(state.beats_per_measure + BEAT_STEPS[action], *self.beats_range)
            current = min(state.current_beat, beats)
            return replace(state, beats_per_measure=beats, current_beat=current), []
        raise ValueError(f"Unhandled action: {action}")

    def _toggle_play(self, state: SessionState) -> Tuple[SessionState, List[Effect]]:
        if state.playing:
            logger.debug("Stopping playback (generation %d)", state.generation)
            return replace(state, playing=False, current_beat=0), []
        generation = state.generation + 1
        logger.debug("Starting playback (generation %d)", generation)
        state = replace(state, playing=True, current_beat=0, generation=generation)
        return state, [ScheduleTick(0.0, generation)]
