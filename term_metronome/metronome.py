"""Click sounds for the metronome."""
from __future__ import annotations

import logging
from typing import Optional, Tuple

import numpy as np

from .audio_engine import SoundBuffer, load_sound
from .config import MetronomeConfig

logger = logging.getLogger(__name__)

HIGH_BEEP = 0.9
LOW_BEEP = 0.6
STRONG_FREQUENCY = 1760.0
WEAK_FREQUENCY = 880.0
CLICK_SECONDS = 0.03


def generate_click(
    sample_rate: int,
    frequency: float,
    amplitude: float,
    duration_sec: float = CLICK_SECONDS,
) -> np.ndarray:
    """A sine burst with a linear decay, shaped ``(frames, 1)``."""
    click_length = max(1, int(duration_sec * sample_rate))
    t = np.arange(click_length) / sample_rate
    envelope = np.linspace(1, 0, click_length)
    click = amplitude * envelope * np.sin(2 * np.pi * frequency * t)
    return click.astype(np.float32)[:, None]


def default_click_sounds(sample_rate: int) -> Tuple[SoundBuffer, SoundBuffer]:
    strong = SoundBuffer("strong", sample_rate, generate_click(sample_rate, STRONG_FREQUENCY, HIGH_BEEP))
    weak = SoundBuffer("weak", sample_rate, generate_click(sample_rate, WEAK_FREQUENCY, LOW_BEEP))
    return strong, weak


def _load_or_generate(path: Optional[str], fallback: SoundBuffer) -> SoundBuffer:
    if path is None:
        return fallback
    return load_sound(path)


def load_click_sounds(config: MetronomeConfig) -> Tuple[SoundBuffer, SoundBuffer]:
    """Return the strong and weak sounds, both at the strong sound's sample rate."""
    built_in_strong, built_in_weak = default_click_sounds(config.sample_rate)
    strong = _load_or_generate(config.strong_sound, built_in_strong)
    if config.weak_sound is None and strong.sample_rate != config.sample_rate:
        _, built_in_weak = default_click_sounds(strong.sample_rate)
    weak = _load_or_generate(config.weak_sound, built_in_weak)
    if weak.sample_rate != strong.sample_rate:
        logger.debug("Resampling %s from %d Hz to %d Hz", weak.name, weak.sample_rate, strong.sample_rate)
        weak = weak.resampled(strong.sample_rate)
    return strong, weak
