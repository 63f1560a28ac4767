"""Audio output for the metronome clicks."""
from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Tuple, Union

import numpy as np

from .config import MetronomeError

logger = logging.getLogger(__name__)


class SoundDecodeError(MetronomeError):
    """A sound file could not be decoded."""


class AudioInitError(MetronomeError):
    """The audio output device could not be opened."""


@dataclass
class SoundBuffer:
    """A decoded, fixed-length sound."""

    name: str
    sample_rate: int
    data: np.ndarray

    def __post_init__(self) -> None:
        if self.data.ndim == 1:
            self.data = self.data[:, np.newaxis]
        self.data = self.data.astype(np.float32)

    @property
    def frames(self) -> int:
        return int(self.data.shape[0])

    @property
    def channels(self) -> int:
        return int(self.data.shape[1])

    @property
    def duration(self) -> float:
        return self.frames / self.sample_rate

    def with_channels(self, channels: int) -> np.ndarray:
        audio = self.data
        if channels == 1 and audio.shape[1] > 1:
            return audio.mean(axis=1, keepdims=True)
        if audio.shape[1] == 1 and channels > 1:
            return np.repeat(audio, channels, axis=1)
        return audio[:, :channels]

    def resampled(self, sample_rate: int) -> "SoundBuffer":
        if sample_rate == self.sample_rate:
            return self
        from scipy.signal import resample

        num_samples = max(1, int(round(self.frames * sample_rate / self.sample_rate)))
        data = resample(self.data, num_samples)
        return SoundBuffer(self.name, sample_rate, data.astype(np.float32))


def load_sound(path: Union[str, Path], name: Optional[str] = None) -> SoundBuffer:
    """Decode ``path`` into a :class:`SoundBuffer`."""
    try:
        import soundfile as sf
    except OSError as exc:
        raise SoundDecodeError(f"Unable to load libsndfile: {exc}") from exc

    try:
        data, sample_rate = sf.read(str(path), dtype="float32", always_2d=True)
    except (sf.SoundFileError, RuntimeError, TypeError, OSError) as exc:
        raise SoundDecodeError(f"Unable to decode {path}: {exc}") from exc
    if data.shape[0] == 0:
        raise SoundDecodeError(f"{path} contains no audio")
    logger.debug("Loaded %s: %d frames at %d Hz", path, data.shape[0], sample_rate)
    return SoundBuffer(name or Path(path).stem, int(sample_rate), data)


class AudioEngine:
    """Plays sound buffers on an output device without waiting for them.

    Every triggered sound becomes a voice that is mixed into the output
    stream until it runs out, so overlapping clicks sound together.
    """

    def __init__(self, device: Union[int, str, None] = None, channels: int = 1) -> None:
        self.device = device
        self.channels = channels
        self.sample_rate: Optional[int] = None
        self._stream = None
        self._voices: List[List] = []
        self._voice_lock = threading.Lock()

    # Device management -------------------------------------------------
    @staticmethod
    def list_output_devices() -> List[Tuple[int, str]]:
        try:
            import sounddevice as sd

            queried = sd.query_devices()
        except Exception as exc:  # pragma: no cover - depends on host audio stack
            raise AudioInitError(f"Unable to query output devices: {exc}") from exc
        devices: List[Tuple[int, str]] = []
        for idx, device in enumerate(queried):
            if device["max_output_channels"] >= 1:
                devices.append((idx, device["name"]))
        return devices

    def initialize(self, sample_rate: int) -> None:
        try:
            import sounddevice as sd
        except OSError as exc:
            raise AudioInitError(f"Unable to load PortAudio: {exc}") from exc
        try:
            stream = sd.OutputStream(
                samplerate=sample_rate,
                channels=self.channels,
                dtype="float32",
                callback=self._callback,
                device=self.device,
                blocksize=max(1, sample_rate // 100),
            )
            stream.start()
        except (sd.PortAudioError, ValueError) as exc:
            raise AudioInitError(f"Unable to open output device: {exc}") from exc
        self.sample_rate = sample_rate
        self._stream = stream
        logger.debug("Output stream open on %s at %d Hz", self.device, sample_rate)

    def close(self) -> None:
        if self._stream is None:
            return
        self._stream.stop()
        self._stream.close()
        self._stream = None
        with self._voice_lock:
            self._voices = []

    # Playback ----------------------------------------------------------
    def trigger(self, sound: SoundBuffer) -> None:
        if self.sample_rate is None:
            raise RuntimeError("Audio engine is not initialized")
        if sound.sample_rate != self.sample_rate:
            raise ValueError(f"{sound.name} is {sound.sample_rate} Hz, output runs at {self.sample_rate} Hz")
        data = sound.with_channels(self.channels)
        with self._voice_lock:
            self._voices.append([data, 0])

    @property
    def active_voices(self) -> int:
        with self._voice_lock:
            return len(self._voices)

    def _callback(self, outdata, frames, time, status) -> None:  # noqa: ANN001
        if status:
            logger.warning("Output status: %s", status)
        outdata.fill(0)
        with self._voice_lock:
            remaining = []
            for voice in self._voices:
                data, position = voice
                chunk = data[position : position + frames]
                outdata[: chunk.shape[0]] += chunk
                voice[1] = position + chunk.shape[0]
                if voice[1] < data.shape[0]:
                    remaining.append(voice)
            self._voices = remaining
        np.clip(outdata, -1.0, 1.0, out=outdata)
