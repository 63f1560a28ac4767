"""Bounds, defaults and command-line options for the metronome."""
from __future__ import annotations

import argparse
import logging
import logging.handlers
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Iterator, List, Optional, Sequence, Union

MIN_TEMPO = 20
MAX_TEMPO = 240

MIN_BEATS = 1
MAX_BEATS = 10

DEFAULT_TEMPO = 60
DEFAULT_BEATS = 4
DEFAULT_SAMPLE_RATE = 44100

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


class MetronomeError(Exception):
    """Base class for errors raised by the metronome."""


def clamp(value: int, low: int, high: int) -> int:
    return max(low, min(high, value))


@dataclass
class MetronomeConfig:
    """Options the metronome is started with."""

    tempo: int = DEFAULT_TEMPO
    beats: int = DEFAULT_BEATS
    play: bool = False
    accent: bool = True
    strong_sound: Optional[str] = None
    weak_sound: Optional[str] = None
    sample_rate: int = DEFAULT_SAMPLE_RATE
    device: Optional[str] = None
    list_devices: bool = False
    color: bool = True
    log_file: Optional[str] = None
    verbose: bool = False

    def __post_init__(self) -> None:
        self.tempo = clamp(self.tempo, MIN_TEMPO, MAX_TEMPO)
        self.beats = clamp(self.beats, MIN_BEATS, MAX_BEATS)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="metronome", description="A metronome for the terminal.")
    parser.add_argument("-t", "--tempo", type=int, default=DEFAULT_TEMPO, help="tempo in bpm")
    parser.add_argument("-b", "--beats", type=int, default=DEFAULT_BEATS, help="number of beats per measure")
    parser.add_argument("-p", "--play", action="store_true", help="start playing")
    parser.add_argument(
        "--no-accent",
        dest="accent",
        action="store_false",
        help="use the same sound for every beat",
    )
    parser.add_argument("--strong-sound", metavar="PATH", help="audio file played on the first beat")
    parser.add_argument("--weak-sound", metavar="PATH", help="audio file played on the other beats")
    parser.add_argument(
        "--sample-rate",
        type=int,
        default=DEFAULT_SAMPLE_RATE,
        help="sample rate of the built-in click sounds",
    )
    parser.add_argument("-d", "--device", help="output device index or name")
    parser.add_argument("--list-devices", action="store_true", help="list output devices and exit")
    parser.add_argument("--no-color", dest="color", action="store_false", help="disable colors")
    parser.add_argument("--log-file", metavar="PATH", help="write log records to this file")
    parser.add_argument("-v", "--verbose", action="store_true", help="log debug messages")
    return parser


def parse_args(argv: Optional[Sequence[str]] = None) -> MetronomeConfig:
    args = build_parser().parse_args(argv)
    return MetronomeConfig(**vars(args))


def configure_logging(log_file: Optional[str] = None, verbose: bool = False) -> None:
    level = logging.DEBUG if verbose else logging.WARNING
    handlers: List[logging.Handler] = []
    if log_file:
        handlers.append(logging.FileHandler(log_file))
    else:
        handlers.append(logging.StreamHandler())
    logging.basicConfig(level=level, format=LOG_FORMAT, handlers=handlers, force=True)


class HeldRecords(logging.handlers.BufferingHandler):
    """Keeps the newest ``capacity`` records until they can be written out."""

    def shouldFlush(self, record: logging.LogRecord) -> bool:  # noqa: N802
        if len(self.buffer) > self.capacity:
            del self.buffer[0]
        return False


@contextmanager
def hold_console_logging(capacity: int = 200) -> Iterator[None]:
    """Hold records bound for the console while the screen is taken over.

    File handlers keep writing. Console records are replayed on exit.
    """
    root = logging.getLogger()
    consoles = [handler for handler in root.handlers if type(handler) is logging.StreamHandler]
    held = HeldRecords(capacity)
    for handler in consoles:
        root.removeHandler(handler)
    if consoles:
        root.addHandler(held)
    try:
        yield
    finally:
        root.removeHandler(held)
        for handler in consoles:
            root.addHandler(handler)
            for record in held.buffer:
                if record.levelno >= handler.level:
                    handler.handle(record)
        held.close()


def resolve_device(device: Optional[str]) -> Union[int, str, None]:
    """Return ``device`` as an index when it is numeric, otherwise unchanged."""
    if device is None:
        return None
    try:
        return int(device)
    except ValueError:
        return device
