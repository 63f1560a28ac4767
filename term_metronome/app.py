"""Terminal front end: key input, screen redraws and the event loop."""
from __future__ import annotations

import logging
import os
import sys
import termios
import tty
from contextlib import contextmanager
from typing import Callable, Dict, Iterator, Optional, Sequence, TextIO, Tuple

from PyQt6 import QtCore

from .audio_engine import AudioEngine, SoundBuffer
from .config import (
    MetronomeConfig,
    MetronomeError,
    configure_logging,
    hold_console_logging,
    parse_args,
    resolve_device,
)
from .keys import DEFAULT_KEYMAP, KeyMap
from .metronome import load_click_sounds
from .scheduler import (
    Accent,
    Action,
    Message,
    Quit,
    ScheduleTick,
    SessionState,
    Tick,
    TickScheduler,
    TriggerSound,
)
from .view import render

logger = logging.getLogger(__name__)

ENTER_SCREEN = "\x1b[?1049h\x1b[?25l"
LEAVE_SCREEN = "\x1b[?25h\x1b[?1049l"
CLEAR_SCREEN = "\x1b[H\x1b[2J"

ScheduleFn = Callable[[float, Callable[[], None]], None]


class Controller:
    """Runs messages through the scheduler and carries out the resulting effects."""

    def __init__(
        self,
        scheduler: TickScheduler,
        state: SessionState,
        engine: AudioEngine,
        sounds: Dict[Accent, SoundBuffer],
        schedule: ScheduleFn,
        on_quit: Callable[[], None],
        on_change: Optional[Callable[[SessionState], None]] = None,
    ) -> None:
        self.scheduler = scheduler
        self.state = state
        self.engine = engine
        self.sounds = sounds
        self._schedule = schedule
        self._on_quit = on_quit
        self._on_change = on_change

    def dispatch(self, message: Message) -> None:
        self.state, effects = self.scheduler.update(self.state, message)
        for effect in effects:
            if isinstance(effect, ScheduleTick):
                self._schedule_tick(effect)
            elif isinstance(effect, TriggerSound):
                self.engine.trigger(self.sounds[effect.accent])
            elif isinstance(effect, Quit):
                self._on_quit()
        if self._on_change is not None:
            self._on_change(self.state)

    def _schedule_tick(self, effect: ScheduleTick) -> None:
        tick = Tick(effect.generation)
        logger.debug("Scheduling tick %d in %.3fs", tick.generation, effect.delay)
        self._schedule(effect.delay, lambda: self.dispatch(tick))


def qt_schedule(delay: float, callback: Callable[[], None]) -> None:
    QtCore.QTimer.singleShot(int(round(delay * 1000)), QtCore.Qt.TimerType.PreciseTimer, callback)


@contextmanager
def terminal_mode(stdin: TextIO, stdout: TextIO) -> Iterator[None]:
    """Put the terminal in cbreak mode with signal keys delivered as input."""
    fd = stdin.fileno()
    old_settings = termios.tcgetattr(fd)
    try:
        tty.setcbreak(fd)
        attrs = termios.tcgetattr(fd)
        attrs[3] &= ~termios.ISIG
        termios.tcsetattr(fd, termios.TCSADRAIN, attrs)
        stdout.write(ENTER_SCREEN)
        stdout.flush()
        yield
    finally:
        stdout.write(LEAVE_SCREEN)
        stdout.flush()
        termios.tcsetattr(fd, termios.TCSADRAIN, old_settings)


class MetronomeTerminal(QtCore.QObject):
    """Feeds stdin key presses into the controller and redraws on every change."""

    def __init__(
        self,
        controller_factory: Callable[[Callable[[SessionState], None]], Controller],
        stdin: TextIO,
        stdout: TextIO,
        keymap: KeyMap = DEFAULT_KEYMAP,
        color: bool = True,
    ) -> None:
        super().__init__()
        self.stdout = stdout
        self.keymap = keymap
        self.color = color
        self._fd = stdin.fileno()
        self.controller = controller_factory(self.redraw)
        self._notifier = QtCore.QSocketNotifier(self._fd, QtCore.QSocketNotifier.Type.Read, self)
        self._notifier.activated.connect(self._on_readable)

    def redraw(self, state: SessionState) -> None:
        self.stdout.write(CLEAR_SCREEN + render(state, self.keymap, self.color))
        self.stdout.flush()

    def _on_readable(self, *_args) -> None:
        data = os.read(self._fd, 64)
        if not data:
            self.controller.dispatch(Action.QUIT)
            return
        for action in self.keymap.actions_for(data):
            self.controller.dispatch(action)


def print_devices(stdout: TextIO) -> None:
    for idx, name in AudioEngine.list_output_devices():
        print(f"{idx:3d}  {name}", file=stdout)


def start_audio(config: MetronomeConfig) -> Tuple[AudioEngine, Dict[Accent, SoundBuffer]]:
    strong, weak = load_click_sounds(config)
    channels = min(2, max(strong.channels, weak.channels))
    engine = AudioEngine(device=resolve_device(config.device), channels=channels)
    engine.initialize(strong.sample_rate)
    return engine, {Accent.STRONG: strong, Accent.WEAK: weak}


def run(config: MetronomeConfig, stdin: TextIO = sys.stdin, stdout: TextIO = sys.stdout) -> int:
    if config.list_devices:
        print_devices(stdout)
        return 0
    if not stdin.isatty():
        raise MetronomeError("standard input is not a terminal")
    engine, sounds = start_audio(config)
    app = QtCore.QCoreApplication.instance() or QtCore.QCoreApplication(sys.argv[:1])
    scheduler = TickScheduler(accent=config.accent)
    state = scheduler.initial_state(config.tempo, config.beats)

    def make_controller(on_change: Callable[[SessionState], None]) -> Controller:
        return Controller(scheduler, state, engine, sounds, qt_schedule, app.quit, on_change)

    try:
        with hold_console_logging(), terminal_mode(stdin, stdout):
            terminal = MetronomeTerminal(make_controller, stdin, stdout, color=config.color)
            terminal.redraw(terminal.controller.state)
            if config.play:
                terminal.controller.dispatch(Action.TOGGLE_PLAY)
            code = app.exec()
    finally:
        engine.close()
    return code


def main(argv: Optional[Sequence[str]] = None) -> None:
    config = parse_args(argv)
    configure_logging(config.log_file, config.verbose)
    try:
        code = run(config)
    except MetronomeError as exc:
        logger.debug("Startup failed", exc_info=True)
        print(f"metronome: {exc}", file=sys.stderr)
        sys.exit(1)
    sys.exit(code)


if __name__ == "__main__":
    main()
