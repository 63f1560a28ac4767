"""Text rendering of the metronome screen."""
from __future__ import annotations

from typing import List

from .keys import DEFAULT_KEYMAP, KeyMap
from .scheduler import SessionState

# ANSI SGR parameters
PALETTE = {
    "header": "1;30;43",
    "active": "33",
    "separator": "2",
    "help_key": "37",
    "help_desc": "2",
}

ACTIVE_MARKER = "■"
INACTIVE_MARKER = "▪"

# top, right, bottom, left
PADDING = (1, 1, 2, 1)


def styled(text: str, role: str, color: bool = True) -> str:
    if not color:
        return text
    return f"\x1b[{PALETTE[role]}m{text}\x1b[0m"


def status_line(state: SessionState, color: bool = True) -> str:
    separator = styled(" • ", "separator", color)
    playing = "Playing" if state.playing else "Paused"
    return separator.join([f"{state.tempo} bpm", f"{state.beats_per_measure} beats", playing])


def beat_indicator(state: SessionState, color: bool = True) -> str:
    markers = []
    for beat in range(1, state.beats_per_measure + 1):
        if beat == state.current_beat:
            markers.append(styled(ACTIVE_MARKER, "active", color))
        else:
            markers.append(INACTIVE_MARKER)
    return " ".join(markers)


def help_line(keymap: KeyMap, color: bool = True) -> str:
    entries = [
        f"{styled(key, 'help_key', color)} {styled(desc, 'help_desc', color)}"
        for key, desc in keymap.short_help()
    ]
    return styled(" • ", "separator", color).join(entries)


def render(state: SessionState, keymap: KeyMap = DEFAULT_KEYMAP, color: bool = True) -> str:
    """Return the full screen for ``state`` as newline separated text."""
    top, right, bottom, left = PADDING
    blocks = [
        styled(" metronome ", "header", color),
        status_line(state, color),
        beat_indicator(state, color),
        help_line(keymap, color),
    ]
    lines: List[str] = [""] * top
    for index, block in enumerate(blocks):
        if index:
            lines.append("")
        lines.append(" " * left + block + " " * right)
    lines.extend([""] * bottom)
    return "\n".join(lines)
