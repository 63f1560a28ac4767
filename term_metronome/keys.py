"""Key bindings and decoding of raw terminal input."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Tuple

from .scheduler import Action

# Longest sequences first so that a prefix never shadows a longer match.
ESCAPE_SEQUENCES: Tuple[Tuple[str, str], ...] = (
    ("\x1b[5~", "pgup"),
    ("\x1b[6~", "pgdown"),
    ("\x1b[A", "up"),
    ("\x1b[B", "down"),
    ("\x1b[C", "right"),
    ("\x1b[D", "left"),
    ("\x1bOA", "up"),
    ("\x1bOB", "down"),
    ("\x1bOC", "right"),
    ("\x1bOD", "left"),
)

CONTROL_KEYS = {
    "\x03": "ctrl+c",
    "\x1b": "esc",
    " ": "space",
    "\r": "enter",
    "\n": "enter",
    "\t": "tab",
    "\x7f": "backspace",
}


def decode_keys(data: bytes) -> List[str]:
    """Split a chunk read from a cbreak-mode terminal into key names."""
    text = data.decode("utf-8", errors="ignore")
    keys: List[str] = []
    i = 0
    while i < len(text):
        if text[i] == "\x1b":
            for sequence, name in ESCAPE_SEQUENCES:
                if text.startswith(sequence, i):
                    keys.append(name)
                    i += len(sequence)
                    break
            else:
                following = text[i + 1 : i + 2]
                if following and following != "\x1b" and following.isprintable():
                    # terminals send Alt+<c> as ESC followed by <c>
                    keys.append("alt+" + CONTROL_KEYS.get(following, following))
                    i += 2
                else:
                    keys.append("esc")
                    i += 1
            continue
        keys.append(CONTROL_KEYS.get(text[i], text[i]))
        i += 1
    return keys


@dataclass(frozen=True)
class KeyBinding:
    keys: Tuple[str, ...]
    help_key: str
    help_desc: str
    action: Action


class KeyMap:
    """Fixed set of bindings, looked up by key name."""

    def __init__(self, bindings: Sequence[KeyBinding]) -> None:
        self.bindings = tuple(bindings)
        self._lookup: Dict[str, Action] = {}
        for binding in self.bindings:
            for key in binding.keys:
                if key in self._lookup:
                    raise ValueError(f"Key {key!r} is bound twice")
                self._lookup[key] = binding.action

    def action_for(self, key: str) -> Optional[Action]:
        return self._lookup.get(key)

    def actions_for(self, data: bytes) -> List[Action]:
        actions = []
        for key in decode_keys(data):
            action = self.action_for(key)
            if action is not None:
                actions.append(action)
        return actions

    def short_help(self) -> List[Tuple[str, str]]:
        return [(binding.help_key, binding.help_desc) for binding in self.bindings]


DEFAULT_KEYMAP = KeyMap(
    [
        KeyBinding(("k", "up"), "↑", "bpm up", Action.BPM_UP),
        KeyBinding(("j", "down"), "↓", "bpm down", Action.BPM_DOWN),
        KeyBinding(("K", "pgup"), "pgup", "bpm +5", Action.BPM_UP_FIVE),
        KeyBinding(("J", "pgdown"), "pgdn", "bpm -5", Action.BPM_DOWN_FIVE),
        KeyBinding(("l", "right"), "→", "beats up", Action.BEATS_UP),
        KeyBinding(("h", "left"), "←", "beats down", Action.BEATS_DOWN),
        KeyBinding(("space", "p"), "space", "play/pause", Action.TOGGLE_PLAY),
        KeyBinding(("q", "ctrl+c"), "q", "quit", Action.QUIT),
    ]
)
