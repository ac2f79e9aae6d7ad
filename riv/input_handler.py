"""Input Handler - polls raylib input and turns it into events.

Key-to-event translation lives in keymap.py; this module only reads the
device state each frame.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Tuple

from .rl_compat import rl
from .events import Event, Quit, Resize
from .keymap import default_bindings, events_for_input


@dataclass
class InputHandler:
    """Handles input polling and event generation."""

    bindings: Dict[int, Callable[[], Event]] = field(default_factory=default_bindings)
    _last_size: Tuple[int, int] = (0, 0)

    def reset_size(self, size: Tuple[int, int]) -> None:
        """Treat size as already seen, so it does not produce a Resize."""
        self._last_size = (int(size[0]), int(size[1]))

    def _pressed_keys(self) -> List[int]:
        pressed = []
        for key in self.bindings:
            # Held navigation/zoom keys repeat at the OS repeat rate
            if rl.IsKeyPressed(key) or rl.IsKeyPressedRepeat(key):
                pressed.append(key)
        return pressed

    def poll(self) -> List[Event]:
        """Collect this frame's events."""
        if rl.WindowShouldClose():
            return [Quit()]

        events: List[Event] = []
        size = (rl.GetScreenWidth(), rl.GetScreenHeight())
        if rl.IsWindowResized() or size != self._last_size:
            if self._last_size != (0, 0):
                events.append(Resize(size[0], size[1]))
            self._last_size = size

        events.extend(events_for_input(self._pressed_keys(), rl.GetMouseWheelMove(), self.bindings))
        return events
