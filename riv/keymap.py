"""Key bindings - maps raylib key codes to navigation events.

Kept free of raylib imports so bindings can be inspected and tested headless.
"""

from __future__ import annotations
from typing import Callable, Dict, Iterable, List

from .config import (
    KEY_NEXT_IMAGE, KEY_NEXT_IMAGE_ALT, KEY_NEXT_IMAGE_SPACE,
    KEY_PREV_IMAGE, KEY_PREV_IMAGE_ALT,
    KEY_ZOOM_IN, KEY_ZOOM_IN_ALT, KEY_ZOOM_OUT, KEY_ZOOM_OUT_ALT,
    KEY_ROTATE_CW, KEY_RESET_VIEW,
    KEY_PAN_LEFT, KEY_PAN_RIGHT, KEY_PAN_UP, KEY_PAN_DOWN,
    KEY_CLOSE, KEY_CLOSE_ALT,
    PAN_STEP, ZOOM_STEP_WHEEL,
)
from .events import Event, Next, Prev, ZoomIn, ZoomOut, RotateCW, ResetView, Pan, Quit


def default_bindings(pan_step: float = PAN_STEP) -> Dict[int, Callable[[], Event]]:
    # Panning moves the view, so the image shifts the opposite way
    return {
        KEY_NEXT_IMAGE: Next,
        KEY_NEXT_IMAGE_ALT: Next,
        KEY_NEXT_IMAGE_SPACE: Next,
        KEY_PREV_IMAGE: Prev,
        KEY_PREV_IMAGE_ALT: Prev,
        KEY_ZOOM_IN: ZoomIn,
        KEY_ZOOM_IN_ALT: ZoomIn,
        KEY_ZOOM_OUT: ZoomOut,
        KEY_ZOOM_OUT_ALT: ZoomOut,
        KEY_ROTATE_CW: RotateCW,
        KEY_RESET_VIEW: ResetView,
        KEY_PAN_LEFT: lambda: Pan(pan_step, 0.0),
        KEY_PAN_RIGHT: lambda: Pan(-pan_step, 0.0),
        KEY_PAN_UP: lambda: Pan(0.0, pan_step),
        KEY_PAN_DOWN: lambda: Pan(0.0, -pan_step),
        KEY_CLOSE: Quit,
        KEY_CLOSE_ALT: Quit,
    }


def bound_keys(bindings: Dict[int, Callable[[], Event]] = None) -> List[int]:
    """Key codes worth polling each frame."""
    return sorted(bindings if bindings is not None else default_bindings())


def events_for_input(
    pressed: Iterable[int],
    wheel: float = 0.0,
    bindings: Dict[int, Callable[[], Event]] = None
) -> List[Event]:
    """Translate pressed keys and wheel movement into events, in key order.

    Quit short-circuits: nothing after it is delivered.
    """
    table = bindings if bindings is not None else default_bindings()
    events: List[Event] = []
    for key in pressed:
        factory = table.get(key)
        if factory is None:
            continue
        event = factory()
        events.append(event)
        if isinstance(event, Quit):
            return events
    if wheel > 0:
        events.append(ZoomIn(ZOOM_STEP_WHEEL * wheel))
    elif wheel < 0:
        events.append(ZoomOut(ZOOM_STEP_WHEEL * -wheel))
    return events
