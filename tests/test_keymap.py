"""Tests for key bindings."""

from __future__ import annotations

import pytest

from riv.config import (
    KEY_CLOSE, KEY_NEXT_IMAGE, KEY_NEXT_IMAGE_SPACE, KEY_PAN_LEFT, KEY_PREV_IMAGE,
    KEY_ROTATE_CW, KEY_ZOOM_IN,
)
from riv.events import Next, Pan, Prev, Quit, RotateCW, ZoomIn, ZoomOut
from riv.keymap import bound_keys, default_bindings, events_for_input


def test_keys_map_to_events():
    events = events_for_input([KEY_NEXT_IMAGE, KEY_PREV_IMAGE, KEY_ROTATE_CW, KEY_ZOOM_IN])
    assert events == [Next(), Prev(), RotateCW(), ZoomIn()]


def test_unbound_keys_are_ignored():
    assert events_for_input([9999, KEY_NEXT_IMAGE_SPACE]) == [Next()]


def test_quit_short_circuits():
    assert events_for_input([KEY_CLOSE, KEY_NEXT_IMAGE], wheel=1.0) == [Quit()]


@pytest.mark.parametrize("wheel,expected", [
    (1.0, ZoomIn),
    (-2.0, ZoomOut),
])
def test_wheel_zooms(wheel, expected):
    (event,) = events_for_input([], wheel=wheel)
    assert isinstance(event, expected)
    assert event.step == pytest.approx(0.1 * abs(wheel))


def test_pan_step_is_configurable():
    bindings = default_bindings(pan_step=10)
    assert events_for_input([KEY_PAN_LEFT], bindings=bindings) == [Pan(10, 0.0)]


def test_bound_keys_sorted():
    keys = bound_keys()
    assert keys == sorted(keys)
    assert KEY_CLOSE in keys
