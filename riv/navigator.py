"""Navigation state machine - cursor, viewport and the current frame.

The Navigator is the single owner of navigation state. Every other component
reads the cursor and viewport from it; only its handlers change them.
"""

from __future__ import annotations
import os
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from .cache import PrefetchCache
from .config import ViewerConfig
from .errors import DecodeError
from .events import Event
from .fit import FittedFrame, clamp_pan
from .logging import log
from .math_utils import clamp
from .sources import SourceList
from .types import Rotation, ViewportSpec


class NavState(Enum):
    EMPTY = "empty"
    VIEWING = "viewing"
    ERROR = "error"


@dataclass(frozen=True)
class Snapshot:
    """What the display collaborator should show after an event."""
    state: NavState
    index: Optional[int] = None
    count: int = 0
    path: Optional[str] = None
    frame: Optional[FittedFrame] = None
    error: Optional[DecodeError] = None
    loading: bool = False

    @property
    def title(self) -> str:
        """Window title text: file name and position."""
        if self.path is None or self.index is None:
            return "riv"
        return f"riv - {os.path.basename(self.path)} [{self.index + 1}/{self.count}]"


class Navigator:
    """Translates input events into cursor/viewport changes and cache requests."""

    def __init__(self, sources: SourceList, config: ViewerConfig = ViewerConfig(),
                 cache: Optional[PrefetchCache] = None, start_index: int = 0):
        self.sources = sources
        self.config = config
        self.cache = cache if cache is not None else PrefetchCache(sources, config)
        self.running = True
        self._viewport = ViewportSpec(config.width, config.height)
        self.cache.set_viewport(self._viewport)

        if sources.is_empty:
            self.cursor: Optional[int] = None
            self.state = NavState.EMPTY
            log("[NAV] No images, starting empty")
        else:
            self.cursor = int(clamp(start_index, 0, len(sources) - 1))
            self.state = NavState.VIEWING
            self.cache.advance(self.cursor, 1)
            log(f"[NAV] Start at {self.cursor + 1}/{len(sources)}: "
                f"{os.path.basename(sources[self.cursor])}")

    @property
    def viewport(self) -> ViewportSpec:
        return self._viewport

    @property
    def current_path(self) -> Optional[str]:
        if self.cursor is None:
            return None
        return self.sources[self.cursor]

    def _empty_snapshot(self) -> Snapshot:
        return Snapshot(state=NavState.EMPTY, count=0)

    def _snapshot(self, frame: Optional[FittedFrame], error: Optional[DecodeError],
                  loading: bool = False) -> Snapshot:
        return Snapshot(
            state=self.state,
            index=self.cursor,
            count=len(self.sources),
            path=self.current_path,
            frame=frame,
            error=error,
            loading=loading,
        )

    # ─── frame resolution ─────────────────────────────────────────────────

    def current(self) -> Snapshot:
        """Resolve the current frame, waiting on a cold decode if needed."""
        if self.state is NavState.EMPTY:
            return self._empty_snapshot()
        try:
            frame = self.cache.get_current()
        except DecodeError as e:
            self._enter(NavState.ERROR)
            return self._snapshot(None, e)
        self._enter(NavState.VIEWING)
        return self._snapshot(frame, None)

    def peek(self) -> Snapshot:
        """Like current() but never blocks; reports loading while pending."""
        if self.state is NavState.EMPTY:
            return self._empty_snapshot()
        try:
            frame = self.cache.try_current()
        except DecodeError as e:
            self._enter(NavState.ERROR)
            return self._snapshot(None, e)
        if frame is None:
            return self._snapshot(None, None, loading=True)
        self._enter(NavState.VIEWING)
        return self._snapshot(frame, None)

    def _enter(self, state: NavState) -> None:
        if state is not self.state:
            log(f"[NAV] {self.state.value} -> {state.value}")
            self.state = state

    def _set_viewport(self, viewport: ViewportSpec) -> None:
        self._viewport = viewport
        self.cache.set_viewport(viewport)

    def _reclamp_pan(self, viewport: ViewportSpec) -> ViewportSpec:
        """Keep pan inside what the current image allows."""
        path = self.current_path
        image = self.cache.decoded(path) if path else None
        if image is None:
            return viewport.with_pan(0.0, 0.0)
        px, py = clamp_pan(image.size, viewport, self.cache.limits)
        return viewport.with_pan(px, py)

    # ─── handlers ─────────────────────────────────────────────────────────

    def handle(self, event: Event) -> Snapshot:
        """Dispatch one input event."""
        return event.dispatch(self)

    def _move(self, delta: int) -> Snapshot:
        if self.state is NavState.EMPTY:
            return self._empty_snapshot()
        old = self.cursor
        self.cursor = self.sources.step(self.cursor, delta)
        log(f"[NAV] Move {old} -> {self.cursor}")
        # A new image starts at fit; rotation is kept for the session
        self._set_viewport(self._viewport.with_zoom(1.0).with_pan(0.0, 0.0))
        self.cache.advance(self.cursor, 1 if delta >= 0 else -1)
        return self.current()

    def next(self) -> Snapshot:
        return self._move(1)

    def prev(self) -> Snapshot:
        return self._move(-1)

    def go_to(self, index: int) -> Snapshot:
        """Jump to an absolute position (wrapped into range)."""
        if self.state is NavState.EMPTY:
            return self._empty_snapshot()
        target = index % len(self.sources)
        delta = target - self.cursor
        if delta == 0:
            return self.current()
        return self._move(delta)

    def _zoom_to(self, zoom: float) -> Snapshot:
        if self.state is NavState.EMPTY:
            return self._empty_snapshot()
        zoom = clamp(zoom, self.config.min_zoom, self.config.max_zoom)
        if zoom != self._viewport.zoom:
            log(f"[NAV] Zoom {self._viewport.zoom:.3f} -> {zoom:.3f}")
            self._set_viewport(self._reclamp_pan(self._viewport.with_zoom(zoom)))
        return self.current()

    def zoom_in(self, step: Optional[float] = None) -> Snapshot:
        step = self.config.zoom_step if step is None else step
        return self._zoom_to(self._viewport.zoom * (1.0 + step))

    def zoom_out(self, step: Optional[float] = None) -> Snapshot:
        step = self.config.zoom_step if step is None else step
        return self._zoom_to(self._viewport.zoom / (1.0 + step))

    def rotate_cw(self) -> Snapshot:
        if self.state is NavState.EMPTY:
            return self._empty_snapshot()
        rotation = self._viewport.rotation.cw()
        log(f"[NAV] Rotate -> {rotation.value}")
        self._set_viewport(self._viewport.with_rotation(rotation).with_pan(0.0, 0.0))
        return self.current()

    def resize(self, width: int, height: int) -> Snapshot:
        if self.state is NavState.EMPTY:
            return self._empty_snapshot()
        if width < 1 or height < 1:
            # Minimized windows report a zero-sized viewport
            log(f"[NAV] Ignoring resize to {width}x{height}")
            return self.current()
        if (width, height) != self._viewport.size:
            log(f"[NAV] Resize {self._viewport.width}x{self._viewport.height} -> {width}x{height}")
            self._set_viewport(self._reclamp_pan(self._viewport.with_size(width, height)))
        return self.current()

    def pan(self, dx: float, dy: float) -> Snapshot:
        if self.state is NavState.EMPTY:
            return self._empty_snapshot()
        moved = self._viewport.with_pan(self._viewport.pan_x + dx, self._viewport.pan_y + dy)
        self._set_viewport(self._reclamp_pan(moved))
        return self.current()

    def reset_view(self) -> Snapshot:
        if self.state is NavState.EMPTY:
            return self._empty_snapshot()
        self._set_viewport(ViewportSpec(self._viewport.width, self._viewport.height,
                                        zoom=1.0, rotation=Rotation.DEG_0))
        return self.current()

    def quit(self) -> Snapshot:
        """Stop the session. The caller closes the cache when its loop exits."""
        log("[NAV] Quit requested")
        self.running = False
        if self.state is NavState.EMPTY:
            return self._empty_snapshot()
        return self._snapshot(None, self.cache.error(self.current_path) if self.current_path else None)
