"""Application - main loop orchestrator.

The Application class wires the window collaborator to the core:
- Input -> events (via InputHandler)
- Events -> Navigator handlers
- Snapshot -> texture upload and drawing
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Optional
import traceback

from PIL import Image

from .config import SCREEN_PERCENT, TARGET_FPS, ViewerConfig, display_window_size
from .fit import FittedFrame
from .input_handler import InputHandler
from .logging import log, increment_frame, get_frame
from .navigator import NavState, Navigator, Snapshot
from .rl_compat import (
    rl, RL_BLACK, RL_WHITE, RL_GRAY, RL_RED,
    draw_text, measure_text, set_window_title,
    texture_from_pil, update_texture, is_texture_valid,
)

FONT_SIZE = 26


@dataclass
class Application:
    """
    Main application orchestrator.

    Usage:
        app = Application(navigator, config)
        app.initialize()
        app.run()
    """

    navigator: Navigator
    config: ViewerConfig = field(default_factory=ViewerConfig)
    input_handler: InputHandler = field(default_factory=InputHandler)
    running: bool = False

    _texture: Any = None
    _texture_size: tuple = (0, 0)
    _shown_frame: Optional[FittedFrame] = None
    _snapshot: Optional[Snapshot] = None
    _title: str = ""

    @property
    def resample(self) -> Image.Resampling:
        # Low performance mode trades quality for speed on every redraw
        if self.config.low_performance:
            return Image.Resampling.NEAREST
        return Image.Resampling.LANCZOS

    def initialize(self) -> None:
        """Open the window at the configured size, or 90% of the monitor when none was given."""
        w, h = self.config.screen_size
        log(f"[INIT] Creating window: {w}x{h}")
        rl.SetConfigFlags(rl.FLAG_WINDOW_RESIZABLE)
        rl.InitWindow(w, h, b"riv")
        rl.SetExitKey(0)
        rl.SetTargetFPS(TARGET_FPS)
        if self.config.size_from_display:
            self._fit_to_monitor()

        actual = (rl.GetScreenWidth(), rl.GetScreenHeight())
        if actual != (w, h):
            log(f"[INIT] Window manager gave {actual[0]}x{actual[1]}")
        self.input_handler.reset_size(actual)
        self._snapshot = self.navigator.resize(*actual)
        log("[APP] Application initialized")

    def _fit_to_monitor(self) -> None:
        """Resize and centre the window on the current monitor."""
        monitor = rl.GetCurrentMonitor()
        mw, mh = rl.GetMonitorWidth(monitor), rl.GetMonitorHeight(monitor)
        size = display_window_size(mw, mh)
        if size is None:
            log(f"[INIT] Monitor size unknown, keeping {self.config.width}x{self.config.height}")
            return
        w, h = size
        log(f"[INIT] Monitor {monitor}: {mw}x{mh}, window {w}x{h} ({SCREEN_PERCENT}%)")
        rl.SetWindowSize(w, h)
        rl.SetWindowPosition((mw - w) // 2, (mh - h) // 2)

    def run(self) -> None:
        """Run the main loop until Quit."""
        self.running = True
        log("[APP] Starting main loop")
        try:
            while self.running and self.navigator.running:
                self._frame()
        except Exception as e:
            log(f"[APP][CRITICAL] Unhandled exception: {e!r}")
            log(f"[APP][CRITICAL] Traceback:\n{traceback.format_exc()}")
            raise
        finally:
            self._cleanup()

    def _frame(self) -> None:
        """Execute a single frame."""
        # 1. Input -> events -> navigator
        for event in self.input_handler.poll():
            self._snapshot = self.navigator.handle(event)
            if not self.navigator.running:
                self.running = False
                return

        # 2. Pick up finished background decodes
        self.navigator.cache.poll()
        if self._snapshot is None or self._snapshot.loading:
            self._snapshot = self.navigator.peek()

        # 3. Render
        self._draw(self._snapshot)
        increment_frame()

    def _sync_texture(self, frame: FittedFrame) -> None:
        if frame is self._shown_frame:
            return
        canvas = frame.compose(resample=self.resample)
        if self._texture is not None and self._texture_size == canvas.size:
            update_texture(self._texture, canvas)
        else:
            self._release_texture()
            self._texture = texture_from_pil(canvas)
            self._texture_size = canvas.size
        self._shown_frame = frame

    def _release_texture(self) -> None:
        if self._texture is not None and is_texture_valid(self._texture):
            rl.UnloadTexture(self._texture)
        self._texture = None
        self._texture_size = (0, 0)
        self._shown_frame = None

    def _draw_centered(self, text: str, color: Any) -> None:
        w = measure_text(text, FONT_SIZE)
        x = (rl.GetScreenWidth() - w) // 2
        y = (rl.GetScreenHeight() - FONT_SIZE) // 2
        draw_text(text, x, y, FONT_SIZE, color)

    def _draw(self, snap: Snapshot) -> None:
        if snap.title != self._title:
            set_window_title(snap.title)
            self._title = snap.title

        if snap.frame is not None:
            self._sync_texture(snap.frame)

        rl.BeginDrawing()
        rl.ClearBackground(RL_BLACK)
        if snap.state is NavState.EMPTY:
            self._draw_centered("No images found", RL_GRAY)
        elif snap.state is NavState.ERROR and snap.error is not None:
            self._draw_centered(f"Cannot show {snap.error}", RL_RED)
        elif snap.frame is not None and self._texture is not None:
            rl.DrawTexture(self._texture, 0, 0, RL_WHITE)
        else:
            self._draw_centered("Loading...", RL_GRAY)
        rl.EndDrawing()

    def _cleanup(self) -> None:
        log(f"[APP] Starting cleanup after {get_frame()} frames")
        self.navigator.cache.close()
        self._release_texture()
        if rl.IsWindowReady():
            rl.CloseWindow()
        log("[APP] Cleanup complete")

    def stop(self) -> None:
        self.running = False
