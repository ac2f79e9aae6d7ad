"""Application configuration constants."""

from __future__ import annotations
import os
from dataclasses import dataclass, replace
from typing import Mapping, Optional, Tuple

from .errors import ConfigError

# Performance
TARGET_FPS = 60
ASYNC_WORKERS = 2
POLL_INTERVAL_S = 0.05

# Viewport
DEFAULT_SCREEN_SIZE = (1920, 1080)  # headless fallback when no monitor is known
SCREEN_SIZE_ENV = "SCREEN_SIZE"
SCREEN_PERCENT = 90  # window size as a share of the monitor
MIN_VIEWPORT_SIDE = 1

# Prefetch window (positions around the cursor)
PREFETCH_AHEAD = 2
PREFETCH_BEHIND = 2

# Zoom
MIN_ZOOM = 0.1
MAX_ZOOM = 16.0
ZOOM_STEP_KEYS = 0.25
ZOOM_STEP_WHEEL = 0.1

# Absolute scale bounds applied after zoom
MIN_SCALE = 0.01
MAX_SCALE = 64.0

# Pan step in viewport pixels
PAN_STEP = 64

# Image limits
MAX_DECODED_PIXELS = 178_956_970  # Same ceiling Pillow uses for bomb detection
MAX_FILE_SIZE_MB = 200

# Background fill for composed frames
BG_COLOR = (0, 0, 0, 255)

# Hotkeys (raylib key codes)
# See: https://github.com/raysan5/raylib/blob/master/src/raylib.h
KEY_NEXT_IMAGE = 262        # KEY_RIGHT
KEY_NEXT_IMAGE_ALT = 68     # KEY_D
KEY_NEXT_IMAGE_SPACE = 32   # KEY_SPACE
KEY_PREV_IMAGE = 263        # KEY_LEFT
KEY_PREV_IMAGE_ALT = 65     # KEY_A
KEY_ZOOM_IN = 265           # KEY_UP
KEY_ZOOM_IN_ALT = 61        # KEY_EQUAL
KEY_ZOOM_OUT = 264          # KEY_DOWN
KEY_ZOOM_OUT_ALT = 45       # KEY_MINUS
KEY_ROTATE_CW = 82          # KEY_R
KEY_RESET_VIEW = 48         # KEY_ZERO
KEY_PAN_LEFT = 74           # KEY_J
KEY_PAN_RIGHT = 76          # KEY_L
KEY_PAN_UP = 73             # KEY_I
KEY_PAN_DOWN = 75           # KEY_K
KEY_CLOSE = 256             # KEY_ESCAPE
KEY_CLOSE_ALT = 81          # KEY_Q

# Supported image extensions
IMG_EXTS = frozenset({
    ".png", ".jpg", ".jpeg", ".jpe", ".bmp", ".gif", ".tga",
    ".tif", ".tiff", ".webp", ".ppm", ".pgm", ".pbm", ".ico", ".qoi",
})


@dataclass(frozen=True)
class ViewerConfig:
    """Runtime configuration for one browsing session."""
    width: int = DEFAULT_SCREEN_SIZE[0]
    height: int = DEFAULT_SCREEN_SIZE[1]
    prefetch_ahead: int = PREFETCH_AHEAD
    prefetch_behind: int = PREFETCH_BEHIND
    max_entries: Optional[int] = None
    workers: int = ASYNC_WORKERS
    min_zoom: float = MIN_ZOOM
    max_zoom: float = MAX_ZOOM
    zoom_step: float = ZOOM_STEP_KEYS
    min_scale: float = MIN_SCALE
    max_scale: float = MAX_SCALE
    max_pixels: int = MAX_DECODED_PIXELS
    upscale: bool = True
    low_performance: bool = False
    # True when neither --screen-size nor SCREEN_SIZE chose the size
    size_from_display: bool = False

    def __post_init__(self) -> None:
        if self.width < MIN_VIEWPORT_SIDE or self.height < MIN_VIEWPORT_SIDE:
            raise ConfigError(f"viewport must be positive, got {self.width}x{self.height}")
        if self.prefetch_ahead < 0 or self.prefetch_behind < 0:
            raise ConfigError("prefetch window cannot be negative")
        if self.workers < 0:
            raise ConfigError("worker count cannot be negative")
        if not (0.0 < self.min_zoom <= 1.0 <= self.max_zoom):
            raise ConfigError(f"zoom bounds must satisfy 0 < min <= 1 <= max, "
                              f"got [{self.min_zoom}, {self.max_zoom}]")
        if not (0.0 < self.min_scale <= self.max_scale):
            raise ConfigError(f"scale bounds invalid: [{self.min_scale}, {self.max_scale}]")
        if self.max_pixels <= 0:
            raise ConfigError("max_pixels must be positive")
        if self.max_entries is not None and self.max_entries < 1:
            raise ConfigError("max_entries must be at least 1")

    @property
    def screen_size(self) -> Tuple[int, int]:
        return (self.width, self.height)

    @property
    def window_span(self) -> int:
        """Number of positions covered by the prefetch window, cursor included."""
        return self.prefetch_ahead + self.prefetch_behind + 1

    @property
    def cache_capacity(self) -> int:
        """Maximum number of cache entries kept around the cursor."""
        if self.max_entries is not None:
            return max(self.max_entries, 1)
        return self.window_span

    @property
    def effective_workers(self) -> int:
        if self.low_performance:
            return min(self.workers, 1)
        return self.workers

    def with_overrides(self, **kwargs) -> ViewerConfig:
        """Return a copy with the given non-None fields replaced."""
        changes = {k: v for k, v in kwargs.items() if v is not None}
        return replace(self, **changes) if changes else self


def parse_screen_size(value: str) -> Tuple[int, int]:
    """Parse a 'W,H' or 'WxH' screen size string."""
    text = value.strip().lower().replace("x", ",")
    parts = [p.strip() for p in text.split(",")]
    if len(parts) != 2:
        raise ConfigError(f"screen size must look like 1920,1080 - got {value!r}")
    try:
        w, h = int(parts[0]), int(parts[1])
    except ValueError:
        raise ConfigError(f"screen size must be two integers - got {value!r}") from None
    if w < MIN_VIEWPORT_SIDE or h < MIN_VIEWPORT_SIDE:
        raise ConfigError(f"screen size must be positive - got {value!r}")
    return (w, h)


def display_window_size(monitor_w: int, monitor_h: int,
                        percent: int = SCREEN_PERCENT) -> Optional[Tuple[int, int]]:
    """Window size for a monitor, or None when the monitor size is unknown."""
    if monitor_w < MIN_VIEWPORT_SIDE or monitor_h < MIN_VIEWPORT_SIDE:
        return None
    return (max(MIN_VIEWPORT_SIDE, monitor_w * percent // 100),
            max(MIN_VIEWPORT_SIDE, monitor_h * percent // 100))


def screen_size_from_env(environ: Optional[Mapping[str, str]] = None) -> Optional[Tuple[int, int]]:
    """Read the SCREEN_SIZE override, which takes the place of the monitor size."""
    env = os.environ if environ is None else environ
    raw = env.get(SCREEN_SIZE_ENV)
    if not raw:
        return None
    return parse_screen_size(raw)
