"""Core data types for riv."""

from __future__ import annotations
from dataclasses import dataclass, replace
from typing import Tuple, Optional, Any
from enum import Enum, IntEnum

from .errors import DecodeError
from .logging import now


class Rotation(IntEnum):
    """Clockwise display rotation in degrees."""
    DEG_0 = 0
    DEG_90 = 90
    DEG_180 = 180
    DEG_270 = 270

    def cw(self) -> Rotation:
        """Next rotation step clockwise."""
        return Rotation((self.value + 90) % 360)

    @property
    def swaps_axes(self) -> bool:
        return self.value in (90, 270)


@dataclass(frozen=True)
class ViewportSpec:
    """Target display region plus zoom, rotation and pan state."""
    width: int
    height: int
    zoom: float = 1.0
    rotation: Rotation = Rotation.DEG_0
    pan_x: float = 0.0
    pan_y: float = 0.0

    @property
    def size(self) -> Tuple[int, int]:
        return (self.width, self.height)

    def with_size(self, width: int, height: int) -> ViewportSpec:
        return replace(self, width=width, height=height)

    def with_zoom(self, zoom: float) -> ViewportSpec:
        return replace(self, zoom=zoom)

    def with_rotation(self, rotation: Rotation) -> ViewportSpec:
        return replace(self, rotation=rotation)

    def with_pan(self, pan_x: float, pan_y: float) -> ViewportSpec:
        return replace(self, pan_x=pan_x, pan_y=pan_y)


@dataclass(frozen=True)
class FitLimits:
    """Scale bounds applied by the fit engine."""
    min_scale: float = 0.01
    max_scale: float = 64.0
    upscale: bool = True


@dataclass(frozen=True)
class FitResult:
    """Scale and top-left offset of the (rotated) image inside the viewport."""
    scale: float
    offset_x: float
    offset_y: float


@dataclass
class DecodedImage:
    """Decoded pixels in canonical orientation."""
    pixels: Any  # PIL.Image.Image - using Any to keep this module Pillow-free
    width: int
    height: int
    mode: str
    format: str = ""
    orientation: int = 1  # EXIF orientation tag value before normalization
    path: str = ""

    @property
    def size(self) -> Tuple[int, int]:
        return (self.width, self.height)

    @property
    def nbytes(self) -> int:
        """Approximate pixel buffer size."""
        return self.width * self.height * len(self.mode)


class EntryStatus(Enum):
    PENDING = "pending"
    READY = "ready"
    FAILED = "failed"


@dataclass
class CacheEntry:
    """Cache slot for one path."""
    path: str
    status: EntryStatus = EntryStatus.PENDING
    image: Optional[DecodedImage] = None
    error: Optional[DecodeError] = None
    distance: int = 0
    frame: Optional[Any] = None  # FittedFrame memo, dropped on viewport change

    @property
    def is_settled(self) -> bool:
        """True once the entry is either decoded or failed."""
        return self.status is not EntryStatus.PENDING


@dataclass
class LoadTask:
    """A task for the decode worker pool."""
    path: str
    priority: int
    timestamp: float = 0.0

    def __post_init__(self):
        if not self.timestamp:
            self.timestamp = now()

    def __lt__(self, other: LoadTask) -> bool:
        """Compare tasks for priority queue ordering."""
        if self.priority != other.priority:
            return self.priority < other.priority
        return self.timestamp < other.timestamp


@dataclass
class DecodeOutcome:
    """Message posted by a worker when a decode finishes or is skipped."""
    path: str
    image: Optional[DecodedImage] = None
    error: Optional[DecodeError] = None
    cancelled: bool = False  # left the window before a worker picked it up

    @property
    def ok(self) -> bool:
        return not self.cancelled and self.error is None and self.image is not None
