"""Input events delivered by the window collaborator.

Each event knows which navigator handler it maps to, so the event loop can
stay a plain `navigator.handle(event)` call.
"""

from __future__ import annotations
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from .navigator import Navigator, Snapshot


class Event(ABC):
    """Base class for all navigation events."""

    @abstractmethod
    def dispatch(self, nav: "Navigator") -> "Snapshot":
        """Run the matching navigator handler."""


@dataclass(frozen=True)
class Next(Event):
    def dispatch(self, nav: "Navigator") -> "Snapshot":
        return nav.next()


@dataclass(frozen=True)
class Prev(Event):
    def dispatch(self, nav: "Navigator") -> "Snapshot":
        return nav.prev()


@dataclass(frozen=True)
class ZoomIn(Event):
    step: Optional[float] = None

    def dispatch(self, nav: "Navigator") -> "Snapshot":
        return nav.zoom_in(self.step)


@dataclass(frozen=True)
class ZoomOut(Event):
    step: Optional[float] = None

    def dispatch(self, nav: "Navigator") -> "Snapshot":
        return nav.zoom_out(self.step)


@dataclass(frozen=True)
class RotateCW(Event):
    def dispatch(self, nav: "Navigator") -> "Snapshot":
        return nav.rotate_cw()


@dataclass(frozen=True)
class Resize(Event):
    width: int
    height: int

    def dispatch(self, nav: "Navigator") -> "Snapshot":
        return nav.resize(self.width, self.height)


@dataclass(frozen=True)
class Pan(Event):
    """Move the visible region of a zoomed image, in viewport pixels."""
    dx: float
    dy: float

    def dispatch(self, nav: "Navigator") -> "Snapshot":
        return nav.pan(self.dx, self.dy)


@dataclass(frozen=True)
class ResetView(Event):
    def dispatch(self, nav: "Navigator") -> "Snapshot":
        return nav.reset_view()


@dataclass(frozen=True)
class Quit(Event):
    def dispatch(self, nav: "Navigator") -> "Snapshot":
        return nav.quit()
