"""Pure view calculation functions - no side effects, no state mutation."""

from __future__ import annotations
import math
from dataclasses import dataclass
from typing import Optional, Tuple

from PIL import Image

from .config import BG_COLOR
from .math_utils import clamp
from .types import DecodedImage, FitLimits, FitResult, Rotation, ViewportSpec

# Pillow's ROTATE_* transposes turn counter-clockwise
_TRANSPOSE_CW = {
    Rotation.DEG_90: Image.Transpose.ROTATE_270,
    Rotation.DEG_180: Image.Transpose.ROTATE_180,
    Rotation.DEG_270: Image.Transpose.ROTATE_90,
}


def rotated_size(img_w: int, img_h: int, rotation: Rotation) -> Tuple[int, int]:
    """Image dimensions as displayed after rotation (swap at 90/270)."""
    if rotation.swaps_axes:
        return (img_h, img_w)
    return (img_w, img_h)


def compute_fit_scale(
    img_w: int,
    img_h: int,
    screen_w: int,
    screen_h: int,
    upscale: bool = True
) -> float:
    """Compute scale to fit image within screen bounds.

    Args:
        img_w: Image width in pixels.
        img_h: Image height in pixels.
        screen_w: Screen width in pixels.
        screen_h: Screen height in pixels.
        upscale: Allow images smaller than the screen to grow past 1:1.

    Returns:
        Scale factor to fit image.
    """
    if img_w <= 0 or img_h <= 0:
        return 1.0
    scale = min(screen_w / img_w, screen_h / img_h)
    if not upscale:
        scale = min(scale, 1.0)
    return scale


def _pan_limit(scaled: float, view: int) -> float:
    """How far the image may be panned from center along one axis."""
    return max(0.0, (scaled - view) / 2.0)


def _axis_offset(scaled: float, view: int, pan: float) -> float:
    """Top-left offset along one axis.

    An image that fits is centered. An image larger than the view is placed
    at center + pan, clamped to [view - scaled, 0] so it always covers the view.
    """
    centered = (view - scaled) / 2.0
    if scaled <= view:
        return centered
    return clamp(centered + pan, view - scaled, 0.0)


def compute_scale(
    image_size: Tuple[int, int],
    viewport: ViewportSpec,
    limits: FitLimits = FitLimits()
) -> float:
    """Fit scale times zoom, clamped to the configured bounds. Never <= 0."""
    rw, rh = rotated_size(image_size[0], image_size[1], viewport.rotation)
    base = compute_fit_scale(rw, rh, viewport.width, viewport.height, limits.upscale)
    return clamp(base * viewport.zoom, limits.min_scale, limits.max_scale)


def fit(
    image_size: Tuple[int, int],
    viewport: ViewportSpec,
    limits: FitLimits = FitLimits()
) -> FitResult:
    """Map an image onto a viewport.

    Rotation is applied to the dimensions first, then
    scale = min(vw / iw, vh / ih) * zoom, clamped to limits. Offsets center
    the scaled image, or become a clamped pannable origin on any axis where
    it overflows the viewport.

    Identical inputs always give identical results.
    """
    scale = compute_scale(image_size, viewport, limits)
    rw, rh = rotated_size(image_size[0], image_size[1], viewport.rotation)
    sw, sh = rw * scale, rh * scale
    return FitResult(
        scale=scale,
        offset_x=_axis_offset(sw, viewport.width, viewport.pan_x),
        offset_y=_axis_offset(sh, viewport.height, viewport.pan_y),
    )


def clamp_pan(
    image_size: Tuple[int, int],
    viewport: ViewportSpec,
    limits: FitLimits = FitLimits()
) -> Tuple[float, float]:
    """Pan values actually reachable for this image and viewport.

    Axes where the image fits get 0; overflowing axes are limited so the
    stored pan never runs past the image edge.
    """
    scale = compute_scale(image_size, viewport, limits)
    rw, rh = rotated_size(image_size[0], image_size[1], viewport.rotation)
    mx = _pan_limit(rw * scale, viewport.width)
    my = _pan_limit(rh * scale, viewport.height)
    return (clamp(viewport.pan_x, -mx, mx), clamp(viewport.pan_y, -my, my))


@dataclass(frozen=True)
class VisibleRegion:
    """Part of the rotated source that lands inside the viewport."""
    box: Tuple[int, int, int, int]   # source crop (left, top, right, bottom)
    size: Tuple[int, int]            # resampled size
    dest: Tuple[int, int]            # paste position in the viewport


def visible_region(
    rotated_w: int,
    rotated_h: int,
    result: FitResult,
    viewport: ViewportSpec
) -> Optional[VisibleRegion]:
    """Compute the crop/resize/paste plan for composing a frame.

    Only the visible part of the source is resampled, so zooming far into a
    large image does not allocate a full-size upscaled buffer.
    """
    s = result.scale
    ox, oy = result.offset_x, result.offset_y
    x0 = max(0.0, -ox / s)
    y0 = max(0.0, -oy / s)
    x1 = min(float(rotated_w), (viewport.width - ox) / s)
    y1 = min(float(rotated_h), (viewport.height - oy) / s)
    if x1 <= x0 or y1 <= y0:
        return None

    bx0, by0 = int(math.floor(x0)), int(math.floor(y0))
    bx1 = min(rotated_w, int(math.ceil(x1)))
    by1 = min(rotated_h, int(math.ceil(y1)))
    dw = max(1, int(round((bx1 - bx0) * s)))
    dh = max(1, int(round((by1 - by0) * s)))
    dest = (int(round(ox + bx0 * s)), int(round(oy + by0 * s)))
    return VisibleRegion(box=(bx0, by0, bx1, by1), size=(dw, dh), dest=dest)


@dataclass(frozen=True)
class FittedFrame:
    """A decoded image placed on a specific viewport. Recomputed, never mutated."""
    image: DecodedImage
    result: FitResult
    viewport: ViewportSpec

    @property
    def path(self) -> str:
        return self.image.path

    @property
    def scale(self) -> float:
        return self.result.scale

    @property
    def offset(self) -> Tuple[float, float]:
        return (self.result.offset_x, self.result.offset_y)

    @property
    def display_size(self) -> Tuple[float, float]:
        """Size of the scaled, rotated image in viewport pixels."""
        rw, rh = rotated_size(self.image.width, self.image.height, self.viewport.rotation)
        return (rw * self.result.scale, rh * self.result.scale)

    def rotated_pixels(self) -> Image.Image:
        """Source pixels turned to the display rotation."""
        src = self.image.pixels
        transpose = _TRANSPOSE_CW.get(self.viewport.rotation)
        return src.transpose(transpose) if transpose is not None else src

    def compose(
        self,
        background: Tuple[int, int, int, int] = BG_COLOR,
        resample: Image.Resampling = Image.Resampling.LANCZOS
    ) -> Image.Image:
        """Render the frame into a viewport-sized RGB canvas."""
        canvas = Image.new("RGB", self.viewport.size, background[:3])
        src = self.rotated_pixels()
        region = visible_region(src.width, src.height, self.result, self.viewport)
        if region is None:
            return canvas
        scaled = src.resize(region.size, resample, box=region.box)
        # Transparent pixels blend over the background
        mask = scaled if scaled.mode == "RGBA" else None
        canvas.paste(scaled, region.dest, mask)
        return canvas


def make_frame(image: DecodedImage, viewport: ViewportSpec, limits: FitLimits = FitLimits()) -> FittedFrame:
    """Fit a decoded image to a viewport."""
    return FittedFrame(image=image, result=fit(image.size, viewport, limits), viewport=viewport)
