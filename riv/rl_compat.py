"""Raylib helpers for the python-raylib (cffi) binding."""

from __future__ import annotations
from typing import Any

import raylib as rl
from PIL import Image


# Owning pointers for colors; p[0] does not keep its storage alive on its own
_color_cache: dict = {}


def make_color(r: int, g: int, b: int, a: int = 255) -> Any:
    """Create a raylib Color."""
    key = (int(r), int(g), int(b), int(a))
    ptr = _color_cache.get(key)
    if ptr is None:
        ptr = rl.ffi.new("Color *", key)
        _color_cache[key] = ptr
    return ptr[0]


RL_BLACK = make_color(0, 0, 0)
RL_WHITE = make_color(245, 245, 245)
RL_GRAY = make_color(130, 130, 130)
RL_RED = make_color(230, 41, 55)


def draw_text(text: str, x: int, y: int, size: int, color: Any) -> None:
    rl.DrawText(text.encode('utf-8'), int(x), int(y), int(size), color)


def measure_text(text: str, size: int) -> int:
    return rl.MeasureText(text.encode('utf-8'), int(size))


def set_window_title(title: str) -> None:
    rl.SetWindowTitle(title.encode('utf-8'))


def _rgba_bytes(img: Image.Image) -> bytes:
    if img.mode != "RGBA":
        img = img.convert("RGBA")
    return img.tobytes()


def texture_from_pil(img: Image.Image) -> Any:
    """Upload a Pillow image as a new GPU texture."""
    raw = _rgba_bytes(img)
    buf = rl.ffi.new("unsigned char[]", raw)
    image = rl.ffi.new("Image *", {
        "data": buf,
        "width": img.width,
        "height": img.height,
        "mipmaps": 1,
        "format": rl.PIXELFORMAT_UNCOMPRESSED_R8G8B8A8,
    })
    # LoadTextureFromImage copies the pixels; buf may be freed afterwards
    return rl.LoadTextureFromImage(image[0])


def update_texture(tex: Any, img: Image.Image) -> None:
    """Replace the pixels of a texture that has the same size as img."""
    rl.UpdateTexture(tex, rl.ffi.from_buffer(_rgba_bytes(img)))


def get_texture_id(tex: Any) -> int:
    """Safely get texture ID."""
    return getattr(tex, 'id', 0) or 0


def is_texture_valid(tex: Any) -> bool:
    return get_texture_id(tex) > 0


__all__ = [
    'rl',
    'RL_BLACK',
    'RL_WHITE',
    'RL_GRAY',
    'RL_RED',
    'make_color',
    'draw_text',
    'measure_text',
    'set_window_title',
    'texture_from_pil',
    'update_texture',
    'get_texture_id',
    'is_texture_valid',
]
