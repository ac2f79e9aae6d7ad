"""Decode pipeline - raw bytes to canonical pixel buffers.

Decoding is pure: the same bytes always give the same result, and nothing
here touches shared state, so workers may call it concurrently.
"""

from __future__ import annotations
import io
import os
import struct
from typing import Callable, Dict, Optional, Tuple

from PIL import Image, ImageOps, UnidentifiedImageError

from .config import MAX_DECODED_PIXELS, MAX_FILE_SIZE_MB
from .errors import DecodeError, DecodeErrorKind
from .logging import log
from .sources import read_bytes
from .types import DecodedImage

EXIF_ORIENTATION_TAG = 0x0112

# (signature, offset, name)
_SIGNATURES: Tuple[Tuple[bytes, int, str], ...] = (
    (b"\x89PNG\r\n\x1a\n", 0, "PNG"),
    (b"\xff\xd8\xff", 0, "JPEG"),
    (b"GIF87a", 0, "GIF"),
    (b"GIF89a", 0, "GIF"),
    (b"BM", 0, "BMP"),
    (b"II*\x00", 0, "TIFF"),
    (b"MM\x00*", 0, "TIFF"),
    (b"qoif", 0, "QOI"),
    (b"\x00\x00\x01\x00", 0, "ICO"),
    (b"WEBP", 8, "WEBP"),                  # RIFF container
)

# JPEG start-of-frame markers (DHT, JPG and DAC share the 0xC_ range)
_JPEG_SOF = frozenset(range(0xC0, 0xD0)) - {0xC4, 0xC8, 0xCC}


def _gif_header_length(data: bytes) -> int:
    """Screen descriptor, global palette, extensions, first image descriptor."""
    end = 13
    if len(data) < end:
        return end
    flags = data[10]
    if flags & 0x80:
        end += 3 << ((flags & 0x07) + 1)
    while True:
        if len(data) <= end:
            return end + 1
        block = data[end]
        if block == 0x2C:
            need = end + 10
            if len(data) < need:
                return need
            local = data[end + 9]
            if local & 0x80:
                need += 3 << ((local & 0x07) + 1)
            return need + 1  # LZW minimum code size
        if block != 0x21:
            # Trailer or an unknown block; Pillow decides whether it is corrupt
            return end
        pos = end + 2
        while True:
            if len(data) <= pos:
                return pos + 1
            size = data[pos]
            pos += 1 + size
            if size == 0:
                break
        end = pos


def _tiff_header_length(data: bytes) -> int:
    """Header plus the whole first IFD, including the next-IFD pointer."""
    if len(data) < 8:
        return 8
    order = "<" if data[:2] == b"II" else ">"
    (ifd,) = struct.unpack(order + "I", data[4:8])
    if len(data) < ifd + 2:
        return ifd + 2
    (count,) = struct.unpack(order + "H", data[ifd:ifd + 2])
    return ifd + 2 + 12 * count + 4


def _bmp_header_length(data: bytes) -> int:
    """File header plus the DIB header whose size it declares."""
    if len(data) < 18:
        return 18
    (dib,) = struct.unpack("<I", data[14:18])
    return 14 + dib


def _jpeg_header_length(data: bytes) -> int:
    """Every marker segment up to and including the start-of-frame."""
    pos = 2
    while True:
        if len(data) < pos + 2:
            return pos + 2
        if data[pos] != 0xFF:
            return pos
        marker = data[pos + 1]
        if marker == 0xFF:
            pos += 1  # fill byte
            continue
        if marker == 0x01 or 0xD0 <= marker <= 0xD9:
            pos += 2
            continue
        if len(data) < pos + 4:
            return pos + 4
        (length,) = struct.unpack(">H", data[pos + 2:pos + 4])
        end = pos + 2 + length
        if marker in _JPEG_SOF or marker == 0xDA:
            return end
        pos = end


def _ico_header_length(data: bytes) -> int:
    if len(data) < 6:
        return 6
    (count,) = struct.unpack("<H", data[4:6])
    return 6 + 16 * max(count, 1)


# Bytes needed before the format's fixed header is complete
_HEADER_LENGTH: Dict[str, Callable[[bytes], int]] = {
    "PNG": lambda data: 33,                # signature + IHDR chunk
    "JPEG": _jpeg_header_length,
    "GIF": _gif_header_length,
    "BMP": _bmp_header_length,
    "TIFF": _tiff_header_length,
    "QOI": lambda data: 14,
    "ICO": _ico_header_length,
    "WEBP": lambda data: 30,
}

_TRUNCATION_HINTS = ("truncated", "premature end", "unexpected end", "not enough data",
                     "buffer is not large enough", "ran out of data")

# Exceptions Pillow plugins raise on malformed input
_PIL_DECODE_ERRORS = (OSError, SyntaxError, ValueError, EOFError, struct.error, IndexError,
                      TypeError, KeyError, ZeroDivisionError)


def sniff_format(data: bytes) -> Tuple[Optional[str], bool]:
    """Identify a container by magic bytes.

    Returns:
        (format name or None, header_complete). A buffer that is only a
        prefix of a known signature is reported as that format with an
        incomplete header.
    """
    for sig, offset, name in _SIGNATURES:
        if name == "WEBP":
            if data[:4] == b"RIFF" and data[8:12] == sig:
                return name, len(data) >= _HEADER_LENGTH[name](data)
            continue
        head = data[offset:offset + len(sig)]
        if head == sig:
            return name, len(data) >= _HEADER_LENGTH[name](data)
        if 2 <= len(data) < len(sig) and sig.startswith(data):
            return name, False
    return None, True


def _classify(exc: BaseException, sniffed: Optional[str]) -> DecodeErrorKind:
    if isinstance(exc, (Image.DecompressionBombError, MemoryError)):
        return DecodeErrorKind.TOO_LARGE
    if isinstance(exc, (EOFError, struct.error)):
        return DecodeErrorKind.TRUNCATED
    msg = str(exc).lower()
    if any(hint in msg for hint in _TRUNCATION_HINTS):
        return DecodeErrorKind.TRUNCATED
    if isinstance(exc, UnidentifiedImageError) and sniffed is None:
        return DecodeErrorKind.UNSUPPORTED_FORMAT
    return DecodeErrorKind.CORRUPT


def _normalize_mode(img: Image.Image) -> Image.Image:
    """Convert to RGB, or RGBA when the source carries transparency."""
    if img.mode in ("RGB", "RGBA"):
        return img
    if img.mode in ("I", "I;16", "I;16B", "I;16L", "F"):
        # Scale high bit-depth grayscale down to 8 bits
        img = img.convert("I").point(lambda v: v * (1 / 256)).convert("L")
    has_alpha = img.mode in ("LA", "PA", "La", "RGBa") or "transparency" in img.info
    return img.convert("RGBA" if has_alpha else "RGB")


def read_orientation(img: Image.Image) -> int:
    """EXIF orientation tag (1-8), 1 when absent or unreadable."""
    try:
        value = img.getexif().get(EXIF_ORIENTATION_TAG, 1)
    except _PIL_DECODE_ERRORS:
        return 1
    try:
        value = int(value)
    except (TypeError, ValueError):
        return 1
    return value if 1 <= value <= 8 else 1


def decode(data: bytes, path: str = "", max_pixels: int = MAX_DECODED_PIXELS) -> DecodedImage:
    """Decode raw bytes into a DecodedImage in canonical orientation.

    Args:
        data: Complete file contents.
        path: Source path, used for error reporting only.
        max_pixels: Safety ceiling on width * height.

    Raises:
        DecodeError: tagged UNSUPPORTED_FORMAT, TRUNCATED, CORRUPT or TOO_LARGE.
    """
    if not data:
        raise DecodeError(DecodeErrorKind.TRUNCATED, path, "empty file")

    sniffed, header_complete = sniff_format(data)
    if sniffed and not header_complete:
        raise DecodeError(DecodeErrorKind.TRUNCATED, path,
                          f"{sniffed} header cut short at {len(data)} bytes")

    try:
        img = Image.open(io.BytesIO(data))
    except _PIL_DECODE_ERRORS + (Image.DecompressionBombError,) as e:
        raise DecodeError(_classify(e, sniffed), path, str(e) or type(e).__name__) from e

    w, h = img.size
    if w <= 0 or h <= 0:
        raise DecodeError(DecodeErrorKind.CORRUPT, path, f"invalid dimensions {w}x{h}")
    if w * h > max_pixels:
        raise DecodeError(DecodeErrorKind.TOO_LARGE, path,
                          f"{w}x{h} exceeds {max_pixels} pixel ceiling")

    fmt = img.format or sniffed or ""
    try:
        img.load()
        orientation = read_orientation(img)
        img = ImageOps.exif_transpose(img)
        img = _normalize_mode(img)
    except (Image.DecompressionBombError, MemoryError) + _PIL_DECODE_ERRORS as e:
        raise DecodeError(_classify(e, sniffed), path, str(e) or type(e).__name__) from e

    return DecodedImage(
        pixels=img,
        width=img.width,
        height=img.height,
        mode=img.mode,
        format=fmt,
        orientation=orientation,
        path=path,
    )


def decode_file(path: str, max_pixels: int = MAX_DECODED_PIXELS,
                max_file_mb: float = MAX_FILE_SIZE_MB) -> DecodedImage:
    """Read a file and decode it. Filesystem failures surface as TRUNCATED."""
    try:
        size_mb = os.path.getsize(path) / (1024 * 1024)
        if size_mb > max_file_mb:
            raise DecodeError(DecodeErrorKind.TOO_LARGE, path, f"file too large: {size_mb:.1f}MB")
        data = read_bytes(path)
    except OSError as e:
        log(f"[DECODE][ERR] Cannot read {os.path.basename(path)}: {e!r}")
        raise DecodeError(DecodeErrorKind.TRUNCATED, path, e.strerror or repr(e)) from e
    return decode(data, path, max_pixels)


class Decoder:
    """Callable decoder bound to a pixel ceiling."""

    def __init__(self, max_pixels: int = MAX_DECODED_PIXELS, max_file_mb: float = MAX_FILE_SIZE_MB):
        self.max_pixels = max_pixels
        self.max_file_mb = max_file_mb

    def __call__(self, path: str) -> DecodedImage:
        return decode_file(path, self.max_pixels, self.max_file_mb)
