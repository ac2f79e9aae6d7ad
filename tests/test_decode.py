"""Tests for the decode pipeline."""

from __future__ import annotations

import io
import os

import pytest
from PIL import Image

from conftest import png_bytes
from riv.decode import Decoder, decode, decode_file, sniff_format
from riv.errors import DecodeError, DecodeErrorKind


def _jpeg_with_orientation(size, orientation: int) -> bytes:
    img = Image.new("RGB", size, (0, 200, 0))
    exif = Image.Exif()
    exif[0x0112] = orientation
    buf = io.BytesIO()
    img.save(buf, format="JPEG", exif=exif.tobytes())
    return buf.getvalue()


def _encoded(fmt: str, size=(64, 48)) -> bytes:
    img = Image.frombytes("RGB", size, os.urandom(size[0] * size[1] * 3))
    buf = io.BytesIO()
    img.save(buf, format=fmt)
    return buf.getvalue()


def _kind(data: bytes, **kwargs) -> DecodeErrorKind:
    with pytest.raises(DecodeError) as exc:
        decode(data, "/imgs/x.png", **kwargs)
    return exc.value.kind


class TestDecode:
    def test_png_roundtrip_metadata(self):
        result = decode(png_bytes((40, 30)), "/imgs/a.png")
        assert result.size == (40, 30)
        assert result.mode == "RGB"
        assert result.format == "PNG"
        assert result.orientation == 1
        assert result.path == "/imgs/a.png"

    def test_alpha_is_kept(self):
        result = decode(png_bytes((8, 8), (1, 2, 3, 128), mode="RGBA"))
        assert result.mode == "RGBA"

    def test_grayscale_becomes_rgb(self):
        result = decode(png_bytes((8, 8), 128, mode="L"))
        assert result.mode == "RGB"
        assert result.pixels.getpixel((0, 0)) == (128, 128, 128)

    def test_exif_orientation_is_applied(self):
        data = _jpeg_with_orientation((40, 20), 6)
        result = decode(data, "/imgs/rotated.jpg")
        assert result.orientation == 6
        assert result.size == (20, 40)

    def test_same_bytes_same_pixels(self):
        data = png_bytes((16, 9), (4, 5, 6))
        a = decode(data)
        b = decode(data)
        assert a.size == b.size
        assert a.pixels.tobytes() == b.pixels.tobytes()


class TestDecodeErrors:
    def test_empty_is_truncated(self):
        assert _kind(b"") is DecodeErrorKind.TRUNCATED

    def test_truncated_mid_header(self):
        data = png_bytes()
        assert _kind(data[:20]) is DecodeErrorKind.TRUNCATED

    def test_signature_prefix_is_truncated(self):
        assert _kind(b"\x89PNG") is DecodeErrorKind.TRUNCATED
        assert _kind(b"\xff\xd8") is DecodeErrorKind.TRUNCATED

    @pytest.mark.parametrize("fmt,cut", [
        ("GIF", 13),
        ("GIF", 16),
        ("TIFF", 8),
        ("TIFF", 12),
        ("BMP", 30),
        ("JPEG", 10),
        ("JPEG", 60),
        ("PNG", 20),
    ])
    def test_cut_mid_header(self, fmt, cut):
        assert _kind(_encoded(fmt)[:cut]) is DecodeErrorKind.TRUNCATED

    @pytest.mark.parametrize("fmt", ["JPEG", "BMP"])
    def test_truncated_pixel_data(self, fmt):
        data = _encoded(fmt)
        assert _kind(data[: len(data) // 2]) is DecodeErrorKind.TRUNCATED

    @pytest.mark.parametrize("fmt", ["GIF", "TIFF", "BMP", "JPEG"])
    def test_complete_files_still_decode(self, fmt):
        assert decode(_encoded(fmt)).size == (64, 48)

    def test_unknown_bytes_are_unsupported(self):
        assert _kind(b"hello world, definitely not an image") is DecodeErrorKind.UNSUPPORTED_FORMAT

    def test_known_signature_with_garbage_is_corrupt(self):
        data = b"\x89PNG\r\n\x1a\n" + b"\x00\x00\x00\x0d" + b"\x01\x02\x03\x04" + b"\x00" * 30
        assert _kind(data) is DecodeErrorKind.CORRUPT

    def test_pixel_ceiling(self):
        data = png_bytes((100, 100))
        assert _kind(data, max_pixels=5000) is DecodeErrorKind.TOO_LARGE
        assert decode(data, max_pixels=10_000).size == (100, 100)

    def test_error_carries_path(self):
        with pytest.raises(DecodeError) as exc:
            decode(b"", "/imgs/empty.png")
        assert exc.value.path == "/imgs/empty.png"
        assert "empty.png" in str(exc.value)


class TestSniff:
    def test_known_formats(self):
        assert sniff_format(png_bytes()) == ("PNG", True)
        assert sniff_format(b"GIF89a" + b"\x00" * 20) == ("GIF", True)
        assert sniff_format(b"RIFF\x00\x00\x00\x00WEBP" + b"\x00" * 30) == ("WEBP", True)

    def test_unknown(self):
        assert sniff_format(b"plain text here") == (None, True)


class TestDecodeFile:
    def test_reads_from_disk(self, make_image):
        path = make_image("a.png", size=(12, 7))
        assert decode_file(path).size == (12, 7)

    def test_missing_file_is_truncated(self, tmp_path):
        with pytest.raises(DecodeError) as exc:
            decode_file(str(tmp_path / "gone.png"))
        assert exc.value.kind is DecodeErrorKind.TRUNCATED

    def test_decoder_applies_ceiling(self, make_image):
        path = make_image("big.png", size=(200, 200))
        with pytest.raises(DecodeError) as exc:
            Decoder(max_pixels=100)(path)
        assert exc.value.kind is DecodeErrorKind.TOO_LARGE
