"""Shared fixtures: synthetic images and instrumented decoders."""

from __future__ import annotations

import io
import threading
from collections import Counter
from typing import Dict, Iterable, Optional, Tuple

import pytest
from PIL import Image

from riv.errors import DecodeError, DecodeErrorKind
from riv.types import DecodedImage


def png_bytes(size: Tuple[int, int] = (40, 30), color=(200, 30, 30), mode: str = "RGB") -> bytes:
    buf = io.BytesIO()
    Image.new(mode, size, color).save(buf, format="PNG")
    return buf.getvalue()


@pytest.fixture
def make_image(tmp_path):
    """Write a solid-color image file and return its path."""
    def _make(name: str, size=(40, 30), color=(10, 120, 200), fmt: Optional[str] = None) -> str:
        path = tmp_path / name
        Image.new("RGB", size, color).save(path, format=fmt)
        return str(path)
    return _make


class FakeDecoder:
    """Decoder stand-in that counts calls and can fail or block per path."""

    def __init__(self, size: Tuple[int, int] = (400, 300),
                 failures: Optional[Dict[str, DecodeErrorKind]] = None,
                 gate: Optional[threading.Event] = None):
        self.size = size
        self.failures = failures or {}
        self.gate = gate
        self.calls: Counter = Counter()
        self._lock = threading.Lock()
        self._active: Counter = Counter()
        self.max_concurrent: Counter = Counter()

    def __call__(self, path: str) -> DecodedImage:
        with self._lock:
            self.calls[path] += 1
            self._active[path] += 1
            self.max_concurrent[path] = max(self.max_concurrent[path], self._active[path])
        try:
            if self.gate is not None:
                assert self.gate.wait(timeout=5.0), "gate never opened"
            kind = self.failures.get(path)
            if kind is not None:
                raise DecodeError(kind, path, "synthetic failure")
            img = Image.new("RGB", self.size, (90, 90, 90))
            return DecodedImage(pixels=img, width=img.width, height=img.height,
                                mode=img.mode, format="PNG", path=path)
        finally:
            with self._lock:
                self._active[path] -= 1


@pytest.fixture
def fake_decoder():
    return FakeDecoder()


def names(paths: Iterable[str]) -> set:
    return {p.rsplit("/", 1)[-1] for p in paths}
