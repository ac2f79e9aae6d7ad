"""Timestamped log lines tagged with the UI frame and the emitting thread.

Decode workers log from their own threads, so writes are serialized and each
line names its thread when it is not the main one.
"""

from __future__ import annotations
import sys
import threading
import time
from typing import Optional, TextIO


class Logger:
    """Writes `[elapsed Fframe thread] message` lines."""

    def __init__(self, enabled: bool = True, stream: Optional[TextIO] = None):
        self._t0 = time.perf_counter()
        self._frame = 0
        self._lock = threading.Lock()
        self.enabled = enabled
        self.stream = stream

    @property
    def frame(self) -> int:
        return self._frame

    def increment_frame(self) -> None:
        # Only the UI thread advances frames
        self._frame += 1

    @property
    def elapsed(self) -> float:
        return time.perf_counter() - self._t0

    def format(self, msg: str) -> str:
        thread = threading.current_thread()
        where = "" if thread is threading.main_thread() else f" {thread.name}"
        return f"[{self.elapsed:7.3f}s F{self._frame:06d}{where}] {msg}\n"

    def log(self, msg: str) -> None:
        if not self.enabled:
            return
        line = self.format(msg)
        with self._lock:
            out = self.stream or sys.stdout
            try:
                out.write(line)
                out.flush()
            except (OSError, ValueError):
                # Closed or detached stdout; stderr is the last resort
                try:
                    sys.stderr.write(line)
                except (OSError, ValueError):
                    pass

    __call__ = log


_logger: Optional[Logger] = None


def get_logger() -> Logger:
    global _logger
    if _logger is None:
        _logger = Logger()
    return _logger


def set_enabled(enabled: bool) -> None:
    """Turn log output on or off (--quiet)."""
    get_logger().enabled = enabled


def log(msg: str) -> None:
    get_logger().log(msg)


def get_frame() -> int:
    return get_logger().frame


def increment_frame() -> None:
    get_logger().increment_frame()


def now() -> float:
    """Monotonic high-resolution clock used for task ordering."""
    return time.perf_counter()
