"""Pure math utilities - no external dependencies."""

from __future__ import annotations


def clamp(v: float, a: float, b: float) -> float:
    """Clamp value v to range [a, b]."""
    return a if v < a else b if v > b else v


def wrap_index(i: int, n: int) -> int:
    """Wrap index i into [0, n). n must be positive."""
    return i % n


def circular_distance(a: int, b: int, n: int) -> int:
    """Shortest distance between two positions on a ring of n slots."""
    if n <= 0:
        return 0
    d = abs(a - b) % n
    return min(d, n - d)
