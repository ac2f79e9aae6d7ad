"""riv - a fast keyboard-driven image viewer."""

__version__ = "0.3.0"
