"""Error taxonomy for riv."""

from __future__ import annotations
from enum import Enum
from typing import Optional
import os


class RivError(Exception):
    """Base class for all riv errors."""


class ConfigError(RivError):
    """Invalid configuration value (CLI option or environment)."""


class EnumerationError(RivError):
    """The image source root could not be read."""

    def __init__(self, root: str, reason: str):
        super().__init__(f"cannot read image source {root!r}: {reason}")
        self.root = root
        self.reason = reason


class ResourceExhausted(RivError):
    """The decode worker pool could not acquire the threads it needs."""


class DecodeErrorKind(Enum):
    UNSUPPORTED_FORMAT = "unsupported format"
    TRUNCATED = "truncated"
    CORRUPT = "corrupt"
    TOO_LARGE = "too large"


class DecodeError(RivError):
    """A single image failed to decode. Never fatal for the session."""

    def __init__(self, kind: DecodeErrorKind, path: str = "", detail: Optional[str] = None):
        self.kind = kind
        self.path = path
        self.detail = detail
        name = os.path.basename(path) if path else "<bytes>"
        msg = f"{name}: {kind.value}"
        if detail:
            msg += f" ({detail})"
        super().__init__(msg)

    def __reduce__(self):
        return (DecodeError, (self.kind, self.path, self.detail))
