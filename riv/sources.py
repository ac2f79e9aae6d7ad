"""Image source enumeration - listing, ordering, cursor stepping."""

from __future__ import annotations
import os
import re
from typing import Iterable, List, Optional, Sequence, Tuple

from .config import IMG_EXTS
from .errors import EnumerationError
from .logging import log
from .math_utils import circular_distance, wrap_index

_DIGITS = re.compile(r"(\d+)")


def natural_sort_key(name: str) -> Tuple:
    """Case-insensitive sort key that orders digit runs numerically.

    'img2.png' sorts before 'img10.png'. Ties between names that differ only
    in case or leading zeros are broken by the raw name so the order stays total.
    """
    base = os.path.basename(name)
    parts = []
    for chunk in _DIGITS.split(base.casefold()):
        if not chunk:
            continue
        if chunk.isdigit():
            parts.append((0, int(chunk), chunk))
        else:
            parts.append((1, 0, chunk))
    return (tuple(parts), base, name)


def is_supported_image(filepath: str) -> bool:
    """Check if file has a supported image extension."""
    ext = os.path.splitext(filepath)[1].lower()
    return ext in IMG_EXTS


def _is_readable_file(path: str) -> bool:
    try:
        return os.path.isfile(path) and os.access(path, os.R_OK)
    except OSError:
        return False


def list_images(dirpath: str) -> List[str]:
    """List all supported, readable image files in a directory in natural order.

    Args:
        dirpath: Directory path to scan.

    Returns:
        List of absolute paths to image files.

    Raises:
        EnumerationError: The directory itself cannot be read.
    """
    root = os.path.abspath(dirpath)
    try:
        names = os.listdir(root)
    except OSError as e:
        raise EnumerationError(root, e.strerror or repr(e)) from e

    result = []
    for name in names:
        if not is_supported_image(name):
            continue
        path = os.path.join(root, name)
        if not _is_readable_file(path):
            log(f"[ENUM][SKIP] Unreadable: {name}")
            continue
        result.append(path)
    result.sort(key=natural_sort_key)
    return result


def list_explicit(paths: Iterable[str]) -> List[str]:
    """Filter an explicit file list, keeping the caller's order."""
    seen = set()
    result = []
    for p in paths:
        path = os.path.abspath(p)
        if path in seen:
            continue
        seen.add(path)
        if not is_supported_image(path):
            log(f"[ENUM][SKIP] Unsupported extension: {os.path.basename(path)}")
            continue
        if not _is_readable_file(path):
            log(f"[ENUM][SKIP] Unreadable: {os.path.basename(path)}")
            continue
        result.append(path)
    return result


def resolve_sources(args: Sequence[str]) -> Tuple[List[str], int]:
    """Turn command-line paths into an ordered image list and a start index.

    - no argument: the current directory
    - one directory: its images
    - one file: the images of its directory, starting on that file
    - several paths: an explicit list
    """
    if not args:
        return list_images(os.getcwd()), 0

    if len(args) == 1:
        target = os.path.abspath(args[0])
        if os.path.isdir(target):
            return list_images(target), 0
        if not os.path.exists(target):
            raise EnumerationError(target, "no such file or directory")
        images = list_images(os.path.dirname(target))
        try:
            return images, images.index(target)
        except ValueError:
            log(f"[ENUM] {os.path.basename(target)} not in listing, starting at 0")
            return images, 0

    return list_explicit(args), 0


def read_bytes(path: str) -> bytes:
    """Read a whole file. OSError propagates to the caller."""
    with open(path, "rb") as f:
        return f.read()


class SourceList:
    """Immutable snapshot of the browsing sequence with wraparound stepping."""

    def __init__(self, paths: Sequence[str]):
        self._paths: Tuple[str, ...] = tuple(paths)
        self._index = {p: i for i, p in enumerate(self._paths)}

    def __len__(self) -> int:
        return len(self._paths)

    def __getitem__(self, idx: int) -> str:
        return self._paths[idx]

    def __iter__(self):
        return iter(self._paths)

    @property
    def paths(self) -> Tuple[str, ...]:
        return self._paths

    @property
    def is_empty(self) -> bool:
        return not self._paths

    def index_of(self, path: str) -> Optional[int]:
        return self._index.get(path)

    def step(self, cursor: int, delta: int) -> Optional[int]:
        """Move cursor by delta with wraparound, or None on an empty sequence."""
        if not self._paths:
            return None
        return wrap_index(cursor + delta, len(self._paths))

    def next(self, cursor: int) -> Optional[int]:
        return self.step(cursor, 1)

    def prev(self, cursor: int) -> Optional[int]:
        return self.step(cursor, -1)

    def distance(self, a: int, b: int) -> int:
        return circular_distance(a, b, len(self._paths))

    def window(self, cursor: int, ahead: int, behind: int, direction: int = 1) -> List[int]:
        """Indices around cursor in load order: cursor, then ahead, then behind.

        'ahead' follows the direction of travel. Positions that wrap onto an
        index already in the window are skipped.
        """
        n = len(self._paths)
        if n == 0:
            return []
        step = 1 if direction >= 0 else -1
        order = [wrap_index(cursor, n)]
        seen = {order[0]}
        offsets = [step * k for k in range(1, ahead + 1)] + [-step * k for k in range(1, behind + 1)]
        for off in offsets:
            idx = wrap_index(cursor + off, n)
            if idx not in seen:
                seen.add(idx)
                order.append(idx)
        return order
