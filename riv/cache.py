"""Prefetch cache - a sliding window of decoded images around the cursor.

The cache is owned by the foreground (navigation) thread. Only that thread
reads or mutates the entry map; decode workers hand their results back as
messages through the inbox queue, which is drained by poll() and while
get_current() waits on a cold entry.
"""

from __future__ import annotations
import os
from queue import Queue, Empty
from typing import Callable, Dict, FrozenSet, Optional, Set, Tuple

from .config import POLL_INTERVAL_S, ViewerConfig
from .decode import Decoder
from .errors import DecodeError
from .fit import FittedFrame, make_frame
from .loader import DecodeWorkerPool
from .logging import log
from .sources import SourceList
from .types import (
    CacheEntry, DecodedImage, DecodeOutcome, EntryStatus, FitLimits, ViewportSpec,
)


class PrefetchCache:
    """Decoded images for the positions near the cursor."""

    def __init__(self, sources: SourceList, config: ViewerConfig = ViewerConfig(),
                 decoder: Optional[Callable[[str], DecodedImage]] = None,
                 pool: Optional[DecodeWorkerPool] = None):
        self.sources = sources
        self.config = config
        self.limits = FitLimits(config.min_scale, config.max_scale, config.upscale)
        self._decoder = decoder or Decoder(config.max_pixels)
        if pool is None:
            pool = DecodeWorkerPool(self._decoder, config.effective_workers, Queue())
        self._pool = pool
        self._inbox: Queue = pool.outbox
        self._entries: Dict[str, CacheEntry] = {}
        self._in_flight: Set[str] = set()
        # Failures outlive eviction so a broken file is never decoded twice
        self._failures: Dict[str, DecodeError] = {}
        self._window: Tuple[str, ...] = ()
        self._cursor = 0
        self._direction = 1
        self._viewport = ViewportSpec(config.width, config.height)
        self.decode_requests = 0
        self.discarded = 0
        self.cancelled = 0

    # ─── observability ────────────────────────────────────────────────────

    @property
    def cursor(self) -> int:
        return self._cursor

    @property
    def direction(self) -> int:
        return self._direction

    @property
    def viewport(self) -> ViewportSpec:
        return self._viewport

    @property
    def paths(self) -> FrozenSet[str]:
        """Paths that currently have an entry (pending, ready or failed)."""
        return frozenset(self._entries)

    @property
    def window(self) -> Tuple[str, ...]:
        """Paths in the prefetch window, in load order."""
        return self._window

    @property
    def in_flight(self) -> FrozenSet[str]:
        return frozenset(self._in_flight)

    @property
    def current_path(self) -> Optional[str]:
        if self.sources.is_empty:
            return None
        return self.sources[self._cursor]

    def entry(self, path: str) -> Optional[CacheEntry]:
        return self._entries.get(path)

    def status(self, path: str) -> Optional[EntryStatus]:
        e = self._entries.get(path)
        return e.status if e else None

    def error(self, path: str) -> Optional[DecodeError]:
        e = self._entries.get(path)
        if e and e.error is not None:
            return e.error
        return self._failures.get(path)

    def decoded(self, path: str) -> Optional[DecodedImage]:
        """Decoded image for path if it is ready. Never blocks."""
        e = self._entries.get(path)
        if e and e.status is EntryStatus.READY:
            return e.image
        return None

    def memory_usage_bytes(self) -> int:
        return sum(e.image.nbytes for e in self._entries.values() if e.image is not None)

    # ─── window management ────────────────────────────────────────────────

    def _infer_direction(self, new_cursor: int) -> int:
        n = len(self.sources)
        delta = (new_cursor - self._cursor) % n
        if delta == 0:
            return self._direction
        return 1 if delta <= n // 2 else -1

    def advance(self, new_cursor: int, direction: Optional[int] = None) -> None:
        """Move the window to new_cursor, request missing decodes, evict the rest.

        direction is the way the user is travelling (+1/-1); the window reaches
        further ahead in that direction. When omitted it is inferred from the
        shortest move between the old and new cursor.
        """
        n = len(self.sources)
        if n == 0:
            return
        new_cursor %= n
        if direction is None:
            direction = self._infer_direction(new_cursor)
        self._direction = 1 if direction >= 0 else -1
        self._cursor = new_cursor

        indices = self.sources.window(new_cursor, self.config.prefetch_ahead,
                                      self.config.prefetch_behind, self._direction)
        self._window = tuple(self.sources[i] for i in indices)
        self._pool.wanted = frozenset(self._window)

        # Results that finished meanwhile are judged against the new window,
        # so a path coming back into view keeps its decode
        self.poll()

        for order, idx in enumerate(indices):
            path = self.sources[idx]
            entry = self._entries.get(path)
            if entry is not None:
                continue
            failure = self._failures.get(path)
            if failure is not None:
                self._entries[path] = CacheEntry(path=path, status=EntryStatus.FAILED, error=failure)
                continue
            self._entries[path] = CacheEntry(path=path)
            self._request(path, order)

        self._update_distances()
        self._evict()

    def _request(self, path: str, priority: int) -> None:
        """Submit a decode unless one is already in flight for path."""
        if path in self._in_flight:
            log(f"[CACHE] Coalesced request: {os.path.basename(path)}")
            return
        self._in_flight.add(path)
        self.decode_requests += 1
        self._pool.submit(path, priority)

    def _update_distances(self) -> None:
        for entry in self._entries.values():
            idx = self.sources.index_of(entry.path)
            entry.distance = self.sources.distance(idx, self._cursor) if idx is not None else len(self.sources)

    def _evict(self) -> None:
        """Drop out-of-window entries, farthest first, down to capacity."""
        capacity = self.config.cache_capacity
        if len(self._entries) <= capacity:
            return
        window = set(self._window)
        current = self.current_path
        candidates = sorted(
            (e for e in self._entries.values() if e.path not in window and e.path != current),
            key=lambda e: e.distance,
            reverse=True,
        )
        for entry in candidates:
            if len(self._entries) <= capacity:
                break
            del self._entries[entry.path]
            log(f"[CACHE] Evicted {os.path.basename(entry.path)} "
                f"(distance={entry.distance} status={entry.status.value})")

    # ─── message handling ─────────────────────────────────────────────────

    def _apply(self, outcome: DecodeOutcome) -> None:
        path = outcome.path
        self._in_flight.discard(path)

        if outcome.cancelled:
            self.cancelled += 1
            entry = self._entries.get(path)
            if entry is not None and entry.status is EntryStatus.PENDING:
                del self._entries[path]
            if path in self._window and path not in self._entries:
                # Back in the window before the skip reached us
                self._entries[path] = CacheEntry(path=path)
                self._request(path, self._window.index(path))
            return

        if path not in self._window:
            self.discarded += 1
            if outcome.error is not None:
                self._failures[path] = outcome.error
            entry = self._entries.get(path)
            if entry is not None and entry.status is EntryStatus.PENDING:
                del self._entries[path]
            log(f"[CACHE] Discarded out-of-window result: {os.path.basename(path)}")
            return

        entry = self._entries.get(path)
        if entry is None:
            entry = CacheEntry(path=path)
            self._entries[path] = entry
        elif entry.is_settled:
            # Results are applied at most once per entry
            return

        if outcome.ok:
            entry.status = EntryStatus.READY
            entry.image = outcome.image
            entry.error = None
            log(f"[CACHE] Ready: {os.path.basename(path)} {outcome.image.width}x{outcome.image.height}")
        else:
            entry.status = EntryStatus.FAILED
            entry.image = None
            entry.error = outcome.error
            self._failures[path] = outcome.error
            log(f"[CACHE][ERR] Failed: {outcome.error}")
        entry.frame = None

    def poll(self, max_events: int = 100) -> int:
        """Apply completed decodes without blocking. Returns how many were applied."""
        count = 0
        while count < max_events:
            try:
                outcome = self._inbox.get_nowait()
            except Empty:
                break
            self._apply(outcome)
            count += 1
        return count

    # ─── frames ───────────────────────────────────────────────────────────

    def set_viewport(self, viewport: ViewportSpec) -> None:
        """Invalidate every fitted frame. Decoded pixels stay cached."""
        if viewport == self._viewport:
            return
        self._viewport = viewport
        for entry in self._entries.values():
            entry.frame = None

    def _frame_for(self, entry: CacheEntry) -> FittedFrame:
        frame = entry.frame
        if frame is None or frame.viewport != self._viewport:
            frame = make_frame(entry.image, self._viewport, self.limits)
            entry.frame = frame
        return frame

    def _current_entry(self) -> Optional[CacheEntry]:
        path = self.current_path
        if path is None:
            return None
        entry = self._entries.get(path)
        if entry is None:
            self.advance(self._cursor, self._direction)
            entry = self._entries[path]
        return entry

    def try_current(self) -> Optional[FittedFrame]:
        """Current frame if decoded, None while pending. Never blocks.

        Raises:
            DecodeError: the current path is cached as failed.
        """
        self.poll()
        entry = self._current_entry()
        if entry is None or entry.status is EntryStatus.PENDING:
            return None
        if entry.status is EntryStatus.FAILED:
            raise entry.error
        return self._frame_for(entry)

    def get_current(self) -> Optional[FittedFrame]:
        """Current frame, waiting for its decode only on a cold entry.

        Returns None on an empty sequence.

        Raises:
            DecodeError: the current path is cached as failed.
        """
        entry = self._current_entry()
        if entry is None:
            return None
        path = entry.path
        waited = False
        while entry.status is EntryStatus.PENDING:
            if not self._pool.running:
                raise RuntimeError("decode pool is shut down")
            if path not in self._in_flight:
                self._request(path, 0)
            if not waited:
                log(f"[CACHE] Waiting for {os.path.basename(path)}")
                waited = True
            try:
                outcome = self._inbox.get(timeout=POLL_INTERVAL_S)
            except Empty:
                continue
            self._apply(outcome)
            entry = self._entries[path]

        if entry.status is EntryStatus.FAILED:
            raise entry.error
        return self._frame_for(entry)

    def close(self) -> None:
        self._pool.shutdown()

    def __enter__(self) -> PrefetchCache:
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
