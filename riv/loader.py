"""Decode worker pool.

Workers never touch the cache. Each finished decode is posted as a
DecodeOutcome message to the outbox queue, which the cache owner drains on
its own thread.
"""

from __future__ import annotations
import os
from queue import PriorityQueue, Queue, Empty
from threading import Thread
from typing import Callable, FrozenSet, List, Optional

from .config import ASYNC_WORKERS, POLL_INTERVAL_S
from .errors import DecodeError, DecodeErrorKind, ResourceExhausted
from .logging import log
from .types import DecodedImage, DecodeOutcome, LoadTask

DecodeFunc = Callable[[str], DecodedImage]


class DecodeWorkerPool:
    """Bounded pool of decode threads fed from a priority queue."""

    def __init__(self, decode_func: DecodeFunc, workers: int = ASYNC_WORKERS,
                 outbox: Optional[Queue] = None):
        self.task_queue: PriorityQueue = PriorityQueue()
        self.outbox: Queue = outbox if outbox is not None else Queue()
        self.decode_func = decode_func
        self.running = True
        self.workers: List[Thread] = []
        self.synchronous = workers <= 0
        self.submitted = 0
        # Paths still worth decoding; replaced wholesale by the cache owner
        self.wanted: Optional[FrozenSet[str]] = None

        if not self.synchronous:
            self._start_workers(workers)

    def _start_workers(self, count: int) -> None:
        try:
            for i in range(count):
                worker = Thread(target=self._worker_loop, name=f"riv-decode-{i}", daemon=True)
                worker.start()
                self.workers.append(worker)
        except RuntimeError as e:
            err = ResourceExhausted(f"started {len(self.workers)} of {count} decode workers: {e}")
            log(f"[POOL][ERR] {err}")
            if not self.workers:
                self.synchronous = True
                log("[POOL] Falling back to synchronous decode on the calling thread")

    def _worker_loop(self) -> None:
        while self.running:
            try:
                task = self.task_queue.get(timeout=POLL_INTERVAL_S)
            except Empty:
                continue
            try:
                if not self.running:
                    continue
                wanted = self.wanted
                if wanted is not None and task.path not in wanted:
                    log(f"[POOL] Skipping stale task: {os.path.basename(task.path)}")
                    self.outbox.put(DecodeOutcome(task.path, cancelled=True))
                    continue
                self.outbox.put(self.run_task(task.path))
            finally:
                self.task_queue.task_done()

    def run_task(self, path: str) -> DecodeOutcome:
        """Decode one path and wrap the result as a message."""
        try:
            image = self.decode_func(path)
        except DecodeError as e:
            log(f"[DECODE][ERR] {e}")
            return DecodeOutcome(path, error=e)
        except Exception as e:
            # Anything else escaping the decoder still has to reach the cache
            log(f"[DECODE][ERR] Unexpected failure for {os.path.basename(path)}: {e!r}")
            return DecodeOutcome(path, error=DecodeError(DecodeErrorKind.CORRUPT, path, repr(e)))
        return DecodeOutcome(path, image=image)

    def submit(self, path: str, priority: int = 0) -> None:
        """Queue a decode. In synchronous mode it runs before returning."""
        self.submitted += 1
        if self.synchronous:
            self.outbox.put(self.run_task(path))
            return
        self.task_queue.put(LoadTask(path, priority))

    def shutdown(self) -> None:
        self.running = False
        for worker in self.workers:
            worker.join(timeout=1.0)
        self.workers.clear()
