"""A fixed-size pool of worker threads fed from a bounded task queue."""

from __future__ import annotations

import enum
import sys
import threading
import traceback
from collections import deque
from typing import Any, Callable, Optional

MAX_THREADS = 1024
MAX_QUEUE = 65535

DEFAULT_THREADS = 4
DEFAULT_QUEUE = 1024

Task = Callable[[Any], object]


class ShutdownOption(enum.Enum):
    IMMEDIATE = 1
    GRACEFUL = 2


class ThreadPoolError(Exception):
    """Base class for thread pool errors."""


class QueueFullError(ThreadPoolError):
    """The task queue is at capacity."""


class PoolShutdownError(ThreadPoolError):
    """The pool has been shut down."""


class ThreadPool:
    """Run ``func(args)`` tasks on a fixed set of worker threads.

    Out-of-range sizes fall back to 4 threads and a queue of 1024.
    """

    def __init__(
        self,
        thread_count: int = DEFAULT_THREADS,
        queue_size: int = DEFAULT_QUEUE,
        handler: Optional[Task] = None,
    ) -> None:
        if not (0 < thread_count <= MAX_THREADS) or not (0 < queue_size <= MAX_QUEUE):
            thread_count, queue_size = DEFAULT_THREADS, DEFAULT_QUEUE
        self._queue_size = queue_size
        self._handler = handler
        self._queue: deque[tuple[Task, Any]] = deque()
        self._cond = threading.Condition()
        self._shutdown: Optional[ShutdownOption] = None
        self._threads = [
            threading.Thread(target=self._worker, name=f"pool-worker-{i}", daemon=True)
            for i in range(thread_count)
        ]
        for thread in self._threads:
            thread.start()

    @property
    def thread_count(self) -> int:
        return len(self._threads)

    @property
    def queue_size(self) -> int:
        return self._queue_size

    @property
    def pending(self) -> int:
        with self._cond:
            return len(self._queue)

    @property
    def is_shutdown(self) -> bool:
        with self._cond:
            return self._shutdown is not None

    def add(self, args: Any, func: Optional[Task] = None) -> None:
        """Queue ``func(args)``; ``func`` defaults to the pool's handler."""
        func = func or self._handler
        if func is None:
            raise ValueError("no task function given and the pool has no handler")
        with self._cond:
            if len(self._queue) == self._queue_size:
                raise QueueFullError("task queue is full")
            if self._shutdown is not None:
                raise PoolShutdownError("thread pool is shut down")
            self._queue.append((func, args))
            self._cond.notify()

    def destroy(self, option: ShutdownOption = ShutdownOption.GRACEFUL) -> None:
        """Shut down and join the workers.

        A graceful shutdown runs every queued task first; an immediate one
        abandons the tasks still queued.
        """
        with self._cond:
            if self._shutdown is not None:
                raise PoolShutdownError("thread pool is already shut down")
            self._shutdown = option
            self._cond.notify_all()
        for thread in self._threads:
            thread.join()

    def __enter__(self) -> "ThreadPool":
        return self

    def __exit__(self, *exc: object) -> None:
        if not self.is_shutdown:
            self.destroy()

    def _worker(self) -> None:
        while True:
            with self._cond:
                while not self._queue and self._shutdown is None:
                    self._cond.wait()
                if self._shutdown is ShutdownOption.IMMEDIATE or (
                    self._shutdown is ShutdownOption.GRACEFUL and not self._queue
                ):
                    return
                func, args = self._queue.popleft()
            try:
                func(args)
            except Exception:
                traceback.print_exc(file=sys.stderr)