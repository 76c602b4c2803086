"""Background logger that batches lines in large buffers and writes them to a file."""

from __future__ import annotations

import os
import threading

from .logfile import LogFile
from .logstream import LARGE_BUFFER, FixedBuffer
from .threads import CountDownLatch, Thread

# Past this many full buffers in one batch, all but the first two are dropped.
_MAX_PENDING_BUFFERS = 25


class AsyncLogging:
    """Collect log data from any thread and write it out on a dedicated thread.

    Front-end threads append into the current buffer; full buffers are handed
    to the writer thread, which also wakes every ``flush_interval`` seconds.
    """

    def __init__(
        self,
        basename: str | os.PathLike[str],
        flush_interval: float = 2,
        buffer_size: int = LARGE_BUFFER,
    ) -> None:
        self._basename = basename
        self._flush_interval = flush_interval
        self._buffer_size = buffer_size
        self._running = False
        self._cond = threading.Condition()
        self._current = self._new_buffer()
        self._next: FixedBuffer | None = self._new_buffer()
        self._buffers: list[FixedBuffer] = []
        self._latch = CountDownLatch(1)
        self._thread = Thread(self._thread_func, "Logging")

    def _new_buffer(self) -> FixedBuffer:
        buf = FixedBuffer(self._buffer_size)
        buf.bzero()
        return buf

    @property
    def running(self) -> bool:
        return self._running

    def append(self, data: bytes) -> None:
        """Queue ``data`` for writing; data larger than a buffer is dropped."""
        with self._cond:
            if self._current.avail() > len(data):
                self._current.append(data)
                return
            self._buffers.append(self._current)
            if self._next is not None:
                self._current = self._next
                self._next = None
            else:
                self._current = self._new_buffer()
            self._current.append(data)
            self._cond.notify()

    def start(self) -> None:
        """Start the writer thread and wait until it is running."""
        self._running = True
        try:
            self._thread.start()
        except RuntimeError:
            self._running = False
            raise
        self._latch.wait()

    def stop(self) -> None:
        """Stop the writer thread after writing out everything appended so far."""
        if not self._running:
            raise RuntimeError("async logging is not running")
        with self._cond:
            self._running = False
            self._cond.notify()
        self._thread.join()

    def __enter__(self) -> "AsyncLogging":
        self.start()
        return self

    def __exit__(self, *exc: object) -> None:
        if self._running:
            self.stop()

    def _thread_func(self) -> None:
        self._latch.count_down()
        output = LogFile(self._basename)
        try:
            self._write_loop(output)
            with self._cond:
                remaining = self._buffers + [self._current]
                self._buffers = []
                for buf in remaining:
                    output.append(buf.data())
                self._current.reset()
            output.flush()
        finally:
            output.close()

    def _write_loop(self, output: LogFile) -> None:
        spare1: FixedBuffer | None = self._new_buffer()
        spare2: FixedBuffer | None = self._new_buffer()
        while self._running:
            with self._cond:
                if not self._buffers:
                    self._cond.wait(self._flush_interval)
                self._buffers.append(self._current)
                assert spare1 is not None
                self._current = spare1
                spare1 = None
                to_write, self._buffers = self._buffers, []
                if self._next is None:
                    self._next = spare2
                    spare2 = None

            if len(to_write) > _MAX_PENDING_BUFFERS:
                del to_write[2:]
            for buf in to_write:
                output.append(buf.data())
            del to_write[2:]

            if spare1 is None:
                spare1 = to_write.pop()
                spare1.reset()
            if spare2 is None:
                spare2 = to_write.pop()
                spare2.reset()
            output.flush()