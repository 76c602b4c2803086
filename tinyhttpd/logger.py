"""Log lines tagged with their source location, sent to a pluggable output."""

from __future__ import annotations

import atexit
import inspect
import threading
from typing import Callable, Optional

from .asynclogging import AsyncLogging
from .logstream import LogStream

DEFAULT_LOG_FILE = "tinyhttpd.log"

Output = Callable[[bytes], None]

_lock = threading.Lock()
_output: Optional[Output] = None
_async_logger: Optional[AsyncLogging] = None


def _default_output(data: bytes) -> None:
    global _async_logger
    with _lock:
        if _async_logger is None:
            _async_logger = AsyncLogging(DEFAULT_LOG_FILE)
            _async_logger.start()
            atexit.register(_async_logger.stop)
        logger = _async_logger
    logger.append(data)


def set_output(output: Optional[Output]) -> Optional[Output]:
    """Send finished log lines to ``output``; ``None`` restores the log file.

    Returns the output that was in place before.
    """
    global _output
    with _lock:
        previous = _output
        _output = output
    return previous


def _emit(data: bytes) -> None:
    with _lock:
        output = _output
    (output or _default_output)(data)


class Logger:
    """One log line: stream values into it, then ``finish`` to emit it."""

    def __init__(self, filename: str, line: int) -> None:
        self.basename = filename
        self.line = line
        self._stream = LogStream()
        self._finished = False

    def stream(self) -> LogStream:
        return self._stream

    def finish(self) -> None:
        """Append the source location and emit the line, once."""
        if self._finished:
            return
        self._finished = True
        self._stream << " - " << self.basename << ":" << self.line << "\n"
        _emit(self._stream.buffer.data())

    def __enter__(self) -> LogStream:
        return self._stream

    def __exit__(self, *exc: object) -> None:
        self.finish()


def log(*args: object) -> None:
    """Log ``args`` as one line tagged with the caller's file and line."""
    frame = inspect.currentframe()
    caller = frame.f_back if frame is not None else None
    if caller is not None:
        filename, lineno = caller.f_code.co_filename, caller.f_lineno
    else:
        filename, lineno = "?", 0
    del frame, caller
    logger = Logger(filename, lineno)
    stream = logger.stream()
    for arg in args:
        stream << arg
    logger.finish()