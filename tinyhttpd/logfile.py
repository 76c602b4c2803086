"""Append-only log files with periodic flushing."""

from __future__ import annotations

import os
import threading
from typing import BinaryIO

_FILE_BUFFER = 64 * 1024


class AppendFile:
    """A file opened for appending with a 64 KiB write buffer."""

    def __init__(self, filename: str | os.PathLike[str]) -> None:
        self._fp: BinaryIO = open(filename, "ab", buffering=_FILE_BUFFER)

    def append(self, data: bytes) -> None:
        self._fp.write(data)

    def flush(self) -> None:
        self._fp.flush()

    def close(self) -> None:
        self._fp.close()

    def __enter__(self) -> "AppendFile":
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()


class LogFile:
    """A thread-safe log file flushed after every ``flush_every_n`` appends."""

    def __init__(self, basename: str | os.PathLike[str], flush_every_n: int = 1024) -> None:
        self.basename = basename
        self._flush_every_n = flush_every_n
        self._count = 0
        self._lock = threading.Lock()
        self._file = AppendFile(basename)

    def append(self, data: bytes) -> None:
        with self._lock:
            self._file.append(data)
            self._count += 1
            if self._count >= self._flush_every_n:
                self._count = 0
                self._file.flush()

    def flush(self) -> None:
        with self._lock:
            self._file.flush()

    def close(self) -> None:
        with self._lock:
            self._file.close()

    def __enter__(self) -> "LogFile":
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()