"""Fixed-size log buffers and a stream that formats values into them."""

from __future__ import annotations

SMALL_BUFFER = 4000
LARGE_BUFFER = 4000 * 1000

_MAX_NUMERIC_SIZE = 32


class FixedBuffer:
    """A byte buffer of fixed capacity; appends that do not fit are dropped."""

    def __init__(self, size: int = SMALL_BUFFER) -> None:
        self._store = bytearray(size)
        self._size = size
        self._cur = 0

    def append(self, data: bytes) -> None:
        n = len(data)
        if self.avail() > n:
            self._store[self._cur:self._cur + n] = data
            self._cur += n

    def data(self) -> bytes:
        return bytes(self._store[:self._cur])

    def __len__(self) -> int:
        return self._cur

    def avail(self) -> int:
        return self._size - self._cur

    def reset(self) -> None:
        self._cur = 0

    def bzero(self) -> None:
        self._store = bytearray(self._size)


class LogStream:
    """Formats values with ``<<`` into a small fixed buffer."""

    def __init__(self) -> None:
        self._buffer = FixedBuffer(SMALL_BUFFER)

    def _append_numeric(self, text: str) -> None:
        if self._buffer.avail() >= _MAX_NUMERIC_SIZE:
            self._buffer.append(text.encode("ascii")[:_MAX_NUMERIC_SIZE - 1])

    def __lshift__(self, value: object) -> "LogStream":
        if isinstance(value, bool):
            self._buffer.append(b"1" if value else b"0")
        elif isinstance(value, int):
            self._append_numeric(str(value))
        elif isinstance(value, float):
            self._append_numeric("%.12g" % value)
        elif isinstance(value, str):
            self._buffer.append(value.encode("utf-8"))
        elif isinstance(value, (bytes, bytearray)):
            self._buffer.append(bytes(value))
        elif value is None:
            self._buffer.append(b"(null)")
        else:
            raise TypeError(f"cannot log value of type {type(value).__name__}")
        return self

    def append(self, data: bytes) -> None:
        self._buffer.append(data)

    @property
    def buffer(self) -> FixedBuffer:
        return self._buffer

    def reset_buffer(self) -> None:
        self._buffer.reset()