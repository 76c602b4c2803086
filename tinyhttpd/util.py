"""Non-blocking socket helpers."""

from __future__ import annotations

import os
import signal
import socket

MAX_BUFF = 4096


def read_available(sock: socket.socket) -> bytes:
    """Read everything currently available on a non-blocking socket.

    Stops when the socket would block or the peer has closed; an empty
    result means nothing was read. Other socket errors are raised.
    """
    chunks: list[bytes] = []
    while True:
        try:
            chunk = sock.recv(MAX_BUFF)
        except InterruptedError:
            continue
        except BlockingIOError:
            break
        if not chunk:
            break
        chunks.append(chunk)
    return b"".join(chunks)


def write_available(sock: socket.socket, data: bytes) -> int:
    """Send as much of ``data`` as the socket accepts without blocking.

    Returns the number of bytes sent; the caller keeps the rest.
    """
    view = memoryview(data)
    sent = 0
    while sent < len(view):
        try:
            n = sock.send(view[sent:])
        except InterruptedError:
            continue
        except BlockingIOError:
            break
        sent += n
    return sent


def ignore_sigpipe() -> None:
    """Ignore SIGPIPE so that writing to a closed peer raises instead."""
    if hasattr(signal, "SIGPIPE"):
        signal.signal(signal.SIGPIPE, signal.SIG_IGN)


def set_nonblocking(sock: socket.socket | int) -> None:
    """Put a socket, or a raw file descriptor, into non-blocking mode."""
    if isinstance(sock, int):
        os.set_blocking(sock, False)
    else:
        sock.setblocking(False)