import os
import signal
import socket

import pytest

from tinyhttpd.util import (
    ignore_sigpipe,
    read_available,
    set_nonblocking,
    write_available,
)


@pytest.fixture
def pair():
    a, b = socket.socketpair()
    set_nonblocking(a)
    set_nonblocking(b)
    yield a, b
    a.close()
    b.close()


def test_round_trip(pair):
    a, b = pair
    payload = b"GET / HTTP/1.1\r\n\r\n"
    assert write_available(a, payload) == len(payload)
    assert read_available(b) == payload


def test_read_reassembles_multiple_chunks(pair):
    a, b = pair
    payload = bytes(range(256)) * 40
    assert write_available(a, payload) == len(payload)
    assert read_available(b) == payload


def test_read_with_nothing_available_returns_empty(pair):
    _, b = pair
    assert read_available(b) == b""


def test_read_after_peer_close_returns_pending_then_empty(pair):
    a, b = pair
    write_available(a, b"bye")
    a.close()
    assert read_available(b) == b"bye"
    assert read_available(b) == b""


def test_write_stops_when_buffer_is_full(pair):
    a, _ = pair
    payload = b"x" * (16 * 1024 * 1024)
    sent = write_available(a, payload)
    assert 0 < sent < len(payload)


def test_write_to_closed_peer_raises(pair):
    a, b = pair
    ignore_sigpipe()
    b.close()
    with pytest.raises(OSError):
        write_available(a, b"data")


def test_set_nonblocking_socket():
    a, b = socket.socketpair()
    try:
        set_nonblocking(a)
        assert a.getblocking() is False
        assert b.getblocking() is True
    finally:
        a.close()
        b.close()


def test_set_nonblocking_fd():
    r, w = os.pipe()
    try:
        set_nonblocking(r)
        assert os.get_blocking(r) is False
    finally:
        os.close(r)
        os.close(w)


def test_ignore_sigpipe_sets_handler():
    previous = signal.getsignal(signal.SIGPIPE)
    a, b = socket.socketpair()
    try:
        signal.signal(signal.SIGPIPE, signal.SIG_DFL)
        ignore_sigpipe()
        assert signal.getsignal(signal.SIGPIPE) == signal.SIG_IGN
        set_nonblocking(a)
        b.close()
        with pytest.raises(BrokenPipeError):
            write_available(a, b"data")
    finally:
        a.close()
        signal.signal(signal.SIGPIPE, previous)