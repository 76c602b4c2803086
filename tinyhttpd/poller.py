"""Readiness polling for the listening socket and client connections."""

from __future__ import annotations

import os
import selectors
import socket
import threading
from typing import Any, Callable, Optional

from .request import Event, RequestData
from .threadpool import ThreadPoolError
from .timer import Clock, TimerManager, TimerNode
from .util import set_nonblocking

MAX_FDS = 1000
NEW_CONNECTION_TIMEOUT = 500

Dispatch = Callable[[RequestData], Any]


def _mask(events: Event) -> int:
    mask = 0
    if Event.IN in events:
        mask |= selectors.EVENT_READ
    if Event.OUT in events:
        mask |= selectors.EVENT_WRITE
    return mask


class Poller:
    """Watch sockets and hand ready connections to ``dispatch``.

    A connection is armed for one event at a time: it is taken out of the
    poller when it becomes ready and goes back in when its handler re-arms
    it, so no two threads ever work on one connection.
    """

    def __init__(
        self,
        dispatch: Optional[Dispatch] = None,
        root: str | os.PathLike[str] = ".",
        path: str = "/",
        max_fds: int = MAX_FDS,
        clock: Optional[Clock] = None,
    ) -> None:
        self._dispatch = dispatch
        self.root = os.fspath(root)
        self.path = path
        self.max_fds = max_fds
        self._selector = selectors.DefaultSelector()
        self._lock = threading.RLock()
        self._fd2req: dict[int, Optional[RequestData]] = {}
        self._timers = TimerManager(on_expire=self._expire, clock=clock)

    def __contains__(self, fd: object) -> bool:
        try:
            self._selector.get_key(fd)
        except (KeyError, ValueError):
            return False
        return True

    def register(self, sock: socket.socket, request: Optional[RequestData], events: Event) -> None:
        """Start watching ``sock`` for ``events`` on behalf of ``request``."""
        fd = sock.fileno()
        with self._lock:
            self._fd2req[fd] = request
            try:
                self._selector.register(sock, _mask(events))
            except (OSError, ValueError, KeyError):
                self._fd2req.pop(fd, None)
                raise

    def modify(self, sock: socket.socket, request: Optional[RequestData], events: Event) -> None:
        """Re-arm ``sock`` for ``events``, registering it again if needed."""
        fd = sock.fileno()
        with self._lock:
            self._fd2req[fd] = request
            try:
                if fd in self:
                    self._selector.modify(sock, _mask(events))
                else:
                    self._selector.register(sock, _mask(events))
            except (OSError, ValueError, KeyError):
                self._fd2req.pop(fd, None)
                raise

    def unregister(self, fd: int) -> bool:
        """Stop watching ``fd``; return whether it was being watched."""
        with self._lock:
            self._fd2req.pop(fd, None)
            try:
                self._selector.unregister(fd)
            except (KeyError, ValueError):
                return False
            return True

    def accept_connections(self, listen_sock: socket.socket) -> list[RequestData]:
        """Accept every pending connection and arm each for reading."""
        accepted: list[RequestData] = []
        while True:
            try:
                conn, _address = listen_sock.accept()
            except InterruptedError:
                continue
            except OSError:
                break
            if conn.fileno() >= self.max_fds:
                conn.close()
                continue
            set_nonblocking(conn)
            request = RequestData(self, conn, self.path, self.root)
            self.register(conn, request, Event.IN)
            self.add_timer(request, NEW_CONNECTION_TIMEOUT)
            accepted.append(request)
        return accepted

    def poll(self, listen_sock: Optional[socket.socket], timeout: Optional[int] = -1) -> list[RequestData]:
        """Wait up to ``timeout`` ms (negative or None: forever) and dispatch ready requests.

        New connections on ``listen_sock`` are accepted. Requests that the
        dispatcher refuses are closed. Expired timers are handled last.
        Returns the requests that became ready.
        """
        wait = None if timeout is None or timeout < 0 else timeout / 1000
        ready = self._selector.select(wait)
        requests = self._collect(listen_sock, ready)
        if self._dispatch is not None:
            for index, request in enumerate(requests):
                try:
                    self._dispatch(request)
                except ThreadPoolError:
                    for dropped in requests[index:]:
                        dropped.close()
                    break
        self.handle_expired()
        return requests

    def add_timer(self, request: RequestData, timeout: int) -> TimerNode:
        return self._timers.add_timer(request, timeout)

    def handle_expired(self) -> list[Any]:
        """Close the connections whose timers have run out; return them."""
        return self._timers.handle_expired()

    def close(self) -> None:
        self._selector.close()

    def __enter__(self) -> "Poller":
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()

    def _expire(self, request: RequestData) -> None:
        request.close()

    def _collect(
        self,
        listen_sock: Optional[socket.socket],
        ready: list[tuple[selectors.SelectorKey, int]],
    ) -> list[RequestData]:
        listen_fd = listen_sock.fileno() if listen_sock is not None else -1
        requests: list[RequestData] = []
        for key, mask in ready:
            if key.fd == listen_fd:
                assert listen_sock is not None
                self.accept_connections(listen_sock)
                continue
            with self._lock:
                request = self._fd2req.pop(key.fd, None)
                try:
                    self._selector.unregister(key.fd)
                except (KeyError, ValueError):
                    pass
            if request is None:
                continue
            if mask & selectors.EVENT_READ:
                request.enable_read()
            if mask & selectors.EVENT_WRITE:
                request.enable_write()
            request.separate_timer()
            requests.append(request)
        return requests