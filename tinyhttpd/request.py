"""Per-connection request state: reading, parsing, answering and re-arming."""

from __future__ import annotations

import enum
import io
import os
import socket
import weakref
from typing import TYPE_CHECKING, Optional

from PIL import Image

from .httpparse import (
    HeaderParser,
    HttpParseError,
    HttpVersion,
    Method,
    build_error_response,
    get_mime,
    parse_request_line,
)
from .util import read_available, write_available

if TYPE_CHECKING:
    from .poller import Poller
    from .timer import TimerNode

KEEP_ALIVE_TIMEOUT = 5 * 60 * 1000
SHORT_TIMEOUT = 2000
UPLOAD_FILE = "receive.bmp"


class Event(enum.IntFlag):
    """Readiness a connection waits for."""

    IN = 1
    OUT = 4


class State(enum.Enum):
    PARSE_URI = 1
    PARSE_HEADERS = 2
    RECV_BODY = 3
    ANALYSIS = 4
    FINISH = 5


class RequestData:
    """The state of one client connection.

    Files named by GET requests are served from ``root``; POSTed images are
    stored there as ``receive.bmp`` and echoed back as PNG.
    """

    def __init__(
        self,
        poller: Optional["Poller"],
        sock: socket.socket,
        path: str = "/",
        root: str | os.PathLike[str] = ".",
    ) -> None:
        self._poller = poller
        self._sock = sock
        self.path = path
        self.root = os.fspath(root)
        self.in_buffer = b""
        self.out_buffer = b""
        self.events = Event(0)
        self.error = False
        self.method: Optional[Method] = None
        self.version: Optional[HttpVersion] = None
        self.file_name = ""
        self.state = State.PARSE_URI
        self.keep_alive = False
        self._headers = HeaderParser()
        self._timer: Optional[weakref.ref["TimerNode"]] = None
        self._readable = True
        self._writable = False
        self._closed = False

    @property
    def headers(self) -> dict[str, str]:
        return self._headers.headers

    @property
    def closed(self) -> bool:
        return self._closed

    def fileno(self) -> int:
        return self._sock.fileno()

    def link_timer(self, timer: "TimerNode") -> None:
        self._timer = weakref.ref(timer)

    def separate_timer(self) -> None:
        """Detach the linked timer so that its expiry leaves this request alone."""
        timer = self._timer() if self._timer is not None else None
        if timer is not None:
            timer.clear_request()
        self._timer = None

    def reset(self) -> None:
        """Prepare for the next request on a kept-alive connection."""
        self.in_buffer = b""
        self.file_name = ""
        self.path = ""
        self.state = State.PARSE_URI
        self._headers.reset()
        self.separate_timer()

    def enable_read(self) -> None:
        self._readable = True

    def enable_write(self) -> None:
        self._writable = True

    def disable_read_and_write(self) -> None:
        self._readable = False
        self._writable = False

    def can_read(self) -> bool:
        return self._readable

    def can_write(self) -> bool:
        return self._writable

    def handle_read(self) -> None:
        """Read what is available and advance the request as far as it goes."""
        try:
            data = read_available(self._sock)
        except OSError:
            self._fail(400, "Bad Request")
            return
        if not data:
            # Nothing to read: most likely the peer has closed.
            self.error = True
            return
        self.in_buffer += data
        self._advance()
        if self.error:
            return
        if self.out_buffer:
            self.events |= Event.OUT
        if self.state is State.FINISH:
            if self.keep_alive:
                self.reset()
                self.events |= Event.IN
        else:
            self.events |= Event.IN

    def handle_write(self) -> None:
        """Send as much of the pending response as the socket takes."""
        if self.error:
            return
        try:
            sent = write_available(self._sock, self.out_buffer)
        except OSError:
            self.events = Event(0)
            self.error = True
            return
        self.out_buffer = self.out_buffer[sent:]
        if self.out_buffer:
            self.events |= Event.OUT

    def handle_conn(self) -> None:
        """Re-arm the connection in the poller, or close it when it is done."""
        if self.error:
            self.close()
            return
        if self.events:
            timeout = KEEP_ALIVE_TIMEOUT if self.keep_alive else SHORT_TIMEOUT
            if Event.IN in self.events and Event.OUT in self.events:
                events = Event.OUT
            else:
                events = self.events
        elif self.keep_alive:
            timeout = KEEP_ALIVE_TIMEOUT
            events = Event.IN
        else:
            self.close()
            return
        self.disable_read_and_write()
        self.events = Event(0)
        # The timer goes in before re-arming, so that a fresh event cannot
        # race with a timer that is not yet linked.
        if self._poller is None:
            raise RuntimeError("request has no poller to re-arm with")
        self._poller.add_timer(self, timeout)
        try:
            self._poller.modify(self._sock, self, events)
        except (OSError, ValueError, KeyError):
            self.close()

    def close(self) -> None:
        """Detach from the timer and the poller and close the socket."""
        if self._closed:
            return
        self._closed = True
        self.separate_timer()
        fd = self._sock.fileno()
        if fd >= 0 and self._poller is not None:
            self._poller.unregister(fd)
        self._sock.close()

    def _fail(self, code: int, message: str) -> None:
        self.error = True
        self._send_error(code, message)

    def _send_error(self, code: int, message: str) -> None:
        try:
            write_available(self._sock, build_error_response(code, message))
        except OSError:
            pass

    def _advance(self) -> None:
        if self.state is State.PARSE_URI:
            try:
                line, rest = parse_request_line(self.in_buffer)
            except HttpParseError:
                self._fail(400, "Bad Request")
                return
            if line is None:
                return
            self.in_buffer = rest
            self.method = line.method
            self.file_name = line.file_name
            self.version = line.version
            self.state = State.PARSE_HEADERS

        if self.state is State.PARSE_HEADERS:
            try:
                done, rest = self._headers.feed(self.in_buffer)
            except HttpParseError:
                self._fail(400, "Bad Request")
                return
            self.in_buffer = rest
            if not done:
                return
            self.state = State.RECV_BODY if self.method is Method.POST else State.ANALYSIS

        if self.state is State.RECV_BODY:
            value = self.headers.get("Content-length")
            if value is None:
                self._fail(400, "Bad Request: Lack of argument (Content-length)")
                return
            try:
                length = int(value)
            except ValueError:
                self._fail(400, "Bad Request")
                return
            if length < 0:
                self._fail(400, "Bad Request")
                return
            if len(self.in_buffer) < length:
                return
            self.state = State.ANALYSIS

        if self.state is State.ANALYSIS:
            if self._analyse():
                self.state = State.FINISH
            else:
                self.error = True

    def _response_head(self) -> str:
        head = "HTTP/1.1 200 OK\r\n"
        if self.headers.get("Connection") == "keep-alive":
            self.keep_alive = True
            head += f"Connection: keep-alive\r\nKeep-Alive: timeout={KEEP_ALIVE_TIMEOUT}\r\n"
        return head

    def _analyse(self) -> bool:
        if self.method is Method.POST:
            return self._analyse_post()
        if self.method is Method.GET:
            return self._analyse_get()
        return False

    def _analyse_post(self) -> bool:
        head = self._response_head()
        length = int(self.headers["Content-length"])
        data = self.in_buffer[:length]
        try:
            with Image.open(io.BytesIO(data)) as image:
                image.load()
                image.save(os.path.join(self.root, UPLOAD_FILE), format="BMP")
                encoded = io.BytesIO()
                image.save(encoded, format="PNG")
        except (OSError, ValueError):
            self._send_error(400, "Bad Request")
            return False
        payload = encoded.getvalue()
        head += f"Content-length: {len(payload)}\r\n\r\n"
        self.out_buffer += head.encode("latin-1") + payload
        self.in_buffer = self.in_buffer[length:]
        return True

    def _analyse_get(self) -> bool:
        head = self._response_head()
        dot = self.file_name.find(".")
        mime = get_mime(self.file_name[dot:]) if dot >= 0 else get_mime("default")
        full_path = os.path.join(self.root, self.file_name)
        try:
            size = os.stat(full_path).st_size
            with open(full_path, "rb") as source:
                content = source.read()
        except OSError:
            self._send_error(404, "Not Found!")
            return False
        head += f"Content-type: {mime}\r\nContent-length: {size}\r\n\r\n"
        self.out_buffer += head.encode("latin-1") + content
        return True


def handle_request(request: RequestData) -> None:
    """Run one readiness event for ``request``: write, else read, then re-arm."""
    if request.can_write():
        request.handle_write()
    elif request.can_read():
        request.handle_read()
    request.handle_conn()