"""Incremental parsing of HTTP request lines and headers."""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Optional

MAX_HEADER_VALUE = 255

_CR = ord("\r")
_LF = ord("\n")
_COLON = ord(":")
_SPACE = ord(" ")

_MIME_TYPES = {
    ".html": "text/html",
    ".avi": "video/x-msvideo",
    ".bmp": "image/bmp",
    ".c": "text/plain",
    ".doc": "application/msword",
    ".gif": "image/gif",
    ".gz": "application/x-gzip",
    ".htm": "text/html",
    ".ico": "application/x-ico",
    ".jpg": "image/jpeg",
    ".png": "image/png",
    ".txt": "text/plain",
    ".mp3": "audio/mp3",
}
_DEFAULT_MIME = "text/html"


class Method(enum.Enum):
    POST = 1
    GET = 2


class HttpVersion(enum.Enum):
    HTTP_10 = 1
    HTTP_11 = 2


class HeaderState(enum.Enum):
    START = 0
    KEY = 1
    COLON = 2
    SPACES_AFTER_COLON = 3
    VALUE = 4
    CR = 5
    LF = 6
    END_CR = 7
    END_LF = 8


class HttpParseError(ValueError):
    """The request is malformed."""


@dataclass(frozen=True)
class RequestLine:
    method: Method
    file_name: str
    version: HttpVersion


def get_mime(suffix: str) -> str:
    """Return the MIME type for a file suffix such as ``.png``."""
    return _MIME_TYPES.get(suffix, _DEFAULT_MIME)


def parse_request_line(buffer: bytes) -> tuple[Optional[RequestLine], bytes]:
    """Parse the request line at the start of ``buffer``.

    Returns ``(None, buffer)`` while no CR has arrived yet, otherwise the
    parsed line and the bytes after the CR. Raises HttpParseError.
    """
    cr = buffer.find(b"\r")
    if cr < 0:
        return None, buffer
    line = buffer[:cr]
    rest = buffer[cr + 1:]

    pos = line.find(b"GET")
    if pos >= 0:
        method = Method.GET
    else:
        pos = line.find(b"POST")
        if pos < 0:
            raise HttpParseError("unsupported method")
        method = Method.POST

    pos = line.find(b"/", pos)
    if pos < 0:
        raise HttpParseError("missing request target")
    end = line.find(b" ", pos)
    if end < 0:
        raise HttpParseError("missing HTTP version")
    if end - pos > 1:
        target = line[pos + 1:end]
        query = target.find(b"?")
        if query >= 0:
            target = target[:query]
        file_name = target.decode("utf-8", "surrogateescape")
    else:
        file_name = "index.html"

    pos = line.find(b"/", end)
    if pos < 0 or len(line) - pos <= 3:
        raise HttpParseError("missing HTTP version")
    version_text = line[pos + 1:pos + 4]
    if version_text == b"1.0":
        version = HttpVersion.HTTP_10
    elif version_text == b"1.1":
        version = HttpVersion.HTTP_11
    else:
        raise HttpParseError("unsupported HTTP version")
    return RequestLine(method, file_name, version), rest


class HeaderParser:
    """Parse ``Key: value`` header lines up to the blank line that ends them.

    Data may arrive in pieces: an incomplete line is handed back to the
    caller and parsed again once more data has been appended to it.
    """

    def __init__(self) -> None:
        self.state = HeaderState.START
        self.headers: dict[str, str] = {}

    @property
    def done(self) -> bool:
        return self.state is HeaderState.END_LF

    def reset(self) -> None:
        self.state = HeaderState.START
        self.headers = {}

    def feed(self, buffer: bytes) -> tuple[bool, bytes]:
        """Consume complete header lines from ``buffer``.

        Returns ``(True, body)`` once the blank line is seen, or
        ``(False, unparsed)`` when more data is needed. Raises HttpParseError.
        """
        if self.done:
            return True, buffer
        state = self.state
        checkpoint, checkpoint_state = 0, state
        key_start = key_end = value_start = value_end = 0

        for i, c in enumerate(buffer):
            if state is HeaderState.START:
                if c in (_CR, _LF):
                    checkpoint = i + 1
                    continue
                checkpoint, checkpoint_state = i, HeaderState.START
                key_start = i
                state = HeaderState.KEY
            elif state is HeaderState.KEY:
                if c == _COLON:
                    key_end = i
                    state = HeaderState.COLON
                elif c in (_CR, _LF):
                    raise HttpParseError("header line without a colon")
            elif state is HeaderState.COLON:
                if c != _SPACE:
                    raise HttpParseError("expected a space after the colon")
                state = HeaderState.SPACES_AFTER_COLON
            elif state is HeaderState.SPACES_AFTER_COLON:
                value_start = i
                state = HeaderState.VALUE
            elif state is HeaderState.VALUE:
                if c == _CR:
                    value_end = i
                    state = HeaderState.CR
                elif i - value_start > MAX_HEADER_VALUE:
                    raise HttpParseError("header value too long")
            elif state is HeaderState.CR:
                if c != _LF:
                    raise HttpParseError("expected LF after CR")
                key = buffer[key_start:key_end].decode("latin-1")
                self.headers[key] = buffer[value_start:value_end].decode("latin-1")
                state = HeaderState.LF
                checkpoint, checkpoint_state = i + 1, HeaderState.LF
            elif state is HeaderState.LF:
                if c == _CR:
                    state = HeaderState.END_CR
                else:
                    key_start = i
                    state = HeaderState.KEY
            elif state is HeaderState.END_CR:
                if c != _LF:
                    raise HttpParseError("expected LF after the final CR")
                self.state = HeaderState.END_LF
                return True, buffer[i + 1:]

        self.state = checkpoint_state
        return False, buffer[checkpoint:]


def build_error_response(code: int, message: str) -> bytes:
    """Build a complete HTML error response that closes the connection."""
    short_msg = " " + message
    body = (
        "<html><title>Error</title>"
        '<body bgcolor="ffffff">'
        f"{code}{short_msg}"
        "<hr><em> tinyhttpd</em>\n</body></html>"
    ).encode("utf-8")
    header = (
        f"HTTP/1.1 {code}{short_msg}\r\n"
        "Content-type: text/html\r\n"
        "Connection: close\r\n"
        f"Content-length: {len(body)}\r\n"
        "\r\n"
    ).encode("utf-8")
    return header + body