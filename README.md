# tinyhttpd

A small HTTP/1.0 and HTTP/1.1 server. Every connection is non-blocking; a
`selectors`-based poller hands ready connections to a fixed pool of worker
threads, and a timer queue closes connections that stay idle too long.

## What it does

- `GET` serves the named file from the root directory (`--root`, default the
  working directory). The query string is ignored, and `/` serves
  `index.html`. The content type comes from the file name from its first dot
  on (`.html`, `.htm`, `.txt`, `.c`, `.png`, `.jpg`, `.gif`, `.bmp`, `.ico`,
  `.gz`, `.avi`, `.doc`, `.mp3`); anything else is sent as `text/html`.
- `POST` takes an image body whose size is given by a `Content-length`
  header. The image is opened with Pillow, saved in the root directory as
  `receive.bmp` and sent back encoded as PNG.
- With `Connection: keep-alive` the response says so and the connection waits
  up to five minutes for the next request. Other connections are closed once
  the response has been written.
- A malformed request, a POST without `Content-length` or a body that is not
  an image gets a `400 Bad Request` page; a missing file gets a
  `404 Not Found!` page. The connection is then closed.
- At most 1000 file descriptors are served; connections accepted beyond that
  are closed at once.

## Install

```
pip install .
```

## Run

```
tinyhttpd
```

Options:

- `--port` (default 8888, must lie in 1024-65535), listening on all IPv4
  addresses
- `--root` directory to serve files from and to store `receive.bmp` in
- `--threads` worker threads (default 4)
- `--queue-size` task queue length (default 65535)

Out-of-range thread or queue sizes fall back to 4 threads and a queue of
1024. Stop the server with Ctrl-C.

## What it does not do

- It serves only `GET` and `POST`; there are no directory listings, ranges,
  chunked bodies or TLS.
- Requested paths are joined to the root without any check, so a path can
  reach outside it. Run it only where every readable file may be served.
- Files are read into memory whole before they are sent.
- Timers are checked only when the poller wakes for an event, so an idle
  connection is closed at the first wake-up after its timeout, not at the
  moment it runs out.

## Use as a library

- `tinyhttpd.threadpool.ThreadPool(thread_count, queue_size, handler)`:
  `add(args, func=None)` queues `func(args)` and raises `QueueFullError` or
  `PoolShutdownError` (both `ThreadPoolError`); `destroy(option)` shuts down
  with `ShutdownOption.GRACEFUL` (run what is queued) or
  `ShutdownOption.IMMEDIATE`.
- `tinyhttpd.httpparse`: `parse_request_line`, the incremental
  `HeaderParser`, `get_mime` and `build_error_response`; malformed input
  raises `HttpParseError`.
- `tinyhttpd.timer.TimerManager`: a min-heap of `TimerNode` deadlines;
  `handle_expired` drops deleted and expired nodes and returns the requests
  that expired.
- `tinyhttpd.poller.Poller` and `tinyhttpd.request.RequestData` /
  `handle_request`: the connection handling the server is built from.
- `tinyhttpd.util`: `read_available`, `write_available`, `set_nonblocking`,
  `ignore_sigpipe`.
- `tinyhttpd.threads`: `CountDownLatch`, and `Thread`, whose `start` returns
  once the thread's native id is known.
- Logging: `tinyhttpd.logger.log(*args)` writes one line tagged with the
  caller's file and line. By default lines go through a background
  `AsyncLogging` writer to `tinyhttpd.log` in the working directory;
  `set_output(callable)` sends the finished bytes elsewhere instead.
  `LogStream`, `FixedBuffer`, `LogFile` and `AppendFile` are the pieces
  underneath. The server itself writes no log lines.

```python
from tinyhttpd.httpparse import get_mime, parse_request_line

line, rest = parse_request_line(b"GET /a.png?x=1 HTTP/1.1\r\nHost: h\r\n\r\n")
print(line.file_name, get_mime(".png"))   # a.png image/png
```

## Tests

```
pip install .[test]
pytest
```