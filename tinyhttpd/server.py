"""Command-line entry point: serve files and image uploads over HTTP."""

from __future__ import annotations

import argparse
import socket
import sys
from typing import Optional, Sequence

from .poller import Poller
from .request import Event, handle_request
from .threadpool import ShutdownOption, ThreadPool
from .util import ignore_sigpipe, set_nonblocking

PORT = 8888
LISTENQ = 1024
THREADPOOL_THREAD_NUM = 4
QUEUE_SIZE = 65535


def socket_bind_listen(port: int) -> socket.socket:
    """Open a TCP socket listening on ``port`` on all IPv4 addresses."""
    if port < 1024 or port > 65535:
        raise ValueError(f"port {port} is outside 1024-65535")
    sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    try:
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        sock.bind(("", port))
        sock.listen(LISTENQ)
    except OSError:
        sock.close()
        raise
    return sock


def _parse_args(argv: Optional[Sequence[str]]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="tinyhttpd", description="A small HTTP server.")
    parser.add_argument("--port", type=int, default=PORT)
    parser.add_argument("--root", default=".", help="directory to serve files from")
    parser.add_argument("--threads", type=int, default=THREADPOOL_THREAD_NUM)
    parser.add_argument("--queue-size", type=int, default=QUEUE_SIZE)
    return parser.parse_args(argv)


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = _parse_args(argv)
    ignore_sigpipe()
    pool = ThreadPool(args.threads, args.queue_size, handler=handle_request)
    try:
        try:
            listen_sock = socket_bind_listen(args.port)
        except (ValueError, OSError) as exc:
            print(f"socket bind failed: {exc}", file=sys.stderr)
            return 1
        with listen_sock, Poller(dispatch=pool.add, root=args.root) as poller:
            set_nonblocking(listen_sock)
            poller.register(listen_sock, None, Event.IN)
            try:
                while True:
                    poller.poll(listen_sock, -1)
            except KeyboardInterrupt:
                return 0
    finally:
        pool.destroy(ShutdownOption.IMMEDIATE)


if __name__ == "__main__":
    sys.exit(main())