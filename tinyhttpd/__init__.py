"""A small threaded HTTP server with timed connections and asynchronous logging."""

__version__ = "0.6.0"

__all__ = [
    "asynclogging",
    "httpparse",
    "logfile",
    "logger",
    "logstream",
    "poller",
    "request",
    "server",
    "threadpool",
    "threads",
    "timer",
    "util",
]