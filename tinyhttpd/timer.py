"""Connection timeouts kept in a lazily pruned min-heap."""

from __future__ import annotations

import heapq
import itertools
import threading
import time
from typing import Any, Callable, Optional

Clock = Callable[[], int]
ExpireCallback = Callable[[Any], object]


def _now_ms() -> int:
    return time.time_ns() // 1_000_000


class TimerNode:
    """A deadline for one request, in milliseconds since the epoch."""

    def __init__(self, request: Any, timeout: int, clock: Optional[Clock] = None) -> None:
        self._clock = clock or _now_ms
        self._request = request
        self._deleted = False
        self._expire_time = self._clock() + timeout

    @property
    def request(self) -> Any:
        return self._request

    def update(self, timeout: int) -> None:
        """Move the deadline to ``timeout`` milliseconds from now."""
        self._expire_time = self._clock() + timeout

    def is_valid(self) -> bool:
        """Return whether the deadline is still ahead; an expired node is marked deleted."""
        if self._clock() < self._expire_time:
            return True
        self.mark_deleted()
        return False

    def clear_request(self) -> None:
        """Detach the request so that expiry no longer affects it."""
        self._request = None
        self.mark_deleted()

    def mark_deleted(self) -> None:
        self._deleted = True

    @property
    def deleted(self) -> bool:
        return self._deleted

    @property
    def expire_time(self) -> int:
        return self._expire_time


class TimerManager:
    """Track request timers and expire them in deadline order.

    Nodes marked deleted stay in the heap until they reach the top, so no
    search of the heap is ever needed. When a node expires while still
    holding its request, ``on_expire(request)`` is called.
    """

    def __init__(
        self,
        on_expire: Optional[ExpireCallback] = None,
        clock: Optional[Clock] = None,
    ) -> None:
        self._on_expire = on_expire
        self._clock = clock
        self._heap: list[tuple[int, int, TimerNode]] = []
        self._seq = itertools.count()
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._heap)

    def add_timer(self, request: Any, timeout: int) -> TimerNode:
        """Start a timer of ``timeout`` milliseconds and link it to ``request``."""
        node = TimerNode(request, timeout, self._clock)
        with self._lock:
            heapq.heappush(self._heap, (node.expire_time, next(self._seq), node))
        request.link_timer(node)
        return node

    def handle_expired(self) -> list[Any]:
        """Drop deleted and expired nodes from the front of the heap.

        Returns the requests whose timers expired while still attached.
        """
        expired: list[Any] = []
        with self._lock:
            while self._heap:
                node = self._heap[0][2]
                if node.deleted or not node.is_valid():
                    heapq.heappop(self._heap)
                    if node.request is not None:
                        expired.append(node.request)
                        node.clear_request()
                else:
                    break
        if self._on_expire is not None:
            for request in expired:
                self._on_expire(request)
        return expired