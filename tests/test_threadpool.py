import threading
import time

import pytest

from tinyhttpd.threadpool import (
    PoolShutdownError,
    QueueFullError,
    ShutdownOption,
    ThreadPool,
)


def _wait_until(predicate, timeout=5.0):
    deadline = time.monotonic() + timeout
    while not predicate():
        if time.monotonic() > deadline:
            raise AssertionError("condition not reached")
        time.sleep(0.005)


def test_invalid_sizes_fall_back_to_defaults():
    pool = ThreadPool(0, 10)
    try:
        assert pool.thread_count == 4
        assert pool.queue_size == 1024
    finally:
        pool.destroy()


def test_valid_sizes_are_kept():
    pool = ThreadPool(2, 8)
    try:
        assert pool.thread_count == 2
        assert pool.queue_size == 8
    finally:
        pool.destroy()


def test_graceful_shutdown_runs_all_tasks():
    results = []
    lock = threading.Lock()

    def task(value):
        with lock:
            results.append(value)

    pool = ThreadPool(3, 100)
    for i in range(20):
        pool.add(i, task)
    pool.destroy(ShutdownOption.GRACEFUL)
    assert pool.is_shutdown is True
    assert pool.pending == 0
    assert sorted(results) == list(range(20))


def test_handler_is_default_func():
    seen = []
    pool = ThreadPool(1, 10, handler=seen.append)
    pool.add("request")
    pool.destroy()
    assert seen == ["request"]


def test_add_without_func_or_handler_raises():
    pool = ThreadPool(1, 10)
    try:
        with pytest.raises(ValueError):
            pool.add(1)
    finally:
        pool.destroy()


def test_queue_full_raises():
    started = threading.Event()
    release = threading.Event()

    def blocker(_):
        started.set()
        release.wait(5)

    pool = ThreadPool(1, 2)
    try:
        pool.add(None, blocker)
        assert started.wait(5)
        pool.add(None, lambda _: None)
        pool.add(None, lambda _: None)
        assert pool.pending == 2
        with pytest.raises(QueueFullError):
            pool.add(None, lambda _: None)
    finally:
        release.set()
        pool.destroy()
    assert pool.pending == 0


def test_add_after_destroy_raises():
    pool = ThreadPool(1, 4)
    pool.destroy()
    with pytest.raises(PoolShutdownError):
        pool.add(1, lambda _: None)


def test_destroy_twice_raises():
    pool = ThreadPool(1, 4)
    pool.destroy()
    with pytest.raises(PoolShutdownError):
        pool.destroy()


def test_immediate_shutdown_drops_queued_tasks():
    started = threading.Event()
    release = threading.Event()
    ran = []

    def blocker(_):
        started.set()
        release.wait(5)

    pool = ThreadPool(1, 10)
    pool.add(None, blocker)
    assert started.wait(5)
    pool.add("a", ran.append)
    pool.add("b", ran.append)

    destroyer = threading.Thread(target=pool.destroy, args=(ShutdownOption.IMMEDIATE,))
    destroyer.start()
    _wait_until(lambda: pool.is_shutdown)
    release.set()
    destroyer.join(5)
    assert not destroyer.is_alive()
    assert ran == []
    assert pool.pending == 2


def test_failing_task_does_not_kill_worker(capsys):
    results = []

    def bad(_):
        raise ValueError("boom")

    pool = ThreadPool(1, 10)
    pool.add(None, bad)
    pool.add(5, results.append)
    pool.destroy()
    assert results == [5]
    assert "boom" in capsys.readouterr().err


def test_context_manager_destroys_pool():
    results = []
    with ThreadPool(2, 10) as pool:
        pool.add(1, results.append)
    assert pool.is_shutdown
    assert results == [1]