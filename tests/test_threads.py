import threading

import pytest

from tinyhttpd.threads import CountDownLatch, Thread, current_tid


def test_current_tid_matches_native_id():
    assert current_tid() == threading.get_native_id()
    assert current_tid() == current_tid()


def test_latch_counts_down():
    latch = CountDownLatch(3)
    assert latch.count == 3
    latch.count_down()
    assert latch.count == 2


def test_latch_wait_releases_after_count_down():
    latch = CountDownLatch(2)
    done = []

    def waiter():
        latch.wait()
        done.append(True)

    t = threading.Thread(target=waiter)
    t.start()
    latch.count_down()
    assert done == []
    latch.count_down()
    t.join(timeout=5)
    assert done == [True]
    assert latch.count == 0


def test_latch_wait_returns_immediately_at_zero():
    latch = CountDownLatch(0)
    latch.wait()
    assert latch.count == 0


def test_thread_runs_function_and_records_tid():
    seen = []
    worker = Thread(lambda: seen.append(current_tid()), "worker")
    assert worker.started is False
    worker.start()
    assert worker.started is True
    worker.join()
    assert seen == [worker.tid]
    assert worker.tid > 0
    assert worker.tid != current_tid()
    assert worker.name == "worker"


def test_thread_default_name():
    assert Thread(lambda: None).name == "Thread"


def test_thread_start_twice_raises():
    worker = Thread(lambda: None)
    worker.start()
    with pytest.raises(RuntimeError):
        worker.start()
    worker.join()


def test_thread_join_errors():
    worker = Thread(lambda: None)
    with pytest.raises(RuntimeError):
        worker.join()
    worker.start()
    worker.join()
    with pytest.raises(RuntimeError):
        worker.join()