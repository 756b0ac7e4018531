# tests/test_cancellation.py
import concurrent.futures
import threading
import time

import pytest

from companylens.core.cancellation import raise_if_cancelled, wait_for_result
from companylens.core.exceptions import SearchCancelledError


@pytest.fixture
def executor():
    executor = concurrent.futures.ThreadPoolExecutor(max_workers=2)
    yield executor
    executor.shutdown(wait=False, cancel_futures=True)


def test_raise_if_cancelled():
    raise_if_cancelled(None)
    event = threading.Event()
    raise_if_cancelled(event)
    event.set()
    with pytest.raises(SearchCancelledError, match="during ranking"):
        raise_if_cancelled(event, "ranking")


def test_returns_result(executor):
    future = executor.submit(lambda: 42)
    assert wait_for_result(future, threading.Event(), timeout=1) == 42


def test_reraises_call_errors(executor):

    def fail():
        raise ValueError("boom")

    with pytest.raises(ValueError):
        wait_for_result(executor.submit(fail), threading.Event())


def test_deadline(executor):
    release = threading.Event()
    future = executor.submit(release.wait, 5)
    try:
        with pytest.raises(concurrent.futures.TimeoutError):
            wait_for_result(future, timeout=0.05, poll_interval=0.01)
    finally:
        release.set()


def test_cancel_while_waiting(executor):
    release = threading.Event()
    cancel = threading.Event()
    future = executor.submit(release.wait, 5)
    threading.Timer(0.05, cancel.set).start()
    started = time.monotonic()
    try:
        with pytest.raises(SearchCancelledError):
            wait_for_result(future, cancel, poll_interval=0.01)
    finally:
        release.set()
    assert time.monotonic() - started < 2
