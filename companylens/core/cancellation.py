# companylens/core/cancellation.py
import concurrent.futures
import logging
import threading
import time
from typing import Optional, TypeVar

from companylens.core.exceptions import SearchCancelledError

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_POLL_INTERVAL = 0.05


def raise_if_cancelled(cancel_event: Optional[threading.Event],
                       stage: str = "") -> None:
    """Raises SearchCancelledError if the caller has set the cancel event."""
    if cancel_event is not None and cancel_event.is_set():
        logger.info(f"Search request cancelled{f' during {stage}' if stage else ''}.")
        raise SearchCancelledError(
            f"Search request cancelled{f' during {stage}' if stage else ''}")


def wait_for_result(future: "concurrent.futures.Future[T]",
                    cancel_event: Optional[threading.Event] = None,
                    timeout: Optional[float] = None,
                    poll_interval: float = DEFAULT_POLL_INTERVAL,
                    stage: str = "") -> T:
    """
    Waits for a future while honoring a caller cancellation signal and a deadline.

    The calling thread never blocks longer than ``poll_interval`` without
    re-checking ``cancel_event``. On cancellation the future is cancelled
    (a call already running on a worker is abandoned, its result discarded).

    Args:
        future: Future produced by an executor.
        cancel_event: Set by the caller to abort the request.
        timeout: Overall deadline in seconds, or None to wait indefinitely.
        poll_interval: Seconds between cancellation checks.
        stage: Label used in log and error messages.

    Returns:
        The future's result. Exceptions raised by the call are re-raised as-is.

    Raises:
        SearchCancelledError: If ``cancel_event`` is set before the result arrives.
        concurrent.futures.TimeoutError: If the deadline passes first.
    """
    if cancel_event is None and timeout is None:
        return future.result()

    deadline = None if timeout is None else time.monotonic() + timeout
    while True:
        if cancel_event is not None and cancel_event.is_set():
            future.cancel()
            raise_if_cancelled(cancel_event, stage)

        wait = poll_interval if cancel_event is not None else None
        if deadline is not None:
            remaining = max(0.0, deadline - time.monotonic())
            wait = remaining if wait is None else min(wait, remaining)
        try:
            return future.result(timeout=wait)
        except concurrent.futures.TimeoutError:
            if future.done():
                # Finished meanwhile, or the call itself raised a TimeoutError
                return future.result()
            if deadline is not None and time.monotonic() >= deadline:
                future.cancel()
                raise
