"""
Deferred updates.

Work queued here runs after the response has been produced, one callable
at a time in the order it was added. Failures are logged and never reach
the code that queued the work.
"""
import logging
from collections import deque
from typing import Callable, Deque

from shared.monitoring.structured_logger import log_error

logger = logging.getLogger(__name__)


class DeferredUpdateQueue:
    """Sequential post-response work queue owned by the request harness."""

    def __init__(self):
        self._queue: Deque[Callable[[], None]] = deque()

    def add_callable_update(self, callback: Callable[[], None]) -> None:
        self._queue.append(callback)

    def pending_count(self) -> int:
        return len(self._queue)

    def do_updates(self) -> int:
        """
        Run queued updates, including any queued while running.

        Returns:
            Number of updates executed
        """
        executed = 0
        while self._queue:
            callback = self._queue.popleft()
            executed += 1
            try:
                callback()
            except Exception as e:
                log_error(logger, e, {"deferred_update": getattr(callback, '__name__', repr(callback))})

        if executed:
            logger.debug(f"Ran {executed} deferred update(s)")
        return executed
