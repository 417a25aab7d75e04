"""
Cancellation and deadline signal threaded through statement execution.

A `QueryContext` is created per request. Execution strategies check it
before touching the connection and, while a statement runs, arm a timer for
the remaining deadline. Cancelling the context, by hand from another thread
or by the deadline passing, invokes the strategy's driver-level cancel.

    ctx = QueryContext(timeout=5)
    response = catalog.execute(cn, Employee, request, ctx=ctx)

    # elsewhere
    ctx.cancel()
"""
import logging
import threading
import time
from collections.abc import Callable, Iterator
from contextlib import contextmanager

from sqld.exceptions import ExecutionCancelled

logger = logging.getLogger(__name__)


class QueryContext:
    """Cancellable context with an optional deadline."""

    def __init__(self, timeout: float | None = None,
                 clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self.deadline = clock() + timeout if timeout else None
        self._cancelled = threading.Event()
        self._reason: str | None = None
        self._callbacks: list[Callable[[], None]] = []
        self._lock = threading.Lock()

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    @property
    def expired(self) -> bool:
        return self.deadline is not None and self._clock() >= self.deadline

    @property
    def done(self) -> bool:
        return self.cancelled or self.expired

    @property
    def reason(self) -> str | None:
        if self._reason:
            return self._reason
        if self.expired:
            return 'deadline exceeded'
        return None

    def remaining(self) -> float | None:
        """Seconds left before the deadline, or None without one."""
        if self.deadline is None:
            return None
        return max(0.0, self.deadline - self._clock())

    def cancel(self, reason: str = 'cancelled') -> None:
        """Signal cancellation and run registered driver cancel hooks."""
        with self._lock:
            if self._cancelled.is_set():
                return
            self._reason = reason
            self._cancelled.set()
            callbacks = list(self._callbacks)
        logger.debug(f'Query context cancelled: {reason}')
        for callback in callbacks:
            try:
                callback()
            except Exception as e:
                logger.warning(f'Driver cancel hook failed: {e}')

    def raise_if_done(self) -> None:
        """Raise ExecutionCancelled if the context is no longer usable."""
        if self.done:
            raise ExecutionCancelled(f'query not executed: {self.reason}')

    @contextmanager
    def watch(self, on_cancel: Callable[[], None]) -> Iterator['QueryContext']:
        """Run `on_cancel` if the context is cancelled or expires inside the block.

        Once the block exits `on_cancel` is never called, even by a cancel
        that was already under way; exiting waits for a running hook.
        """
        self.raise_if_done()
        guard = threading.Lock()
        active = True

        def hook():
            with guard:
                if active:
                    on_cancel()

        with self._lock:
            self._callbacks.append(hook)

        timer = None
        remaining = self.remaining()
        if remaining is not None:
            timer = threading.Timer(remaining, self.cancel, args=('deadline exceeded',))
            timer.daemon = True
            timer.start()

        try:
            yield self
        finally:
            if timer is not None:
                timer.cancel()
            with self._lock:
                self._callbacks.remove(hook)
            with guard:
                active = False


def background() -> QueryContext:
    """Context that is never cancelled and has no deadline."""
    return QueryContext()
