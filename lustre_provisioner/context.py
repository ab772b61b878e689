"""Request-scoped cancellation and deadline signal."""

import threading
import time
from typing import Callable, Optional

from .exceptions import DeadlineExceeded


class RequestContext:
    """Cancellation/deadline carried through every remote call of a request.

    Remote calls bound their HTTP timeout by ``remaining()`` and polling loops
    sleep through ``wait()`` so that cancelling the context interrupts them
    promptly.
    """

    def __init__(
        self,
        timeout: Optional[float] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        """Initialize request context.

        Args:
            timeout: Seconds until the deadline expires (None for no deadline)
            clock: Monotonic clock, injectable for tests
        """
        self._clock = clock
        self._cancelled = threading.Event()
        self.deadline = clock() + timeout if timeout is not None else None

    def cancel(self) -> None:
        """Cancel the request, waking any pending wait()."""
        self._cancelled.set()

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    def remaining(self) -> Optional[float]:
        """Seconds left before the deadline, or None without a deadline."""
        if self.deadline is None:
            return None
        return max(0.0, self.deadline - self._clock())

    def check(self) -> None:
        """Raise DeadlineExceeded if the request was cancelled or timed out."""
        if self.cancelled:
            raise DeadlineExceeded(details="request was cancelled")
        remaining = self.remaining()
        if remaining is not None and remaining <= 0:
            raise DeadlineExceeded(details="request deadline exceeded")

    def bound_timeout(self, timeout: float) -> float:
        """Clamp a per-call timeout so it never outlives the request deadline."""
        self.check()
        remaining = self.remaining()
        if remaining is None:
            return timeout
        return min(timeout, remaining)

    def wait(self, seconds: float) -> None:
        """Sleep for ``seconds`` unless cancelled first, then check()."""
        self.check()
        remaining = self.remaining()
        if remaining is not None:
            seconds = min(seconds, remaining)
        self._cancelled.wait(seconds)
        self.check()
