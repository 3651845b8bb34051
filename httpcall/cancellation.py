"""
Cooperative cancellation for a single call.

A CancelToken carries the caller's cancel signal and an optional overall
deadline. The executor checks it while dispatching, while reading a body and
while sleeping between attempts. Per-attempt timeouts are layered on top and
never replace it.
"""
import asyncio
import time
from typing import Awaitable, Callable, Optional, TypeVar

T = TypeVar("T")


class CallCancelled(Exception):
    """The caller cancelled the call."""

    def __init__(self, message: str = "call cancelled"):
        super().__init__(message)


class DeadlineExceeded(TimeoutError):
    """The caller's overall deadline passed."""

    def __init__(self, message: str = "call deadline exceeded"):
        super().__init__(message)


class AttemptTimeout(TimeoutError):
    """A single attempt ran past its own timeout."""

    def __init__(self, timeout: float):
        super().__init__(f"attempt timed out after {timeout}s")
        self.timeout = timeout


class CancelToken:
    def __init__(self, deadline: Optional[float] = None, *, clock: Callable[[], float] = time.monotonic):
        """
        Args:
            deadline: Absolute time on ``clock`` after which the call is over.
            clock: Monotonic clock used for the deadline.
        """
        self.deadline = deadline
        self._clock = clock
        self._event = asyncio.Event()

    @classmethod
    def with_timeout(cls, seconds: float, *, clock: Callable[[], float] = time.monotonic) -> "CancelToken":
        return cls(clock() + seconds, clock=clock)

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def remaining(self) -> Optional[float]:
        if self.deadline is None:
            return None
        return self.deadline - self._clock()

    def error(self) -> Optional[Exception]:
        """Return the reason the token is done, or None while it is live."""
        if self._event.is_set():
            return CallCancelled()
        remaining = self.remaining()
        if remaining is not None and remaining <= 0:
            return DeadlineExceeded()
        return None

    async def wait(self, delay: float) -> None:
        """Sleep for ``delay`` seconds unless the token ends first.

        Raises CallCancelled or DeadlineExceeded when the sleep is abandoned.
        """
        err = self.error()
        if err is not None:
            raise err

        bound = max(delay, 0.0)
        hits_deadline = False
        remaining = self.remaining()
        if remaining is not None and remaining < bound:
            bound = remaining
            hits_deadline = True

        try:
            await asyncio.wait_for(self._event.wait(), timeout=bound)
        except asyncio.TimeoutError:
            if hits_deadline:
                raise DeadlineExceeded()
            return
        raise CallCancelled()

    async def run(self, make: Callable[[], Awaitable[T]], timeout: Optional[float] = None) -> T:
        """Run ``make()`` bounded by ``timeout`` and by this token.

        The awaitable is cancelled as soon as the token is cancelled, its
        deadline passes or ``timeout`` elapses.
        """
        err = self.error()
        if err is not None:
            raise err

        bound = timeout if timeout is not None and timeout > 0 else None
        remaining = self.remaining()
        deadline_first = False
        if remaining is not None and (bound is None or remaining < bound):
            bound = max(remaining, 0.0)
            deadline_first = True

        task = asyncio.ensure_future(make())
        watcher = asyncio.ensure_future(self._event.wait())
        try:
            done, _ = await asyncio.wait({task, watcher}, timeout=bound, return_when=asyncio.FIRST_COMPLETED)
        except BaseException:
            task.cancel()
            watcher.cancel()
            raise

        watcher.cancel()
        if task in done:
            return task.result()

        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        except Exception:
            # the work failed while being torn down; the cancel reason wins
            pass

        if watcher in done:
            raise CallCancelled()
        if deadline_first:
            raise DeadlineExceeded()
        raise AttemptTimeout(timeout)
