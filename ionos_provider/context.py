import threading
import time

from ionos_provider.errors import WaitCanceled


class RequestContext:
    """Cancellation signal and optional deadline shared by one driver request."""

    def __init__(self, timeout_sec: float | None = None):
        self._cancelled = threading.Event()
        self.deadline = time.monotonic() + timeout_sec if timeout_sec else None

    def cancel(self) -> None:
        self._cancelled.set()

    def remaining(self) -> float | None:
        if self.deadline is None:
            return None
        return max(0.0, self.deadline - time.monotonic())

    def done(self) -> bool:
        if self._cancelled.is_set():
            return True
        remaining = self.remaining()
        return remaining is not None and remaining <= 0

    def raise_if_done(self) -> None:
        if self._cancelled.is_set():
            raise WaitCanceled("request canceled")
        if self.done():
            raise WaitCanceled("request deadline exceeded")

    def sleep(self, seconds: float) -> None:
        self.raise_if_done()
        remaining = self.remaining()
        timeout = seconds if remaining is None else min(seconds, remaining)
        self._cancelled.wait(timeout)
        self.raise_if_done()
