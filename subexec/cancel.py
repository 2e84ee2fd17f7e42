from __future__ import annotations

import threading
import time


class CancelToken:
    """Caller-owned cancellation signal with an optional monotonic deadline.

    A token is handed to an executor at construction time (or through
    ``with_cancellation``); the executor refuses to launch once the token has
    fired and kills a running child when it fires mid-run.
    """

    def __init__(self, deadline: float | None = None) -> None:
        self._event = threading.Event()
        self.deadline = deadline

    @classmethod
    def with_timeout(cls, seconds: float) -> CancelToken:
        return cls(deadline=time.monotonic() + seconds)

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        if self._event.is_set():
            return True
        return self.deadline is not None and time.monotonic() >= self.deadline

    def remaining(self) -> float | None:
        if self.deadline is None:
            return None
        return max(self.deadline - time.monotonic(), 0.0)

    def wait(self, timeout: float | None = None) -> bool:
        """Block until the token fires, the deadline passes or *timeout* elapses.

        Returns ``True`` when the token has fired.
        """
        remaining = self.remaining()
        if remaining is not None and (timeout is None or remaining < timeout):
            timeout = remaining
        self._event.wait(timeout)
        return self.cancelled
