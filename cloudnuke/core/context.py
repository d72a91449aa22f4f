"""
Run Context Module
==================

Carries cancellation and the overall deadline through a nuke run.

Every provider call in cloudnuke is blocking, so cancellation is
cooperative: strategies call :meth:`RunContext.check` before issuing a
delete, and waiters sleep through :meth:`RunContext.sleep` so that an
interrupt wakes them immediately.

Example
-------
>>> ctx = RunContext(timeout=3600)
>>> ctx.check()              # raises RunCancelledError once cancelled/expired
>>> if not ctx.sleep(20):    # False when the run was cancelled mid-sleep
...     return
"""

from __future__ import annotations

import threading
import time
from typing import Callable, Optional

from cloudnuke.core.exceptions import RunCancelledError


class RunContext:
    """
    Cancellation token plus optional deadline for a single run.

    Parameters
    ----------
    timeout : float, optional
        Seconds from construction after which the run is considered
        expired. None means no deadline.
    clock : callable, default=time.monotonic
        Monotonic clock, injectable for tests.
    """

    def __init__(
        self,
        timeout: Optional[float] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._clock = clock
        self._event = threading.Event()
        self.deadline: Optional[float] = (
            clock() + timeout if timeout is not None and timeout > 0 else None
        )

    def cancel(self) -> None:
        """Stop issuing new provider calls; in-flight calls are left alone."""
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    @property
    def expired(self) -> bool:
        return self.deadline is not None and self._clock() >= self.deadline

    @property
    def done(self) -> bool:
        """True once the run is cancelled or past its deadline."""
        return self.cancelled or self.expired

    def remaining(self) -> Optional[float]:
        """Seconds left before the deadline, or None without one."""
        if self.deadline is None:
            return None
        return max(0.0, self.deadline - self._clock())

    def check(self) -> None:
        """
        Raise if no further provider calls should be issued.

        Raises
        ------
        RunCancelledError
            When the run was cancelled or the deadline has passed.
        """
        if self.cancelled:
            raise RunCancelledError("Run cancelled by user")
        if self.expired:
            raise RunCancelledError("Run timeout reached")

    def sleep(self, seconds: float) -> bool:
        """
        Sleep for up to ``seconds``, waking early on cancellation.

        Returns
        -------
        bool
            True if the full sleep elapsed and the run may continue,
            False if the run is cancelled or expired.
        """
        remaining = self.remaining()
        if remaining is not None:
            seconds = min(seconds, remaining)
        if seconds > 0:
            self._event.wait(seconds)
        return not self.done

    def __repr__(self) -> str:
        return f"RunContext(cancelled={self.cancelled}, deadline={self.deadline})"
