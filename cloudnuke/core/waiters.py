"""
Bounded polling used by the wait-based deletion strategies.

Waiters are the only long-running operations in a run, so they poll
through :meth:`RunContext.sleep` and stop as soon as the run is cancelled.
"""

from __future__ import annotations

import logging
from typing import Callable

from cloudnuke.core.context import RunContext

# Module logger
logger = logging.getLogger(__name__)

DEFAULT_POLL_INTERVAL = 5.0
DEFAULT_MAX_ATTEMPTS = 60


def poll_until(
    ctx: RunContext,
    condition: Callable[[], bool],
    timeout_error: Callable[[int, float], Exception],
    interval: float = DEFAULT_POLL_INTERVAL,
    max_attempts: int = DEFAULT_MAX_ATTEMPTS,
    description: str = "condition",
) -> None:
    """
    Poll ``condition`` until it returns True.

    Parameters
    ----------
    ctx : RunContext
        Run context; cancellation aborts the wait.
    condition : callable
        Returns True once the awaited state is reached. Exceptions it
        raises propagate to the caller.
    timeout_error : callable
        Builds the exception raised after ``max_attempts`` failed polls,
        called with ``(attempts, interval)``.
    interval : float
        Seconds between polls.
    max_attempts : int
        Attempt ceiling.
    description : str
        Used in debug logs.

    Raises
    ------
    RunCancelledError
        If the run is cancelled or expires while waiting.
    Exception
        Whatever ``timeout_error`` builds, once the ceiling is reached.
    """
    for attempt in range(1, max_attempts + 1):
        ctx.check()
        if condition():
            logger.debug(f"{description} reached after {attempt} attempt(s)")
            return
        if attempt < max_attempts:
            logger.debug(
                f"Waiting for {description} "
                f"(attempt {attempt}/{max_attempts}, next check in {interval}s)"
            )
            if not ctx.sleep(interval):
                ctx.check()

    raise timeout_error(max_attempts, interval)
