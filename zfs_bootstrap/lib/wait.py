from __future__ import annotations

import logging
import time
from typing import Callable

logger = logging.getLogger(__name__)


class WaitTimeout(TimeoutError):
    pass


def poll_until(
    predicate: Callable[[], bool],
    *,
    timeout: float,
    what: str,
    interval: float = 0.2,
    max_interval: float = 2.0,
    sleep: Callable[[float], None] = time.sleep,
    clock: Callable[[], float] = time.monotonic,
) -> None:
    """Call predicate until it returns True or ``timeout`` seconds pass.

    The delay doubles after every miss, capped at ``max_interval``. The
    predicate is always evaluated at least once and once more at the deadline.
    """

    deadline = clock() + timeout
    delay = interval
    attempts = 0
    while True:
        attempts += 1
        if predicate():
            logger.debug("%s ready after %d attempt(s)", what, attempts)
            return
        remaining = deadline - clock()
        if remaining <= 0:
            raise WaitTimeout(f"Timed out after {timeout:g}s waiting for {what}")
        sleep(min(delay, remaining))
        delay = min(delay * 2, max_interval)
