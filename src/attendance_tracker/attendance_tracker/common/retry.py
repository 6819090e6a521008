from __future__ import annotations

import logging
import time
from enum import Enum
from typing import Callable

logger = logging.getLogger(__name__)


class WaitOutcome(str, Enum):
    READY = "ready"
    TIMED_OUT = "timed_out"
    ABANDONED = "abandoned"


def wait_until(
    predicate: Callable[[], bool],
    *,
    attempts: int,
    interval: float,
    is_alive: Callable[[], bool] = lambda: True,
    sleep: Callable[[float], None] = time.sleep,
) -> WaitOutcome:
    """Poll ``predicate`` until it holds, at most ``attempts`` extra times.

    The predicate is checked once up front, then after each ``interval``
    sleep. ``is_alive`` is consulted before every sleep; once it returns
    False the wait stops with ``ABANDONED``.
    """

    if predicate():
        return WaitOutcome.READY

    for attempt in range(1, int(attempts) + 1):
        if not is_alive():
            return WaitOutcome.ABANDONED
        sleep(interval)
        if not is_alive():
            return WaitOutcome.ABANDONED
        if predicate():
            logger.debug("Condition met after %d attempt(s)", attempt)
            return WaitOutcome.READY

    return WaitOutcome.TIMED_OUT
